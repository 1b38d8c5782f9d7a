def _profile(client, user_id):
    response = client.get(f"/api/users/id/{user_id}")
    assert response.status_code == 200
    return response.json()


def test_follow_and_unfollow_scenario(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")

    response = client.post(f"/api/users/follow/{alice['id']}", headers=bob["headers"])
    assert response.status_code == 200
    assert response.json()["message"] == "Successfully followed user"
    assert _profile(client, alice["id"])["followers"] == 1
    assert _profile(client, bob["id"])["following"] == 1

    response = client.get(f"/api/users/check-follow/{alice['id']}", headers=bob["headers"])
    assert response.json() == {"isFollowing": True}

    response = client.delete(f"/api/users/unfollow/{alice['id']}", headers=bob["headers"])
    assert response.status_code == 200
    assert _profile(client, alice["id"])["followers"] == 0
    assert _profile(client, bob["id"])["following"] == 0

    response = client.delete(f"/api/users/unfollow/{alice['id']}", headers=bob["headers"])
    assert response.status_code == 400
    assert response.json()["kind"] == "EdgeNotFound"
    assert response.json()["detail"] == "You are not following this user"


def test_second_follow_is_rejected_without_touching_counters(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")

    client.post(f"/api/users/follow/{alice['id']}", headers=bob["headers"])
    response = client.post(f"/api/users/follow/{alice['id']}", headers=bob["headers"])
    assert response.status_code == 400
    assert response.json()["kind"] == "DuplicateEdge"
    assert _profile(client, alice["id"])["followers"] == 1
    assert _profile(client, bob["id"])["following"] == 1


def test_self_follow_is_rejected(client, make_user):
    alice = make_user("alice")

    response = client.post(f"/api/users/follow/{alice['id']}", headers=alice["headers"])
    assert response.status_code == 400
    assert response.json()["kind"] == "SelfReferenceNotAllowed"

    profile = _profile(client, alice["id"])
    assert profile["followers"] == 0
    assert profile["following"] == 0


def test_follow_unknown_user(client, make_user):
    alice = make_user("alice")
    response = client.post("/api/users/follow/doesnotexist", headers=alice["headers"])
    assert response.status_code == 404
    assert response.json()["kind"] == "NotFound"


def test_follow_requires_authentication(client, make_user):
    alice = make_user("alice")
    response = client.post(f"/api/users/follow/{alice['id']}")
    assert response.status_code == 401


def test_counters_match_follow_edges(client, make_user):
    users = [make_user(name) for name in ("alice", "bob", "carol", "dave")]
    alice, bob, carol, dave = users
    for follower, target in [(bob, alice), (carol, alice), (dave, alice), (alice, bob), (carol, bob)]:
        assert client.post(f"/api/users/follow/{target['id']}", headers=follower["headers"]).status_code == 200
    client.delete(f"/api/users/unfollow/{alice['id']}", headers=dave["headers"])

    for user in users:
        profile = _profile(client, user["id"])
        followers = client.get(f"/api/users/{user['id']}/followers").json()
        following = client.get(f"/api/users/{user['id']}/following").json()
        assert profile["followers"] == len(followers)
        assert profile["following"] == len(following)

    names = {u["username"] for u in client.get(f"/api/users/{alice['id']}/followers").json()}
    assert names == {"bob", "carol"}


def test_get_user_by_username_and_id(client, make_user):
    alice = make_user("alice")
    response = client.get("/api/users/alice")
    assert response.status_code == 200
    assert response.json()["id"] == alice["id"]
    assert "email" not in response.json()

    assert client.get("/api/users/nobody").status_code == 404
    assert client.get("/api/users/id/nobody").status_code == 404


def test_suggested_users_excludes_self_and_followed(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    make_user("carol")
    client.post(f"/api/users/follow/{bob['id']}", headers=alice["headers"])

    response = client.get("/api/users/suggested/users", headers=alice["headers"])
    assert response.status_code == 200
    assert [u["username"] for u in response.json()] == ["carol"]


def test_search_users(client, make_user):
    alice = make_user("alice")
    make_user("bob")
    client.put("/api/users/profile", data={"bio": "Dancer and skater"}, headers=alice["headers"])

    response = client.get("/api/users/search/query", params={"query": "DANCE"})
    assert [u["username"] for u in response.json()] == ["alice"]

    response = client.get("/api/users/search/query", params={"query": "bo"})
    assert [u["username"] for u in response.json()] == ["bob"]

    response = client.get("/api/users/search/query")
    assert response.status_code == 400
    assert response.json()["detail"] == "Search query is required"


def test_update_profile_replaces_avatar(client, make_user, media):
    alice = make_user("alice")

    response = client.put(
        "/api/users/profile",
        data={"bio": "hello"},
        files={"avatar": ("me.png", b"\x89PNG first", "image/png")},
        headers=alice["headers"],
    )
    assert response.status_code == 200
    first_avatar = response.json()["avatarRef"]
    assert first_avatar.startswith("/uploads/avatars/")
    assert response.json()["bio"] == "hello"
    assert media.path_for(first_avatar).exists()

    response = client.put(
        "/api/users/profile",
        files={"avatar": ("me.jpg", b"\xff\xd8 second", "image/jpeg")},
        headers=alice["headers"],
    )
    second_avatar = response.json()["avatarRef"]
    assert second_avatar != first_avatar
    assert response.json()["bio"] == "hello"
    assert not media.path_for(first_avatar).exists()
    assert media.path_for(second_avatar).exists()


def test_update_profile_rejects_non_images(client, make_user):
    alice = make_user("alice")
    response = client.put(
        "/api/users/profile",
        files={"avatar": ("notes.txt", b"text", "text/plain")},
        headers=alice["headers"],
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Only image files are allowed!"


def test_search_users_treats_wildcards_literally(client, make_user):
    make_user("alice")
    make_user("bob_smith")

    response = client.get("/api/users/search/query", params={"query": "_"})
    assert [u["username"] for u in response.json()] == ["bob_smith"]

    response = client.get("/api/users/search/query", params={"query": "%"})
    assert response.json() == []
