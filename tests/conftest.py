import os

# Must be set before clipfeed.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from clipfeed.database import Base, SessionLocal, engine
from clipfeed.main import app
from clipfeed.media import MediaStorage, get_media
from clipfeed.models import User, Video


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def media(tmp_path):
    storage = MediaStorage(tmp_path / "uploads")
    app.dependency_overrides[get_media] = lambda: storage
    yield storage
    app.dependency_overrides.pop(get_media, None)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def make_user(client):
    def _make(username, password="password123"):
        response = client.post(
            "/api/auth/register",
            json={"username": username, "email": f"{username}@test.com", "password": password},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {
            "id": body["user"]["id"],
            "username": username,
            "headers": {"Authorization": f"Bearer {body['accessToken']}"},
        }
    return _make


@pytest.fixture
def upload_video(client):
    def _upload(user, caption="my clip", tags="", filename="clip.mp4", content_type="video/mp4"):
        response = client.post(
            "/api/videos",
            files={"video": (filename, b"\x00\x00\x00\x18ftypmp42", content_type)},
            data={"caption": caption, "tags": tags},
            headers=user["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _upload


@pytest.fixture
def seed(db):
    """Create users and a video straight through the ORM, bypassing HTTP."""
    def _seed(usernames, video_owner=None):
        users = [User(username=name, email=f"{name}@test.com", hashed_password="x") for name in usernames]
        db.add_all(users)
        db.flush()
        video = None
        if video_owner is not None:
            video = Video(owner_id=users[video_owner].id, media_ref="/uploads/videos/seed.mp4", caption="seed")
            db.add(video)
        db.commit()
        return users, video
    return _seed
