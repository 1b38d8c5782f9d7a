from fastapi.testclient import TestClient
from clipfeed.main import app

client = TestClient(app)

def test_register_user():
    response = client.post("/api/auth/register", json={"username": "testuser", "email": "test@test.com", "password": "password123"})
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "User registered successfully"
    assert body["tokenType"] == "bearer"
    assert body["user"]["username"] == "testuser"
    assert body["user"]["followers"] == 0
    assert body["user"]["following"] == 0
    assert "hashedPassword" not in body["user"]

def test_register_duplicate_username_or_email():
    client.post("/api/auth/register", json={"username": "testuser", "email": "test@test.com", "password": "password123"})
    response = client.post("/api/auth/register", json={"username": "testuser", "email": "other@test.com", "password": "password123"})
    assert response.status_code == 400
    assert response.json()["kind"] == "ValidationError"

    response = client.post("/api/auth/register", json={"username": "other", "email": "test@test.com", "password": "password123"})
    assert response.status_code == 400

def test_register_validation_maps_to_400():
    response = client.post("/api/auth/register", json={"username": "testuser", "email": "not-an-email", "password": "password123"})
    assert response.status_code == 400
    assert response.json()["kind"] == "ValidationError"

def test_login_with_username_or_email():
    client.post("/api/auth/register", json={"username": "testuser", "email": "test@test.com", "password": "password123"})

    response = client.post("/api/auth/login", data={"username": "testuser", "password": "password123"})
    assert response.status_code == 200
    token = response.json()["accessToken"]

    response = client.post("/api/auth/login", data={"username": "test@test.com", "password": "password123"})
    assert response.status_code == 200

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["email"] == "test@test.com"

def test_login_invalid_credentials():
    client.post("/api/auth/register", json={"username": "testuser", "email": "test@test.com", "password": "password123"})
    response = client.post("/api/auth/login", data={"username": "testuser", "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"

def test_me_requires_token():
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["kind"] == "Unauthenticated"

    response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401

def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
