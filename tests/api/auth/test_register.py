from core.config import settings
from models.users import User

REGISTER_URL = f"{settings.API_PREFIX}/auth/register"


async def test_register_success(client, session):
    """Test registering a new password account."""
    response = await client.post(REGISTER_URL, json={
        "email": "new@example.com",
        "password": "P@ssw0rd",
        "name": "New User"
    })

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully. Please login."
    # No tokens until the user logs in
    assert "data" not in body

    user = session.query(User).filter(User.email == "new@example.com").first()
    assert user is not None
    assert user.name == "New User"
    assert user.hashed_password != "P@ssw0rd"


async def test_register_normalizes_email(client, session):
    response = await client.post(REGISTER_URL, json={
        "email": "Mixed.Case@Example.COM",
        "password": "P@ssw0rd",
        "name": "Mixed"
    })

    assert response.status_code == 200
    assert session.query(User).filter(User.email == "mixed.case@example.com").count() == 1


async def test_register_duplicate_email(client, session, registered_user):
    """Test that an existing email is rejected with 409 and nothing is created."""
    response = await client.post(REGISTER_URL, json={
        "email": "ANN@example.com",
        "password": "P@ssw0rd",
        "name": "Another Ann"
    })

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["errorCode"] == "BUSINESS_001"
    assert session.query(User).count() == 1


async def test_register_invalid_email(client):
    response = await client.post(REGISTER_URL, json={
        "email": "not-an-email",
        "password": "P@ssw0rd",
        "name": "Nobody"
    })

    assert response.status_code == 400
    body = response.json()
    assert body["errorCode"] == "VALIDATION_001"
    fields = {error["field"]: error for error in body["errors"]}
    assert "email" in fields
    assert fields["email"]["rejectedValue"] == "not-an-email"


async def test_register_weak_password_is_not_echoed(client):
    response = await client.post(REGISTER_URL, json={
        "email": "weak@example.com",
        "password": "short",
        "name": "Weak"
    })

    assert response.status_code == 400
    fields = {error["field"]: error for error in response.json()["errors"]}
    assert "password" in fields
    assert "rejectedValue" not in fields["password"]


async def test_register_missing_fields(client):
    response = await client.post(REGISTER_URL, json={"email": "missing@example.com"})

    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert {"password", "name"} <= fields
