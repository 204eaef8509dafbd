from core.config import settings
from middleware.rate_limiter import get_user_id, limiter
from utils.deps import get_jwt_service
from starlette.requests import Request

LOGIN_URL = f"{settings.API_PREFIX}/auth/login"


def make_request(headers=None):
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": ("10.0.0.7", 5000),
    })


def test_rate_limiter_enabled_by_default():
    assert limiter.enabled is True


def test_key_is_client_ip_without_token():
    assert get_user_id(make_request()) == "10.0.0.7"


def test_key_is_user_id_with_valid_token(registered_user):
    token = get_jwt_service().generate_access_token(registered_user)

    key = get_user_id(make_request({"Authorization": f"Bearer {token}"}))

    assert key == f"user:{registered_user.id}"


def test_key_falls_back_to_ip_with_bad_token():
    assert get_user_id(make_request({"Authorization": "Bearer garbage"})) == "10.0.0.7"


async def test_login_is_rate_limited(client, registered_user):
    """Login allows 5 attempts per minute; the sixth is rejected."""
    for _ in range(5):
        response = await client.post(LOGIN_URL, json={
            "email": registered_user.email,
            "password": "WrongPassword123!"
        })
        assert response.status_code == 401

    response = await client.post(LOGIN_URL, json={
        "email": registered_user.email,
        "password": "TestPassword123!"
    })

    assert response.status_code == 429
    body = response.json()
    assert body["success"] is False
    assert body["errorCode"] == "RATE_001"
