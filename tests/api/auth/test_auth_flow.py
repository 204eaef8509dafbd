from core.config import settings

AUTH_URL = f"{settings.API_PREFIX}/auth"


async def test_register_login_refresh_logout(client):
    """The whole lifecycle of a password account session."""
    response = await client.post(f"{AUTH_URL}/register", json={
        "email": "a@x.com",
        "password": "P@ssw0rd",
        "name": "Ann"
    })
    assert response.status_code == 200

    response = await client.post(f"{AUTH_URL}/login", json={
        "email": "a@x.com",
        "password": "P@ssw0rd"
    })
    assert response.status_code == 200
    tokens = response.json()["data"]
    assert tokens["expiresIn"] == 900

    me = await client.get(f"{settings.API_PREFIX}/users/me", headers={
        "Authorization": f"Bearer {tokens['accessToken']}"
    })
    assert me.json()["data"]["email"] == "a@x.com"
    assert me.json()["data"]["name"] == "Ann"

    response = await client.post(f"{AUTH_URL}/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert response.status_code == 200
    refresh_token = response.json()["data"]["refreshToken"]

    response = await client.post(f"{AUTH_URL}/logout", json={"refreshToken": refresh_token})
    assert response.status_code == 200

    response = await client.post(f"{AUTH_URL}/logout", json={"refreshToken": refresh_token})
    assert response.status_code == 401
