from datetime import timedelta

import jwt
import pytest

from pkg.auth_token_client.client import TokenClient, TokenPayload


@pytest.mark.asyncio
async def test_me_returns_token_identity(client, auth_headers):
    res = await client.get("/auth/me", headers=auth_headers("user-5", role="admin"))
    assert res.status_code == 200
    assert res.json()["data"] == {"user_id": "user-5", "role": "admin", "email": None}


@pytest.mark.asyncio
async def test_missing_token_is_401_with_challenge(client):
    res = await client.get("/auth/me")
    assert res.status_code == 401
    assert res.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_token_signed_with_other_secret_is_rejected(client):
    token = TokenClient("someone-elses-secret").create_access_token(TokenPayload(user_id="x"))
    res = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_expired_token_is_rejected(client):
    expired = TokenClient("test-secret", leeway_seconds=0, access_ttl=timedelta(seconds=-60))
    token = expired.create_access_token(TokenPayload(user_id="x"))
    res = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_token_without_user_id_is_rejected(client):
    token = jwt.encode({"role": "admin"}, "test-secret", algorithm="HS256")
    res = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_token_client_round_trip():
    client = TokenClient("secret")
    token = client.create_access_token(TokenPayload(user_id="42", role="user", email="a@example.com"))
    payload = client.decode_token(token)
    assert payload["user_id"] == "42"
    assert payload["role"] == "user"
    assert payload["email"] == "a@example.com"


def test_token_client_reports_expiry():
    client = TokenClient("secret", leeway_seconds=0, access_ttl=timedelta(seconds=-60))
    token = client.create_access_token(TokenPayload(user_id="42"))
    with pytest.raises(ValueError, match="expired"):
        client.decode_token(token)
