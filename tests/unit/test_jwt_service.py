from datetime import timedelta
from types import SimpleNamespace
from jose import jwt
import pytest

from core.exceptions import InvalidTokenError, AccessTokenExpiredError
from services.jwt_service import JwtService

SECRET = "unit-test-secret-key-of-at-least-32-bytes"

service = JwtService(secret_key=SECRET, issuer="email-client-ai", leeway_seconds=5)
ann = SimpleNamespace(id=1, email="ann@example.com")
bob = SimpleNamespace(id=2, email="bob@example.com")


def test_access_token_claims():
    token = service.generate_access_token(ann)
    assert token

    payload = jwt.decode(token, SECRET, algorithms=["HS256"], issuer="email-client-ai")
    assert payload["sub"] == "ann@example.com"
    assert payload["id"] == 1
    assert payload["type"] == "access"
    assert payload["iss"] == "email-client-ai"
    assert payload["exp"] - payload["iat"] == 15 * 60


def test_extract_username_round_trip():
    token = service.generate_access_token(ann)
    assert service.extract_username(token) == ann.email


def test_is_token_valid_checks_subject():
    token = service.generate_access_token(ann)
    assert service.is_token_valid(token, ann) is True
    assert service.is_token_valid(token, bob) is False


def test_token_signed_with_other_secret_is_rejected():
    other = JwtService(secret_key="a-completely-different-secret-value-123")
    token = other.generate_access_token(ann)

    assert service.is_token_valid(token, ann) is False
    with pytest.raises(InvalidTokenError):
        service.extract_username(token)


def test_token_with_other_issuer_is_rejected():
    other = JwtService(secret_key=SECRET, issuer="someone-else")
    token = other.generate_access_token(ann)

    assert service.is_token_valid(token, ann) is False


def test_tampered_payload_is_rejected():
    token = service.generate_access_token(ann)
    header, payload, signature = token.split(".")

    forged_payload = jwt.encode({"sub": bob.email}, "irrelevant", algorithm="HS256").split(".")[1]
    forged = ".".join([header, forged_payload, signature])

    assert service.is_token_valid(forged, bob) is False
    with pytest.raises(InvalidTokenError):
        service.extract_username(forged)


def test_expired_token_is_rejected():
    token = service.generate_access_token(ann, expires_delta=timedelta(minutes=-5))

    assert service.is_token_valid(token, ann) is False
    with pytest.raises(AccessTokenExpiredError):
        service.extract_username(token)


def test_small_clock_skew_is_tolerated():
    token = service.generate_access_token(ann, expires_delta=timedelta(seconds=-2))
    assert service.extract_username(token) == ann.email


def test_unsigned_token_is_rejected():
    # alg "none": header.payload. with an empty signature
    header = "eyJhbGciOiJub25lIiwidHlwIjoiSldUIn0"
    payload = jwt.encode(
        {"sub": ann.email, "iss": "email-client-ai", "type": "access", "exp": 4102444800},
        SECRET, algorithm="HS256"
    ).split(".")[1]
    unsigned = f"{header}.{payload}."

    with pytest.raises(InvalidTokenError):
        service.extract_username(unsigned)


def test_non_access_token_type_is_rejected():
    token = jwt.encode(
        {"sub": ann.email, "iss": "email-client-ai", "type": "refresh", "exp": 4102444800},
        SECRET, algorithm="HS256"
    )
    with pytest.raises(InvalidTokenError):
        service.extract_username(token)


@pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
def test_malformed_token_is_rejected(garbage):
    with pytest.raises(InvalidTokenError):
        service.extract_username(garbage)


def test_refresh_tokens_are_opaque_and_unique():
    tokens = {JwtService.generate_refresh_token() for _ in range(50)}

    assert len(tokens) == 50
    # 48 random bytes, url-safe base64 without padding
    assert all(len(t) == 64 for t in tokens)
    assert all(t.count(".") == 0 for t in tokens)
