import time
import httpx
import pytest

from core.exceptions import InvalidGoogleTokenError, ErrorCode
from services.google_auth_service import GoogleKeyCache, GoogleTokenVerifier


def test_valid_token_yields_identity(google_verifier, google_tokens):
    identity = google_verifier.verify(google_tokens.make_token())

    assert identity.subject == "google-sub-123"
    assert identity.email == "ann.google@gmail.com"
    assert identity.name == "Ann Google"
    assert identity.email_verified is True


def test_short_issuer_form_is_accepted(google_verifier, google_tokens):
    identity = google_verifier.verify(google_tokens.make_token(iss="accounts.google.com"))
    assert identity.subject == "google-sub-123"


def test_email_verified_as_string(google_verifier, google_tokens):
    identity = google_verifier.verify(google_tokens.make_token(email_verified="false"))
    assert identity.email_verified is False


def test_email_is_normalized(google_verifier, google_tokens):
    identity = google_verifier.verify(google_tokens.make_token(email="Ann.Google@GMAIL.com"))
    assert identity.email == "ann.google@gmail.com"


def _rejection(verifier, token) -> InvalidGoogleTokenError:
    with pytest.raises(InvalidGoogleTokenError) as exc_info:
        verifier.verify(token)
    return exc_info.value


@pytest.mark.parametrize("overrides", [
    {"aud": "someone-elses-client.apps.googleusercontent.com"},
    {"iss": "https://evil.example.com"},
    {"exp": int(time.time()) - 600},
    {"email": None},
    {"email": "   "},
    {"email": 12345},
    {"email": ["ann@example.com"]},
    {"sub": None},
])
def test_bad_claims_are_rejected(google_verifier, google_tokens, overrides):
    _rejection(google_verifier, google_tokens.make_token(**overrides))


def test_audience_and_expiry_failures_are_indistinguishable(google_verifier, google_tokens):
    wrong_audience = _rejection(google_verifier, google_tokens.make_token(aud="other-client"))
    expired = _rejection(google_verifier, google_tokens.make_token(exp=int(time.time()) - 600))

    assert type(wrong_audience) is type(expired)
    assert wrong_audience.message == expired.message
    assert wrong_audience.error_code is expired.error_code is ErrorCode.INVALID_GOOGLE_TOKEN


def test_token_signed_by_another_key_is_rejected(google_verifier):
    from tests.conftest import GoogleTokenFactory

    impostor = GoogleTokenFactory(google_verifier.client_id)  # same kid, different key
    _rejection(google_verifier, impostor.make_token())


def test_unknown_kid_is_rejected(google_verifier, google_tokens):
    _rejection(google_verifier, google_tokens.make_token(kid="not-a-google-key"))


def test_hs256_token_is_rejected(google_verifier):
    from jose import jwt

    forged = jwt.encode(
        {"iss": "https://accounts.google.com", "aud": google_verifier.client_id, "sub": "x",
         "email": "x@gmail.com", "exp": int(time.time()) + 600},
        "some-secret", algorithm="HS256", headers={"kid": "test-key-1"}
    )
    _rejection(google_verifier, forged)


@pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c"])
def test_garbage_is_rejected(google_verifier, garbage):
    _rejection(google_verifier, garbage)


def test_key_fetch_failure_is_rejected_uniformly(google_tokens):
    def offline():
        raise httpx.ConnectError("network unreachable")

    verifier = GoogleTokenVerifier(google_tokens.client_id, GoogleKeyCache(fetcher=offline))
    _rejection(verifier, google_tokens.make_token())


def test_client_id_is_required():
    with pytest.raises(ValueError):
        GoogleTokenVerifier("", GoogleKeyCache(fetcher=lambda: ({"keys": []}, None)))
