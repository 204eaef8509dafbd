"""
Verification of Google ID tokens sent by the frontend after "Sign in with Google".

Google signs ID tokens with rotating RSA keys published as a JWKS document.
GoogleKeyCache keeps that document in memory; GoogleTokenVerifier checks a
token against it and against our OAuth client id.
"""

import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

import httpx
from jose import jwt, JOSEError

from core.config import Settings
from core.exceptions import InvalidGoogleTokenError
from utils.logger import get_logger, mask_value

logger = get_logger(__name__)

GOOGLE_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
GOOGLE_ALGORITHM = "RS256"

_MAX_AGE_RE = re.compile(r"max-age=(\d+)")

# A fetcher returns the JWKS document and, if known, how long it may be cached
KeyFetcher = Callable[[], Tuple[dict, Optional[int]]]


class GoogleKeyError(Exception):
    """The key set could not be loaded or does not contain the requested key."""


def fetch_google_certs(url: str = GOOGLE_CERTS_URL, timeout: float = 10.0) -> Tuple[dict, Optional[int]]:
    response = httpx.get(url, timeout=timeout)
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict) or not isinstance(data.get("keys"), list):
        raise GoogleKeyError("invalid jwks document")

    max_age = None
    match = _MAX_AGE_RE.search(response.headers.get("cache-control", ""))
    if match:
        max_age = int(match.group(1))
    return data, max_age


class GoogleKeyCache:
    """
    In-memory cache of Google's public signing keys.

    Reads use an immutable snapshot and take no lock. When the snapshot is
    missing or past its TTL, one thread refreshes it under the lock while the
    others wait and then reuse the fresh result. An expired snapshot is never
    served: if the refresh fails the error propagates.
    """

    def __init__(self, fetcher: KeyFetcher | None = None, default_ttl: int = 3600,
                 min_refresh_interval: int = 60, clock: Callable[[], float] = time.monotonic):
        self._fetcher = fetcher or fetch_google_certs
        self._default_ttl = default_ttl
        self._min_refresh_interval = min_refresh_interval
        self._clock = clock
        self._lock = threading.Lock()
        # (keys by kid, expires at, fetched at)
        self._snapshot: Tuple[dict[str, dict], float, float] = ({}, 0.0, float("-inf"))

    def _fresh(self, snapshot) -> bool:
        keys, expires_at, _ = snapshot
        return bool(keys) and self._clock() < expires_at

    def _refresh_locked(self):
        document, max_age = self._fetcher()
        keys = {}
        for key in document.get("keys", []):
            if isinstance(key, dict) and key.get("kid"):
                keys[str(key["kid"])] = key
        if not keys:
            raise GoogleKeyError("jwks document contains no usable keys")

        now = self._clock()
        ttl = max_age if max_age is not None else self._default_ttl
        self._snapshot = (keys, now + ttl, now)
        logger.info("Google signing keys refreshed", extra={"key_count": len(keys), "ttl": ttl})

    def _current(self):
        snapshot = self._snapshot
        if self._fresh(snapshot):
            return snapshot
        with self._lock:
            # Another thread may have refreshed while we waited
            if not self._fresh(self._snapshot):
                self._refresh_locked()
            return self._snapshot

    def get_key(self, kid: str) -> dict:
        """
        Returns the JWK with the given key id.

        An unknown kid usually means Google rotated keys before our TTL ran
        out, so the set is re-fetched, at most once per min_refresh_interval.
        """
        keys, _, fetched_at = self._current()
        key = keys.get(kid)
        if key is not None:
            return key

        with self._lock:
            keys, _, fetched_at = self._snapshot
            if kid not in keys and self._clock() - fetched_at >= self._min_refresh_interval:
                self._refresh_locked()
                keys = self._snapshot[0]
        if kid not in keys:
            raise GoogleKeyError(f"unknown key id {kid}")
        return keys[kid]

    def invalidate(self):
        with self._lock:
            self._snapshot = ({}, 0.0, float("-inf"))


@dataclass(frozen=True)
class GoogleIdentity:
    subject: str
    email: str
    name: str | None
    email_verified: bool


def _as_bool(value: Any) -> bool:
    # Google has sent email_verified both as a boolean and as "true"/"false"
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


class GoogleTokenVerifier:
    """
    Verifies Google ID tokens.

    Every failure is reported as the same InvalidGoogleTokenError; the real
    cause only goes to the log.
    """

    def __init__(self, client_id: str, key_cache: GoogleKeyCache, leeway_seconds: int = 5):
        if not client_id:
            raise ValueError("Google client id is required")
        self.client_id = client_id
        self.key_cache = key_cache
        self.leeway_seconds = leeway_seconds
        logger.info("Google token verifier initialised", extra={"client_id": mask_value(client_id)})

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleTokenVerifier":
        url = settings.GOOGLE_CERTS_URL
        cache = GoogleKeyCache(fetcher=lambda: fetch_google_certs(url))
        return cls(settings.GOOGLE_CLIENT_ID, cache, leeway_seconds=settings.JWT_CLOCK_SKEW_SECONDS)

    def verify(self, id_token: str) -> GoogleIdentity:
        try:
            claims = self._decode(id_token)
        except (JOSEError, GoogleKeyError, httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning(
                "Google ID token rejected",
                extra={"reason": str(e), "error_type": type(e).__name__}
            )
            raise InvalidGoogleTokenError()

        return GoogleIdentity(
            subject=str(claims["sub"]),
            email=claims["email"].strip().lower(),
            name=claims.get("name"),
            email_verified=_as_bool(claims.get("email_verified", False)),
        )

    def _decode(self, id_token: str) -> dict:
        header = jwt.get_unverified_header(id_token)
        if header.get("alg") != GOOGLE_ALGORITHM:
            raise ValueError(f"unexpected algorithm {header.get('alg')}")
        kid = header.get("kid")
        if not kid:
            raise ValueError("token header has no kid")

        key = self.key_cache.get_key(kid)
        claims = jwt.decode(
            id_token,
            key,
            algorithms=[GOOGLE_ALGORITHM],
            audience=self.client_id,
            options={
                "leeway": self.leeway_seconds,
                "require_exp": True,
                "require_aud": True,
                "require_sub": True,
                # Tokens from the browser flow are not paired with an access token
                "verify_at_hash": False,
            },
        )

        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise ValueError(f"unexpected issuer {claims.get('iss')}")
        email = claims.get("email")
        if not isinstance(email, str) or not email.strip():
            raise ValueError("token has no usable email claim")
        return claims
