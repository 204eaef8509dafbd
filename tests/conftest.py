import os
import tempfile
import time

# Settings are read when core.config is first imported, so set them before importing the app
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-bytes!!")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client.apps.googleusercontent.com")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("REFRESH_TOKEN_CLEANUP_INTERVAL_MINUTES", "0")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "email-client-test-logs"))

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from jose import jwk, jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator

from main import app
from core.config import settings
from core.database import Base
from middleware.rate_limiter import limiter
from models.users import User
from services.auth_service import AuthService
from services.google_auth_service import GoogleKeyCache, GoogleTokenVerifier
from utils.deps import get_db, get_google_verifier, get_jwt_service, get_password_hasher, get_refresh_token_service

# SYNC SQLite for testing (matches sync service layer)
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False}
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

TEST_PASSWORD = "TestPassword123!"


class GoogleTokenFactory:
    """
    Stands in for Google: owns an RSA key pair, publishes the public half as
    a JWKS document and signs ID tokens with the private half.
    """

    def __init__(self, client_id: str, kid: str = "test-key-1"):
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.private_pem = private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption()
        ).decode()
        public_pem = private_key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo
        ).decode()
        self.client_id = client_id
        self.kid = kid
        self.public_jwk = {**jwk.construct(public_pem, algorithm="RS256").to_dict(), "kid": kid, "use": "sig"}
        self.fetch_count = 0

    def fetch(self):
        self.fetch_count += 1
        return {"keys": [self.public_jwk]}, 3600

    def make_token(self, kid: str | None = None, **overrides) -> str:
        now = int(time.time())
        claims = {
            "iss": "https://accounts.google.com",
            "aud": self.client_id,
            "sub": "google-sub-123",
            "email": "ann.google@gmail.com",
            "email_verified": True,
            "name": "Ann Google",
            "iat": now,
            "exp": now + 3600,
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        return jwt.encode(claims, self.private_pem, algorithm="RS256", headers={"kid": kid or self.kid})


@pytest.fixture(scope="session")
def google_tokens() -> GoogleTokenFactory:
    return GoogleTokenFactory(settings.GOOGLE_CLIENT_ID)


@pytest.fixture
def google_verifier(google_tokens) -> GoogleTokenVerifier:
    return GoogleTokenVerifier(settings.GOOGLE_CLIENT_ID, GoogleKeyCache(fetcher=google_tokens.fetch))


@pytest.fixture
def auth_service(google_verifier) -> AuthService:
    return AuthService(
        hasher=get_password_hasher(),
        jwt_service=get_jwt_service(),
        refresh_tokens=get_refresh_token_service(),
        google_verifier=google_verifier,
    )


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Creates a fresh, empty database for each test.
    Uses SYNC SQLAlchemy to match the service layer.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def registered_user(session) -> User:
    """A password account: ann@example.com / TEST_PASSWORD."""
    user = User(
        email="ann@example.com",
        name="Ann",
        hashed_password=get_password_hasher().hash(TEST_PASSWORD),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
async def client(session: Session, google_verifier):
    """
    Yields an HTTP client that talks to the app using the test database
    and the test Google key pair.
    """
    def override_get_db():
        try:
            yield session
        finally:
            pass  # Session cleanup handled by session fixture

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_google_verifier] = lambda: google_verifier

    # Limits are per client IP and every test comes from the same one
    limiter.reset()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(registered_user) -> dict:
    """Bearer header for registered_user, without going through /auth/login."""
    token = get_jwt_service().generate_access_token(registered_user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_user(session) -> User:
    """A second password account: bob@example.com / TEST_PASSWORD."""
    user = User(
        email="bob@example.com",
        name="Bob",
        hashed_password=get_password_hasher().hash(TEST_PASSWORD),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user
