from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator, model_validator

class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", extra="ignore")

    ENV: str = "development"

    DATABASE_URL: str = "sqlite:///./email_client.db"
    API_PREFIX: str = "/api/v1"

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "email-client-ai"
    JWT_CLOCK_SKEW_SECONDS: int = 5
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    # Refresh tokens
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    REFRESH_TOKEN_MAX_PER_USER: int = 5
    REFRESH_TOKEN_ROTATION_ENABLED: bool = True
    REFRESH_TOKEN_CLEANUP_INTERVAL_MINUTES: int = 60

    BCRYPT_ROUNDS: int = 12

    # Google sign-in
    GOOGLE_CLIENT_ID: str
    GOOGLE_CERTS_URL: str = "https://www.googleapis.com/oauth2/v3/certs"
    GOOGLE_REQUIRE_VERIFIED_EMAIL: bool = True

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    RATE_LIMIT_ENABLED: bool = True

    @field_validator("ALGORITHM")
    @classmethod
    def validate_algorithm(cls, value):
        # Tokens are signed with a shared secret, so only HMAC algorithms make sense
        if value not in ("HS256", "HS384", "HS512"):
            raise ValueError("ALGORITHM must be one of HS256, HS384, HS512")
        return value

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def validate_rounds(cls, value):
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return value

    @field_validator("REFRESH_TOKEN_MAX_PER_USER", "ACCESS_TOKEN_EXPIRE_MINUTES", "REFRESH_TOKEN_EXPIRE_DAYS")
    @classmethod
    def validate_positive(cls, value):
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("GOOGLE_CLIENT_ID")
    @classmethod
    def validate_client_id(cls, value):
        if not value.strip():
            raise ValueError("GOOGLE_CLIENT_ID must not be empty")
        return value.strip()

    @model_validator(mode="after")
    def validate_secret_strength(self):
        # HS256 needs at least 256 bits of key material in production
        if self.ENV == "production" and len(self.SECRET_KEY.encode()) < 32:
            raise ValueError("SECRET_KEY must be at least 32 bytes in production")
        return self


settings = Settings()
