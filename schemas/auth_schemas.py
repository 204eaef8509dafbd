from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel
import re


class CamelModel(BaseModel):
    """Accepts and emits camelCase JSON keys; snake_case still works in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _normalize_email(value: str) -> str:
    return value.strip().lower()


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str
    name: str = Field(max_length=255)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value):
        """
        Password must be at least 8 characters and contain:
        - At least one letter
        - At least one digit
        """
        if len(value) < 8:
            raise ValueError('Password must be at least 8 characters')

        if not re.search(r'[A-Za-z]', value):
            raise ValueError('Password must contain at least one letter')

        if not re.search(r'\d', value):
            raise ValueError('Password must contain at least one digit')

        return value

    @field_validator('name')
    @classmethod
    def validate_name(cls, value):
        if not value.strip():
            raise ValueError('Name cannot be empty')
        return value.strip()


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class GoogleLoginRequest(CamelModel):
    id_token: str

    @field_validator('id_token')
    @classmethod
    def validate_token(cls, value):
        if not value or not value.strip():
            raise ValueError('ID token cannot be empty')
        return value.strip()


class RefreshTokenRequest(CamelModel):
    """Body of both /auth/refresh and /auth/logout."""
    refresh_token: str

    @field_validator('refresh_token')
    @classmethod
    def validate_token(cls, value):
        if not value or not value.strip():
            raise ValueError('Refresh token cannot be empty')
        return value.strip()


class AuthResult(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
