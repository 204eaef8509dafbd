from datetime import datetime
from pydantic import Field, field_validator
from schemas.auth_schemas import CamelModel


class UserResponse(CamelModel):
    id: int
    email: str
    name: str
    google_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            google_id=user.google_id,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UpdateProfileRequest(CamelModel):
    name: str = Field(max_length=255)

    @field_validator('name')
    @classmethod
    def validate_name(cls, value):
        if not value.strip():
            raise ValueError('Name cannot be empty')
        return value.strip()
