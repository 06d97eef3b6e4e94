"""Login session model."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field

from academy.models.base import BaseModel


class UserSession(BaseModel, table=True):
    """Bearer session created after a successful code verification."""

    __tablename__ = "sessions"

    email: str = Field(index=True, max_length=255)
    token: str = Field(unique=True, index=True, max_length=128, description="Opaque bearer token")
    expires_at: datetime = Field(
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        description="Session expiration time",
    )
