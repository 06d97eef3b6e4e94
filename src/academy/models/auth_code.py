"""One-time login code model."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field

from academy.models.base import BaseModel


class AuthCode(BaseModel, table=True):
    """Six digit code emailed to a user to sign in.

    Rows are never deleted on use; they are marked used so the history stays
    available until expired rows are pruned.
    """

    __tablename__ = "auth_codes"

    email: str = Field(index=True, max_length=255)
    code: str = Field(min_length=6, max_length=6, description="Six ASCII digits")
    expires_at: datetime = Field(
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        description="Code expiration time",
    )
    used: bool = Field(default=False, nullable=False)
