"""Course purchase model."""

from enum import Enum

from sqlmodel import Field

from academy.models.base import BaseModel


class PurchaseStatus(str, Enum):
    """Purchase lifecycle status."""

    COMPLETED = "completed"
    REFUNDED = "refunded"


class Purchase(BaseModel, table=True):
    """A completed checkout, recorded once per external checkout session."""

    __tablename__ = "purchases"

    email: str = Field(index=True, max_length=255)
    external_session_id: str = Field(
        unique=True,
        index=True,
        max_length=255,
        description="Payment processor checkout session ID",
    )
    external_customer_id: str | None = Field(default=None, max_length=255)
    amount: int = Field(description="Amount in minor currency units")
    currency: str = Field(max_length=10)
    course_slug: str = Field(index=True, max_length=255)
    status: PurchaseStatus = Field(default=PurchaseStatus.COMPLETED)
