"""SQLModel database models."""

from academy.models.auth_code import AuthCode
from academy.models.base import BaseModel, CreatedAtMixin, generate_nanoid, utcnow
from academy.models.progress import UserProgress
from academy.models.purchase import Purchase, PurchaseStatus
from academy.models.session import UserSession

__all__ = [
    "AuthCode",
    "BaseModel",
    "CreatedAtMixin",
    "Purchase",
    "PurchaseStatus",
    "UserProgress",
    "UserSession",
    "generate_nanoid",
    "utcnow",
]
