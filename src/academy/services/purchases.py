"""Idempotent purchase recording from payment processor events."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator
from pydantic import ValidationError as PayloadError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import Settings, settings
from academy.models import Purchase, PurchaseStatus, generate_nanoid
from academy.repositories import DuplicatePurchase, PurchaseRepository
from academy.services.auth import AuthService, ValidationError, normalize_email

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


class RecordStatus(str, Enum):
    """Outcome of recording a completed checkout."""

    RECORDED = "recorded"
    ALREADY_RECORDED = "already_recorded"
    REJECTED = "rejected"


@dataclass
class RecordOutcome:
    status: RecordStatus
    external_session_id: str
    reason: str | None = None
    purchase_id: str | None = None


class CheckoutCompleted(BaseModel):
    """Fields of a completed checkout that the service acts on."""

    external_session_id: str
    email: str | None = None
    course_slug: str | None = None
    amount: int | None = None
    currency: str | None = None
    customer_id: str | None = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str | None) -> str | None:
        return value.strip().lower() if value else None

    @classmethod
    def from_stripe_object(cls, obj: dict[str, Any]) -> "CheckoutCompleted":
        """Parse a checkout session object (the event's ``data.object``).

        The buyer's email is taken from ``customer_details.email`` and falls
        back to ``customer_email``. ``customer`` may be an id or an expanded
        customer object.

        Raises:
            pydantic.ValidationError: a field has the wrong type
        """
        details = _as_dict(obj.get("customer_details"))
        metadata = _as_dict(obj.get("metadata"))
        customer = obj.get("customer")
        if isinstance(customer, dict):
            customer = customer.get("id")
        return cls(
            external_session_id=obj["id"],
            email=details.get("email") or obj.get("customer_email"),
            course_slug=metadata.get("course_slug"),
            amount=obj.get("amount_total"),
            currency=obj.get("currency"),
            customer_id=customer,
        )


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


class PurchaseService:
    """Records purchases exactly once per external checkout session."""

    def __init__(
        self,
        session: AsyncSession,
        auth: AuthService,
        config: Settings | None = None,
    ):
        self.session = session
        self.auth = auth
        self.config = config or settings
        self.purchases = PurchaseRepository(session)

    async def handle_event(self, payload: dict[str, Any]) -> RecordOutcome | None:
        """Dispatch a payment event by type. Unknown types are ignored."""
        event_type = payload.get("type")
        if event_type != CHECKOUT_COMPLETED:
            logger.info(f"Unhandled event type: {event_type}")
            return None

        data = payload.get("data")
        obj = data.get("object") if isinstance(data, dict) else None
        if not isinstance(obj, dict):
            logger.error(f"Checkout event {payload.get('id')} has no session object")
            return RecordOutcome(
                status=RecordStatus.REJECTED,
                external_session_id="",
                reason="malformed_event",
            )
        if not obj.get("id"):
            logger.error(f"Checkout event {payload.get('id')} has no session id")
            return RecordOutcome(
                status=RecordStatus.REJECTED,
                external_session_id="",
                reason="missing_session_id",
            )

        try:
            event = CheckoutCompleted.from_stripe_object(obj)
        except PayloadError as e:
            logger.error(f"Malformed checkout session {obj.get('id')!r}: {e}")
            return RecordOutcome(
                status=RecordStatus.REJECTED,
                external_session_id=str(obj.get("id")),
                reason="malformed_event",
            )
        return await self.record_completed_checkout(event)

    async def record_completed_checkout(self, event: CheckoutCompleted) -> RecordOutcome:
        """Record a completed checkout and send the buyer a welcome code.

        Duplicate deliveries, whether caught by the lookup or by the unique
        constraint on insert, return ALREADY_RECORDED without side effects.
        """
        session_id = event.external_session_id

        try:
            email = normalize_email(event.email)
        except ValidationError:
            logger.error(f"No email in checkout session: {session_id}")
            return RecordOutcome(
                status=RecordStatus.REJECTED,
                external_session_id=session_id,
                reason="missing_email",
            )

        existing = await self.purchases.get_by_external_session_id(session_id)
        if existing is not None:
            logger.info(f"Purchase already recorded for session: {session_id}")
            return RecordOutcome(
                status=RecordStatus.ALREADY_RECORDED,
                external_session_id=session_id,
                purchase_id=existing.id,
            )

        course_slug = event.course_slug or self.config.default_course_slug
        purchase = Purchase(
            email=email,
            external_session_id=session_id,
            external_customer_id=event.customer_id,
            amount=event.amount if event.amount is not None else self.config.default_price_amount,
            currency=event.currency or self.config.default_currency,
            course_slug=course_slug,
            status=PurchaseStatus.COMPLETED,
        )
        try:
            await self.purchases.add(purchase)
            await self.session.commit()
        except DuplicatePurchase:
            logger.info(f"Purchase already recorded for session: {session_id} (insert conflict)")
            return RecordOutcome(
                status=RecordStatus.ALREADY_RECORDED,
                external_session_id=session_id,
            )

        logger.info(f"Purchase recorded: {email} -> {course_slug}")

        await self.auth.issue_code(
            email,
            ttl=timedelta(hours=self.config.welcome_code_ttl_hours),
            welcome_course=course_slug,
        )

        return RecordOutcome(
            status=RecordStatus.RECORDED,
            external_session_id=session_id,
            purchase_id=purchase.id,
        )

    async def record_manual_purchase(
        self,
        email: str,
        course_slug: str | None = None,
        external_session_id: str | None = None,
    ) -> RecordOutcome:
        """Record a purchase by hand, e.g. for an event rejected for a missing email.

        Passing the original checkout session id keeps the operation
        idempotent with any later redelivery of the same event.
        """
        event = CheckoutCompleted(
            external_session_id=external_session_id or f"manual_{generate_nanoid()}",
            email=email.strip().lower(),
            course_slug=course_slug,
        )
        return await self.record_completed_checkout(event)
