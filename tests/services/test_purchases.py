"""Purchase recording tests."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from academy.models import AuthCode, Purchase, PurchaseStatus, utcnow
from academy.services.purchases import CheckoutCompleted, PurchaseService, RecordStatus
from tests.helpers import aware, checkout_event


async def _purchase_count(session: AsyncSession) -> int:
    result = await session.execute(select(Purchase))
    return len(result.scalars().all())


class TestCheckoutCompleted:
    def test_prefers_customer_details_email(self):
        event = CheckoutCompleted.from_stripe_object(
            {
                "id": "cs_1",
                "customer_details": {"email": " Buyer@Example.com "},
                "customer_email": "other@example.com",
            }
        )
        assert event.email == "buyer@example.com"

    def test_falls_back_to_customer_email(self):
        event = CheckoutCompleted.from_stripe_object(
            {"id": "cs_1", "customer_details": None, "customer_email": "Other@example.com"}
        )
        assert event.email == "other@example.com"

    def test_missing_fields(self):
        event = CheckoutCompleted.from_stripe_object({"id": "cs_1"})
        assert event.external_session_id == "cs_1"
        assert event.email is None
        assert event.course_slug is None
        assert event.amount is None
        assert event.currency is None
        assert event.customer_id is None

    def test_reads_metadata_and_amounts(self):
        event = CheckoutCompleted.from_stripe_object(
            checkout_event("cs_9")["data"]["object"]
        )
        assert event.course_slug == "openclaw-beginner-course"
        assert event.amount == 9900
        assert event.currency == "eur"
        assert event.customer_id == "cus_123"


class TestRecordCompletedCheckout:
    async def test_records_purchase(self, purchase_service: PurchaseService, session: AsyncSession):
        outcome = await purchase_service.record_completed_checkout(
            CheckoutCompleted(
                external_session_id="sess_1",
                email="b@x.com",
                course_slug="openclaw-beginner-course",
            )
        )

        assert outcome.status == RecordStatus.RECORDED
        assert outcome.purchase_id

        result = await session.execute(select(Purchase).where(Purchase.external_session_id == "sess_1"))
        purchase = result.scalar_one()
        assert purchase.email == "b@x.com"
        assert purchase.course_slug == "openclaw-beginner-course"
        assert purchase.status == PurchaseStatus.COMPLETED

    async def test_applies_defaults(self, purchase_service: PurchaseService, session: AsyncSession):
        await purchase_service.record_completed_checkout(
            CheckoutCompleted(external_session_id="sess_1", email="b@x.com")
        )

        result = await session.execute(select(Purchase))
        purchase = result.scalar_one()
        assert purchase.course_slug == "openclaw-beginner-course"
        assert purchase.amount == 9900
        assert purchase.currency == "eur"
        assert purchase.external_customer_id is None

    async def test_zero_amount_is_kept(self, purchase_service: PurchaseService, session: AsyncSession):
        await purchase_service.record_completed_checkout(
            CheckoutCompleted(external_session_id="sess_1", email="b@x.com", amount=0)
        )

        result = await session.execute(select(Purchase))
        assert result.scalar_one().amount == 0

    async def test_sends_welcome_code(
        self, purchase_service: PurchaseService, session: AsyncSession, email_backend
    ):
        before = utcnow()
        await purchase_service.record_completed_checkout(
            CheckoutCompleted(external_session_id="sess_1", email="b@x.com")
        )

        result = await session.execute(select(AuthCode).where(AuthCode.email == "b@x.com"))
        auth_code = result.scalar_one()
        assert auth_code.used is False
        assert aware(auth_code.expires_at) >= before + timedelta(hours=24)

        assert len(email_backend.sent) == 1
        message = email_backend.sent[0]
        assert message["to"] == "b@x.com"
        assert message["subject"] == "Welcome to the OpenClaw Beginner Course!"
        assert auth_code.code in message["text"]
        assert "24 hours" in message["text"]

    async def test_welcome_code_signs_in(self, purchase_service: PurchaseService, session: AsyncSession):
        await purchase_service.record_completed_checkout(
            CheckoutCompleted(external_session_id="sess_1", email="b@x.com")
        )
        result = await session.execute(select(AuthCode).where(AuthCode.email == "b@x.com"))
        auth_code = result.scalar_one()

        issued = await purchase_service.auth.verify_code("b@x.com", auth_code.code)

        assert issued.email == "b@x.com"

    async def test_duplicate_delivery_is_noop(
        self, purchase_service: PurchaseService, session: AsyncSession, email_backend
    ):
        event = CheckoutCompleted(
            external_session_id="sess_1",
            email="b@x.com",
            course_slug="openclaw-beginner-course",
        )

        first = await purchase_service.record_completed_checkout(event)
        second = await purchase_service.record_completed_checkout(event)

        assert first.status == RecordStatus.RECORDED
        assert second.status == RecordStatus.ALREADY_RECORDED
        assert second.purchase_id == first.purchase_id
        assert await _purchase_count(session) == 1
        assert len(email_backend.sent) == 1

        result = await session.execute(select(AuthCode).where(AuthCode.email == "b@x.com"))
        assert len(result.scalars().all()) == 1

    async def test_insert_conflict_is_already_recorded(
        self, purchase_service: PurchaseService, session: AsyncSession, email_backend
    ):
        event = CheckoutCompleted(external_session_id="sess_1", email="b@x.com")
        await purchase_service.record_completed_checkout(event)

        # Simulate a lost race: the lookup misses but the insert conflicts
        purchase_service.purchases.get_by_external_session_id = AsyncMock(return_value=None)  # type: ignore[method-assign]
        outcome = await purchase_service.record_completed_checkout(event)

        assert outcome.status == RecordStatus.ALREADY_RECORDED
        assert await _purchase_count(session) == 1
        assert len(email_backend.sent) == 1

    @pytest.mark.parametrize("email", [None, "", "   ", "not-an-email"])
    async def test_missing_email_is_rejected(
        self, purchase_service: PurchaseService, session: AsyncSession, email_backend, email
    ):
        outcome = await purchase_service.record_completed_checkout(
            CheckoutCompleted(external_session_id="sess_2", email=email)
        )

        assert outcome.status == RecordStatus.REJECTED
        assert outcome.reason == "missing_email"
        assert await _purchase_count(session) == 0
        assert email_backend.sent == []

    async def test_welcome_email_failure_keeps_purchase(
        self, purchase_service: PurchaseService, session: AsyncSession, email_backend
    ):
        email_backend.succeed = False

        outcome = await purchase_service.record_completed_checkout(
            CheckoutCompleted(external_session_id="sess_1", email="b@x.com")
        )

        assert outcome.status == RecordStatus.RECORDED
        assert await _purchase_count(session) == 1


class TestHandleEvent:
    async def test_checkout_completed(self, purchase_service: PurchaseService):
        outcome = await purchase_service.handle_event(checkout_event("cs_1"))

        assert outcome is not None
        assert outcome.status == RecordStatus.RECORDED
        assert outcome.external_session_id == "cs_1"

    async def test_unknown_event_type_is_ignored(
        self, purchase_service: PurchaseService, session: AsyncSession
    ):
        outcome = await purchase_service.handle_event(
            {"id": "evt_1", "type": "payment_intent.created", "data": {"object": {"id": "pi_1"}}}
        )

        assert outcome is None
        assert await _purchase_count(session) == 0

    async def test_missing_session_id(self, purchase_service: PurchaseService):
        outcome = await purchase_service.handle_event(
            {"id": "evt_1", "type": "checkout.session.completed", "data": {"object": {}}}
        )

        assert outcome is not None
        assert outcome.status == RecordStatus.REJECTED

    async def test_wrongly_typed_field_is_rejected(
        self, purchase_service: PurchaseService, session: AsyncSession
    ):
        outcome = await purchase_service.handle_event(checkout_event("cs_2", amount_total="lots"))

        assert outcome is not None
        assert outcome.status == RecordStatus.REJECTED
        assert outcome.reason == "malformed_event"
        assert outcome.external_session_id == "cs_2"
        assert await _purchase_count(session) == 0

    def test_expanded_customer_object(self):
        event = CheckoutCompleted.from_stripe_object(
            checkout_event("cs_3", customer={"id": "cus_9", "object": "customer"})["data"]["object"]
        )
        assert event.customer_id == "cus_9"


class TestManualPurchase:
    async def test_record_manual_purchase(self, purchase_service: PurchaseService, email_backend):
        outcome = await purchase_service.record_manual_purchase("B@x.com")

        assert outcome.status == RecordStatus.RECORDED
        assert outcome.external_session_id.startswith("manual_")
        assert email_backend.sent[0]["to"] == "b@x.com"

    async def test_manual_then_redelivered_event(self, purchase_service: PurchaseService):
        await purchase_service.record_manual_purchase("b@x.com", external_session_id="cs_1")

        outcome = await purchase_service.handle_event(checkout_event("cs_1", email="b@x.com"))

        assert outcome is not None
        assert outcome.status == RecordStatus.ALREADY_RECORDED
