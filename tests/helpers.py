"""Shared test helpers."""

from datetime import UTC, datetime


def aware(value: datetime) -> datetime:
    """SQLite returns naive datetimes; treat them as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def checkout_event(
    session_id: str = "cs_test_1",
    email: str | None = "buyer@example.com",
    **overrides: object,
) -> dict:
    """Build a checkout.session.completed payload."""
    obj: dict[str, object] = {
        "id": session_id,
        "object": "checkout.session",
        "customer_details": {"email": email} if email else None,
        "customer_email": None,
        "customer": "cus_123",
        "amount_total": 9900,
        "currency": "eur",
        "metadata": {"course_slug": "openclaw-beginner-course"},
    }
    obj.update(overrides)
    return {
        "id": f"evt_{session_id}",
        "type": "checkout.session.completed",
        "data": {"object": obj},
    }
