"""Payment processor webhook endpoint."""

import json
import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from academy.api.deps import PurchaseServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(request: Request, purchases: PurchaseServiceDep):
    """
    Receive payment events.

    Every event that was understood, including duplicates, unknown types and
    events that can never be completed, is acknowledged with 200 so the
    processor stops retrying. Only storage failures return 500.
    """
    body = await request.body()
    try:
        payload = json.loads(body)
    except ValueError:
        logger.warning("Webhook body is not valid JSON")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid payload"})
    if not isinstance(payload, dict):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid payload"})

    try:
        outcome = await purchases.handle_event(payload)
    except SQLAlchemyError:
        logger.exception(f"Webhook error for event {payload.get('id')}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Webhook processing failed"},
        )

    response: dict[str, object] = {"received": True}
    if outcome is not None:
        response["status"] = outcome.status.value
        if outcome.reason:
            response["reason"] = outcome.reason
    return response
