"""Payment provider webhooks."""
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import httpx

import config
from database import get_db
from dependencies import get_order_service
from monitoring import auth_failures_counter
from schemas import PixWebhookEvent
from services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


def signature_matches(signature: Optional[str], secret: Optional[str]) -> bool:
    """Constant-time comparison of the provider's header against the shared secret."""
    if not signature or not secret:
        return False
    return hmac.compare_digest(signature.encode(), secret.encode())


@router.post("/pix")
async def pix_webhook(
    event: PixWebhookEvent,
    x_efi_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    """Apply a PIX payment status notification to its order."""
    if not signature_matches(x_efi_signature, config.WEBHOOK_SECRET):
        auth_failures_counter.add(1, {"reason": "invalid_webhook_signature"})
        logger.warning("Rejected PIX webhook: invalid signature", extra={
            "payment_id": event.payment_id
        })
        return JSONResponse(status_code=401, content={"error": "Invalid webhook signature"})

    try:
        await order_service.apply_payment_event(db, event.payment_id, event.status)
    except (RuntimeError, LookupError, httpx.HTTPError, SQLAlchemyError) as e:
        logger.error("Error processing PIX webhook", extra={
            "payment_id": event.payment_id,
            "status": event.status,
            "error": str(e)
        })
        return JSONResponse(status_code=500, content={"error": "Failed to process webhook"})

    return {"success": True}
