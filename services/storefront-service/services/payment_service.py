"""PIX charge client for the EFI Bank API."""
import logging
import time
from typing import Dict, Optional

import httpx
from sqlalchemy.orm import Session

from config import (
    APP_URL,
    EFI_CLIENT_ID,
    EFI_CLIENT_SECRET,
    EFI_SANDBOX,
    PIX_CHARGE_EXPIRATION_SECONDS
)
from models import Order
from monitoring import pix_charges_counter, pix_charge_duration_histogram

logger = logging.getLogger(__name__)


class PixChargeService:
    """Mints PIX charges and records the charge reference on the order."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        client_id: Optional[str] = EFI_CLIENT_ID,
        client_secret: Optional[str] = EFI_CLIENT_SECRET,
        sandbox: bool = EFI_SANDBOX,
        app_url: str = APP_URL
    ):
        """
        Initialize PIX charge service.

        Args:
            http_client: Async HTTP client
            client_id: EFI Bank client id
            client_secret: EFI Bank client secret
            sandbox: Use the sandbox API host
            app_url: Public base URL of this service (for the webhook callback)
        """
        self.http_client = http_client
        self.client_id = client_id
        self.client_secret = client_secret
        self.sandbox = sandbox
        self.app_url = app_url.rstrip("/")

    @property
    def api_url(self) -> str:
        return f"https://{'sandbox.' if self.sandbox else ''}api.efi.com.br"

    @property
    def webhook_url(self) -> str:
        return f"{self.app_url}/api/webhooks/pix"

    async def create_charge(
        self,
        db: Session,
        order_id: str,
        amount: float,
        description: str,
        user_id: Optional[str] = None
    ) -> Dict[str, str]:
        """
        Create a PIX charge for an order.

        Each call mints a new charge; there is no idempotency key.

        Args:
            db: Database session
            order_id: Order identifier
            amount: Charge amount in BRL
            description: Text shown to the payer
            user_id: Owner the order must belong to, when given

        Returns:
            ``{"qrCodeText": ..., "copiaECola": ...}``

        Raises:
            RuntimeError: If credentials are missing or the response is malformed
            LookupError: If the order does not exist or belongs to someone else
            httpx.HTTPError: If the provider call fails
        """
        if not self.client_id or not self.client_secret:
            raise RuntimeError("EFI Bank credentials not configured")

        query = db.query(Order).filter(Order.id == order_id)
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        order = query.first()
        if order is None:
            raise LookupError(f"Order {order_id} not found")

        # HTTPXClientInstrumentor already creates spans for HTTP calls
        start_time = time.time()
        try:
            response = await self.http_client.post(
                f"{self.api_url}/v1/payments/pix",
                auth=(self.client_id, self.client_secret),
                json={
                    "amount": amount,
                    "description": description,
                    "expiration": PIX_CHARGE_EXPIRATION_SECONDS,
                    "webhook_url": self.webhook_url
                }
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            pix_charges_counter.add(1, {"status": "failed"})
            logger.error("PIX provider request failed", extra={
                "order_id": order_id,
                "amount": amount,
                "error": str(e)
            })
            raise
        finally:
            pix_charge_duration_histogram.record(time.time() - start_time, {"sandbox": str(self.sandbox)})

        try:
            payment = response.json()
            charge = {
                "id": payment["id"],
                "status": payment.get("status"),
                "qrCodeText": payment["qrcode_text"],
                "copiaECola": payment["qrcode"]
            }
        except (KeyError, TypeError, ValueError) as e:
            pix_charges_counter.add(1, {"status": "failed"})
            raise RuntimeError("Malformed PIX provider response") from e

        order.payment_intent_id = charge["id"]
        order.payment_status = charge["status"]
        db.commit()

        pix_charges_counter.add(1, {"status": "created"})
        logger.info("PIX charge created", extra={
            "order_id": order_id,
            "payment_id": charge["id"],
            "amount": amount
        })

        return {
            "qrCodeText": charge["qrCodeText"],
            "copiaECola": charge["copiaECola"]
        }
