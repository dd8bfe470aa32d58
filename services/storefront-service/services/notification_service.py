"""Order confirmation emails sent through the Resend API."""
import logging
from pathlib import Path
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import RESEND_API_KEY, RESEND_API_URL, SMTP_FROM, STORE_NAME
from models import Order
from monitoring import confirmation_emails_counter

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


def format_brl(value: float) -> str:
    """Format an amount as Brazilian reais, e.g. ``R$ 1.234,56``."""
    formatted = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"R$ {formatted}"


templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"])
)
templates.filters["brl"] = format_brl


class OrderConfirmationMailer:
    """Renders and sends the order confirmation email."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: Optional[str] = RESEND_API_KEY,
        sender: str = SMTP_FROM,
        store_name: str = STORE_NAME,
        api_url: str = RESEND_API_URL
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.sender = sender
        self.store_name = store_name
        self.api_url = api_url.rstrip("/")

    def subject(self, order: Order) -> str:
        return f"Pedido Confirmado - {self.store_name} #{order.id[:8]}"

    def render(self, order: Order) -> str:
        """Render the email body with the order's items, total and address."""
        return templates.get_template("order_confirmation.html").render(
            customer_name=order.user.full_name or order.user.email,
            short_id=order.id[:8],
            items=[
                {
                    "name": item.product.name if item.product else item.product_id,
                    "quantity": item.quantity,
                    "price": item.unit_price
                }
                for item in order.items
            ],
            total=order.total,
            address=order.address,
            store_name=self.store_name
        )

    async def send_order_confirmation(self, order: Order) -> None:
        """
        Send the confirmation email for a paid order.

        Raises:
            RuntimeError: If the email provider is not configured
            httpx.HTTPError: If the provider rejects the request
        """
        if not self.api_key:
            raise RuntimeError("Resend API key not configured")

        try:
            response = await self.http_client.post(
                f"{self.api_url}/emails",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.sender,
                    "to": [order.user.email],
                    "subject": self.subject(order),
                    "html": self.render(order)
                }
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            confirmation_emails_counter.add(1, {"status": "failed"})
            logger.error("Failed to send order confirmation", extra={
                "order_id": order.id,
                "error": str(e)
            })
            raise

        confirmation_emails_counter.add(1, {"status": "sent"})
        logger.info("Order confirmation sent", extra={
            "order_id": order.id,
            "user_id": order.user_id
        })
