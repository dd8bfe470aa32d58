"""Checkout orchestration: order, line items, PIX charge."""
import logging
from typing import Any, Dict, Sequence

import segno
from opentelemetry import trace
from sqlalchemy.orm import Session

from models import Order, OrderItem, UserProfile
from monitoring import checkout_counter, checkout_amount_histogram
from services.address_service import AddressService
from services.cart_service import CartItem
from services.payment_service import PixChargeService

logger = logging.getLogger(__name__)


class CheckoutPreconditionError(Exception):
    """Raised when the shopper cannot check out yet (nothing selected, bad address)."""


def render_qr_data_uri(text: str) -> str:
    """Render a PIX payment string as a PNG QR code data URI."""
    return segno.make_qr(text, error="m").png_data_uri(scale=6, border=2)


class CheckoutService:
    """Turns the selected cart items into a pending order with a PIX charge."""

    def __init__(
        self,
        pix_service: PixChargeService,
        address_service: AddressService
    ):
        """
        Initialize checkout service.

        Args:
            pix_service: PIX charge client
            address_service: Address lookups
        """
        self.pix_service = pix_service
        self.address_service = address_service
        self.tracer = trace.get_tracer(__name__)

    async def place_order(
        self,
        db: Session,
        user: UserProfile,
        address_id: str,
        selected_items: Sequence[CartItem]
    ) -> Dict[str, Any]:
        """
        Place an order for the selected cart items.

        Steps run in order and are committed one by one: the order row, its
        line items, then the PIX charge. A failure stops the remaining steps
        and leaves what was already written in place, so the order stays
        pending without a charge reference.

        Args:
            db: Database session
            user: Signed-in shopper
            address_id: Chosen shipping address
            selected_items: Cart items flagged for checkout

        Returns:
            Order id, total and the PIX payment instructions

        Raises:
            CheckoutPreconditionError: If nothing is selected or the address is not the user's
            Exception: Whatever a later step raised (provider, database, QR render)
        """
        if not selected_items:
            raise CheckoutPreconditionError("No cart items selected for checkout")

        address = self.address_service.get_user_address(db, user.id, address_id)
        if address is None:
            raise CheckoutPreconditionError("Please select a delivery address")

        total = round(sum(item.line_total for item in selected_items), 2)

        span = trace.get_current_span()
        span.set_attribute("checkout.item_count", len(selected_items))
        span.set_attribute("checkout.total", total)

        # Step 1: order row
        with self.tracer.start_as_current_span("db.query.insert_order") as db_span:
            db_span.set_attribute("db.operation", "INSERT")
            db_span.set_attribute("db.table", "orders")
            db_span.set_attribute("user.id", user.id)

            order = Order(
                user_id=user.id,
                address_id=address.id,
                status="pending",
                subtotal=total,
                discount=0.0,
                total=total
            )
            db.add(order)
            db.commit()
            order_id = order.id
            db_span.set_attribute("order.id", order_id)

        try:
            # Step 2: line items, snapshotted from the cart
            with self.tracer.start_as_current_span("db.query.insert_order_items") as db_span:
                db_span.set_attribute("db.operation", "INSERT")
                db_span.set_attribute("db.table", "order_items")
                db_span.set_attribute("order.id", order_id)

                db.add_all([
                    OrderItem(
                        order_id=order_id,
                        product_id=item.id,
                        quantity=item.quantity,
                        unit_price=item.price,
                        total_price=round(item.line_total, 2)
                    )
                    for item in selected_items
                ])
                db.commit()

            # Step 3: PIX charge
            charge = await self.pix_service.create_charge(
                db=db,
                order_id=order_id,
                amount=total,
                description=f"Pedido #{order_id[:8]}",
                user_id=user.id
            )

            # Step 4: scannable code
            qr_code_image = render_qr_data_uri(charge["qrCodeText"])
        except Exception as e:
            db.rollback()
            checkout_counter.add(1, {"status": "failed"})
            logger.error("Checkout failed; order left pending", extra={
                "user_id": user.id,
                "order_id": order_id,
                "amount": total,
                "error": str(e)
            })
            raise

        checkout_counter.add(1, {"status": "completed"})
        checkout_amount_histogram.record(total, {"item_count": str(len(selected_items))})

        logger.info("Checkout completed", extra={
            "user_id": user.id,
            "order_id": order_id,
            "amount": total,
            "item_count": len(selected_items)
        })

        return {
            "order_id": order_id,
            "total": total,
            "qr_code_text": charge["qrCodeText"],
            "copia_e_cola": charge["copiaECola"],
            "qr_code_image": qr_code_image
        }
