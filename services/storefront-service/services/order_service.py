"""Order queries, status transitions and payment events."""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from opentelemetry import trace
from sqlalchemy.orm import Session, selectinload

from models import ORDER_STATUSES, Order, OrderItem
from monitoring import order_status_transitions_counter, webhook_events_counter
from services.notification_service import OrderConfirmationMailer

logger = logging.getLogger(__name__)


class OrderStatusTransitionError(Exception):
    """Raised when an order would move backwards in its lifecycle."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot change order status from {current} to {target}")
        self.current = current
        self.target = target


def can_transition(current: str, target: str) -> bool:
    """Orders only move forward: pending → processing → shipped → delivered."""
    return ORDER_STATUSES.index(target) >= ORDER_STATUSES.index(current)


def serialize_address(address) -> Optional[Dict[str, Any]]:
    if address is None:
        return None
    return {
        "id": address.id,
        "street": address.street,
        "number": address.number,
        "complement": address.complement,
        "neighborhood": address.neighborhood,
        "city": address.city,
        "state": address.state,
        "postal_code": address.postal_code,
        "is_default": address.is_default,
        "created_at": address.created_at
    }


def serialize_order(order: Order, admin: bool = False) -> Dict[str, Any]:
    data = {
        "id": order.id,
        "status": order.status,
        "subtotal": order.subtotal,
        "discount": order.discount,
        "total": order.total,
        "payment_status": order.payment_status,
        "tracking_code": order.tracking_code,
        "expected_delivery": order.expected_delivery,
        "created_at": order.created_at,
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "product_name": item.product.name if item.product else None,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "total_price": item.total_price
            }
            for item in order.items
        ]
    }
    if admin:
        data["customer_name"] = order.user.full_name if order.user else None
        data["address"] = serialize_address(order.address)
    return data


def _order_query(db: Session):
    return db.query(Order).options(
        selectinload(Order.items).selectinload(OrderItem.product),
        selectinload(Order.address),
        selectinload(Order.user)
    )


class OrderService:
    """Service for managing orders."""

    def __init__(self, mailer: Optional[OrderConfirmationMailer] = None):
        """
        Initialize order service.

        Args:
            mailer: Sends confirmation emails for paid orders
        """
        self.mailer = mailer
        self.tracer = trace.get_tracer(__name__)

    def get_user_orders(self, db: Session, user_id: str) -> List[Dict[str, Any]]:
        """
        Get all orders for a user, newest first.

        Args:
            db: Database session
            user_id: User identifier

        Returns:
            List of orders
        """
        with self.tracer.start_as_current_span("db.query.get_user_orders") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "orders")
            db_span.set_attribute("user.id", user_id)

            orders = _order_query(db).filter(
                Order.user_id == user_id
            ).order_by(Order.created_at.desc()).all()

            db_span.set_attribute("db.rows_returned", len(orders))

            return [serialize_order(order) for order in orders]

    def list_orders(self, db: Session) -> List[Dict[str, Any]]:
        """All orders with customer, address and items, newest first."""
        with self.tracer.start_as_current_span("db.query.list_orders") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "orders")

            orders = _order_query(db).order_by(Order.created_at.desc()).all()

            db_span.set_attribute("db.rows_returned", len(orders))

            return [serialize_order(order, admin=True) for order in orders]

    def update_status(
        self,
        db: Session,
        order_id: str,
        status: str,
        tracking_code: Optional[str] = None,
        expected_delivery: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Change an order's status from the admin panel.

        The tracking code is only stored when the order is marked shipped.

        Raises:
            LookupError: If the order does not exist
            OrderStatusTransitionError: If the change would move the order backwards
        """
        order = _order_query(db).filter(Order.id == order_id).first()
        if order is None:
            raise LookupError("Order not found")

        previous = order.status
        if not can_transition(previous, status):
            logger.warning("Rejected backward order status change", extra={
                "order_id": order_id,
                "from_status": previous,
                "to_status": status
            })
            raise OrderStatusTransitionError(previous, status)

        order.status = status
        if status == "shipped" and tracking_code:
            order.tracking_code = tracking_code
        if expected_delivery:
            order.expected_delivery = expected_delivery
        db.commit()
        db.refresh(order)

        order_status_transitions_counter.add(1, {
            "source": "admin",
            "from_status": previous,
            "to_status": status
        })
        logger.info("Order status updated", extra={
            "order_id": order_id,
            "from_status": previous,
            "to_status": status,
            "tracking_code": order.tracking_code
        })
        return serialize_order(order, admin=True)

    async def apply_payment_event(self, db: Session, payment_id: str, payment_status: str) -> Order:
        """
        Record a provider payment notification on its order.

        ``paid`` moves the order to processing, any other status to pending;
        a move that would go backwards only updates ``payment_status``. The
        confirmation email goes out on ``paid`` until one has been delivered;
        ``confirmation_sent_at`` is only set after the provider accepts it, so
        a retried notification re-sends a confirmation that failed.

        Raises:
            LookupError: If no order carries this charge id
            RuntimeError, httpx.HTTPError: If the confirmation email fails
        """
        webhook_events_counter.add(1, {"payment_status": payment_status})

        order = _order_query(db).filter(Order.payment_intent_id == payment_id).first()
        if order is None:
            raise LookupError(f"No order for payment {payment_id}")

        previous = order.status
        target = "processing" if payment_status == "paid" else "pending"

        order.payment_status = payment_status
        if can_transition(previous, target):
            order.status = target
        else:
            logger.warning("Payment event left order status unchanged", extra={
                "order_id": order.id,
                "order_status": previous,
                "payment_status": payment_status
            })
        db.commit()

        if order.status != previous:
            order_status_transitions_counter.add(1, {
                "source": "webhook",
                "from_status": previous,
                "to_status": order.status
            })
        logger.info("Applied payment event", extra={
            "order_id": order.id,
            "payment_id": payment_id,
            "payment_status": payment_status,
            "order_status": order.status
        })

        if payment_status == "paid" and order.confirmation_sent_at is None:
            await self.mailer.send_order_confirmation(order)
            order.confirmation_sent_at = datetime.utcnow()
            db.commit()

        return order
