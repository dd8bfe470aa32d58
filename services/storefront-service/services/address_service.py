"""Shipping address management."""
import logging
from typing import List, Optional

from opentelemetry import trace
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Address
from schemas import AddressCreate

logger = logging.getLogger(__name__)


class AddressService:
    """Lists, creates and selects a user's shipping addresses."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def list_addresses(self, db: Session, user_id: str) -> List[Address]:
        """
        Get a user's addresses, newest first.

        A database error is logged and reported as an empty list.
        """
        with self.tracer.start_as_current_span("db.query.get_addresses") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "addresses")
            db_span.set_attribute("user.id", user_id)

            try:
                addresses = db.query(Address).filter(
                    Address.user_id == user_id
                ).order_by(Address.created_at.desc()).all()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error("Failed to fetch addresses", extra={
                    "user_id": user_id,
                    "error": str(e)
                })
                return []

            db_span.set_attribute("db.rows_returned", len(addresses))
            return addresses

    @staticmethod
    def choose_address(
        addresses: List[Address],
        selected_id: Optional[str] = None
    ) -> Optional[Address]:
        """Pick the pre-selected address, else the default one, else the newest."""
        if not addresses:
            return None
        if selected_id:
            for address in addresses:
                if address.id == selected_id:
                    return address
        return next((address for address in addresses if address.is_default), addresses[0])

    def get_user_address(self, db: Session, user_id: str, address_id: str) -> Optional[Address]:
        return db.query(Address).filter(
            Address.id == address_id,
            Address.user_id == user_id
        ).first()

    def create_address(self, db: Session, user_id: str, data: AddressCreate) -> Address:
        """Insert a new address for the user."""
        with self.tracer.start_as_current_span("db.query.insert_address") as db_span:
            db_span.set_attribute("db.operation", "INSERT")
            db_span.set_attribute("db.table", "addresses")
            db_span.set_attribute("user.id", user_id)

            address = Address(user_id=user_id, **data.model_dump())
            db.add(address)
            db.commit()
            db.refresh(address)

        logger.info("Created address", extra={
            "user_id": user_id,
            "address_id": address.id,
            "is_default": address.is_default
        })
        return address
