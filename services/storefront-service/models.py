"""Database models for the storefront service."""
import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Float, Integer, Boolean, DateTime, Date, Text, JSON, ForeignKey
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered")
PRODUCT_STATUSES = ("draft", "published", "out_of_stock")


def new_id() -> str:
    return str(uuid.uuid4())


class UserProfile(Base):
    """Customer or admin account."""
    __tablename__ = "user_profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String)
    password_hash = Column(String, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AuthSession(Base):
    """Bearer token issued at login or registration."""
    __tablename__ = "auth_sessions"

    token = Column(String, primary_key=True)
    user_id = Column(String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("UserProfile")


class Address(Base):
    """Shipping address."""
    __tablename__ = "addresses"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), index=True)
    street = Column(String, nullable=False)
    number = Column(String, nullable=False)
    complement = Column(String)
    neighborhood = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String(2), nullable=False)
    postal_code = Column(String, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Product(Base):
    """Product model."""
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, index=True, nullable=False)
    description = Column(Text)
    price = Column(Float, nullable=False)
    images = Column(JSON, default=list)
    status = Column(String, default="draft", nullable=False)
    stock_quantity = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Coupon(Base):
    """Discount coupon. Usage limits and validity windows are stored, not enforced."""
    __tablename__ = "coupons"

    id = Column(String(36), primary_key=True, default=new_id)
    code = Column(String, unique=True, index=True, nullable=False)
    discount_percentage = Column(Float)
    discount_fixed = Column(Float)
    min_purchase_amount = Column(Float)
    max_uses = Column(Integer)
    times_used = Column(Integer, default=0, nullable=False)
    starts_at = Column(DateTime)
    expires_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Order(Base):
    """Order model."""
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("user_profiles.id"), index=True)
    address_id = Column(String(36), ForeignKey("addresses.id"))
    status = Column(String, default="pending", nullable=False)
    coupon_id = Column(String(36), ForeignKey("coupons.id"))
    subtotal = Column(Float, nullable=False)
    discount = Column(Float, default=0.0, nullable=False)
    total = Column(Float, nullable=False)
    payment_intent_id = Column(String, index=True)
    payment_status = Column(String)
    expected_delivery = Column(Date)
    tracking_code = Column(String)
    confirmation_sent_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("UserProfile")
    address = relationship("Address")
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.created_at")


class OrderItem(Base):
    """Line item, snapshotted from the cart when the order is placed."""
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    product_id = Column(String(36), ForeignKey("products.id"))
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
