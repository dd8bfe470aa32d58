"""Pydantic schemas for request/response validation."""
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

OrderStatus = Literal["pending", "processing", "shipped", "delivered"]
ProductStatus = Literal["draft", "published", "out_of_stock"]


# Authentication

class RegisterRequest(BaseModel):
    """Schema for account registration."""
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)


class LoginRequest(BaseModel):
    """Schema for login request."""
    email: str
    password: str


class TokenResponse(BaseModel):
    """Schema for login/register response."""
    token: str
    token_type: str = "bearer"
    user_id: str


class UserProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: Optional[str] = None
    is_admin: bool


# Products

class ProductCreate(BaseModel):
    """Schema for creating or updating a product."""
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(ge=0.01)
    images: List[str] = Field(min_length=1, max_length=5)
    status: ProductStatus
    stock_quantity: int = Field(ge=0)

    @field_validator("images")
    @classmethod
    def check_image_urls(cls, images: List[str]) -> List[str]:
        for url in images:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"Invalid image URL: {url}")
        return images


class ProductResponse(BaseModel):
    """Schema for product response."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    price: float
    images: List[str]
    status: ProductStatus
    stock_quantity: int
    created_at: datetime


# Cart

class AddToCartRequest(BaseModel):
    """Schema for add to cart request."""
    product_id: str


class UpdateQuantityRequest(BaseModel):
    quantity: int


class SelectAllRequest(BaseModel):
    selected: bool


class CartItemResponse(BaseModel):
    """Schema for cart item in response."""
    id: str
    name: str
    price: float
    images: List[str]
    stock_quantity: int
    quantity: int
    selected: bool
    line_total: float


class CartResponse(BaseModel):
    """Schema for cart response."""
    items: List[CartItemResponse]
    selected_count: int
    total: float
    selected_total: float


# Addresses

class AddressCreate(BaseModel):
    """Shipping address form. Every field but the complement is required."""
    street: str = Field(min_length=1)
    number: str = Field(min_length=1)
    complement: Optional[str] = None
    neighborhood: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=2, max_length=2)
    postal_code: str = Field(pattern=r"^\d{5}-?\d{3}$")
    is_default: bool = False


class AddressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    street: str
    number: str
    complement: Optional[str] = None
    neighborhood: str
    city: str
    state: str
    postal_code: str
    is_default: bool
    created_at: datetime


class AddressListResponse(BaseModel):
    addresses: List[AddressResponse]
    selected: Optional[AddressResponse] = None


# Checkout and payments

class CheckoutRequest(BaseModel):
    """Schema for checkout request."""
    address_id: str


class CheckoutResponse(BaseModel):
    """Schema for checkout response."""
    message: str
    order_id: str
    total: float
    qr_code_text: str
    copia_e_cola: str
    qr_code_image: str


class PixChargeRequest(BaseModel):
    """Body of the PIX charge endpoint (camelCase on the wire)."""
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(alias="orderId")
    amount: float = Field(gt=0)
    description: str


class PixChargeResponse(BaseModel):
    qrCodeText: str
    copiaECola: str


class PixWebhookEvent(BaseModel):
    """Provider notification; unknown fields are ignored."""
    payment_id: str
    status: str


# Coupons

class CouponCreate(BaseModel):
    """Schema for creating or updating a coupon."""
    code: str = Field(min_length=3)
    discount_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    discount_fixed: Optional[float] = Field(default=None, ge=0)
    min_purchase_amount: Optional[float] = Field(default=None, ge=0)
    max_uses: Optional[int] = Field(default=None, ge=1)
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @field_validator("code")
    @classmethod
    def uppercase_code(cls, code: str) -> str:
        return code.upper()

    @model_validator(mode="after")
    def require_discount(self) -> "CouponCreate":
        if self.discount_percentage is None and self.discount_fixed is None:
            raise ValueError("Either discount_percentage or discount_fixed is required")
        return self


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    discount_percentage: Optional[float] = None
    discount_fixed: Optional[float] = None
    min_purchase_amount: Optional[float] = None
    max_uses: Optional[int] = None
    times_used: int
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime


# Orders

class OrderItemResponse(BaseModel):
    id: str
    product_id: str
    product_name: Optional[str] = None
    quantity: int
    unit_price: float
    total_price: float


class OrderResponse(BaseModel):
    """Schema for order response."""
    id: str
    status: OrderStatus
    subtotal: float
    discount: float
    total: float
    payment_status: Optional[str] = None
    tracking_code: Optional[str] = None
    expected_delivery: Optional[date] = None
    created_at: datetime
    items: List[OrderItemResponse]


class AdminOrderResponse(OrderResponse):
    customer_name: Optional[str] = None
    address: Optional[AddressResponse] = None


class OrdersListResponse(BaseModel):
    """Schema for orders list response."""
    orders: List[OrderResponse]


class AdminOrdersListResponse(BaseModel):
    orders: List[AdminOrderResponse]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    tracking_code: Optional[str] = None
    expected_delivery: Optional[date] = None
