"""Dependency injection for services."""
import httpx
from fastapi import Depends, Request

from services.address_service import AddressService
from services.cart_service import CartRegistry
from services.checkout_service import CheckoutService
from services.notification_service import OrderConfirmationMailer
from services.order_service import OrderService
from services.payment_service import PixChargeService
from services.storage_service import ProductImageStorage


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Get HTTP client from app state."""
    return request.app.state.http_client


def get_cart_registry(request: Request) -> CartRegistry:
    """Get the process-wide cart registry."""
    return request.app.state.cart_registry


def get_address_service() -> AddressService:
    return AddressService()


def get_pix_charge_service(
    http_client: httpx.AsyncClient = Depends(get_http_client)
) -> PixChargeService:
    """Get PIX charge client."""
    return PixChargeService(http_client)


def get_order_service(
    http_client: httpx.AsyncClient = Depends(get_http_client)
) -> OrderService:
    """Get order service instance."""
    return OrderService(OrderConfirmationMailer(http_client))


def get_checkout_service(
    pix_service: PixChargeService = Depends(get_pix_charge_service),
    address_service: AddressService = Depends(get_address_service)
) -> CheckoutService:
    """Get checkout service instance."""
    return CheckoutService(pix_service, address_service)


def get_image_storage() -> ProductImageStorage:
    return ProductImageStorage()
