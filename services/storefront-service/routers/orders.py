"""Orders API router."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import httpx
import logging

from auth import get_current_user
from database import get_db
from dependencies import get_cart_registry, get_checkout_service, get_order_service
from models import UserProfile
from schemas import CheckoutRequest, CheckoutResponse, OrdersListResponse
from services.cart_service import CartRegistry
from services.checkout_service import CheckoutPreconditionError, CheckoutService
from services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

CHECKOUT_FAILED = "Error processing order. Please try again."


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    request: CheckoutRequest,
    db: Session = Depends(get_db),
    user: UserProfile = Depends(get_current_user),
    carts: CartRegistry = Depends(get_cart_registry),
    checkout_service: CheckoutService = Depends(get_checkout_service)
):
    """Place an order for the selected cart items and return the PIX code."""
    selected_items = carts.get(user.id).state.selected_items

    try:
        result = await checkout_service.place_order(
            db=db,
            user=user,
            address_id=request.address_id,
            selected_items=selected_items
        )
    except CheckoutPreconditionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (ValueError, RuntimeError, LookupError, httpx.HTTPError, SQLAlchemyError):
        raise HTTPException(status_code=500, detail=CHECKOUT_FAILED)

    return {
        "message": "Order placed",
        **result
    }


@router.get("", response_model=OrdersListResponse)
async def get_orders(
    db: Session = Depends(get_db),
    user: UserProfile = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
):
    """Get user's orders - requires authentication."""
    return {"orders": order_service.get_user_orders(db, user.id)}
