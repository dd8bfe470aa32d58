"""Cart API router."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from auth import get_current_user
from database import get_db
from dependencies import get_cart_registry
from models import Product, UserProfile
from schemas import AddToCartRequest, CartResponse, SelectAllRequest, UpdateQuantityRequest
from services.cart_service import (
    AddItem,
    CartItem,
    CartRegistry,
    CartState,
    ClearCart,
    RemoveItem,
    ToggleAll,
    ToggleItem,
    UpdateQuantity,
    clamp_quantity
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart", tags=["cart"])


def cart_response(state: CartState) -> dict:
    return {
        "items": [
            {
                "id": item.id,
                "name": item.name,
                "price": item.price,
                "images": item.images,
                "stock_quantity": item.stock_quantity,
                "quantity": item.quantity,
                "selected": item.selected,
                "line_total": item.line_total
            }
            for item in state.items
        ],
        "selected_count": len(state.selected_items),
        "total": state.total,
        "selected_total": state.selected_total
    }


@router.get("", response_model=CartResponse)
async def get_cart(
    user: UserProfile = Depends(get_current_user),
    carts: CartRegistry = Depends(get_cart_registry)
):
    """Get user's cart - requires authentication."""
    return cart_response(carts.get(user.id).state)


@router.post("/items", response_model=CartResponse)
async def add_to_cart(
    request: AddToCartRequest,
    db: Session = Depends(get_db),
    user: UserProfile = Depends(get_current_user),
    carts: CartRegistry = Depends(get_cart_registry)
):
    """Add one unit of a product; adding it again bumps the quantity."""
    product = db.query(Product).filter(Product.id == request.product_id).first()
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.status != "published":
        raise HTTPException(status_code=400, detail="Product is not available")

    state = carts.get(user.id).dispatch(AddItem(CartItem.from_product(product)))

    logger.info("Added product to cart", extra={
        "user_id": user.id,
        "product_id": product.id,
        "product_name": product.name
    })
    return cart_response(state)


@router.patch("/items/{product_id}", response_model=CartResponse)
async def update_quantity(
    product_id: str,
    request: UpdateQuantityRequest,
    user: UserProfile = Depends(get_current_user),
    carts: CartRegistry = Depends(get_cart_registry)
):
    """Set an item's quantity, clamped to [1, stock]."""
    store = carts.get(user.id)
    item = store.get(product_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not in cart")

    quantity = clamp_quantity(request.quantity, item.stock_quantity)
    return cart_response(store.dispatch(UpdateQuantity(product_id, quantity)))


@router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_from_cart(
    product_id: str,
    user: UserProfile = Depends(get_current_user),
    carts: CartRegistry = Depends(get_cart_registry)
):
    return cart_response(carts.get(user.id).dispatch(RemoveItem(product_id)))


@router.post("/items/{product_id}/toggle", response_model=CartResponse)
async def toggle_item(
    product_id: str,
    user: UserProfile = Depends(get_current_user),
    carts: CartRegistry = Depends(get_cart_registry)
):
    """Flip an item's selection for checkout."""
    store = carts.get(user.id)
    if store.get(product_id) is None:
        raise HTTPException(status_code=404, detail="Item not in cart")
    return cart_response(store.dispatch(ToggleItem(product_id)))


@router.post("/select-all", response_model=CartResponse)
async def select_all(
    request: SelectAllRequest,
    user: UserProfile = Depends(get_current_user),
    carts: CartRegistry = Depends(get_cart_registry)
):
    return cart_response(carts.get(user.id).dispatch(ToggleAll(request.selected)))


@router.delete("", response_model=CartResponse)
async def clear_cart(
    user: UserProfile = Depends(get_current_user),
    carts: CartRegistry = Depends(get_cart_registry)
):
    return cart_response(carts.get(user.id).dispatch(ClearCart()))
