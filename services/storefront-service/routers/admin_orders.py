"""Admin order management."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from auth import require_admin
from database import get_db
from dependencies import get_order_service
from schemas import AdminOrderResponse, AdminOrdersListResponse, OrderStatusUpdate
from services.order_service import OrderService, OrderStatusTransitionError

router = APIRouter(
    prefix="/admin/orders",
    tags=["admin"],
    dependencies=[Depends(require_admin)]
)


@router.get("", response_model=AdminOrdersListResponse)
async def list_orders(
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    """Every order with customer, address and items, newest first."""
    return {"orders": order_service.list_orders(db)}


@router.patch("/{order_id}/status", response_model=AdminOrderResponse)
async def update_order_status(
    order_id: str,
    request: OrderStatusUpdate,
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    """Advance an order; the tracking code is kept only when marking it shipped."""
    try:
        return order_service.update_status(
            db,
            order_id,
            request.status,
            tracking_code=request.tracking_code,
            expected_delivery=request.expected_delivery
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStatusTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
