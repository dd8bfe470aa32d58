"""PIX payment API router."""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import httpx
import logging

from auth import get_current_user
from database import get_db
from dependencies import get_pix_charge_service
from models import UserProfile
from schemas import PixChargeRequest, PixChargeResponse
from services.payment_service import PixChargeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/pix", response_model=PixChargeResponse)
async def create_pix_payment(
    request: PixChargeRequest,
    db: Session = Depends(get_db),
    user: UserProfile = Depends(get_current_user),
    pix_service: PixChargeService = Depends(get_pix_charge_service)
):
    """Mint a PIX charge for an order. Every call creates a new charge."""
    try:
        return await pix_service.create_charge(
            db=db,
            order_id=request.order_id,
            amount=request.amount,
            description=request.description,
            user_id=user.id
        )
    except (RuntimeError, LookupError, httpx.HTTPError, SQLAlchemyError) as e:
        logger.error("Error creating PIX payment", extra={
            "order_id": request.order_id,
            "user_id": user.id,
            "error": str(e)
        })
        return JSONResponse(status_code=500, content={"error": "Failed to create PIX payment"})
