"""Admin coupon management."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List
import logging

from auth import require_admin
from database import get_db
from models import Coupon
from schemas import CouponCreate, CouponResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/coupons",
    tags=["admin"],
    dependencies=[Depends(require_admin)]
)


def get_coupon_or_404(db: Session, coupon_id: str) -> Coupon:
    coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
    if coupon is None:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon


def commit_coupon(db: Session, code: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Duplicate coupon code", extra={"code": code})
        raise HTTPException(status_code=409, detail="Coupon code already exists")


@router.get("", response_model=List[CouponResponse])
async def list_coupons(db: Session = Depends(get_db)):
    return db.query(Coupon).order_by(Coupon.created_at.desc()).all()


@router.post("", response_model=CouponResponse, status_code=201)
async def create_coupon(request: CouponCreate, db: Session = Depends(get_db)):
    coupon = Coupon(**request.model_dump())
    db.add(coupon)
    commit_coupon(db, request.code)
    db.refresh(coupon)

    logger.info("Coupon created", extra={"coupon_id": coupon.id, "code": coupon.code})
    return coupon


@router.put("/{coupon_id}", response_model=CouponResponse)
async def update_coupon(coupon_id: str, request: CouponCreate, db: Session = Depends(get_db)):
    coupon = get_coupon_or_404(db, coupon_id)
    for field, value in request.model_dump().items():
        setattr(coupon, field, value)
    commit_coupon(db, request.code)
    db.refresh(coupon)

    logger.info("Coupon updated", extra={"coupon_id": coupon.id, "code": coupon.code})
    return coupon


@router.delete("/{coupon_id}", status_code=204)
async def delete_coupon(
    coupon_id: str,
    confirm: bool = Query(False, description="Must be true to delete"),
    db: Session = Depends(get_db)
):
    if not confirm:
        raise HTTPException(status_code=400, detail="Deletion must be confirmed")

    coupon = get_coupon_or_404(db, coupon_id)
    db.delete(coupon)
    db.commit()
    logger.info("Coupon deleted", extra={"coupon_id": coupon_id})
