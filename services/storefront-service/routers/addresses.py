"""Shipping address API router."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from auth import get_current_user
from database import get_db
from dependencies import get_address_service
from models import UserProfile
from schemas import AddressCreate, AddressListResponse, AddressResponse
from services.address_service import AddressService

router = APIRouter(prefix="/addresses", tags=["addresses"])


@router.get("", response_model=AddressListResponse)
async def list_addresses(
    selected_id: Optional[str] = Query(None, description="Address already chosen by the shopper"),
    db: Session = Depends(get_db),
    user: UserProfile = Depends(get_current_user),
    address_service: AddressService = Depends(get_address_service)
):
    """
    User's addresses, newest first, plus the one to use at checkout.

    Without a pre-selection the default address is chosen, else the newest.
    """
    addresses = address_service.list_addresses(db, user.id)
    return {
        "addresses": addresses,
        "selected": address_service.choose_address(addresses, selected_id)
    }


@router.post("", response_model=AddressResponse, status_code=201)
async def create_address(
    request: AddressCreate,
    db: Session = Depends(get_db),
    user: UserProfile = Depends(get_current_user),
    address_service: AddressService = Depends(get_address_service)
):
    """Save a new address; clients use it as the selected one."""
    return address_service.create_address(db, user.id, request)
