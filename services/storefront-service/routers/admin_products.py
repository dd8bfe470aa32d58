"""Admin product management."""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from auth import require_admin
from config import MAX_PRODUCT_IMAGES
from database import get_db
from dependencies import get_image_storage
from models import Product
from schemas import ProductCreate, ProductResponse
from services.storage_service import ProductImageStorage

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/products",
    tags=["admin"],
    dependencies=[Depends(require_admin)]
)


async def build_product_data(
    storage: ProductImageStorage,
    uploads: Optional[List[UploadFile]],
    fallback_images: List[str],
    **fields
) -> ProductCreate:
    """
    Validate the product form.

    Uploaded files replace the image list; without uploads the given URLs
    are kept.
    """
    uploads = [upload for upload in uploads or [] if upload.filename]
    if len(uploads) > MAX_PRODUCT_IMAGES:
        raise RequestValidationError([{
            "type": "too_long",
            "loc": ("body", "images"),
            "msg": f"At most {MAX_PRODUCT_IMAGES} images are allowed",
            "input": len(uploads)
        }])

    images = await storage.upload_all(uploads) if uploads else fallback_images
    try:
        return ProductCreate(images=images, **fields)
    except ValidationError as e:
        if uploads:
            storage.discard(images)
        raise RequestValidationError(e.errors(include_url=False))


def get_product_or_404(db: Session, product_id: str) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("", response_model=List[ProductResponse])
async def list_products(db: Session = Depends(get_db)):
    """All products in any status, newest first."""
    return db.query(Product).order_by(Product.created_at.desc()).all()


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    name: str = Form(...),
    price: float = Form(...),
    status: str = Form("draft"),
    stock_quantity: int = Form(0),
    description: Optional[str] = Form(None),
    image_urls: List[str] = Form([]),
    images: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    storage: ProductImageStorage = Depends(get_image_storage)
):
    """Create a product from a multipart form with up to five image files."""
    data = await build_product_data(
        storage, images, image_urls,
        name=name, price=price, status=status,
        stock_quantity=stock_quantity, description=description
    )

    product = Product(**data.model_dump())
    db.add(product)
    db.commit()
    db.refresh(product)

    logger.info("Product created", extra={
        "product_id": product.id,
        "image_count": len(product.images)
    })
    return product


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    name: str = Form(...),
    price: float = Form(...),
    status: str = Form("draft"),
    stock_quantity: int = Form(0),
    description: Optional[str] = Form(None),
    image_urls: List[str] = Form([]),
    images: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    storage: ProductImageStorage = Depends(get_image_storage)
):
    product = get_product_or_404(db, product_id)
    data = await build_product_data(
        storage, images, image_urls or list(product.images or []),
        name=name, price=price, status=status,
        stock_quantity=stock_quantity, description=description
    )

    for field, value in data.model_dump().items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)

    logger.info("Product updated", extra={"product_id": product.id})
    return product


@router.delete("/{product_id}", status_code=204)
async def delete_product(
    product_id: str,
    confirm: bool = Query(False, description="Must be true to delete"),
    db: Session = Depends(get_db)
):
    if not confirm:
        raise HTTPException(status_code=400, detail="Deletion must be confirmed")

    product = get_product_or_404(db, product_id)
    try:
        db.delete(product)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Product is referenced by existing orders")

    logger.info("Product deleted", extra={"product_id": product_id})
