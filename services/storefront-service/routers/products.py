"""Products API router."""
from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session
from typing import List
from opentelemetry import trace

from database import get_db
from models import Product
from schemas import ProductResponse

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=List[ProductResponse])
async def get_products(db: Session = Depends(get_db)):
    """Published catalog, newest first."""
    products = db.query(Product).filter(
        Product.status == "published"
    ).order_by(Product.created_at.desc()).all()

    span = trace.get_current_span()
    span.set_attribute("product.count", len(products))
    span.set_attribute("endpoint.type", "product_catalog")

    return products


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str = Path(..., description="Product ID"),
    db: Session = Depends(get_db)
):
    """Product details; drafts are not visible to shoppers."""
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product or product.status == "draft":
        raise HTTPException(status_code=404, detail="Product not found")

    trace.get_current_span().set_attribute("product.id", product_id)
    return product
