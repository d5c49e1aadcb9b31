from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from storefront.database import get_db
from storefront.schemas.base import MessageResponse
from storefront.schemas.product import ProductCreate, ProductUpdate, ProductResponse
from storefront.security import require_admin
from storefront.services.product_service import ProductService

router = APIRouter(prefix="/api", tags=["products"])


@router.get("/products", response_model=List[ProductResponse])
def list_products(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    return ProductService.get_products(db, skip, limit)


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return ProductService.get_or_404(db, product_id)


@router.post("/admin/products", response_model=ProductResponse, status_code=201, dependencies=[Depends(require_admin)])
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    return ProductService.create_product(db, payload)


@router.put("/admin/products/{product_id}", response_model=ProductResponse, dependencies=[Depends(require_admin)])
def update_product(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db)):
    return ProductService.update_product(db, product_id, payload)


@router.delete("/admin/products/{product_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
def delete_product(product_id: int, db: Session = Depends(get_db)):
    ProductService.delete_product(db, product_id)
    return MessageResponse(message="Product deleted successfully")
