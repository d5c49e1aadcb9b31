from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from storefront.database import get_db
from storefront.schemas.base import MessageResponse
from storefront.schemas.promotion import FreeProductCreate, FreeProductUpdate, FreeProductResponse
from storefront.security import require_admin
from storefront.services.promotion_service import FreeProductService

router = APIRouter(prefix="/api", tags=["free-products"])


@router.get("/free-products", response_model=List[FreeProductResponse])
def list_free_products(db: Session = Depends(get_db)):
    return FreeProductService.list_rules(db)


@router.get("/free-products/{rule_id}", response_model=FreeProductResponse)
def get_free_product(rule_id: int, db: Session = Depends(get_db)):
    return FreeProductService.get_rule(db, rule_id)


@router.get("/admin/free-products", response_model=List[FreeProductResponse], dependencies=[Depends(require_admin)])
def admin_list_free_products(db: Session = Depends(get_db)):
    return FreeProductService.list_rules(db, include_disabled=True)


@router.get("/admin/free-products/{rule_id}", response_model=FreeProductResponse, dependencies=[Depends(require_admin)])
def admin_get_free_product(rule_id: int, db: Session = Depends(get_db)):
    return FreeProductService.get_rule(db, rule_id, include_disabled=True)


@router.post("/admin/free-products", response_model=FreeProductResponse, status_code=201,
             dependencies=[Depends(require_admin)])
def create_free_product(payload: FreeProductCreate, db: Session = Depends(get_db)):
    return FreeProductService.create_rule(db, payload)


@router.put("/admin/free-products/{rule_id}", response_model=FreeProductResponse, dependencies=[Depends(require_admin)])
def update_free_product(rule_id: int, payload: FreeProductUpdate, db: Session = Depends(get_db)):
    return FreeProductService.update_rule(db, rule_id, payload)


@router.delete("/admin/free-products/{rule_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
def delete_free_product(rule_id: int, db: Session = Depends(get_db)):
    FreeProductService.delete_rule(db, rule_id)
    return MessageResponse(message="Free product deleted successfully")
