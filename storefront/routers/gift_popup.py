from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from storefront.database import get_db
from storefront.schemas.product import ProductResponse
from storefront.schemas.promotion import GiftPopupUpdate, GiftPopupResponse
from storefront.security import require_admin
from storefront.services.product_service import ProductService
from storefront.services.promotion_service import GiftPopupService

router = APIRouter(prefix="/api", tags=["gift-popup"])


@router.get("/gift-popup", response_model=GiftPopupResponse)
def get_gift_popup(db: Session = Depends(get_db)):
    return GiftPopupService.get_config(db)


@router.get("/gift-products", response_model=List[ProductResponse])
def get_gift_products(db: Session = Depends(get_db)):
    return GiftPopupService.gift_products(db)


@router.get("/admin/gift-popup", response_model=GiftPopupResponse, dependencies=[Depends(require_admin)])
def admin_get_gift_popup(db: Session = Depends(get_db)):
    return GiftPopupService.get_config(db)


@router.put("/admin/gift-popup", response_model=GiftPopupResponse, dependencies=[Depends(require_admin)])
@router.post("/admin/gift-popup", response_model=GiftPopupResponse, dependencies=[Depends(require_admin)])
def update_gift_popup(payload: GiftPopupUpdate, db: Session = Depends(get_db)):
    return GiftPopupService.update_config(db, payload)


@router.get("/admin/gift-products", response_model=List[ProductResponse], dependencies=[Depends(require_admin)])
def admin_get_gift_products(db: Session = Depends(get_db)):
    # every product is a candidate when configuring the popup
    return ProductService.get_products(db, limit=500)
