from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from storefront.database import get_db
from storefront.schemas.base import MessageResponse
from storefront.schemas.coupon import (
    CouponCreate, CouponUpdate, CouponResponse, CouponValidateRequest, CouponValidateResponse,
    CouponApplyRequest, CouponApplyResponse,
)
from storefront.security import get_current_user, require_admin
from storefront.errors import NotFoundError
from storefront.services.coupon_service import CouponService

router = APIRouter(prefix="/api", tags=["coupons"])


# Admin routes

@router.get("/admin/coupons", response_model=List[CouponResponse], dependencies=[Depends(require_admin)])
def list_coupons(db: Session = Depends(get_db)):
    return CouponService.get_coupons(db)


@router.get("/admin/coupons/{coupon_id}", response_model=CouponResponse, dependencies=[Depends(require_admin)])
def get_coupon(coupon_id: int, db: Session = Depends(get_db)):
    return CouponService.get_or_404(db, coupon_id)


@router.post("/admin/coupons", response_model=CouponResponse, status_code=201, dependencies=[Depends(require_admin)])
def create_coupon(coupon: CouponCreate, db: Session = Depends(get_db)):
    return CouponService.create_coupon(db, coupon)


@router.put("/admin/coupons/{coupon_id}", response_model=CouponResponse, dependencies=[Depends(require_admin)])
def update_coupon(coupon_id: int, payload: CouponUpdate, db: Session = Depends(get_db)):
    updated = CouponService.update_coupon(db, coupon_id, payload)
    if not updated:
        raise NotFoundError("Coupon not found")
    return updated


@router.delete("/admin/coupons/{coupon_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
def delete_coupon(coupon_id: int, db: Session = Depends(get_db)):
    if not CouponService.delete_coupon(db, coupon_id):
        raise NotFoundError("Coupon not found")
    return MessageResponse(message="Coupon deleted successfully")


# Shopper routes

@router.post("/coupons/validate", response_model=CouponValidateResponse)
def validate_coupon(body: CouponValidateRequest, db: Session = Depends(get_db)):
    coupon, discount_value = CouponService.validate(db, body.code, body.cart_value)
    return CouponValidateResponse(
        valid=True,
        coupon=CouponResponse.model_validate(coupon),
        discount_value=discount_value,
        message="Coupon applied successfully",
    )


@router.post("/coupons/apply", response_model=CouponApplyResponse, dependencies=[Depends(get_current_user)])
def apply_coupon(body: CouponApplyRequest, db: Session = Depends(get_db)):
    coupon = CouponService.redeem(db, body.code)
    return CouponApplyResponse(message="Coupon applied successfully", coupon=CouponResponse.model_validate(coupon))
