from pydantic import Field
from typing import Literal, Optional
from datetime import datetime

from storefront.schemas.base import CamelModel

DiscountType = Literal["percentage", "fixed"]


# Request schemas
class CouponCreate(CamelModel):
    code: str = Field(..., min_length=1, max_length=64)
    description: str = Field(..., min_length=1)
    discount_amount: float = Field(..., description="Percent (0, 100] or a fixed amount > 0")
    discount_type: DiscountType = Field(default="percentage")
    minimum_cart_value: Optional[float] = Field(default=0, ge=0)
    max_uses: Optional[int] = Field(default=-1, description="-1 means unlimited")
    start_date: datetime
    end_date: datetime
    is_active: Optional[bool] = Field(default=True)


class CouponUpdate(CamelModel):
    code: Optional[str] = Field(None, min_length=1, max_length=64)
    description: Optional[str] = Field(None, min_length=1)
    discount_amount: Optional[float] = None
    discount_type: Optional[DiscountType] = None
    minimum_cart_value: Optional[float] = Field(None, ge=0)
    max_uses: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None


class CouponValidateRequest(CamelModel):
    code: str = Field(..., min_length=1)
    cart_value: float = Field(..., ge=0)


class CouponApplyRequest(CamelModel):
    code: str = Field(..., min_length=1)


# Response schemas
class CouponResponse(CamelModel):
    id: int
    code: str
    description: str
    discount_amount: float
    discount_type: DiscountType
    minimum_cart_value: float
    max_uses: int
    used_count: int
    start_date: datetime
    end_date: datetime
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CouponValidateResponse(CamelModel):
    valid: bool
    coupon: CouponResponse
    discount_value: float
    message: str


class CouponApplyResponse(CamelModel):
    message: str
    coupon: CouponResponse
