from pydantic import Field
from typing import List, Optional
from datetime import datetime

from storefront.schemas.base import CamelModel
from storefront.schemas.product import ProductResponse


class FreeProductCreate(CamelModel):
    product_id: int = Field(..., gt=0)
    min_order_value: float
    max_order_value: Optional[float] = Field(None, description="null means no upper limit")
    enabled: bool = True


class FreeProductUpdate(CamelModel):
    product_id: Optional[int] = Field(None, gt=0)
    min_order_value: Optional[float] = None
    max_order_value: Optional[float] = None
    enabled: Optional[bool] = None


class FreeProductResponse(CamelModel):
    id: int
    product_id: int
    min_order_value: float
    max_order_value: Optional[float] = None
    enabled: bool
    created_at: Optional[datetime] = None
    product: Optional[ProductResponse] = None


class GiftPopupUpdate(CamelModel):
    title: str = Field(..., min_length=1)
    sub_title: str = ""
    active: bool = True
    min_cart_value: float = Field(..., ge=0)
    max_cart_value: Optional[float] = None
    max_selectable_gifts: int = Field(default=2, ge=1)
    gift_products: List[int] = Field(default_factory=list)


class GiftPopupResponse(CamelModel):
    id: int
    title: str
    sub_title: str
    active: bool
    min_cart_value: float
    max_cart_value: Optional[float] = None
    max_selectable_gifts: int
    gift_products: List[int]
    updated_at: Optional[datetime] = None
