from pydantic import Field
from typing import List, Optional

from storefront.models.cart import GiftSource
from storefront.schemas.base import CamelModel
from storefront.schemas.product import ProductResponse


class CartItemCreate(CamelModel):
    cart_id: int = Field(..., gt=0)
    product_id: int = Field(..., gt=0)
    quantity: int = Field(default=1, gt=0)
    is_free: bool = False
    gift_source: Optional[GiftSource] = None


class CartItemUpdate(CamelModel):
    quantity: int = Field(..., gt=0)


class CartItemResponse(CamelModel):
    id: int
    cart_id: int
    product_id: int
    quantity: int
    is_free: bool
    gift_source: Optional[GiftSource] = None
    unit_price: float
    product: Optional[ProductResponse] = None


class CartResponse(CamelModel):
    id: int
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    items: List[CartItemResponse]
    subtotal: float
    total_items: int
