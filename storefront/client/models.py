from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import Field

from storefront.schemas.base import CamelModel

FREE_PRODUCT = "free_product"
GIFT_POPUP = "gift_popup"

LineKey = Tuple[int, bool]


class ProductInfo(CamelModel):
    id: int
    name: str = ""
    price: float = 0
    description: Optional[str] = None
    image_url: Optional[str] = None


class CartLine(CamelModel):
    # str while the line only exists locally, server id afterwards
    id: Union[int, str]
    product: ProductInfo
    quantity: int = 1
    is_free: bool = False
    gift_source: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CartLine":
        product = data.get("product") or {"id": data["productId"]}
        return cls(
            id=data["id"],
            product=ProductInfo.model_validate(product),
            quantity=data.get("quantity", 1),
            is_free=data.get("isFree", False),
            gift_source=data.get("giftSource"),
        )

    @property
    def key(self) -> LineKey:
        return (self.product.id, self.is_free)

    @property
    def is_pending(self) -> bool:
        return isinstance(self.id, str)

    @property
    def is_free_product(self) -> bool:
        return self.is_free and self.gift_source != GIFT_POPUP

    @property
    def is_gift(self) -> bool:
        return self.is_free and self.gift_source == GIFT_POPUP

    @property
    def unit_price(self) -> float:
        return 0.0 if self.is_free else self.product.price

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


class FreeProductRule(CamelModel):
    product_id: int
    min_order_value: float
    max_order_value: Optional[float] = None
    product: Optional[ProductInfo] = None


class GiftPopupConfig(CamelModel):
    title: str = ""
    sub_title: str = ""
    active: bool = False
    min_cart_value: float = 0
    max_cart_value: Optional[float] = None
    max_selectable_gifts: int = 2
    gift_products: List[int] = Field(default_factory=list)


class AppliedCoupon(CamelModel):
    code: str
    discount_value: float
