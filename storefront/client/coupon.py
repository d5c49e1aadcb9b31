import logging
from typing import Optional

from storefront.client.api import StorefrontAPI
from storefront.client.models import AppliedCoupon
from storefront.client.session import SessionStore

logger = logging.getLogger(__name__)

APPLIED_COUPON_KEY = "appliedCoupon"


class CouponController:
    """
    Checkout coupon box. ``apply`` only previews the discount through the
    validate endpoint; the use is counted by ``redeem`` once the order is
    placed.
    """

    def __init__(self, api: StorefrontAPI, store: Optional[SessionStore] = None) -> None:
        self.api = api
        self.store = store or SessionStore()

    @property
    def applied(self) -> Optional[AppliedCoupon]:
        data = self.store.get(APPLIED_COUPON_KEY)
        return AppliedCoupon.model_validate(data) if data else None

    async def apply(self, code: str, cart_value: float) -> AppliedCoupon:
        data = await self.api.validate_coupon(code, cart_value)
        coupon = AppliedCoupon(code=data["coupon"]["code"], discount_value=data["discountValue"])
        self.store.set(APPLIED_COUPON_KEY, coupon.model_dump(by_alias=True))
        return coupon

    def remove(self) -> None:
        self.store.delete(APPLIED_COUPON_KEY)

    def discounted_total(self, subtotal: float) -> float:
        coupon = self.applied
        if coupon is None:
            return subtotal
        return max(subtotal - coupon.discount_value, 0)

    async def redeem(self) -> Optional[dict]:
        coupon = self.applied
        if coupon is None:
            return None
        data = await self.api.apply_coupon(coupon.code)
        logger.info("Redeemed coupon %s", coupon.code)
        self.remove()
        return data
