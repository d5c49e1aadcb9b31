from storefront.models.coupon import Coupon
from storefront.models.product import Product
from storefront.models.promotion import FreeProduct, GiftPopup
from storefront.models.cart import Cart, CartItem, GiftSource

__all__ = [
    "Coupon",
    "Product",
    "FreeProduct",
    "GiftPopup",
    "Cart",
    "CartItem",
    "GiftSource",
]
