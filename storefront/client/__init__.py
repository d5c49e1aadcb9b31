"""
Async client for the storefront API: the shopper-side cart state, gift
popup and coupon box.
"""
from storefront.client.api import StorefrontAPI
from storefront.client.cart_manager import CartManager
from storefront.client.coupon import CouponController
from storefront.client.errors import APIError, CartSyncError
from storefront.client.gift_popup import GiftSelection
from storefront.client.session import SessionStore

__all__ = [
    "StorefrontAPI",
    "CartManager",
    "CouponController",
    "GiftSelection",
    "SessionStore",
    "APIError",
    "CartSyncError",
]
