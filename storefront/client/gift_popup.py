"""
Gift-selection popup state.

Separate from the automatic free-product lines: once the cart subtotal is in
the popup's band the shopper may pick up to ``max_selectable_gifts`` of the
configured gift products. Band checks use the same helper as the cart
manager's reconciliation.
"""
import logging
from typing import List, Optional

from storefront.client.api import StorefrontAPI
from storefront.client.cart_manager import CartManager
from storefront.client.errors import APIError
from storefront.client.models import GiftPopupConfig, ProductInfo
from storefront.eligibility import in_band

logger = logging.getLogger(__name__)


class GiftSelection:

    def __init__(self, cart: CartManager, config: GiftPopupConfig, candidates: List[ProductInfo]) -> None:
        self.cart = cart
        self.config = config
        self.candidates = candidates
        self.selected: List[int] = []
        self.dismissed = False
        self._cart_id: Optional[int] = cart.cart_id
        self._syncing = False

    @classmethod
    async def load(cls, cart: CartManager, api: StorefrontAPI) -> "GiftSelection":
        """Fetch the popup config and candidates, and follow ``cart`` from now on."""
        config = GiftPopupConfig()
        candidates: List[ProductInfo] = []
        try:
            config = GiftPopupConfig.model_validate(await api.get_gift_popup())
            candidates = [ProductInfo.model_validate(p) for p in await api.get_gift_products()]
        except APIError as exc:
            logger.error("Error fetching gift popup config: %s", exc)
        popup = cls(cart, config, candidates)
        cart.add_listener(popup._on_cart_change)
        return popup

    @property
    def eligible(self) -> bool:
        return self.config.active and in_band(
            self.cart.subtotal, self.config.min_cart_value, self.config.max_cart_value
        )

    @property
    def visible(self) -> bool:
        return self.eligible and not self.dismissed and bool(self.candidates)

    @property
    def at_limit(self) -> bool:
        return len(self.selected) >= self.config.max_selectable_gifts

    def can_select(self, product_id: int) -> bool:
        return product_id in self.selected or not self.at_limit

    def close(self) -> None:
        self.dismissed = True

    def on_cart_changed(self, cart_id: Optional[int]) -> None:
        if cart_id != self._cart_id:
            self._cart_id = cart_id
            self.dismissed = False
            self.selected = []

    async def toggle(self, product_id: int) -> bool:
        """Select or deselect a gift. Selecting past the limit is refused."""
        if product_id in self.selected:
            self.selected.remove(product_id)
            await self.cart.remove_product(product_id, is_free=True)
            return True

        if not self.eligible or self.at_limit:
            return False
        product = next((p for p in self.candidates if p.id == product_id), None)
        if product is None:
            return False

        self.selected.append(product_id)
        if not await self.cart.add_gift(product):
            if product_id in self.selected:
                self.selected.remove(product_id)
            return False
        return True

    async def sync(self) -> int:
        """Strip popup gifts once the cart leaves the band. Returns lines removed."""
        if self._syncing or not self.config.active or self.eligible:
            return 0
        self._syncing = True
        removed = 0
        try:
            for line in [line for line in self.cart.items if line.is_gift]:
                if await self.cart.remove_item(line.id):
                    removed += 1
            self.selected = []
        finally:
            self._syncing = False
        return removed

    def prune(self) -> None:
        """Drop selections whose zero-price line is no longer in the cart."""
        self.selected = [pid for pid in self.selected if self.cart.find_line(pid, is_free=True) is not None]

    async def _on_cart_change(self, cart: CartManager) -> None:
        self.on_cart_changed(cart.cart_id)
        await self.sync()
        self.prune()
