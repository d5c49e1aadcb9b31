"""
Shopper-side cart state.

``CartManager`` mirrors the server cart, applies every mutation locally
before the API call returns, and undoes the affected line if the call fails.
After each successful change it reconciles gift-with-purchase lines against
the free-product rules and notifies listeners (the gift popup).

Overlapping calls on the same line are ordered by a per-line sequence
number: a response that arrives after a newer call on that line was issued
is ignored, both for adopting server values and for rollback.
"""
import asyncio
import itertools
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Union

from storefront.client.api import StorefrontAPI
from storefront.client.errors import APIError, CartSyncError
from storefront.client.models import (
    FREE_PRODUCT, GIFT_POPUP, CartLine, FreeProductRule, LineKey, ProductInfo,
)
from storefront.client.session import SessionStore
from storefront.eligibility import eligible_rules

logger = logging.getLogger(__name__)

ItemId = Union[int, str]
Listener = Callable[["CartManager"], Awaitable[None]]


def _log_notify(message: str) -> None:
    logger.info("notify: %s", message)


class CartManager:

    def __init__(
        self,
        api: StorefrontAPI,
        session_store: Optional[SessionStore] = None,
        user_id: Optional[str] = None,
        notify: Optional[Callable[[str], None]] = None,
        auto_reconcile: bool = True,
    ) -> None:
        self.api = api
        self.session_store = session_store or SessionStore()
        self.user_id = user_id
        self.notify = notify or _log_notify
        self.auto_reconcile = auto_reconcile

        self.cart_id: Optional[int] = None
        self.items: List[CartLine] = []
        self.rules: List[FreeProductRule] = []

        self._seq: Dict[LineKey, int] = {}
        self._pending: Dict[str, asyncio.Event] = {}
        self._temp_ids = itertools.count(1)
        self._listeners: List[Listener] = []
        self._reconciling = False
        self._suspended = False

    # Derived state

    @property
    def subtotal(self) -> float:
        return sum(line.line_total for line in self.items)

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def paid_lines(self) -> List[CartLine]:
        return [line for line in self.items if not line.is_free]

    @property
    def eligible_free_products(self) -> List[FreeProductRule]:
        return eligible_rules(self.subtotal, self.rules)

    def get_line(self, item_id: ItemId) -> Optional[CartLine]:
        return next((line for line in self.items if line.id == item_id), None)

    def find_line(self, product_id: int, is_free: Optional[bool] = None) -> Optional[CartLine]:
        for line in self.items:
            if line.product.id == product_id and (is_free is None or line.is_free == is_free):
                return line
        return None

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    # Loading

    async def load(self) -> None:
        await self._fetch_cart()
        await self._fetch_rules()
        await self._after_change()

    async def load_free_products(self) -> bool:
        """Refresh the free-product rules and reconcile if they changed."""
        changed = await self._fetch_rules()
        if changed:
            await self._after_change()
        return changed

    async def _fetch_rules(self) -> bool:
        try:
            data = await self.api.get_free_products()
        except APIError as exc:
            logger.error("Failed to load free products: %s", exc)
            return False
        rules = [FreeProductRule.model_validate(r) for r in data if r.get("product")]
        if rules == self.rules:
            return False
        self.rules = rules
        return True

    async def _fetch_cart(self) -> None:
        session_id = None if self.user_id else self.session_store.session_id()
        data = await self.api.get_cart(session_id=session_id, user_id=self.user_id)
        self.cart_id = data["id"]
        self.items = [CartLine.from_api(item) for item in data.get("items", [])]

    async def _ensure_cart(self) -> int:
        if self.cart_id is None:
            await self._fetch_cart()
        if self.cart_id is None:
            raise CartSyncError("Cart ID not initialized")
        return self.cart_id

    # Sequencing / pending lines

    def _next_seq(self, key: LineKey) -> int:
        self._seq[key] = self._seq.get(key, 0) + 1
        return self._seq[key]

    def _is_current(self, key: LineKey, seq: int) -> bool:
        return self._seq.get(key) == seq

    def _new_local_line(self, product: ProductInfo, quantity: int, is_free: bool = False,
                        gift_source: Optional[str] = None) -> CartLine:
        temp_id = f"tmp-{next(self._temp_ids)}"
        self._pending[temp_id] = asyncio.Event()
        return CartLine(id=temp_id, product=product, quantity=quantity, is_free=is_free, gift_source=gift_source)

    def _resolve_pending(self, temp_id: str) -> None:
        event = self._pending.pop(temp_id, None)
        if event is not None:
            event.set()

    async def _server_id(self, line: CartLine) -> Optional[int]:
        """The server id of ``line``, waiting for its creation if it is still in flight.
        None when the creation failed."""
        if line.is_pending:
            event = self._pending.get(line.id)
            if event is not None:
                await event.wait()
        return None if line.is_pending else line.id

    def _report(self, action: str, exc: APIError) -> None:
        logger.error("Failed to %s: %s", action, exc)
        self.notify(f"Could not {action}: {exc.message}")

    # Mutations

    async def add_item(self, product: ProductInfo, quantity: int = 1) -> Optional[CartLine]:
        """Add ``quantity`` of a paid product. Returns the line, or None when
        the server refused and the change was rolled back."""
        try:
            cart_id = await self._ensure_cart()
        except APIError as exc:
            self._report("add item to cart", exc)
            return None
        key: LineKey = (product.id, False)
        seq = self._next_seq(key)
        existing = self.find_line(product.id, is_free=False)

        if existing is not None:
            previous = existing.quantity
            existing.quantity += quantity
            try:
                item_id = await self._server_id(existing)
                if item_id is None:
                    data = await self.api.add_cart_item(cart_id, product.id, quantity)
                    existing.id = data["id"]
                else:
                    data = await self.api.update_cart_item(item_id, existing.quantity)
            except APIError as exc:
                if self._is_current(key, seq):
                    existing.quantity = previous
                self._report("add item to cart", exc)
                return None
            if self._is_current(key, seq):
                existing.quantity = data["quantity"]
            line = existing
        else:
            line = self._new_local_line(product, quantity)
            temp_id = line.id
            self.items.append(line)
            try:
                data = await self.api.add_cart_item(cart_id, product.id, quantity)
                line.id = data["id"]
            except APIError as exc:
                if self._is_current(key, seq) and line in self.items:
                    self.items.remove(line)
                self._report("add item to cart", exc)
                return None
            finally:
                self._resolve_pending(temp_id)
            if self._is_current(key, seq):
                line.quantity = data["quantity"]

        await self._after_change()
        return line

    async def add_gift(self, product: ProductInfo) -> bool:
        """Add a shopper-picked gift from the popup as a zero-price line."""
        ok = await self._add_zero_price(product, GIFT_POPUP)
        if ok:
            await self._after_change()
        return ok

    async def _add_zero_price(self, product: ProductInfo, source: str) -> bool:
        existing = self.find_line(product.id, is_free=True)
        if existing is not None:
            # one zero-price line per product; a popup pick takes over an
            # automatic line so reconciliation leaves it to the popup
            if source == GIFT_POPUP:
                existing.gift_source = GIFT_POPUP
            return True
        try:
            cart_id = await self._ensure_cart()
        except APIError as exc:
            self._report("add free product", exc)
            return False
        key: LineKey = (product.id, True)
        seq = self._next_seq(key)
        line = self._new_local_line(product.model_copy(update={"price": 0}), 1, is_free=True, gift_source=source)
        temp_id = line.id
        self.items.append(line)
        try:
            data = await self.api.add_cart_item(cart_id, product.id, 1, is_free=True, gift_source=source)
            line.id = data["id"]
        except APIError as exc:
            if self._is_current(key, seq) and line in self.items:
                self.items.remove(line)
            self._report("add free product", exc)
            return False
        finally:
            self._resolve_pending(temp_id)
        if self._is_current(key, seq):
            line.gift_source = data.get("giftSource") or source
        return True

    async def remove_item(self, item_id: ItemId) -> bool:
        line = self.get_line(item_id)
        if line is None:
            return False
        key = line.key
        seq = self._next_seq(key)
        index = self.items.index(line)
        self.items.remove(line)
        try:
            server_id = await self._server_id(line)
            if server_id is not None:
                await self.api.remove_cart_item(server_id)
        except APIError as exc:
            if exc.status_code != 404:
                if self._is_current(key, seq) and line not in self.items:
                    self.items.insert(min(index, len(self.items)), line)
                self._report("remove item from cart", exc)
                return False
        await self._after_change()
        return True

    async def remove_product(self, product_id: int, is_free: Optional[bool] = None) -> bool:
        """Remove the line holding ``product_id``; the id is resolved to a cart-item id here."""
        line = self.find_line(product_id, is_free=is_free)
        if line is None:
            return False
        return await self.remove_item(line.id)

    async def update_quantity(self, item_id: ItemId, quantity: int) -> bool:
        if quantity <= 0:
            return await self.remove_item(item_id)
        line = self.get_line(item_id)
        if line is None:
            return False
        if line.is_free:
            # zero-price lines are fixed at one
            return line.quantity == quantity
        key = line.key
        seq = self._next_seq(key)
        previous = line.quantity
        line.quantity = quantity
        try:
            server_id = await self._server_id(line)
            if server_id is None:
                raise APIError("Cart item was never created")
            data = await self.api.update_cart_item(server_id, quantity)
        except APIError as exc:
            if self._is_current(key, seq):
                line.quantity = previous
            self._report("update cart item quantity", exc)
            return False
        if self._is_current(key, seq):
            line.quantity = data["quantity"]
        await self._after_change()
        return True

    async def clear(self) -> bool:
        self._suspended = True
        try:
            for line in [line for line in self.items if line.is_free]:
                await self.remove_item(line.id)

            previous = list(self.items)
            seqs = {line.key: self._next_seq(line.key) for line in previous}
            self.items = []
            try:
                if self.cart_id is not None:
                    await self.api.clear_cart(self.cart_id)
            except APIError as exc:
                restore = [line for line in previous if self._is_current(line.key, seqs[line.key])]
                self.items = restore + self.items
                self._report("clear cart", exc)
                return False
        finally:
            self._suspended = False
        await self._after_change()
        return True

    # Free-product reconciliation

    async def reconcile_free_products(self) -> int:
        """
        Bring zero-price lines in line with the rules for the current
        subtotal. Returns how many add/remove calls were issued; running it
        again without a change in between issues none.
        """
        if self._reconciling:
            return 0
        self._reconciling = True
        calls = 0
        try:
            if not self.paid_lines:
                # gifts cannot stay in an otherwise empty cart
                for line in [line for line in self.items if line.is_free]:
                    await self.remove_item(line.id)
                    calls += 1
                return calls

            eligible = self.eligible_free_products
            eligible_ids = {rule.product_id for rule in eligible}

            for rule in eligible:
                if self.find_line(rule.product_id, is_free=True) is None:
                    product = rule.product or ProductInfo(id=rule.product_id)
                    await self._add_zero_price(product, FREE_PRODUCT)
                    calls += 1

            stale = [line for line in self.items if line.is_free_product and line.product.id not in eligible_ids]
            for line in stale:
                await self.remove_item(line.id)
                calls += 1
        finally:
            self._reconciling = False

        if calls:
            logger.debug("Free-product reconciliation at subtotal %s issued %s calls", self.subtotal, calls)
        return calls

    async def _after_change(self) -> None:
        if self._suspended or self._reconciling:
            return
        if self.auto_reconcile:
            await self.reconcile_free_products()
        for listener in list(self._listeners):
            await listener(self)
