import logging
from typing import Any, Dict, List, Optional

import httpx

from storefront.client.errors import APIError

logger = logging.getLogger(__name__)


class StorefrontAPI:
    """
    Thin async wrapper over the storefront REST API.

    Every call raises ``APIError`` on transport failure or a non-2xx answer,
    using the server's ``message`` when it sent one.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "StorefrontAPI":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("storefront_api: method=%s path=%s result=transport_error error=%s", method, path, exc)
            raise APIError(f"Network error: {exc}") from exc

        if resp.is_error:
            try:
                payload = resp.json()
            except ValueError:
                payload = {}
            message = payload.get("message") if isinstance(payload, dict) else None
            logger.warning("storefront_api: method=%s path=%s status=%s message=%s", method, path, resp.status_code, message)
            raise APIError(message or f"HTTP {resp.status_code}", resp.status_code, payload if isinstance(payload, dict) else {})
        return resp.json()

    # Cart

    async def get_cart(self, session_id: Optional[str] = None, user_id: Optional[str] = None) -> Dict[str, Any]:
        params = {k: v for k, v in (("sessionId", session_id), ("userId", user_id)) if v}
        return await self._request("GET", "/api/cart", params=params)

    async def add_cart_item(
        self, cart_id: int, product_id: int, quantity: int = 1,
        is_free: bool = False, gift_source: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {"cartId": cart_id, "productId": product_id, "quantity": quantity, "isFree": is_free}
        if gift_source:
            body["giftSource"] = gift_source
        return await self._request("POST", "/api/cart/items", json=body)

    async def update_cart_item(self, item_id: int, quantity: int) -> Dict[str, Any]:
        return await self._request("PUT", f"/api/cart/items/{item_id}", json={"quantity": quantity})

    async def remove_cart_item(self, item_id: int) -> Dict[str, Any]:
        return await self._request("DELETE", f"/api/cart/items/{item_id}")

    async def clear_cart(self, cart_id: int) -> Dict[str, Any]:
        return await self._request("DELETE", f"/api/cart/{cart_id}")

    # Promotions

    async def get_free_products(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/api/free-products")

    async def get_product(self, product_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/api/products/{product_id}")

    async def get_gift_popup(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/gift-popup")

    async def get_gift_products(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/api/gift-products")

    # Coupons

    async def validate_coupon(self, code: str, cart_value: float) -> Dict[str, Any]:
        return await self._request("POST", "/api/coupons/validate", json={"code": code, "cartValue": cart_value})

    async def apply_coupon(self, code: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/coupons/apply", json={"code": code})
