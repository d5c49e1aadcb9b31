from typing import Any, Dict, Optional


class APIError(Exception):
    """A failed call to the storefront API (transport error or non-2xx)."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}

    @property
    def code(self) -> Optional[str]:
        return (self.payload.get("error") or {}).get("code")


class CartSyncError(APIError):
    """A cart mutation the server refused; local state has been rolled back."""
