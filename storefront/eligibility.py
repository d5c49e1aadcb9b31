"""
Subtotal band checks shared by the cart API, the cart manager and the gift
popup. A band is ``[minimum, maximum]`` with both ends inclusive; a missing
maximum means unbounded.
"""
from typing import Iterable, List, Optional, Protocol, TypeVar


class BandRule(Protocol):
    min_order_value: float
    max_order_value: Optional[float]


R = TypeVar("R", bound=BandRule)


def in_band(subtotal: float, minimum: float, maximum: Optional[float] = None) -> bool:
    if subtotal < minimum:
        return False
    return maximum is None or subtotal <= maximum


def eligible_rules(subtotal: float, rules: Iterable[R]) -> List[R]:
    """Rules whose order-value band contains ``subtotal``, in input order."""
    return [r for r in rules if in_band(subtotal, r.min_order_value, r.max_order_value)]
