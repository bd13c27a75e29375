"""Business-use apportionment of mixed-use costs."""

from __future__ import annotations

from .utils import ensure_non_negative, ensure_percentage


def apportion(amount: float, business_use_percent: float) -> dict[str, float]:
    """Split ``amount`` into allowable and disallowable parts.

    The disallowable part is derived by subtraction so both parts always sum
    back to ``amount``.
    """

    ensure_non_negative(amount, "amount")
    ensure_percentage(business_use_percent, "business_use_percent")

    allowable = amount * business_use_percent / 100
    return {"allowable": allowable, "disallowable": amount - allowable}


__all__ = ["apportion"]
