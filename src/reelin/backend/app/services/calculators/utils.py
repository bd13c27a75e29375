"""Utility helpers for calculator modules."""

from __future__ import annotations


def format_percentage(value: float) -> str:
    """Return a human-readable label for a percentage ``value`` (20 -> "20%")."""

    if float(int(value)) == value:
        return f"{int(value)}%"
    return f"{value:.2f}%"


def format_pence(rate: float) -> str:
    """Return a per-mile rate such as ``0.45`` as ``"45p"``."""

    pence = rate * 100
    if abs(pence - round(pence)) < 1e-9:
        return f"{int(round(pence))}p"
    return f"{pence:.1f}p"


def round_currency(value: float) -> float:
    """Round monetary amounts to two decimals."""

    return round(value, 2)


def ensure_non_negative(value: float, field_name: str) -> float:
    """Return ``value`` or raise ``ValueError`` when it is negative."""

    if value < 0:
        raise ValueError(f"Field '{field_name}' cannot be negative")
    return value


def ensure_percentage(value: float, field_name: str) -> float:
    """Return ``value`` or raise ``ValueError`` when outside ``0..100``."""

    if value < 0 or value > 100:
        raise ValueError(f"Field '{field_name}' must be between 0 and 100")
    return value
