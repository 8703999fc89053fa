"""Integer fixed-point helpers.

All on-ledger value math goes through these; nothing here touches floats.
"""

from __future__ import annotations

from enum import StrEnum

from amana_vaults.core.constants.base import RAY

HALF_RAY = RAY // 2


class Rounding(StrEnum):
    DOWN = "down"
    UP = "up"


def ceil_div(numer: int, denom: int) -> int:
    """Ceiling division."""
    if denom == 0:
        raise ZeroDivisionError("denom must be > 0")
    return (numer + denom - 1) // denom


def mul_div(x: int, y: int, denom: int, rounding: Rounding = Rounding.DOWN) -> int:
    """``x * y / denom`` on unbounded integers with an explicit rounding direction."""
    if denom <= 0:
        raise ZeroDivisionError("denom must be > 0")
    if x < 0 or y < 0:
        raise ValueError("mul_div operands must be non-negative")
    product = x * y
    if rounding == Rounding.UP:
        return ceil_div(product, denom)
    return product // denom


def ray_mul(a: int, b: int) -> int:
    """Aave WadRayMath.rayMul: half-up rounding."""
    return (a * b + HALF_RAY) // RAY


def ray_div(a: int, b: int) -> int:
    """Aave WadRayMath.rayDiv: half-up rounding."""
    if b == 0:
        raise ZeroDivisionError("ray_div by zero")
    return (a * RAY + b // 2) // b

