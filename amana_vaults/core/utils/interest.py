from __future__ import annotations

from decimal import Decimal

from amana_vaults.core.constants.base import MANTISSA, RAY, SECONDS_PER_YEAR
from amana_vaults.core.utils.fixed_point import ray_mul


def apr_to_ray_rate(apr: float | str | Decimal) -> int:
    """
    Convert a decimal APR (0.05 = 5%) to a Ray-scaled yearly rate.
    """
    return int(Decimal(str(apr)) * RAY)


def apr_to_rate_per_second(apr: float | str | Decimal) -> int:
    """
    Convert a decimal APR to a mantissa-scaled per-second rate (Moonwell timestamp rates).
    """
    return int(Decimal(str(apr)) * MANTISSA / SECONDS_PER_YEAR)


def ray_to_apr(ray: int) -> float:
    """
    Convert a Ray-scaled rate (1e27) to APR.
    """
    if not ray:
        return 0.0
    return float(ray) / RAY


def linear_interest(rate_ray: int, elapsed: int) -> int:
    """
    Aave MathUtils.calculateLinearInterest: ``1 + rate * elapsed / year`` in Ray.
    """
    if elapsed <= 0:
        return RAY
    return RAY + rate_ray * elapsed // SECONDS_PER_YEAR


def accrue_index(index: int, rate_ray: int, elapsed: int) -> int:
    """Grow a Ray liquidity index by linear interest over ``elapsed`` seconds."""
    return ray_mul(index, linear_interest(rate_ray, elapsed))
