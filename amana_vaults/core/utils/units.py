from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_DOWN, Decimal, InvalidOperation


def _to_decimal(value: str | int | float | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return Decimal(value)
    return Decimal(str(value).strip())


def to_erc20_raw(amount_tokens: str | int | float | Decimal, decimals: int) -> int:
    try:
        amt = _to_decimal(amount_tokens)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid token amount: {amount_tokens}") from exc
    if amt < 0:
        raise ValueError("Amount must be non-negative")
    scale = Decimal(10) ** int(decimals)
    return int((amt * scale).to_integral_value(rounding=ROUND_DOWN))


def from_erc20_raw(raw: int, decimals: int) -> Decimal:
    return Decimal(int(raw)) / (Decimal(10) ** int(decimals))


def format_units(raw: int, decimals: int, *, places: int | None = None) -> str:
    value = from_erc20_raw(raw, decimals)
    places = decimals if places is None else places
    s = f"{value:.{places}f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s


def parse_erc20_funds(specs: Iterable[str], decimals: int) -> dict[str, int]:
    """Parse ``address:amount`` funding specs into raw balances."""
    balances: dict[str, int] = {}
    for spec in specs:
        parts = [p.strip() for p in str(spec).split(":", 1)]
        if len(parts) != 2 or not parts[0]:
            raise ValueError(f"Invalid funds spec: {spec}")
        addr, amount = parts
        balances[addr] = balances.get(addr, 0) + to_erc20_raw(amount, decimals)
    return balances
