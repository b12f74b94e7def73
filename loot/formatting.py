"""Plain-text rendering of session deltas."""

from __future__ import annotations

from datetime import timedelta
from typing import List, Sequence

from gw2.models import CurrencyDelta, ItemDelta

__all__ = ["COIN_CURRENCY_ID", "format_duration", "format_gold", "render_deltas"]

# Wallet currency id of gold coins, stored in copper.
COIN_CURRENCY_ID = 1


def format_gold(coins: int) -> str:
    """Format a copper amount, e.g. ``123456`` -> ``"12g 34s 56c"``."""

    negative = coins < 0
    amount = abs(int(coins))
    gold, rest = divmod(amount, 10000)
    silver, copper = divmod(rest, 100)
    parts: List[str] = []
    if gold:
        parts.append(f"{gold}g")
    if silver:
        parts.append(f"{silver}s")
    parts.append(f"{copper}c")
    text = " ".join(parts)
    return f"-{text}" if negative else text


def format_duration(duration: timedelta) -> str:
    """Format ``duration`` as ``HH:MM:SS``."""

    total = max(int(duration.total_seconds()), 0)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def _currency_line(currency: CurrencyDelta) -> str:
    if currency.id == COIN_CURRENCY_ID:
        sign = "+" if currency.delta >= 0 else ""
        return f"{sign}{format_gold(currency.delta)}  {currency.name}"
    return f"{currency.delta:+d}  {currency.name}"


def render_deltas(
    items: Sequence[ItemDelta],
    currencies: Sequence[CurrencyDelta],
    *,
    show_zero: bool = False,
    show_items: bool = True,
    show_currencies: bool = True,
) -> str:
    """Return the currency and item sections as printable text."""

    lines: List[str] = []
    if show_currencies:
        lines.append("Currency")
        if currencies:
            lines.extend(f"  {_currency_line(c)}" for c in currencies)
        else:
            lines.append("  No currency changes yet.")
    if show_items:
        lines.append("Items")
        rows = [item for item in items if show_zero or item.delta != 0]
        if rows:
            for item in rows:
                rarity = f" [{item.rarity}]" if item.rarity else ""
                lines.append(f"  {item.delta:+6d}  {item.name}{rarity}")
        else:
            lines.append("  No item changes yet.")
    return "\n".join(lines)
