"""Display helpers shared by the marketplace views."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union


def format_address(address: str) -> str:
    """Shorten ``0x1234...abcd`` style for display."""

    if not address or len(address) <= 10:
        return address or ''
    return f"{address[:6]}...{address[-4:]}"


def format_token_amount(amount: Union[str, int, float, Decimal]) -> str:
    """Render a token amount the way prices are shown: ``$1,234.50``.

    MNEE is a USD stablecoin, so amounts are shown as dollars with two places.
    """

    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Not a numeric amount: {amount!r}") from None
    quantized = value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    sign = '-' if quantized < 0 else ''
    return f"{sign}${abs(quantized):,.2f}"


__all__ = ['format_address', 'format_token_amount']
