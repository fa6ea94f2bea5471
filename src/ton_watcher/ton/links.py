"""Payment links and amount helpers."""

from __future__ import annotations

import uuid
from decimal import Decimal
from urllib.parse import urlencode

NANO_PER_TON = 1_000_000_000


def to_nano(amount: str | int | Decimal, decimals: int = 9) -> int:
    """Convert a human amount ("1.5") to base units."""
    value = Decimal(str(amount)) * (Decimal(10) ** decimals)
    if value != value.to_integral_value():
        raise ValueError(f"{amount} has more than {decimals} decimal places")
    return int(value)


def from_nano(amount: int, decimals: int = 9) -> str:
    """Base units back to a human amount string, without trailing zeros."""
    value = Decimal(amount) / (Decimal(10) ** decimals)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def new_payment_id() -> str:
    """Unique comment identifying one invoice."""
    return str(uuid.uuid4())


def payment_link(wallet_address: str, amount: int, comment: str) -> str:
    """ton:// deeplink that opens the user's wallet with the transfer filled in.

    >>> payment_link("UQB7", 1500000000, "abc")
    'ton://transfer/UQB7?amount=1500000000&text=abc'
    """
    params = urlencode({"amount": str(amount), "text": comment})
    return f"ton://transfer/{wallet_address}?{params}"
