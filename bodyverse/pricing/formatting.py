"""
Currency symbols and price display formatting.

Purely presentational helpers: no I/O and no failure modes.
"""

from typing import Dict, List, Optional

CURRENCY_SYMBOLS: Dict[str, str] = {
    "NGN": "₦",
    "USD": "$",
    "GBP": "£",
    "EUR": "€",
    "ZAR": "R",
    "KES": "KSh",
    "GHS": "GH₵",
}


def normalize_currency_code(code: Optional[str]) -> str:
    """Strip and upper-case a currency code; ``None`` becomes an empty string."""
    if code is None:
        return ""
    return str(code).strip().upper()


def symbol_for(code: str) -> str:
    """
    Get the display symbol for a currency code.

    Returns:
        str: Mapped symbol, or the code itself when no symbol is known.
    """
    return CURRENCY_SYMBOLS.get(normalize_currency_code(code), code)


def format_price(amount: float, code: str) -> str:
    """
    Format an amount for display, e.g. ``format_price(12.99, "USD") -> "$12.99"``.

    The amount is fixed to exactly two decimal digits; no thousands separator.
    """
    return f"{symbol_for(code)}{float(amount):.2f}"


def supported_currencies() -> List[Dict[str, str]]:
    """List the currencies that have a display symbol."""
    return [{"code": code, "symbol": symbol} for code, symbol in CURRENCY_SYMBOLS.items()]
