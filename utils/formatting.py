"""
Formatting utilities.
"""

from typing import Union


def format_currency(amount: Union[int, float], currency: str = "ILS") -> str:
    """
    Format an amount as whole-unit currency.

    Args:
        amount: The amount in whole units (rounded for display).
        currency: Currency code (default ILS).

    Returns:
        Formatted currency string.
    """
    symbols = {
        "ILS": "₪",
        "GBP": "£",
        "USD": "$",
        "EUR": "€",
    }
    symbol = symbols.get(currency, currency + " ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{int(round(abs(amount))):,}"


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{value:.{decimals}f}%"
