"""
Currency Formatting

The one place amounts become text: Brazilian grouping with a period for
thousands and a comma for cents, e.g. "R$ 1.234,56".
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union


def format_currency(value: Union[Decimal, int, float, str], symbol: str = "R$") -> str:
    """
    Format an amount for display.

    >>> format_currency(Decimal("1234.5"))
    'R$ 1.234,50'
    >>> format_currency(Decimal("-20"))
    '-R$ 20,00'
    """
    amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    # 1,234.56 -> 1.234,56
    text = f"{abs(amount):,.2f}".translate(str.maketrans(",.", ".,"))
    return f"{sign}{symbol} {text}"
