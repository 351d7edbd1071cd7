# cartorder/domain/money.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

# waluty bez czesci ulamkowej; reszta ma 2 miejsca po przecinku
ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW", "VND", "CLP", "ISK", "HUF", "TWD", "UGX"}


def display_precision(currency: str | None) -> int:
    if currency and currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return 0
    return 2


def line_total(price: Decimal, quantity: int) -> Decimal:
    return price * quantity


def items_total(items: Iterable) -> Decimal:
    """Dokladna suma price * quantity, bez zaokraglania."""
    return sum((line_total(i.price, i.quantity) for i in items), Decimal("0"))


def round_for_display(amount: Decimal, currency: str | None) -> Decimal:
    exponent = Decimal(1).scaleb(-display_precision(currency))
    return amount.quantize(exponent, rounding=ROUND_HALF_UP)
