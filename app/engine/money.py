"""Integer minor-unit money helpers"""

from decimal import Decimal, ROUND_HALF_UP
from typing import NewType

# Amounts are integer minor currency units (cents) everywhere in the engine
Money = NewType("Money", int)

HUNDRED = Decimal("100")


def round_money(value) -> Money:
    """Round a fractional amount of minor units half-up to an integer"""
    return Money(int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)))


def percent_of(amount: int, percent) -> Money:
    """Percentage of an amount, rounded half-up"""
    return round_money(Decimal(amount) * Decimal(percent) / HUNDRED)
