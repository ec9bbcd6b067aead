"""
Business Calculations
Money rounding, signed account balances and sale line arithmetic
"""
from decimal import Decimal, ROUND_HALF_UP
from dataclasses import dataclass
from typing import Union

from bizops.core.config import settings
from bizops.models.ledger import DEBIT_NORMAL_TYPES

Number = Union[Decimal, int, str, float]


def money(value: Number) -> Decimal:
    """Quantize to currency precision with half-up rounding"""
    exponent = Decimal(1).scaleb(-settings.CURRENCY_DECIMAL_PLACES)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)


ZERO = money(0)


def signed_delta(account_type: str, debit: Number, credit: Number) -> Decimal:
    """
    Balance change for a posting on the account's natural side.

    Asset and Expense accounts grow with debits; Liability, Equity and
    Revenue accounts grow with credits.
    """
    debit, credit = Decimal(debit or 0), Decimal(credit or 0)
    if account_type in DEBIT_NORMAL_TYPES:
        return money(debit - credit)
    return money(credit - debit)


@dataclass
class LineAmounts:
    """Computed amounts for one sale line"""
    gross_amount: Decimal
    discount_amount: Decimal
    total_price: Decimal
    tax_amount: Decimal


def calculate_line(quantity: int, unit_price: Number, discount_percent: Number = 0,
                   discount_amount: Number = 0, tax_rate: Number = 0) -> LineAmounts:
    """
    Price one sale line.

    ``total_price = quantity * unit_price - discount`` where the discount is
    the explicit amount, or the percentage of the gross when no amount is
    given; ``tax_amount = total_price * tax_rate / 100``.
    """
    gross = money(Decimal(quantity) * Decimal(str(unit_price)))
    discount = money(discount_amount or 0)
    if discount == ZERO and Decimal(str(discount_percent or 0)) > 0:
        discount = money(gross * Decimal(str(discount_percent)) / Decimal(100))
    if discount > gross:
        discount = gross
    total = money(gross - discount)
    tax = money(total * Decimal(str(tax_rate or 0)) / Decimal(100))
    return LineAmounts(gross_amount=gross, discount_amount=discount, total_price=total, tax_amount=tax)
