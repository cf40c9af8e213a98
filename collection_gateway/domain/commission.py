"""Commission rule for field collections"""

from decimal import Decimal, ROUND_HALF_UP
from collection_gateway.domain.models import Loan, ZERO


def calculate_commission(amount: Decimal, expected_weekly: Decimal, rate: Decimal) -> Decimal:
    """
    Commission earned for collecting `amount` on a loan.

    A collection covering k full weekly installments earns k times the
    per-installment rate; anything short of one full installment earns nothing.

    Example:
        expected 500, rate 20:
        amount 400  -> 0
        amount 500  -> 20
        amount 1000 -> 40
        amount 1499 -> 40
    """
    if expected_weekly <= 0 or rate <= 0 or amount <= 0:
        return ZERO

    multiplier = int(amount // expected_weekly)
    return rate * multiplier if multiplier >= 1 else ZERO


def default_commission(loan: Loan) -> Decimal:
    """Per-installment commission shown for a fresh entry (rate rounded to a whole unit)"""
    if loan.commission_rate <= 0:
        return ZERO
    return loan.commission_rate.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
