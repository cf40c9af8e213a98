"""Distribution Validator - reclassify part of collected cash as a bank deposit"""

from decimal import Decimal

from collection_gateway.domain.exceptions import ValidationError
from collection_gateway.domain.models import Distribution, TotalsView


def calculate_distribution(totals: TotalsView, bank_transfer_amount: Decimal) -> Distribution:
    """
    Split the totals into the cash and bank amounts to record.

    The transfer moves money from cash to bank, so the total never changes.
    A transfer larger than the available cash is flagged, not clamped.
    """
    return Distribution(
        bank_transfer_amount=bank_transfer_amount,
        cash_recorded=totals.cash - bank_transfer_amount,
        bank_recorded=totals.bank + bank_transfer_amount,
        exceeds_cash=bank_transfer_amount > totals.cash,
    )


def validate_distribution(distribution: Distribution) -> None:
    """
    Raises:
        ValidationError: transfer is negative or larger than the available cash
    """
    if distribution.bank_transfer_amount < 0:
        raise ValidationError("Bank transfer amount cannot be negative")
    if distribution.exceeds_cash:
        raise ValidationError(
            f"Bank transfer {distribution.bank_transfer_amount} exceeds available cash "
            f"{distribution.cash_recorded + distribution.bank_transfer_amount}"
        )
