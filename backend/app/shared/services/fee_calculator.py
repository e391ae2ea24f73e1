"""
Platform fee calculations for invoices and dividends.

Both fees are a fixed base plus a percentage of the amount, capped:

    fee = base + round_half_up(amount * percentage / 100), at most max

All amounts are integer cents.
"""

from decimal import Decimal, ROUND_HALF_UP


INVOICE_BASE_FEE_CENTS = 50
INVOICE_PERCENTAGE = Decimal("1.5")
INVOICE_MAX_FEE_CENTS = 15_00

DIVIDEND_BASE_FEE_CENTS = 30
DIVIDEND_PERCENTAGE = Decimal("2.9")
DIVIDEND_MAX_FEE_CENTS = 30_00


def _fee_cents(amount_cents: int, base_cents: int, percentage: Decimal, max_cents: int) -> int:
    if amount_cents < 0:
        raise ValueError(f"Amount must not be negative, got {amount_cents} cents")

    percentage_fee = (Decimal(amount_cents) * percentage / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return min(base_cents + int(percentage_fee), max_cents)


def calculate_invoice_fee_cents(total_amount_in_usd_cents: int) -> int:
    """Fee charged on a contractor invoice. 50¢ + 1.5%, capped at $15."""
    return _fee_cents(total_amount_in_usd_cents, INVOICE_BASE_FEE_CENTS, INVOICE_PERCENTAGE, INVOICE_MAX_FEE_CENTS)


def calculate_dividend_fee_cents(total_amount_in_cents: int) -> int:
    """Fee charged on a dividend payout. 30¢ + 2.9%, capped at $30."""
    return _fee_cents(total_amount_in_cents, DIVIDEND_BASE_FEE_CENTS, DIVIDEND_PERCENTAGE, DIVIDEND_MAX_FEE_CENTS)
