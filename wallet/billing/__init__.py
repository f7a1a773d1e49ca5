"""Billing cycle package."""

from wallet.billing.cycle import (
    DEFAULT_BILLING_START_DAY,
    END_OF_DAY,
    filter_cycle_transactions,
    get_billing_cycle,
    is_in_cycle,
    shift_months,
)

__all__ = [
    "DEFAULT_BILLING_START_DAY",
    "END_OF_DAY",
    "filter_cycle_transactions",
    "get_billing_cycle",
    "is_in_cycle",
    "shift_months",
]
