# Overview: Profit calculator; operator margin on payment-service requests.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from .settings_service import ProfitSchedule


def round_half_up_cents(value: Decimal) -> int:
    """Round a fractional cent amount to a whole cent, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_profit(service_kind: str, amount_cents: int, schedule: ProfitSchedule) -> int:
    """
    amount * percentage / 100 + fixed, in cents.

    Pure: the schedule is whatever the caller holds at call time. A kind
    missing from the schedule contributes zero.
    """
    rule = schedule.rule_for(service_kind)
    variable = Decimal(amount_cents) * rule.percentage / Decimal(100)
    return round_half_up_cents(variable) + rule.fixed_cents


def compute_tax(subtotal_cents: int, tax_rate_bps: int) -> int:
    """Tax on a POS subtotal; rate in basis points (1400 = 14%)."""
    return round_half_up_cents(Decimal(subtotal_cents) * Decimal(tax_rate_bps) / Decimal(10_000))
