"""
Profit calculator tests.

amount * percentage / 100 + fixed, in cents, rounded half up.
"""

from decimal import Decimal

from storefront.services.profit_service import compute_profit, compute_tax
from storefront.services.settings_service import (
    DEFAULT_PROFIT_SCHEDULE,
    ProfitRule,
    ProfitSchedule,
)


def test_fixed_fee_services():
    assert compute_profit("electricity", 50000, DEFAULT_PROFIT_SCHEDULE) == 1000
    assert compute_profit("water", 12000, DEFAULT_PROFIT_SCHEDULE) == 500
    assert compute_profit("wallet", 100, DEFAULT_PROFIT_SCHEDULE) == 500


def test_percentage_service_rounds_half_up():
    # 5% of 123.45 = 6.1725 -> 6.17
    assert compute_profit("installments", 12345, DEFAULT_PROFIT_SCHEDULE) == 617
    # 5% of 0.10 = 0.005 -> 0.01
    assert compute_profit("installments", 10, DEFAULT_PROFIT_SCHEDULE) == 1


def test_zero_margin_services():
    assert compute_profit("deposit", 99999, DEFAULT_PROFIT_SCHEDULE) == 0
    assert compute_profit("recharge", 5000, DEFAULT_PROFIT_SCHEDULE) == 0


def test_unknown_kind_yields_zero():
    assert compute_profit("lottery", 10000, DEFAULT_PROFIT_SCHEDULE) == 0


def test_percentage_and_fixed_combine():
    schedule = ProfitSchedule(rules={"bill": ProfitRule(Decimal("2.5"), 300)})
    # 2.5% of 200.00 = 5.00, plus 3.00
    assert compute_profit("bill", 20000, schedule) == 800


def test_pos_tax_in_basis_points():
    assert compute_tax(2500, 1400) == 350
    assert compute_tax(0, 1400) == 0
    # 14% of 0.03 = 0.0042 -> 0
    assert compute_tax(3, 1400) == 0
    # 14% of 0.25 = 0.035 -> 0.04
    assert compute_tax(25, 1400) == 4
