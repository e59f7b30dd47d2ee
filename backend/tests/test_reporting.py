"""
Reporting tests: profit summary, activity feed and dashboard counters.
"""

from datetime import timedelta

import pytest

from storefront.models import SaleLine
from storefront.services import expense_service, reporting_service, sales_service
from storefront.services.permission_service import AuthorizationError
from storefront.time_utils import utcnow
from storefront.validation import ValidationError


@pytest.fixture
def day_of_trading(db_session, admin, shopper, settings, widget, gadget):
    """
    Widget x2 (collected 50.00, margin 20.00), electricity 500.00 (fee 10.00),
    a rejected gadget order and a 10.00 expense.
    """
    order = sales_service.create_shop_order(shopper, {"items": [{"product_id": widget.id, "quantity": 2}]}, settings)
    bill = sales_service.create_service_request(
        shopper, {"service_id": "electricity", "identifier": "777", "amount_cents": 50000}, settings
    )
    refused = sales_service.create_shop_order(
        shopper, {"items": [{"product_id": gadget.id, "quantity": 1}]}, settings
    )
    sales_service.set_status(admin, refused.document_number, "rejected")
    expense = expense_service.create_expense(admin, {"amount_cents": 1000, "category": "Water"})
    return {"order": order, "bill": bill, "refused": refused, "expense": expense}


class TestProfitSummary:
    def test_totals(self, day_of_trading, admin):
        report = reporting_service.profit_summary(admin)

        assert report["transaction_count"] == 2
        assert report["total_collection_cents"] == 55000
        assert report["service_profit_cents"] == 1000
        assert report["product_profit_cents"] == 2000
        assert report["total_expenses_cents"] == 1000
        assert report["net_profit_cents"] == 2000
        # 20.00 / 550.00
        assert report["margin_percent"] == 3.64
        assert report["start"] is None and report["end"] is None

    def test_missing_cost_snapshot_uses_current_cost(self, db_session, day_of_trading, admin, widget):
        line = db_session.query(SaleLine).filter_by(sale_id=day_of_trading["order"].id).one()
        line.unit_cost_cents_at_sale = None
        widget.cost_cents = 1000
        db_session.commit()

        assert reporting_service.profit_summary(admin)["product_profit_cents"] == 3000

    def test_range_excludes_other_days(self, day_of_trading, admin):
        tomorrow = (utcnow() + timedelta(days=1)).date().isoformat()
        report = reporting_service.profit_summary(admin, start=tomorrow)
        assert report["transaction_count"] == 0
        assert report["total_collection_cents"] == 0
        assert report["total_expenses_cents"] == 0
        assert report["margin_percent"] == 0.0
        assert report["start"] == f"{tomorrow}T00:00:00Z"

    def test_range_covering_today(self, day_of_trading, admin):
        yesterday = (utcnow() - timedelta(days=1)).date().isoformat()
        report = reporting_service.profit_summary(admin, start=yesterday)
        assert report["total_collection_cents"] == 55000

    def test_same_day_range_includes_that_day(self, day_of_trading, admin):
        today = utcnow().date().isoformat()
        report = reporting_service.profit_summary(admin, start=today, end=today)
        assert report["transaction_count"] == 2
        assert report["total_collection_cents"] == 55000
        assert report["total_expenses_cents"] == 1000
        assert report["end"] == f"{today}T23:59:59Z"

    def test_inverted_range(self, db_session, admin):
        with pytest.raises(ValidationError):
            reporting_service.profit_summary(admin, start="2024-02-01", end="2024-01-01")

    def test_bad_date(self, db_session, admin):
        with pytest.raises(ValidationError):
            reporting_service.profit_summary(admin, start="last tuesday")

    def test_empty_store(self, db_session, admin):
        report = reporting_service.profit_summary(admin)
        assert report["net_profit_cents"] == 0
        assert report["margin_percent"] == 0.0

    def test_requires_reports_permission(self, db_session, shopper):
        with pytest.raises(AuthorizationError):
            reporting_service.profit_summary(shopper)


class TestActivity:
    def test_merges_sales_and_expenses(self, day_of_trading, admin):
        feed = reporting_service.recent_activity(admin)
        assert len(feed) == 4
        assert {e["type"] for e in feed} == {"sale", "expense"}

        expense = next(e for e in feed if e["type"] == "expense")
        assert expense["description"] == "Water Bill"
        assert expense["amount_cents"] == 1000

        bill = next(e for e in feed if e["id"] == day_of_trading["bill"].document_number)
        assert bill["profit_cents"] == 1000
        assert bill["occurred_at"].endswith("Z")

        times = [e["occurred_at"] for e in feed]
        assert times == sorted(times, reverse=True)

    def test_limit(self, day_of_trading, admin):
        assert len(reporting_service.recent_activity(admin, limit=2)) == 2

    def test_limit_out_of_range(self, db_session, admin):
        with pytest.raises(ValidationError):
            reporting_service.recent_activity(admin, limit=0)


class TestDashboard:
    def test_counters(self, db_session, day_of_trading, admin, widget):
        widget.stock = 5
        db_session.commit()

        board = reporting_service.dashboard(admin)
        assert board["today_collection_cents"] == 55000
        assert board["today_transaction_count"] == 2
        assert board["pending_count"] == 2
        assert board["low_stock_count"] == 1
        assert board["low_stock_threshold"] == 10

    def test_requires_reports_permission(self, db_session, shopper):
        with pytest.raises(AuthorizationError):
            reporting_service.dashboard(shopper)
