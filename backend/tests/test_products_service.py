"""
Inventory tests: catalog maintenance, tombstoning and stock checks.
"""

import re

import pytest

from storefront.models import Product
from storefront.services import products_service
from storefront.services.permission_service import AuthorizationError
from storefront.validation import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)


class TestUpsert:
    def test_create_applies_defaults_and_generates_barcode(self, db_session, admin):
        p = products_service.upsert_product(admin, {"name": "Cable", "price_cents": 1500, "barcode": ""})

        assert p.id is not None
        assert p.category == "General"
        assert p.cost_cents == 0
        assert p.stock == 0
        assert p.is_active is True
        assert re.fullmatch(r"\d{6}", p.barcode)

    def test_create_with_explicit_fields(self, db_session, admin):
        p = products_service.upsert_product(admin, {
            "name": "Charger",
            "price_cents": 30000,
            "cost_cents": 21000,
            "stock": 12,
            "category": "Electronics",
            "barcode": "CHG001",
            "max_per_order": 2,
        })
        assert p.barcode == "CHG001"
        assert p.max_per_order == 2
        assert db_session.get(Product, p.id).stock == 12

    def test_update_is_partial(self, db_session, admin, widget):
        p = products_service.upsert_product(admin, {"price_cents": 2750}, product_id=widget.id)
        assert p.price_cents == 2750
        assert p.name == "Standard Widget"
        assert p.barcode == "123456"

    def test_missing_required_fields(self, db_session, admin):
        with pytest.raises(ValidationError) as exc:
            products_service.upsert_product(admin, {"name": "No price"})
        assert exc.value.field == "price_cents"

    @pytest.mark.parametrize(
        "payload,field",
        [
            ({"name": "X", "price_cents": -1}, "price_cents"),
            ({"name": "X", "price_cents": "12.5"}, "price_cents"),
            ({"name": "X", "price_cents": 100, "stock": -3}, "stock"),
            ({"name": "X", "price_cents": 100, "max_per_order": 0}, "max_per_order"),
            ({"name": "X", "price_cents": 100, "barcode": "12-34"}, "barcode"),
            ({"name": "X", "price_cents": 100, "version_id": 9}, "version_id"),
        ],
    )
    def test_invalid_payloads(self, db_session, admin, payload, field):
        with pytest.raises(ValidationError) as exc:
            products_service.upsert_product(admin, payload)
        assert exc.value.field == field

    def test_duplicate_barcode_on_create(self, db_session, admin, widget):
        with pytest.raises(ConflictError) as exc:
            products_service.upsert_product(admin, {"name": "Copy", "price_cents": 100, "barcode": "123456"})
        assert exc.value.field == "barcode"

    def test_duplicate_barcode_on_update(self, db_session, admin, widget, gadget):
        with pytest.raises(ConflictError):
            products_service.upsert_product(admin, {"barcode": "123456"}, product_id=gadget.id)

    def test_update_unknown_product(self, db_session, admin):
        with pytest.raises(NotFoundError):
            products_service.upsert_product(admin, {"price_cents": 1}, product_id=404)

    def test_non_admin_cannot_edit(self, db_session, shopper, widget):
        with pytest.raises(AuthorizationError):
            products_service.upsert_product(shopper, {"price_cents": 1}, product_id=widget.id)


class TestRemoval:
    def test_remove_tombstones(self, db_session, admin, widget, gadget):
        products_service.remove_product(admin, widget.id)

        assert db_session.get(Product, widget.id).is_active is False
        names = [p["name"] for p in products_service.list_products()["items"]]
        assert names == ["Premium Gadget"]

        everything = products_service.list_products(include_inactive=True)
        assert everything["count"] == 2

    def test_removed_product_still_resolves(self, db_session, admin, widget):
        products_service.remove_product(admin, widget.id)
        assert products_service.get_product(widget.id).name == "Standard Widget"

    def test_non_admin_cannot_remove(self, db_session, shopper, widget):
        with pytest.raises(AuthorizationError):
            products_service.remove_product(shopper, widget.id)


class TestListing:
    def test_search_matches_name_or_barcode(self, db_session, widget, gadget):
        assert [p["id"] for p in products_service.list_products(search="premium")["items"]] == [gadget.id]
        assert [p["id"] for p in products_service.list_products(search="1234")["items"]] == [widget.id]

    def test_pagination(self, db_session, widget, gadget):
        result = products_service.list_products(page=2, per_page=1)
        assert result["count"] == 1
        assert result["items"][0]["name"] == "Standard Widget"
        assert result["pagination"] == {
            "page": 2,
            "per_page": 1,
            "total": 2,
            "total_pages": 2,
            "has_next": False,
            "has_prev": True,
        }


class TestStock:
    def test_ensure_in_stock(self, db_session, widget):
        assert products_service.ensure_in_stock(widget.id, 100).id == widget.id

    def test_ensure_in_stock_reports_shortfall(self, db_session, widget):
        with pytest.raises(InsufficientStockError) as exc:
            products_service.ensure_in_stock(widget.id, 101)
        assert exc.value.details == {"product_id": widget.id, "requested_quantity": 101, "on_hand": 100}

    def test_ensure_in_stock_rejects_bad_quantity(self, db_session, widget):
        with pytest.raises(ValidationError):
            products_service.ensure_in_stock(widget.id, 0)

    def test_ensure_in_stock_respects_max_per_order(self, db_session, widget):
        widget.max_per_order = 1
        db_session.commit()
        with pytest.raises(ValidationError):
            products_service.ensure_in_stock(widget.id, 2)

    def test_adjust_stock_clamps_by_default(self, db_session, widget):
        products_service.adjust_stock(widget.id, -150)
        db_session.commit()
        assert db_session.get(Product, widget.id).stock == 0

    def test_adjust_stock_strict(self, db_session, widget):
        with pytest.raises(InsufficientStockError):
            products_service.adjust_stock(widget.id, -150, clamp=False)
        db_session.rollback()
        assert db_session.get(Product, widget.id).stock == 100
