"""
Snapshot export/import and demo seeding.
"""

import json

import pytest

from storefront.extensions import db
from storefront.models import Product, Sale, User
from storefront.services import sales_service, settings_service, store_service
from storefront.validation import ConflictError, ValidationError


@pytest.fixture
def populated(db_session, admin, shopper, settings, widget):
    """A small store: one order (rejected), one bill payment, one tweak to settings."""
    order = sales_service.create_shop_order(shopper, {"items": [{"product_id": widget.id, "quantity": 2}]}, settings)
    bill = sales_service.create_service_request(
        shopper, {"service_id": "water", "identifier": "321", "amount_cents": 4000}, settings
    )
    sales_service.set_status(admin, order.document_number, "rejected")
    settings_service.update_settings(admin, {"theme": "dark", "service_profits": {"water": {"fixed_cents": 650}}})
    return {"order": order.document_number, "bill": bill.document_number}


class TestExport:
    def test_has_every_collection(self, db_session):
        state = store_service.export_state()
        assert set(state) == set(store_service.SNAPSHOT_KEYS)
        assert state["settings"]["tax_rate_bps"] == 1400

    def test_sales_newest_first_with_lines(self, populated):
        state = store_service.export_state()
        assert [s["id"] for s in state["sales"]] == [populated["bill"], populated["order"]]
        order = state["sales"][1]
        assert order["status"] == "rejected"
        assert order["items"][0]["unit_cost_cents_at_sale"] == 1500

    def test_is_json_serializable(self, populated):
        json.dumps(store_service.export_state())


class TestImport:
    def test_replace_restores_the_same_store(self, db_session, populated):
        before = store_service.export_state()

        result = store_service.import_state(before, replace=True)
        assert result["imported"] == {"products": 1, "customers": 0, "sales": 2, "expenses": 0, "users": 2}

        db_session.expire_all()
        after = store_service.export_state()
        assert after["sales"] == before["sales"]
        assert after["users"] == before["users"]
        assert after["settings"] == before["settings"]
        assert after["products"][0]["stock"] == before["products"][0]["stock"] == 100

    def test_stored_profit_is_not_recomputed(self, db_session, populated):
        state = store_service.export_state()
        bill = next(s for s in state["sales"] if s["id"] == populated["bill"])
        assert bill["profit_cents"] == 500

        store_service.import_state(state, replace=True)
        db_session.expire_all()
        stored = db_session.query(Sale).filter_by(document_number=populated["bill"]).one()
        assert stored.profit_cents == 500
        assert settings_service.get_settings().service_profits.rule_for("water").fixed_cents == 650

    def test_into_empty_store(self, db_session, populated):
        state = store_service.export_state()
        for table in reversed(db.metadata.sorted_tables):
            db_session.execute(table.delete())
        db_session.commit()

        store_service.import_state(state)
        db_session.expire_all()
        docs = [s.document_number for s in db_session.query(Sale).order_by(Sale.id.desc())]
        assert docs == [populated["bill"], populated["order"]]

    def test_refuses_to_overwrite_without_replace(self, db_session, populated):
        state = store_service.export_state()
        with pytest.raises(ConflictError):
            store_service.import_state(state)

    def test_missing_collection(self, db_session):
        state = store_service.export_state()
        del state["expenses"]
        with pytest.raises(ValidationError) as exc:
            store_service.import_state(state)
        assert exc.value.field == "expenses"

    def test_malformed_record_rolls_back(self, db_session):
        state = store_service.export_state()
        state["products"] = [{"name": "No price or barcode"}]
        with pytest.raises(ValidationError):
            store_service.import_state(state)
        assert db_session.query(Product).count() == 0


class TestDemoSeed:
    def test_seed_is_idempotent(self, db_session):
        assert store_service.seed_demo_data() == {"users": 3, "products": 2}
        assert store_service.seed_demo_data() == {"users": 0, "products": 0}

        admin = db_session.query(User).filter_by(username="admin").one()
        assert admin.role == "admin"
        assert admin.status == "verified"
        barcodes = {p.barcode for p in db_session.query(Product)}
        assert barcodes == {"123456", "789012"}


class TestCli:
    def test_init_with_demo(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "init", "--with-demo"])
        assert result.exit_code == 0, result.output
        assert "3 users, 2 products" in result.output

    def test_issue_token(self, app, db_session, shopper_user, client):
        result = app.test_cli_runner().invoke(args=["users", "issue-token", "user1"])
        assert result.exit_code == 0, result.output
        token = result.output.strip().splitlines()[-1]

        response = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.get_json()["user"]["username"] == "user1"

    def test_issue_token_unknown_user(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["users", "issue-token", "ghost"])
        assert result.exit_code != 0
        assert "User not found" in result.output

    def test_export_to_stdout(self, app, populated):
        result = app.test_cli_runner().invoke(args=["state", "export"])
        assert result.exit_code == 0, result.output
        assert len(json.loads(result.output)["sales"]) == 2

    def test_export_then_import(self, app, populated, tmp_path):
        runner = app.test_cli_runner()
        path = tmp_path / "store.json"
        assert runner.invoke(args=["state", "export", "--output", str(path)]).exit_code == 0

        refused = runner.invoke(args=["state", "import", str(path)])
        assert refused.exit_code != 0

        result = runner.invoke(args=["state", "import", str(path), "--replace"])
        assert result.exit_code == 0, result.output
        assert "sales=2" in result.output
