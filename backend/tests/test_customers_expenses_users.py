"""
Customer, expense and user administration tests.
"""

from datetime import timedelta

import pytest

from storefront.services import customer_service, expense_service, sales_service, user_service
from storefront.services.permission_service import AuthorizationError, Identity, get_permissions
from storefront.time_utils import to_utc_z, utcnow
from storefront.validation import ConflictError, NotFoundError, ValidationError


# =============================================================================
# CUSTOMERS
# =============================================================================


class TestCustomers:
    def test_create_and_update(self, db_session, admin):
        c = customer_service.upsert_customer(admin, {"name": "Mona", "phone": "01011112222"})
        assert c.is_active is True

        updated = customer_service.upsert_customer(admin, {"email": "mona@example.com"}, customer_id=c.id)
        assert updated.name == "Mona"
        assert updated.email == "mona@example.com"

    def test_name_required(self, db_session, admin):
        with pytest.raises(ValidationError) as exc:
            customer_service.upsert_customer(admin, {"phone": "0100"})
        assert exc.value.field == "name"

    def test_total_spent_counts_only_successful_sales(self, db_session, admin, settings, widget):
        c = customer_service.upsert_customer(admin, {"name": "Karim"})
        items = [{"product_id": widget.id, "quantity": 1}]

        sales_service.create_pos_sale(admin, {"items": items, "customer_id": c.id, "status": "success"}, settings)
        sales_service.create_pos_sale(admin, {"items": items, "customer_id": c.id}, settings)
        refunded = sales_service.create_pos_sale(
            admin, {"items": items, "customer_id": c.id, "status": "success"}, settings
        )
        sales_service.set_status(admin, refunded.document_number, "rejected")

        data = customer_service.customer_to_dict(customer_service.get_customer(admin, c.id))
        assert data["total_spent_cents"] == 2850

    def test_list_search_and_tombstone(self, db_session, admin):
        keep = customer_service.upsert_customer(admin, {"name": "Amal", "phone": "0155"})
        gone = customer_service.upsert_customer(admin, {"name": "Bassem"})
        customer_service.remove_customer(admin, gone.id)

        assert [c["id"] for c in customer_service.list_customers(admin)] == [keep.id]
        assert [c["id"] for c in customer_service.list_customers(admin, search="0155")] == [keep.id]
        assert len(customer_service.list_customers(admin, include_inactive=True)) == 2

    def test_unknown_customer(self, db_session, admin):
        with pytest.raises(NotFoundError):
            customer_service.get_customer(admin, 1234)

    def test_admin_only(self, db_session, shopper):
        with pytest.raises(AuthorizationError):
            customer_service.list_customers(shopper)


# =============================================================================
# EXPENSES
# =============================================================================


class TestExpenses:
    def test_blank_title_uses_category_label(self, db_session, admin):
        e = expense_service.create_expense(admin, {"amount_cents": 4500, "category": "Electricity", "title": ""})
        assert e.title == "Electricity Bill"
        assert e.created_by_user_id == admin.id

    def test_default_category(self, db_session, admin):
        e = expense_service.create_expense(admin, {"amount_cents": 100})
        assert e.category == "General"
        assert e.title == "General Expense"

    @pytest.mark.parametrize(
        "payload,field",
        [
            ({"amount_cents": 0}, "amount_cents"),
            ({"amount_cents": -10}, "amount_cents"),
            ({}, "amount_cents"),
            ({"amount_cents": 100, "category": "Rent"}, "category"),
            ({"amount_cents": 100, "vendor": "x"}, "vendor"),
        ],
    )
    def test_invalid(self, db_session, admin, payload, field):
        with pytest.raises(ValidationError) as exc:
            expense_service.create_expense(admin, payload)
        assert exc.value.field == field

    def test_listed_newest_first(self, db_session, admin):
        earlier = to_utc_z(utcnow() - timedelta(days=3))
        old = expense_service.create_expense(admin, {"amount_cents": 100, "occurred_at": earlier})
        new = expense_service.create_expense(admin, {"amount_cents": 200})
        assert [e.id for e in expense_service.list_expenses(admin)] == [new.id, old.id]

    def test_admin_only(self, db_session, shopper):
        with pytest.raises(AuthorizationError):
            expense_service.create_expense(shopper, {"amount_cents": 100})


# =============================================================================
# USERS
# =============================================================================


class TestUsers:
    def test_create_defaults_to_pending_info(self, db_session, admin):
        u = user_service.create_user_as(admin, {"username": "hoda"})
        assert u.role == "user"
        assert u.status == "pending_info"

    def test_duplicate_username(self, db_session, admin, shopper_user):
        with pytest.raises(ConflictError):
            user_service.create_user_as(admin, {"username": "user1"})

    @pytest.mark.parametrize(
        "payload,field",
        [
            ({"username": ""}, "username"),
            ({"username": "x", "role": "owner"}, "role"),
            ({"username": "x", "status": "banned"}, "status"),
            ({"username": "x", "password": "secret"}, "password"),
        ],
    )
    def test_invalid(self, db_session, admin, payload, field):
        with pytest.raises(ValidationError) as exc:
            user_service.create_user_as(admin, payload)
        assert exc.value.field == field

    def test_verification_unlocks_ordering(self, db_session, admin, unverified_user):
        assert "CREATE_ORDER" not in get_permissions(Identity.from_user(unverified_user))

        user = user_service.set_user_status(admin, unverified_user.id, "verified")
        assert "CREATE_ORDER" in get_permissions(Identity.from_user(user))

    def test_list_by_status(self, db_session, admin, unverified_user, shopper_user):
        pending = user_service.list_users(admin, status="pending_review")
        assert [u.username for u in pending] == ["newcomer"]

    def test_admin_only(self, db_session, shopper, other_user):
        with pytest.raises(AuthorizationError):
            user_service.set_user_status(shopper, other_user.id, "rejected")
