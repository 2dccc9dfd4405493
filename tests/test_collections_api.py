"""
Admin supplier/collection surfaces and the supplier portal.
"""
from decimal import Decimal

from milkflow.extensions import db as _db
from milkflow.models import MilkCollection, Supplier
from milkflow.services.collections import local_today


def add_collection(client, supplier, qty="120.50", rate="35.00", **extra):
    return client.post(
        "/api/admin/collections",
        json={"supplier_id": str(supplier.id), "quantity_liters": qty, "rate_per_liter": rate, **extra},
    )


def test_requires_login(client):
    assert client.get("/api/admin/dashboard").status_code == 401
    assert client.get("/api/me/dashboard").status_code == 401


def test_supplier_gets_generic_denial_on_admin_routes(supplier_client, other_supplier):
    resp = supplier_client.delete(f"/api/admin/suppliers/{other_supplier.id}")
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "You do not have permission to perform this action."}


def test_create_collection_computes_total(admin_client, supplier):
    resp = add_collection(admin_client, supplier)
    assert resp.status_code == 201
    record = resp.get_json()["collection"]
    assert record["total_amount"] == "4217.50"
    assert record["rate_per_liter"] == "35.00"
    assert record["collection_date"] == local_today().isoformat()
    assert record["added_by"] == "Asha Admin"


def test_total_is_never_taken_from_the_client(admin_client, supplier):
    resp = add_collection(admin_client, supplier, qty="10", rate="30", total_amount="1.00")
    assert resp.get_json()["collection"]["total_amount"] == "300.00"


def test_stored_total_matches_quantity_times_rate(admin_client, supplier):
    for qty, rate in [("1.25", "0.10"), ("33.33", "33.33"), ("9.99", "41.50")]:
        assert add_collection(admin_client, supplier, qty=qty, rate=rate).status_code == 201
    for qty, rate, fat in [("3", "40", "3.33"), ("17.35", "33.33", "7.77"), ("9999.99", "999.99", "99.99")]:
        resp = add_collection(admin_client, supplier, qty=qty, rate=rate, fat_percentage=fat, payment_mode="fat_adjusted")
        assert resp.status_code == 201

    _db.session.expire_all()
    for record in _db.session.query(MilkCollection).all():
        expected = (record.quantity_liters * record.rate_per_liter).quantize(Decimal("0.01"), rounding="ROUND_HALF_UP")
        assert record.total_amount == expected


def test_fat_adjusted_mode(app, admin_client, supplier):
    resp = add_collection(admin_client, supplier, qty="10", rate="40.00", fat_percentage="4.5", payment_mode="fat_adjusted")
    record = resp.get_json()["collection"]
    assert record["rate_per_liter"] == "41.80"
    assert record["total_amount"] == "418.00"
    assert record["fat_percentage"] == "4.50"


def test_fat_adjusted_rate_is_stored_unrounded(admin_client, supplier):
    resp = add_collection(admin_client, supplier, qty="3", rate="40", fat_percentage="3.33", payment_mode="fat_adjusted")
    record = resp.get_json()["collection"]
    assert record["rate_per_liter"] == "41.332"
    assert record["total_amount"] == "124.00"

    _db.session.expire_all()
    stored = _db.session.query(MilkCollection).one()
    assert stored.rate_per_liter == Decimal("41.332")
    assert (stored.quantity_liters * stored.rate_per_liter).quantize(Decimal("0.01"), rounding="ROUND_HALF_UP") == stored.total_amount


def test_explicit_collection_date(admin_client, supplier):
    resp = add_collection(admin_client, supplier, collection_date="2026-10-01")
    assert resp.get_json()["collection"]["collection_date"] == "2026-10-01"


def test_validation_errors_are_per_field(admin_client, supplier):
    resp = add_collection(admin_client, supplier, qty="0", rate="abc")
    assert resp.status_code == 400
    assert set(resp.get_json()["fields"]) == {"quantity_liters", "rate_per_liter"}


def test_inactive_supplier_leaves_selection_but_keeps_history(admin_client, supplier, other_supplier):
    add_collection(admin_client, supplier)

    resp = admin_client.post(f"/api/admin/suppliers/{supplier.id}/toggle-active")
    assert resp.get_json()["supplier"]["is_active"] is False

    codes = [s["supplier_code"] for s in admin_client.get("/api/admin/suppliers/selectable").get_json()["suppliers"]]
    assert codes == ["SUP-002"]

    history = admin_client.get("/api/admin/collections").get_json()["collections"]
    assert [c["supplier_code"] for c in history] == ["SUP-001"]

    resp = add_collection(admin_client, supplier)
    assert resp.status_code == 400
    assert resp.get_json()["fields"] == {"supplier_id": "Supplier is inactive"}


def test_supplier_crud(admin_client):
    resp = admin_client.post(
        "/api/admin/suppliers",
        json={"supplier_code": "SUP-100", "full_name": "Lakshmi", "phone": "9876500100", "address": ""},
    )
    assert resp.status_code == 201
    supplier_id = resp.get_json()["supplier"]["id"]

    dup = admin_client.post(
        "/api/admin/suppliers",
        json={"supplier_code": "SUP-100", "full_name": "Other", "phone": "9876500101"},
    )
    assert dup.status_code == 400
    assert dup.get_json()["fields"] == {"supplier_code": "Supplier code already exists"}

    resp = admin_client.patch(f"/api/admin/suppliers/{supplier_id}", json={"address": "Village Road 4"})
    assert resp.get_json()["supplier"]["address"] == "Village Road 4"

    listed = admin_client.get("/api/admin/suppliers?q=laksh").get_json()["suppliers"]
    assert [s["supplier_code"] for s in listed] == ["SUP-100"]


def test_deleting_supplier_removes_its_collections(admin_client, supplier):
    supplier_id = supplier.id
    add_collection(admin_client, supplier)
    assert admin_client.delete(f"/api/admin/suppliers/{supplier_id}").status_code == 200

    _db.session.expire_all()
    assert _db.session.get(Supplier, supplier_id) is None
    assert _db.session.query(MilkCollection).count() == 0


def test_delete_collection(admin_client, supplier):
    record_id = add_collection(admin_client, supplier).get_json()["collection"]["id"]
    assert admin_client.delete(f"/api/admin/collections/{record_id}").status_code == 200
    assert admin_client.delete(f"/api/admin/collections/{record_id}").status_code == 404


def test_collection_list_filters(admin_client, supplier, other_supplier):
    add_collection(admin_client, supplier, collection_date="2026-10-01")
    add_collection(admin_client, other_supplier, collection_date="2026-10-02")

    by_name = admin_client.get("/api/admin/collections?q=meena").get_json()["collections"]
    assert [c["supplier_code"] for c in by_name] == ["SUP-002"]

    by_code = admin_client.get("/api/admin/collections?q=sup-001").get_json()["collections"]
    assert [c["supplier_code"] for c in by_code] == ["SUP-001"]

    by_date = admin_client.get("/api/admin/collections?date=2026-10-01").get_json()["collections"]
    assert [c["collection_date"] for c in by_date] == ["2026-10-01"]

    assert admin_client.get("/api/admin/collections?date=yesterday").status_code == 400


def test_collection_list_is_capped(app, admin_client, supplier):
    for _ in range(3):
        add_collection(admin_client, supplier)
    assert len(admin_client.get("/api/admin/collections?limit=2").get_json()["collections"]) == 2


def test_admin_dashboard(admin_client, supplier, other_supplier):
    add_collection(admin_client, supplier, qty="10", rate="35", fat_percentage="4")
    add_collection(admin_client, other_supplier, qty="5", rate="35")
    add_collection(admin_client, supplier, qty="7", rate="35", fat_percentage="6")

    stats = admin_client.get("/api/admin/dashboard").get_json()
    assert stats["total_suppliers"] == 2
    assert stats["today_collection"] == "22.00"
    assert stats["today_payment"] == "770.00"
    assert stats["avg_fat"] == "5.00"


def test_supplier_dashboard_example(admin_client, supplier_client, supplier, other_supplier):
    add_collection(admin_client, supplier, qty="120.50", rate="35.00")
    add_collection(admin_client, other_supplier, qty="99", rate="35.00")

    body = supplier_client.get("/api/me/dashboard").get_json()
    assert body["supplier"]["supplier_code"] == "SUP-001"
    assert body["summary"]["total_collections"] == "120.50"
    assert body["summary"]["total_amount"] == "4217.50"
    assert len(body["collections"]) == 1

    history = supplier_client.get("/api/me/collections").get_json()["collections"]
    assert [c["supplier_code"] for c in history] == ["SUP-001"]


def test_unlinked_supplier_identity_gets_empty_state(app, db):
    from conftest import PASSWORD, login, make_user

    make_user("9876500055", "supplier", "New Supplier")
    client = app.test_client()
    login(client, "9876500055", PASSWORD)

    body = client.get("/api/me/dashboard").get_json()
    assert body["supplier"] is None
    assert body["collections"] == []
    assert body["summary"]["total_amount"] == "0.00"


def test_profile_update(supplier_client):
    resp = supplier_client.patch("/api/me/profile", json={"full_name": "Ravi K"})
    assert resp.get_json()["profile"]["full_name"] == "Ravi K"
    assert supplier_client.patch("/api/me/profile", json={"full_name": "R4vi"}).status_code == 400


def test_role_management(admin_client, supplier_user, admin_user):
    roles = admin_client.get("/api/admin/roles").get_json()["roles"]
    assert {(r["user_id"], r["role"]) for r in roles} == {(admin_user.id, "admin"), (supplier_user.id, "supplier")}

    resp = admin_client.post("/api/admin/roles", json={"user_id": supplier_user.id, "role": "admin"})
    assert resp.status_code == 201
    assignment_id = resp.get_json()["role"]["id"]

    assert admin_client.delete(f"/api/admin/roles/{assignment_id}").status_code == 200

    own_admin = next(r for r in roles if r["user_id"] == admin_user.id)
    assert admin_client.delete(f"/api/admin/roles/{own_admin['id']}").status_code == 400


def test_admin_relink_endpoint(admin_client, supplier_user):
    from conftest import make_supplier

    resp = admin_client.post(f"/api/admin/users/{supplier_user.id}/relink-supplier")
    assert resp.get_json() == {"linked": False, "supplier": None}

    make_supplier("SUP-020", "Ravi Kumar", supplier_user.profile.phone)
    resp = admin_client.post(f"/api/admin/users/{supplier_user.id}/relink-supplier")
    assert resp.get_json()["supplier"]["supplier_code"] == "SUP-020"


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["database"] == "ok"


def test_supplier_active_flag_must_be_boolean(admin_client, supplier):
    resp = admin_client.patch(f"/api/admin/suppliers/{supplier.id}", json={"is_active": "false", "address": "Changed"})
    assert resp.status_code == 400
    assert resp.get_json()["fields"] == {"is_active": "Active status must be true or false"}

    resp = admin_client.patch(f"/api/admin/suppliers/{supplier.id}", json={"is_active": False})
    assert resp.get_json()["supplier"]["is_active"] is False
    assert resp.get_json()["supplier"]["address"] is None


def test_daily_summary_counts_whole_days(admin_client, supplier):
    add_collection(admin_client, supplier, qty="10", rate="30", collection_date="2026-10-01")
    add_collection(admin_client, supplier, qty="5", rate="30", collection_date="2026-10-01")
    add_collection(admin_client, supplier, qty="2", rate="30", collection_date="2026-10-02")
    add_collection(admin_client, supplier, qty="1", rate="30", collection_date="2026-09-30")

    days = admin_client.get("/api/admin/daily-summary?days=2").get_json()["days"]
    assert [(d["date"], d["entry_count"], d["total_liters"]) for d in days] == [
        ("2026-10-02", 1, "2.00"),
        ("2026-10-01", 2, "15.00"),
    ]


def test_daily_summary_drops_a_day_cut_by_the_row_cap(app, admin_client, supplier):
    add_collection(admin_client, supplier, qty="10", rate="30", collection_date="2026-10-01")
    add_collection(admin_client, supplier, qty="5", rate="30", collection_date="2026-10-01")
    add_collection(admin_client, supplier, qty="2", rate="30", collection_date="2026-10-02")

    row_cap = app.config["DAILY_SUMMARY_ROW_LIMIT"]
    app.config["DAILY_SUMMARY_ROW_LIMIT"] = 2
    try:
        days = admin_client.get("/api/admin/daily-summary").get_json()["days"]
    finally:
        app.config["DAILY_SUMMARY_ROW_LIMIT"] = row_cap
    assert [(d["date"], d["entry_count"]) for d in days] == [("2026-10-02", 1)]
