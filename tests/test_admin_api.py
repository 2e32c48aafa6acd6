from cvforge.core.plan_catalog import Feature
from cvforge.services import order_service, usage_service


def test_non_admin_is_forbidden(client, make_user, auth_headers):
    user = make_user()

    response = client.get("/api/admin/users", headers=auth_headers(user))

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "forbidden"


def test_admin_lists_users(client, make_user, auth_headers):
    admin = make_user(role="admin")
    make_user()

    response = client.get("/api/admin/users", headers=auth_headers(admin))

    assert response.status_code == 200
    assert len(response.json()) == 2


def test_admin_can_downgrade(client, db, clock, make_user, auth_headers):
    admin = make_user(role="admin")
    user = make_user("premium")
    usage_service.increment_usage(db, user.id, Feature.AI_RUNS, now=clock())

    response = client.patch(f"/api/admin/users/{user.id}/plan", json={"plan": "basic"}, headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json() == {"user_id": user.id, "previous_plan": "premium", "new_plan": "basic"}
    assert usage_service.get_usage_count(db, user.id, Feature.AI_RUNS, now=clock()) == 1


def test_admin_set_unknown_plan(client, make_user, auth_headers):
    admin = make_user(role="admin")
    user = make_user()

    response = client.patch(f"/api/admin/users/{user.id}/plan", json={"plan": "gold"}, headers=auth_headers(admin))

    assert response.status_code == 400


def test_admin_reset_usage(client, db, clock, make_user, auth_headers):
    admin = make_user(role="admin")
    user = make_user("basic")
    usage_service.increment_usage(db, user.id, Feature.CV_GENERATIONS, now=clock())

    response = client.post(f"/api/admin/users/{user.id}/reset-usage", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json() == {"user_id": user.id, "counters_reset": 1}
    assert usage_service.get_usage_count(db, user.id, Feature.CV_GENERATIONS, now=clock()) == 0

    missing = client.post("/api/admin/users/no-such-user/reset-usage", headers=auth_headers(admin))
    assert missing.status_code == 404


def test_admin_orders_and_sales(client, db, catalog, clock, make_user, auth_headers):
    admin = make_user(role="admin")
    user = make_user()
    done = order_service.create_order(db, catalog, user.id, "premium")
    order_service.complete_order(db, done.id, clock=clock)
    order_service.create_order(db, catalog, user.id, "basic")

    completed = client.get("/api/admin/orders?status=completed", headers=auth_headers(admin))
    assert [o["id"] for o in completed.json()] == [done.id]

    sales = client.get("/api/admin/sales", headers=auth_headers(admin)).json()
    assert sales["total_revenue"] == 15000
    assert sales["by_package"] == {"premium": {"orders": 1, "revenue": 15000}}
    assert sales["by_status"]["pending"] == 1
