from cvforge.core.plan_catalog import Feature
from cvforge.services import usage_service


def test_public_plans_listing(client):
    response = client.get("/api/plans")

    assert response.status_code == 200
    data = response.json()
    assert [p["id"] for p in data["plans"]] == ["basic", "pro", "premium"]
    assert data["plans"][2]["limits"]["aiRuns"] == -1
    assert [p["id"] for p in data["packages"]] == ["basic", "standard", "premium"]
    assert data["packages"][1]["edits_allowed"] == 10


def test_plan_status(client, db, clock, make_user, auth_headers):
    user = make_user("basic")
    usage_service.increment_usage(db, user.id, Feature.CV_GENERATIONS, now=clock())

    response = client.get("/api/user/plan-status", headers=auth_headers(user))

    assert response.status_code == 200
    data = response.json()
    assert data["plan"] == "basic"
    assert data["limits"]["cvGenerations"] == {"limit": 1, "used": 1, "remaining": 0, "unlimited": False}
    assert data["capabilities"] == []


def test_limit_endpoint_reports_required_plan(client, db, clock, make_user, auth_headers):
    user = make_user("pro")
    for _ in range(5):
        usage_service.increment_usage(db, user.id, Feature.AI_RUNS, now=clock())

    response = client.get("/api/user/limits/aiRuns", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json() == {
        "feature": "aiRuns",
        "reached": True,
        "current": 5,
        "limit": 5,
        "unlimited": False,
        "current_plan": "pro",
        "required_plan": "premium",
    }


def test_limit_endpoint_unknown_feature(client, make_user, auth_headers):
    user = make_user()
    assert client.get("/api/user/limits/videoCalls", headers=auth_headers(user)).status_code == 422


def test_usage_rolls_over_with_the_month(client, db, clock, make_user, auth_headers):
    user = make_user("basic")
    usage_service.increment_usage(db, user.id, Feature.CV_GENERATIONS, now=clock())
    assert client.get("/api/user/limits/cvGenerations", headers=auth_headers(user)).json()["reached"]

    clock.now = clock.now.replace(month=4, day=1)

    data = client.get("/api/user/limits/cvGenerations", headers=auth_headers(user)).json()
    assert not data["reached"]
    assert data["current"] == 0


def test_upgrade_plan(client, db, clock, make_user, auth_headers):
    user = make_user("basic")
    usage_service.increment_usage(db, user.id, Feature.CV_GENERATIONS, now=clock())

    response = client.post("/api/user/upgrade-plan", json={"plan": "pro"}, headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["previous_plan"] == "basic"
    assert response.json()["new_plan"] == "pro"

    status = client.get("/api/user/plan-status", headers=auth_headers(user)).json()
    assert status["plan"] == "pro"
    assert status["limits"]["cvGenerations"]["used"] == 0


def test_upgrade_rejections(client, make_user, auth_headers):
    user = make_user("pro")
    headers = auth_headers(user)

    same = client.post("/api/user/upgrade-plan", json={"plan": "pro"}, headers=headers)
    assert same.status_code == 400
    assert same.json()["detail"]["error"] == "invalid_upgrade_path"

    down = client.post("/api/user/upgrade-plan", json={"plan": "basic"}, headers=headers)
    assert down.status_code == 400

    unknown = client.post("/api/user/upgrade-plan", json={"plan": "gold"}, headers=headers)
    assert unknown.status_code == 400
    assert unknown.json()["detail"]["error"] == "unknown_plan"


def test_database_failure_is_reported_as_unavailable(client, make_user, auth_headers, monkeypatch):
    from sqlalchemy.exc import OperationalError

    from cvforge.services.entitlement_service import EntitlementChecker

    user = make_user()

    def broken(self, user_id):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(EntitlementChecker, "get_plan_status", broken)

    response = client.get("/api/user/plan-status", headers=auth_headers(user))

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "store_unavailable"
