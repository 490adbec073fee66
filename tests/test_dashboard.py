"""Role dashboards."""
from conftest import auth_headers


def dashboard(client, user):
    res = client.get("/dashboard", headers=auth_headers(user))
    assert res.status_code == 200
    return res.json()


def test_company_admin(client, tenant):
    body = dashboard(client, tenant.company_admin)
    assert body["panels"] == ["overview", "company", "branches", "tasks", "reports", "messages"]
    overview = body["overview"]
    assert overview["kind"] == "admin"
    assert overview["company"]["name"] == "Acme Corp"
    assert [b["name"] for b in overview["branches"]] == ["Head Office", "North Shore"]
    assert overview["branch_count"] == 2
    assert overview["employee_count"] == 5
    assert overview["employee_usage_percent"] == 50
    assert overview["role_counts"] == {"admin": 1, "company_admin": 1, "employee": 2, "manager": 1}


def test_manager(client, tenant):
    client.post("/tasks", json={"title": "Open store", "assigned_to": str(tenant.alice.id)}, headers=auth_headers(tenant.manager))
    overview = dashboard(client, tenant.manager)["overview"]
    assert overview["kind"] == "manager"
    assert [m["email"] for m in overview["team"]] == ["alice@acme.example"]
    assert overview["task_total"] == 1
    counts = {h["status"]: h["count"] for h in overview["status_histogram"]}
    assert counts == {"pending": 1, "in_progress": 0, "completed": 0, "cancelled": 0}


def test_employee(client, tenant):
    client.post("/tasks", json={"title": "Open store", "assigned_to": str(tenant.alice.id)}, headers=auth_headers(tenant.manager))
    client.post("/reports", json={"summary": "Opened"}, headers=auth_headers(tenant.alice))
    overview = dashboard(client, tenant.alice)["overview"]
    assert overview["kind"] == "employee"
    assert [t["title"] for t in overview["recent_tasks"]] == ["Open store"]
    assert len(overview["recent_reports"]) == 1
    assert overview["today_report_submitted"] is True


def test_no_role(client, tenant):
    body = dashboard(client, tenant.drifter)
    assert body["panels"] == []
    assert body["overview"] is None
    assert "does not have access" in body["message"]
