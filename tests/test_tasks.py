"""Task panel: who may assign, update and delete."""
from conftest import auth_headers


def create_task(client, creator, assignee, **extra):
    payload = {"title": "Restock shelves", "assigned_to": str(assignee.id)}
    payload.update(extra)
    return client.post("/tasks", json=payload, headers=auth_headers(creator))


def test_manager_assigns_branch_employee(client, tenant):
    res = create_task(client, tenant.manager, tenant.alice, priority="high", due_date="2024-06-01")
    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "pending"
    assert body["priority"] == "high"
    assert body["branch_id"] == str(tenant.hq.id)
    assert body["assigned_by"] == str(tenant.manager.id)


def test_manager_cannot_assign_other_branch(client, tenant):
    assert create_task(client, tenant.manager, tenant.bob).status_code == 403


def test_manager_cannot_assign_admin(client, tenant):
    assert create_task(client, tenant.manager, tenant.company_admin).status_code == 403


def test_company_admin_assigns_anywhere_in_company(client, tenant):
    res = create_task(client, tenant.company_admin, tenant.bob)
    assert res.status_code == 201
    # the creator's branch wins over the assignee's
    assert res.json()["branch_id"] == str(tenant.hq.id)


def test_assignee_outside_company(client, tenant):
    assert create_task(client, tenant.company_admin, tenant.globex_worker).status_code == 400


def test_employee_cannot_create(client, tenant):
    assert create_task(client, tenant.alice, tenant.alice).status_code == 403


def test_title_required(client, tenant):
    assert create_task(client, tenant.manager, tenant.alice, title=" ").status_code == 422


def test_employee_lists_own_tasks(client, tenant):
    create_task(client, tenant.manager, tenant.alice, title="Mine")
    create_task(client, tenant.company_admin, tenant.bob, title="Bob's")

    titles = [t["title"] for t in client.get("/tasks", headers=auth_headers(tenant.alice)).json()]
    assert titles == ["Mine"]
    assert client.get("/tasks", headers=auth_headers(tenant.drifter)).json() == []
    assert client.get("/tasks", headers=auth_headers(tenant.globex_admin)).json() == []


def test_status_filter(client, tenant):
    task = create_task(client, tenant.manager, tenant.alice).json()
    create_task(client, tenant.manager, tenant.alice, title="Later")
    client.patch(f"/tasks/{task['id']}/status", json={"status": "completed"}, headers=auth_headers(tenant.alice))

    res = client.get("/tasks", params={"status": "completed"}, headers=auth_headers(tenant.manager))
    assert [t["id"] for t in res.json()] == [task["id"]]


def test_assignee_updates_status(client, tenant):
    task = create_task(client, tenant.manager, tenant.alice).json()
    res = client.patch(f"/tasks/{task['id']}/status", json={"status": "in_progress"}, headers=auth_headers(tenant.alice))
    assert res.status_code == 200
    assert res.json()["status"] == "in_progress"

    res = client.patch(f"/tasks/{task['id']}/status", json={"status": "done"}, headers=auth_headers(tenant.alice))
    assert res.status_code == 422


def test_other_employee_cannot_see_task(client, tenant):
    task = create_task(client, tenant.manager, tenant.alice).json()
    res = client.patch(f"/tasks/{task['id']}/status", json={"status": "completed"}, headers=auth_headers(tenant.bob))
    assert res.status_code == 404


def test_full_update_is_privileged(client, tenant):
    task = create_task(client, tenant.manager, tenant.alice).json()
    assert client.patch(f"/tasks/{task['id']}", json={"title": "x"}, headers=auth_headers(tenant.alice)).status_code == 403
    res = client.patch(f"/tasks/{task['id']}", json={"title": "Restock aisle 4", "priority": "urgent"}, headers=auth_headers(tenant.manager))
    assert res.json()["title"] == "Restock aisle 4"
    assert res.json()["priority"] == "urgent"


def test_delete_permissions(client, tenant):
    task = create_task(client, tenant.manager, tenant.alice).json()
    assert client.delete(f"/tasks/{task['id']}", headers=auth_headers(tenant.alice)).status_code == 403
    assert client.delete(f"/tasks/{task['id']}", headers=auth_headers(tenant.manager)).status_code == 200
    assert client.get(f"/tasks/{task['id']}", headers=auth_headers(tenant.manager)).status_code == 404


def test_reassignment_follows_assignee_branch(client, tenant):
    # the platform admin has no branch of their own
    task = create_task(client, tenant.platform_admin, tenant.alice).json()
    assert task["branch_id"] == str(tenant.hq.id)

    res = client.patch(f"/tasks/{task['id']}", json={"assigned_to": str(tenant.bob.id)}, headers=auth_headers(tenant.platform_admin))
    assert res.status_code == 200
    assert res.json()["assigned_to"] == str(tenant.bob.id)
    assert res.json()["branch_id"] == str(tenant.north.id)
    # out of the head office manager's branch now
    assert client.get(f"/tasks/{task['id']}", headers=auth_headers(tenant.manager)).status_code == 404
