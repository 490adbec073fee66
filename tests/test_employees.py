"""Employee panel: role assignments joined with profiles."""
from hrms.models.models import Profile, RoleAssignment

from conftest import PASSWORD, auth_headers, make_company, make_user


def assignment_of(db, user):
    return db.query(RoleAssignment).filter(RoleAssignment.user_id == user.id).first()


def new_hire(**extra):
    data = {"email": "carol@acme.example", "first_name": "Carol", "last_name": "Cashier", "password": "start-123"}
    data.update(extra)
    return data


class TestCreate:

    def test_new_account(self, client, tenant):
        res = client.post("/employees", json=new_hire(branch_id=str(tenant.north.id)), headers=auth_headers(tenant.company_admin))
        assert res.status_code == 201
        body = res.json()
        assert body["role"] == "employee"
        assert body["branch_name"] == "North Shore"
        assert body["company_id"] == str(tenant.acme.id)

        login = client.post("/auth/login", json={"email": "carol@acme.example", "password": "start-123"})
        assert login.status_code == 200

    def test_existing_account_gets_a_role(self, client, tenant):
        res = client.post(
            "/employees",
            json=new_hire(email="drifter@example.com", first_name="Dee", last_name="Drifter", password=None),
            headers=auth_headers(tenant.company_admin),
        )
        assert res.status_code == 201
        assert res.json()["user_id"] == str(tenant.drifter.id)
        # the existing password is untouched
        assert client.post("/auth/login", json={"email": "drifter@example.com", "password": PASSWORD}).status_code == 200

    def test_password_required_for_new_email(self, client, tenant):
        res = client.post("/employees", json=new_hire(password=None), headers=auth_headers(tenant.company_admin))
        assert res.status_code == 400

    def test_duplicate_in_company(self, client, tenant):
        res = client.post(
            "/employees",
            json=new_hire(email="alice@acme.example", first_name="Alice", last_name="Again"),
            headers=auth_headers(tenant.company_admin),
        )
        assert res.status_code == 409

    def test_branch_of_other_company(self, client, tenant):
        res = client.post("/employees", json=new_hire(branch_id=str(tenant.globex_hq.id)), headers=auth_headers(tenant.company_admin))
        assert res.status_code == 400

    def test_unknown_role(self, client, tenant):
        res = client.post("/employees", json=new_hire(role="overlord"), headers=auth_headers(tenant.company_admin))
        assert res.status_code == 400

    def test_only_platform_admin_grants_admin(self, client, tenant):
        res = client.post("/employees", json=new_hire(role="admin"), headers=auth_headers(tenant.company_admin))
        assert res.status_code == 403
        res = client.post("/employees", json=new_hire(role="admin"), headers=auth_headers(tenant.platform_admin))
        assert res.status_code == 201

    def test_company_admin_cannot_demote_platform_admin(self, client, tenant, db):
        a = assignment_of(db, tenant.platform_admin)
        res = client.patch(f"/employees/{a.id}", json={"role": "employee"}, headers=auth_headers(tenant.company_admin))
        assert res.status_code == 403
        db.expire_all()
        assert assignment_of(db, tenant.platform_admin).role == "admin"

    def test_company_admin_cannot_remove_platform_admin(self, client, tenant, db):
        a = assignment_of(db, tenant.platform_admin)
        assert client.delete(f"/employees/{a.id}", headers=auth_headers(tenant.company_admin)).status_code == 403
        db.expire_all()
        assert assignment_of(db, tenant.platform_admin) is not None

    def test_employee_limit(self, client, db):
        small = make_company(db, "Small Shop", employees_limit=1)
        owner = make_user(db, "owner@small.example", role="company_admin", company=small)
        res = client.post("/employees", json=new_hire(email="extra@small.example"), headers=auth_headers(owner))
        assert res.status_code == 409

    def test_manager_cannot_hire(self, client, tenant):
        assert client.post("/employees", json=new_hire(), headers=auth_headers(tenant.manager)).status_code == 403


class TestList:

    def test_company_admin_sees_company(self, client, tenant):
        res = client.get("/employees", headers=auth_headers(tenant.company_admin))
        emails = {e["email"] for e in res.json()}
        assert emails == {
            "root@platform.example",
            "admin@acme.example",
            "manager@acme.example",
            "alice@acme.example",
            "bob@acme.example",
        }

    def test_manager_sees_own_branch(self, client, tenant):
        res = client.get("/employees", headers=auth_headers(tenant.manager))
        emails = {e["email"] for e in res.json()}
        assert "bob@acme.example" not in emails
        assert "alice@acme.example" in emails

    def test_search_and_role_filter(self, client, tenant):
        headers = auth_headers(tenant.company_admin)
        assert [e["first_name"] for e in client.get("/employees", params={"q": "ALI"}, headers=headers).json()] == ["Alice"]
        roles = {e["role"] for e in client.get("/employees", params={"role": "employee"}, headers=headers).json()}
        assert roles == {"employee"}

    def test_no_role_sees_nobody(self, client, tenant):
        assert client.get("/employees", headers=auth_headers(tenant.drifter)).json() == []


class TestUpdateAndDelete:

    def test_promote_and_move(self, client, tenant, db):
        a = assignment_of(db, tenant.bob)
        res = client.patch(
            f"/employees/{a.id}",
            json={"role": "assistant_manager", "branch_id": str(tenant.hq.id), "first_name": "Robert"},
            headers=auth_headers(tenant.company_admin),
        )
        assert res.status_code == 200
        body = res.json()
        assert body["role"] == "assistant_manager"
        assert body["branch_name"] == "Head Office"
        assert body["first_name"] == "Robert"

    def test_other_company_reads_as_missing(self, client, tenant, db):
        a = assignment_of(db, tenant.globex_worker)
        res = client.patch(f"/employees/{a.id}", json={"role": "manager"}, headers=auth_headers(tenant.company_admin))
        assert res.status_code == 404

    def test_cannot_remove_self(self, client, tenant, db):
        a = assignment_of(db, tenant.company_admin)
        assert client.delete(f"/employees/{a.id}", headers=auth_headers(tenant.company_admin)).status_code == 400

    def test_remove_keeps_profile(self, client, tenant, db):
        a = assignment_of(db, tenant.alice)
        assert client.delete(f"/employees/{a.id}", headers=auth_headers(tenant.company_admin)).status_code == 200
        db.expire_all()
        assert assignment_of(db, tenant.alice) is None
        assert db.query(Profile).filter(Profile.id == tenant.alice.id).first() is not None
        # the user is back to a role-less account
        assert client.get("/auth/me", headers=auth_headers(tenant.alice)).json()["role"] is None
