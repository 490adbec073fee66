"""Sign-up, sign-in, token refresh and the session endpoint."""
from conftest import PASSWORD, auth_headers


SIGNUP = {"email": "new@acme.example", "password": "hunter22", "first_name": "New", "last_name": "Hire"}


class TestSignUp:

    def test_creates_account_and_returns_tokens(self, client):
        res = client.post("/auth/signup", json=SIGNUP)
        assert res.status_code == 201
        body = res.json()
        assert body["access_token"] and body["refresh_token"]

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["first_name"] == "New"
        assert me.json()["role"] is None

    def test_duplicate_email(self, client):
        client.post("/auth/signup", json=SIGNUP)
        res = client.post("/auth/signup", json={**SIGNUP, "email": "NEW@acme.example"})
        assert res.status_code == 409

    def test_blank_names_rejected(self, client):
        res = client.post("/auth/signup", json={**SIGNUP, "first_name": "   "})
        assert res.status_code == 422

    def test_missing_field_rejected(self, client):
        payload = {k: v for k, v in SIGNUP.items() if k != "last_name"}
        assert client.post("/auth/signup", json=payload).status_code == 422


class TestSignIn:

    def test_valid_credentials(self, client, tenant):
        res = client.post("/auth/login", json={"email": "alice@acme.example", "password": PASSWORD})
        assert res.status_code == 200
        assert res.json()["token_type"] == "bearer"

    def test_wrong_password(self, client, tenant):
        res = client.post("/auth/login", json={"email": "alice@acme.example", "password": "nope-nope"})
        assert res.status_code == 401

    def test_refresh(self, client, tenant):
        tokens = client.post("/auth/login", json={"email": "alice@acme.example", "password": PASSWORD}).json()
        res = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert res.status_code == 200
        # an access token is not a refresh token
        res = client.post("/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert res.status_code == 400

    def test_refresh_token_cannot_call_api(self, client, tenant):
        tokens = client.post("/auth/login", json={"email": "alice@acme.example", "password": PASSWORD}).json()
        res = client.get("/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
        assert res.status_code == 401


class TestSession:

    def test_anonymous_is_redirected(self, client):
        res = client.get("/auth/session")
        assert res.status_code == 200
        assert res.json() == {"authenticated": False, "redirect_to": "/auth"}

    def test_bad_token_is_redirected(self, client):
        res = client.get("/auth/session", headers={"Authorization": "Bearer garbage"})
        assert res.json()["authenticated"] is False

    def test_manager_session(self, client, tenant):
        res = client.get("/auth/session", headers=auth_headers(tenant.manager))
        body = res.json()
        assert body["authenticated"] is True
        assert body["identity"]["role"] == "manager"
        assert body["identity"]["is_manager"] is True
        assert body["identity"]["branch_name"] == "Head Office"
        assert body["panels"] == ["overview", "tasks", "reports", "messages"]

    def test_protected_route_needs_token(self, client):
        assert client.get("/tasks").status_code == 401


def test_update_own_profile(client, tenant):
    res = client.patch("/auth/me", json={"first_name": "Alicia", "phone": "604-555-0100"}, headers=auth_headers(tenant.alice))
    assert res.status_code == 200
    assert res.json()["first_name"] == "Alicia"
    assert client.get("/auth/me", headers=auth_headers(tenant.alice)).json()["first_name"] == "Alicia"
