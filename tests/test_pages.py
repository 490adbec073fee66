"""Page routes for the client shell, and how they share paths with the API."""
HTML = {"Accept": "text/html,application/xhtml+xml"}


def test_home_is_html(client):
    res = client.get("/")
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/html")
    assert 'id="root"' in res.text


def test_client_route_shares_api_path(client):
    # a browser navigation gets the shell
    res = client.get("/branches", headers=HTML)
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/html")
    # an API call without a token is refused
    assert client.get("/branches").status_code == 401


def test_unknown_path(client):
    res = client.get("/no/such/<page>")
    assert res.status_code == 404
    assert "Page not found" in res.text
    assert "<page>" not in res.text


def test_pricing_plans(client):
    plans = client.get("/pricing/plans").json()["plans"]
    assert [p["id"] for p in plans] == ["demo", "basic", "professional", "enterprise"]
    assert plans[-1]["branches_limit"] is None


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
