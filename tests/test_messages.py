"""Direct messages between colleagues."""
from hrms.models.models import Message

from conftest import auth_headers


def send(client, sender, recipient, content="Can you cover Saturday?"):
    return client.post(f"/messages/thread/{recipient.id}", json={"content": content}, headers=auth_headers(sender))


def test_send_returns_thread(client, tenant):
    res = send(client, tenant.alice, tenant.bob)
    assert res.status_code == 201
    thread = res.json()
    assert len(thread) == 1
    assert thread[0]["sender_id"] == str(tenant.alice.id)
    assert thread[0]["read"] is False


def test_content_is_trimmed(client, tenant):
    res = send(client, tenant.alice, tenant.bob, content="  hi  ")
    assert res.json()[0]["content"] == "hi"


def test_empty_message_is_not_stored(client, tenant, db):
    res = send(client, tenant.alice, tenant.bob, content="   ")
    assert res.status_code == 400
    assert res.json()["detail"] == "Empty message"
    assert db.query(Message).count() == 0


def test_cannot_message_self(client, tenant):
    assert send(client, tenant.alice, tenant.alice).status_code == 400


def test_only_same_company(client, tenant):
    assert send(client, tenant.alice, tenant.globex_worker).status_code == 403
    assert send(client, tenant.drifter, tenant.alice).status_code == 403


def test_contacts_and_unread(client, tenant):
    send(client, tenant.alice, tenant.bob)
    send(client, tenant.alice, tenant.bob, content="Or Sunday?")

    contacts = client.get("/messages/contacts", headers=auth_headers(tenant.bob)).json()
    by_email = {c["email"]: c for c in contacts}
    assert "bob@acme.example" not in by_email
    assert "admin@globex.example" not in by_email
    assert by_email["alice@acme.example"]["unread"] == 2
    assert by_email["manager@acme.example"]["unread"] == 0

    assert client.get("/messages/unread_count", headers=auth_headers(tenant.bob)).json() == {"total": 2}


def test_opening_thread_marks_read(client, tenant):
    send(client, tenant.alice, tenant.bob)
    send(client, tenant.bob, tenant.alice, content="Sure")

    thread = client.get(f"/messages/thread/{tenant.alice.id}", headers=auth_headers(tenant.bob)).json()
    assert [m["content"] for m in thread] == ["Can you cover Saturday?", "Sure"]
    from_alice = [m for m in thread if m["sender_id"] == str(tenant.alice.id)]
    assert all(m["read"] for m in from_alice)
    # bob's own message stays unread until alice opens the thread
    assert client.get("/messages/unread_count", headers=auth_headers(tenant.bob)).json() == {"total": 0}
    assert client.get("/messages/unread_count", headers=auth_headers(tenant.alice)).json() == {"total": 1}


def test_thread_is_private(client, tenant):
    send(client, tenant.alice, tenant.bob)
    thread = client.get(f"/messages/thread/{tenant.bob.id}", headers=auth_headers(tenant.manager)).json()
    assert thread == []
