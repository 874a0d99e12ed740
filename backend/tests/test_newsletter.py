import json
from datetime import datetime, timedelta, timezone

import pytest

from cms.config import settings
from cms.newsletter import service
from cms.newsletter.schemas import SubscriberCreate
from cms.newsletter.store import JsonFileSubscriberStore, SqlSubscriberStore

NEWSLETTER = "/api/admin/newsletter"
PUBLIC_NEWSLETTER = "/api/public/newsletter"


async def seed(store, *emails, source="footer"):
    return [await service.add_subscriber(store, SubscriberCreate(email=e, source=source)) for e in emails]


async def test_public_subscribe_and_reactivate(client, db):
    resp = await client.post(f"{PUBLIC_NEWSLETTER}/subscribe", json={"email": "Obcan@Example.com"})
    assert resp.status_code == 201
    assert resp.json()["email"] == "obcan@example.com"

    resp = await client.post(f"{PUBLIC_NEWSLETTER}/subscribe", json={"email": "obcan@example.com"})
    assert resp.status_code == 409

    store = SqlSubscriberStore(db)
    subscriber = await store.get_by_email("obcan@example.com")
    resp = await client.post(f"{PUBLIC_NEWSLETTER}/unsubscribe", params={"token": subscriber.unsubscribe_token})
    assert resp.status_code == 200

    subscriber = await store.get_by_email("obcan@example.com")
    assert subscriber.is_active is False
    assert subscriber.unsubscribed_at is not None

    resp = await client.post(f"{PUBLIC_NEWSLETTER}/subscribe", json={"email": "obcan@example.com"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Subscription reactivated"
    subscriber = await store.get_by_email("obcan@example.com")
    assert subscriber.is_active is True
    assert subscriber.unsubscribed_at is None


async def test_unsubscribe_unknown_token(client):
    resp = await client.post(f"{PUBLIC_NEWSLETTER}/unsubscribe", params={"token": "nope"})
    assert resp.status_code == 404


async def test_subscribe_rejects_invalid_email(client):
    resp = await client.post(f"{PUBLIC_NEWSLETTER}/subscribe", json={"email": "not-an-email"})
    assert resp.status_code == 400


async def test_admin_add_list_update_delete(client, admin_headers):
    resp = await client.post(
        f"{NEWSLETTER}/subscribers",
        json={"email": "jana@example.com", "preferences": {"frequency": "monthly", "categories": ["sport"]}},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    created = resp.json()
    assert created["source"] == "admin"
    assert created["preferences"] == {"frequency": "monthly", "categories": ["sport"]}
    assert "unsubscribeToken" not in created

    resp = await client.post(f"{NEWSLETTER}/subscribers", json={"email": "JANA@example.com"}, headers=admin_headers)
    assert resp.status_code == 409

    await client.post(f"{NEWSLETTER}/subscribers", json={"email": "petr@example.com"}, headers=admin_headers)
    body = (await client.get(f"{NEWSLETTER}/subscribers", params={"search": "jana"}, headers=admin_headers)).json()
    assert [s["email"] for s in body["subscribers"]] == ["jana@example.com"]

    resp = await client.put(
        f"{NEWSLETTER}/subscribers/{created['id']}", json={"isActive": False}, headers=admin_headers
    )
    assert resp.json()["isActive"] is False
    assert resp.json()["unsubscribedAt"] is not None

    body = (await client.get(f"{NEWSLETTER}/subscribers", params={"activeOnly": "true"}, headers=admin_headers)).json()
    assert [s["email"] for s in body["subscribers"]] == ["petr@example.com"]

    resp = await client.delete(f"{NEWSLETTER}/subscribers/{created['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert (await client.delete(f"{NEWSLETTER}/subscribers/{created['id']}", headers=admin_headers)).status_code == 404


async def test_newsletter_admin_requires_admin_role(client, editor_headers):
    assert (await client.get(f"{NEWSLETTER}/subscribers", headers=editor_headers)).status_code == 403


async def test_bulk_deactivate_reports_missing_emails(client, db, admin_headers):
    await seed(SqlSubscriberStore(db), "a@example.com", "b@example.com", "c@example.com", "d@example.com")
    emails = ["a@example.com", "B@example.com", "c@example.com", "d@example.com", "missing@example.com"]

    resp = await client.post(
        f"{NEWSLETTER}/bulk-actions", json={"action": "deactivate", "emails": emails}, headers=admin_headers
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] == 4
    assert body["failed"] == 0
    assert body["notFound"] == ["missing@example.com"]
    assert {r["email"] for r in body["results"]} == {"a@example.com", "b@example.com", "c@example.com", "d@example.com"}

    stats = (await client.get(f"{NEWSLETTER}/stats", headers=admin_headers)).json()
    assert stats["total"] == 4
    assert stats["active"] == 0
    assert stats["inactive"] == 4
    assert stats["last30Days"] == 4


async def test_bulk_update_preferences_and_delete(client, db, admin_headers):
    await seed(SqlSubscriberStore(db), "a@example.com", "b@example.com")

    resp = await client.post(
        f"{NEWSLETTER}/bulk-actions",
        json={"action": "update_preferences", "emails": ["a@example.com"], "preferences": {"frequency": "daily"}},
        headers=admin_headers,
    )
    assert resp.json()["success"] == 1
    subscriber = await SqlSubscriberStore(db).get_by_email("a@example.com")
    assert subscriber.preferences == {"frequency": "daily", "categories": []}

    resp = await client.post(
        f"{NEWSLETTER}/bulk-actions", json={"action": "update_preferences", "emails": ["a@example.com"]},
        headers=admin_headers,
    )
    assert resp.status_code == 400

    resp = await client.post(
        f"{NEWSLETTER}/bulk-actions", json={"action": "delete", "emails": ["a@example.com", "b@example.com"]},
        headers=admin_headers,
    )
    assert resp.json()["success"] == 2
    assert (await client.get(f"{NEWSLETTER}/subscribers", headers=admin_headers)).json()["total"] == 0


async def test_csv_export(client, db, admin_headers):
    store = SqlSubscriberStore(db)
    _, second = await seed(store, "a@example.com", "b@example.com")
    await service.unsubscribe(store, second.unsubscribe_token)

    resp = await client.get(f"{NEWSLETTER}/export", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "attachment" in resp.headers["content-disposition"]

    lines = resp.text.strip().split("\n")
    assert lines[0] == "id,email,subscribed_at,is_active,source,unsubscribed_at"
    row_a = lines[1].split(",")
    row_b = lines[2].split(",")
    assert row_a[1] == "a@example.com"
    assert row_a[3] == "true"
    assert row_a[5] == ""
    assert row_a[2].endswith("+00:00")
    assert row_b[3] == "false"
    assert row_b[4] == "footer"
    assert row_b[5].endswith("+00:00")


async def test_campaign_drafts(client, db, admin_headers):
    await seed(SqlSubscriberStore(db), "a@example.com", "b@example.com")

    resp = await client.post(
        f"{NEWSLETTER}/campaigns",
        json={"name": "Zpravodaj", "subject": "Novinky z radnice", "content": "<p>Ahoj</p>"},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    campaign = resp.json()
    assert campaign["recipientCount"] == 2
    assert campaign["status"] == "draft"
    assert campaign["createdBy"] == "admin"

    resp = await client.put(
        f"{NEWSLETTER}/campaigns/{campaign['id']}", json={"status": "ready"}, headers=admin_headers
    )
    assert resp.json()["status"] == "ready"
    assert resp.json()["subject"] == "Novinky z radnice"

    assert len((await client.get(f"{NEWSLETTER}/campaigns", headers=admin_headers)).json()) == 1
    assert (await client.delete(f"{NEWSLETTER}/campaigns/{campaign['id']}", headers=admin_headers)).status_code == 200
    assert (await client.get(f"{NEWSLETTER}/campaigns/{campaign['id']}", headers=admin_headers)).status_code == 404


@pytest.fixture()
def json_store(tmp_path):
    return JsonFileSubscriberStore(tmp_path / "data" / "newsletter-subscribers.json")


async def test_json_store_add_and_lookup(json_store):
    a, b = await seed(json_store, "a@example.com", "b@example.com")
    assert (a.id, b.id) == (1, 2)
    assert (await json_store.get_by_email("b@example.com")).id == 2
    assert (await json_store.get_by_token(a.unsubscribe_token)).email == "a@example.com"

    data = json.loads(json_store.path.read_text(encoding="utf-8"))
    assert [s["email"] for s in data["subscribers"]] == ["a@example.com", "b@example.com"]
    assert data["nextId"] == 3
    # no temp files left behind
    assert [p.name for p in json_store.path.parent.iterdir()] == ["newsletter-subscribers.json"]


async def test_json_store_service_flow(json_store):
    await seed(json_store, "a@example.com", "b@example.com", "c@example.com")

    result = await service.bulk_action(json_store, "deactivate", ["a@example.com", "x@example.com"])
    assert (result.success, result.failed, result.not_found) == (1, 0, ["x@example.com"])

    subscriber, created = await service.subscribe(json_store, "A@example.com")
    assert created is False and subscriber.is_active

    page = await service.list_subscribers(json_store, page=1, limit=2)
    assert page.total == 3
    assert page.has_more is True

    await service.delete_subscriber(json_store, subscriber.id)
    csv_text = await service.export_csv(json_store)
    assert [line.split(",")[1] for line in csv_text.strip().split("\n")[1:]] == ["b@example.com", "c@example.com"]


async def test_api_uses_json_store_when_configured(client, admin_headers, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "NEWSLETTER_STORAGE", "json")
    monkeypatch.setattr(settings, "DATA_DIR", str(tmp_path))

    resp = await client.post(f"{PUBLIC_NEWSLETTER}/subscribe", json={"email": "soubor@example.com"})
    assert resp.status_code == 201
    assert (tmp_path / "newsletter-subscribers.json").exists()

    body = (await client.get(f"{NEWSLETTER}/subscribers", headers=admin_headers)).json()
    assert [s["email"] for s in body["subscribers"]] == ["soubor@example.com"]


async def test_json_store_tolerates_records_without_subscription_date(json_store):
    json_store.path.parent.mkdir(parents=True)
    json_store.path.write_text(
        json.dumps({
            "nextId": 3,
            "subscribers": [
                {"id": 1, "email": "stary@example.com", "is_active": True, "unsubscribe_token": "t1"},
                {"id": 2, "email": "upraveny@example.com", "updated_at": "2026-01-02T10:00:00+00:00",
                 "subscribed_at": "", "unsubscribe_token": "t2"},
            ],
        }),
        encoding="utf-8",
    )
    await seed(json_store, "novy@example.com")

    page = await service.list_subscribers(json_store)
    assert [s.email for s in page.items] == ["novy@example.com", "upraveny@example.com", "stary@example.com"]

    total, active, recent = await json_store.counts(datetime.now(timezone.utc) - timedelta(days=30))
    assert (total, active, recent) == (3, 3, 1)

    legacy = await json_store.get_by_email("upraveny@example.com")
    assert legacy.subscribed_at == datetime(2026, 1, 2, 10, tzinfo=timezone.utc)
