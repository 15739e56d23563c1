"""Tests for ingest default rule management."""
from tests.conftest import CAT_A1, CAT_B1, TENANT_B, TOPIC_A1

URL = "/api/ingest-default-rules"


def test_create_and_list(client, auth_headers, taxonomy):
    resp = client.post(
        URL, json={"sourceKey": " partner_x ", "defaultCategoryIds": [CAT_A1]}, headers=auth_headers()
    )
    assert resp.status_code == 201
    rule = resp.json()
    assert rule["sourceKey"] == "partner_x"
    assert rule["defaultCategoryIds"] == [CAT_A1]
    assert rule["defaultTopicIds"] == []

    listed = client.get(URL, headers=auth_headers()).json()["rules"]
    assert [r["id"] for r in listed] == [rule["id"]]
    assert client.get(URL, headers=auth_headers(TENANT_B)).json()["rules"] == []


def test_upsert_replaces_defaults(client, auth_headers, taxonomy):
    first = client.post(URL, json={"sourceKey": "feed", "defaultCategoryIds": [CAT_A1]}, headers=auth_headers()).json()
    second = client.post(URL, json={"sourceKey": "feed", "defaultTopicIds": [TOPIC_A1]}, headers=auth_headers()).json()

    assert second["id"] == first["id"]
    assert second["defaultCategoryIds"] == []
    assert second["defaultTopicIds"] == [TOPIC_A1]
    assert len(client.get(URL, headers=auth_headers()).json()["rules"]) == 1


def test_foreign_taxonomy_rejected(client, auth_headers, taxonomy):
    resp = client.post(URL, json={"sourceKey": "feed", "defaultCategoryIds": [CAT_B1]}, headers=auth_headers())
    assert resp.status_code == 400
    assert resp.json()["invalidCategoryIds"] == [CAT_B1]
    assert client.get(URL, headers=auth_headers()).json()["rules"] == []


def test_delete(client, auth_headers, taxonomy):
    rule = client.post(URL, json={"sourceKey": "feed"}, headers=auth_headers()).json()

    assert client.delete(f"{URL}/{rule['id']}", headers=auth_headers(TENANT_B)).status_code == 404
    assert client.delete(f"{URL}/{rule['id']}", headers=auth_headers()).json() == {"ok": True}
    assert client.delete(f"{URL}/{rule['id']}", headers=auth_headers()).status_code == 404


def test_requires_auth(client):
    assert client.get(URL).status_code == 401
