"""Tests for the /movements endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

from backend.main import create_app
from core.repositories.movements import ResourceKind
from core.settings import AppSettings

NEW_ENTRY = {
    "fecha": "20/10/2025",
    "codigoProducto": "AF2025",
    "descripcion": "Afloja Todo Aerosol 300ml",
    "precioUnitario": 3.0,
    "cantidad": 2,
    "responsable": "  ",
}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_list_entries_returns_data_and_pagination(client):
    response = client.get("/movements/entries", params={"limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}
    assert [row["id"] for row in body["data"]] == [3, 2]
    assert body["data"][0]["fecha"] == "12/10/2025"


def test_list_exits_with_filters(client):
    response = client.get(
        "/movements/exits",
        params={"startDate": "2025-10-18", "categoria": "epp", "search": "beta"},
    )

    assert response.status_code == 200
    rows = response.json()["data"]
    assert [row["id"] for row in rows] == [2]
    assert rows[0]["proyecto"] == "Proyecto Beta"


def test_list_rejects_invalid_date(client):
    response = client.get("/movements/entries", params={"startDate": "31/31/2025"})
    assert response.status_code == 422


def test_create_entry(client, movement_repository):
    response = client.post("/movements/entries", json=NEW_ENTRY)

    assert response.status_code == 201
    body = response.json()
    assert body["id"] == 4
    assert body["fecha"] == "20/10/2025"
    assert body["responsable"] is None
    assert len(movement_repository.snapshot(ResourceKind.ENTRIES)) == 4


def test_create_rejects_missing_fields(client):
    response = client.post("/movements/exits", json={"codigoProducto": "X"})
    assert response.status_code == 422


def test_create_rejects_non_positive_quantity(client):
    response = client.post("/movements/entries", json=dict(NEW_ENTRY, cantidad=0))
    assert response.status_code == 422


def test_update_unknown_entry_returns_404(client):
    response = client.patch("/movements/entries/99", json={"cantidad": 3})
    assert response.status_code == 404


def test_update_exit_partial(client):
    response = client.patch("/movements/exits/1", json={"proyecto": "Proyecto Gamma"})

    assert response.status_code == 200
    body = response.json()
    assert body["proyecto"] == "Proyecto Gamma"
    assert body["cantidad"] == 4


def test_update_exit_quantity(client, movement_repository):
    response = client.patch("/movements/exits/2/quantity", json={"cantidad": 6})

    assert response.status_code == 200
    assert response.json()["cantidad"] == 6
    exits = {record.id: record for record in movement_repository.snapshot(ResourceKind.EXITS)}
    assert exits[2].quantity == 6


def test_delete_entry(client, movement_repository):
    response = client.delete("/movements/entries/1")

    assert response.status_code == 204
    assert response.content == b""
    assert 1 not in [record.id for record in movement_repository.snapshot(ResourceKind.ENTRIES)]
    assert client.delete("/movements/entries/1").status_code == 404


def test_api_key_is_enforced_when_configured(movement_repository, monkeypatch):
    monkeypatch.delenv("MOVEMENTS_API_KEY", raising=False)
    client = TestClient(
        create_app(service=movement_repository, settings=AppSettings(movements_api_key="secret"))
    )

    assert client.get("/movements/entries").status_code == 401
    assert client.get("/movements/entries", headers={"X-API-KEY": "wrong"}).status_code == 401
    assert client.get("/movements/entries", headers={"X-API-KEY": "secret"}).status_code == 200


def test_api_key_comes_from_app_settings_not_environment(client, monkeypatch):
    monkeypatch.setenv("MOVEMENTS_API_KEY", "secret")

    assert client.get("/movements/entries").status_code == 200
