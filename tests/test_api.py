"""HTTP adapter tests with an injected store."""

import pytest
from fastapi.testclient import TestClient

from tourdesk.api import create_app
from tourdesk.db import create_engine
from tourdesk.stores import LocalStore, RemoteStore


@pytest.fixture(params=["local", "remote"])
def client(request, tmp_path):
    """Test client whose app serves a store on a temporary SQLite file."""
    store_cls = LocalStore if request.param == "local" else RemoteStore
    url = f"sqlite+aiosqlite:///{tmp_path / 'api.db'}"
    app = create_app(store_factory=lambda: store_cls(create_engine(url)))
    with TestClient(app) as client:
        yield client


TOUR = {
    "tour_code": "AT-250901",
    "adults": 2,
    "children": 1,
    "start_date": "2025-01-01",
    "end_date": "2025-01-03",
}


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["backend"] in {"local", "remote"}


class TestCatalogEndpoints:

    def test_crud(self, client):
        response = client.post("/catalog/provinces", json={"name": "Hà Nội"})
        assert response.status_code == 201
        province = response.json()
        assert province["status"] == "active"

        assert client.get(f"/catalog/provinces/{province['id']}").json()["name"] == "Hà Nội"
        assert client.patch(f"/catalog/provinces/{province['id']}", json={"name": "Hanoi"}).status_code == 204
        assert client.post(f"/catalog/provinces/{province['id']}/toggle-status").status_code == 204

        listed = client.get("/catalog/provinces", params={"status": "inactive"}).json()
        assert [p["name"] for p in listed] == ["Hanoi"]

        copy = client.post(f"/catalog/provinces/{province['id']}/duplicate").json()
        assert copy["name"] == "Hanoi (Copy)"

        assert client.delete(f"/catalog/provinces/{province['id']}").status_code == 204
        assert client.get(f"/catalog/provinces/{province['id']}").status_code == 404

    def test_duplicate_name_is_409(self, client):
        client.post("/catalog/guides", json={"name": "Cao Hữu Tú"})
        response = client.post("/catalog/guides", json={"name": "cao huu tu"})
        assert response.status_code == 409
        assert response.json()["error"] == "duplicate_name"
        assert "cao huu tu" in response.json()["detail"]

    def test_blank_name_is_422(self, client):
        response = client.post("/catalog/guides", json={"name": " "})
        assert response.status_code == 422

    def test_unknown_kind_is_422(self, client):
        assert client.get("/catalog/dragons").status_code == 422

    def test_missing_record_is_404(self, client):
        response = client.post("/catalog/companies/missing/duplicate")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestTourEndpoints:

    def test_tour_flow(self, client):
        response = client.post("/tours", json=TOUR)
        assert response.status_code == 201
        tour = response.json()
        assert tour["total_guests"] == 3
        assert tour["total_days"] == 3

        item = client.post(f"/tours/{tour['id']}/expenses", json={"name": "Hotel", "price": 100})
        assert item.status_code == 201
        item_id = item.json()["id"]

        assert client.patch(
            f"/tours/{tour['id']}/expenses/{item_id}", json={"price": 200}
        ).status_code == 204
        assert client.patch(
            f"/tours/{tour['id']}", json={"summary": {"advance_payment": 100}}
        ).status_code == 204

        stored = client.get(f"/tours/{tour['id']}").json()
        assert stored["summary"]["total_tabs"] == 600
        assert stored["summary"]["final_total"] == 500

        listed = client.get("/tours", params={"search": "at-25"}).json()
        assert [t["id"] for t in listed] == [tour["id"]]
        assert listed[0]["expenses"] is None

        assert client.delete(f"/tours/{tour['id']}/expenses/{item_id}").status_code == 204
        assert client.get(f"/tours/{tour['id']}").json()["summary"]["total_tabs"] == 0

        copy = client.post(f"/tours/{tour['id']}/duplicate").json()
        assert copy["tour_code"] == "AT-250901 (Copy)"

        assert client.delete(f"/tours/{tour['id']}").status_code == 204
        assert client.get(f"/tours/{tour['id']}").status_code == 404

    def test_duplicate_code_is_409(self, client):
        client.post("/tours", json=TOUR)
        assert client.post("/tours", json={**TOUR, "tour_code": "at-250901"}).status_code == 409

    def test_unknown_item_is_404(self, client):
        tour = client.post("/tours", json=TOUR).json()
        response = client.delete(f"/tours/{tour['id']}/meals/missing")
        assert response.status_code == 404


class TestDataEndpoints:

    def test_export_import_clear(self, client):
        client.post("/catalog/guides", json={"name": "Trần Minh Anh"})
        client.post("/tours", json=TOUR)
        snapshot = client.get("/data/export").json()
        assert [g["name"] for g in snapshot["guides"]] == ["Trần Minh Anh"]

        assert client.delete("/data").status_code == 204
        assert client.get("/data/export").json()["tours"] == []

        counts = client.post("/data/import", json=snapshot).json()
        assert counts["guides"] == 1
        assert counts["tours"] == 1
        assert len(client.get("/tours").json()) == 1
