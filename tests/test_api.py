# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Tests for the REST API using FastAPI's TestClient."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from dc_configurator import __version__
from dc_configurator.api.server import create_app

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}
API = "/api/v1"


@pytest.fixture()
def client(container) -> TestClient:
    return TestClient(create_app(container))


@pytest.fixture()
def project_id(client) -> str:
    response = client.post(f"{API}/projects", json={"name": "Hall A"}, headers=ALICE)
    assert response.status_code == 201
    return response.json()["id"]


class TestCalculatorEndpoints:
    """Stateless calculation routes."""

    def test_health(self, client):
        response = client.get(f"{API}/health")
        assert response.status_code == 200
        assert response.json() == {
            "status": "ok", "version": __version__, "store_backend": "memory",
        }

    def test_calculate(self, client):
        response = client.post(f"{API}/calculate", json={"kw_per_rack": 10, "total_racks": 28})
        assert response.status_code == 200
        body = response.json()
        assert body["total_it_load_kw"] == 280
        assert body["pue"] == 1.4
        assert body["electrical"]["busbar_rating"] == 250
        assert body["is_fallback"] is False

    def test_calculate_rejects_out_of_range(self, client):
        response = client.post(f"{API}/calculate", json={"kw_per_rack": 500})
        assert response.status_code == 422

    def test_calculate_location(self, client):
        response = client.post(
            f"{API}/calculate/location",
            json={"inputs": {"kw_per_rack": 10}, "location": "London"},
        )
        assert response.status_code == 200
        assert response.json()["location_factors"]["climate_zone"] == "CONTINENTAL"

    def test_unknown_location(self, client):
        response = client.post(
            f"{API}/calculate/location", json={"inputs": {}, "location": "Atlantis"}
        )
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "CALCULATION_FAILED"

    def test_calculate_coordinates(self, client):
        response = client.post(
            f"{API}/calculate/location",
            json={"inputs": {"kw_per_rack": 10}, "latitude": 1.35, "longitude": 103.82},
        )
        assert response.status_code == 200
        factors = response.json()["location_factors"]
        assert factors["climate_zone"] == "TROPICAL"
        assert factors["latitude"] == 1.35

    def test_calculate_location_requires_a_site(self, client):
        response = client.post(
            f"{API}/calculate/location", json={"inputs": {}, "latitude": 10}
        )
        assert response.status_code == 422

    def test_optimize(self, client):
        response = client.post(
            f"{API}/optimize",
            json={
                "constraints": {"preferred_cooling_types": ["dlc"],
                                "rack_count_range": [14, 28]},
                "goal": "efficiency",
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["goal"] == "efficiency"
        assert len(body["top_configurations"]) == 3

    def test_compare_cooling(self, client):
        response = client.post(f"{API}/compare/cooling", json={"kw_per_rack": 40})
        assert response.status_code == 200
        assert len(response.json()["comparison_results"]) == 4

    def test_compare_redundancy(self, client):
        response = client.post(
            f"{API}/compare/redundancy", json={"kw_per_rack": 40, "cooling_type": "dlc"}
        )
        assert response.status_code == 200
        modes = [r["redundancy_mode"] for r in response.json()["comparison_results"]]
        assert modes == ["N", "N+1", "2N", "2N+1"]

    def test_pricing_and_params(self, client):
        assert client.get(f"{API}/pricing").json()["ups"]["frame2Module"] == 85_000
        assert client.get(f"{API}/params").json()["power"]["ups_module_size"] == 250


class TestSavedCalculations:
    """Persisted calculations over HTTP."""

    def test_save_computes_results_when_missing(self, client):
        response = client.post(
            f"{API}/calculations", json={"inputs": {"kw_per_rack": 20}, "name": "Hall"},
            headers=ALICE,
        )
        assert response.status_code == 201
        saved = response.json()
        assert saved["user_id"] == "alice"
        assert saved["results"]["total_it_load_kw"] == 560

        fetched = client.get(f"{API}/calculations/{saved['id']}", headers=ALICE)
        assert fetched.status_code == 200
        assert fetched.json()["name"] == "Hall"

    def test_user_history(self, client):
        for _ in range(3):
            client.post(f"{API}/calculations", json={"inputs": {}}, headers=ALICE)
        response = client.get(
            f"{API}/users/alice/calculations", params={"limit": 2}, headers=ALICE
        )
        assert len(response.json()) == 2

    def test_other_users_calculation_is_forbidden(self, client):
        saved = client.post(f"{API}/calculations", json={"inputs": {}}, headers=ALICE).json()
        response = client.get(f"{API}/calculations/{saved['id']}", headers=BOB)
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "UNAUTHORIZED"
        admin = client.get(f"{API}/calculations/{saved['id']}", headers={"X-User-Id": "admin"})
        assert admin.status_code == 200

    def test_project_calculation_visible_to_shared_user(self, client, project_id):
        saved = client.post(
            f"{API}/calculations", json={"inputs": {}, "project_id": project_id}, headers=ALICE
        ).json()
        assert client.get(f"{API}/calculations/{saved['id']}", headers=BOB).status_code == 403
        client.post(f"{API}/projects/{project_id}/share", json={"user_id": "bob"}, headers=ALICE)
        assert client.get(f"{API}/calculations/{saved['id']}", headers=BOB).status_code == 200

    def test_other_users_history_is_forbidden(self, client):
        client.post(f"{API}/calculations", json={"inputs": {}}, headers=ALICE)
        response = client.get(f"{API}/users/alice/calculations", headers=BOB)
        assert response.status_code == 403
        admin = client.get(f"{API}/users/alice/calculations", headers={"X-User-Id": "admin"})
        assert len(admin.json()) == 1

    def test_identity_header_required(self, client):
        response = client.post(f"{API}/calculations", json={"inputs": {}})
        assert response.status_code == 422

    def test_missing_calculation(self, client):
        assert client.get(f"{API}/calculations/nope", headers=ALICE).status_code == 404

    def test_project_access(self, client, project_id):
        response = client.post(
            f"{API}/calculations", json={"inputs": {}, "project_id": project_id}, headers=BOB
        )
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "UNAUTHORIZED"

        client.post(f"{API}/calculations", json={"inputs": {}, "project_id": project_id},
                    headers=ALICE)
        listed = client.get(f"{API}/projects/{project_id}/calculations", headers=ALICE)
        assert len(listed.json()) == 1
        admin = client.get(f"{API}/projects/{project_id}/calculations",
                           headers={"X-User-Id": "admin"})
        assert admin.status_code == 200


class TestProjectEndpoints:
    """Project CRUD and sharing."""

    def test_create_validation(self, client):
        response = client.post(
            f"{API}/projects", json={"name": "X", "client_email": "bad"}, headers=ALICE
        )
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "VALIDATION_FAILED"

    def test_get_requires_access(self, client, project_id):
        assert client.get(f"{API}/projects/{project_id}", headers=ALICE).status_code == 200
        assert client.get(f"{API}/projects/{project_id}", headers=BOB).status_code == 403
        assert client.get(f"{API}/projects/nope", headers=ALICE).status_code == 404

    def test_update(self, client, project_id):
        response = client.put(
            f"{API}/projects/{project_id}", json={"description": "Phase 2"}, headers=ALICE
        )
        assert response.status_code == 200
        assert response.json()["description"] == "Phase 2"

    def test_share_and_list(self, client, project_id):
        response = client.post(
            f"{API}/projects/{project_id}/share", json={"user_id": "bob"}, headers=ALICE
        )
        assert response.json()["shared_with"] == ["bob"]
        assert [p["id"] for p in client.get(f"{API}/projects", headers=BOB).json()] == [project_id]

        client.post(
            f"{API}/projects/{project_id}/share", json={"user_id": "bob", "remove": True},
            headers=ALICE,
        )
        assert client.get(f"{API}/projects", headers=BOB).json() == []

    def test_delete(self, client, project_id):
        assert client.delete(f"{API}/projects/{project_id}", headers=BOB).status_code == 403
        assert client.delete(f"{API}/projects/{project_id}", headers=ALICE).status_code == 204
        assert client.get(f"{API}/projects/{project_id}", headers=ALICE).status_code == 404


class TestModuleAndLayoutEndpoints:
    """Module library and layouts."""

    def test_modules(self, client):
        assert [m["id"] for m in client.get(f"{API}/modules").json()] == ["basic-module"]
        response = client.post(
            f"{API}/modules",
            json={"name": "Chiller", "category": "cooling",
                  "dimensions": {"length": 4, "width": 2, "height": 2}},
            headers=ALICE,
        )
        assert response.status_code == 201
        assert response.json()["id"] == "chiller"

    def test_invalid_module(self, client):
        response = client.post(f"{API}/modules", json={"name": "X"}, headers=ALICE)
        assert response.status_code == 422

    def test_layout_lifecycle(self, client, project_id):
        created = client.post(
            f"{API}/projects/{project_id}/layouts", json={"name": "Ground"}, headers=ALICE
        )
        assert created.status_code == 201
        layout_id = created.json()["id"]

        body = {
            "modules": [{"id": "m1"}, {"id": "m2", "position": [3, 0.5, 0]}],
            "connections": [{"id": "c1", "source_module_id": "m1",
                             "target_module_id": "m2", "type": "power"}],
        }
        updated = client.put(f"{API}/layouts/{layout_id}", json=body, headers=ALICE)
        assert updated.status_code == 200
        assert len(updated.json()["modules"]) == 2

        listed = client.get(f"{API}/projects/{project_id}/layouts", headers=ALICE)
        assert [layout["id"] for layout in listed.json()] == [layout_id]
        assert client.get(f"{API}/projects/{project_id}/layouts", headers=BOB).status_code == 403

    def test_dangling_connection(self, client, project_id):
        layout_id = client.post(
            f"{API}/projects/{project_id}/layouts", json={"name": "Ground"}, headers=ALICE
        ).json()["id"]
        body = {"modules": [], "connections": [
            {"id": "c1", "source_module_id": "a", "target_module_id": "b", "type": "power"}
        ]}
        response = client.put(f"{API}/layouts/{layout_id}", json=body, headers=ALICE)
        assert response.status_code == 422
        assert response.json()["detail"]["details"] == ["c1"]

    def test_missing_layout(self, client):
        assert client.get(f"{API}/layouts/nope", headers=ALICE).status_code == 404

    def test_layout_requires_project_access(self, client, project_id):
        layout_id = client.post(
            f"{API}/projects/{project_id}/layouts", json={"name": "Ground"}, headers=ALICE
        ).json()["id"]
        assert client.get(f"{API}/layouts/{layout_id}", headers=ALICE).status_code == 200
        assert client.get(f"{API}/layouts/{layout_id}", headers=BOB).status_code == 403

        overwrite = client.put(
            f"{API}/layouts/{layout_id}", json={"modules": [{"id": "x"}]}, headers=BOB
        )
        assert overwrite.status_code == 403
        stored = client.get(f"{API}/layouts/{layout_id}", headers=ALICE).json()
        assert stored["modules"] == []

    def test_shared_user_may_edit_layout(self, client, project_id):
        layout_id = client.post(
            f"{API}/projects/{project_id}/layouts", json={"name": "Ground"}, headers=ALICE
        ).json()["id"]
        client.post(f"{API}/projects/{project_id}/share", json={"user_id": "bob"}, headers=ALICE)
        response = client.put(
            f"{API}/layouts/{layout_id}", json={"modules": [{"id": "m1"}]}, headers=BOB
        )
        assert response.status_code == 200
        assert client.get(f"{API}/layouts/{layout_id}", headers=BOB).status_code == 200

    def test_layout_identity_header_required(self, client):
        assert client.get(f"{API}/layouts/nope").status_code == 422
