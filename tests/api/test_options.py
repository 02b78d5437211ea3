"""Tests for option API endpoints."""

from fastapi.testclient import TestClient


def test_list_options_grouped(auth_client: TestClient, classic_tee: dict) -> None:
    """Options are grouped by dimension in display order."""
    response = auth_client.get(f"/stores/{classic_tee['store_id']}/options")

    assert response.status_code == 200
    data = response.json()
    assert [s["name"] for s in data["option_sets"]] == ["Color", "Size"]
    assert [g["name"] for g in data["groups"]] == ["Color", "Size"]
    assert [v["name"] for v in data["groups"][1]["values"]] == ["S", "M", "L"]


def test_list_options_unknown_store(auth_client: TestClient) -> None:
    """Unknown stores have no options."""
    response = auth_client.get("/stores/unknown/options")

    assert response.status_code == 200
    assert response.json()["groups"] == []
