"""Tests for item API endpoints."""

from fastapi.testclient import TestClient

from itemgen.infrastructure.memory_store import InMemoryCatalog


def regenerate(client: TestClient, classic_tee: dict, *names: str, **extra) -> dict:
    """Post a regeneration for the Classic Tee."""
    return client.post(
        f"/products/{classic_tee['product'].id}/items/regenerate",
        json={
            "store_id": classic_tee["store_id"],
            "selections": [classic_tee["values"][n].id for n in names],
            **extra,
        },
    )


class TestRegenerateItems:
    """Tests for POST /products/{product_id}/items/regenerate."""

    def test_regenerate_classic_tee(self, auth_client: TestClient, classic_tee: dict) -> None:
        """Six items are generated in combination order."""
        response = regenerate(auth_client, classic_tee, "Red", "Blue", "S", "M", "L")

        assert response.status_code == 200
        data = response.json()
        assert data["phase"] == "done"
        assert data["created"] == 6
        assert data["deleted"] == 0
        assert data["skus"][:3] == ["CLASSIC-TEE-RED-S", "CLASSIC-TEE-RED-M", "CLASSIC-TEE-RED-L"]
        assert data["errors"] == []
        assert data["warning"] is None

    def test_empty_selection_creates_default_item(
        self, auth_client: TestClient, classic_tee: dict
    ) -> None:
        """An empty selection yields the single default item."""
        response = regenerate(auth_client, classic_tee)

        assert response.status_code == 200
        assert response.json()["skus"] == ["CLASSIC-TEE"]

    def test_partial_provisioning_reported(
        self,
        auth_client: TestClient,
        memory_catalog: InMemoryCatalog,
        classic_tee: dict,
    ) -> None:
        """Stock row failures come back as errors with a warning."""
        memory_catalog.faults.fail_stock_row_skus.add("CLASSIC-TEE-RED")

        response = regenerate(auth_client, classic_tee, "Red", "Blue")

        assert response.status_code == 200
        data = response.json()
        assert [e["sku"] for e in data["errors"]] == ["CLASSIC-TEE-RED"]
        assert "reconcile" in data["warning"]

    def test_unknown_product_is_validation_error(self, auth_client: TestClient) -> None:
        """Unknown products map to 400 VALIDATION_ERROR."""
        response = auth_client.post(
            "/products/missing/items/regenerate",
            json={"store_id": "store-1", "selections": []},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "VALIDATION_ERROR"
        assert data["details"] == [{"field": "product_id", "message": "missing"}]
        assert data["request_id"]

    def test_create_failure_is_batch_error(
        self,
        auth_client: TestClient,
        memory_catalog: InMemoryCatalog,
        classic_tee: dict,
    ) -> None:
        """A failed create phase maps to 502 BATCH_OPERATION_FAILED."""
        memory_catalog.faults.fail_create_skus.add("CLASSIC-TEE-S")

        response = regenerate(auth_client, classic_tee, "S", "M")

        assert response.status_code == 502
        data = response.json()
        assert data["error_code"] == "BATCH_OPERATION_FAILED"
        assert data["details"][0]["field"] == "creating"

    def test_missing_store_id_rejected(self, auth_client: TestClient, classic_tee: dict) -> None:
        """Request body validation rejects a missing store ID."""
        response = auth_client.post(
            f"/products/{classic_tee['product'].id}/items/regenerate",
            json={"selections": []},
        )
        assert response.status_code == 422

    def test_requires_auth(self, client: TestClient, classic_tee: dict) -> None:
        """Regeneration requires an API key."""
        response = regenerate(client, classic_tee, "Red")
        assert response.status_code == 401


class TestListItems:
    """Tests for GET /products/{product_id}/items."""

    def test_list_items_with_stock(self, auth_client: TestClient, classic_tee: dict) -> None:
        """Items are listed by SKU with one zero stock row each."""
        regenerate(auth_client, classic_tee, "Red", "Blue")

        response = auth_client.get(f"/products/{classic_tee['product'].id}/items")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["pending"] is False
        assert [i["sku"] for i in data["items"]] == ["CLASSIC-TEE-BLUE", "CLASSIC-TEE-RED"]
        item = data["items"][0]
        assert item["option1"] == "Blue"
        assert item["linked"] is True
        assert len(item["stock"]) == 1
        assert item["stock"][0]["available"] == 0

    def test_list_empty(self, auth_client: TestClient) -> None:
        """Products without items return an empty list."""
        response = auth_client.get("/products/none/items")
        assert response.status_code == 200
        assert response.json()["items"] == []


class TestReconcileItems:
    """Tests for POST /products/{product_id}/items/reconcile."""

    def test_reconcile_after_partial_failure(
        self,
        auth_client: TestClient,
        memory_catalog: InMemoryCatalog,
        classic_tee: dict,
    ) -> None:
        """Missing stock rows are created on reconcile."""
        memory_catalog.faults.fail_stock_row_skus.add("CLASSIC-TEE-BLUE")
        regenerate(auth_client, classic_tee, "Red", "Blue")
        memory_catalog.faults.fail_stock_row_skus.clear()

        response = auth_client.post(
            f"/products/{classic_tee['product'].id}/items/reconcile",
            params={"store_id": classic_tee["store_id"]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["provisioned"] == 1
        assert data["skipped"] == 1
        assert data["relinked"] == 0
        assert data["unlinked"] == 0

    def test_reconcile_requires_store(self, auth_client: TestClient, classic_tee: dict) -> None:
        """The store ID query parameter is required."""
        response = auth_client.post(f"/products/{classic_tee['product'].id}/items/reconcile")
        assert response.status_code == 422

    def test_reconcile_other_store_rejected(
        self,
        auth_client: TestClient,
        memory_catalog: InMemoryCatalog,
        classic_tee: dict,
    ) -> None:
        """A store that does not own the product maps to 400 VALIDATION_ERROR."""
        regenerate(auth_client, classic_tee, "Red")

        response = auth_client.post(
            f"/products/{classic_tee['product'].id}/items/reconcile",
            params={"store_id": "store-2"},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        assert all(loc.store_id != "store-2" for loc in memory_catalog.locations.values())
