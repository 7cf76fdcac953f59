"""
Tests for the product catalogue API.
"""

import pytest
from fastapi import status
from fastapi.testclient import TestClient


class TestProductListing:
    def test_list_products_with_filters(self, test_client: TestClient, product_repo, sample_product):
        product_repo.list_products.return_value = ([sample_product], 41)

        response = test_client.get(
            "/api/products",
            params={
                "category": "Appliance Repair",
                "search": "ac",
                "min_price": 100,
                "max_price": 1000,
                "page": 3,
                "limit": 20,
            },
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 41
        assert data["page"] == 3
        assert data["items"][0]["name"] == "AC Servicing"
        product_repo.list_products.assert_awaited_once_with(
            skip=40,
            limit=20,
            category="Appliance Repair",
            search="ac",
            min_price=100.0,
            max_price=1000.0,
        )

    def test_limit_is_capped(self, test_client: TestClient):
        response = test_client.get("/api/products", params={"limit": 101})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_inverted_price_range(self, test_client: TestClient, product_repo):
        response = test_client.get("/api/products", params={"min_price": 500, "max_price": 100})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["code"] == "INVALID_PRICE_RANGE"
        product_repo.list_products.assert_not_awaited()

    def test_categories(self, test_client: TestClient, product_repo):
        product_repo.categories.return_value = ["Cleaning", "Plumbing"]

        response = test_client.get("/api/products/categories")

        assert response.json() == ["Cleaning", "Plumbing"]


class TestProductDetail:
    def test_get_product(self, test_client: TestClient, product_repo, sample_product):
        product_repo.get.return_value = sample_product

        response = test_client.get(f"/api/products/{sample_product['id']}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == sample_product["id"]

    def test_unknown_product(self, test_client: TestClient, product_repo):
        product_repo.get.return_value = None

        response = test_client.get("/api/products/not-an-id")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["code"] == "PRODUCT_NOT_FOUND"


class TestProductAdministration:
    """Write endpoints require an admin session."""

    def test_create_requires_admin(self, test_client: TestClient, product_repo):
        response = test_client.post(
            "/api/products",
            json={"name": "Deep Cleaning", "price": 1499, "category": "Cleaning"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        product_repo.create.assert_not_awaited()

    def test_create_product(self, admin_client: TestClient, product_repo, sample_product):
        product_repo.create.return_value = sample_product

        response = admin_client.post(
            "/api/products",
            json={
                "name": "  AC Servicing ",
                "price": 799.004,
                "category": "Appliance Repair",
                "stock": 5,
            },
        )

        assert response.status_code == status.HTTP_201_CREATED
        created = product_repo.create.await_args.args[0]
        assert created["name"] == "AC Servicing"
        assert created["price"] == 799.0

    def test_create_rejects_bad_image_url(self, admin_client: TestClient):
        response = admin_client.post(
            "/api/products",
            json={"name": "X", "price": 1, "category": "Y", "image_url": "ftp://x/y.png"},
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_update_product_partial(self, admin_client: TestClient, product_repo, sample_product):
        product_repo.update.return_value = {**sample_product, "stock": 9}

        response = admin_client.put(f"/api/products/{sample_product['id']}", json={"stock": 9})

        assert response.status_code == status.HTTP_200_OK
        product_repo.update.assert_awaited_once_with(sample_product["id"], {"stock": 9})

    @pytest.mark.parametrize(
        "body",
        [
            {"name": None},
            {"price": None},
            {"category": None},
            {"stock": None},
            {"name": "   "},
            {"image_url": "ftp://cdn.example.com/ac.jpg"},
        ],
    )
    def test_update_rejects_invalid_values(self, admin_client: TestClient, product_repo, body):
        response = admin_client.put("/api/products/abc", json=body)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        product_repo.update.assert_not_awaited()

    def test_update_clears_image_and_strips_name(
        self, admin_client: TestClient, product_repo, sample_product
    ):
        product_repo.update.return_value = {**sample_product, "image_url": None}

        response = admin_client.put(
            f"/api/products/{sample_product['id']}",
            json={"image_url": None, "name": "  AC Servicing  "},
        )

        assert response.status_code == status.HTTP_200_OK
        product_repo.update.assert_awaited_once_with(
            sample_product["id"], {"image_url": None, "name": "AC Servicing"}
        )

    def test_update_without_fields(self, admin_client: TestClient, product_repo):
        response = admin_client.put("/api/products/abc", json={})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        product_repo.update.assert_not_awaited()

    def test_update_unknown_product(self, admin_client: TestClient, product_repo):
        product_repo.update.return_value = None

        response = admin_client.put("/api/products/abc", json={"price": 10})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_is_soft(self, admin_client: TestClient, product_repo, sample_product):
        product_repo.deactivate.return_value = True

        response = admin_client.delete(f"/api/products/{sample_product['id']}")

        assert response.status_code == status.HTTP_200_OK
        product_repo.deactivate.assert_awaited_once_with(sample_product["id"])

    def test_delete_unknown_product(self, admin_client: TestClient, product_repo):
        product_repo.deactivate.return_value = False

        response = admin_client.delete("/api/products/abc")

        assert response.status_code == status.HTTP_404_NOT_FOUND
