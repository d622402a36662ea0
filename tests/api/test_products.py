"""Tests for product endpoints."""

from fastapi.testclient import TestClient

from techspec.infrastructure.backend_client import BackendResponse


def product_row(product_id: str, **overrides) -> dict:
    row = {
        "id": product_id,
        "name": f"Phone {product_id}",
        "slug": f"phone-{product_id}",
        "brand": "Brand",
        "model": "M",
        "price": 799,
        "status": "active",
        "specifications": {"network": "5G"},
        "images": [
            "https://images.pexels.com/photos/1/a.jpeg",
            "https://images.pexels.com/photos/2/b.jpeg",
        ],
    }
    row.update(overrides)
    return row


def ok(data=None, count=None) -> BackendResponse:
    return BackendResponse(success=True, data=data, count=count)


def sent_params(backend, index: int = -1) -> list[tuple[str, str]]:
    return backend._request.call_args_list[index].kwargs["params"]


class TestListProducts:
    """Tests for GET /products."""

    def test_lists_with_pagination(self, client: TestClient, backend) -> None:
        backend._request.return_value = ok([product_row("a")], count=21)

        response = client.get("/products", params={"page": 1, "page_size": 20})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 21
        assert data["has_more"] is True
        item = data["items"][0]
        assert item["slug"] == "phone-a"
        assert "w=800" in item["image_url"]

    def test_filters_are_forwarded(self, client: TestClient, backend) -> None:
        backend._request.return_value = ok([], count=0)

        response = client.get(
            "/products",
            params=[
                ("min_price", "100"),
                ("max_price", "900"),
                ("brand", "Apple"),
                ("status", "upcoming"),
                ("q", "pro"),
                ("spec", "network:5G"),
                ("released_after", "2024-01-01"),
                ("sort_by", "price"),
                ("sort_order", "asc"),
            ],
        )

        assert response.status_code == 200
        params = sent_params(backend)
        assert ("price", "gte.100.0") in params
        assert ("price", "lte.900.0") in params
        assert ("brand", "ilike.%Apple%") in params
        assert ("status", "eq.upcoming") in params
        assert ("specifications->>network", "ilike.%5G%") in params
        assert ("release_date", "gte.2024-01-01") in params
        assert ("order", "price.asc") in params

    def test_invalid_status_rejected(self, client: TestClient, backend) -> None:
        response = client.get("/products", params={"status": "sold"})

        assert response.status_code == 422
        backend._request.assert_not_called()

    def test_invalid_spec_key_rejected(self, client: TestClient, backend) -> None:
        response = client.get("/products", params={"spec": "bad key:5G"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"


class TestProductDetail:
    def test_get_product(self, client: TestClient, backend) -> None:
        backend._request.return_value = ok([product_row("a")])

        response = client.get("/products/phone-a")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "a"
        assert "w=1200" in data["image_url"]
        assert data["gallery"] == ["https://images.pexels.com/photos/2/b.jpeg"]

    def test_availability(self, client: TestClient, backend) -> None:
        backend._request.return_value = ok(
            [
                {
                    "id": "o1",
                    "shop_id": "s1",
                    "product_id": "a",
                    "price": 749,
                    "stock_status": "out_of_stock",
                    "shop": {"id": "s1", "owner_id": "u1", "name": "Gadgets", "slug": "gadgets"},
                }
            ]
        )

        response = client.get("/products/a/availability")

        assert response.status_code == 200
        offer = response.json()[0]
        assert offer["stock_label"] == "Out of Stock"
        assert offer["shop"]["name"] == "Gadgets"


class TestCompare:
    """Tests for GET /products/compare."""

    def test_compare(self, client: TestClient, backend) -> None:
        backend._request.return_value = ok(
            [
                product_row("a", price=1299, specifications={"ram": "12GB"}),
                product_row("b", price=None, specifications={"battery": "5000mAh"}),
            ]
        )

        response = client.get("/products/compare", params={"ids": "a,b,a"})

        assert response.status_code == 200
        data = response.json()
        assert [p["id"] for p in data["products"]] == ["a", "b"]
        assert data["price_row"] == ["$1,299", "N/A"]
        assert data["rows"] == [
            {"key": "ram", "label": "ram", "values": ["12GB", "-"]},
            {"key": "battery", "label": "battery", "values": ["-", "5000mAh"]},
        ]
        assert data["can_add_more"] is True

    def test_too_many_products(self, client: TestClient, backend) -> None:
        response = client.get("/products/compare", params={"ids": "a,b,c,d,e"})

        assert response.status_code == 400
        backend._request.assert_not_called()

    def test_no_ids(self, client: TestClient) -> None:
        assert client.get("/products/compare", params={"ids": " , "}).status_code == 400


def test_list_categories(client: TestClient, backend) -> None:
    backend._request.return_value = ok(
        [{"id": "c1", "name": "Smartphones", "slug": "smartphones", "icon": "phone"}]
    )

    response = client.get("/categories")

    assert response.status_code == 200
    assert response.json()[0]["slug"] == "smartphones"
