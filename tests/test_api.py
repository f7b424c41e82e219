"""HTTP-level tests: envelopes, status codes and admin guards."""

import pytest

CONTENT = "Cream of rice keeps you full for hours and tastes great warm. " * 3


@pytest.fixture
def product_id(make_product):
    return make_product(price=400, flavour="Vanilla Ice Cream")


class TestRoot:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "running" in response.json()["message"]


class TestProducts:
    def test_list_and_get(self, client, product_id):
        response = client.get("/api/products")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [p["id"] for p in body["products"]] == [product_id]

        response = client.get("/api/products/vanilla-ice-cream")
        assert response.json()["product"]["id"] == product_id

    def test_unknown_product(self, client):
        response = client.get("/api/products/64b7f0c2a1b2c3d4e5f60718")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Product not found"}

    def test_writes_require_admin(self, client, product_id):
        assert client.delete(f"/api/products/{product_id}").status_code == 401

    def test_admin_can_create(self, client, auth_headers):
        payload = {
            "itemName": "Grainly Cream of Rice",
            "flavour": "Mango",
            "description": "Mango flavoured cream of rice",
            "shortDescription": "Mango",
            "price": 500,
            "category": "Global Delicious",
        }
        response = client.post("/api/products", json=payload, headers=auth_headers)
        assert response.status_code == 201
        assert response.json()["product"]["flavour"] == "Mango"

    def test_invalid_body_uses_envelope(self, client, auth_headers):
        response = client.post("/api/products", json={"itemName": "Nope"}, headers=auth_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"]


class TestCartAndOrders:
    def test_checkout_flow(self, client, product_id, shipping_address):
        response = client.post("/api/cart/web-1/add", json={"productId": product_id, "quantity": 3})
        assert response.status_code == 200
        cart = response.json()["cart"]
        assert cart["totalItems"] == 3
        assert cart["subtotal"] == 1200

        response = client.post("/api/orders/create", json={"sessionId": "web-1", "shippingAddress": shipping_address})
        assert response.status_code == 201
        order = response.json()["order"]
        assert order["shippingCost"] == 0
        assert order["total"] == pytest.approx(order["subtotal"] + order["shippingCost"] + order["tax"])

        cart = client.get("/api/cart/web-1").json()["cart"]
        assert cart["items"] == []

        listed = client.get("/api/orders/session/web-1").json()["orders"]
        assert [o["orderNumber"] for o in listed] == [order["orderNumber"]]
        assert client.get(f"/api/orders/{order['orderNumber']}").json()["order"]["id"] == order["id"]

    def test_update_quantity_out_of_range(self, client, product_id):
        client.post("/api/cart/web-1/add", json={"productId": product_id})
        response = client.put(f"/api/cart/web-1/update/{product_id}", json={"quantity": 100})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid quantity"

    def test_clear_missing_cart(self, client):
        response = client.delete("/api/cart/nobody/clear")
        assert response.status_code == 404

    def test_sync(self, client, product_id):
        response = client.post("/api/cart/web-2/sync", json={"items": [{"id": product_id, "quantity": 2}]})
        assert response.status_code == 200
        assert response.json()["cart"]["totalItems"] == 2

    def test_order_from_empty_cart(self, client, shipping_address):
        response = client.post("/api/orders/create", json={"sessionId": "empty", "shippingAddress": shipping_address})
        assert response.status_code == 400
        assert response.json()["message"] == "Cart is empty"

    def test_order_with_incomplete_address(self, client, shipping_address):
        del shipping_address["city"]
        response = client.post("/api/orders/create", json={"sessionId": "s", "shippingAddress": shipping_address})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_status_and_cancel(self, client, product_id, shipping_address, auth_headers):
        client.post("/api/cart/web-3/add", json={"productId": product_id})
        order = client.post("/api/orders/create",
                            json={"sessionId": "web-3", "shippingAddress": shipping_address}).json()["order"]

        response = client.put(f"/api/orders/{order['id']}/status", json={"orderStatus": "shipped"})
        assert response.status_code == 401

        response = client.put(f"/api/orders/{order['id']}/status", json={"orderStatus": "shipped"},
                              headers=auth_headers)
        assert response.json()["order"]["orderStatus"] == "shipped"

        response = client.put(f"/api/orders/{order['id']}/cancel")
        assert response.status_code == 400
        assert "cannot be cancelled" in response.json()["message"]

    def test_admin_order_listing(self, client, auth_headers):
        assert client.get("/api/orders").status_code == 401
        response = client.get("/api/orders", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 0


class TestAdmin:
    def test_login(self, client, super_admin):
        response = client.post("/api/admin/login", json={"username": "root", "password": "secret123"})
        assert response.status_code == 200
        body = response.json()
        assert body["token"]
        assert "password" not in body["admin"]

    def test_bad_login(self, client, super_admin):
        response = client.post("/api/admin/login", json={"username": "root", "password": "wrong"})
        assert response.status_code == 401

    def test_profile_accepts_admintoken_header(self, client, super_admin):
        response = client.get("/api/admin/profile", headers={"admintoken": super_admin["token"]})
        assert response.status_code == 200
        assert response.json()["admin"]["username"] == "root"

    def test_missing_and_invalid_token(self, client):
        assert client.get("/api/admin/profile").json()["message"] == "Unauthorized - No token provided"
        response = client.get("/api/admin/profile", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["message"] == "Unauthorized - Invalid token"

    def test_editor_cannot_manage_admins(self, client, admins):
        admins.create_admin({
            "username": "writer",
            "email": "writer@grainly.com",
            "password": "pass1234",
            "name": "Writer",
            "role": "editor",
        })
        token = admins.login("writer", "pass1234")["token"]
        response = client.get("/api/admin/all", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403

    def test_super_admin_manages_admins(self, client, auth_headers):
        response = client.post("/api/admin/create", headers=auth_headers, json={
            "username": "helper",
            "email": "helper@grainly.com",
            "password": "pass1234",
            "name": "Helper",
        })
        assert response.status_code == 201
        helper_id = response.json()["admin"]["id"]

        listed = client.get("/api/admin/all", headers=auth_headers).json()["admins"]
        assert {a["username"] for a in listed} == {"root", "helper"}

        response = client.delete(f"/api/admin/{helper_id}", headers=auth_headers)
        assert response.status_code == 200

    def test_dashboard(self, client, auth_headers, product_id):
        response = client.get("/api/admin/dashboard/stats", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["stats"]["products"] == 1


class TestBlogs:
    def test_create_and_read(self, client, auth_headers):
        payload = {"title": "Rice for Runners", "excerpt": "Carbs that work.", "content": CONTENT,
                   "category": "Fitness", "published": True}
        assert client.post("/api/blogs", json=payload).status_code == 401

        response = client.post("/api/blogs", json=payload, headers=auth_headers)
        assert response.status_code == 201
        blog = response.json()["blog"]
        assert blog["author"]["name"] == "Root Admin"

        response = client.get(f"/api/blogs/{blog['slug']}", params={"incrementViews": "true"})
        assert response.json()["blog"]["views"] == 1
        assert client.get("/api/blogs").json()["pagination"]["total"] == 1

    def test_draft_visible_to_admin_only(self, client, auth_headers):
        payload = {"title": "Draft Post", "excerpt": "Soon.", "content": CONTENT}
        blog = client.post("/api/blogs", json=payload, headers=auth_headers).json()["blog"]

        assert client.get(f"/api/blogs/{blog['id']}").status_code == 404
        assert client.get(f"/api/blogs/{blog['id']}", headers=auth_headers).status_code == 200
