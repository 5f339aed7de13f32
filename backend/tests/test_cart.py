"""
Cart engine tests: line items, running total, quantity floor, lifecycle.
"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from craftmarket.errors import NotFoundError, ValidationError
from craftmarket.models import Cart, Product
from craftmarket.services import cart_service, catalog_service, concurrency
from craftmarket.validation import ModelValidationPolicy, validate_payload


def assert_total_matches_lines(cart_json):
    expected = sum(line["unit_price_cents"] * line["quantity"] for line in cart_json["products"])
    assert cart_json["total_price_cents"] == expected


class TestCartApi:

    def test_quantity_walkthrough(self, client, product, customer_headers):
        resp = client.post(f"/api/v1/carts/products/{product.id}", json={"quantity": 2}, headers=customer_headers)
        assert resp.status_code == 201
        cart = resp.json["result"]
        assert cart["total_price"] == "20.00"
        assert_total_matches_lines(cart)

        resp = client.patch(
            "/api/v1/carts/products/quantity",
            json={"prodId": product.id, "action": "increment"},
            headers=customer_headers,
        )
        assert resp.status_code == 200
        cart = resp.json["result"]
        assert cart["products"][0]["quantity"] == 3
        assert cart["total_price"] == "30.00"

        for expected_total in ("20.00", "10.00"):
            resp = client.patch(
                "/api/v1/carts/products/quantity",
                json={"prodId": product.id, "action": "decrement"},
                headers=customer_headers,
            )
            assert resp.status_code == 200
            assert resp.json["result"]["total_price"] == expected_total
            assert_total_matches_lines(resp.json["result"])

        resp = client.patch(
            "/api/v1/carts/products/quantity",
            json={"prodId": product.id, "action": "decrement"},
            headers=customer_headers,
        )
        assert resp.status_code == 400
        assert resp.json["message"] == "Quantity cannot be less than 1"

        cart = client.get("/api/v1/carts", headers=customer_headers).json["result"]
        assert cart["products"][0]["quantity"] == 1
        assert cart["total_price"] == "10.00"

    def test_adding_same_product_increments_line(self, client, product, customer_headers):
        client.post(f"/api/v1/carts/products/{product.id}", headers=customer_headers)
        resp = client.post(f"/api/v1/carts/products/{product.id}", headers=customer_headers)
        cart = resp.json["result"]
        assert len(cart["products"]) == 1
        assert cart["products"][0]["quantity"] == 2
        assert cart["total_price_cents"] == 2000

    def test_multiple_products_total(self, client, make_product, customer_headers):
        basket = make_product(name="Basket", price_cents=1250)
        scarf = make_product(name="Scarf", price_cents=799)
        client.post(f"/api/v1/carts/products/{basket.id}", json={"quantity": 2}, headers=customer_headers)
        resp = client.post(f"/api/v1/carts/products/{scarf.id}", json={"quantity": 3}, headers=customer_headers)

        cart = resp.json["result"]
        assert cart["total_price_cents"] == 2 * 1250 + 3 * 799
        assert cart["total_price"] == "48.97"
        assert_total_matches_lines(cart)

    def test_unknown_product(self, client, customer_headers):
        resp = client.post("/api/v1/carts/products/9999", headers=customer_headers)
        assert resp.status_code == 404
        assert resp.json["message"] == "Product not found"

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "two", True, "\u00b2", "1.0", ""])
    def test_invalid_quantity(self, client, product, customer_headers, quantity):
        resp = client.post(
            f"/api/v1/carts/products/{product.id}",
            json={"quantity": quantity},
            headers=customer_headers,
        )
        assert resp.status_code == 400

    def test_invalid_action(self, client, product, customer_headers):
        client.post(f"/api/v1/carts/products/{product.id}", headers=customer_headers)
        resp = client.patch(
            "/api/v1/carts/products/quantity",
            json={"prodId": product.id, "action": "double"},
            headers=customer_headers,
        )
        assert resp.status_code == 400
        assert resp.json["message"] == "Invalid action. Use 'increment' or 'decrement'."

    def test_get_without_cart(self, client, customer_headers):
        resp = client.get("/api/v1/carts", headers=customer_headers)
        assert resp.status_code == 404
        assert resp.json["message"] == "Cart not found"

    def test_adjust_product_not_in_cart(self, client, make_product, customer_headers):
        in_cart = make_product(name="In cart")
        missing = make_product(name="Missing")
        client.post(f"/api/v1/carts/products/{in_cart.id}", headers=customer_headers)

        resp = client.patch(
            "/api/v1/carts/products/quantity",
            json={"prodId": missing.id, "action": "increment"},
            headers=customer_headers,
        )
        assert resp.status_code == 404
        assert resp.json["message"] == "Product not found in cart"

    def test_removing_last_line_deletes_cart(self, client, db_session, product, customer, customer_headers):
        client.post(f"/api/v1/carts/products/{product.id}", headers=customer_headers)
        resp = client.delete(f"/api/v1/carts/products/{product.id}", headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json["result"] is None
        assert db_session.query(Cart).filter_by(user_id=customer.id).first() is None

    def test_removing_one_of_two_lines_recomputes(self, client, make_product, customer_headers):
        keep = make_product(name="Keep", price_cents=500)
        drop = make_product(name="Drop", price_cents=900)
        client.post(f"/api/v1/carts/products/{keep.id}", headers=customer_headers)
        client.post(f"/api/v1/carts/products/{drop.id}", headers=customer_headers)

        resp = client.delete(f"/api/v1/carts/products/{drop.id}", headers=customer_headers)
        cart = resp.json["result"]
        assert [line["product_id"] for line in cart["products"]] == [keep.id]
        assert cart["total_price_cents"] == 500

    def test_delete_cart(self, client, product, customer_headers):
        client.post(f"/api/v1/carts/products/{product.id}", headers=customer_headers)
        assert client.delete("/api/v1/carts", headers=customer_headers).status_code == 200
        assert client.delete("/api/v1/carts", headers=customer_headers).status_code == 404

    def test_carts_are_per_user(self, client, product, customer_headers, other_customer_headers):
        client.post(f"/api/v1/carts/products/{product.id}", headers=customer_headers)
        resp = client.get("/api/v1/carts", headers=other_customer_headers)
        assert resp.status_code == 404


class TestCartService:

    def test_failed_decrement_leaves_cart_unchanged(self, customer, product):
        cart_service.add_item(customer.id, product.id)
        before = cart_service.get_cart(customer.id)
        version_before = before.version_id

        with pytest.raises(ValidationError):
            cart_service.adjust_quantity(customer.id, product.id, "decrement")

        after = cart_service.get_cart(customer.id)
        assert after.lines[0].quantity == 1
        assert after.total_price_cents == 1000
        assert after.version_id == version_before

    def test_every_mutation_bumps_version(self, customer, product):
        cart = cart_service.add_item(customer.id, product.id)
        v1 = cart.version_id
        cart = cart_service.adjust_quantity(customer.id, product.id, "increment")
        assert cart.version_id > v1

    def test_readding_keeps_price_snapshot(self, db_session, customer, product):
        cart_service.add_item(customer.id, product.id, quantity=2)
        product.price_cents = 1500
        db_session.commit()

        cart = cart_service.add_item(customer.id, product.id)
        assert cart.lines[0].quantity == 3
        assert cart.lines[0].unit_price_cents == 1000
        assert cart.total_price_cents == 3000

    def test_remove_from_missing_cart(self, customer, product):
        with pytest.raises(NotFoundError):
            cart_service.remove_item(customer.id, product.id)


class TestCartRetry:

    @pytest.fixture(autouse=True)
    def no_backoff(self, monkeypatch):
        monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)

    def test_stale_write_is_retried(self, monkeypatch, customer, product):
        cart_service.add_item(customer.id, product.id)

        real_get_product = catalog_service.get_product
        calls = []

        def flaky_get_product(product_id):
            calls.append(product_id)
            if len(calls) == 1:
                raise StaleDataError("carts row version moved")
            return real_get_product(product_id)

        monkeypatch.setattr(catalog_service, "get_product", flaky_get_product)

        cart = cart_service.add_item(customer.id, product.id, quantity=2)
        assert len(calls) == 2
        assert cart.lines[0].quantity == 3
        assert cart.total_price_cents == 3000

    def test_lock_timeout_is_retried(self, monkeypatch, customer, product):
        cart_service.add_item(customer.id, product.id)

        real_locked_line = cart_service._locked_line
        calls = []

        def flaky_locked_line(user_id, product_id):
            calls.append(product_id)
            if len(calls) == 1:
                raise OperationalError("SELECT carts FOR UPDATE", {}, Exception("database is locked"))
            return real_locked_line(user_id, product_id)

        monkeypatch.setattr(cart_service, "_locked_line", flaky_locked_line)

        cart = cart_service.adjust_quantity(customer.id, product.id, "increment")
        assert len(calls) == 2
        assert cart.lines[0].quantity == 2
        assert cart.total_price_cents == 2000

    def test_gives_up_after_three_attempts(self, monkeypatch, customer, product):
        cart_service.add_item(customer.id, product.id)
        calls = []

        def always_stale(product_id):
            calls.append(product_id)
            raise StaleDataError("carts row version moved")

        with monkeypatch.context() as m:
            m.setattr(catalog_service, "get_product", always_stale)
            with pytest.raises(StaleDataError):
                cart_service.add_item(customer.id, product.id)
        assert len(calls) == 3

        cart = cart_service.get_cart(customer.id)
        assert cart.lines[0].quantity == 1
        assert cart.total_price_cents == 1000


def test_integer_column_rejects_non_ascii_digits():
    policy = ModelValidationPolicy(writable_fields={"stock"})
    with pytest.raises(ValidationError):
        validate_payload(model=Product, payload={"stock": "²"}, policy=policy, partial=True)
    assert validate_payload(model=Product, payload={"stock": " 7 "}, policy=policy, partial=True) == {"stock": 7}
