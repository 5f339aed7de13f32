"""
Product review tests: public reads, author-owned edits, admin deletes.
"""

import pytest

from craftmarket.models import Review, SecurityEvent


def post_review(client, headers, product_id, rating=5, comment="Lovely weave"):
    return client.post(
        "/api/v1/reviews",
        json={"productId": product_id, "rating": rating, "comment": comment},
        headers=headers,
    )


class TestReviewApi:

    def test_create_and_read_publicly(self, client, customer, product, customer_headers):
        resp = post_review(client, customer_headers, product.id, rating=4)
        assert resp.status_code == 201
        review = resp.json["result"]
        assert review["user_id"] == customer.id
        assert review["product_id"] == product.id
        assert review["rating"] == 4

        resp = client.get(f"/api/v1/reviews/{review['id']}")
        assert resp.status_code == 200
        assert resp.json["result"]["comment"] == "Lovely weave"

    def test_requires_auth_to_write(self, client, db_session, product):
        resp = client.post("/api/v1/reviews", json={"productId": product.id, "rating": 5})
        assert resp.status_code == 401

    def test_list_filters_by_product(self, client, make_product, customer_headers):
        basket = make_product(name="Basket")
        scarf = make_product(name="Scarf")
        post_review(client, customer_headers, basket.id)
        post_review(client, customer_headers, scarf.id, rating=3)

        everything = client.get("/api/v1/reviews").json["result"]
        assert len(everything) == 2

        resp = client.get(f"/api/v1/reviews?productId={scarf.id}")
        assert [r["product_id"] for r in resp.json["result"]] == [scarf.id]

    @pytest.mark.parametrize("rating", [0, 6, 4.5, "five", True, None])
    def test_invalid_rating(self, client, product, customer_headers, rating):
        resp = post_review(client, customer_headers, product.id, rating=rating)
        assert resp.status_code == 400

    def test_missing_fields(self, client, customer_headers):
        resp = client.post("/api/v1/reviews", json={"comment": "No product"}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json["message"] == "Missing required fields: product_id, rating"

    def test_comment_too_long(self, client, product, customer_headers):
        resp = post_review(client, customer_headers, product.id, comment="x" * 501)
        assert resp.status_code == 400

    def test_unknown_product(self, client, customer_headers):
        resp = post_review(client, customer_headers, 9999)
        assert resp.status_code == 404
        assert resp.json["message"] == "Product not found"

    def test_unknown_review(self, client, db_session):
        resp = client.get("/api/v1/reviews/9999")
        assert resp.status_code == 404
        assert resp.json["message"] == "Review not found"


class TestReviewOwnership:

    def test_author_updates_review(self, client, product, customer_headers):
        review_id = post_review(client, customer_headers, product.id).json["result"]["id"]
        resp = client.put(
            f"/api/v1/reviews/{review_id}",
            json={"rating": 2, "comment": "Frayed after a week"},
            headers=customer_headers,
        )
        assert resp.status_code == 200
        assert resp.json["result"]["rating"] == 2
        assert resp.json["result"]["comment"] == "Frayed after a week"

    def test_product_cannot_be_moved(self, client, make_product, customer_headers):
        first = make_product(name="First")
        second = make_product(name="Second")
        review_id = post_review(client, customer_headers, first.id).json["result"]["id"]

        resp = client.put(f"/api/v1/reviews/{review_id}", json={"productId": second.id}, headers=customer_headers)
        assert resp.status_code == 400

    def test_non_author_cannot_update(self, client, db_session, product, customer_headers,
                                      other_customer, other_customer_headers):
        review_id = post_review(client, customer_headers, product.id).json["result"]["id"]
        resp = client.put(f"/api/v1/reviews/{review_id}", json={"rating": 1}, headers=other_customer_headers)
        assert resp.status_code == 403
        assert resp.json["message"] == "You can only edit your own reviews"
        assert db_session.get(Review, review_id).rating == 5

        event = db_session.query(SecurityEvent).filter_by(event_type="OWNERSHIP_DENIED").one()
        assert event.user_id == other_customer.id

    def test_admin_cannot_edit_but_can_delete(self, client, db_session, product, customer_headers, admin_headers):
        review_id = post_review(client, customer_headers, product.id).json["result"]["id"]

        resp = client.put(f"/api/v1/reviews/{review_id}", json={"rating": 1}, headers=admin_headers)
        assert resp.status_code == 403

        resp = client.delete(f"/api/v1/reviews/{review_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.get(Review, review_id) is None

    def test_non_author_cannot_delete(self, client, db_session, product, customer_headers, other_customer_headers):
        review_id = post_review(client, customer_headers, product.id).json["result"]["id"]
        resp = client.delete(f"/api/v1/reviews/{review_id}", headers=other_customer_headers)
        assert resp.status_code == 403
        assert db_session.get(Review, review_id) is not None

    def test_author_deletes_review(self, client, product, customer_headers):
        review_id = post_review(client, customer_headers, product.id).json["result"]["id"]
        assert client.delete(f"/api/v1/reviews/{review_id}", headers=customer_headers).status_code == 200
        assert client.get(f"/api/v1/reviews/{review_id}").status_code == 404
