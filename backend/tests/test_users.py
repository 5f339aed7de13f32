"""
Profile, password change, soft delete and address book tests.
"""

import pytest

from conftest import PASSWORD
from craftmarket.models import Address, User


ADDRESS = {
    "street": "12 Loom Lane",
    "city": "Dhaka",
    "state": "Dhaka",
    "zip": "1207",
    "country": "Bangladesh",
}


class TestProfile:

    def test_update_own_profile(self, client, customer, customer_headers):
        resp = client.put(
            f"/api/v1/users/{customer.id}",
            json={"fullName": "Carol Potter", "gender": "female", "dateOfBirth": "1990-04-01"},
            headers=customer_headers,
        )
        assert resp.status_code == 200
        result = resp.json["result"]
        assert result["full_name"] == "Carol Potter"
        assert result["gender"] == "female"
        assert result["date_of_birth"] == "1990-04-01"

    @pytest.mark.parametrize(
        "payload",
        [
            {"role": "admin"},
            {"email": "new@example.com"},
            {"password_hash": "x"},
            {"gender": "unknown"},
            {"mobile": "123"},
            {"dateOfBirth": "2999-01-01"},
            {"dateOfBirth": "not-a-date"},
        ],
    )
    def test_rejected_updates(self, client, customer, customer_headers, payload):
        resp = client.put(f"/api/v1/users/{customer.id}", json=payload, headers=customer_headers)
        assert resp.status_code == 400

    def test_mobile_taken_by_someone_else(self, client, customer, other_customer, customer_headers):
        resp = client.put(
            f"/api/v1/users/{customer.id}",
            json={"mobile": other_customer.mobile},
            headers=customer_headers,
        )
        assert resp.status_code == 409


class TestPasswordChange:

    def test_change_password(self, client, customer, customer_headers):
        resp = client.post(
            "/api/v1/users/update-password",
            json={"oldPassword": PASSWORD, "newPassword": "An0ther!Pw"},
            headers=customer_headers,
        )
        assert resp.status_code == 200

        login = client.post("/api/v1/auth/login", json={"email": customer.email, "password": "An0ther!Pw"})
        assert login.status_code == 200

    def test_wrong_old_password(self, client, customer_headers):
        resp = client.post(
            "/api/v1/users/update-password",
            json={"oldPassword": "Wr0ng!Pw", "newPassword": "An0ther!Pw"},
            headers=customer_headers,
        )
        assert resp.status_code == 401
        assert resp.json["message"] == "Old password is incorrect"

    def test_weak_new_password(self, client, customer_headers):
        resp = client.post(
            "/api/v1/users/update-password",
            json={"oldPassword": PASSWORD, "newPassword": "short"},
            headers=customer_headers,
        )
        assert resp.status_code == 400


class TestSoftDelete:

    def test_delete_keeps_row_and_blocks_login(self, client, db_session, customer, customer_headers):
        resp = client.delete(f"/api/v1/users/{customer.id}", headers=customer_headers)
        assert resp.status_code == 200

        assert db_session.get(User, customer.id).status == "deleted"
        login = client.post("/api/v1/auth/login", json={"email": customer.email, "password": PASSWORD})
        assert login.status_code == 403

        assert client.get("/api/v1/users/me", headers=customer_headers).status_code == 404


class TestAddresses:

    def base(self, customer):
        return f"/api/v1/users/{customer.id}/addresses"

    def test_first_address_becomes_default(self, client, customer, customer_headers):
        resp = client.post(self.base(customer), json=ADDRESS, headers=customer_headers)
        assert resp.status_code == 201
        assert resp.json["result"]["is_default"] is True

    def test_new_default_demotes_old(self, client, db_session, customer, customer_headers):
        first = client.post(self.base(customer), json=ADDRESS, headers=customer_headers).json["result"]
        second = client.post(
            self.base(customer),
            json={**ADDRESS, "street": "7 Kiln Road", "isDefault": True},
            headers=customer_headers,
        ).json["result"]

        assert db_session.get(Address, first["id"]).is_default is False
        assert db_session.get(Address, second["id"]).is_default is True

        listed = client.get(self.base(customer), headers=customer_headers).json["result"]
        assert [a["id"] for a in listed] == [second["id"], first["id"]]

    def test_missing_field(self, client, customer, customer_headers):
        payload = {k: v for k, v in ADDRESS.items() if k != "zip"}
        resp = client.post(self.base(customer), json=payload, headers=customer_headers)
        assert resp.status_code == 400

    def test_update_and_delete(self, client, db_session, customer, customer_headers):
        address = client.post(self.base(customer), json=ADDRESS, headers=customer_headers).json["result"]

        resp = client.put(
            f"{self.base(customer)}/{address['id']}",
            json={"city": "Chattogram"},
            headers=customer_headers,
        )
        assert resp.status_code == 200
        assert resp.json["result"]["city"] == "Chattogram"

        resp = client.delete(f"{self.base(customer)}/{address['id']}", headers=customer_headers)
        assert resp.status_code == 200
        assert db_session.get(Address, address["id"]) is None

    def test_address_of_another_user_not_found(self, client, customer, other_customer, other_customer_headers,
                                               customer_headers):
        address = client.post(self.base(customer), json=ADDRESS, headers=customer_headers).json["result"]
        resp = client.put(
            f"/api/v1/users/{other_customer.id}/addresses/{address['id']}",
            json={"city": "Khulna"},
            headers=other_customer_headers,
        )
        assert resp.status_code == 404
