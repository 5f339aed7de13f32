"""
App-level behavior: health, response envelopes, CORS, CLI.
"""

from datetime import timedelta

from craftmarket.cli import add_product_cli, create_user_cli, list_users_cli
from craftmarket.models import Product, SecurityEvent, User
from craftmarket.services import maintenance_service
from craftmarket.time_utils import utcnow


def test_health(client, db_session):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json["success"] is True
    assert resp.json["result"]["checks"]["database"]["status"] == "healthy"


def test_health_unhealthy_uses_error_envelope(client, monkeypatch):
    from types import SimpleNamespace

    from craftmarket.routes import system

    def broken_query(*args, **kwargs):
        raise RuntimeError("database is down")

    monkeypatch.setattr(system, "db", SimpleNamespace(session=SimpleNamespace(query=broken_query)))

    resp = client.get("/api/v1/health")
    assert resp.status_code == 503
    assert resp.json["success"] is False
    assert resp.json["statusCode"] == 503
    assert resp.json["message"] == "Service is unhealthy"
    assert resp.json["checks"]["database"]["status"] == "unhealthy"
    assert "result" not in resp.json


def test_unknown_route_uses_fallback_envelope(client):
    resp = client.get("/api/v1/nowhere")
    assert resp.status_code == 404
    assert resp.json == {
        "status": "error",
        "success": False,
        "statusCode": 404,
        "message": "This route does not exist",
    }


def test_wrong_method_uses_fallback_envelope(client):
    resp = client.delete("/api/v1/health")
    assert resp.status_code == 405
    assert resp.json["status"] == "error"


def test_cors_allowed_origin(client, db_session):
    resp = client.get("/api/v1/health", headers={"Origin": "http://localhost:3000"})
    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"


def test_cors_unknown_origin(client, db_session):
    resp = client.get("/api/v1/health", headers={"Origin": "http://evil.example"})
    assert "Access-Control-Allow-Origin" not in resp.headers


class TestCli:

    def test_create_admin_user(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(create_user_cli, [
            "--email", "boss@example.com",
            "--full-name", "Boss",
            "--mobile", "01900000000",
            "--password", "Adm1n!Pass",
            "--role", "super_admin",
        ])
        assert "PASS" in result.output

        user = db_session.query(User).filter_by(email="boss@example.com").one()
        assert user.role == "super_admin"
        assert user.status == "active"
        assert user.verified_at is not None

        listing = runner.invoke(list_users_cli, [])
        assert "boss@example.com" in listing.output

    def test_add_product(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(add_product_cli, ["--name", "Clay Mug", "--price", "12.50", "--stock", "4"])
        assert "PASS" in result.output

        product = db_session.query(Product).filter_by(name="Clay Mug").one()
        assert product.price_cents == 1250

    def test_add_product_bad_price(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(add_product_cli, ["--name", "Clay Mug", "--price", "cheap"])
        assert "FAIL" in result.output


def test_cleanup_security_events(db_session):
    db_session.add(SecurityEvent(event_type="LOGIN_FAILED", success=False, occurred_at=utcnow() - timedelta(days=100)))
    db_session.add(SecurityEvent(event_type="LOGIN_FAILED", success=False, occurred_at=utcnow()))
    db_session.commit()

    assert maintenance_service.cleanup_security_events(retention_days=90) == 1
    assert db_session.query(SecurityEvent).count() == 1
