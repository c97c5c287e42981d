"""
HTTP surface tests: status codes, error kinds, admin guard, mail isolation.
"""

from cart_registry.models import Cart, Registration
from cart_registry.services import cart_service
from cart_registry.validation import StoreConflictExhaustedError

ADMIN_PASSWORD = "Password123!"


NEW_SALE = {
    "serial": "SN100",
    "model": "VERTX",
    "customer": {"name": "Giulia Bianchi", "email": "giulia@example.it"},
    "location": "Pro Shop Milano",
    "purchase_date": "2024-01-15",
    "order_ref": "1001",
}


def _login(client):
    resp = client.post("/api/admin/login", json={"password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}


class TestRegistrationRoutes:

    def test_create_registration(self, client, db_session):
        resp = client.post("/api/registrations", json=NEW_SALE)

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["registration"]["id"] == "1001"
        assert data["registration"]["coverage"]["end"] == "2026-01-15"
        assert data["registration"]["image_url"] == "https://img.example.com/carts/vertx.jpg"
        assert data["mail_sent"] is False  # SMTP not configured in tests

    def test_italian_form_fields(self, client, db_session):
        resp = client.post("/api/registrations", json={
            "serial": "SN101",
            "modello": "VERTX",
            "nome": "Mario",
            "cognome": "Rossi",
            "email": "mario@x.it",
            "luogo": "Roma",
            "data_acquisto": "15/01/2024",
            "ordineShopify": "2002",
        })
        assert resp.status_code == 201
        reg = db_session.get(Registration, "2002")
        assert reg.customer_name == "Mario Rossi"
        assert reg.location == "Roma"

    def test_missing_field_names_the_field(self, client, db_session):
        body = dict(NEW_SALE, customer={"name": "Giulia", "email": ""})
        resp = client.post("/api/registrations", json=body)

        assert resp.status_code == 400
        data = resp.get_json()
        assert data["error_kind"] == "MISSING_FIELD"
        assert data["field"] == "email"
        assert db_session.query(Registration).count() == 0

    def test_invalid_date(self, client, db_session):
        resp = client.post("/api/registrations", json=dict(NEW_SALE, purchase_date="2023-02-30"))
        assert resp.status_code == 400
        assert resp.get_json()["error_kind"] == "INVALID_DATE"

    def test_invalid_duration(self, client, db_session):
        resp = client.post("/api/registrations", json=dict(NEW_SALE, warranty_months=1.5))
        assert resp.status_code == 400
        assert resp.get_json()["error_kind"] == "INVALID_DURATION"

    def test_out_of_range_duration_is_a_client_error(self, client, db_session):
        resp = client.post("/api/registrations", json=dict(NEW_SALE, warranty_months=1_000_000))
        assert resp.status_code == 400
        assert resp.get_json()["error_kind"] == "INVALID_DURATION"
        assert db_session.query(Registration).count() == 0

    def test_order_number_reused_for_another_serial(self, client, db_session):
        assert client.post("/api/registrations", json=NEW_SALE).status_code == 201

        resp = client.post("/api/registrations", json=dict(NEW_SALE, serial="SN999"))

        assert resp.status_code == 400
        assert resp.get_json()["error_kind"] == "INVALID_REQUEST"
        assert db_session.get(Registration, "1001").serial == "SN100"

    def test_mail_failure_does_not_change_response(self, client, db_session, app, monkeypatch):
        dispatcher = app.extensions["mail_dispatcher"]

        def explode(_reg):
            raise AssertionError("should not be reached")

        monkeypatch.setattr(dispatcher, "build_message", explode)
        monkeypatch.setattr(type(dispatcher), "enabled", property(lambda self: True))

        resp = client.post("/api/registrations", json=NEW_SALE)

        assert resp.status_code == 201
        assert resp.get_json()["mail_sent"] is False
        assert db_session.get(Registration, "1001") is not None

    def test_list_requires_admin(self, client, db_session):
        resp = client.get("/api/registrations")
        assert resp.status_code == 401
        assert resp.get_json()["error_kind"] == "UNAUTHORIZED"

    def test_list_and_get_with_static_key(self, client, db_session, static_key_headers):
        client.post("/api/registrations", json=NEW_SALE)

        resp = client.get("/api/registrations?serial=SN100", headers=static_key_headers)
        assert resp.status_code == 200
        assert [r["id"] for r in resp.get_json()["registrations"]] == ["1001"]

        resp = client.get("/api/registrations/1001", headers=static_key_headers)
        assert resp.status_code == 200
        assert resp.get_json()["registration"]["serial"] == "SN100"

        resp = client.get("/api/registrations/nope", headers=static_key_headers)
        assert resp.status_code == 404
        assert resp.get_json()["error_kind"] == "NOT_FOUND"

    def test_purge_defaults_to_dry_run(self, client, db_session, static_key_headers):
        client.post("/api/registrations", json=dict(NEW_SALE, customer={"name": "T", "email": "t@Test.com"}))

        resp = client.post(
            "/api/registrations/purge", json={"email_domain": "test.com"}, headers=static_key_headers
        )
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["dry_run"] is True
        assert data["matched"] == 1
        assert db_session.query(Registration).count() == 1

        resp = client.post(
            "/api/registrations/purge",
            json={"email_domain": "test.com", "dry_run": False},
            headers=static_key_headers,
        )
        assert resp.get_json()["result"]["deleted"] == 1
        assert db_session.query(Registration).count() == 0


class TestCartRoutes:

    def test_trade_in_then_used_sale(self, client, db_session, static_key_headers):
        client.post("/api/registrations", json=NEW_SALE)

        resp = client.post("/api/carts/SN100/trade-in", json={"model": "VERTX"}, headers=static_key_headers)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["closed_registration_id"] == "1001"
        assert data["cart"]["status"] == "PICKED_UP_TRADE_IN"

        resp = client.post(
            "/api/carts/SN100/used-sale",
            json={
                "customer": {"name": "Mario Rossi", "email": "mario@x.it"},
                "warranty_months": 6,
                "sale_date": "2025-01-01",
            },
            headers=static_key_headers,
        )
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["registration"]["kind"] == "USED"
        assert data["registration"]["coverage"]["end"] == "2025-07-01"

        cart = db_session.get(Cart, "SN100")
        assert cart.possession_registration_id == data["registration_id"]

        resp = client.get("/api/carts/SN100/events", headers=static_key_headers)
        assert [ev["type"] for ev in resp.get_json()["events"]] == ["trade_in_pickup", "used_sale"]

    def test_transitions_require_admin(self, client, db_session):
        resp = client.post("/api/carts/SN1/trade-in", json={"model": "VERTX"})
        assert resp.status_code == 401
        assert db_session.get(Cart, "SN1") is None

    def test_exhausted_conflict_is_409(self, client, db_session, static_key_headers, monkeypatch):
        def busy(command, *, settings):
            raise StoreConflictExhaustedError("Transaction conflicted 3 times; giving up")

        monkeypatch.setattr(cart_service, "trade_in_pickup", busy)

        resp = client.post("/api/carts/SN1/trade-in", json={"model": "VERTX"}, headers=static_key_headers)
        assert resp.status_code == 409
        assert resp.get_json()["error_kind"] == "STORE_CONFLICT_EXHAUSTED"

    def test_used_sale_validation(self, client, db_session, static_key_headers):
        resp = client.post(
            "/api/carts/SN1/used-sale",
            json={"customer": {"name": "Mario", "email": "m@x.it"}, "warranty_months": -2},
            headers=static_key_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error_kind"] == "INVALID_DURATION"


class TestWarrantyLookupRoute:

    def test_public_lookup_unknown_serial(self, client, db_session):
        resp = client.get("/api/warranty/SN_UNKNOWN")
        assert resp.status_code == 200
        assert resp.get_json() == {"registration": None, "cart": None, "residual_warranty_days": None}

    def test_public_lookup_known_serial(self, client, db_session):
        client.post("/api/registrations", json=NEW_SALE)
        resp = client.get("/api/warranty/SN100")
        data = resp.get_json()
        assert data["registration"]["id"] == "1001"
        assert isinstance(data["residual_warranty_days"], int)


class TestAdminRoutes:

    def test_login_and_verify(self, client, db_session):
        headers = _login(client)
        resp = client.get("/api/admin/verify", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json() == {"valid": True, "auth": "token"}

    def test_bad_password(self, client):
        resp = client.post("/api/admin/login", json={"password": "nope"})
        assert resp.status_code == 401
        assert resp.get_json()["error_kind"] == "UNAUTHORIZED"

    def test_garbage_token_rejected(self, client):
        resp = client.get("/api/admin/verify", headers={"Authorization": "Bearer abc.def"})
        assert resp.status_code == 401

    def test_token_works_on_admin_routes(self, client, db_session):
        headers = _login(client)
        resp = client.get("/api/registrations", headers=headers)
        assert resp.status_code == 200


class TestSystemRoutes:

    def test_health_degraded_without_mail(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "degraded"
        assert data["checks"]["database"]["status"] == "healthy"

    def test_version(self, client):
        assert client.get("/version").get_json()["api_version"] == "1.0.0"
