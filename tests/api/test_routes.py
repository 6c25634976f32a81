"""HTTP adapter tests: status codes, payment wall, admin CRUD, gateway callback."""
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from portal.db.session import get_db
from portal.main import app
from portal.models.enums import Collection
from portal.services.subscriptions.service import SubscriptionGate


@pytest.fixture
def client(db, verifier):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    with patch("portal.services.identity.service.default_verifier", verifier), patch(
        "portal.api.routes.admin.default_verifier", verifier
    ):
        yield TestClient(app)
    app.dependency_overrides.clear()


def gate_payment(db, student):
    gate = SubscriptionGate(db)
    payment = gate.start_checkout(student)
    gate.confirm_payment(payment.id, "gw-test")
    db.refresh(student)


def _login(client, email, password="secret-pass"):
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


class TestHealthAndAuth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
        assert client.get("/ready").status_code == 200

    def test_metrics(self, client):
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "portal_store_mutations_total" in resp.text

    def test_bad_login(self, client, student):
        resp = client.post("/auth/login", json={"email": student.email, "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid email or password"

    def test_blocked_login(self, client, make_user):
        blocked = make_user(is_blocked=True)
        resp = client.post("/auth/login", json={"email": blocked.email, "password": "secret-pass"})
        assert resp.status_code == 403

    def test_register_then_me(self, client):
        resp = client.post(
            "/auth/register",
            json={
                "name": "Ravi",
                "email": "ravi@example.com",
                "mobile": "9000000009",
                "password": "pw-123456",
                "class_grade": "10",
                "role": "ADMIN",
            },
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["user"]["role"] == "STUDENT"
        headers = {"Authorization": f"Bearer {body['access_token']}"}
        assert client.get("/auth/me", headers=headers).json()["email"] == "ravi@example.com"

    def test_duplicate_register(self, client, student):
        resp = client.post(
            "/auth/register",
            json={"name": "X", "email": student.email, "mobile": "1", "password": "pw", "class_grade": "10"},
        )
        assert resp.status_code == 409

    def test_me_without_token(self, client):
        assert client.get("/auth/me").status_code == 401

    def test_logout(self, client, student):
        headers = _login(client, student.email)
        assert client.post("/auth/logout", headers=headers).status_code == 200
        assert client.post("/auth/logout", headers=headers).status_code == 200
        assert client.get("/auth/me", headers=headers).status_code == 401


class TestContent:
    def test_unpaid_student_hits_payment_wall(self, client, student, make_content):
        make_content()
        resp = client.get("/content", headers=_login(client, student.email))
        assert resp.status_code == 402
        assert resp.json()["amount"] == 500

    def test_paid_student_sees_own_class(self, client, db, student, make_content):
        make_content(title="Mine")
        make_content(title="Other class", class_grade="12")
        gate_payment(db, student)
        resp = client.get("/content", headers=_login(client, student.email))
        assert resp.status_code == 200
        assert [i["title"] for i in resp.json()["items"]] == ["Mine"]

    def test_download_stamps_watermark(self, client, db, store, student, make_content):
        item = make_content()
        gate_payment(db, student)
        resp = client.post(f"/content/{item.id}/download", headers=_login(client, student.email))
        assert resp.status_code == 200
        assert resp.json()["watermark"] == {"NAME": "Asha", "MOBILE": "9123456789"}
        assert store.get_by_id(Collection.CONTENT, item.id).downloads == 1

    def test_hidden_item_is_not_found_for_students(self, client, db, student, make_content):
        item = make_content(is_visible=False)
        gate_payment(db, student)
        resp = client.get(f"/content/{item.id}", headers=_login(client, student.email))
        assert resp.status_code == 404

    def test_teacher_uploads(self, client, teacher):
        resp = client.post(
            "/content",
            headers=_login(client, teacher.email),
            json={
                "title": "Optics",
                "type": "VIDEO",
                "url": "https://cdn.example.com/optics.mp4",
                "class_grade": "11",
                "subject": "Physics",
                "chapter": "Light",
            },
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["uploaded_by"] == teacher.id

    def test_student_cannot_upload(self, client, student):
        resp = client.post("/content", headers=_login(client, student.email), json={"title": "x"})
        assert resp.status_code == 403


class TestPayments:
    @patch("portal.api.routes.payments.settings")
    def test_checkout_and_callback(self, mock_settings, client, db, student):
        mock_settings.payment_webhook_secret = "gateway-shared-secret"
        headers = _login(client, student.email)
        payment = client.post("/payments/checkout", headers=headers).json()
        assert payment["status"] == "PENDING"

        rejected = client.post(f"/payments/{payment['id']}/callback", json={"success": True})
        assert rejected.status_code == 403

        resp = client.post(
            f"/payments/{payment['id']}/callback",
            json={"success": True, "gateway_ref": "gw-9"},
            headers={"X-Webhook-Secret": "gateway-shared-secret"},
        )
        assert resp.json() == {"status": "SUCCESS", "activated": True}
        assert client.get("/payments/status", headers=headers).json()["active"] is True

    def test_checkout_for_unknown_class(self, client, student):
        resp = client.post("/payments/checkout", headers=_login(client, student.email), json={"target_class": "99"})
        assert resp.status_code == 422


class TestAdmin:
    def test_admin_crud_and_audit(self, client, admin):
        headers = _login(client, admin.email)
        created = client.post(
            "/admin/plans",
            headers=headers,
            json={"name": "Crash course", "type": "CLASS_WISE", "price": 300, "duration_days": 90},
        )
        assert created.status_code == 201, created.text
        plan_id = created.json()["id"]
        assert client.patch(f"/admin/plans/{plan_id}", headers=headers, json={"price": 350}).json()["price"] == 350
        assert client.delete(f"/admin/plans/{plan_id}", headers=headers).json() == {"deleted": True}
        assert client.delete(f"/admin/plans/{plan_id}", headers=headers).json() == {"deleted": False}
        actions = [e["action"] for e in client.get("/admin/audit?limit=3", headers=headers).json()]
        assert actions == ["PLAN_DELETE", "PLAN_UPDATE", "PLAN_CREATE"]

    def test_admin_creates_user_with_password(self, client, admin):
        headers = _login(client, admin.email)
        resp = client.post(
            "/admin/users",
            headers=headers,
            json={"email": "t2@growup.com", "password": "teach-123", "name": "T2", "role": "TEACHER"},
        )
        assert resp.status_code == 201, resp.text
        assert "password_hash" not in resp.json()
        _login(client, "t2@growup.com", "teach-123")

    def test_admin_cannot_create_paid_student(self, client, admin):
        resp = client.post(
            "/admin/users",
            headers=_login(client, admin.email),
            json={"email": "s2@example.com", "password": "pw-123456", "name": "S2", "class_grade": "10", "is_paid": True},
        )
        assert resp.status_code == 422

    def test_admin_cannot_record_successful_payment(self, client, admin, student):
        resp = client.post(
            "/admin/payments",
            headers=_login(client, admin.email),
            json={"user_id": student.id, "amount": 500, "status": "SUCCESS", "subscription_type": "CLASS_WISE"},
        )
        assert resp.status_code == 422

    def test_missing_row(self, client, admin):
        resp = client.patch("/admin/content/missing", headers=_login(client, admin.email), json={"title": "x"})
        assert resp.status_code == 404

    def test_demoting_last_admin(self, client, admin):
        resp = client.patch(f"/admin/users/{admin.id}", headers=_login(client, admin.email), json={"role": "TEACHER"})
        assert resp.status_code == 403

    def test_blocking_ends_sessions(self, client, admin, student):
        student_headers = _login(client, student.email)
        resp = client.patch(
            f"/admin/users/{student.id}", headers=_login(client, admin.email), json={"is_blocked": True}
        )
        assert resp.status_code == 200
        assert client.get("/auth/me", headers=student_headers).status_code == 401

    def test_teacher_cannot_read_users(self, client, teacher):
        assert client.get("/admin/users", headers=_login(client, teacher.email)).status_code == 403

    def test_student_kept_out(self, client, student):
        assert client.get("/admin/content", headers=_login(client, student.email)).status_code == 403

    def test_settings(self, client, admin, teacher):
        resp = client.put("/admin/settings", headers=_login(client, admin.email), json={"enable_ads": False})
        assert resp.json()["enable_ads"] is False
        denied = client.put("/admin/settings", headers=_login(client, teacher.email), json={"enable_ads": True})
        assert denied.status_code == 403

    def test_invalid_field(self, client, admin):
        resp = client.post("/admin/plans", headers=_login(client, admin.email), json={"name": "x", "type": "NOPE", "price": 1})
        assert resp.status_code == 422
