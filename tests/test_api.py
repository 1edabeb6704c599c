"""
HTTP-level tests: role guards, error bodies and the full
request -> approval -> payment -> confirmation flow.
"""

import json

import pytest

from academy_api import config
from academy_api.auth import get_password_hash
from academy_api.models import Inscription, InscriptionStatus, Payment, PaymentStatus, UserRole
from academy_api.webhook_security import SIGNATURE_HEADER, compute_signature
from tests.conftest import auth_headers

WEBHOOK_SECRET = "whsec_test_shared_secret"


@pytest.fixture
def webhook_secret(monkeypatch):
    monkeypatch.setattr(config, "GATEWAY_WEBHOOK_SECRET", WEBHOOK_SECRET)
    return WEBHOOK_SECRET


def post_signed_event(client, event, secret=WEBHOOK_SECRET):
    body = json.dumps(event).encode("utf-8")
    return client.post(
        "/api/v1/payments/webhook",
        content=body,
        headers={"Content-Type": "application/json", SIGNATURE_HEADER: compute_signature(secret, body)},
    )


class TestAuthentication:
    def test_login_returns_a_token(self, client, db, make_user):
        user = make_user(UserRole.STUDENT, hashed_password=get_password_hash("s3cret"))

        response = client.post("/api/v1/auth/token", data={"username": user.username, "password": "s3cret"})

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user_info"]["username"] == user.username

    def test_wrong_password(self, client, make_user):
        user = make_user(UserRole.STUDENT, hashed_password=get_password_hash("s3cret"))

        response = client.post("/api/v1/auth/token", data={"username": user.username, "password": "nope"})

        assert response.status_code == 401

    def test_requests_without_token_are_rejected(self, client):
        assert client.get("/api/v1/inscriptions/me").status_code == 401

    def test_pending_accounts_are_blocked(self, client, make_user):
        pending = make_user(UserRole.PENDING)

        response = client.get("/api/v1/auth/me", headers=auth_headers(pending))

        assert response.status_code == 403


class TestRoleGuards:
    def test_student_cannot_list_academy_inscriptions(self, client, student):
        response = client.get("/api/v1/inscriptions", headers=auth_headers(student))

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "forbidden"

    def test_student_cannot_enroll_directly(self, client, student, make_class):
        academy_class = make_class()

        response = client.post(
            "/api/v1/inscriptions",
            json={"student_id": student.id, "class_id": academy_class.id, "payment_type": "complimentary"},
            headers=auth_headers(student),
        )

        assert response.status_code == 403

    def test_admin_of_another_academy_cannot_process(self, client, db, student, make_user, make_class, other_academy):
        outsider = make_user(UserRole.ACADEMY_ADMIN, other_academy)
        academy_class = make_class()
        created = client.post(
            "/api/v1/reservation-requests", json={"class_id": academy_class.id}, headers=auth_headers(student)
        ).json()

        response = client.post(
            f"/api/v1/reservation-requests/{created['id']}/process",
            json={"decision": "approved"},
            headers=auth_headers(outsider),
        )

        assert response.status_code == 403

    def test_student_cannot_read_another_students_inscription(self, client, academy, admin, student, make_user, make_class):
        academy_class = make_class()
        created = client.post(
            "/api/v1/inscriptions",
            json={"student_id": student.id, "class_id": academy_class.id, "payment_type": "complimentary"},
            headers=auth_headers(admin),
        ).json()
        other = make_user(UserRole.STUDENT, academy)

        response = client.get(f"/api/v1/inscriptions/{created['id']}", headers=auth_headers(other))

        assert response.status_code == 403

    def test_super_admin_creates_academy(self, client, super_admin):
        response = client.post("/api/v1/academies", json={"name": "Checkmat Sul"}, headers=auth_headers(super_admin))

        assert response.status_code == 201
        assert response.json()["name"] == "Checkmat Sul"

    def test_academy_admin_cannot_create_academy(self, client, admin):
        response = client.post("/api/v1/academies", json={"name": "Rogue Dojo"}, headers=auth_headers(admin))

        assert response.status_code == 403


class TestErrorBodies:
    def test_class_full_is_409_with_code(self, client, admin, student, make_class):
        academy_class = make_class(capacity=1, enrolled_count=1)

        response = client.post(
            "/api/v1/inscriptions",
            json={"student_id": student.id, "class_id": academy_class.id, "payment_type": "complimentary"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "class_full"

    def test_manual_settlement_needs_currency(self, client, db, admin, student, make_class):
        academy_class = make_class(price=35.0)
        payload = {"student_id": student.id, "class_id": academy_class.id, "payment_type": "paid_per_class"}

        missing_currency = client.post(
            "/api/v1/inscriptions", json={**payload, "amount_paid": 35.0}, headers=auth_headers(admin)
        )
        zero_amount = client.post(
            "/api/v1/inscriptions", json={**payload, "amount_paid": 0, "currency": "BRL"}, headers=auth_headers(admin)
        )

        assert missing_currency.status_code == 400
        assert missing_currency.json()["detail"]["code"] == "invalid_manual_payment"
        assert zero_amount.status_code == 422
        db.refresh(academy_class)
        assert academy_class.enrolled_count == 0

    def test_duplicate_request_is_409(self, client, student, make_class):
        academy_class = make_class()
        payload = {"class_id": academy_class.id}
        client.post("/api/v1/reservation-requests", json=payload, headers=auth_headers(student))

        response = client.post("/api/v1/reservation-requests", json=payload, headers=auth_headers(student))

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "duplicate_request"

    def test_unknown_class_is_404(self, client, student):
        response = client.post("/api/v1/reservation-requests", json={"class_id": 999}, headers=auth_headers(student))

        assert response.status_code == 404

    def test_class_update_cannot_touch_enrolled_count(self, client, db, admin, make_class):
        academy_class = make_class(capacity=5, enrolled_count=2)

        response = client.put(
            f"/api/v1/classes/{academy_class.id}",
            json={"name": "Renamed", "enrolled_count": 0},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        db.refresh(academy_class)
        assert academy_class.name == "Renamed"
        assert academy_class.enrolled_count == 2

    def test_capacity_cannot_drop_below_enrolled(self, client, admin, make_class):
        academy_class = make_class(capacity=5, enrolled_count=3)

        response = client.put(
            f"/api/v1/classes/{academy_class.id}", json={"capacity": 2}, headers=auth_headers(admin)
        )

        assert response.status_code == 409


class TestEnrollmentFlow:
    def test_request_approve_pay_confirm(self, client, db, admin, student, make_class, webhook_secret):
        academy_class = make_class(capacity=3, price=35.0)

        created = client.post(
            "/api/v1/reservation-requests",
            json={"class_id": academy_class.id, "student_notes": "Blue belt"},
            headers=auth_headers(student),
        )
        assert created.status_code == 201
        request_id = created.json()["id"]

        processed = client.post(
            f"/api/v1/reservation-requests/{request_id}/process",
            json={"decision": "approved", "payment_details": {"payment_type": "paid_per_class"}},
            headers=auth_headers(admin),
        )
        assert processed.status_code == 200
        inscription_id = processed.json()["inscription_id"]

        mine = client.get("/api/v1/inscriptions/me", headers=auth_headers(student)).json()
        assert [i["status"] for i in mine] == ["pending_payment"]
        payment_id = mine[0]["payment_id"]

        event = {
            "id": "evt_flow",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_flow", "latest_charge": "ch_flow", "metadata": {"payment_id": str(payment_id)}}},
        }
        assert post_signed_event(client, event).status_code == 200
        # Redelivery
        assert post_signed_event(client, event).status_code == 200

        db.expire_all()
        assert db.get(Inscription, inscription_id).status == InscriptionStatus.CONFIRMED.value
        assert db.get(Payment, payment_id).status == PaymentStatus.COMPLETED.value

        payment = client.get(f"/api/v1/payments/{payment_id}", headers=auth_headers(student))
        assert payment.json()["status"] == "completed"

        cancelled = client.post(
            f"/api/v1/inscriptions/{inscription_id}/cancel", json={"reason": "Moved away"}, headers=auth_headers(admin)
        )
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled_by_admin"
        db.refresh(academy_class)
        assert academy_class.enrolled_count == 0

    def test_student_withdraws_request(self, client, student, make_class):
        academy_class = make_class()
        created = client.post(
            "/api/v1/reservation-requests", json={"class_id": academy_class.id}, headers=auth_headers(student)
        ).json()

        response = client.post(f"/api/v1/reservation-requests/{created['id']}/cancel", headers=auth_headers(student))

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled_by_user"

    def test_malformed_webhook_is_acknowledged(self, client, webhook_secret):
        response = post_signed_event(client, {"type": "payment_intent.succeeded"})

        assert response.status_code == 200

    def test_mercadopago_webhook_without_gateway_is_acknowledged(self, client):
        response = client.post("/api/v1/payments/mercadopago/webhook?topic=payment&id=123")

        assert response.status_code == 200
        assert response.json()["detail"] == "handled_with_error"


class TestGatewayWebhookSignature:
    @pytest.fixture
    def pending_payment(self, client, admin, student, make_class):
        academy_class = make_class(capacity=2, price=35.0)
        created = client.post(
            "/api/v1/inscriptions",
            json={"student_id": student.id, "class_id": academy_class.id, "payment_type": "paid_per_class"},
            headers=auth_headers(admin),
        )
        assert created.status_code == 201
        return created.json()["id"], created.json()["payment_id"]

    @staticmethod
    def _success_event(payment_id):
        return {
            "id": "evt_forged",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_fake", "metadata": {"payment_id": payment_id}}},
        }

    def _assert_untouched(self, db, inscription_id, payment_id):
        db.expire_all()
        assert db.get(Payment, payment_id).status == PaymentStatus.PENDING.value
        assert db.get(Inscription, inscription_id).status == InscriptionStatus.PENDING_PAYMENT.value

    def test_unsigned_event_is_rejected_and_changes_nothing(self, client, db, pending_payment, webhook_secret):
        inscription_id, payment_id = pending_payment

        response = client.post("/api/v1/payments/webhook", json=self._success_event(payment_id))

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "missing_signature"
        self._assert_untouched(db, inscription_id, payment_id)

    def test_event_signed_with_wrong_secret_is_rejected(self, client, db, pending_payment, webhook_secret):
        inscription_id, payment_id = pending_payment

        response = post_signed_event(client, self._success_event(payment_id), secret="not-the-secret")

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "invalid_signature"
        self._assert_untouched(db, inscription_id, payment_id)

    def test_signature_over_a_different_body_is_rejected(self, client, db, pending_payment, webhook_secret):
        inscription_id, payment_id = pending_payment
        signed = json.dumps({"type": "ping"}).encode("utf-8")

        response = client.post(
            "/api/v1/payments/webhook",
            content=json.dumps(self._success_event(payment_id)).encode("utf-8"),
            headers={"Content-Type": "application/json", SIGNATURE_HEADER: compute_signature(WEBHOOK_SECRET, signed)},
        )

        assert response.status_code == 401
        self._assert_untouched(db, inscription_id, payment_id)

    def test_webhook_is_closed_without_a_configured_secret(self, client, db, pending_payment, monkeypatch):
        monkeypatch.setattr(config, "GATEWAY_WEBHOOK_SECRET", None)
        inscription_id, payment_id = pending_payment

        response = post_signed_event(client, self._success_event(payment_id))

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "webhook_not_configured"
        self._assert_untouched(db, inscription_id, payment_id)

    def test_prefixed_signature_is_accepted(self, client, db, pending_payment, webhook_secret):
        inscription_id, payment_id = pending_payment
        body = json.dumps(self._success_event(payment_id)).encode("utf-8")

        response = client.post(
            "/api/v1/payments/webhook",
            content=body,
            headers={
                "Content-Type": "application/json",
                SIGNATURE_HEADER: "sha256=" + compute_signature(WEBHOOK_SECRET, body),
            },
        )

        assert response.status_code == 200
        db.expire_all()
        assert db.get(Inscription, inscription_id).status == InscriptionStatus.CONFIRMED.value

    def test_signed_body_that_is_not_json_is_acknowledged(self, client, webhook_secret):
        body = b"not json"

        response = client.post(
            "/api/v1/payments/webhook",
            content=body,
            headers={SIGNATURE_HEADER: compute_signature(WEBHOOK_SECRET, body)},
        )

        assert response.status_code == 200
