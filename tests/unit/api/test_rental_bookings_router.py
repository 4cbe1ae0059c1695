"""Router tests for /api/rental-bookings and the Stripe webhook endpoint."""

from typing import Any
from unittest.mock import MagicMock

import stripe
from fastapi.testclient import TestClient


def _reserve(client: TestClient, headers: dict[str, str], rental_id: int = 1) -> dict[str, Any]:
    response = client.post("/api/rental-bookings", json={"rentalId": rental_id}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateRentalBooking:
    def test_requires_principal(self, client: TestClient) -> None:
        response = client.post("/api/rental-bookings", json={"rentalId": 1})

        assert response.status_code == 401
        assert response.json()["error_code"] == "ERR_AUTH_001"

    def test_malformed_user_header(self, client: TestClient) -> None:
        response = client.post(
            "/api/rental-bookings", json={"rentalId": 1}, headers={"x-user-id": "abc"}
        )

        assert response.status_code == 401

    def test_returns_client_secret(
        self, client: TestClient, user_headers: dict[str, str]
    ) -> None:
        body = _reserve(client, user_headers)

        assert body["status"] == "success"
        assert body["clientSecret"] == "pi_test_123_secret_abc"
        assert isinstance(body["bookingId"], int)

    def test_second_reservation_conflicts(
        self,
        client: TestClient,
        user_headers: dict[str, str],
        other_user_headers: dict[str, str],
    ) -> None:
        _reserve(client, user_headers)

        response = client.post(
            "/api/rental-bookings", json={"rentalId": 1}, headers=other_user_headers
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "ERR_CONFLICT_001"

    def test_unknown_rental(self, client: TestClient, user_headers: dict[str, str]) -> None:
        response = client.post(
            "/api/rental-bookings", json={"rentalId": 404}, headers=user_headers
        )

        assert response.status_code == 404

    def test_gateway_timeout(
        self,
        client: TestClient,
        user_headers: dict[str, str],
        mock_stripe_client: MagicMock,
    ) -> None:
        mock_stripe_client.payment_intents.create.side_effect = stripe.APIConnectionError(
            "Request timed out"
        )

        response = client.post("/api/rental-bookings", json={"rentalId": 1}, headers=user_headers)

        assert response.status_code == 502
        assert response.json()["error_code"] == "ERR_STRIPE_003"
        mine = client.get("/api/rental-bookings/my-bookings", headers=user_headers).json()
        assert len(mine["data"]["bookings"]) == 1


class TestCompleteAndList:
    def test_complete_twice(self, client: TestClient, user_headers: dict[str, str]) -> None:
        booking_id = _reserve(client, user_headers)["bookingId"]

        first = client.patch(f"/api/rental-bookings/{booking_id}/complete", headers=user_headers)
        second = client.patch(f"/api/rental-bookings/{booking_id}/complete", headers=user_headers)

        assert first.status_code == 200
        assert first.json()["message"] == "Rental completed and marked as available"
        assert second.status_code == 409
        assert second.json()["error_code"] == "ERR_CONFLICT_004"

    def test_complete_requires_principal(
        self, client: TestClient, user_headers: dict[str, str]
    ) -> None:
        booking_id = _reserve(client, user_headers)["bookingId"]

        assert client.patch(f"/api/rental-bookings/{booking_id}/complete").status_code == 401

    def test_my_bookings(self, client: TestClient, user_headers: dict[str, str]) -> None:
        booking_id = _reserve(client, user_headers)["bookingId"]

        response = client.get("/api/rental-bookings/my-bookings", headers=user_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        [booking] = body["data"]["bookings"]
        assert booking["id"] == booking_id
        assert booking["paymentStatus"] == "pending"
        assert booking["rental"]["title"] == "BCD size M"


class TestWebhook:
    def test_payment_succeeded(
        self,
        client: TestClient,
        user_headers: dict[str, str],
        sign_webhook: Any,
        event_factory: Any,
    ) -> None:
        booking_id = _reserve(client, user_headers)["bookingId"]
        payload = event_factory(event_id="evt_api_1", metadata={"bookingId": str(booking_id)})

        response = client.post(
            "/api/rental-bookings/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_webhook(payload), "Content-Type": "application/json"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["received"] is True
        assert body["eventId"] == "evt_api_1"
        assert body["processingResult"] == "success"
        mine = client.get("/api/rental-bookings/my-bookings", headers=user_headers).json()
        assert mine["data"]["bookings"][0]["paymentStatus"] == "paid"

    def test_duplicate_delivery(
        self,
        client: TestClient,
        user_headers: dict[str, str],
        sign_webhook: Any,
        event_factory: Any,
    ) -> None:
        booking_id = _reserve(client, user_headers)["bookingId"]
        payload = event_factory(event_id="evt_api_2", metadata={"bookingId": str(booking_id)})
        headers = {"Stripe-Signature": sign_webhook(payload)}

        client.post("/api/rental-bookings/webhook", content=payload, headers=headers)
        response = client.post("/api/rental-bookings/webhook", content=payload, headers=headers)

        assert response.status_code == 200
        assert response.json()["processingResult"] == "duplicate"

    def test_unknown_booking_is_acknowledged(
        self, client: TestClient, sign_webhook: Any, event_factory: Any
    ) -> None:
        payload = event_factory(metadata={"bookingId": "9999"})

        response = client.post(
            "/api/rental-bookings/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_webhook(payload)},
        )

        assert response.status_code == 200
        assert response.json()["processingResult"] == "anomaly"

    def test_invalid_signature(
        self, client: TestClient, sign_webhook: Any, event_factory: Any
    ) -> None:
        payload = event_factory()

        response = client.post(
            "/api/rental-bookings/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_webhook(payload, secret="whsec_wrong")},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "ERR_STRIPE_001"

    def test_missing_signature(self, client: TestClient, event_factory: Any) -> None:
        response = client.post("/api/rental-bookings/webhook", content=event_factory())

        assert response.status_code == 400

    def test_no_principal_needed(
        self, client: TestClient, sign_webhook: Any, event_factory: Any
    ) -> None:
        payload = event_factory(event_type="payment_intent.created")

        response = client.post(
            "/api/rental-bookings/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_webhook(payload)},
        )

        assert response.status_code == 200
        assert response.json()["processingResult"] == "skipped"
