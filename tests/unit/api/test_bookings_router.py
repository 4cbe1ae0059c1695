"""Router tests for /api/bookings."""

from typing import Any

from fastapi.testclient import TestClient


def _create(client: TestClient, **body: Any) -> dict[str, Any]:
    response = client.post("/api/bookings", json={"userId": 42, **body})
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateBooking:
    def test_course_booking(self, client: TestClient) -> None:
        booking = _create(client, courseId=1, amount=450)

        assert booking["status"] == "pending"
        assert booking["courseId"] == 1
        assert booking["tripId"] is None
        assert booking["userId"] == 42

    def test_client_status_is_ignored(self, client: TestClient) -> None:
        booking = _create(client, tripId=1, status="completed")

        assert booking["status"] == "pending"

    def test_both_targets(self, client: TestClient) -> None:
        response = client.post("/api/bookings", json={"userId": 42, "courseId": 1, "tripId": 1})

        assert response.status_code == 400
        assert response.json()["error_code"] == "ERR_VAL_002"

    def test_unknown_course(self, client: TestClient) -> None:
        response = client.post("/api/bookings", json={"userId": 42, "courseId": 404})

        assert response.status_code == 404
        assert response.json()["error_code"] == "ERR_NF_002"

    def test_malformed_body(self, client: TestClient) -> None:
        response = client.post("/api/bookings", json={"courseId": "one"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "ERR_VAL_001"
        fields = {tuple(e["loc"]) for e in body["details"]["errors"]}
        assert ("body", "userId") in fields
        assert ("body", "courseId") in fields


class TestReadBookings:
    def test_get_with_course(self, client: TestClient) -> None:
        booking = _create(client, courseId=1)

        response = client.get(f"/api/bookings/{booking['id']}")

        assert response.status_code == 200
        assert response.json()["course"]["title"] == "Open Water Diver"

    def test_get_missing(self, client: TestClient) -> None:
        response = client.get("/api/bookings/9999")

        assert response.status_code == 404
        assert response.json()["error_code"] == "ERR_NF_001"

    def test_list_for_user(self, client: TestClient) -> None:
        _create(client, courseId=1)
        client.post("/api/bookings", json={"userId": 7, "courseId": 2})

        response = client.get("/api/bookings/user/42")

        assert response.status_code == 200
        assert [b["userId"] for b in response.json()] == [42]

    def test_list_all(self, client: TestClient) -> None:
        _create(client, courseId=1)
        _create(client, tripId=1)

        assert len(client.get("/api/bookings").json()) == 2


class TestStatusChanges:
    def test_complete_then_cancel_conflicts(self, client: TestClient) -> None:
        booking = _create(client, courseId=1)

        completed = client.put(
            f"/api/bookings/status/{booking['id']}", json={"status": "completed"}
        )
        assert completed.status_code == 200
        assert completed.json()["booking"]["status"] == "completed"

        cancelled = client.patch(f"/api/bookings/{booking['id']}/cancel")
        assert cancelled.status_code == 409
        assert cancelled.json()["error_code"] == "ERR_CONFLICT_003"

    def test_cancel(self, client: TestClient) -> None:
        booking = _create(client, courseId=1)

        response = client.patch(f"/api/bookings/{booking['id']}/cancel")

        assert response.status_code == 200
        assert response.json()["message"] == "Booking cancelled successfully"
        assert response.json()["booking"]["status"] == "cancelled"

    def test_unknown_status(self, client: TestClient) -> None:
        booking = _create(client, courseId=1)

        response = client.put(f"/api/bookings/status/{booking['id']}", json={"status": "paid"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "ERR_VAL_003"


class TestDeleteBooking:
    def test_delete(self, client: TestClient) -> None:
        booking = _create(client, courseId=1)

        response = client.delete(f"/api/bookings/{booking['id']}")

        assert response.status_code == 200
        assert client.get(f"/api/bookings/{booking['id']}").status_code == 404

    def test_delete_missing(self, client: TestClient) -> None:
        assert client.delete("/api/bookings/9999").status_code == 404
