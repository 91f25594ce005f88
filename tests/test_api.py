import pytest
from httpx import ASGITransport, AsyncClient

from config import get_settings
from dependencies import get_clock, get_notifier, get_session_maker
from main import app
from users.auth import current_active_user

from tests._utils import COURSE_ID

MONDAY_SLOT = {"day_of_week": 1, "start_time": "10:00:00", "end_time": "12:00:00"}


@pytest.fixture
def acting():
    return {}


@pytest.fixture
async def client(session_maker, clock, settings, notifier, catalog, acting):
    app.dependency_overrides[get_session_maker] = lambda: session_maker
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[current_active_user] = lambda: acting["user"]
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def create_monday_slot(client, acting, tutor):
    acting["user"] = tutor
    response = await client.post("/api/v1/tutors/me/time-slots", json=MONDAY_SLOT)
    assert response.status_code == 200, response.text
    return response.json()


async def request_session(client, tutor, start="2030-01-07T10:00:00Z", duration=30):
    return await client.post(
        "/api/v1/sessions/",
        json={
            "tutor_id": str(tutor.id),
            "course_id": COURSE_ID,
            "scheduled_date": start,
            "duration_minutes": duration,
            "student_question": "Can we go over the chain rule?",
        },
    )


@pytest.mark.asyncio
async def test_time_slot_endpoints(client, acting, tutor, student):
    slot = await create_monday_slot(client, acting, tutor)
    assert slot["day_of_week"] == 1
    assert slot["is_available"] is True

    response = await client.patch(
        f"/api/v1/tutors/me/time-slots/{slot['id']}", json={"is_available": False}
    )
    assert response.json()["is_available"] is False

    listed = await client.get("/api/v1/tutors/me/time-slots")
    assert [s["id"] for s in listed.json()] == [slot["id"]]

    acting["user"] = student
    response = await client.post("/api/v1/tutors/me/time-slots", json=MONDAY_SLOT)
    assert response.status_code == 403

    acting["user"] = tutor
    response = await client.delete(f"/api/v1/tutors/me/time-slots/{slot['id']}")
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_overlapping_time_slot_is_a_bad_request(client, acting, tutor):
    await create_monday_slot(client, acting, tutor)

    response = await client.post(
        "/api/v1/tutors/me/time-slots",
        json={"day_of_week": 1, "start_time": "11:00:00", "end_time": "13:00:00"},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "ValidationError"


@pytest.mark.asyncio
async def test_available_slots(client, acting, tutor, student):
    await create_monday_slot(client, acting, tutor)
    acting["user"] = student

    response = await client.get(
        f"/api/v1/tutors/{tutor.id}/available-slots",
        params={
            "start": "2030-01-07T00:00:00Z",
            "end": "2030-01-08T00:00:00Z",
            "duration_minutes": 60,
            "course_id": COURSE_ID,
        },
    )

    assert response.status_code == 200
    assert [w["start"] for w in response.json()] == [
        "2030-01-07T10:00:00Z",
        "2030-01-07T11:00:00Z",
    ]


@pytest.mark.asyncio
async def test_booking_and_lifecycle(client, acting, tutor, student, other_student):
    await create_monday_slot(client, acting, tutor)

    acting["user"] = student
    response = await request_session(client, tutor)
    assert response.status_code == 200, response.text
    session = response.json()
    assert session["status"] == "REQUESTED"
    assert session["version"] == 1

    acting["user"] = other_student
    response = await request_session(client, tutor, start="2030-01-07T10:15:00Z")
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "tutor_conflict"

    response = await client.get(f"/api/v1/sessions/{session['id']}")
    assert response.status_code == 403

    acting["user"] = tutor
    response = await client.patch(
        f"/api/v1/sessions/{session['id']}/status",
        json={"status": "SCHEDULED", "expected_version": 1},
    )
    assert response.status_code == 200
    assert response.json()["version"] == 2

    response = await client.patch(
        f"/api/v1/sessions/{session['id']}/status",
        json={"status": "COMPLETED", "expected_version": 2},
    )
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "InvalidTransitionError"

    acting["user"] = student
    response = await client.post(
        f"/api/v1/sessions/{session['id']}/cancel",
        json={"reason": "Exam moved", "expected_version": 1},
    )
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "ConcurrencyConflictError"

    response = await client.post(
        f"/api/v1/sessions/{session['id']}/cancel", json={"reason": "Exam moved"}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"
    assert response.json()["cancelled_by"] == str(student.id)

    response = await client.get("/api/v1/sessions/me")
    assert [s["id"] for s in response.json()] == [session["id"]]

    acting["user"] = tutor
    response = await client.get("/api/v1/sessions/me/stats")
    assert response.json()["counts"]["CANCELLED"] == 1
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_tutor_notes_and_reschedule(client, acting, tutor, student):
    await create_monday_slot(client, acting, tutor)
    acting["user"] = student
    session = (await request_session(client, tutor)).json()

    response = await client.post(
        f"/api/v1/sessions/{session['id']}/notes", json={"notes": "Review derivatives"}
    )
    assert response.status_code == 403

    acting["user"] = tutor
    response = await client.post(
        f"/api/v1/sessions/{session['id']}/notes", json={"notes": "Review derivatives"}
    )
    assert response.json()["tutor_notes"] == "Review derivatives"

    response = await client.patch(
        f"/api/v1/sessions/{session['id']}",
        json={"scheduled_date": "2030-01-07T11:00:00Z", "duration_minutes": 45},
    )
    assert response.status_code == 200
    assert response.json()["scheduled_end"] == "2030-01-07T11:45:00Z"


@pytest.mark.asyncio
async def test_naive_datetimes_are_rejected(client, acting, tutor, student):
    await create_monday_slot(client, acting, tutor)
    acting["user"] = student

    response = await request_session(client, tutor, start="2030-01-07T10:00:00")

    assert response.status_code == 400
