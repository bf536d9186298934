from sqlalchemy import func, select

from eduplatform.models.timetable import TimetableEntry
from eduplatform.models.user import User


def entry_payload(course, subject, instructor, day=1, start="09:00", end="10:00"):
    return {
        "course_id": course.id,
        "subject_id": subject.id,
        "instructor_id": instructor.id,
        "day_of_week": day,
        "start_time": start,
        "end_time": end,
        "room_number": "R-101",
    }


async def count_entries(db):
    return (await db.execute(select(func.count(TimetableEntry.id)))).scalar_one()


async def test_create_entry_returns_names_and_normalised_times(client, course, physics, instructor):
    response = await client.post("/api/timetable/entries", json=entry_payload(course, physics, instructor))

    assert response.status_code == 201
    body = response.json()
    assert body["entry"]["start_time"] == "09:00:00"
    assert body["entry"]["subject_name"] == "Physics"
    assert body["entry"]["course_name"] == "JEE Main"
    assert body["warnings"] == []


async def test_hard_conflict_is_rejected_without_creating_row(client, db, course, physics, instructor):
    first = await client.post("/api/timetable/entries", json=entry_payload(course, physics, instructor))
    assert first.status_code == 201

    response = await client.post(
        "/api/timetable/entries",
        json=entry_payload(course, physics, instructor, start="09:30", end="10:30"),
    )

    assert response.status_code == 409
    assert response.json()["conflicts"][0]["type"] == "hard"
    assert await count_entries(db) == 1


async def test_back_to_back_entry_is_created_with_warning(client, course, physics, instructor):
    await client.post("/api/timetable/entries", json=entry_payload(course, physics, instructor))

    response = await client.post(
        "/api/timetable/entries",
        json=entry_payload(course, physics, instructor, start="10:00", end="11:00"),
    )

    assert response.status_code == 201
    assert [w["type"] for w in response.json()["warnings"]] == ["soft"]


async def test_conflict_check_changes_nothing(client, db, course, physics, instructor):
    await client.post("/api/timetable/entries", json=entry_payload(course, physics, instructor))

    response = await client.post("/api/timetable/conflicts", json={
        "instructor_id": instructor.id,
        "day_of_week": 1,
        "start_time": "09:15",
        "end_time": "09:45",
    })

    assert response.status_code == 200
    assert response.json()["has_hard_conflict"] is True
    assert await count_entries(db) == 1


async def test_move_keeps_duration(client, course, physics, instructor):
    created = await client.post(
        "/api/timetable/entries",
        json=entry_payload(course, physics, instructor, start="09:00", end="10:30"),
    )
    entry_id = created.json()["entry"]["id"]

    response = await client.patch(
        f"/api/timetable/entries/{entry_id}/move",
        json={"day_of_week": 3, "start_time": "14:00"},
    )

    assert response.status_code == 200
    moved = response.json()["entry"]
    assert moved["day_of_week"] == 3
    assert moved["start_time"] == "14:00:00"
    assert moved["end_time"] == "15:30:00"


async def test_move_into_overlap_is_rejected(client, course, physics, instructor):
    await client.post("/api/timetable/entries", json=entry_payload(course, physics, instructor, day=2))
    created = await client.post("/api/timetable/entries", json=entry_payload(course, physics, instructor, day=4))
    entry_id = created.json()["entry"]["id"]

    response = await client.patch(
        f"/api/timetable/entries/{entry_id}/move",
        json={"day_of_week": 2, "start_time": "09:30"},
    )

    assert response.status_code == 409


async def test_subject_taught_by_other_instructor_conflicts(client, db, course, physics, instructor):
    other = User(email="other@example.com", full_name="Other", role="instructor")
    db.add(other)
    await db.commit()
    await client.post("/api/timetable/entries", json=entry_payload(course, physics, instructor))

    response = await client.post("/api/timetable/conflicts", json={
        "instructor_id": other.id,
        "subject_id": physics.id,
        "day_of_week": 1,
        "start_time": "09:00",
        "end_time": "10:00",
    })

    conflicts = response.json()["conflicts"]
    assert [c["conflict_type"] for c in conflicts] == ["subject"]


async def test_delete_deactivates_and_hides_entry(client, course, physics, instructor):
    created = await client.post("/api/timetable/entries", json=entry_payload(course, physics, instructor))
    entry_id = created.json()["entry"]["id"]

    response = await client.delete(f"/api/timetable/entries/{entry_id}")
    assert response.status_code == 200

    listing = await client.get(f"/api/timetable/instructors/{instructor.id}")
    assert listing.json() == []


async def test_students_cannot_write_timetable(client, course, physics, instructor, student):
    client.user["id"] = student.id
    response = await client.post("/api/timetable/entries", json=entry_payload(course, physics, instructor))
    assert response.status_code == 403


async def test_pdf_export(client, course, physics, instructor):
    await client.post("/api/timetable/entries", json=entry_payload(course, physics, instructor))

    response = await client.get(f"/api/timetable/instructors/{instructor.id}/pdf")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
