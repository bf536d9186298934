from starlette.requests import Request
from sqlalchemy import select

from eduplatform.models.document import PendingQuestion, Question
from eduplatform.services import question_service


def make_request(headers):
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "headers": raw})


def test_client_ip_prefers_forwarded_first_hop():
    assert question_service.client_ip(make_request({"x-forwarded-for": "203.0.113.7, 10.0.0.1"})) == "203.0.113.7"
    assert question_service.client_ip(make_request({"x-real-ip": "198.51.100.2"})) == "198.51.100.2"
    assert question_service.client_ip(make_request({})) == "unknown"


async def test_approve_transfers_to_question_bank(client, db, instructor):
    pending = PendingQuestion(
        question_text="Unit of force?",
        options={"a": "N", "b": "J"},
        correct_answer="a",
        question_images=["https://cdn.example.com/q1.png", "https://cdn.example.com/q1b.png"],
        topic_id=None,
    )
    db.add(pending)
    await db.commit()

    response = await client.post(
        "/api/questions/approve",
        json={"question_ids": [pending.id]},
        headers={"x-forwarded-for": "203.0.113.7, 10.0.0.1"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["transferred_count"] == 1
    assert body["approved_by"] == instructor.id
    assert body["approved_from"] == "203.0.113.7"

    question = (await db.execute(select(Question))).scalars().one()
    assert question.is_verified is True
    assert question.question_image_url == "https://cdn.example.com/q1.png"
    assert question.verified_by == instructor.id

    await db.refresh(pending)
    assert pending.is_approved is True
    assert pending.approved_ip_address == "203.0.113.7"
    assert pending.transferred_to_question_bank is True
    assert pending.question_bank_id == question.id


async def test_approve_requires_ids(client):
    response = await client.post("/api/questions/approve", json={"question_ids": []})
    assert response.status_code == 422


async def test_approve_unknown_ids(client):
    response = await client.post("/api/questions/approve", json={"question_ids": [404]})
    assert response.status_code == 404
