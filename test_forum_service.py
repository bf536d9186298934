from datetime import datetime, timedelta

import pytest

from eduplatform.exceptions import NotFoundError, PlatformException
from eduplatform.models.forum import ForumCategory, ForumPost, ForumReply, ForumUpvote
from eduplatform.models.user import User, UserRole
from eduplatform.schemas.forum_schema import FlagCreate
from eduplatform.services import forum_service

BASE = datetime(2026, 3, 1, 9, 0)


@pytest.fixture
async def post(db, student):
    post = ForumPost(author_id=student.id, title="Doubt in optics", content="Why is the image virtual?",
                     created_at=BASE, last_activity_at=BASE)
    db.add(post)
    await db.commit()
    return post


async def test_posts_pinned_first_then_recent_activity(db, student):
    category = ForumCategory(name="Physics", slug="physics")
    db.add(category)
    await db.commit()
    db.add_all([
        ForumPost(author_id=student.id, title="old", content="x", category_id=category.id, last_activity_at=BASE),
        ForumPost(author_id=student.id, title="recent", content="x", category_id=category.id,
                  last_activity_at=BASE + timedelta(days=2)),
        ForumPost(author_id=student.id, title="pinned", content="x", is_pinned=True, last_activity_at=BASE - timedelta(days=5)),
        ForumPost(author_id=student.id, title="hidden", content="x", status="hidden", last_activity_at=BASE + timedelta(days=9)),
    ])
    await db.commit()

    assert [p.title for p in await forum_service.list_posts(db)] == ["pinned", "recent", "old"]
    assert [p.title for p in await forum_service.list_posts(db, "physics")] == ["recent", "old"]
    assert await forum_service.list_posts(db, "chemistry") == []


async def test_viewing_post_counts_views(db, post):
    await forum_service.get_post(db, post.id)
    viewed = await forum_service.get_post(db, post.id)
    assert viewed.view_count == 2


async def test_reply_updates_post_activity(db, post, instructor):
    await forum_service.create_reply(db, post.id, instructor.id, "Rays diverge after reflection.")

    assert post.reply_count == 1
    assert post.last_activity_at > BASE


async def test_upvote_toggles(db, post, student, instructor):
    reply = await forum_service.create_reply(db, post.id, instructor.id, "Answer")

    first = await forum_service.toggle_upvote(db, reply.id, student.id)
    assert (first.upvoted, first.upvotes) == (True, 1)

    replies = await forum_service.list_replies(db, post.id, user_id=student.id)
    assert replies[0].user_upvoted is True

    second = await forum_service.toggle_upvote(db, reply.id, student.id)
    assert (second.upvoted, second.upvotes) == (False, 0)


async def test_upvote_count_never_negative(db, post, student):
    reply = ForumReply(post_id=post.id, author_id=student.id, content="x", upvotes=0)
    db.add(reply)
    await db.commit()

    # Vote row exists but the counter already drifted to zero
    db.add(ForumUpvote(reply_id=reply.id, user_id=student.id))
    await db.commit()

    result = await forum_service.toggle_upvote(db, reply.id, student.id)

    assert result.upvoted is False
    assert reply.upvotes == 0


async def test_accepting_answer_replaces_previous(db, post, student, instructor):
    first = await forum_service.create_reply(db, post.id, instructor.id, "First")
    second = await forum_service.create_reply(db, post.id, student.id, "Second")
    await forum_service.accept_answer(db, first.id, student.id)

    await forum_service.accept_answer(db, second.id, student.id)

    replies = await forum_service.list_replies(db, post.id)
    assert [(r.content, r.is_accepted_answer) for r in replies] == [("Second", True), ("First", False)]
    assert post.is_answered is True


async def test_only_author_or_staff_accepts_answer(db, post, student, instructor):
    reply = await forum_service.create_reply(db, post.id, instructor.id, "Answer")

    with pytest.raises(PlatformException) as excinfo:
        await forum_service.accept_answer(db, reply.id, instructor.id)
    assert excinfo.value.status_code == 403
    assert post.is_answered is False

    accepted = await forum_service.accept_answer(db, reply.id, instructor.id, is_staff=True)
    assert accepted.is_accepted_answer is True


async def test_replies_ordered_by_upvotes_then_age(db, post, student):
    db.add_all([
        ForumReply(post_id=post.id, author_id=student.id, content="older", upvotes=1, created_at=BASE),
        ForumReply(post_id=post.id, author_id=student.id, content="popular", upvotes=5, created_at=BASE + timedelta(hours=2)),
        ForumReply(post_id=post.id, author_id=student.id, content="newer", upvotes=1, created_at=BASE + timedelta(hours=1)),
    ])
    await db.commit()

    replies = await forum_service.list_replies(db, post.id)
    assert [r.content for r in replies] == ["popular", "older", "newer"]


async def test_flags_and_moderation_queue(db, post, student):
    flag = await forum_service.flag_content(db, FlagCreate(post_id=post.id, reason="spam"), student.id)

    assert [f.id for f in await forum_service.list_open_flags(db)] == [flag.id]
    assert [p.id for p in await forum_service.list_unanswered_posts(db)] == [post.id]

    await forum_service.resolve_flag(db, flag.id)
    assert await forum_service.list_open_flags(db) == []


async def test_flag_requires_existing_target(db, student):
    with pytest.raises(NotFoundError):
        await forum_service.flag_content(db, FlagCreate(reply_id=999, reason="spam"), student.id)


async def test_forum_routes(client, post, student):
    client.user["id"] = student.id

    response = await client.post(f"/api/forum/posts/{post.id}/replies", json={"content": "Me too"})
    assert response.status_code == 201
    reply_id = response.json()["id"]

    response = await client.post(f"/api/forum/replies/{reply_id}/upvote")
    assert response.json() == {"reply_id": reply_id, "upvoted": True, "upvotes": 1}

    response = await client.get("/api/forum/moderation/flags")
    assert response.status_code == 403


async def test_accept_route_rejects_other_users(client, db, post, student, instructor):
    reply = await forum_service.create_reply(db, post.id, instructor.id, "Answer")
    outsider = User(email="other@example.com", full_name="Student Two", role=UserRole.STUDENT.value)
    db.add(outsider)
    await db.commit()

    client.user["id"] = outsider.id
    response = await client.post(f"/api/forum/replies/{reply.id}/accept")
    assert response.status_code == 403
    assert response.json()["detail"] == "Only the post author can accept an answer"

    client.user["id"] = student.id
    response = await client.post(f"/api/forum/replies/{reply.id}/accept")
    assert response.status_code == 200
    assert response.json()["is_accepted_answer"] is True
