import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eduplatform.exceptions import NotFoundError, PlatformException
from eduplatform.models.forum import ForumCategory, ForumFlag, ForumPost, ForumReply, ForumUpvote
from eduplatform.schemas.forum_schema import FlagCreate, ReplyResponse, UpvoteResponse
from eduplatform.utils.time_utils import get_local_time

logger = logging.getLogger(__name__)


async def list_posts(db: AsyncSession, category_slug: Optional[str] = None) -> List[ForumPost]:
    stmt = select(ForumPost).where(ForumPost.status == "published")

    if category_slug:
        category = (await db.execute(
            select(ForumCategory).where(ForumCategory.slug == category_slug)
        )).scalars().first()
        if not category:
            return []
        stmt = stmt.where(ForumPost.category_id == category.id)

    stmt = stmt.order_by(ForumPost.is_pinned.desc(), ForumPost.last_activity_at.desc(), ForumPost.id.desc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_post(db: AsyncSession, post_id: int, count_view: bool = True) -> ForumPost:
    post = await db.get(ForumPost, post_id)
    if not post:
        raise NotFoundError(f"Post {post_id} not found")
    if count_view:
        post.view_count = (post.view_count or 0) + 1
        await db.commit()
    return post


async def _get_reply(db: AsyncSession, reply_id: int) -> ForumReply:
    reply = await db.get(ForumReply, reply_id)
    if not reply:
        raise NotFoundError(f"Reply {reply_id} not found")
    return reply


async def list_replies(db: AsyncSession, post_id: int, user_id: Optional[int] = None) -> List[ReplyResponse]:
    result = await db.execute(
        select(ForumReply).where(
            ForumReply.post_id == post_id,
            ForumReply.status == "published"
        ).order_by(
            ForumReply.is_accepted_answer.desc(),
            ForumReply.upvotes.desc(),
            ForumReply.created_at.asc(),
            ForumReply.id.asc()
        )
    )
    replies = result.scalars().all()

    upvoted_ids = set()
    if user_id and replies:
        votes = await db.execute(
            select(ForumUpvote.reply_id).where(
                ForumUpvote.user_id == user_id,
                ForumUpvote.reply_id.in_([r.id for r in replies])
            )
        )
        upvoted_ids = set(votes.scalars().all())

    items = []
    for reply in replies:
        item = ReplyResponse.model_validate(reply)
        item.user_upvoted = reply.id in upvoted_ids
        items.append(item)
    return items


async def create_reply(db: AsyncSession, post_id: int, author_id: int, content: str) -> ForumReply:
    post = await get_post(db, post_id, count_view=False)

    reply = ForumReply(post_id=post.id, author_id=author_id, content=content)
    db.add(reply)
    post.reply_count = (post.reply_count or 0) + 1
    post.last_activity_at = get_local_time()
    await db.commit()
    await db.refresh(reply)
    return reply


async def toggle_upvote(db: AsyncSession, reply_id: int, user_id: int) -> UpvoteResponse:
    reply = await _get_reply(db, reply_id)

    existing = (await db.execute(
        select(ForumUpvote).where(
            ForumUpvote.reply_id == reply_id,
            ForumUpvote.user_id == user_id
        )
    )).scalars().first()

    if existing:
        await db.delete(existing)
        reply.upvotes = max(0, (reply.upvotes or 0) - 1)
        upvoted = False
    else:
        db.add(ForumUpvote(reply_id=reply_id, user_id=user_id))
        reply.upvotes = (reply.upvotes or 0) + 1
        upvoted = True

    await db.commit()
    return UpvoteResponse(reply_id=reply_id, upvoted=upvoted, upvotes=reply.upvotes)


async def accept_answer(db: AsyncSession, reply_id: int, user_id: int, is_staff: bool = False) -> ForumReply:
    reply = await _get_reply(db, reply_id)
    post = await get_post(db, reply.post_id, count_view=False)
    if post.author_id != user_id and not is_staff:
        raise PlatformException("Only the post author can accept an answer", status_code=403)

    await db.execute(
        update(ForumReply)
        .where(ForumReply.post_id == post.id, ForumReply.id != reply.id)
        .values(is_accepted_answer=False)
    )
    reply.is_accepted_answer = True
    post.is_answered = True
    await db.commit()
    await db.refresh(reply)
    return reply


async def flag_content(db: AsyncSession, data: FlagCreate, flagged_by: int) -> ForumFlag:
    if data.post_id:
        await get_post(db, data.post_id, count_view=False)
    if data.reply_id:
        await _get_reply(db, data.reply_id)

    flag = ForumFlag(post_id=data.post_id, reply_id=data.reply_id, flagged_by=flagged_by, reason=data.reason)
    db.add(flag)
    await db.commit()
    await db.refresh(flag)
    logger.info(f"Content flagged by user {flagged_by}: post={data.post_id} reply={data.reply_id}")
    return flag


async def list_open_flags(db: AsyncSession) -> List[ForumFlag]:
    result = await db.execute(
        select(ForumFlag).where(ForumFlag.is_resolved == False).order_by(ForumFlag.created_at, ForumFlag.id)
    )
    return list(result.scalars().all())


async def resolve_flag(db: AsyncSession, flag_id: int) -> ForumFlag:
    flag = await db.get(ForumFlag, flag_id)
    if not flag:
        raise NotFoundError(f"Flag {flag_id} not found")
    if flag.is_resolved:
        raise PlatformException("Flag is already resolved", status_code=400)
    flag.is_resolved = True
    await db.commit()
    return flag


async def list_unanswered_posts(db: AsyncSession) -> List[ForumPost]:
    result = await db.execute(
        select(ForumPost).where(
            ForumPost.is_answered == False,
            ForumPost.status == "published"
        ).order_by(ForumPost.created_at.asc(), ForumPost.id.asc())
    )
    return list(result.scalars().all())
