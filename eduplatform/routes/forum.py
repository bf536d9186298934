from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eduplatform.database import get_db
from eduplatform.models.user import User
from eduplatform.schemas.forum_schema import (
    FlagCreate,
    FlagResponse,
    PostResponse,
    ReplyCreate,
    ReplyResponse,
    UpvoteResponse,
)
from eduplatform.security import STAFF_ROLES, get_current_user, get_current_user_id, require_staff
from eduplatform.services import forum_service

router = APIRouter()

@router.get("/posts", response_model=List[PostResponse])
async def list_posts(category: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    return await forum_service.list_posts(db, category)

@router.get("/posts/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, db: AsyncSession = Depends(get_db)):
    return await forum_service.get_post(db, post_id)

@router.get("/posts/{post_id}/replies", response_model=List[ReplyResponse])
async def list_replies(post_id: int, db: AsyncSession = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return await forum_service.list_replies(db, post_id, user_id)

@router.post("/posts/{post_id}/replies", response_model=ReplyResponse, status_code=201)
async def create_reply(
    post_id: int,
    request: ReplyCreate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    return await forum_service.create_reply(db, post_id, user_id, request.content)

@router.post("/replies/{reply_id}/upvote", response_model=UpvoteResponse)
async def toggle_upvote(reply_id: int, db: AsyncSession = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return await forum_service.toggle_upvote(db, reply_id, user_id)

@router.post("/replies/{reply_id}/accept", response_model=ReplyResponse)
async def accept_answer(reply_id: int, db: AsyncSession = Depends(get_db), user: User = Depends(get_current_user)):
    return await forum_service.accept_answer(db, reply_id, user.id, is_staff=user.role in STAFF_ROLES)

@router.post("/flags", response_model=FlagResponse, status_code=201)
async def flag_content(request: FlagCreate, db: AsyncSession = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return await forum_service.flag_content(db, request, user_id)

# --- Moderation ---

@router.get("/moderation/flags", response_model=List[FlagResponse])
async def list_open_flags(db: AsyncSession = Depends(get_db), staff: User = Depends(require_staff)):
    return await forum_service.list_open_flags(db)

@router.post("/moderation/flags/{flag_id}/resolve", response_model=FlagResponse)
async def resolve_flag(flag_id: int, db: AsyncSession = Depends(get_db), staff: User = Depends(require_staff)):
    return await forum_service.resolve_flag(db, flag_id)

@router.get("/moderation/unanswered", response_model=List[PostResponse])
async def list_unanswered(db: AsyncSession = Depends(get_db), staff: User = Depends(require_staff)):
    return await forum_service.list_unanswered_posts(db)
