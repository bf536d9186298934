from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from eduplatform.database import get_db
from eduplatform.models.user import User, UserRole

STAFF_ROLES = (UserRole.INSTRUCTOR.value, UserRole.ADMIN.value)

async def get_current_user_id(request: Request):
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized. Please login.")
    return user_id

async def get_current_user(user_id: int = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)) -> User:
    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Unauthorized. Please login.")
    return user

async def require_staff(user: User = Depends(get_current_user)) -> User:
    # Instructors and admins manage timetables, ingestion and moderation
    if user.role not in STAFF_ROLES:
        raise HTTPException(status_code=403, detail="Instructor or admin access required")
    return user
