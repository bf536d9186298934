from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from eduplatform.database import get_db
from eduplatform.schemas.student_schema import (
    AssignmentListResponse,
    CourseHierarchyResponse,
    StudentDashboardResponse,
    StudentTimetableResponse,
)
from eduplatform.security import get_current_user_id
from eduplatform.services import student_service

router = APIRouter()
catalog_router = APIRouter(prefix="/api/courses", tags=["Courses"])

@router.get("/timetable", response_model=StudentTimetableResponse)
async def get_timetable(
    day_filter: str = Query("today", pattern="^(today|tomorrow|week)$"),
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    return await student_service.get_student_timetable(db, user_id, day_filter)

@router.get("/assignments", response_model=AssignmentListResponse)
async def get_assignments(db: AsyncSession = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return await student_service.get_student_assignments(db, user_id)

@router.get("/dashboard", response_model=StudentDashboardResponse)
async def get_dashboard(db: AsyncSession = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return await student_service.get_student_dashboard(db, user_id)

@catalog_router.get("/{course_id}/hierarchy", response_model=CourseHierarchyResponse)
async def get_course_hierarchy(course_id: int, db: AsyncSession = Depends(get_db)):
    return await student_service.get_course_hierarchy(db, course_id)
