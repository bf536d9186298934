import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eduplatform.exceptions import NotFoundError
from eduplatform.models.assignment import Assignment, Submission
from eduplatform.models.catalog import Chapter, Course, Subject, Topic
from eduplatform.models.enrollment import Enrollment
from eduplatform.models.timetable import ScheduledClass
from eduplatform.schemas.student_schema import (
    AssignmentListResponse,
    AssignmentStats,
    AssignmentStatusItem,
    ChapterResponse,
    CourseHierarchyResponse,
    ScheduledClassResponse,
    StudentDashboardResponse,
    StudentTimetableResponse,
    SubjectResponse,
    TopicResponse,
)
from eduplatform.utils.time_utils import get_local_time

logger = logging.getLogger(__name__)

DEFAULT_CLASS_MINUTES = 60


async def get_enrolled_course_ids(db: AsyncSession, student_id: int) -> List[int]:
    result = await db.execute(
        select(Enrollment.course_id).where(
            Enrollment.student_id == student_id,
            Enrollment.is_active == True
        )
    )
    return list(dict.fromkeys(result.scalars().all()))


async def get_course_hierarchy(db: AsyncSession, course_id: int) -> CourseHierarchyResponse:
    course = await db.get(Course, course_id)
    if not course:
        raise NotFoundError(f"Course {course_id} not found")

    subjects = (await db.execute(
        select(Subject).where(Subject.course_id == course_id)
        .order_by(Subject.display_order, Subject.id)
    )).scalars().all()
    subject_ids = [s.id for s in subjects]

    chapters = []
    if subject_ids:
        chapters = (await db.execute(
            select(Chapter).where(Chapter.subject_id.in_(subject_ids))
            .order_by(Chapter.sequence_order, Chapter.id)
        )).scalars().all()
    chapter_ids = [c.id for c in chapters]

    topics = []
    if chapter_ids:
        topics = (await db.execute(
            select(Topic).where(Topic.chapter_id.in_(chapter_ids))
            .order_by(Topic.sequence_order, Topic.id)
        )).scalars().all()

    # Queries are already ordered, so grouping keeps the order
    topics_by_chapter = {}
    for topic in topics:
        topics_by_chapter.setdefault(topic.chapter_id, []).append(TopicResponse.model_validate(topic))

    chapters_by_subject = {}
    for chapter in chapters:
        chapters_by_subject.setdefault(chapter.subject_id, []).append(ChapterResponse(
            id=chapter.id,
            title=chapter.title,
            sequence_order=chapter.sequence_order,
            topics=topics_by_chapter.get(chapter.id, []),
        ))

    return CourseHierarchyResponse(
        id=course.id,
        name=course.name,
        description=course.description,
        subjects=[
            SubjectResponse(
                id=s.id,
                name=s.name,
                display_order=s.display_order,
                chapters=chapters_by_subject.get(s.id, []),
            )
            for s in subjects
        ],
    )


def derive_assignment_status(submission: Optional[Submission]) -> str:
    if submission is None:
        return "pending"
    return "graded" if submission.graded_at else "submitted"


async def get_student_assignments(db: AsyncSession, student_id: int) -> AssignmentListResponse:
    course_ids = await get_enrolled_course_ids(db, student_id)
    if not course_ids:
        return AssignmentListResponse(assignments=[], stats=AssignmentStats())

    rows = (await db.execute(
        select(Assignment, Course.name)
        .join(Course, Course.id == Assignment.course_id)
        .where(Assignment.course_id.in_(course_ids), Assignment.is_active == True)
        .order_by(Assignment.due_date, Assignment.id)
    )).all()

    assignment_ids = [a.id for a, _ in rows]
    submissions = {}
    if assignment_ids:
        result = await db.execute(
            select(Submission).where(
                Submission.student_id == student_id,
                Submission.assignment_id.in_(assignment_ids)
            )
        )
        submissions = {s.assignment_id: s for s in result.scalars().all()}

    items = []
    stats = AssignmentStats()
    for assignment, course_name in rows:
        submission = submissions.get(assignment.id)
        status = derive_assignment_status(submission)
        setattr(stats, status, getattr(stats, status) + 1)
        items.append(AssignmentStatusItem(
            id=assignment.id,
            title=assignment.title,
            description=assignment.description,
            due_date=assignment.due_date,
            total_marks=assignment.total_marks,
            passing_marks=assignment.passing_marks,
            course_id=assignment.course_id,
            course_name=course_name,
            status=status,
            score=submission.score if submission else None,
            submitted_at=submission.submitted_at if submission else None,
        ))

    return AssignmentListResponse(assignments=items, stats=stats)


def day_window(day_filter: str, now: datetime) -> Tuple[datetime, datetime]:
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if day_filter == "tomorrow":
        start = start_of_today + timedelta(days=1)
        return start, start + timedelta(days=1)
    if day_filter == "week":
        return start_of_today, start_of_today + timedelta(days=7)
    return start_of_today, start_of_today + timedelta(days=1)


def find_current_and_next(classes: List[ScheduledClass], now: datetime):
    current = None
    upcoming = None
    for scheduled in classes:
        end = scheduled.scheduled_at + timedelta(minutes=scheduled.duration_minutes or DEFAULT_CLASS_MINUTES)
        if current is None and scheduled.scheduled_at <= now <= end:
            current = scheduled
        if upcoming is None and scheduled.scheduled_at > now:
            upcoming = scheduled
    return current, upcoming


async def get_student_timetable(db: AsyncSession, student_id: int, day_filter: str = "today", now: datetime = None) -> StudentTimetableResponse:
    now = now or get_local_time()
    course_ids = await get_enrolled_course_ids(db, student_id)
    if not course_ids:
        return StudentTimetableResponse(classes=[])

    start, end = day_window(day_filter, now)
    result = await db.execute(
        select(ScheduledClass).where(
            ScheduledClass.course_id.in_(course_ids),
            ScheduledClass.scheduled_at >= start,
            ScheduledClass.scheduled_at < end,
            ScheduledClass.is_cancelled == False
        ).order_by(ScheduledClass.scheduled_at)
    )
    classes = list(result.scalars().all())
    current, upcoming = find_current_and_next(classes, now)

    return StudentTimetableResponse(
        classes=[ScheduledClassResponse.model_validate(c) for c in classes],
        current_class=ScheduledClassResponse.model_validate(current) if current else None,
        next_class=ScheduledClassResponse.model_validate(upcoming) if upcoming else None,
    )


async def get_student_dashboard(db: AsyncSession, student_id: int, now: datetime = None) -> StudentDashboardResponse:
    now = now or get_local_time()
    course_ids = await get_enrolled_course_ids(db, student_id)
    assignments = await get_student_assignments(db, student_id)
    timetable = await get_student_timetable(db, student_id, "today", now=now)

    return StudentDashboardResponse(
        enrolled_course_count=len(course_ids),
        assignment_stats=assignments.stats,
        todays_classes=timetable.classes,
        current_class=timetable.current_class,
        next_class=timetable.next_class,
    )
