import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eduplatform.exceptions import NotFoundError, PlatformException, ScheduleConflictError
from eduplatform.models.catalog import Subject
from eduplatform.models.timetable import TimetableEntry
from eduplatform.schemas.timetable_schema import (
    ConflictInfo,
    TimetableCandidate,
    TimetableEntryCreate,
    TimetableEntryResponse,
)
from eduplatform.services import conflict_service

logger = logging.getLogger(__name__)


def minutes_to_time(total_minutes: int) -> str:
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}:00"


def to_response(entry: TimetableEntry) -> TimetableEntryResponse:
    response = TimetableEntryResponse.model_validate(entry)
    response.subject_name = entry.subject.name if entry.subject else None
    response.course_name = entry.course.name if entry.course else None
    return response


async def get_entry(db: AsyncSession, entry_id: int) -> TimetableEntry:
    result = await db.execute(
        select(TimetableEntry)
        .where(TimetableEntry.id == entry_id)
        .execution_options(populate_existing=True)
    )
    entry = result.scalars().first()
    if not entry:
        raise NotFoundError(f"Timetable entry {entry_id} not found")
    return entry


async def get_instructor_entries(db: AsyncSession, instructor_id: int) -> List[TimetableEntry]:
    result = await db.execute(
        select(TimetableEntry).where(
            TimetableEntry.instructor_id == instructor_id,
            TimetableEntry.is_active == True
        ).order_by(TimetableEntry.day_of_week, TimetableEntry.start_time)
    )
    return list(result.scalars().unique().all())


async def get_subject_entries(db: AsyncSession, subject_id: int) -> List[TimetableEntry]:
    result = await db.execute(
        select(TimetableEntry).where(
            TimetableEntry.subject_id == subject_id,
            TimetableEntry.is_active == True
        )
    )
    return list(result.scalars().unique().all())


async def find_conflicts(
    db: AsyncSession,
    candidate: TimetableCandidate,
    exclude_entry_id: Optional[int] = None,
) -> List[ConflictInfo]:
    """Instructor conflicts first, then subject conflicts."""
    conflicts = []

    if candidate.instructor_id:
        existing = await get_instructor_entries(db, candidate.instructor_id)
        conflicts.extend(conflict_service.check_conflicts(candidate, existing, exclude_entry_id))

    if candidate.subject_id:
        subject_entries = await get_subject_entries(db, candidate.subject_id)
        subject = await db.get(Subject, candidate.subject_id)
        conflicts.extend(conflict_service.check_subject_conflicts(
            candidate,
            subject_entries,
            subject_name=subject.name if subject else None,
            exclude_entry_id=exclude_entry_id,
        ))

    return conflicts


async def check_bulk(db: AsyncSession, candidates: List[TimetableCandidate]):
    entries_by_instructor = {}
    for instructor_id in conflict_service.group_by_instructor(candidates):
        entries_by_instructor[instructor_id] = await get_instructor_entries(db, instructor_id)
    return conflict_service.check_multiple(candidates, entries_by_instructor)


async def create_entry(db: AsyncSession, data: TimetableEntryCreate) -> Tuple[TimetableEntry, List[ConflictInfo]]:
    conflicts = await find_conflicts(db, data)
    if conflict_service.has_hard_conflict(conflicts):
        logger.info(
            f"Rejected timetable entry for instructor {data.instructor_id}: "
            f"{len(conflicts)} conflict(s) on day {data.day_of_week} {data.start_time}"
        )
        raise ScheduleConflictError(conflicts)

    entry = TimetableEntry(
        course_id=data.course_id,
        subject_id=data.subject_id,
        instructor_id=data.instructor_id,
        batch_id=data.batch_id,
        day_of_week=data.day_of_week,
        start_time=data.start_time,
        end_time=data.end_time,
        room_number=data.room_number,
    )
    db.add(entry)
    await db.commit()
    logger.info(f"Created timetable entry {entry.id} (instructor {entry.instructor_id})")

    return await get_entry(db, entry.id), conflicts


async def move_entry(db: AsyncSession, entry_id: int, day_of_week: int, start_time: str) -> Tuple[TimetableEntry, List[ConflictInfo]]:
    """Drag-and-drop move: new day and start, original duration kept."""
    entry = await get_entry(db, entry_id)

    duration = (
        conflict_service.time_to_minutes(entry.end_time)
        - conflict_service.time_to_minutes(entry.start_time)
    )
    new_start = conflict_service.time_to_minutes(start_time)
    new_end = new_start + duration
    if new_end >= 24 * 60:
        raise PlatformException("Moved class would run past midnight", status_code=400)

    candidate = TimetableCandidate(
        day_of_week=day_of_week,
        start_time=minutes_to_time(new_start),
        end_time=minutes_to_time(new_end),
        instructor_id=entry.instructor_id,
        subject_id=entry.subject_id,
    )
    conflicts = await find_conflicts(db, candidate, exclude_entry_id=entry.id)
    if conflict_service.has_hard_conflict(conflicts):
        raise ScheduleConflictError(conflicts)

    entry.day_of_week = candidate.day_of_week
    entry.start_time = candidate.start_time
    entry.end_time = candidate.end_time
    await db.commit()
    logger.info(f"Moved timetable entry {entry.id} to day {entry.day_of_week} {entry.start_time}-{entry.end_time}")

    return await get_entry(db, entry.id), conflicts


async def deactivate_entry(db: AsyncSession, entry_id: int) -> None:
    entry = await get_entry(db, entry_id)
    entry.is_active = False
    await db.commit()
