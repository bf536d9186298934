from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from eduplatform.database import get_db
from eduplatform.models.user import User
from eduplatform.schemas.timetable_schema import (
    BulkConflictCheckRequest,
    BulkConflictCheckResponse,
    ConflictCheckRequest,
    ConflictCheckResponse,
    TimetableEntryCreate,
    TimetableEntryMove,
    TimetableEntryResponse,
    TimetableWriteResponse,
)
from eduplatform.security import require_staff
from eduplatform.services import conflict_service, timetable_service
from eduplatform.services.timetable_pdf import build_timetable_pdf

router = APIRouter()

@router.get("/instructors/{instructor_id}", response_model=List[TimetableEntryResponse])
async def get_instructor_timetable(instructor_id: int, db: AsyncSession = Depends(get_db)):
    entries = await timetable_service.get_instructor_entries(db, instructor_id)
    return [timetable_service.to_response(e) for e in entries]

@router.get("/instructors/{instructor_id}/pdf")
async def export_instructor_timetable(instructor_id: int, db: AsyncSession = Depends(get_db)):
    entries = await timetable_service.get_instructor_entries(db, instructor_id)
    instructor = await db.get(User, instructor_id)
    name = instructor.full_name if instructor and instructor.full_name else f"Instructor {instructor_id}"

    pdf_buffer = build_timetable_pdf(f"Weekly Timetable - {name}", entries)
    return StreamingResponse(
        pdf_buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=timetable_{instructor_id}.pdf"}
    )

@router.post("/conflicts", response_model=ConflictCheckResponse)
async def check_conflicts(request: ConflictCheckRequest, db: AsyncSession = Depends(get_db)):
    conflicts = await timetable_service.find_conflicts(db, request, exclude_entry_id=request.exclude_entry_id)
    return ConflictCheckResponse(
        has_hard_conflict=conflict_service.has_hard_conflict(conflicts),
        conflicts=conflicts,
    )

@router.post("/conflicts/bulk", response_model=BulkConflictCheckResponse)
async def check_bulk_conflicts(request: BulkConflictCheckRequest, db: AsyncSession = Depends(get_db)):
    return BulkConflictCheckResponse(conflicts=await timetable_service.check_bulk(db, request.entries))

@router.post("/entries", response_model=TimetableWriteResponse, status_code=201)
async def create_entry(
    request: TimetableEntryCreate,
    db: AsyncSession = Depends(get_db),
    staff: User = Depends(require_staff)
):
    entry, warnings = await timetable_service.create_entry(db, request)
    return TimetableWriteResponse(entry=timetable_service.to_response(entry), warnings=warnings)

@router.patch("/entries/{entry_id}/move", response_model=TimetableWriteResponse)
async def move_entry(
    entry_id: int,
    request: TimetableEntryMove,
    db: AsyncSession = Depends(get_db),
    staff: User = Depends(require_staff)
):
    entry, warnings = await timetable_service.move_entry(db, entry_id, request.day_of_week, request.start_time)
    return TimetableWriteResponse(entry=timetable_service.to_response(entry), warnings=warnings)

@router.delete("/entries/{entry_id}")
async def delete_entry(
    entry_id: int,
    db: AsyncSession = Depends(get_db),
    staff: User = Depends(require_staff)
):
    await timetable_service.deactivate_entry(db, entry_id)
    return {"message": "Timetable entry removed"}
