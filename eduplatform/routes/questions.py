from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from eduplatform.database import get_db
from eduplatform.models.user import User
from eduplatform.schemas.document_schema import (
    ApproveQuestionsRequest,
    ApproveQuestionsResponse,
    ImportResultResponse,
)
from eduplatform.security import require_staff
from eduplatform.services import excel_import, question_service

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

@router.post("/approve", response_model=ApproveQuestionsResponse)
async def approve_questions(
    request: Request,
    body: ApproveQuestionsRequest,
    db: AsyncSession = Depends(get_db),
    staff: User = Depends(require_staff)
):
    return await question_service.approve_and_transfer(
        db, body.question_ids, staff.id, question_service.client_ip(request)
    )

@router.post("/import", response_model=ImportResultResponse)
async def import_questions(
    file: UploadFile = File(...),
    topic_id: Optional[int] = Form(None),
    db: AsyncSession = Depends(get_db),
    staff: User = Depends(require_staff)
):
    if not (file.filename or "").lower().endswith(".xlsx"):
        raise HTTPException(status_code=400, detail="Only .xlsx files are supported")
    content = await file.read()
    return await excel_import.import_questions(db, content, topic_id)

@router.get("/import/template")
async def download_template():
    return StreamingResponse(
        excel_import.build_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=question_import_template.xlsx"}
    )
