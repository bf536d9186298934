import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eduplatform.database import get_db, get_session_factory
from eduplatform.models.document import JobType
from eduplatform.models.user import User
from eduplatform.schemas.document_schema import (
    JobCheckResponse,
    JobLogResponse,
    JobResponse,
    JobStartResponse,
    ParsedPdfResponse,
)
from eduplatform.security import require_staff
from eduplatform.services import ingestion_service, job_service

logger = logging.getLogger(__name__)

router = APIRouter()
jobs_router = APIRouter()

async def _start(db: AsyncSession, document_id: int, job_type: JobType, background_tasks: BackgroundTasks,
                 session_factory: async_sessionmaker, message: str) -> JobStartResponse:
    document = await ingestion_service.get_document(db, document_id)
    job = await job_service.create_job(db, document, job_type.value)
    background_tasks.add_task(ingestion_service.run_job, job.id, session_factory)
    return JobStartResponse(job_id=job.id, status=job.status, message=message)

@router.post("/parse-pdf", response_model=ParsedPdfResponse)
async def parse_pdf(
    file: Optional[UploadFile] = File(None),
    pdf_url: Optional[str] = Form(None),
    staff: User = Depends(require_staff)
):
    if not file and not pdf_url:
        raise HTTPException(status_code=400, detail="Either file or pdf_url is required")

    if file:
        content = await file.read()
        logger.info(f"Parsing uploaded PDF {file.filename} ({len(content)} bytes)")
        return await ingestion_service.datalab_service.parse_pdf(file_bytes=content, file_name=file.filename or "document.pdf")

    url = await ingestion_service.storage_service.resolve_url(pdf_url)
    return await ingestion_service.datalab_service.parse_pdf(file_url=url)

@router.post("/{document_id}/parse", response_model=JobStartResponse, status_code=202)
async def parse_document(
    document_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    staff: User = Depends(require_staff)
):
    return await _start(db, document_id, JobType.DATALAB_PARSE, background_tasks, session_factory,
                        "PDF parsing started")

@router.post("/{document_id}/process", response_model=JobStartResponse, status_code=202)
async def process_document(
    document_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    staff: User = Depends(require_staff)
):
    return await _start(db, document_id, JobType.REPLIT_PROCESSING, background_tasks, session_factory,
                        "Processing started. Status is checked in the background.")

@router.post("/{document_id}/extract", response_model=JobStartResponse, status_code=202)
async def extract_questions(
    document_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    staff: User = Depends(require_staff)
):
    return await _start(db, document_id, JobType.LLM_EXTRACTION, background_tasks, session_factory,
                        "Question extraction started")

@router.post("/{document_id}/verify", response_model=JobStartResponse, status_code=202)
async def verify_questions(
    document_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    staff: User = Depends(require_staff)
):
    return await _start(db, document_id, JobType.LLM_VERIFICATION, background_tasks, session_factory,
                        "LLM verification started")

# --- Jobs ---

@jobs_router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: int, db: AsyncSession = Depends(get_db), staff: User = Depends(require_staff)):
    return await job_service.get_job(db, job_id)

@jobs_router.get("/{job_id}/logs", response_model=List[JobLogResponse])
async def get_job_logs(job_id: int, db: AsyncSession = Depends(get_db), staff: User = Depends(require_staff)):
    return await job_service.get_job_logs(db, job_id)

@jobs_router.post("/{job_id}/check", response_model=JobCheckResponse)
async def check_job(job_id: int, db: AsyncSession = Depends(get_db), staff: User = Depends(require_staff)):
    job = await job_service.get_job(db, job_id)
    if job.job_type != JobType.REPLIT_PROCESSING.value:
        raise HTTPException(status_code=400, detail="Only OCR service jobs can be checked")
    return await ingestion_service.check_replit_job(db, job)

@jobs_router.post("/{job_id}/retry", response_model=JobStartResponse)
async def retry_job(
    job_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    staff: User = Depends(require_staff)
):
    job = await job_service.get_job(db, job_id)
    await job_service.reset_for_retry(db, job)
    background_tasks.add_task(ingestion_service.run_job, job.id, session_factory)
    return JobStartResponse(
        job_id=job.id,
        status=job.status,
        message=f"Retry {job.retry_count}/{job.max_retries} scheduled",
    )
