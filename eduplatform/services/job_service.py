"""
Document processing job lifecycle.

State Flow: pending -> running -> completed | failed | timeout

failed and timeout go back to pending only through a manual retry;
completed is terminal. Every status change goes through ``transition`` so no
code path can move a completed job back to running.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eduplatform.config import Config
from eduplatform.exceptions import JobTransitionError, NotFoundError, RetryLimitError
from eduplatform.models.document import DocumentProcessingJob, JobLog, JobStatus, UploadedDocument
from eduplatform.utils.time_utils import get_local_time

logger = logging.getLogger(__name__)

TRANSITIONS = {
    JobStatus.PENDING: [JobStatus.RUNNING],
    JobStatus.RUNNING: [JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.TIMEOUT],
    JobStatus.FAILED: [JobStatus.PENDING],
    JobStatus.TIMEOUT: [JobStatus.PENDING],
    JobStatus.COMPLETED: [],
}

TERMINAL_STATUSES = {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.TIMEOUT}


def can_transition(current: str, target: str) -> bool:
    return JobStatus(target) in TRANSITIONS[JobStatus(current)]


def transition(job: DocumentProcessingJob, target: JobStatus) -> None:
    if not can_transition(job.status, target):
        raise JobTransitionError(job.status, JobStatus(target).value)

    job.status = JobStatus(target).value
    now = get_local_time()
    if target == JobStatus.RUNNING:
        job.started_at = now
    elif target in TERMINAL_STATUSES:
        job.completed_at = now


async def get_job(db: AsyncSession, job_id: int) -> DocumentProcessingJob:
    job = await db.get(DocumentProcessingJob, job_id)
    if not job:
        raise NotFoundError("Job not found")
    return job


async def get_job_logs(db: AsyncSession, job_id: int) -> List[JobLog]:
    await get_job(db, job_id)
    result = await db.execute(select(JobLog).where(JobLog.job_id == job_id).order_by(JobLog.id))
    return list(result.scalars().all())


async def create_job(db: AsyncSession, document: UploadedDocument, job_type: str) -> DocumentProcessingJob:
    job = DocumentProcessingJob(
        document_id=document.id,
        job_type=job_type,
        status=JobStatus.PENDING.value,
        progress_percentage=0,
        current_step="Queued",
        max_retries=Config.JOB_MAX_RETRIES,
    )
    db.add(job)
    await db.flush()
    document.current_job_id = job.id
    await db.commit()
    logger.info(f"Created {job_type} job {job.id} for document {document.id}")
    return job


async def log_job(db: AsyncSession, job_id: int, level: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
    db.add(JobLog(job_id=job_id, log_level=level, message=message, details=details))
    await db.commit()

    log_fn = {"error": logger.error, "warn": logger.warning}.get(level, logger.info)
    log_fn(f"[job {job_id}] {message}")


async def update_progress(db: AsyncSession, job: DocumentProcessingJob, percentage: int, step: str, result_data: Optional[dict] = None) -> None:
    # A job that already finished keeps its final progress
    if job.status != JobStatus.RUNNING.value:
        logger.warning(f"[job {job.id}] progress update ignored in status {job.status}")
        return
    job.progress_percentage = percentage
    job.current_step = step
    if result_data is not None:
        job.result_data = result_data
    await db.commit()


async def start_job(db: AsyncSession, job: DocumentProcessingJob, step: str) -> None:
    transition(job, JobStatus.RUNNING)
    job.current_step = step
    await db.commit()


async def complete_job(db: AsyncSession, job: DocumentProcessingJob, step: str, questions_extracted: int = 0, result_data: Optional[dict] = None) -> None:
    transition(job, JobStatus.COMPLETED)
    job.progress_percentage = 100
    job.current_step = step
    job.questions_extracted = questions_extracted
    if result_data is not None:
        job.result_data = result_data
    await db.commit()


async def fail_job(db: AsyncSession, job: DocumentProcessingJob, error: Exception, status: JobStatus = JobStatus.FAILED) -> None:
    """
    Mark a running job failed (or timed out) and record the error.

    Rows inserted before the failure are left in place.
    """
    message = str(error) or error.__class__.__name__
    if job.status in (JobStatus.FAILED.value, JobStatus.TIMEOUT.value, JobStatus.COMPLETED.value):
        logger.warning(f"[job {job.id}] already {job.status}, not recording: {message}")
        return
    if job.status == JobStatus.PENDING.value:
        transition(job, JobStatus.RUNNING)

    transition(job, status)
    job.error_message = message
    job.error_details = {"name": error.__class__.__name__}
    job.current_step = "Timed out" if status == JobStatus.TIMEOUT else "Failed"
    await db.commit()

    await log_job(db, job.id, "error", f"Job {status.value}: {message}", {"error_type": error.__class__.__name__})


async def reset_for_retry(db: AsyncSession, job: DocumentProcessingJob) -> DocumentProcessingJob:
    if job.retry_count >= job.max_retries:
        raise RetryLimitError(job.max_retries)
    if not can_transition(job.status, JobStatus.PENDING):
        raise JobTransitionError(job.status, JobStatus.PENDING.value)

    await log_job(
        db, job.id, "info",
        f"Retry attempt {job.retry_count + 1}/{job.max_retries}",
        {"previous_error": job.error_message}
    )

    transition(job, JobStatus.PENDING)
    job.retry_count = job.retry_count + 1
    job.error_message = None
    job.error_details = None
    job.progress_percentage = 0
    job.current_step = "Retry scheduled"
    job.started_at = None
    job.completed_at = None
    await db.commit()
    return job
