"""
Document ingestion pipeline.

Each job type is a linear script over one job row: call the external
service(s), transform the result, insert or annotate pending questions, and
move the job through pending -> running -> completed | failed | timeout.
A failed step rolls back the open transaction, then aborts the job and
records the error; rows committed earlier stay. Nothing resumes from a checkpoint, so a retry
starts the job over.
"""
import asyncio
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eduplatform.config import Config
from eduplatform.exceptions import ExternalServiceError, JobTimeoutError, NotFoundError, PlatformException
from eduplatform.llm_client import LLMClient, llm_client
from eduplatform.models.document import DocumentProcessingJob, JobStatus, JobType, PendingQuestion, UploadedDocument
from eduplatform.prompts.extraction_prompt import build_extraction_prompts
from eduplatform.prompts.verification_prompt import build_verification_prompts
from eduplatform.schemas.document_schema import JobCheckResponse
from eduplatform.services import job_service, question_parser
from eduplatform.services.datalab_service import DatalabService
from eduplatform.services.replit_service import ReplitOcrService
from eduplatform.services.storage_service import B2StorageService
from eduplatform.utils.time_utils import get_local_time

logger = logging.getLogger(__name__)

datalab_service = DatalabService()
replit_service = ReplitOcrService()
storage_service = B2StorageService()


async def get_document(db: AsyncSession, document_id: int) -> UploadedDocument:
    document = await db.get(UploadedDocument, document_id)
    if not document:
        raise NotFoundError("Document not found")
    return document


async def _mark_document(db: AsyncSession, document: UploadedDocument, status: str, error_message: Optional[str] = None) -> None:
    document.status = status
    document.error_message = error_message
    if status == "completed":
        document.processing_completed_at = get_local_time()
    await db.commit()


async def _recover(db: AsyncSession, job: DocumentProcessingJob) -> None:
    # A failed flush leaves the session unusable until it is rolled back
    await db.rollback()
    await db.refresh(job)


async def _abort(db: AsyncSession, job: DocumentProcessingJob, error: Exception) -> None:
    await _recover(db, job)
    document = await get_document(db, job.document_id)
    status = JobStatus.TIMEOUT if isinstance(error, JobTimeoutError) else JobStatus.FAILED
    await job_service.fail_job(db, job, error, status=status)
    await _mark_document(db, document, "failed", str(error))


# --- Datalab Marker -------------------------------------------------------

async def parse_document_with_datalab(db: AsyncSession, job: DocumentProcessingJob,
                                      datalab: DatalabService = None, storage: B2StorageService = None) -> None:
    datalab = datalab or datalab_service
    storage = storage or storage_service
    document = await get_document(db, job.document_id)

    try:
        await job_service.start_job(db, job, "Submitting PDF to Datalab")
        await _mark_document(db, document, "processing")
        await job_service.log_job(db, job.id, "info", "Starting PDF parsing with Datalab Marker API",
                                  {"file_path": document.file_path})

        if not document.file_path:
            raise PlatformException("Document has no file to parse", status_code=400)
        pdf_url = await storage.resolve_url(document.file_path)
        await job_service.update_progress(db, job, 20, "Waiting for Datalab conversion")

        parsed = await datalab.parse_pdf(file_url=pdf_url)

        document.content_markdown = parsed.content_markdown
        document.content_json = parsed.content_json
        document.page_count = parsed.metadata.pages
        await job_service.update_progress(db, job, 90, "Saving parsed content")
        await _mark_document(db, document, "completed")

        await job_service.complete_job(db, job, "Parsing complete", result_data={
            "request_id": parsed.request_id,
            "pages": parsed.metadata.pages,
            "images_count": len(parsed.images),
        })
        await job_service.log_job(db, job.id, "info", "Datalab parsing complete", {"pages": parsed.metadata.pages})
    except Exception as e:
        logger.error(f"Datalab parse failed for job {job.id}: {e}", exc_info=True)
        await _abort(db, job, e)


# --- Replit OCR + LLM service ---------------------------------------------

async def submit_replit_job(db: AsyncSession, job: DocumentProcessingJob,
                            replit: ReplitOcrService = None, storage: B2StorageService = None) -> Optional[str]:
    replit = replit or replit_service
    storage = storage or storage_service
    document = await get_document(db, job.document_id)

    try:
        await job_service.start_job(db, job, "Fetching documents")
        await _mark_document(db, document, "processing")

        if not document.questions_file_path or not document.solutions_file_path:
            raise PlatformException("Document not found or missing file URLs", status_code=400)
        await job_service.log_job(db, job.id, "info", "Documents fetched", {
            "questions_file": document.questions_file_name,
            "solutions_file": document.solutions_file_name,
        })

        await job_service.update_progress(db, job, 20, "Downloading PDFs")
        questions_pdf = await storage.download(document.questions_file_path)
        solutions_pdf = await storage.download(document.solutions_file_path)
        await job_service.log_job(db, job.id, "info", "PDFs downloaded successfully")

        await job_service.update_progress(db, job, 30, "Uploading PDFs to Replit service")
        replit_job_id = await replit.submit(
            questions_pdf, document.questions_file_name or "questions.pdf",
            solutions_pdf, document.solutions_file_name or "solutions.pdf",
        )
        await job_service.log_job(db, job.id, "info", "PDFs uploaded to Replit", {"replit_job_id": replit_job_id})

        await job_service.update_progress(db, job, 40, "Polling Replit service for completion",
                                          result_data={"replit_job_id": replit_job_id})
        return replit_job_id
    except Exception as e:
        logger.error(f"Replit submission failed for job {job.id}: {e}", exc_info=True)
        await _abort(db, job, e)
        return None


async def check_replit_job(db: AsyncSession, job: DocumentProcessingJob, replit: ReplitOcrService = None) -> JobCheckResponse:
    replit = replit or replit_service

    if job.status in (JobStatus.COMPLETED.value, JobStatus.FAILED.value, JobStatus.TIMEOUT.value):
        return JobCheckResponse(success=True, status=job.status, message=f"Job is already {job.status}")
    if job.status != JobStatus.RUNNING.value:
        raise PlatformException(f"Job is {job.status}, not running", status_code=409)

    replit_job_id = (job.result_data or {}).get("replit_job_id")
    if not replit_job_id:
        raise PlatformException("Replit job ID not found in job data", status_code=409)

    replit_status = await replit.get_status(replit_job_id)
    await job_service.log_job(db, job.id, "info", f"Status check: {replit_status}",
                              {"replit_job_id": replit_job_id, "replit_status": replit_status})

    if replit_status == "PROCESSING":
        await job_service.update_progress(db, job, min(80, (job.progress_percentage or 0) + 5),
                                          "Still processing on Replit service")
        return JobCheckResponse(success=True, status="processing", message="Job is still processing on Replit")

    if replit_status == "COMPLETED":
        try:
            inserted = await _store_replit_results(db, job, replit, replit_job_id)
        except Exception as e:
            logger.error(f"Storing results for job {job.id} failed: {e}", exc_info=True)
            await _abort(db, job, e)
            return JobCheckResponse(success=False, status="failed", message=f"Failed to store results: {e}")
        return JobCheckResponse(
            success=True,
            status="completed",
            message=f"Successfully processed {inserted} questions",
            questions_inserted=inserted,
        )

    if replit_status == "FAILED":
        await _abort(db, job, ExternalServiceError("Processing failed on Replit service"))
        return JobCheckResponse(success=False, status="failed", message="Job failed on Replit service")

    return JobCheckResponse(success=True, status=str(replit_status), message=f"Unknown status: {replit_status}")


async def _store_replit_results(db: AsyncSession, job: DocumentProcessingJob, replit: ReplitOcrService, replit_job_id: str) -> int:
    await job_service.update_progress(db, job, 85, "Fetching results from Replit")
    result = await replit.get_result(replit_job_id)
    merged = result.get("merged") or []

    await job_service.log_job(db, job.id, "info", "Results fetched successfully", {
        "total_questions": result.get("total_questions"),
        "matched_count": result.get("matched_count"),
    })

    document = await get_document(db, job.document_id)
    await job_service.update_progress(db, job, 90, "Parsing questions and inserting into database")

    pending = []
    for item in merged:
        try:
            pending.append(question_parser.pending_from_merged_item(item, document))
        except (AttributeError, TypeError, ValueError) as e:
            await job_service.log_job(db, job.id, "error", f"Error parsing question {item.get('question_number') if isinstance(item, dict) else '?'}",
                                      {"error": str(e)})

    db.add_all(pending)
    await db.commit()
    inserted = len(pending)

    await job_service.complete_job(db, job, f"Completed: {inserted} questions inserted", questions_extracted=inserted, result_data={
        "replit_job_id": replit_job_id,
        "total_questions": result.get("total_questions"),
        "matched_count": result.get("matched_count"),
        "inserted_count": inserted,
    })
    await _mark_document(db, document, "completed")
    await job_service.log_job(db, job.id, "info", "Processing completed successfully", {"questions_inserted": inserted})
    return inserted


async def poll_replit_job(job_id: int, session_factory: async_sessionmaker,
                          replit: ReplitOcrService = None, interval: float = None, max_polls: int = None) -> None:
    """Background polling; marks the job timeout when the attempts run out."""
    interval = Config.REPLIT_POLL_INTERVAL if interval is None else interval
    max_polls = Config.REPLIT_MAX_POLLS if max_polls is None else max_polls

    for attempt in range(1, max_polls + 1):
        await asyncio.sleep(interval)
        async with session_factory() as db:
            job = await job_service.get_job(db, job_id)
            try:
                check = await check_replit_job(db, job, replit)
            except Exception as e:
                logger.error(f"Polling job {job_id} failed: {e}", exc_info=True)
                await _abort(db, job, e)
                return

            if job.status != JobStatus.RUNNING.value:
                return
            await job_service.update_progress(db, job, job.progress_percentage,
                                              f"Polling status ({attempt}/{max_polls}): {check.status}")

    async with session_factory() as db:
        job = await job_service.get_job(db, job_id)
        if job.status == JobStatus.RUNNING.value:
            await _abort(db, job, JobTimeoutError(
                f"Replit processing did not finish after {max_polls} status checks"
            ))


# --- LLM extraction -------------------------------------------------------

async def run_llm_extraction(db: AsyncSession, job: DocumentProcessingJob, llm: LLMClient = None) -> Optional[dict]:
    llm = llm or llm_client
    document = await get_document(db, job.document_id)

    try:
        await job_service.start_job(db, job, "Starting LLM question extraction")
        await job_service.log_job(db, job.id, "info", "Starting LLM question extraction")

        # MMD keeps LaTeX better than plain markdown
        content = document.content_mmd or document.content_markdown
        if not content:
            raise PlatformException("Document has no processed content. Please process document first.", status_code=400)

        await job_service.log_job(db, job.id, "info", "Fetched document content", {
            "has_mmd": bool(document.content_mmd),
            "has_json": bool(document.content_json),
            "content_length": len(content),
        })
        await job_service.update_progress(db, job, 20, "Document fetched, preparing for extraction")

        system_prompt, user_prompt = build_extraction_prompts(document.file_name, content, document.content_json)
        await job_service.update_progress(db, job, 40, "Calling AI to extract questions")
        await job_service.log_job(db, job.id, "info", "Invoking AI extraction", {"prompt_length": len(user_prompt)})

        llm_response = await llm.complete(system_prompt, user_prompt, temperature=0.3)
        await job_service.log_job(db, job.id, "info", "Received AI response", {"response_length": len(llm_response)})
        await job_service.update_progress(db, job, 70, "Parsing AI response")

        try:
            questions = question_parser.parse_llm_json(llm_response)
        except ValueError:
            await job_service.log_job(db, job.id, "error", "Failed to parse AI response", {
                "response_preview": llm_response[:500],
            })
            raise

        await job_service.log_job(db, job.id, "info", f"Extracted {len(questions)} questions")
        await job_service.update_progress(db, job, 80, f"Saving {len(questions)} questions to database")

        distribution = question_parser.difficulty_distribution(questions)
        db.add_all([question_parser.pending_from_llm_question(q, document) for q in questions])
        await db.commit()
        inserted = len(questions)

        await job_service.update_progress(db, job, 95, "Finalizing extraction")
        await job_service.complete_job(db, job, "Extraction complete", questions_extracted=inserted, result_data={
            "total_questions": inserted,
            "difficulty_distribution": distribution,
        })
        await job_service.log_job(db, job.id, "info", f"Extraction completed: {inserted} questions saved")
        logger.info(f"Question extraction completed: {inserted} questions")
        return {"questions_extracted": inserted, "difficulty_distribution": distribution}
    except Exception as e:
        logger.error(f"LLM extraction failed for job {job.id}: {e}", exc_info=True)
        await _recover(db, job)
        await job_service.fail_job(db, job, e)
        return None


# --- LLM verification -----------------------------------------------------

async def _questions_to_verify(db: AsyncSession, document_id: int) -> List[PendingQuestion]:
    result = await db.execute(
        select(PendingQuestion)
        .where(
            PendingQuestion.document_id == document_id,
            PendingQuestion.transferred_to_question_bank.is_not(True),
        )
        .order_by(PendingQuestion.id)
    )
    return list(result.scalars().all())


async def run_llm_verification(db: AsyncSession, job: DocumentProcessingJob, llm: LLMClient = None) -> Optional[dict]:
    """
    Ask the LLM to review every pending question of the document.

    One call per question. A question whose call or reply fails is logged and
    skipped; the job fails only when no question could be verified.
    """
    llm = llm or llm_client

    try:
        await job_service.start_job(db, job, "Starting LLM verification")
        questions = await _questions_to_verify(db, job.document_id)
        await job_service.log_job(db, job.id, "info", f"Verifying {len(questions)} questions")

        counts = {status: 0 for status in question_parser.VERIFICATION_STATUSES}
        failed = 0
        last_error = None
        for index, question in enumerate(questions, start=1):
            system_prompt, user_prompt = build_verification_prompts(question)
            try:
                reply = await llm.complete(system_prompt, user_prompt, temperature=0.2)
                verification = question_parser.parse_llm_verification(reply)
            except (ExternalServiceError, ValueError) as e:
                failed += 1
                last_error = e
                await job_service.log_job(db, job.id, "warn", f"Verification failed for question {question.id}",
                                          {"error": str(e)})
                continue

            question.llm_verified = True
            question.llm_verification_status = verification["status"]
            question.llm_confidence_score = verification["confidence"]
            question.llm_verification_comments = verification["comments"]
            question.llm_issues = verification["issues"]
            question.llm_verified_at = get_local_time()
            if verification["suggested_difficulty"]:
                question.llm_suggested_difficulty = verification["suggested_difficulty"]
                question.llm_difficulty_reasoning = verification["difficulty_reasoning"]
            counts[verification["status"]] += 1

            await job_service.update_progress(db, job, 10 + int(85 * index / len(questions)),
                                              f"Verified {index}/{len(questions)} questions")

        if questions and failed == len(questions):
            raise last_error

        verified = len(questions) - failed
        await job_service.complete_job(db, job, "Verification complete", result_data={
            "total_questions": len(questions),
            "verified_count": verified,
            "failed_count": failed,
            "status_counts": counts,
        })
        await job_service.log_job(db, job.id, "info", f"Verification completed: {verified} questions verified")
        return {"verified": verified, "failed": failed, "status_counts": counts}
    except Exception as e:
        logger.error(f"LLM verification failed for job {job.id}: {e}", exc_info=True)
        await _recover(db, job)
        await job_service.fail_job(db, job, e)
        return None


# --- Dispatch -------------------------------------------------------------

async def run_job(job_id: int, session_factory: async_sessionmaker) -> None:
    """Entry point for background tasks: one fresh session per job run."""
    async with session_factory() as db:
        job = await job_service.get_job(db, job_id)
        logger.info(f"Running {job.job_type} job {job.id}")

        if job.job_type == JobType.DATALAB_PARSE.value:
            await parse_document_with_datalab(db, job)
        elif job.job_type == JobType.LLM_EXTRACTION.value:
            await run_llm_extraction(db, job)
        elif job.job_type == JobType.LLM_VERIFICATION.value:
            await run_llm_verification(db, job)
        elif job.job_type == JobType.REPLIT_PROCESSING.value:
            replit_job_id = await submit_replit_job(db, job)
            if not replit_job_id:
                return
        else:
            await job_service.fail_job(db, job, PlatformException(f"Unknown job type: {job.job_type}"))
            return

    if job.job_type == JobType.REPLIT_PROCESSING.value:
        await poll_replit_job(job_id, session_factory)
