from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, Boolean, Float
from sqlalchemy.orm import relationship
import enum
from eduplatform.database import Base
from eduplatform.utils.time_utils import get_local_time

class JobStatus(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"

class JobType(str, enum.Enum):
    DATALAB_PARSE = "datalab_parse"
    REPLIT_PROCESSING = "replit_processing"
    LLM_EXTRACTION = "llm_extraction"
    LLM_VERIFICATION = "llm_verification"

class UploadedDocument(Base):
    __tablename__ = "uploaded_question_documents"

    id = Column(Integer, primary_key=True, index=True)
    file_name = Column(String, nullable=False)
    file_path = Column(String, nullable=True) # storage path of a single PDF
    questions_file_path = Column(String, nullable=True)
    questions_file_name = Column(String, nullable=True)
    solutions_file_path = Column(String, nullable=True)
    solutions_file_name = Column(String, nullable=True)

    # Catalog placement for extracted questions
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id"), nullable=True)
    topic_id = Column(Integer, ForeignKey("topics.id"), nullable=True)

    status = Column(String, default="uploaded") # uploaded, processing, completed, failed
    content_markdown = Column(Text, nullable=True)
    content_mmd = Column(Text, nullable=True)
    content_json = Column(JSON, nullable=True)
    page_count = Column(Integer, nullable=True)
    current_job_id = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)

    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=get_local_time)
    processing_completed_at = Column(DateTime, nullable=True)

class DocumentProcessingJob(Base):
    __tablename__ = "document_processing_jobs"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("uploaded_question_documents.id"), nullable=False, index=True)
    job_type = Column(String, nullable=False)
    status = Column(String, default=JobStatus.PENDING.value, nullable=False) # Use String for compatibility

    progress_percentage = Column(Integer, default=0)
    current_step = Column(String, nullable=True)
    result_data = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    error_details = Column(JSON, nullable=True)

    retry_count = Column(Integer, default=0)
    max_retries = Column(Integer, default=3)
    questions_extracted = Column(Integer, default=0)

    created_at = Column(DateTime, default=get_local_time)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    logs = relationship("JobLog", back_populates="job", order_by="JobLog.id")

class JobLog(Base):
    __tablename__ = "job_logs"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("document_processing_jobs.id"), nullable=False, index=True)
    log_level = Column(String, default="info") # info, warn, error
    message = Column(Text, nullable=False)
    details = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=get_local_time)

    job = relationship("DocumentProcessingJob", back_populates="logs")

class PendingQuestion(Base):
    __tablename__ = "parsed_questions_pending"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("uploaded_question_documents.id"), nullable=True, index=True)
    course_id = Column(Integer, nullable=True)
    subject_id = Column(Integer, nullable=True)
    chapter_id = Column(Integer, nullable=True)
    topic_id = Column(Integer, nullable=True)

    question_text = Column(Text, nullable=False, default="")
    question_format = Column(String, default="single_choice")
    question_type = Column(String, default="objective")
    difficulty = Column(String, default="Medium")
    marks = Column(Integer, default=1)
    options = Column(JSON, nullable=True)
    correct_answer = Column(String, default="")
    explanation = Column(Text, nullable=True)
    question_images = Column(JSON, nullable=True)
    explanation_images = Column(JSON, nullable=True)
    contains_formula = Column(Boolean, default=False)
    llm_suggested_difficulty = Column(String, nullable=True)
    llm_difficulty_reasoning = Column(Text, nullable=True)

    # LLM review: correct, medium (needs review) or wrong
    llm_verified = Column(Boolean, default=False)
    llm_verification_status = Column(String, nullable=True)
    llm_confidence_score = Column(Float, nullable=True)
    llm_verification_comments = Column(Text, nullable=True)
    llm_issues = Column(JSON, nullable=True)
    llm_verified_at = Column(DateTime, nullable=True)

    is_approved = Column(Boolean, default=False)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    approved_ip_address = Column(String, nullable=True)
    transferred_to_question_bank = Column(Boolean, default=False)
    question_bank_id = Column(Integer, nullable=True)
    transferred_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=get_local_time)

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    topic_id = Column(Integer, ForeignKey("topics.id"), nullable=True, index=True)
    question_text = Column(Text, nullable=False, default="")
    question_format = Column(String, default="single_choice")
    question_type = Column(String, default="objective")
    difficulty = Column(String, default="Medium")
    marks = Column(Integer, default=1)
    options = Column(JSON, nullable=True)
    correct_answer = Column(String, default="")
    explanation = Column(Text, nullable=True)
    question_image_url = Column(String, nullable=True)
    contains_formula = Column(Boolean, default=False)
    is_verified = Column(Boolean, default=False)
    is_ai_generated = Column(Boolean, default=False)
    verified_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=get_local_time)
