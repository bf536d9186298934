from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Any, Dict, List, Optional

class JobResponse(BaseModel):
    id: int
    document_id: int
    job_type: str
    status: str
    progress_percentage: int
    current_step: Optional[str]
    result_data: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    retry_count: int
    max_retries: int
    questions_extracted: int
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class JobLogResponse(BaseModel):
    id: int
    log_level: str
    message: str
    details: Optional[Dict[str, Any]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class ParsedPdfMetadata(BaseModel):
    pages: int = 0
    ocr_stats: Optional[Any] = None

class ParsedPdfResponse(BaseModel):
    success: bool = True
    request_id: str
    content_json: Optional[Any] = None
    content_markdown: Optional[str] = None
    images: Dict[str, str] = {}
    metadata: ParsedPdfMetadata

class JobStartResponse(BaseModel):
    success: bool = True
    job_id: int
    status: str
    message: str

class JobCheckResponse(BaseModel):
    success: bool
    status: str
    message: str
    questions_inserted: Optional[int] = None

class ApproveQuestionsRequest(BaseModel):
    question_ids: List[int] = Field(..., min_length=1)

class ApproveQuestionsResponse(BaseModel):
    success: bool = True
    transferred_count: int
    question_ids: List[int]
    approved_by: int
    approved_from: str

class ImportResultResponse(BaseModel):
    success: int
    errors: List[str] = []

class SignedUrlResponse(BaseModel):
    url: str
    expires_in: int

class UploadUrlRequest(BaseModel):
    file_name: str

class UploadUrlResponse(BaseModel):
    upload_url: str
    authorization_token: str
    file_path: str
