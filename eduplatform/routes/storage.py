from fastapi import APIRouter, Depends

from eduplatform.models.user import User
from eduplatform.schemas.document_schema import SignedUrlResponse, UploadUrlRequest, UploadUrlResponse
from eduplatform.security import get_current_user_id, require_staff
from eduplatform.services.ingestion_service import storage_service

router = APIRouter()

@router.get("/download-url", response_model=SignedUrlResponse)
async def get_download_url(path: str, user_id: int = Depends(get_current_user_id)):
    url = await storage_service.get_download_url(path)
    return SignedUrlResponse(url=url, expires_in=storage_service.url_ttl)

@router.post("/upload-url", response_model=UploadUrlResponse)
async def get_upload_url(request: UploadUrlRequest, staff: User = Depends(require_staff)):
    return await storage_service.get_upload_url(request.file_name)
