import asyncio
import logging
from typing import Optional

import httpx

from eduplatform.config import Config
from eduplatform.exceptions import ExternalServiceError, JobTimeoutError
from eduplatform.schemas.document_schema import ParsedPdfMetadata, ParsedPdfResponse

logger = logging.getLogger(__name__)

class DatalabService:
    """Datalab Marker API: submit a PDF, poll until the conversion completes."""

    def __init__(self, transport: httpx.AsyncBaseTransport = None):
        self.api_key = Config.DATALAB_API_KEY
        self.base_url = Config.DATALAB_BASE_URL.rstrip("/")
        self.poll_interval = Config.DATALAB_POLL_INTERVAL
        self.max_polls = Config.DATALAB_MAX_POLLS
        self.transport = transport

    def _headers(self) -> dict:
        if not self.api_key:
            raise ExternalServiceError("DATALAB_API_KEY is not configured")
        return {"X-API-Key": self.api_key}

    async def submit(self, client: httpx.AsyncClient, file_bytes: Optional[bytes] = None,
                     file_name: str = "document.pdf", file_url: Optional[str] = None) -> str:
        data = {
            "output_format": "json",
            "use_llm": "true",
            "force_ocr": "false",
            "paginate": "false",
        }
        files = None
        if file_bytes is not None:
            files = {"file": (file_name, file_bytes, "application/pdf")}
        elif file_url:
            data["file_url"] = file_url
        else:
            raise ValueError("Either file or pdf_url is required")

        logger.info("Submitting to Datalab Marker API...")
        response = await client.post(
            f"{self.base_url}/api/v1/marker",
            headers=self._headers(),
            data=data,
            files=files,
        )
        if response.status_code != 200:
            raise ExternalServiceError(f"Datalab API error: {response.status_code} - {response.text}")

        request_id = response.json().get("request_id")
        if not request_id:
            raise ExternalServiceError("No request_id received from Datalab")
        logger.info(f"Datalab request submitted, ID: {request_id}")
        return request_id

    async def poll(self, client: httpx.AsyncClient, request_id: str) -> dict:
        for attempt in range(1, self.max_polls + 1):
            await asyncio.sleep(self.poll_interval)
            logger.info(f"Datalab polling attempt {attempt}/{self.max_polls}...")

            response = await client.get(
                f"{self.base_url}/api/v1/marker/{request_id}",
                headers=self._headers(),
            )
            if response.status_code != 200:
                logger.error(f"Datalab status check failed: {response.status_code}")
                continue

            result = response.json()
            status = result.get("status")
            if status == "complete":
                return result
            if status == "failed":
                raise ExternalServiceError("Datalab processing failed")
            # pending / processing: keep polling

        raise JobTimeoutError(
            f"Datalab processing timed out after {int(self.max_polls * self.poll_interval)} seconds"
        )

    async def parse_pdf(self, file_bytes: Optional[bytes] = None, file_name: str = "document.pdf",
                        file_url: Optional[str] = None) -> ParsedPdfResponse:
        async with httpx.AsyncClient(transport=self.transport, timeout=120.0) as client:
            request_id = await self.submit(client, file_bytes, file_name, file_url)
            result = await self.poll(client, request_id)

        # page_count is top-level; metadata.pages is the legacy fallback
        metadata = result.get("metadata") or {}
        page_count = result.get("page_count")
        if page_count is None:
            page_count = metadata.get("pages") or 0

        logger.info(f"Datalab processing complete, pages: {page_count}")
        return ParsedPdfResponse(
            request_id=request_id,
            content_json=result.get("json"),
            content_markdown=result.get("markdown"),
            images=result.get("images") or {},
            metadata=ParsedPdfMetadata(pages=page_count, ocr_stats=metadata.get("ocr_stats")),
        )
