import logging

import httpx

from eduplatform.config import Config
from eduplatform.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

class ReplitOcrService:
    """Replit-hosted OCR + LLM service for question/solution PDF pairs."""

    def __init__(self, transport: httpx.AsyncBaseTransport = None):
        self.base_url = Config.REPLIT_BASE_URL.rstrip("/")
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=300.0)

    async def submit(self, questions_pdf: bytes, questions_name: str, solutions_pdf: bytes, solutions_name: str) -> str:
        async with self._client() as client:
            response = await client.post(
                f"{self.base_url}/process-educational-content",
                files={
                    "questions_file": (questions_name, questions_pdf, "application/pdf"),
                    "solutions_file": (solutions_name, solutions_pdf, "application/pdf"),
                },
                data={"use_llm": "false"},
            )
            if response.status_code != 200:
                raise ExternalServiceError(f"Replit service upload failed: {response.status_code} - {response.text}")

            job_id = response.json().get("job_id")
            if not job_id:
                raise ExternalServiceError("Replit service returned no job_id")
            return job_id

    async def get_status(self, replit_job_id: str) -> str:
        async with self._client() as client:
            response = await client.get(f"{self.base_url}/status/{replit_job_id}")
            if response.status_code != 200:
                raise ExternalServiceError(f"Replit status check failed: {response.status_code}")
            return response.json().get("status")

    async def get_result(self, replit_job_id: str) -> dict:
        async with self._client() as client:
            response = await client.get(f"{self.base_url}/api/educational-result/{replit_job_id}")
            if response.status_code != 200:
                raise ExternalServiceError(f"Failed to fetch results: {response.status_code}")

            structured = response.json()
            # Results may come nested under 'result'
            return structured.get("result") or structured
