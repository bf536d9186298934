import asyncio
import logging

import httpx
from google import genai
from google.genai import types

from eduplatform.config import Config
from eduplatform.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

BUSY_MARKERS = ("429", "RESOURCE_EXHAUSTED", "503", "overloaded", "UNAVAILABLE")

class LLMClient:
    """
    Chat completions through the LLM gateway (OpenAI-compatible), or
    directly through Gemini when only GEMINI_API_KEY is set.
    """

    max_retries = 5

    def __init__(self, transport: httpx.AsyncBaseTransport = None):
        self.gateway_url = Config.LLM_GATEWAY_URL
        self.api_key = Config.LLM_API_KEY
        self.model = Config.LLM_MODEL
        self.transport = transport
        self.gemini = None
        if not self.api_key and Config.GEMINI_API_KEY:
            self.gemini = genai.Client(api_key=Config.GEMINI_API_KEY)

    async def complete(self, system_prompt: str, user_prompt: str, temperature: float = 0.3) -> str:
        if not self.api_key and not self.gemini:
            raise ExternalServiceError("AI API key not configured")

        for attempt in range(self.max_retries):
            try:
                if self.gemini:
                    return await self._gemini_complete(system_prompt, user_prompt, temperature)
                return await self._gateway_complete(system_prompt, user_prompt, temperature)
            except ExternalServiceError as e:
                error_str = str(e)
                # Rate limit or overload: wait and try again
                if any(marker in error_str for marker in BUSY_MARKERS) and attempt < self.max_retries - 1:
                    wait_time = 5 * (attempt + 1)
                    logger.warning(f"LLM busy (attempt {attempt + 1}/{self.max_retries}), retrying in {wait_time}s: {error_str[:100]}")
                    await asyncio.sleep(wait_time)
                    continue
                raise
        raise ExternalServiceError("LLM failed after retries (system busy)")

    async def _gateway_complete(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        async with httpx.AsyncClient(transport=self.transport, timeout=180.0) as client:
            response = await client.post(
                self.gateway_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    "temperature": temperature,
                },
            )
        if response.status_code != 200:
            raise ExternalServiceError(f"AI API error: {response.status_code} {response.text[:200]}")

        choices = response.json().get("choices") or []
        content = choices[0].get("message", {}).get("content") if choices else None
        if not content:
            raise ExternalServiceError("No response from AI")
        return content

    async def _gemini_complete(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        try:
            response = await self.gemini.aio.models.generate_content(
                model=Config.GEMINI_MODEL,
                contents=user_prompt,
                config=types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    temperature=temperature,
                ),
            )
        except Exception as e:
            raise ExternalServiceError(f"Gemini error: {e}") from e
        if not response.text:
            raise ExternalServiceError("No response from AI")
        return response.text

llm_client = LLMClient()
