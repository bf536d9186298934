import base64
import logging
import uuid

import httpx

from eduplatform.config import Config
from eduplatform.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

class B2StorageService:
    AUTHORIZE_URL = "https://api.backblazeb2.com/b2api/v2/b2_authorize_account"

    def __init__(self, transport: httpx.AsyncBaseTransport = None):
        self.key_id = Config.B2_KEY_ID
        self.app_key = Config.B2_APPLICATION_KEY
        self.bucket_id = Config.B2_BUCKET_ID
        self.bucket_name = Config.B2_BUCKET_NAME
        self.url_ttl = Config.B2_URL_TTL
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=60.0)

    async def _authorize(self, client: httpx.AsyncClient) -> dict:
        if not self.key_id or not self.app_key:
            raise ExternalServiceError("B2 credentials not configured")

        basic = base64.b64encode(f"{self.key_id}:{self.app_key}".encode()).decode()
        response = await client.get(self.AUTHORIZE_URL, headers={"Authorization": f"Basic {basic}"})
        if response.status_code != 200:
            raise ExternalServiceError("Failed to authorize with B2")
        return response.json()

    async def get_download_url(self, file_path: str) -> str:
        """
        Signed URL: {downloadUrl}/file/{bucket}/{path}?Authorization={token}
        """
        async with self._client() as client:
            auth = await self._authorize(client)
            response = await client.post(
                f"{auth['apiUrl']}/b2api/v2/b2_get_download_authorization",
                json={
                    "bucketId": self.bucket_id,
                    "fileNamePrefix": file_path,
                    "validDurationInSeconds": self.url_ttl,
                },
                headers={"Authorization": auth["authorizationToken"]},
            )
            if response.status_code != 200:
                raise ExternalServiceError("Failed to get B2 download authorization")

            token = response.json()["authorizationToken"]
            return f"{auth['downloadUrl']}/file/{self.bucket_name}/{file_path}?Authorization={token}"

    async def get_upload_url(self, file_name: str, folder: str = "uploads") -> dict:
        file_path = f"{folder}/{uuid.uuid4().hex[:12]}_{file_name}"
        async with self._client() as client:
            auth = await self._authorize(client)
            response = await client.post(
                f"{auth['apiUrl']}/b2api/v2/b2_get_upload_url",
                json={"bucketId": self.bucket_id},
                headers={"Authorization": auth["authorizationToken"]},
            )
            if response.status_code != 200:
                raise ExternalServiceError(f"B2 upload URL error: {response.text}")

            data = response.json()
            return {
                "upload_url": data["uploadUrl"],
                "authorization_token": data["authorizationToken"],
                "file_path": file_path,
            }

    async def resolve_url(self, path_or_url: str) -> str:
        # Relative storage paths need a signed URL first
        if path_or_url.startswith("http"):
            return path_or_url
        logger.info("Converting storage path to signed URL...")
        return await self.get_download_url(path_or_url)

    async def download(self, path_or_url: str) -> bytes:
        url = await self.resolve_url(path_or_url)
        async with self._client() as client:
            response = await client.get(url)
            if response.status_code != 200:
                raise ExternalServiceError(f"Failed to download {path_or_url}: {response.status_code}")
            return response.content
