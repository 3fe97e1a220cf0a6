import asyncio
import json
import logging
import uuid

import httpx

from app.core.errors import StorageError
from app.core.formatting import format_byte_size
from app.modules.generations.schemas import DownloadedAsset
from app.modules.transfers.schemas import DriveUploadResult, StorageQuota
from app.platform.adapters.storage_common import stream_with_progress, upload_sequentially
from app.platform.ports.video_storage import BatchProgress, ItemProgress

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
API_URL = "https://www.googleapis.com/drive/v3"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
FOLDER_MIME = "application/vnd.google-apps.folder"
VIDEO_MIME = "video/mp4"
UPLOAD_FIELDS = "id,name,webViewLink,size"


def _quote_query(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def folder_query(name: str, parent_id: str | None = None) -> str:
    q = f"name='{_quote_query(name)}' and mimeType='{FOLDER_MIME}' and trashed=false"
    if parent_id:
        q += f" and '{_quote_query(parent_id)}' in parents"
    return q


class DriveStorage:
    """Google Drive v3 over REST, authorised with an OAuth refresh token."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        refresh_token: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 120.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.refresh_token = refresh_token
        self._transport = transport
        self._timeout = timeout
        self._access_token: str | None = None
        # serialises lookup+create within this instance only; other processes can still race
        self._folder_lock = asyncio.Lock()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    async def _auth_headers(self, client: httpx.AsyncClient) -> dict[str, str]:
        if self._access_token is None:
            resp = await client.post(
                TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "refresh_token",
                },
            )
            if resp.status_code >= 400:
                raise StorageError(f"Google OAuth token refresh failed with status {resp.status_code}")
            token = resp.json().get("access_token")
            if not token:
                raise StorageError("Google OAuth token response had no access_token")
            self._access_token = token
        return {"Authorization": f"Bearer {self._access_token}"}

    # ---- folders ----

    async def create_folder(self, name: str, parent_id: str | None = None) -> str:
        body: dict = {"name": name, "mimeType": FOLDER_MIME}
        if parent_id:
            body["parents"] = [parent_id]
        try:
            async with self._client() as client:
                headers = await self._auth_headers(client)
                resp = await client.post(f"{API_URL}/files", headers=headers, params={"fields": "id"}, json=body)
                resp.raise_for_status()
                return resp.json()["id"]
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to create folder: {e}") from e

    async def find_or_create_folder(self, name: str, parent_id: str | None = None) -> str:
        async with self._folder_lock:
            try:
                async with self._client() as client:
                    headers = await self._auth_headers(client)
                    resp = await client.get(
                        f"{API_URL}/files",
                        headers=headers,
                        params={"q": folder_query(name, parent_id), "fields": "files(id, name)"},
                    )
                    resp.raise_for_status()
                    files = resp.json().get("files") or []
            except httpx.HTTPError as e:
                raise StorageError(f"Failed to find or create folder: {e}") from e
            if files:
                return files[0]["id"]
            logger.info("Drive folder %r not found; creating it", name)
            return await self.create_folder(name, parent_id)

    # ---- uploads ----

    async def upload_one(
        self,
        data: bytes,
        filename: str,
        destination: str | None = None,
        on_progress: ItemProgress | None = None,
    ) -> DriveUploadResult:
        metadata: dict = {"name": filename}
        if destination:
            metadata["parents"] = [destination]

        boundary = f"luma-{uuid.uuid4().hex}"
        head = (
            f"--{boundary}\r\nContent-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{json.dumps(metadata)}\r\n"
            f"--{boundary}\r\nContent-Type: {VIDEO_MIME}\r\n\r\n"
        ).encode()
        tail = f"\r\n--{boundary}--\r\n".encode()
        length = len(head) + len(data) + len(tail)
        content = stream_with_progress(data, on_progress, head=head, tail=tail) if on_progress else head + data + tail

        try:
            async with self._client() as client:
                headers = await self._auth_headers(client)
                headers.update({
                    "Content-Type": f"multipart/related; boundary={boundary}",
                    "Content-Length": str(length),
                })
                resp = await client.post(
                    UPLOAD_URL,
                    headers=headers,
                    params={"uploadType": "multipart", "fields": UPLOAD_FIELDS},
                    content=content,
                )
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to upload video: {e}") from e

        return DriveUploadResult(
            id=body["id"],
            name=body.get("name", filename),
            webViewLink=body.get("webViewLink"),
            size=str(body.get("size") or "0"),
            path=destination,
        )

    async def upload_batch(
        self,
        items: list[DownloadedAsset],
        destination: str | None = None,
        on_progress: BatchProgress | None = None,
    ) -> list[DriveUploadResult]:
        async def upload(item: DownloadedAsset, report: ItemProgress) -> DriveUploadResult:
            return await self.upload_one(item.data, item.filename, destination, report if on_progress else None)

        return await upload_sequentially(items, upload, on_progress)

    # ---- quota ----

    async def get_quota(self) -> StorageQuota:
        try:
            async with self._client() as client:
                headers = await self._auth_headers(client)
                resp = await client.get(f"{API_URL}/about", headers=headers, params={"fields": "storageQuota"})
                resp.raise_for_status()
                quota = resp.json().get("storageQuota") or {}
            used = int(quota.get("usage") or 0)
            if quota.get("limit") is None:
                return StorageQuota(used=format_byte_size(used), limit="Unlimited", available="Unlimited")
            limit = int(quota["limit"])
        except Exception as e:
            logger.error("Error getting storage quota: %s", e)
            return StorageQuota(used="Unknown", limit="Unknown", available="Unknown")
        return StorageQuota(
            used=format_byte_size(used),
            limit=format_byte_size(limit),
            available=format_byte_size(max(0, limit - used)),
        )
