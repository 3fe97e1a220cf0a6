import logging
from datetime import datetime
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from app.core.errors import StorageError
from app.modules.generations.schemas import DownloadedAsset
from app.modules.transfers.schemas import FirebaseUploadResult
from app.platform.adapters.storage_common import stream_with_progress, upload_sequentially
from app.platform.ports.video_storage import BatchProgress, ItemProgress

logger = logging.getLogger(__name__)

API_ROOT = "https://firebasestorage.googleapis.com/v0/b"
VIDEO_MIME = "video/mp4"


class FolderListing(BaseModel):
    items: list[str]
    prefixes: list[str]


class FirebaseStorage:
    """Firebase Storage bucket over its REST API. Folders are key prefixes."""

    def __init__(
        self,
        api_key: str,
        bucket: str,
        *,
        root_folder: str = "luma-videos",
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 120.0,
    ):
        self.api_key = api_key
        self.bucket = bucket
        self.root_folder = root_folder.strip("/")
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    @property
    def _objects_url(self) -> str:
        return f"{API_ROOT}/{self.bucket}/o"

    def _object_url(self, path: str) -> str:
        return f"{self._objects_url}/{quote(path, safe='')}"

    def download_url(self, path: str, token: str) -> str:
        return f"{self._object_url(path)}?alt=media&token={token}"

    def generate_folder_path(self, date: datetime | str | None = None, root: str | None = None) -> str:
        """``{root}/{YYYY}/{MM}`` for the given date (default now)."""
        if date is None:
            when = datetime.now()
        elif isinstance(date, str):
            when = datetime.fromisoformat(date.replace("Z", "+00:00"))
        else:
            when = date
        base = (root or self.root_folder).strip("/")
        return f"{base}/{when.year}/{when.month:02d}"

    def url_from_metadata(self, path: str, meta: dict) -> str:
        tokens = (meta.get("downloadTokens") or "").split(",")
        if not tokens[0]:
            raise StorageError(f"No download token for {path}")
        return self.download_url(path, tokens[0])

    # ---- uploads ----

    async def upload_one(
        self,
        data: bytes,
        filename: str,
        destination: str | None = None,
        on_progress: ItemProgress | None = None,
    ) -> FirebaseUploadResult:
        folder = (destination or self.root_folder).strip("/")
        path = f"{folder}/{filename}"
        content = stream_with_progress(data, on_progress) if on_progress else data
        try:
            async with self._client() as client:
                resp = await client.post(
                    self._objects_url,
                    params={"name": path, "key": self.api_key},
                    headers={"Content-Type": VIDEO_MIME, "Content-Length": str(len(data))},
                    content=content,
                )
                resp.raise_for_status()
                meta = resp.json()
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to upload video: {e}") from e

        return FirebaseUploadResult(
            id=path.rsplit("/", 1)[-1],
            name=filename,
            downloadURL=self.url_from_metadata(path, meta),
            size=len(data),
            path=path,
        )

    async def upload_batch(
        self,
        items: list[DownloadedAsset],
        destination: str | None = None,
        on_progress: BatchProgress | None = None,
    ) -> list[FirebaseUploadResult]:
        async def upload(item: DownloadedAsset, report: ItemProgress) -> FirebaseUploadResult:
            return await self.upload_one(item.data, item.filename, destination, report if on_progress else None)

        return await upload_sequentially(items, upload, on_progress)

    # ---- catalog ----

    async def list_folder(self, folder: str = "") -> FolderListing:
        prefix = folder.strip("/")
        params = {"delimiter": "/", "key": self.api_key}
        if prefix:
            params["prefix"] = f"{prefix}/"
        items: list[str] = []
        prefixes: list[str] = []
        try:
            async with self._client() as client:
                while True:
                    resp = await client.get(self._objects_url, params=params)
                    resp.raise_for_status()
                    body = resp.json()
                    items.extend(i["name"] for i in body.get("items") or [])
                    prefixes.extend(body.get("prefixes") or [])
                    token = body.get("nextPageToken")
                    if not token:
                        break
                    params["pageToken"] = token
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to list files: {e}") from e
        return FolderListing(items=items, prefixes=prefixes)

    async def get_metadata(self, path: str) -> dict:
        try:
            async with self._client() as client:
                resp = await client.get(self._object_url(path), params={"key": self.api_key})
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to read metadata for {path}: {e}") from e

    async def get_download_url(self, path: str) -> str:
        return self.url_from_metadata(path, await self.get_metadata(path))

    async def download_object(self, path: str) -> bytes:
        url = await self.get_download_url(path)
        try:
            async with self._client() as client:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp.content
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to download {path}: {e}") from e
