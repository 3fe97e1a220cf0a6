import logging
from fastapi.concurrency import run_in_threadpool
from app.core.concurrency import gather_bounded
from app.core.errors import BadRequestError, TotalFailureError
from app.core.formatting import format_byte_size
from app.modules.archives.builder import ArchiveItem, build_archive
from app.modules.catalog.schemas import CatalogOut, StoredFileOut, StoredFolderOut
from app.platform.adapters.storage_firebase import FirebaseStorage

logger = logging.getLogger(__name__)

MANIFEST_NAME = "download_info.json"


class CatalogService:
    """Browse and bundle what was already uploaded to the object store."""

    def __init__(self, storage: FirebaseStorage, *, concurrency: int = 8, archive_max_files: int = 50):
        self.storage = storage
        self.concurrency = concurrency
        self.archive_max_files = archive_max_files

    async def _describe(self, path: str) -> StoredFileOut:
        meta = await self.storage.get_metadata(path)
        size = int(meta.get("size") or 0)
        return StoredFileOut(
            name=path.rsplit("/", 1)[-1],
            fullPath=path,
            downloadURL=self.storage.url_from_metadata(path, meta),
            size=size,
            formattedSize=format_byte_size(size),
            timeCreated=meta.get("timeCreated"),
            contentType=meta.get("contentType"),
        )

    async def list_folder(self, folder: str) -> CatalogOut:
        listing = await self.storage.list_folder(folder)
        described = await gather_bounded(listing.items, self._describe, limit=self.concurrency)
        files: list[StoredFileOut] = []
        for path, entry in zip(listing.items, described):
            if isinstance(entry, StoredFileOut):
                files.append(entry)
            else:
                logger.error("Error getting details for %s: %s", path, entry)
        files.sort(key=lambda f: f.timeCreated or "", reverse=True)
        folders = [
            StoredFolderOut(name=p.rstrip("/").rsplit("/", 1)[-1], fullPath=p.rstrip("/"))
            for p in listing.prefixes
        ]
        return CatalogOut(files=files, folders=folders, currentFolder=folder, totalFiles=len(files))

    async def archive(self, file_paths: list[str]) -> bytes:
        if len(file_paths) > self.archive_max_files:
            raise BadRequestError(
                f"Too many files selected. Please select {self.archive_max_files} or fewer files at a time."
            )
        items: list[ArchiveItem] = []
        for path in file_paths:
            try:
                data = await self.storage.download_object(path)
            except Exception as e:
                logger.error("Failed to download %s: %s", path, e)
                items.append(ArchiveItem(source_id=path, error=str(e)))
                continue
            items.append(ArchiveItem(source_id=path, filename=path.rsplit("/", 1)[-1], data=data))

        if not any(i.ok for i in items):
            raise TotalFailureError("Failed to download any files")
        return await run_in_threadpool(
            build_archive, items, {"requestedFiles": len(file_paths)}, manifest_name=MANIFEST_NAME
        )
