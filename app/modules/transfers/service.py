import logging
from app.core.errors import TotalFailureError
from app.core.formatting import format_byte_size
from app.modules.generations.schemas import DownloadedAsset
from app.modules.generations.service import GenerationService
from app.modules.transfers.schemas import DriveUploadOut, FirebaseUploadOut
from app.platform.adapters.storage_drive import DriveStorage
from app.platform.adapters.storage_firebase import FirebaseStorage
from app.platform.ports.video_storage import VideoStoragePort

logger = logging.getLogger(__name__)


class TransferService:
    """Moves provider videos into a storage backend: resolve, download, upload."""

    def __init__(self, generations: GenerationService):
        self.generations = generations

    async def _collect(self, video_ids: list[str]) -> list[DownloadedAsset]:
        gens = await self.generations.resolve(video_ids)
        assets, failures = await self.generations.download_assets(gens)
        if not assets:
            raise TotalFailureError("Failed to download any videos")
        if failures:
            logger.warning("%d of %d videos failed to download", len(failures), len(gens))
        return assets

    async def _push(self, storage: VideoStoragePort, assets: list[DownloadedAsset], destination: str, backend: str) -> list:
        results = await storage.upload_batch(assets, destination)
        if not results:
            raise TotalFailureError(f"Failed to upload any videos to {backend}")
        logger.info("Uploaded %d of %d videos to %s", len(results), len(assets), backend)
        return results

    async def to_drive(self, drive: DriveStorage, video_ids: list[str], folder_name: str) -> DriveUploadOut:
        assets = await self._collect(video_ids)
        folder_id = await drive.find_or_create_folder(folder_name)
        results = await self._push(drive, assets, folder_id, "Google Drive")
        total = sum(a.size for a in assets)
        return DriveUploadOut(
            folderId=folder_id,
            folderName=folder_name,
            uploaded=len(results),
            failed=len(assets) - len(results),
            totalSize=total,
            formattedTotalSize=format_byte_size(total),
            storageQuota=await drive.get_quota(),
            results=results,
        )

    async def to_firebase(self, firebase: FirebaseStorage, video_ids: list[str], root: str | None = None) -> FirebaseUploadOut:
        assets = await self._collect(video_ids)
        folder_path = firebase.generate_folder_path(root=root)
        results = await self._push(firebase, assets, folder_path, "Firebase Storage")
        return FirebaseUploadOut(
            folderPath=folder_path,
            uploaded=len(results),
            failed=len(assets) - len(results),
            totalSize=format_byte_size(sum(a.size for a in assets)),
            results=results,
        )
