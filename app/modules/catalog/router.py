from fastapi import APIRouter, Depends, Response
from app.core.config import settings, FIREBASE_KEYS
from app.core.formatting import attachment_filename
from app.modules.catalog.schemas import CatalogDownloadIn, CatalogOut
from app.modules.catalog.service import CatalogService
from app.platform.adapters.storage_firebase import FirebaseStorage
from app.platform.provider_registry import get_firebase_storage, require_settings

router = APIRouter(dependencies=[Depends(require_settings(*FIREBASE_KEYS))])

def svc(storage: FirebaseStorage = Depends(get_firebase_storage)) -> CatalogService:
    return CatalogService(
        storage,
        concurrency=settings.CATALOG_CONCURRENCY,
        archive_max_files=settings.CATALOG_ARCHIVE_MAX_FILES,
    )

@router.get("/list", response_model=CatalogOut)
async def list_files(folder: str = "", service: CatalogService = Depends(svc)):
    return await service.list_folder(folder)

@router.post("/download")
async def download_files(payload: CatalogDownloadIn, service: CatalogService = Depends(svc)):
    blob = await service.archive(payload.filePaths)
    return Response(
        content=blob,
        media_type="application/zip",
        headers={"Content-Disposition": attachment_filename("firebase-videos", "zip")},
    )
