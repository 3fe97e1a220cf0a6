from typing import Literal
from fastapi import APIRouter, Depends, Query, Response
from app.core.config import settings, LUMA_KEYS
from app.core.formatting import attachment_filename
from app.modules.generations.schemas import DownloadIn, DownloadReportOut, LinksOut, MetadataRefreshOut, VideoIdsIn
from app.modules.generations.service import GenerationService, links_text
from app.platform.adapters.provider_luma import LumaClient, derive_filename
from app.platform.provider_registry import get_luma_client, require_settings

router = APIRouter(dependencies=[Depends(require_settings(*LUMA_KEYS))])

def svc(luma: LumaClient = Depends(get_luma_client)) -> GenerationService:
    return GenerationService(
        luma,
        page_size=settings.PAGE_SIZE,
        list_max_items=settings.LIST_MAX_ITEMS,
        resolve_max_items=settings.RESOLVE_MAX_ITEMS,
        archive_max_items=settings.ARCHIVE_MAX_ITEMS,
        head_batch_size=settings.HEAD_BATCH_SIZE,
        head_batch_pause=settings.HEAD_BATCH_PAUSE_SECONDS,
        download_concurrency=settings.DOWNLOAD_CONCURRENCY,
    )

@router.get("/generations")
async def list_generations(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    fetchAll: bool = False,
    maxVideos: int | None = Query(default=None, ge=1),
    skipMetadata: bool = False,
    service: GenerationService = Depends(svc),
):
    if fetchAll:
        return await service.list_all(maxVideos, skipMetadata)
    return await service.list_page(limit, offset)

@router.post("/generations", response_model=DownloadReportOut)
async def download_generations(payload: VideoIdsIn, service: GenerationService = Depends(svc)):
    return await service.download_report(payload.videoIds)

@router.post("/generations/metadata", response_model=MetadataRefreshOut)
async def refresh_metadata(payload: VideoIdsIn, service: GenerationService = Depends(svc)):
    return await service.refresh_metadata(payload.videoIds)

@router.get("/generations/{generation_id}")
async def get_generation(generation_id: str, service: GenerationService = Depends(svc)):
    return await service.get_generation(generation_id)

@router.post("/download", response_model=LinksOut)
async def download(payload: DownloadIn, service: GenerationService = Depends(svc)):
    gens = await service.resolve(payload.videoIds)
    if payload.format == "links":
        return service.links(gens)
    blob = await service.archive(gens)
    return Response(
        content=blob,
        media_type="application/zip",
        headers={"Content-Disposition": attachment_filename("luma-videos", "zip")},
    )

@router.get("/bulk-download")
async def bulk_download(
    format: Literal["json", "txt"] = "json",
    maxVideos: int = Query(default=settings.BULK_EXPORT_MAX_ITEMS, ge=1),
    service: GenerationService = Depends(svc),
):
    videos, result = await service.bulk_export(maxVideos)
    if format == "txt":
        return Response(
            content=links_text(videos),
            media_type="text/plain",
            headers={"Content-Disposition": attachment_filename("all-luma-videos", "txt")},
        )
    return {
        "success": True,
        "total_found": len(result.generations),
        "downloadable_count": len(videos),
        "enumeration_status": result.status,
        "bulk_download": True,
        "videos": [
            {
                "id": v.id,
                "filename": derive_filename(v),
                "downloadUrl": v.video_url,
                "created_at": v.created_at,
                "prompt": v.prompt,
                "state": v.state,
                "generation_type": v.generation_type,
            }
            for v in videos
        ],
    }
