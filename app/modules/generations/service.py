import logging
from fastapi.concurrency import run_in_threadpool
from app.core.concurrency import gather_bounded
from app.core.errors import BadRequestError, NotFoundError, TotalFailureError
from app.core.formatting import format_byte_size
from app.modules.archives.builder import ArchiveItem, build_archive
from app.modules.generations.schemas import (
    AssetMetadataOut,
    DownloadFailure,
    DownloadReportOut,
    DownloadedAsset,
    DownloadedVideoOut,
    EnumerationResult,
    Generation,
    LinkEntryOut,
    LinksOut,
    MetadataRefreshOut,
)
from app.platform.adapters.provider_luma import LumaClient, derive_filename

logger = logging.getLogger(__name__)

SKIPPED_SIZE_LABEL = "Loading..."


def links_text(generations: list[Generation]) -> str:
    """Plain-text link list: filename, URL, Created, Prompt, blank line per video."""
    blocks = [
        f"{derive_filename(g)}\n{g.video_url}\nCreated: {g.created_at}\nPrompt: {g.prompt or 'N/A'}\n"
        for g in generations
    ]
    return "\n".join(blocks)


class GenerationService:
    def __init__(
        self,
        luma: LumaClient,
        *,
        page_size: int = 50,
        list_max_items: int = 1000,
        resolve_max_items: int = 1000,
        archive_max_items: int = 10,
        head_batch_size: int = 8,
        head_batch_pause: float = 0.5,
        download_concurrency: int = 1,
    ):
        self.luma = luma
        self.page_size = page_size
        self.list_max_items = list_max_items
        self.resolve_max_items = resolve_max_items
        self.archive_max_items = archive_max_items
        self.head_batch_size = head_batch_size
        self.head_batch_pause = head_batch_pause
        self.download_concurrency = download_concurrency

    # ---- listing ----

    async def list_page(self, limit: int, offset: int) -> dict:
        page = await self.luma.fetch_page(limit, offset)
        return page.model_dump(mode="json")

    async def list_all(self, max_videos: int | None, skip_metadata: bool) -> dict:
        result = await self.luma.enumerate_all(max_videos or self.list_max_items, self.page_size)
        gens = result.generations

        if skip_metadata:
            metas = [{"size": 0, "formattedSize": SKIPPED_SIZE_LABEL, "contentType": "video/mp4"} for _ in gens]
        else:
            probes = await self.luma.head_assets_batched(
                [g.video_url for g in gens], self.head_batch_size, self.head_batch_pause
            )
            metas = [
                {"size": p.size, "formattedSize": format_byte_size(p.size), "contentType": p.content_type}
                for p in probes
            ]

        items = []
        for g, meta in zip(gens, metas):
            data = g.model_dump(mode="json")
            data["metadata"] = {**(data.get("metadata") or {}), **meta}
            items.append(data)

        return {
            "generations": items,
            "total_count": len(items),
            "has_more": result.truncated,
            "metadata_skipped": skip_metadata,
            "enumeration_status": result.status,
        }

    async def get_generation(self, generation_id: str) -> dict:
        return (await self.luma.get_generation(generation_id)).model_dump(mode="json")

    async def refresh_metadata(self, video_ids: list[str]) -> MetadataRefreshOut:
        gens = await self.resolve(video_ids)
        probes = await self.luma.head_assets_batched(
            [g.video_url for g in gens], self.head_batch_size, self.head_batch_pause
        )
        return MetadataRefreshOut(metadata={
            g.id: AssetMetadataOut(size=p.size, formattedSize=format_byte_size(p.size), contentType=p.content_type)
            for g, p in zip(gens, probes)
        })

    # ---- resolution and download ----

    async def enumerate(self, max_items: int | None = None) -> EnumerationResult:
        return await self.luma.enumerate_all(max_items or self.resolve_max_items, self.page_size)

    async def resolve(self, video_ids: list[str]) -> list[Generation]:
        wanted = set(video_ids)
        result = await self.enumerate()
        matched = [g for g in result.generations if g.id in wanted]
        if not matched:
            raise NotFoundError("No valid videos found for the provided IDs")
        return matched

    async def download_assets(self, generations: list[Generation]) -> tuple[list[DownloadedAsset], list[DownloadFailure]]:
        """Fetch each asset; a failed download is recorded and skipped."""
        targets = [g for g in generations if g.video_url]

        async def fetch(g: Generation) -> DownloadedAsset:
            data = await self.luma.download_asset(g.video_url)
            return DownloadedAsset(source_id=g.id, data=data, filename=derive_filename(g))

        results = await gather_bounded(targets, fetch, limit=self.download_concurrency)
        assets: list[DownloadedAsset] = []
        failures: list[DownloadFailure] = []
        for g, r in zip(targets, results):
            if isinstance(r, DownloadedAsset):
                assets.append(r)
            else:
                logger.error("Failed to download video %s: %s", g.id, r)
                failures.append(DownloadFailure(source_id=g.id, error=str(r)))
        return assets, failures

    async def download_report(self, video_ids: list[str]) -> DownloadReportOut:
        gens = await self.resolve(video_ids)
        assets, _ = await self.download_assets(gens)
        if not assets:
            raise TotalFailureError("Failed to download any videos")
        return DownloadReportOut(
            downloaded=len(assets),
            failed=len(video_ids) - len(assets),
            videos=[DownloadedVideoOut(id=a.source_id, filename=a.filename, size=format_byte_size(a.size)) for a in assets],
        )

    # ---- export paths ----

    def links(self, generations: list[Generation]) -> LinksOut:
        # no HEAD probes here: link mode answers fast and leaves sizes unknown
        entries = [
            LinkEntryOut(
                id=g.id,
                filename=derive_filename(g),
                url=g.video_url,
                size=0,
                formattedSize=format_byte_size(None),
                created_at=g.created_at,
                prompt=g.prompt,
            )
            for g in generations
            if g.video_url
        ]
        return LinksOut(total=len(entries), downloads=entries)

    async def archive(self, generations: list[Generation]) -> bytes:
        if len(generations) > self.archive_max_items:
            raise BadRequestError(
                f"Too many videos for a ZIP download ({len(generations)} > {self.archive_max_items}). "
                "Use format 'links' or the bulk export instead."
            )
        assets, failures = await self.download_assets(generations)
        if not assets:
            raise TotalFailureError("Failed to download any videos")

        items = [ArchiveItem(source_id=a.source_id, filename=a.filename, data=a.data) for a in assets]
        items += [ArchiveItem(source_id=f.source_id, error=f.error) for f in failures]
        downloaded = {a.source_id for a in assets}
        manifest = {
            "requestedVideos": len(generations),
            "videos": [
                {
                    "id": g.id,
                    "filename": derive_filename(g),
                    "created_at": g.created_at,
                    "prompt": g.prompt,
                    "metadata": g.metadata.model_dump(mode="json") if g.metadata else None,
                    "downloaded": g.id in downloaded,
                }
                for g in generations
            ],
        }
        return await run_in_threadpool(build_archive, items, manifest)

    async def bulk_export(self, max_items: int) -> tuple[list[Generation], EnumerationResult]:
        result = await self.enumerate(max_items)
        downloadable = [g for g in result.generations if g.video_url]
        logger.info("Bulk export: %d found, %d downloadable", len(result.generations), len(downloadable))
        return downloadable, result
