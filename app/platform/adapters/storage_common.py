import logging
from typing import AsyncIterator, Awaitable, Callable, TypeVar
from pydantic import BaseModel
from app.modules.generations.schemas import DownloadedAsset
from app.platform.ports.video_storage import BatchProgress, ItemProgress

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

UPLOAD_CHUNK_SIZE = 256 * 1024


async def upload_sequentially(
    items: list[DownloadedAsset],
    upload: Callable[[DownloadedAsset, ItemProgress], Awaitable[R]],
    on_progress: BatchProgress | None = None,
) -> list[R]:
    """Upload one item at a time. Failures are logged and skipped; successes keep input order."""
    results: list[R] = []
    total = len(items)
    for index, item in enumerate(items, start=1):
        def report(pct: int, _index: int = index) -> None:
            if on_progress:
                on_progress(_index, total, pct)

        try:
            result = await upload(item, report)
        except Exception as e:
            logger.error("Failed to upload %s (%s): %s", item.filename, item.source_id, e)
            continue
        results.append(result.model_copy(update={"originalId": item.source_id}))
    return results


async def stream_with_progress(
    payload: bytes,
    on_progress: ItemProgress,
    *,
    head: bytes = b"",
    tail: bytes = b"",
    chunk_size: int = UPLOAD_CHUNK_SIZE,
) -> AsyncIterator[bytes]:
    """Yield ``head``, ``payload`` in chunks, then ``tail``; report payload percent after each chunk."""
    if head:
        yield head
    total = len(payload)
    sent = 0
    last = -1
    if total == 0:
        on_progress(100)
    for start in range(0, total, chunk_size):
        chunk = payload[start:start + chunk_size]
        yield chunk
        sent += len(chunk)
        pct = round(sent / total * 100)
        if pct != last:
            on_progress(pct)
            last = pct
    if tail:
        yield tail
