import asyncio
import logging
import re
from dataclasses import replace
from datetime import datetime, timezone

import httpx

from app.core.concurrency import run_in_batches
from app.core.errors import DownloadError, NotFoundError, ProviderError
from app.core.retry import (
    DOWNLOAD_POLICY,
    HEAD_POLICY,
    PAGE_POLICY,
    RetryPolicy,
    Sleep,
    call_with_retry,
    is_connection_exhaustion,
)
from app.modules.generations.schemas import (
    AssetMetadata,
    EnumerationResult,
    Generation,
    GenerationPage,
)

logger = logging.getLogger(__name__)

FILENAME_PREFIX = "luma"
MAX_CONSECUTIVE_FAILURES = 3
PAGE_DELAY_BASE = 0.5
PAGE_DELAY_STEP = 0.1
PAGE_DELAY_CAP = 2.0
FAILURE_DELAY = 1.0

_FRACTION = re.compile(r"\.(\d+)")


def page_delay(offset: int, page_size: int) -> float:
    """Pause between successful pages: 500ms, +100ms per page already read, capped at 2s."""
    pages_read = offset // max(1, page_size)
    return min(PAGE_DELAY_BASE + PAGE_DELAY_STEP * max(0, pages_read - 1), PAGE_DELAY_CAP)


def _iso_timestamp(raw: str) -> str:
    # fromisoformat before 3.11 only takes 3 or 6 fractional digits
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), raw.replace("Z", "+00:00"), count=1)
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return raw
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def derive_filename(generation: Generation, prefix: str = FILENAME_PREFIX) -> str:
    timestamp = _iso_timestamp(generation.created_at).replace(":", "-").replace(".", "-")
    return f"{prefix}_{generation.id}_{timestamp}.mp4"


class LumaClient:
    """Client for the Dream Machine generations API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.lumalabs.ai/dream-machine/v1",
        *,
        page_policy: RetryPolicy = PAGE_POLICY,
        head_policy: RetryPolicy = HEAD_POLICY,
        download_policy: RetryPolicy = DOWNLOAD_POLICY,
        download_timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        if not api_key:
            raise ValueError("Luma API key is required for LumaClient")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._page_policy = page_policy
        self._head_policy = head_policy
        self._download_policy = download_policy
        self._download_timeout = download_timeout
        self._transport = transport
        self._sleep = sleep

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }

    def _client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, **kwargs)

    # ---- listing ----

    async def fetch_page(self, limit: int = 50, offset: int = 0, retries: int = 3) -> GenerationPage:
        policy = replace(self._page_policy, max_attempts=retries)

        async def once() -> dict:
            async with self._client(timeout=30.0) as client:
                resp = await client.get(
                    f"{self._base_url}/generations",
                    headers=self._headers,
                    params={"limit": limit, "offset": offset},
                )
                resp.raise_for_status()
                return resp.json()

        try:
            data = await call_with_retry(once, policy, sleep=self._sleep, label=f"page offset={offset}")
            return GenerationPage.model_validate(data)
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Failed to fetch generations: provider returned {e.response.status_code} at offset {offset}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(f"Failed to fetch generations at offset {offset}: {e}") from e

    async def get_generation(self, generation_id: str) -> Generation:
        async def once() -> dict:
            async with self._client(timeout=30.0) as client:
                resp = await client.get(f"{self._base_url}/generations/{generation_id}", headers=self._headers)
                resp.raise_for_status()
                return resp.json()

        try:
            data = await call_with_retry(once, self._page_policy, sleep=self._sleep, label=f"generation {generation_id}")
            return Generation.model_validate(data)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFoundError(f"Generation {generation_id} not found") from e
            raise ProviderError(f"Failed to fetch generation {generation_id}: {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(f"Failed to fetch generation {generation_id}: {e}") from e

    async def enumerate_all(self, max_items: int | None = None, page_size: int = 50) -> EnumerationResult:
        """Page through every generation, keeping completed videos with an asset.

        Never raises: three consecutive page failures end the walk with
        whatever was collected (status ``aborted``).
        """
        collected: list[Generation] = []
        offset = 0
        failures = 0
        status = "complete"

        if max_items is not None and max_items <= 0:
            return EnumerationResult(generations=[], status="truncated")

        while True:
            try:
                page = await self.fetch_page(page_size, offset)
            except ProviderError as e:
                failures += 1
                logger.error("Page at offset %d failed (%d consecutive): %s", offset, failures, e)
                if failures >= MAX_CONSECUTIVE_FAILURES:
                    status = "aborted"
                    break
                await self._sleep(min(FAILURE_DELAY * failures, PAGE_DELAY_CAP))
                continue

            failures = 0
            collected.extend(g for g in page.generations if g.is_usable)

            if max_items is not None and len(collected) >= max_items:
                if len(collected) > max_items or page.has_more:
                    status = "truncated"
                collected = collected[:max_items]
                break
            if not page.has_more:
                break

            offset += page_size
            await self._sleep(page_delay(offset, page_size))

        logger.info("Enumerated %d videos (%s, last offset %d)", len(collected), status, offset)
        return EnumerationResult(generations=collected, status=status)

    # ---- assets ----

    async def head_asset(self, url: str, retries: int = 2) -> AssetMetadata:
        """Size/type probe. Best effort: any failure yields ``size=None``."""
        policy = replace(self._head_policy, max_attempts=retries)

        async def once() -> httpx.Response:
            async with self._client(timeout=10.0, follow_redirects=True) as client:
                resp = await client.head(url)
                resp.raise_for_status()
                return resp

        try:
            resp = await call_with_retry(
                once, policy, is_retryable=is_connection_exhaustion, sleep=self._sleep, label=f"HEAD {url}"
            )
        except Exception as e:
            logger.warning("Metadata probe failed for %s: %s", url, e)
            return AssetMetadata(size=None)

        length = resp.headers.get("content-length", "")
        return AssetMetadata(
            size=int(length) if length.isdigit() else None,
            content_type=resp.headers.get("content-type") or "video/mp4",
        )

    async def head_assets_batched(
        self, urls: list[str], batch_size: int = 8, pause: float = 0.5
    ) -> list[AssetMetadata]:
        results = await run_in_batches(urls, self.head_asset, batch_size=batch_size, pause=pause, sleep=self._sleep)
        return [r if isinstance(r, AssetMetadata) else AssetMetadata(size=None) for r in results]

    async def download_asset(self, url: str) -> bytes:
        async def once() -> bytes:
            async with self._client(timeout=self._download_timeout, follow_redirects=True) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp.content

        try:
            return await call_with_retry(once, self._download_policy, sleep=self._sleep, label=f"download {url}")
        except httpx.HTTPError as e:
            raise DownloadError(f"Failed to download video: {e}") from e
