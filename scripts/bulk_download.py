"""
Download every video listed in a link-list export (GET /api/luma/bulk-download?format=txt).

    python scripts/bulk_download.py urls all-luma-videos-2024-01-20.txt --dir ./downloads
"""
import argparse
import asyncio
import os
import sys
from dataclasses import dataclass

import aiofiles
import httpx

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.core.concurrency import gather_bounded
from app.core.retry import RetryPolicy, call_with_retry

DEFAULT_DIR = "./downloads"
DEFAULT_CONCURRENT = 5
DEFAULT_RETRIES = 3
DOWNLOAD_TIMEOUT = 300.0


@dataclass
class LinkEntry:
    filename: str
    url: str


def parse_link_list(text: str) -> list[LinkEntry]:
    """Entries are blank-line separated; the first two lines are filename and URL."""
    entries: list[LinkEntry] = []
    block: list[str] = []
    for line in text.splitlines() + [""]:
        if line.strip():
            block.append(line.strip())
            continue
        if len(block) >= 2 and block[1].startswith("http"):
            entries.append(LinkEntry(filename=os.path.basename(block[0]), url=block[1]))
        block = []
    return entries


async def download_one(
    entry: LinkEntry,
    target_dir: str,
    policy: RetryPolicy,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    path = os.path.join(target_dir, entry.filename)
    if os.path.exists(path):
        print(f"Skipping {entry.filename} (already exists)")
        return "skipped"

    async def once() -> None:
        try:
            async with httpx.AsyncClient(transport=transport, timeout=DOWNLOAD_TIMEOUT, follow_redirects=True) as client:
                async with client.stream("GET", entry.url) as resp:
                    resp.raise_for_status()
                    async with aiofiles.open(path, "wb") as f:
                        async for chunk in resp.aiter_bytes():
                            await f.write(chunk)
        except BaseException:
            # never leave a partial file behind; it would be skipped on the next run
            if os.path.exists(path):
                os.remove(path)
            raise

    await call_with_retry(once, policy, label=entry.filename)
    print(f"Downloaded {entry.filename}")
    return "downloaded"


async def download_all(
    entries: list[LinkEntry],
    target_dir: str,
    *,
    concurrent: int = DEFAULT_CONCURRENT,
    retries: int = DEFAULT_RETRIES,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, int]:
    os.makedirs(target_dir, exist_ok=True)
    policy = RetryPolicy(
        max_attempts=retries,
        base_delay=2.0,
        max_delay=10.0,
        retry_on_status=frozenset({429, 500, 502, 503, 504}),
    )
    results = await gather_bounded(
        entries, lambda e: download_one(e, target_dir, policy, transport), limit=concurrent
    )
    summary = {"downloaded": 0, "skipped": 0, "failed": 0}
    for entry, r in zip(entries, results):
        if isinstance(r, BaseException):
            print(f"Failed to download {entry.filename}: {r}")
            summary["failed"] += 1
        else:
            summary[r] += 1
    return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bulk downloader for Luma videos")
    sub = parser.add_subparsers(dest="method", required=True)
    urls = sub.add_parser("urls", help="Download from a link-list text export")
    urls.add_argument("file")
    urls.add_argument("--dir", default=DEFAULT_DIR, help="Download directory")
    urls.add_argument("--concurrent", type=int, default=DEFAULT_CONCURRENT, help="Max concurrent downloads")
    urls.add_argument("--retries", type=int, default=DEFAULT_RETRIES, help="Attempts per video")
    return parser


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if not os.path.exists(args.file):
        print("URLs file not found. Export it from the app first (bulk download, txt format).")
        return 1

    with open(args.file, "r", encoding="utf-8") as f:
        entries = parse_link_list(f.read())
    print(f"Found {len(entries)} videos to download")

    summary = await download_all(entries, args.dir, concurrent=args.concurrent, retries=args.retries)
    print(
        f"Download complete! {summary['downloaded']} downloaded, "
        f"{summary['skipped']} already present, {summary['failed']} failed"
    )
    print(f"Files saved to: {os.path.abspath(args.dir)}")
    return 1 if summary["failed"] else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
