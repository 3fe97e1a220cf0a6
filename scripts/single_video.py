"""
Inspect one generation, probe its size, and optionally download it.

    python scripts/single_video.py <generation-id> [--dir .] [--yes]
"""
import argparse
import asyncio
import os
import sys
from typing import Callable

import aiofiles

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.core.config import settings
from app.core.errors import AppError
from app.core.formatting import format_byte_size
from app.platform.adapters.provider_luma import LumaClient


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch a single Luma video")
    parser.add_argument("generation_id")
    parser.add_argument("--dir", default=".", help="Where to save the video")
    parser.add_argument("--yes", action="store_true", help="Download without asking")
    return parser


async def main(
    argv: list[str] | None = None,
    *,
    luma: LumaClient | None = None,
    confirm: Callable[[str], str] = input,
) -> int:
    args = build_parser().parse_args(argv)
    if luma is None:
        if not settings.LUMA_API_KEY:
            print("LUMA_API_KEY not found in environment variables")
            return 1
        luma = LumaClient(
            settings.LUMA_API_KEY, settings.LUMA_BASE_URL, download_timeout=settings.DOWNLOAD_TIMEOUT_SECONDS
        )

    print(f"Fetching video: {args.generation_id}")
    try:
        video = await luma.get_generation(args.generation_id)
    except AppError as e:
        print(f"Error fetching video: {e.message}")
        return 1

    print("\nVideo Details:")
    print(f"ID: {video.id}")
    print(f"Status: {video.state}")
    print(f"Type: {video.generation_type}")
    print(f"Created: {video.created_at}")
    print(f"Prompt: {video.prompt or 'N/A'}")

    if not video.video_url:
        print("No video URL available")
        return 1
    print(f"Video URL: {video.video_url}")

    meta = await luma.head_asset(video.video_url)
    print(f"File Size: {format_byte_size(meta.size)}")

    if not args.yes:
        answer = await asyncio.to_thread(confirm, "\nDownload this video? (y/n): ")
        if answer.strip().lower() not in ("y", "yes"):
            return 0

    filename = f"{video.id}.mp4"
    print(f"Downloading {filename}...")
    try:
        data = await luma.download_asset(video.video_url)
    except AppError as e:
        print(f"Download failed: {e.message}")
        return 1

    os.makedirs(args.dir, exist_ok=True)
    path = os.path.join(args.dir, filename)
    async with aiofiles.open(path, "wb") as f:
        await f.write(data)
    print(f"Downloaded: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
