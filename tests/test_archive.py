import io
import json
import threading
import zipfile

import pytest

from app.modules.archives.builder import ArchiveItem, build_archive, error_entry_name
from app.modules.catalog import service as catalog_service
from app.modules.catalog.service import CatalogService
from app.modules.generations import service as generation_service
from app.modules.generations.service import GenerationService


def _open(blob: bytes) -> zipfile.ZipFile:
    return zipfile.ZipFile(io.BytesIO(blob))


def test_builds_entries_and_manifest():
    items = [
        ArchiveItem(source_id="a", filename="luma_a.mp4", data=b"aaaa"),
        ArchiveItem(source_id="b", filename="luma_b.mp4", data=b"bbbbbb"),
    ]
    blob = build_archive(items, {"videos": [{"id": "a"}, {"id": "b"}]})
    zf = _open(blob)
    assert sorted(zf.namelist()) == ["luma_a.mp4", "luma_b.mp4", "metadata.json"]
    assert zf.read("luma_b.mp4") == b"bbbbbb"
    assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in zf.infolist())

    manifest = json.loads(zf.read("metadata.json"))
    assert manifest["itemCount"] == 2
    assert manifest["failedCount"] == 0
    assert manifest["totalSize"] == "10 Bytes"
    assert manifest["videos"] == [{"id": "a"}, {"id": "b"}]
    assert "downloadDate" in manifest


def test_failed_items_become_error_entries():
    items = [
        ArchiveItem(source_id="a", filename="luma_a.mp4", data=b"aaaa"),
        ArchiveItem(source_id="b", error="HTTP 500"),
    ]
    zf = _open(build_archive(items, manifest_name="download_info.json"))
    assert "ERROR_b.txt" in zf.namelist()
    assert zf.read("ERROR_b.txt").decode() == "Failed to download: HTTP 500"
    manifest = json.loads(zf.read("download_info.json"))
    assert manifest["itemCount"] == 1
    assert manifest["failedCount"] == 1


def test_error_entry_names_are_flat():
    assert error_entry_name("luma-videos/2024/01/a.mp4") == "ERROR_luma-videos_2024_01_a_mp4.txt"


def test_refuses_to_build_without_successes():
    with pytest.raises(ValueError):
        build_archive([ArchiveItem(source_id="a", error="gone")])


@pytest.fixture
def build_threads(monkeypatch):
    """Replace the archive builder in both services with one that records its thread."""
    threads: list[int] = []

    def recording_build(items, manifest_extra=None, **kwargs):
        threads.append(threading.get_ident())
        return build_archive(items, manifest_extra, **kwargs)

    monkeypatch.setattr(generation_service, "build_archive", recording_build)
    monkeypatch.setattr(catalog_service, "build_archive", recording_build)
    return threads


async def test_video_archive_is_built_off_the_event_loop(luma, build_threads):
    service = GenerationService(luma)
    blob = await service.archive(await service.resolve(["vid-000"]))
    assert "metadata.json" in _open(blob).namelist()
    assert build_threads and build_threads[0] != threading.get_ident()


async def test_catalog_archive_is_built_off_the_event_loop(firebase, bucket, build_threads):
    bucket.objects["f/a.mp4"] = (b"a", "2024-01-01T00:00:00Z")
    blob = await CatalogService(firebase).archive(["f/a.mp4"])
    assert _open(blob).read("a.mp4") == b"a"
    assert build_threads and build_threads[0] != threading.get_ident()
