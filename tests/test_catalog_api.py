import io
import json
import zipfile

import pytest

from app.main import app
from app.platform.provider_registry import get_firebase_storage


@pytest.fixture
def catalog_client(client, firebase, bucket):
    bucket.objects["luma-videos/old.mp4"] = (b"o" * 10, "2024-01-01T00:00:00Z")
    bucket.objects["luma-videos/new.mp4"] = (b"n" * 2048, "2024-03-01T00:00:00Z")
    bucket.objects["luma-videos/2024/03/nested.mp4"] = (b"x", "2024-03-02T00:00:00Z")
    app.dependency_overrides[get_firebase_storage] = lambda: firebase
    return client


def test_list_is_newest_first_with_folders(catalog_client):
    resp = catalog_client.get("/api/firebase/list", params={"folder": "luma-videos"})
    assert resp.status_code == 200
    body = resp.json()
    assert [f["name"] for f in body["files"]] == ["new.mp4", "old.mp4"]
    assert body["totalFiles"] == 2
    assert body["currentFolder"] == "luma-videos"
    assert body["folders"] == [{"name": "2024", "fullPath": "luma-videos/2024"}]

    newest = body["files"][0]
    assert newest["fullPath"] == "luma-videos/new.mp4"
    assert newest["size"] == 2048
    assert newest["formattedSize"] == "2 KB"
    assert "token=token-new.mp4" in newest["downloadURL"]


def test_download_zips_files_with_info(catalog_client, bucket):
    bucket.fail_paths.add("luma-videos/old.mp4")
    resp = catalog_client.post(
        "/api/firebase/download", json={"filePaths": ["luma-videos/new.mp4", "luma-videos/old.mp4"]}
    )
    assert resp.status_code == 200
    assert 'filename="firebase-videos-' in resp.headers["content-disposition"]
    assert int(resp.headers["content-length"]) == len(resp.content)

    zf = zipfile.ZipFile(io.BytesIO(resp.content))
    assert zf.read("new.mp4") == b"n" * 2048
    assert zf.read("ERROR_luma-videos_old_mp4.txt").startswith(b"Failed to download:")
    info = json.loads(zf.read("download_info.json"))
    assert info["requestedFiles"] == 2
    assert info["itemCount"] == 1
    assert info["totalSize"] == "2 KB"


def test_download_over_limit_is_400(catalog_client):
    paths = [f"luma-videos/{i}.mp4" for i in range(51)]
    resp = catalog_client.post("/api/firebase/download", json={"filePaths": paths})
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Too many files selected")


def test_download_all_missing_is_500(catalog_client):
    resp = catalog_client.post("/api/firebase/download", json={"filePaths": ["luma-videos/gone.mp4"]})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to download any files"}


def test_empty_selection_is_400(catalog_client):
    resp = catalog_client.post("/api/firebase/download", json={"filePaths": []})
    assert resp.status_code == 400


def test_listing_error_is_500(catalog_client, bucket):
    bucket.list_status = 503
    resp = catalog_client.get("/api/firebase/list", params={"folder": "luma-videos"})
    assert resp.status_code == 500
    assert resp.json()["error"].startswith("Failed to list files")
