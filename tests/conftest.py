"""Shared pytest fixtures: in-memory provider, Drive and bucket fakes served through httpx.MockTransport."""

from __future__ import annotations

import json
from urllib.parse import unquote

import httpx
import pytest
from fastapi.testclient import TestClient

from app.core.config import DRIVE_KEYS, FIREBASE_KEYS, LUMA_KEYS, settings
from app.main import app
from app.platform.adapters.provider_luma import LumaClient
from app.platform.adapters.storage_drive import DriveStorage
from app.platform.adapters.storage_firebase import FirebaseStorage
from app.platform.provider_registry import get_luma_client

BASE_URL = "https://api.test/v1"
CDN = "https://cdn.test"
BUCKET = "bucket.test"


def make_generation(
    gen_id: str,
    *,
    state: str = "completed",
    kind: str = "video",
    with_video: bool = True,
    created_at: str = "2024-01-15T10:30:00.000Z",
    prompt: str | None = "a cat surfing",
) -> dict:
    return {
        "id": gen_id,
        "state": state,
        "generation_type": kind,
        "created_at": created_at,
        "updated_at": created_at,
        "prompt": prompt,
        "assets": {"video": f"{CDN}/{gen_id}.mp4"} if with_video else {},
        "metadata": {"duration": 5, "resolution": "720p", "aspect_ratio": "16:9", "model": "ray-2"},
    }


class FakeProvider:
    """Paged generations endpoint plus a CDN serving one small payload per video."""

    def __init__(self, generations: list[dict] | None = None):
        self.generations = generations or []
        self.page_failures: dict[int, list[int]] = {}
        self.broken_assets: set[str] = set()
        self.page_calls: list[int] = []
        self.head_calls: list[str] = []

    def payload(self, gen_id: str) -> bytes:
        return f"video-bytes-{gen_id}".encode()

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = request.url
        if url.host == "api.test":
            if url.path.endswith("/generations"):
                offset = int(url.params["offset"])
                limit = int(url.params["limit"])
                self.page_calls.append(offset)
                queued = self.page_failures.get(offset)
                if queued:
                    return httpx.Response(queued.pop(0), json={"error": "upstream"})
                page = self.generations[offset:offset + limit]
                return httpx.Response(
                    200,
                    json={"generations": page, "has_more": offset + limit < len(self.generations)},
                )
            gen_id = url.path.rsplit("/", 1)[-1]
            for g in self.generations:
                if g["id"] == gen_id:
                    return httpx.Response(200, json=g)
            return httpx.Response(404, json={"detail": "not found"})

        if url.host == "cdn.test":
            gen_id = url.path.strip("/").removesuffix(".mp4")
            if gen_id in self.broken_assets:
                return httpx.Response(500)
            body = self.payload(gen_id)
            if request.method == "HEAD":
                self.head_calls.append(gen_id)
                return httpx.Response(200, headers={"content-length": str(len(body)), "content-type": "video/mp4"})
            return httpx.Response(200, content=body, headers={"content-type": "video/mp4"})

        return httpx.Response(404)


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeDrive:
    def __init__(self):
        self.folders: dict[str, str] = {}
        self.uploads: list[dict] = []
        self.fail_names: set[str] = set()
        self.token_calls = 0
        self.created_folders = 0
        self.quota: dict | None = {"usage": str(1024 ** 3), "limit": str(15 * 1024 ** 3)}

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = request.url
        if url.host == "oauth2.googleapis.com":
            self.token_calls += 1
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
        assert request.headers["authorization"] == "Bearer tok"

        if url.path == "/drive/v3/files" and request.method == "GET":
            q = url.params["q"]
            found = [{"id": fid, "name": name} for name, fid in self.folders.items() if f"name='{name}'" in q]
            return httpx.Response(200, json={"files": found})
        if url.path == "/drive/v3/files" and request.method == "POST":
            body = json.loads(request.content)
            self.created_folders += 1
            fid = f"folder-{self.created_folders}"
            self.folders[body["name"]] = fid
            return httpx.Response(200, json={"id": fid})
        if url.path == "/upload/drive/v3/files":
            raw = request.content
            boundary = request.headers["content-type"].split("boundary=")[1]
            parts = raw.split(f"--{boundary}".encode())
            meta = json.loads(parts[1].split(b"\r\n\r\n", 1)[1].strip())
            payload = parts[2].split(b"\r\n\r\n", 1)[1][:-2]
            if meta["name"] in self.fail_names:
                return httpx.Response(500)
            self.uploads.append({"meta": meta, "payload": payload})
            n = len(self.uploads)
            return httpx.Response(200, json={
                "id": f"file-{n}",
                "name": meta["name"],
                "webViewLink": f"https://drive.test/file-{n}",
                "size": str(len(payload)),
            })
        if url.path == "/drive/v3/about":
            if self.quota is None:
                return httpx.Response(503)
            return httpx.Response(200, json={"storageQuota": self.quota})
        return httpx.Response(404)


class FakeBucket:
    """Firebase Storage REST endpoints backed by a dict of path -> (bytes, timeCreated)."""

    def __init__(self):
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail_paths: set[str] = set()
        self.page_size = 1000
        self.list_status: int | None = None

    def _meta(self, path: str) -> dict:
        data, created = self.objects[path]
        return {
            "name": path,
            "bucket": BUCKET,
            "size": str(len(data)),
            "contentType": "video/mp4",
            "timeCreated": created,
            "downloadTokens": f"token-{path.rsplit('/', 1)[-1]}",
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = request.url
        prefix = f"/v0/b/{BUCKET}/o"
        if url.host == "firebasestorage.googleapis.com" and url.path.startswith(prefix):
            rest = url.raw_path.decode().split("?", 1)[0][len(prefix):]
            if request.method == "POST":
                path = url.params["name"]
                if path in self.fail_paths:
                    return httpx.Response(403)
                self.objects[path] = (request.content, f"2024-01-{len(self.objects) + 1:02d}T00:00:00Z")
                return httpx.Response(200, json=self._meta(path))
            if not rest:
                return self._list(url)
            path = unquote(rest[1:])
            if path not in self.objects:
                return httpx.Response(404)
            if url.params.get("alt") == "media":
                if path in self.fail_paths:
                    return httpx.Response(500)
                return httpx.Response(200, content=self.objects[path][0])
            return httpx.Response(200, json=self._meta(path))
        return httpx.Response(404)

    def _list(self, url: httpx.URL) -> httpx.Response:
        if self.list_status:
            return httpx.Response(self.list_status)
        prefix = url.params.get("prefix", "")
        start = int(url.params.get("pageToken", "0"))
        items, prefixes = [], set()
        for path in sorted(self.objects):
            if not path.startswith(prefix):
                continue
            rest = path[len(prefix):]
            if "/" in rest:
                prefixes.add(prefix + rest.split("/", 1)[0] + "/")
            else:
                items.append({"name": path, "bucket": BUCKET})
        page = items[start:start + self.page_size]
        body = {"items": page, "prefixes": sorted(prefixes) if start == 0 else []}
        if start + self.page_size < len(items):
            body["nextPageToken"] = str(start + self.page_size)
        return httpx.Response(200, json=body)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def provider() -> FakeProvider:
    gens = [make_generation(f"vid-{i:03d}") for i in range(5)]
    gens.insert(2, make_generation("queued-1", state="queued", with_video=False))
    gens.insert(4, make_generation("img-1", kind="image"))
    return FakeProvider(gens)


@pytest.fixture
def luma(provider: FakeProvider, sleeps: SleepRecorder) -> LumaClient:
    return LumaClient("test-key", BASE_URL, transport=httpx.MockTransport(provider.handler), sleep=sleeps)


@pytest.fixture
def fake_drive() -> FakeDrive:
    return FakeDrive()


@pytest.fixture
def drive(fake_drive: FakeDrive) -> DriveStorage:
    return DriveStorage(
        "cid", "secret", "https://app.test/cb", "refresh", transport=httpx.MockTransport(fake_drive.handler)
    )


@pytest.fixture
def bucket() -> FakeBucket:
    return FakeBucket()


@pytest.fixture
def firebase(bucket: FakeBucket) -> FirebaseStorage:
    return FirebaseStorage("api-key", BUCKET, transport=httpx.MockTransport(bucket.handler))


@pytest.fixture
def configured(monkeypatch):
    """Every secret set, so no request is rejected for missing configuration."""
    for name in (*LUMA_KEYS, *DRIVE_KEYS, *FIREBASE_KEYS):
        monkeypatch.setattr(settings, name, f"test-{name.lower()}")
    monkeypatch.setattr(settings, "FIREBASE_STORAGE_BUCKET", BUCKET)
    return settings


@pytest.fixture
def client(configured, luma):
    app.dependency_overrides[get_luma_client] = lambda: luma
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
