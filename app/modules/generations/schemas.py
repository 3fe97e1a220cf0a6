from enum import Enum
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field


class GenerationState(str, Enum):
    queued = "queued"
    processing = "processing"
    completed = "completed"
    failed = "failed"


class GenerationAssets(BaseModel):
    model_config = ConfigDict(extra="allow")
    video: str | None = None
    image: str | None = None


class GenerationMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")
    duration: float | None = None
    resolution: str | None = None
    aspect_ratio: str | None = None
    model: str | None = None


class Generation(BaseModel):
    """One provider-side generation. Read-only; unknown provider fields are kept."""

    model_config = ConfigDict(extra="allow")

    id: str
    state: str
    generation_type: str = "video"
    created_at: str
    updated_at: str | None = None
    prompt: str | None = None
    assets: GenerationAssets | None = None
    metadata: GenerationMetadata | None = None

    @property
    def video_url(self) -> str | None:
        return self.assets.video if self.assets else None

    @property
    def is_usable(self) -> bool:
        return (
            self.generation_type == "video"
            and self.state == GenerationState.completed.value
            and bool(self.video_url)
        )


class GenerationPage(BaseModel):
    model_config = ConfigDict(extra="allow")
    generations: list[Generation] = []
    has_more: bool = False
    total_count: int | None = None


EnumerationStatus = Literal["complete", "truncated", "aborted"]


class EnumerationResult(BaseModel):
    generations: list[Generation]
    status: EnumerationStatus

    @property
    def truncated(self) -> bool:
        return self.status == "truncated"


class AssetMetadata(BaseModel):
    # size None: the probe failed, not a known zero
    size: int | None
    content_type: str = "video/mp4"

    @property
    def ok(self) -> bool:
        return self.size is not None


class DownloadedAsset(BaseModel):
    source_id: str
    data: bytes
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)


class DownloadFailure(BaseModel):
    source_id: str
    error: str


# ---- API payloads ----

class VideoIdsIn(BaseModel):
    videoIds: list[str] = Field(..., min_length=1)


class DownloadIn(VideoIdsIn):
    format: Literal["zip", "links"] = "zip"


class DownloadedVideoOut(BaseModel):
    id: str
    filename: str
    size: str


class DownloadReportOut(BaseModel):
    success: bool = True
    downloaded: int
    failed: int
    videos: list[DownloadedVideoOut]


class LinkEntryOut(BaseModel):
    id: str
    filename: str
    url: str
    size: int
    formattedSize: str
    created_at: str
    prompt: str | None = None


class LinksOut(BaseModel):
    success: bool = True
    total: int
    downloads: list[LinkEntryOut]


class AssetMetadataOut(BaseModel):
    size: int | None
    formattedSize: str
    contentType: str


class MetadataRefreshOut(BaseModel):
    success: bool = True
    metadata: dict[str, AssetMetadataOut]
