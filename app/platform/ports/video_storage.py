from typing import Callable, Protocol, TypeVar, runtime_checkable
from pydantic import BaseModel
from app.modules.generations.schemas import DownloadedAsset

ResultT = TypeVar("ResultT", bound=BaseModel, covariant=True)

# (current item, total items, current item percent)
BatchProgress = Callable[[int, int, int], None]
ItemProgress = Callable[[int], None]

@runtime_checkable
class VideoStoragePort(Protocol[ResultT]):
    async def upload_one(self, data: bytes, filename: str, destination: str | None = None, on_progress: ItemProgress | None = None) -> ResultT: ...
    async def upload_batch(self, items: list[DownloadedAsset], destination: str | None = None, on_progress: BatchProgress | None = None) -> list[ResultT]: ...
