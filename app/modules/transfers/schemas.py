from pydantic import BaseModel, Field


class DriveUploadResult(BaseModel):
    id: str
    name: str
    webViewLink: str | None = None
    # Drive reports sizes as decimal strings
    size: str = "0"
    path: str | None = None
    originalId: str | None = None


class FirebaseUploadResult(BaseModel):
    id: str
    name: str
    downloadURL: str
    size: int
    path: str
    originalId: str | None = None


class StorageQuota(BaseModel):
    used: str
    limit: str
    available: str


class DriveUploadIn(BaseModel):
    videoIds: list[str] = Field(..., min_length=1)
    folderName: str | None = None


class FirebaseUploadIn(BaseModel):
    videoIds: list[str] = Field(..., min_length=1)
    folderName: str | None = None


class DriveUploadOut(BaseModel):
    success: bool = True
    folderId: str
    folderName: str
    uploaded: int
    failed: int
    totalSize: int
    formattedTotalSize: str
    storageQuota: StorageQuota
    results: list[DriveUploadResult]


class FirebaseUploadOut(BaseModel):
    success: bool = True
    folderPath: str
    uploaded: int
    failed: int
    totalSize: str
    results: list[FirebaseUploadResult]
