from pydantic import BaseModel, Field


class StoredFileOut(BaseModel):
    name: str
    fullPath: str
    downloadURL: str
    size: int
    formattedSize: str
    timeCreated: str | None = None
    contentType: str | None = None


class StoredFolderOut(BaseModel):
    name: str
    fullPath: str


class CatalogOut(BaseModel):
    success: bool = True
    files: list[StoredFileOut]
    folders: list[StoredFolderOut]
    currentFolder: str
    totalFiles: int


class CatalogDownloadIn(BaseModel):
    filePaths: list[str] = Field(..., min_length=1)
