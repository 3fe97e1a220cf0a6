from app.core.config import settings
from app.core.errors import ConfigurationError
from app.platform.adapters.provider_luma import LumaClient
from app.platform.adapters.storage_drive import DriveStorage
from app.platform.adapters.storage_firebase import FirebaseStorage

class ProviderRegistry:
    """Builds a fresh adapter per request; nothing is shared between requests."""

    def luma(self) -> LumaClient:
        return LumaClient(
            settings.LUMA_API_KEY,
            settings.LUMA_BASE_URL,
            download_timeout=settings.DOWNLOAD_TIMEOUT_SECONDS,
        )

    def drive(self) -> DriveStorage:
        return DriveStorage(
            settings.GOOGLE_DRIVE_CLIENT_ID,
            settings.GOOGLE_DRIVE_CLIENT_SECRET,
            settings.GOOGLE_DRIVE_REDIRECT_URI,
            settings.GOOGLE_DRIVE_REFRESH_TOKEN,
        )

    def firebase(self) -> FirebaseStorage:
        return FirebaseStorage(
            settings.FIREBASE_API_KEY,
            settings.FIREBASE_STORAGE_BUCKET,
            root_folder=settings.FIREBASE_ROOT_FOLDER,
        )

registry = ProviderRegistry()

def require_settings(*names: str):
    def dep() -> None:
        missing = settings.missing(*names)
        if missing:
            raise ConfigurationError(missing)
    return dep

def get_luma_client() -> LumaClient:
    return registry.luma()

def get_drive_storage() -> DriveStorage:
    return registry.drive()

def get_firebase_storage() -> FirebaseStorage:
    return registry.firebase()
