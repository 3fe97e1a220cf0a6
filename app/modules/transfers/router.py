from fastapi import APIRouter, Depends
from app.core.config import settings, DRIVE_KEYS, FIREBASE_KEYS, LUMA_KEYS
from app.modules.generations.router import svc as generation_svc
from app.modules.generations.service import GenerationService
from app.modules.transfers.schemas import DriveUploadIn, DriveUploadOut, FirebaseUploadIn, FirebaseUploadOut, StorageQuota
from app.modules.transfers.service import TransferService
from app.platform.adapters.storage_drive import DriveStorage
from app.platform.adapters.storage_firebase import FirebaseStorage
from app.platform.provider_registry import get_drive_storage, get_firebase_storage, require_settings

router = APIRouter()

def svc(generations: GenerationService = Depends(generation_svc)) -> TransferService:
    return TransferService(generations)

@router.post("/drive/upload", response_model=DriveUploadOut, dependencies=[Depends(require_settings(*DRIVE_KEYS, *LUMA_KEYS))])
async def upload_to_drive(
    payload: DriveUploadIn,
    drive: DriveStorage = Depends(get_drive_storage),
    service: TransferService = Depends(svc),
):
    return await service.to_drive(drive, payload.videoIds, payload.folderName or settings.DRIVE_DEFAULT_FOLDER)

@router.get("/drive/quota", response_model=StorageQuota, dependencies=[Depends(require_settings(*DRIVE_KEYS))])
async def drive_quota(drive: DriveStorage = Depends(get_drive_storage)):
    return await drive.get_quota()

@router.post("/firebase/upload", response_model=FirebaseUploadOut, dependencies=[Depends(require_settings(*FIREBASE_KEYS, *LUMA_KEYS))])
async def upload_to_firebase(
    payload: FirebaseUploadIn,
    firebase: FirebaseStorage = Depends(get_firebase_storage),
    service: TransferService = Depends(svc),
):
    return await service.to_firebase(firebase, payload.videoIds, payload.folderName)
