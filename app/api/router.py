from fastapi import APIRouter
from app.modules.generations.router import router as generations_router
from app.modules.transfers.router import router as transfers_router
from app.modules.catalog.router import router as catalog_router

api_router = APIRouter()
api_router.include_router(generations_router, prefix="/luma", tags=["luma"])
api_router.include_router(transfers_router, tags=["transfers"])
# transfers_router carries both /drive/* and /firebase/upload
api_router.include_router(catalog_router, prefix="/firebase", tags=["firebase"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
