from fastapi import FastAPI
from app.core.config import settings
from app.modules.generations.router import router as generations_router

app = FastAPI(title="Debug App")

app.include_router(generations_router, prefix=f"{settings.API_PREFIX}/luma")
