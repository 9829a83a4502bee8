from fastapi import APIRouter

from docstore.api.v1.routers import documents, health, locations, media, storage_configs

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(documents.router)
api_router.include_router(locations.router)
api_router.include_router(storage_configs.router)
api_router.include_router(media.router)

__all__ = ["api_router"]
