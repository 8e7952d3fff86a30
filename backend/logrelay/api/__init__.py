from fastapi import APIRouter

from logrelay.api.archives import router as archives_router
from logrelay.api.logs import router as logs_router

api_router = APIRouter()
api_router.include_router(logs_router)
api_router.include_router(archives_router)
