from fastapi import APIRouter
from olt_manager.api.api_v1.endpoints import olts, discovery, websocket

api_router = APIRouter()
api_router.include_router(olts.router, prefix="/olts", tags=["olts"])
api_router.include_router(discovery.router, prefix="/discovery", tags=["discovery"])
api_router.include_router(websocket.router, tags=["websocket"])
