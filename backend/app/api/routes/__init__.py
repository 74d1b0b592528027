from fastapi import APIRouter

from app.api.routes import extension, health

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(extension.router, prefix="/extension", tags=["extension"])
