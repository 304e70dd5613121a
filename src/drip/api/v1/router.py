from fastapi import APIRouter

from src.drip.api.v1 import automation

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(automation.router)
