from fastapi import APIRouter

from .endpoints import cache, health, members, pcs

api_router = APIRouter()
api_router.include_router(members.router)
api_router.include_router(pcs.router)
api_router.include_router(cache.router)

health_router = health.router
