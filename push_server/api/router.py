from fastapi import APIRouter

from push_server.api import notifications, push_tokens, system

api_router = APIRouter()
api_router.include_router(system.router)
api_router.include_router(notifications.router)
api_router.include_router(push_tokens.router)
