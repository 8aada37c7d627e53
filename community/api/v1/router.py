from fastapi import APIRouter

from community.api.v1.comments import router as comments_router
from community.api.v1.engagement import router as engagement_router
from community.api.v1.notifications import router as notifications_router
from community.api.v1.profile import router as profile_router
from community.api.v1.realtime import router as realtime_router

api_router = APIRouter()
api_router.include_router(profile_router)
api_router.include_router(engagement_router)
api_router.include_router(comments_router)
api_router.include_router(notifications_router)
api_router.include_router(realtime_router)
