from fastapi import APIRouter
from aily.api.users import router as users_router
from aily.api.sessions import router as sessions_router
from aily.api.ai_students import router as ai_students_router
from aily.api.topics import router as topics_router

api_router = APIRouter(prefix="/api")

# Include all route modules
api_router.include_router(users_router, prefix="/users", tags=["users"])
api_router.include_router(sessions_router, prefix="/sessions", tags=["sessions"])
api_router.include_router(ai_students_router, prefix="/ai-students", tags=["ai-students"])
api_router.include_router(topics_router, prefix="/topics", tags=["topics"])
