from fastapi import APIRouter

from prophecy.api.v1.endpoints import prophecy, feedback

api_router = APIRouter()

api_router.include_router(prophecy.router, prefix="/prophecy", tags=["prophecy"])
api_router.include_router(feedback.router, prefix="/feedback", tags=["feedback"])
