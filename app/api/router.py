from fastapi import APIRouter
from app.api.endpoints import query, lookups

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(query.router)
api_router.include_router(lookups.router)
