"""
Health check endpoint.
"""
from fastapi import APIRouter

router = APIRouter()


@router.get("")
async def health_check():
    """Liveness probe. Does not call any provider."""
    return {"status": "ok", "message": "Server is running"}
