# routers/health.py

from fastapi import APIRouter, Depends

from core.errors import StorageError
from core.logging_config import logger
from dependencies.store import get_signup_store
from models.signup import HealthResponse
from services.signup_store import SignupStore

router = APIRouter(
    prefix="/api",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /api/health
# Liveness + whether the signup store exists
# No auth required
# -----------------------------------------------------
@router.get("/health", response_model=HealthResponse, summary="App health check")
def health(store: SignupStore = Depends(get_signup_store)):
    """
    Lightweight health check for uptime monitors. Never fails.
    """
    try:
        signups_file = store.exists()
    except StorageError as e:
        logger.error(f"Health check could not reach the signup store: {e.detail}")
        signups_file = False

    return HealthResponse(status="OK", signups_file=signups_file)
