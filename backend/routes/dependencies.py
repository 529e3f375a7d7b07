# backend/routes/dependencies.py
import logging

from fastapi import HTTPException, Request

from models.errors import AllProvidersFailedError, PredictionError, UnknownTeamError
from services.pipeline import PredictionPipeline

logger = logging.getLogger(__name__)


def get_pipeline(request: Request) -> PredictionPipeline:
    """Pipeline built once in the app lifespan"""
    return request.app.state.pipeline


def http_error(e: Exception, action: str) -> HTTPException:
    """Map a pipeline exception onto the HTTP status the client should see"""
    if isinstance(e, UnknownTeamError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, PredictionError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, AllProvidersFailedError):
        logger.error(f"Error {action}: {e}")
        return HTTPException(status_code=502, detail=f"Upstream providers unavailable while {action}")
    logger.error(f"Error {action}: {e}")
    return HTTPException(status_code=500, detail=f"Error {action}")
