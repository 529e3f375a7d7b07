# backend/routes/cache.py
from fastapi import APIRouter, Depends
from typing import Dict, Any
import logging

from routes.dependencies import get_pipeline
from services.pipeline import PredictionPipeline

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/cache/stats")
async def cache_stats(pipeline: PredictionPipeline = Depends(get_pipeline)) -> Dict[str, Any]:
    return pipeline.cache_stats()


@router.post("/cache/clear")
async def cache_clear(pipeline: PredictionPipeline = Depends(get_pipeline)) -> Dict[str, Any]:
    pipeline.cache_clear()
    return {"status": "cleared"}


@router.post("/cache/cleanup")
async def cache_cleanup(pipeline: PredictionPipeline = Depends(get_pipeline)) -> Dict[str, Any]:
    removed = pipeline.cache_cleanup()
    return {"status": "ok", "removed": removed}
