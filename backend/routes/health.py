# backend/routes/health.py
from fastapi import APIRouter, Depends
from typing import Dict, Any

from config import Settings
from routes.dependencies import get_pipeline
from services.pipeline import PredictionPipeline

router = APIRouter()

@router.get("/health")
async def health_check(pipeline: PredictionPipeline = Depends(get_pipeline)) -> Dict[str, Any]:
    return {
        "status": "healthy",
        "service": "StatShark API",
        "version": "1.0.0",
        "strategy": pipeline.predictor.name,
        "config": Settings.get_config(),
    }
