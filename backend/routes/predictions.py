# backend/routes/predictions.py
from fastapi import APIRouter, HTTPException, Depends
from typing import Dict, Any
from datetime import datetime, timezone
import logging

from routes.dependencies import get_pipeline, http_error
from services.pipeline import PredictionPipeline

router = APIRouter()
logger = logging.getLogger(__name__)


def _parse_date(raw: Any) -> datetime:
    parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@router.post("/predictions")
async def create_prediction(
    request: Dict[str, Any],
    pipeline: PredictionPipeline = Depends(get_pipeline)
) -> Dict[str, Any]:
    """
    Predict a matchup

    Body:
        home_team, away_team: team abbreviations (case-insensitive)
        season: season year
        week: optional, defaults to 13
        scheduled_date: optional ISO 8601 kickoff, defaults to a week from now

    Returns the prediction with win probabilities, confidence, reasoning,
    attributed factors and betting odds.
    """
    home = request.get("home_team")
    away = request.get("away_team")
    season = request.get("season")
    if not home or not away or season is None:
        raise HTTPException(status_code=400, detail="home_team, away_team and season required")

    try:
        season = int(season)
        week = int(request["week"]) if request.get("week") is not None else None
        scheduled_date = _parse_date(request["scheduled_date"]) if request.get("scheduled_date") else None
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="season, week and scheduled_date must be valid")

    try:
        prediction = await pipeline.predict(home, away, season, week=week, scheduled_date=scheduled_date)
        return prediction.to_dict()
    except Exception as e:
        raise http_error(e, "generating prediction")
