# backend/routes/teams.py
"""Routes for teams, schedules and news."""

from fastapi import APIRouter, Depends, Query
from typing import List, Dict, Any

from routes.dependencies import get_pipeline, http_error
from services.pipeline import PredictionPipeline

router = APIRouter()


@router.get("/teams")
async def get_teams(pipeline: PredictionPipeline = Depends(get_pipeline)) -> List[Dict[str, Any]]:
    """All 32 teams."""
    return [team.to_dict() for team in pipeline.teams()]


@router.get("/teams/{abbreviation}/roster")
async def get_team_roster(
    abbreviation: str,
    season: int = Query(..., description="Season year"),
    pipeline: PredictionPipeline = Depends(get_pipeline)
) -> Dict[str, Any]:
    """Roster for a team, with season statistics when the provider has them."""
    try:
        roster = await pipeline.team_roster(abbreviation, season)
        return roster.to_dict()
    except Exception as e:
        raise http_error(e, "fetching roster")


@router.get("/games")
async def get_team_games(
    team: str,
    season: int,
    pipeline: PredictionPipeline = Depends(get_pipeline)
) -> List[Dict[str, Any]]:
    """Season games involving the team."""
    try:
        games = await pipeline.team_games(team, season)
        return [game.to_dict() for game in games]
    except Exception as e:
        raise http_error(e, "fetching games")


@router.get("/upcoming")
async def get_upcoming_games(pipeline: PredictionPipeline = Depends(get_pipeline)) -> List[Dict[str, Any]]:
    """Games on the current scoreboard that have not finished."""
    try:
        games = await pipeline.upcoming_games()
        return [game.to_dict() for game in games]
    except Exception as e:
        raise http_error(e, "fetching upcoming games")


@router.get("/news")
async def get_team_news(
    team: str,
    limit: int = Query(10, ge=1, le=50),
    pipeline: PredictionPipeline = Depends(get_pipeline)
) -> List[Dict[str, Any]]:
    """Newest articles about the team from the last week."""
    try:
        articles = await pipeline.team_news(team, limit)
        return [article.to_dict() for article in articles]
    except Exception as e:
        raise http_error(e, "fetching news")
