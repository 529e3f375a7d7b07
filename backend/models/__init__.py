# backend/models/__init__.py
"""
Models package for StatShark
Domain types, the team catalog and the pipeline's exception hierarchy
"""
from .game_models import (
    Article,
    BettingOdds,
    Conference,
    Division,
    FetchResult,
    Game,
    GameOutcome,
    GameStore,
    InjuredPlayer,
    InjuryStatus,
    Player,
    PlayerPosition,
    Prediction,
    PredictionFactor,
    Team,
    TeamInjuryReport,
    TeamRoster,
    Winner,
    merge_games,
    odds_to_probability,
)
from .errors import (
    AllProvidersFailedError,
    InsufficientDataError,
    PipelineError,
    PredictionError,
    ProviderError,
    UnknownTeamError,
)

__all__ = [
    "Article",
    "BettingOdds",
    "Conference",
    "Division",
    "FetchResult",
    "Game",
    "GameOutcome",
    "GameStore",
    "InjuredPlayer",
    "InjuryStatus",
    "Player",
    "PlayerPosition",
    "Prediction",
    "PredictionFactor",
    "Team",
    "TeamInjuryReport",
    "TeamRoster",
    "Winner",
    "merge_games",
    "odds_to_probability",
    "AllProvidersFailedError",
    "InsufficientDataError",
    "PipelineError",
    "PredictionError",
    "ProviderError",
    "UnknownTeamError",
]
