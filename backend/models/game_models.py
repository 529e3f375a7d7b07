# backend/models/game_models.py
"""
Core data models for the StatShark prediction pipeline
Teams, games, news, injuries, betting odds and the predictions built from them
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Any, Optional, Iterable, Generic, TypeVar
from datetime import datetime, timezone
from enum import Enum
import uuid
import logging

from .errors import InvalidProbabilityError, InvalidConfidenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_PROBABILITY = 0.01
MAX_PROBABILITY = 0.99

# Namespace for deterministic game ids derived from provider event ids
GAME_ID_NAMESPACE = uuid.UUID("6f1c9a52-4c1e-4b57-9a0e-2d6d1a3f7b10")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Regular season opens in September; January and February games belong to it
SEASON_ROLLOVER_MONTH = 3


def current_season(moment: Optional[datetime] = None) -> int:
    """Season label for a moment: the year the season kicked off"""
    moment = moment or utcnow()
    return moment.year if moment.month >= SEASON_ROLLOVER_MONTH else moment.year - 1


def game_id_for(provider: str, event_id: Any) -> uuid.UUID:
    """Stable game identity so repeated provider queries dedupe correctly"""
    return uuid.uuid5(GAME_ID_NAMESPACE, f"{provider}:{event_id}")


def clamp_probability(value: float) -> float:
    return max(MIN_PROBABILITY, min(MAX_PROBABILITY, value))

# =============================================================================
# ENUMS AND CONSTANTS
# =============================================================================

class Conference(Enum):
    AFC = "AFC"
    NFC = "NFC"

class Division(Enum):
    NORTH = "North"
    SOUTH = "South"
    EAST = "East"
    WEST = "West"

class Winner(Enum):
    HOME = "home"
    AWAY = "away"
    TIE = "tie"

class InjuryStatus(Enum):
    """Injury designations from the weekly report"""
    OUT = "Out"
    DOUBTFUL = "Doubtful"
    QUESTIONABLE = "Questionable"
    PROBABLE = "Probable"
    HEALTHY = "Healthy"

    @property
    def multiplier(self) -> float:
        return STATUS_MULTIPLIERS[self]

    @classmethod
    def parse(cls, raw: Optional[str]) -> "InjuryStatus":
        value = (raw or "").strip().lower()
        for status in cls:
            if status.value.lower() == value:
                return status
        # "Injured Reserve" and friends keep the player off the field
        if value in ("ir", "injured reserve", "pup", "suspended"):
            return cls.OUT
        return cls.HEALTHY

class PlayerPosition(Enum):
    """Position groups used for injury impact weighting"""
    QB = "QB"
    RB = "RB"
    WR = "WR"
    TE = "TE"
    DEF = "DEF"
    OTHER = "Other"

    @property
    def impact_weight(self) -> float:
        return POSITION_WEIGHTS[self]

    @classmethod
    def parse(cls, abbreviation: Optional[str]) -> "PlayerPosition":
        code = (abbreviation or "").strip().upper()
        if code == "QB":
            return cls.QB
        if code in ("RB", "FB"):
            return cls.RB
        if code == "WR":
            return cls.WR
        if code == "TE":
            return cls.TE
        if code in ("DE", "DT", "LB", "CB", "S", "DB", "OLB", "ILB", "MLB", "FS", "SS", "NT"):
            return cls.DEF
        return cls.OTHER

POSITION_WEIGHTS: Dict[PlayerPosition, float] = {
    PlayerPosition.QB: 1.0,
    PlayerPosition.RB: 0.6,
    PlayerPosition.WR: 0.5,
    PlayerPosition.DEF: 0.4,
    PlayerPosition.TE: 0.3,
    PlayerPosition.OTHER: 0.1,
}

STATUS_MULTIPLIERS: Dict[InjuryStatus, float] = {
    InjuryStatus.OUT: 1.0,
    InjuryStatus.DOUBTFUL: 0.75,
    InjuryStatus.QUESTIONABLE: 0.4,
    InjuryStatus.PROBABLE: 0.15,
    InjuryStatus.HEALTHY: 0.0,
}

# Top three injuries count with diminishing weight
INJURY_AGGREGATION_WEIGHTS = (1.0, 0.5, 0.25)

# =============================================================================
# TEAMS AND GAMES
# =============================================================================

@dataclass(frozen=True)
class Team:
    """An NFL franchise, keyed by abbreviation"""
    abbreviation: str
    name: str
    conference: Conference
    division: Division

    @property
    def nickname(self) -> str:
        return self.name.split(" ")[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'abbreviation': self.abbreviation,
            'name': self.name,
            'conference': self.conference.value,
            'division': self.division.value,
        }


@dataclass(frozen=True)
class GameOutcome:
    """Final score of a completed game"""
    home_score: int
    away_score: int

    @property
    def winner(self) -> Winner:
        if self.home_score > self.away_score:
            return Winner.HOME
        if self.away_score > self.home_score:
            return Winner.AWAY
        return Winner.TIE

    @property
    def point_differential(self) -> int:
        return self.home_score - self.away_score

    def to_dict(self) -> Dict[str, Any]:
        return {
            'home_score': self.home_score,
            'away_score': self.away_score,
            'winner': self.winner.value,
        }


@dataclass(frozen=True, eq=False)
class Game:
    """A scheduled or completed game. Identity is the id, not the matchup."""
    home_team: Team
    away_team: Team
    scheduled_date: datetime
    week: int
    season: int
    outcome: Optional[GameOutcome] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Game):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def is_completed(self) -> bool:
        return self.outcome is not None

    def involves(self, team: Team) -> bool:
        return team.abbreviation in (self.home_team.abbreviation, self.away_team.abbreviation)

    def is_home(self, team: Team) -> bool:
        return self.home_team.abbreviation == team.abbreviation

    def opponent_of(self, team: Team) -> Team:
        return self.away_team if self.is_home(team) else self.home_team

    def result_for(self, team: Team) -> Optional[str]:
        """'W', 'L' or 'T' from the given team's perspective"""
        if self.outcome is None or not self.involves(team):
            return None
        winner = self.outcome.winner
        if winner == Winner.TIE:
            return "T"
        won = (winner == Winner.HOME) == self.is_home(team)
        return "W" if won else "L"

    def points_for(self, team: Team) -> Optional[int]:
        if self.outcome is None or not self.involves(team):
            return None
        return self.outcome.home_score if self.is_home(team) else self.outcome.away_score

    def margin_for(self, team: Team) -> Optional[int]:
        """Point differential from the given team's perspective"""
        if self.outcome is None or not self.involves(team):
            return None
        margin = self.outcome.point_differential
        return margin if self.is_home(team) else -margin

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': str(self.id),
            'home_team': self.home_team.to_dict(),
            'away_team': self.away_team.to_dict(),
            'scheduled_date': self.scheduled_date.isoformat(),
            'week': self.week,
            'season': self.season,
            'outcome': self.outcome.to_dict() if self.outcome else None,
        }


def merge_games(*game_lists: Iterable[Game]) -> List[Game]:
    """Merge game lists keeping exactly one copy per game id (first seen wins)"""
    seen = set()
    merged: List[Game] = []
    for games in game_lists:
        for game in games:
            if game.id in seen:
                continue
            seen.add(game.id)
            merged.append(game)
    return merged


class GameStore:
    """In-memory historical game collection, deduplicated by game identity"""

    def __init__(self, games: Optional[Iterable[Game]] = None):
        self._games: Dict[uuid.UUID, Game] = {}
        for game in games or []:
            self.add(game)

    def add(self, game: Game) -> None:
        self._games[game.id] = game

    def __len__(self) -> int:
        return len(self._games)

    def games_for(self, team: Team, season: int) -> List[Game]:
        games = [g for g in self._games.values() if g.season == season and g.involves(team)]
        return sorted(games, key=lambda g: g.scheduled_date)

    def completed_before(self, team: Team, season: int, before: datetime) -> List[Game]:
        """Completed games for the team that kicked off before the given time"""
        return [
            g for g in self.games_for(team, season)
            if g.is_completed and g.scheduled_date < before
        ]

    def head_to_head(self, team: Team, opponent: Team, seasons: Iterable[int], before: datetime) -> List[Game]:
        """Completed meetings between two teams across the given seasons"""
        games = []
        for season in seasons:
            games += [g for g in self.completed_before(team, season, before) if g.involves(opponent)]
        return sorted(games, key=lambda g: g.scheduled_date)

# =============================================================================
# NEWS
# =============================================================================

@dataclass(frozen=True)
class Article:
    """News article or social post, read-only once fetched"""
    title: str
    source: str
    published_at: datetime
    teams: tuple = ()
    content: str = ""
    url: Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': str(self.id),
            'title': self.title,
            'source': self.source,
            'published_at': self.published_at.isoformat(),
            'teams': [team.abbreviation for team in self.teams],
            'content': self.content,
            'url': self.url,
        }

# =============================================================================
# INJURIES
# =============================================================================

@dataclass(frozen=True)
class InjuredPlayer:
    name: str
    position: PlayerPosition
    status: InjuryStatus
    description: Optional[str] = None

    @property
    def impact(self) -> float:
        """Impact on team performance (0.0 to 1.0)"""
        return self.position.impact_weight * self.status.multiplier

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'position': self.position.value,
            'status': self.status.value,
            'description': self.description,
            'impact': round(self.impact, 3),
        }


@dataclass(frozen=True)
class TeamInjuryReport:
    team: Team
    injuries: tuple = ()
    fetched_at: datetime = field(default_factory=utcnow)

    @property
    def total_impact(self) -> float:
        """Diminishing-returns aggregate of the three worst injuries, capped at 1.0"""
        impacts = sorted((injury.impact for injury in self.injuries), reverse=True)
        total = sum(impact * weight for impact, weight in zip(impacts, INJURY_AGGREGATION_WEIGHTS))
        return min(1.0, total)

    @property
    def key_injuries(self) -> List[InjuredPlayer]:
        return [
            injury for injury in self.injuries
            if injury.impact > 0.3 and injury.status in (InjuryStatus.OUT, InjuryStatus.DOUBTFUL)
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'team': self.team.abbreviation,
            'injuries': [injury.to_dict() for injury in self.injuries],
            'total_impact': round(self.total_impact, 3),
            'fetched_at': self.fetched_at.isoformat(),
        }

# =============================================================================
# ROSTERS
# =============================================================================

@dataclass(frozen=True)
class Player:
    name: str
    position: str
    jersey_number: Optional[str] = None
    photo_url: Optional[str] = None
    stats: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'position': self.position,
            'jersey_number': self.jersey_number,
            'photo_url': self.photo_url,
            'stats': dict(self.stats),
        }


@dataclass(frozen=True)
class TeamRoster:
    team: Team
    season: int
    players: tuple = ()
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'team': self.team.to_dict(),
            'season': self.season,
            'source': self.source,
            'players': [player.to_dict() for player in self.players],
        }

# =============================================================================
# BETTING ODDS
# =============================================================================

def odds_to_probability(moneyline: int) -> float:
    """Convert American odds to implied probability.

    -150 means bet 150 to win 100; +200 means bet 100 to win 200.
    """
    if moneyline < 0:
        stake = float(-moneyline)
        return stake / (stake + 100.0)
    return 100.0 / (float(moneyline) + 100.0)


@dataclass(frozen=True)
class BettingOdds:
    home_moneyline: Optional[int]
    away_moneyline: Optional[int]
    spread: Optional[float]
    total: Optional[float]
    bookmaker: str
    last_update: datetime = field(default_factory=utcnow)
    is_authoritative: bool = True

    @property
    def home_implied_probability(self) -> Optional[float]:
        if self.home_moneyline is None:
            return None
        return odds_to_probability(self.home_moneyline)

    @property
    def away_implied_probability(self) -> Optional[float]:
        if self.away_moneyline is None:
            return None
        return odds_to_probability(self.away_moneyline)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'home_moneyline': self.home_moneyline,
            'away_moneyline': self.away_moneyline,
            'spread': self.spread,
            'total': self.total,
            'home_implied_probability': self.home_implied_probability,
            'away_implied_probability': self.away_implied_probability,
            'bookmaker': self.bookmaker,
            'last_update': self.last_update.isoformat(),
            'is_authoritative': self.is_authoritative,
        }

# =============================================================================
# SUB-FETCH RESULTS
# =============================================================================

@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """A sub-fetch outcome: either a value or the reason it is missing"""
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def is_present(self) -> bool:
        return self.value is not None

    @classmethod
    def present(cls, value: T) -> "FetchResult[T]":
        return cls(value=value)

    @classmethod
    def absent(cls, reason: str) -> "FetchResult[T]":
        return cls(error=reason)

    def value_or(self, default: T) -> T:
        return self.value if self.value is not None else default

# =============================================================================
# PREDICTIONS
# =============================================================================

@dataclass(frozen=True)
class PredictionFactor:
    """One attributable input to a prediction; impact is signed toward the home team"""
    name: str
    impact: float
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'impact': round(self.impact, 4),
            'description': self.description,
        }


@dataclass(frozen=True)
class Prediction:
    game: Game
    home_win_probability: float
    confidence: float
    reasoning: str
    odds: Optional[BettingOdds] = None
    factors: tuple = ()
    strategy: str = ""
    predicted_home_score: Optional[int] = None
    predicted_away_score: Optional[int] = None
    timestamp: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if not (MIN_PROBABILITY <= self.home_win_probability <= MAX_PROBABILITY):
            raise InvalidProbabilityError(self.home_win_probability)
        if not (0.0 <= self.confidence <= 1.0):
            raise InvalidConfidenceError(self.confidence)

    @property
    def away_win_probability(self) -> float:
        return 1.0 - self.home_win_probability

    @property
    def predicted_winner(self) -> Winner:
        if self.home_win_probability > 0.5:
            return Winner.HOME
        if self.home_win_probability < 0.5:
            return Winner.AWAY
        return Winner.TIE

    def with_odds(self, odds: Optional[BettingOdds]) -> "Prediction":
        return replace(self, odds=odds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'game': self.game.to_dict(),
            'home_win_probability': round(self.home_win_probability, 4),
            'away_win_probability': round(self.away_win_probability, 4),
            'predicted_winner': self.predicted_winner.value,
            'confidence': round(self.confidence, 4),
            'reasoning': self.reasoning,
            'odds': self.odds.to_dict() if self.odds else None,
            'factors': [factor.to_dict() for factor in self.factors],
            'strategy': self.strategy,
            'predicted_home_score': self.predicted_home_score,
            'predicted_away_score': self.predicted_away_score,
            'timestamp': self.timestamp.isoformat(),
        }
