# backend/services/mock_sources.py
"""
Deterministic offline providers used when USE_MOCK_DATA=1 and in tests.

Every source can be seeded with explicit fixtures; without fixtures a season
schedule is generated from a seeded random.Random so repeated runs agree.
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from models.game_models import (
    Article,
    BettingOdds,
    Game,
    GameOutcome,
    InjuredPlayer,
    InjuryStatus,
    Player,
    PlayerPosition,
    Team,
    TeamRoster,
    current_season,
    game_id_for,
    utcnow,
)
from models.teams import ALL_TEAMS
from services.data_sources import odds_key

logger = logging.getLogger(__name__)

COMPLETED_WEEKS = 12
SEASON_WEEKS = 18


def generate_season(season: int, completed_weeks: int = COMPLETED_WEEKS, seed: int = 0) -> List[Game]:
    """Round of random pairings per week; weeks up to completed_weeks have final scores"""
    rng = random.Random(f"{season}:{seed}")
    opener = datetime(season, 9, 7, 17, 0, tzinfo=timezone.utc)
    games = []
    for week in range(1, SEASON_WEEKS + 1):
        teams = list(ALL_TEAMS)
        rng.shuffle(teams)
        kickoff = opener + timedelta(days=7 * (week - 1))
        for home, away in zip(teams[0::2], teams[1::2]):
            outcome = None
            if week <= completed_weeks:
                outcome = GameOutcome(home_score=rng.choice(range(3, 42)), away_score=rng.choice(range(0, 38)))
            games.append(Game(
                home_team=home,
                away_team=away,
                scheduled_date=kickoff,
                week=week,
                season=season,
                outcome=outcome,
                id=game_id_for("mock", f"{season}:{week}:{away.abbreviation}@{home.abbreviation}"),
            ))
    return games


class MockGameSource:
    name = "mock-games"

    def __init__(self, games: Optional[Iterable[Game]] = None, live: Optional[Iterable[Game]] = None):
        self._games = list(games) if games is not None else None
        self._live = list(live) if live is not None else None

    def _season(self, season: int) -> List[Game]:
        if self._games is not None:
            return [g for g in self._games if g.season == season]
        return generate_season(season)

    async def fetch_games(self, team: Team, season: int) -> List[Game]:
        return [g for g in self._season(season) if g.involves(team)]

    async def fetch_live_scores(self) -> List[Game]:
        if self._live is not None:
            return list(self._live)
        season = current_season()
        return [g for g in self._season(season) if g.week == COMPLETED_WEEKS + 1]


class MockArticleSource:
    name = "mock-news"

    HEADLINES = (
        "{name} prepare for divisional matchup",
        "{nickname} coach praises defense after practice",
        "{nickname} starter returns to practice, expected healthy",
        "{name} notebook: depth chart updates",
    )

    def __init__(self, articles: Optional[Iterable[Article]] = None):
        self._articles = list(articles) if articles is not None else None

    async def fetch_articles(self, team: Team, before: datetime, after: datetime) -> List[Article]:
        if self._articles is not None:
            return [a for a in self._articles if team in a.teams]
        now = utcnow()
        return [
            Article(
                title=template.format(name=team.name, nickname=team.nickname),
                source="Mock Wire",
                published_at=now - timedelta(hours=12 * (i + 1)),
                teams=(team,),
                id=game_id_for("mock-article", f"{team.abbreviation}:{i}"),
            )
            for i, template in enumerate(self.HEADLINES)
        ]


class MockInjurySource:
    name = "mock-injuries"

    def __init__(self, injuries: Optional[Dict[str, List[InjuredPlayer]]] = None):
        self._injuries = injuries

    async def fetch_injuries(self, team: Team, season: int) -> List[InjuredPlayer]:
        if self._injuries is not None:
            return list(self._injuries.get(team.abbreviation, []))
        rng = random.Random(f"{team.abbreviation}:{season}")
        positions = [PlayerPosition.RB, PlayerPosition.WR, PlayerPosition.TE, PlayerPosition.DEF, PlayerPosition.OTHER]
        statuses = [InjuryStatus.OUT, InjuryStatus.DOUBTFUL, InjuryStatus.QUESTIONABLE, InjuryStatus.PROBABLE]
        return [
            InjuredPlayer(
                name=f"{team.nickname} Player {i + 1}",
                position=rng.choice(positions),
                status=rng.choice(statuses),
                description="Mock injury designation",
            )
            for i in range(rng.randint(0, 3))
        ]


class MockOddsSource:
    name = "mock-odds"

    def __init__(self, odds: Optional[Dict[str, BettingOdds]] = None, games: Optional[Iterable[Game]] = None):
        self._odds = odds
        self._games = list(games) if games is not None else None

    async def fetch_odds(self) -> Dict[str, BettingOdds]:
        if self._odds is not None:
            return dict(self._odds)
        games = self._games
        if games is None:
            games = await MockGameSource().fetch_live_scores()
        odds_map = {}
        for game in games:
            rng = random.Random(str(game.id))
            favorite = rng.choice((-110, -130, -155, -200, -250))
            odds_map[odds_key(game.away_team, game.home_team)] = BettingOdds(
                home_moneyline=favorite,
                away_moneyline=abs(favorite) - 20,
                spread=-round(abs(favorite) / 50.0, 1),
                total=rng.choice((41.5, 44.5, 47.5, 50.5)),
                bookmaker="Mock Book",
            )
        return odds_map


class MockRosterSource:
    name = "mock-roster"

    POSITIONS = ("QB", "RB", "WR", "WR", "TE", "LB", "CB", "S", "DE", "K")

    async def fetch_roster(self, team: Team, season: int) -> TeamRoster:
        players = tuple(
            Player(
                name=f"{team.nickname} {position} {i + 1}",
                position=position,
                jersey_number=str(i + 1),
            )
            for i, position in enumerate(self.POSITIONS)
        )
        return TeamRoster(team=team, season=season, players=players, source="Mock")
