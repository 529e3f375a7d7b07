# backend/services/pipeline.py
"""
Prediction pipeline facade: the operations the HTTP layer exposes.

build_pipeline() wires providers, caches and the configured strategy from
Settings once per process; everything downstream receives its dependencies
explicitly.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from models.errors import AllProvidersFailedError, UnknownTeamError
from models.game_models import Article, FetchResult, Game, Prediction, Team, TeamRoster, game_id_for, merge_games, utcnow
from models.teams import ALL_TEAMS, team_by_abbreviation
from services.data_loader import DataLoader
from services.data_sources import (
    APISportsGameSource,
    APISportsRosterSource,
    ESPNArticleSource,
    ESPNGameSource,
    ESPNInjurySource,
    ESPNOddsSource,
    ESPNRosterSource,
    NewsAPIArticleSource,
    OddsAPISource,
)
from services.injury_tracker import InjuryTracker
from services.mock_sources import (
    MockArticleSource,
    MockGameSource,
    MockInjurySource,
    MockOddsSource,
    MockRosterSource,
)
from services.news_analyzer import NewsAnalyzer, window_end
from services.odds_reconciler import OddsReconciler
from services.predictors import HEAD_TO_HEAD_SEASONS, GamePredictor, PredictionContext, build_predictor
from utils.api_clients import APISportsClient, ESPNClient, NewsAPIClient, OddsAPIClient
from utils.cache import SourceCache

logger = logging.getLogger(__name__)

DEFAULT_WEEK = 13
DEFAULT_LEAD_DAYS = 7
DEFAULT_NEWS_LIMIT = 10


def resolve_team(abbreviation: str) -> Team:
    team = team_by_abbreviation(abbreviation)
    if team is None:
        raise UnknownTeamError(abbreviation)
    return team


class PredictionPipeline:
    def __init__(
        self,
        loader: DataLoader,
        injuries: InjuryTracker,
        news: NewsAnalyzer,
        odds: OddsReconciler,
        predictor: GamePredictor,
    ):
        self.loader = loader
        self.injuries = injuries
        self.news = news
        self.odds = odds
        self.predictor = predictor
        for cache in (injuries.cache, odds.cache):
            loader.register_cache(cache)
        logger.info(f"Prediction pipeline ready with {predictor.name} strategy")

    async def _season_history(self, team: Team, season: int) -> FetchResult[List[Game]]:
        try:
            return FetchResult.present(await self.loader.load_games(team, season))
        except AllProvidersFailedError as e:
            logger.warning(f"Season {season} history unavailable for {team.abbreviation}: {e}")
            return FetchResult.absent(str(e))

    async def predict(self, home_abbr: str, away_abbr: str, season: int,
                      week: Optional[int] = None, scheduled_date: Optional[datetime] = None) -> Prediction:
        """Predict a matchup from season history, injuries, news and odds.

        A team whose season cannot be loaded counts as having no history; the
        strategy notes the gap instead of the whole prediction failing.
        """
        home = resolve_team(home_abbr)
        away = resolve_team(away_abbr)
        week = week if week is not None else DEFAULT_WEEK
        scheduled_date = scheduled_date or utcnow() + timedelta(days=DEFAULT_LEAD_DAYS)
        game = Game(
            home_team=home,
            away_team=away,
            scheduled_date=scheduled_date,
            week=week,
            season=season,
            id=game_id_for("prediction", f"{season}:{week}:{away.abbreviation}@{home.abbreviation}"),
        )
        logger.info(f"Predicting {away.abbreviation} @ {home.abbreviation}, {season} week {week}")

        # News window ends at the kickoff for games already played
        news_before = scheduled_date if scheduled_date < utcnow() else None
        odds_task = asyncio.ensure_future(self.odds.odds_for(game))
        try:
            home_history, away_history, *earlier = await asyncio.gather(
                self._season_history(home, season),
                self._season_history(away, season),
                # Earlier home seasons only feed head-to-head history
                *(self._season_history(home, s) for s in range(season - HEAD_TO_HEAD_SEASONS + 1, season)),
            )
            home_injuries, away_injuries, home_news, away_news = await asyncio.gather(
                self.injuries.lookup(home, season),
                self.injuries.lookup(away, season),
                self.news.lookup(home, before=news_before),
                self.news.lookup(away, before=news_before),
            )
            context = PredictionContext(
                games=merge_games(
                    home_history.value_or([]),
                    away_history.value_or([]),
                    *(history.value_or([]) for history in earlier),
                ),
                home_injuries=home_injuries,
                away_injuries=away_injuries,
                home_news=home_news,
                away_news=away_news,
                history_gaps=tuple(
                    team for team, history in ((home, home_history), (away, away_history))
                    if not history.is_present
                ),
            )
            prediction = await self.predictor.predict(game, context)
        except BaseException:
            odds_task.cancel()
            raise
        odds = await odds_task
        return prediction.with_odds(odds)

    async def team_games(self, abbreviation: str, season: int) -> List[Game]:
        return await self.loader.load_games(resolve_team(abbreviation), season)

    async def team_news(self, abbreviation: str, limit: int = DEFAULT_NEWS_LIMIT) -> List[Article]:
        """Newest articles from the last week"""
        team = resolve_team(abbreviation)
        before = window_end()
        articles = await self.loader.load_articles(team, before, before - self.news.window)
        return articles[:limit]

    async def upcoming_games(self) -> List[Game]:
        now = utcnow()
        games = await self.loader.load_live_scores()
        upcoming = [g for g in games if g.scheduled_date > now or g.outcome is None]
        return sorted(upcoming, key=lambda g: g.scheduled_date)

    def teams(self) -> List[Team]:
        return list(ALL_TEAMS)

    async def team_roster(self, abbreviation: str, season: int) -> TeamRoster:
        return await self.loader.load_roster(resolve_team(abbreviation), season)

    # =========================================================================
    # CACHE ADMINISTRATION
    # =========================================================================

    def cache_stats(self) -> Dict[str, Dict[str, Any]]:
        return self.loader.cache_stats()

    def cache_clear(self) -> None:
        self.loader.clear_cache()

    def cache_cleanup(self) -> int:
        return self.loader.cleanup_cache()


def build_pipeline(settings, llm_client=None) -> PredictionPipeline:
    """Wire providers, caches and strategy from settings"""
    games_cache = SourceCache("games", settings.GAMES_CACHE_TTL)
    articles_cache = SourceCache("articles", settings.ARTICLES_CACHE_TTL)
    roster_cache = SourceCache("roster", settings.ROSTER_CACHE_TTL)
    injury_cache = SourceCache("injuries", settings.INJURY_CACHE_TTL)
    odds_cache = SourceCache("odds", settings.ODDS_CACHE_TTL)

    if settings.USE_MOCK_DATA:
        logger.info("USE_MOCK_DATA=1, using offline mock providers")
        game_sources = [MockGameSource()]
        article_sources = [MockArticleSource()]
        roster_sources = [MockRosterSource()]
        injury_source = MockInjurySource()
        odds_sources = [MockOddsSource()]
    else:
        espn = ESPNClient(settings.ESPN_BASE_URL, timeout=settings.HTTP_TIMEOUT)
        game_sources = [ESPNGameSource(espn)]
        article_sources = [ESPNArticleSource(espn)]
        roster_sources = [ESPNRosterSource(espn)]
        injury_source = ESPNInjurySource(espn)
        odds_sources = [ESPNOddsSource(espn)]

        # Keyed providers go ahead of ESPN where they are the better source
        if settings.API_SPORTS_KEY:
            api_sports = APISportsClient(settings.API_SPORTS_BASE_URL, settings.API_SPORTS_KEY, settings.HTTP_TIMEOUT)
            game_sources.append(APISportsGameSource(api_sports))
            roster_sources.insert(0, APISportsRosterSource(api_sports))
        if settings.NEWS_API_KEY:
            article_sources.insert(0, NewsAPIArticleSource(
                NewsAPIClient(settings.NEWS_API_BASE_URL, settings.NEWS_API_KEY, settings.HTTP_TIMEOUT)
            ))
        if settings.ODDS_API_KEY:
            odds_sources.insert(0, OddsAPISource(
                OddsAPIClient(settings.ODDS_API_BASE_URL, settings.ODDS_API_KEY, settings.HTTP_TIMEOUT)
            ))

    loader = DataLoader(
        game_sources=game_sources,
        article_sources=article_sources,
        roster_sources=roster_sources,
        games_cache=games_cache,
        articles_cache=articles_cache,
        roster_cache=roster_cache,
    )
    return PredictionPipeline(
        loader=loader,
        injuries=InjuryTracker(injury_source, injury_cache),
        news=NewsAnalyzer(loader, window_days=settings.NEWS_WINDOW_DAYS),
        odds=OddsReconciler(odds_sources, odds_cache),
        predictor=build_predictor(settings, llm_client=llm_client),
    )
