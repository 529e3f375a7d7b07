# backend/services/data_loader.py
"""
Data loader: cache-first access to games, articles, rosters and live scores,
walking an ordered provider chain for each concern.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from models.errors import AllProvidersFailedError
from models.game_models import Article, Game, Team, TeamRoster, merge_games
from services.data_sources import ArticleSource, GameSource, RosterSource
from utils.cache import SourceCache, make_key

logger = logging.getLogger(__name__)


class DataLoader:
    def __init__(
        self,
        game_sources: Sequence[GameSource],
        article_sources: Sequence[ArticleSource],
        roster_sources: Sequence[RosterSource],
        games_cache: SourceCache,
        articles_cache: SourceCache,
        roster_cache: SourceCache,
    ):
        self.game_sources = list(game_sources)
        self.article_sources = list(article_sources)
        self.roster_sources = list(roster_sources)
        self.games_cache = games_cache
        self.articles_cache = articles_cache
        self.roster_cache = roster_cache
        self.caches: List[SourceCache] = [games_cache, articles_cache, roster_cache]
        logger.info(
            f"DataLoader providers - games: {[s.name for s in self.game_sources]}, "
            f"articles: {[s.name for s in self.article_sources]}, "
            f"rosters: {[s.name for s in self.roster_sources]}"
        )

    def register_cache(self, cache: SourceCache) -> None:
        """Put another concern's cache under the loader's administration"""
        if cache not in self.caches:
            self.caches.append(cache)

    async def _first_success(self, concern: str, sources: Sequence[Any],
                             call: Callable[[Any], Awaitable[Any]]) -> Any:
        """Try each provider in order and return the first result"""
        failures = []
        for source in sources:
            try:
                return await call(source)
            except Exception as e:
                logger.warning(f"{concern}: provider {source.name} failed, trying next: {e}")
                failures.append(e)
        logger.error(f"{concern}: all {len(sources)} providers failed")
        raise AllProvidersFailedError(concern, failures)

    # =========================================================================
    # GAMES
    # =========================================================================

    async def load_games(self, team: Team, season: int, force_refresh: bool = False) -> List[Game]:
        """Season games involving the team, deduplicated by game identity"""
        key = make_key("games", team.abbreviation, season)

        async def fetch() -> List[Game]:
            games = await self._first_success(
                "games", self.game_sources, lambda source: source.fetch_games(team, season)
            )
            return merge_games(games)

        if force_refresh:
            self.games_cache.remove(key)
        return await self.games_cache.get_or_fetch(key, fetch)

    async def load_live_scores(self) -> List[Game]:
        """Current scoreboard; never cached"""
        games = await self._first_success(
            "live_scores", self.game_sources, lambda source: source.fetch_live_scores()
        )
        return merge_games(games)

    # =========================================================================
    # ARTICLES
    # =========================================================================

    async def load_articles(self, team: Team, before: datetime, after: datetime,
                            force_refresh: bool = False) -> List[Article]:
        """Articles about the team published in [after, before), newest first.

        Every article provider is queried; partial results are kept and only
        a failure of every provider raises.
        """
        key = make_key("articles", team.abbreviation, after.isoformat(), before.isoformat())

        async def fetch() -> List[Article]:
            if not self.article_sources:
                raise AllProvidersFailedError("articles")
            results = await asyncio.gather(
                *(source.fetch_articles(team, before, after) for source in self.article_sources),
                return_exceptions=True,
            )
            collected: List[Article] = []
            failures = []
            for source, result in zip(self.article_sources, results):
                if isinstance(result, Exception):
                    logger.warning(f"articles: provider {source.name} failed: {result}")
                    failures.append(result)
                else:
                    collected.extend(result)
            if len(failures) == len(self.article_sources):
                logger.error(f"articles: all {len(failures)} providers failed for {team.abbreviation}")
                raise AllProvidersFailedError("articles", failures)
            return self._window(collected, before, after)

        if force_refresh:
            self.articles_cache.remove(key)
        return await self.articles_cache.get_or_fetch(key, fetch)

    @staticmethod
    def _window(articles: List[Article], before: datetime, after: datetime) -> List[Article]:
        seen_ids = set()
        seen_titles = set()
        kept = []
        for article in sorted(articles, key=lambda a: a.published_at, reverse=True):
            if not (after <= article.published_at < before):
                continue
            title = article.title.strip().lower()
            if article.id in seen_ids or title in seen_titles:
                continue
            seen_ids.add(article.id)
            seen_titles.add(title)
            kept.append(article)
        return kept

    # =========================================================================
    # ROSTERS
    # =========================================================================

    async def load_roster(self, team: Team, season: int) -> TeamRoster:
        key = make_key("roster", team.abbreviation, season)
        return await self.roster_cache.get_or_fetch(
            key,
            lambda: self._first_success("roster", self.roster_sources, lambda source: source.fetch_roster(team, season)),
        )

    # =========================================================================
    # CACHE ADMINISTRATION
    # =========================================================================

    def clear_cache(self) -> None:
        for cache in self.caches:
            cache.clear()
        logger.info("All caches cleared")

    def cleanup_cache(self) -> int:
        removed = sum(cache.cleanup() for cache in self.caches)
        logger.info(f"Cache cleanup removed {removed} expired entries")
        return removed

    def cache_stats(self) -> Dict[str, Dict[str, Any]]:
        return {cache.name: cache.stats() for cache in self.caches}
