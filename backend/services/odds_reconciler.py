# backend/services/odds_reconciler.py
import logging
from typing import Dict, Sequence

from models.errors import AllProvidersFailedError
from models.game_models import BettingOdds, FetchResult, Game
from services.data_sources import OddsSource, odds_key
from utils.cache import SourceCache

logger = logging.getLogger(__name__)

ODDS_CACHE_KEY = "nfl_odds"
PLACEHOLDER_KEY = "*"


def placeholder_odds() -> BettingOdds:
    """Typical line shown when no odds provider answers; never cached"""
    return BettingOdds(
        home_moneyline=-155,
        away_moneyline=135,
        spread=-3.5,
        total=47.5,
        bookmaker="Placeholder (non-authoritative)",
        is_authoritative=False,
    )


class OddsReconciler:
    """League odds snapshot keyed "{away name} @ {home name}", one cache entry for the whole league"""

    def __init__(self, sources: Sequence[OddsSource], cache: SourceCache):
        self.sources = list(sources)
        self.cache = cache

    async def _fetch(self) -> Dict[str, BettingOdds]:
        failures = []
        for source in self.sources:
            try:
                odds = await source.fetch_odds()
            except Exception as e:
                logger.warning(f"odds: provider {source.name} failed, trying next: {e}")
                failures.append(e)
                continue
            if odds:
                return odds
            logger.warning(f"odds: provider {source.name} returned no games, trying next")
        raise AllProvidersFailedError("odds", failures)

    async def current_odds(self) -> Dict[str, BettingOdds]:
        try:
            return await self.cache.get_or_fetch(ODDS_CACHE_KEY, self._fetch)
        except AllProvidersFailedError as e:
            logger.error(f"No odds provider available, serving placeholder: {e}")
            return {PLACEHOLDER_KEY: placeholder_odds()}

    async def lookup(self, game: Game) -> FetchResult[BettingOdds]:
        odds = await self.current_odds()
        key = odds_key(game.away_team, game.home_team)
        if key in odds:
            return FetchResult.present(odds[key])
        if PLACEHOLDER_KEY in odds:
            return FetchResult.absent("no odds provider available")
        return FetchResult.absent(f"no line posted for {key}")

    async def odds_for(self, game: Game) -> BettingOdds:
        """Odds for the game; the placeholder line when no real line exists"""
        result = await self.lookup(game)
        return result.value_or(placeholder_odds())
