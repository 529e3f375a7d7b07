# backend/services/injury_tracker.py
import logging
from typing import Optional

from models.game_models import FetchResult, Team, TeamInjuryReport, current_season
from services.data_sources import InjurySource
from utils.cache import SourceCache, make_key

logger = logging.getLogger(__name__)


class InjuryTracker:
    """Cached per-team injury reports from a single injury source"""

    def __init__(self, source: InjurySource, cache: SourceCache):
        self.source = source
        self.cache = cache

    async def lookup(self, team: Team, season: Optional[int] = None) -> FetchResult[TeamInjuryReport]:
        """Injury report for the team, or an absent result explaining why there is none"""
        season = season or current_season()
        key = make_key("injuries", team.abbreviation, season)

        async def fetch() -> TeamInjuryReport:
            injuries = await self.source.fetch_injuries(team, season)
            logger.info(f"Fetched {len(injuries)} injuries for {team.abbreviation}")
            return TeamInjuryReport(team=team, injuries=tuple(injuries))

        try:
            return FetchResult.present(await self.cache.get_or_fetch(key, fetch))
        except Exception as e:
            logger.warning(f"Injury report unavailable for {team.abbreviation}: {e}")
            return FetchResult.absent(str(e))

    async def report(self, team: Team, season: Optional[int] = None) -> TeamInjuryReport:
        """Injury report for the team; empty when the source is unavailable"""
        result = await self.lookup(team, season)
        return result.value_or(TeamInjuryReport(team=team))
