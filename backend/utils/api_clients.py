# backend/utils/api_clients.py
import asyncio
import requests
import logging
from typing import List, Dict, Any, Optional

from models.errors import ProviderError

logger = logging.getLogger(__name__)

# API-Sports numeric team ids
API_SPORTS_TEAM_IDS: Dict[str, int] = {
    "LV": 1, "JAX": 2, "NE": 3, "NYG": 4,
    "BAL": 5, "TEN": 6, "DET": 7, "ATL": 8,
    "CLE": 9, "CIN": 10, "ARI": 11, "PHI": 12,
    "NYJ": 13, "SF": 14, "GB": 15, "CHI": 16,
    "KC": 17, "WAS": 18, "CAR": 19, "BUF": 20,
    "IND": 21, "PIT": 22, "SEA": 23, "TB": 24,
    "MIA": 25, "HOU": 26, "NO": 27, "DEN": 28,
    "DAL": 29, "LAC": 30, "LAR": 31, "MIN": 32,
}


class ProviderClient:
    """Base HTTP client for an upstream data provider.

    Requests go through a shared requests.Session. The async helpers run the
    blocking call in a worker thread so callers on the event loop never block.
    """

    name = "provider"

    def __init__(self, base_url: str, timeout: float = 10, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        logger.info(f"Initialized {self.__class__.__name__} with base URL: {self.base_url}")

    def _default_headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    def _make_request(self, endpoint: str, method: str = "GET", **kwargs) -> Any:
        """Make a request to the provider, raising ProviderError on any failure"""
        url = f"{self.base_url}{endpoint}"
        headers = {**self._default_headers(), **kwargs.pop("headers", {})}
        try:
            response = self.session.request(method, url, timeout=self.timeout, headers=headers, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error(f"HTTP error from {self.name} {endpoint}: {e}")
            raise ProviderError(self.name, f"request to {endpoint} failed", status_code=status) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Error making request to {self.name} {endpoint}: {e}")
            raise ProviderError(self.name, f"request to {endpoint} failed: {e}") from e
        except ValueError as e:
            logger.error(f"Malformed JSON from {self.name} {endpoint}: {e}")
            raise ProviderError(self.name, f"malformed payload from {endpoint}") from e

    async def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None,
                   headers: Optional[Dict[str, str]] = None) -> Any:
        return await asyncio.to_thread(
            self._make_request, endpoint, "GET", params=params or {}, headers=headers or {}
        )


class ESPNClient(ProviderClient):
    """Client for ESPN's public site API (no key required)"""

    name = "espn"

    async def get_scoreboard(self, week: Optional[int] = None, season: Optional[int] = None,
                             season_type: int = 2) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if week is not None:
            params["week"] = week
            params["seasontype"] = season_type
        if season is not None:
            params["dates"] = season
        return await self._get("/scoreboard", params)

    async def get_team_schedule(self, abbreviation: str, season: int) -> Dict[str, Any]:
        return await self._get(f"/teams/{abbreviation.lower()}/schedule", {"season": season})

    async def get_team_roster(self, abbreviation: str, season: Optional[int] = None) -> Dict[str, Any]:
        params = {"season": season} if season else {}
        return await self._get(f"/teams/{abbreviation.lower()}/roster", params)

    async def get_team_news(self, abbreviation: str, limit: int = 25) -> Dict[str, Any]:
        return await self._get("/news", {"team": abbreviation.lower(), "limit": limit})


class APISportsClient(ProviderClient):
    """Client for API-Sports American football v1 (100 requests/day on the free tier)"""

    name = "api-sports"

    def __init__(self, base_url: str, api_key: str, timeout: float = 10,
                 session: Optional[requests.Session] = None):
        super().__init__(base_url, timeout, session)
        self.api_key = api_key

    def _default_headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", "x-apisports-key": self.api_key}

    def team_id(self, abbreviation: str) -> int:
        team_id = API_SPORTS_TEAM_IDS.get(abbreviation.upper())
        if team_id is None:
            raise ProviderError(self.name, f"unknown team id for {abbreviation}")
        return team_id

    def _response(self, payload: Any) -> List[Dict[str, Any]]:
        if not isinstance(payload, dict):
            raise ProviderError(self.name, "unexpected payload shape")
        errors = payload.get("errors")
        if errors:
            raise ProviderError(self.name, f"API errors: {errors}")
        return payload.get("response") or []

    async def get_games(self, abbreviation: str, season: int) -> List[Dict[str, Any]]:
        payload = await self._get("/games", {"team": self.team_id(abbreviation), "season": season})
        return self._response(payload)

    async def get_players(self, abbreviation: str, season: int) -> List[Dict[str, Any]]:
        payload = await self._get("/players", {"team": self.team_id(abbreviation), "season": season})
        return self._response(payload)

    async def get_player_statistics(self, abbreviation: str, season: int) -> List[Dict[str, Any]]:
        payload = await self._get("/players/statistics", {"team": self.team_id(abbreviation), "season": season})
        return self._response(payload)


class NewsAPIClient(ProviderClient):
    """Client for NewsAPI.org article search"""

    name = "newsapi"

    def __init__(self, base_url: str, api_key: str, timeout: float = 10,
                 session: Optional[requests.Session] = None):
        super().__init__(base_url, timeout, session)
        self.api_key = api_key

    async def search(self, query: str, from_date: str, to_date: str, page_size: int = 50) -> List[Dict[str, Any]]:
        payload = await self._get("/everything", {
            "q": query,
            "from": from_date,
            "to": to_date,
            "language": "en",
            "sortBy": "publishedAt",
            "pageSize": page_size,
            "apiKey": self.api_key,
        })
        if not isinstance(payload, dict) or payload.get("status") != "ok":
            raise ProviderError(self.name, f"search failed: {payload.get('message') if isinstance(payload, dict) else payload}")
        return payload.get("articles") or []


class OddsAPIClient(ProviderClient):
    """Client for The Odds API (500 requests/month on the free tier)"""

    name = "the-odds-api"

    def __init__(self, base_url: str, api_key: str, timeout: float = 10,
                 session: Optional[requests.Session] = None):
        super().__init__(base_url, timeout, session)
        self.api_key = api_key

    async def get_nfl_odds(self) -> List[Dict[str, Any]]:
        payload = await self._get("/sports/americanfootball_nfl/odds", {
            "apiKey": self.api_key,
            "regions": "us",
            "markets": "h2h,spreads,totals",
            "oddsFormat": "american",
        })
        if not isinstance(payload, list):
            raise ProviderError(self.name, "expected a list of events")
        return payload
