# backend/services/data_sources.py
"""
Provider adapters: turn raw upstream payloads into domain objects.

Each adapter wraps one API client and exposes one concern (games, articles,
injuries, odds or rosters). Adapters raise ProviderError when the upstream
call fails or the payload cannot be used; the DataLoader decides what to try
next. Individual malformed records are skipped with a debug log.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from models.errors import ProviderError
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
from models.teams import find_team
from utils.api_clients import APISportsClient, ESPNClient, NewsAPIClient, OddsAPIClient

logger = logging.getLogger(__name__)

# =============================================================================
# SOURCE PROTOCOLS
# =============================================================================

class GameSource(Protocol):
    name: str

    async def fetch_games(self, team: Team, season: int) -> List[Game]: ...

    async def fetch_live_scores(self) -> List[Game]: ...


class ArticleSource(Protocol):
    name: str

    async def fetch_articles(self, team: Team, before: datetime, after: datetime) -> List[Article]: ...


class InjurySource(Protocol):
    name: str

    async def fetch_injuries(self, team: Team, season: int) -> List[InjuredPlayer]: ...


class OddsSource(Protocol):
    name: str

    async def fetch_odds(self) -> Dict[str, BettingOdds]: ...


class RosterSource(Protocol):
    name: str

    async def fetch_roster(self, team: Team, season: int) -> TeamRoster: ...

# =============================================================================
# PARSING HELPERS
# =============================================================================

def parse_datetime(raw: Any) -> Optional[datetime]:
    """Parse provider timestamps (ISO 8601 with Z, or epoch seconds) into aware UTC"""
    if raw is None or raw == "":
        return None
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(raw, tz=timezone.utc)
    text = str(raw).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_score(raw: Any) -> Optional[int]:
    """ESPN sends scores as strings on the scoreboard and as objects on schedules"""
    if isinstance(raw, dict):
        raw = raw.get("value", raw.get("displayValue"))
    if raw is None or raw == "":
        return None
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return None


def parse_number(raw: Any) -> Optional[float]:
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    try:
        return float(str(raw).replace(",", "").strip())
    except ValueError:
        return None


def parse_week(raw: Any) -> int:
    if isinstance(raw, dict):
        raw = raw.get("number")
    if isinstance(raw, int):
        return raw
    match = re.search(r"\d+", str(raw or ""))
    return int(match.group()) if match else 0

# =============================================================================
# ESPN
# =============================================================================

def _espn_game(event: Dict[str, Any], default_season: Optional[int] = None) -> Optional[Game]:
    competitions = event.get("competitions") or []
    if not competitions:
        return None
    competition = competitions[0]
    competitors = competition.get("competitors") or []
    home = next((c for c in competitors if c.get("homeAway") == "home"), None)
    away = next((c for c in competitors if c.get("homeAway") == "away"), None)
    if home is None or away is None:
        return None

    home_team = find_team((home.get("team") or {}).get("abbreviation", ""))
    away_team = find_team((away.get("team") or {}).get("abbreviation", ""))
    scheduled = parse_datetime(event.get("date") or competition.get("date"))
    if home_team is None or away_team is None or scheduled is None:
        logger.debug(f"Skipping ESPN event {event.get('id')}: unresolved teams or date")
        return None

    outcome = None
    status = ((competition.get("status") or event.get("status") or {}).get("type") or {})
    if status.get("completed"):
        home_score = parse_score(home.get("score"))
        away_score = parse_score(away.get("score"))
        if home_score is not None and away_score is not None:
            outcome = GameOutcome(home_score=home_score, away_score=away_score)

    season = (event.get("season") or {}).get("year") or default_season or scheduled.year
    return Game(
        home_team=home_team,
        away_team=away_team,
        scheduled_date=scheduled,
        week=parse_week(event.get("week")),
        season=int(season),
        outcome=outcome,
        id=game_id_for("espn", event.get("id") or f"{away_team.abbreviation}@{home_team.abbreviation}:{scheduled.isoformat()}"),
    )


def parse_espn_events(payload: Dict[str, Any], default_season: Optional[int] = None) -> List[Game]:
    if not isinstance(payload, dict):
        raise ProviderError("espn", "unexpected payload shape")
    games = []
    for event in payload.get("events") or []:
        game = _espn_game(event, default_season)
        if game is not None:
            games.append(game)
    return games


class ESPNGameSource:
    """Schedules, results and live scores from ESPN"""

    name = "espn"

    def __init__(self, client: ESPNClient):
        self.client = client

    async def fetch_games(self, team: Team, season: int) -> List[Game]:
        payload = await self.client.get_team_schedule(team.abbreviation, season)
        games = parse_espn_events(payload, season)
        logger.info(f"ESPN returned {len(games)} games for {team.abbreviation} {season}")
        return games

    async def fetch_live_scores(self) -> List[Game]:
        payload = await self.client.get_scoreboard()
        return parse_espn_events(payload, current_season())


class ESPNArticleSource:
    """Team news feed from ESPN"""

    name = "espn-news"

    def __init__(self, client: ESPNClient):
        self.client = client

    async def fetch_articles(self, team: Team, before: datetime, after: datetime) -> List[Article]:
        payload = await self.client.get_team_news(team.abbreviation)
        if not isinstance(payload, dict):
            raise ProviderError(self.name, "unexpected payload shape")
        articles = []
        for item in payload.get("articles") or []:
            published = parse_datetime(item.get("published") or item.get("lastModified"))
            title = item.get("headline") or item.get("title")
            if published is None or not title:
                continue
            link = ((item.get("links") or {}).get("web") or {}).get("href")
            articles.append(Article(
                title=title,
                source="ESPN",
                published_at=published,
                teams=(team,),
                content=item.get("description") or "",
                url=link,
            ))
        return articles


class ESPNInjurySource:
    """Injury designations read from the ESPN team roster"""

    name = "espn-injuries"

    def __init__(self, client: ESPNClient):
        self.client = client

    async def fetch_injuries(self, team: Team, season: int) -> List[InjuredPlayer]:
        payload = await self.client.get_team_roster(team.abbreviation, season)
        if not isinstance(payload, dict):
            raise ProviderError(self.name, "unexpected payload shape")
        injuries = []
        for group in payload.get("athletes") or []:
            for athlete in group.get("items") or []:
                position = PlayerPosition.parse((athlete.get("position") or {}).get("abbreviation"))
                for injury in athlete.get("injuries") or []:
                    injuries.append(InjuredPlayer(
                        name=athlete.get("displayName") or athlete.get("fullName") or "Unknown",
                        position=position,
                        status=InjuryStatus.parse(injury.get("status")),
                        description=injury.get("longComment") or injury.get("shortComment"),
                    ))
        return injuries


class ESPNRosterSource:
    """Roster without season statistics, used when API-Sports is unavailable"""

    name = "espn-roster"

    def __init__(self, client: ESPNClient):
        self.client = client

    async def fetch_roster(self, team: Team, season: int) -> TeamRoster:
        payload = await self.client.get_team_roster(team.abbreviation, season)
        if not isinstance(payload, dict):
            raise ProviderError(self.name, "unexpected payload shape")
        players = []
        for group in payload.get("athletes") or []:
            for athlete in group.get("items") or []:
                players.append(Player(
                    name=athlete.get("displayName") or athlete.get("fullName") or "Unknown",
                    position=(athlete.get("position") or {}).get("abbreviation") or "",
                    jersey_number=athlete.get("jersey"),
                    photo_url=(athlete.get("headshot") or {}).get("href"),
                ))
        if not players:
            raise ProviderError(self.name, f"empty roster for {team.abbreviation}")
        return TeamRoster(team=team, season=season, players=tuple(players), source="ESPN")


class ESPNOddsSource:
    """Odds embedded in the current ESPN scoreboard"""

    name = "espn-odds"

    def __init__(self, client: ESPNClient):
        self.client = client

    async def fetch_odds(self) -> Dict[str, BettingOdds]:
        payload = await self.client.get_scoreboard()
        if not isinstance(payload, dict):
            raise ProviderError(self.name, "unexpected payload shape")
        odds_map: Dict[str, BettingOdds] = {}
        for event in payload.get("events") or []:
            game = _espn_game(event)
            competition = (event.get("competitions") or [{}])[0]
            lines = competition.get("odds") or []
            if game is None or not lines:
                continue
            line = lines[0]
            home_ml = ((line.get("homeTeamOdds") or {}).get("moneyLine"))
            away_ml = ((line.get("awayTeamOdds") or {}).get("moneyLine"))
            odds_map[odds_key(game.away_team, game.home_team)] = BettingOdds(
                home_moneyline=int(home_ml) if home_ml is not None else None,
                away_moneyline=int(away_ml) if away_ml is not None else None,
                spread=parse_number(line.get("spread")),
                total=parse_number(line.get("overUnder")),
                bookmaker=(line.get("provider") or {}).get("name") or "ESPN",
                last_update=utcnow(),
            )
        return odds_map

# =============================================================================
# API-SPORTS
# =============================================================================

FINISHED_STATUSES = {"FT", "AOT"}


class APISportsGameSource:
    """Season games from API-Sports (no live scoreboard on the free tier)"""

    name = "api-sports"

    def __init__(self, client: APISportsClient):
        self.client = client

    def _game(self, item: Dict[str, Any], season: int) -> Optional[Game]:
        info = item.get("game") or {}
        teams = item.get("teams") or {}
        home_team = find_team((teams.get("home") or {}).get("name", ""))
        away_team = find_team((teams.get("away") or {}).get("name", ""))
        date_info = info.get("date") or {}
        scheduled = parse_datetime(date_info.get("timestamp"))
        if scheduled is None and date_info.get("date"):
            scheduled = parse_datetime(f"{date_info['date']}T{date_info.get('time') or '00:00'}")
        if home_team is None or away_team is None or scheduled is None:
            return None

        outcome = None
        if (info.get("status") or {}).get("short") in FINISHED_STATUSES:
            scores = item.get("scores") or {}
            home_score = parse_score((scores.get("home") or {}).get("total"))
            away_score = parse_score((scores.get("away") or {}).get("total"))
            if home_score is not None and away_score is not None:
                outcome = GameOutcome(home_score=home_score, away_score=away_score)

        return Game(
            home_team=home_team,
            away_team=away_team,
            scheduled_date=scheduled,
            week=parse_week(info.get("week")),
            season=int((item.get("league") or {}).get("season") or season),
            outcome=outcome,
            id=game_id_for(self.name, info.get("id")),
        )

    async def fetch_games(self, team: Team, season: int) -> List[Game]:
        items = await self.client.get_games(team.abbreviation, season)
        games = []
        for item in items:
            game = self._game(item, season)
            if game is not None and game.involves(team):
                games.append(game)
        logger.info(f"API-Sports returned {len(games)} games for {team.abbreviation} {season}")
        return games

    async def fetch_live_scores(self) -> List[Game]:
        raise ProviderError(self.name, "live scores not supported")


class APISportsRosterSource:
    """Roster with season statistics from API-Sports"""

    name = "api-sports"

    def __init__(self, client: APISportsClient):
        self.client = client

    @staticmethod
    def _stats_by_player(items: List[Dict[str, Any]]) -> Dict[Any, Dict[str, float]]:
        stats: Dict[Any, Dict[str, float]] = {}
        for item in items:
            player_id = (item.get("player") or {}).get("id")
            if player_id is None:
                continue
            values = stats.setdefault(player_id, {})
            for team_block in item.get("teams") or []:
                for group in team_block.get("groups") or []:
                    prefix = (group.get("name") or "").lower()
                    for stat in group.get("statistics") or []:
                        value = parse_number(stat.get("value"))
                        if value is None or not stat.get("name"):
                            continue
                        values[f"{prefix}.{stat['name'].lower()}"] = value
        return stats

    async def fetch_roster(self, team: Team, season: int) -> TeamRoster:
        items = await self.client.get_players(team.abbreviation, season)
        if not items:
            raise ProviderError(self.name, f"empty roster for {team.abbreviation}")
        try:
            stats = self._stats_by_player(await self.client.get_player_statistics(team.abbreviation, season))
        except ProviderError as e:
            logger.warning(f"Player statistics unavailable for {team.abbreviation}: {e}")
            stats = {}

        players = []
        for item in items:
            number = item.get("number")
            players.append(Player(
                name=item.get("name") or "Unknown",
                position=item.get("position") or "",
                jersey_number=str(number) if number is not None else None,
                photo_url=item.get("image"),
                stats=stats.get(item.get("id"), {}),
            ))
        return TeamRoster(team=team, season=season, players=tuple(players), source="API-Sports")

# =============================================================================
# NEWSAPI
# =============================================================================

class NewsAPIArticleSource:
    """Keyword search over NewsAPI for a team"""

    name = "newsapi"

    def __init__(self, client: NewsAPIClient):
        self.client = client

    async def fetch_articles(self, team: Team, before: datetime, after: datetime) -> List[Article]:
        query = f'"{team.name}" OR {team.abbreviation} NFL'
        items = await self.client.search(
            query,
            from_date=after.strftime("%Y-%m-%dT%H:%M:%S"),
            to_date=before.strftime("%Y-%m-%dT%H:%M:%S"),
        )
        articles = []
        for item in items:
            published = parse_datetime(item.get("publishedAt"))
            title = item.get("title")
            if published is None or not title or title == "[Removed]":
                continue
            articles.append(Article(
                title=title,
                source=(item.get("source") or {}).get("name") or "NewsAPI",
                published_at=published,
                teams=(team,),
                content=item.get("description") or item.get("content") or "",
                url=item.get("url"),
            ))
        return articles

# =============================================================================
# THE ODDS API
# =============================================================================

def odds_key(away: Team, home: Team) -> str:
    """Odds map key for a matchup, built from catalog names"""
    return f"{away.name} @ {home.name}"


class OddsAPISource:
    """League-wide moneyline, spread and total from The Odds API (first bookmaker)"""

    name = "the-odds-api"

    def __init__(self, client: OddsAPIClient):
        self.client = client

    def _odds(self, event: Dict[str, Any]) -> Optional[BettingOdds]:
        bookmakers = event.get("bookmakers") or []
        if not bookmakers:
            return None
        bookmaker = bookmakers[0]
        markets = {market.get("key"): market.get("outcomes") or [] for market in bookmaker.get("markets") or []}
        home_name, away_name = event.get("home_team"), event.get("away_team")

        home_ml = away_ml = None
        for outcome in markets.get("h2h", []):
            if outcome.get("name") == home_name:
                home_ml = int(outcome["price"])
            elif outcome.get("name") == away_name:
                away_ml = int(outcome["price"])

        spread = next(
            (parse_number(o.get("point")) for o in markets.get("spreads", []) if o.get("name") == home_name),
            None,
        )
        total = next(
            (parse_number(o.get("point")) for o in markets.get("totals", []) if o.get("name") == "Over"),
            None,
        )
        return BettingOdds(
            home_moneyline=home_ml,
            away_moneyline=away_ml,
            spread=spread,
            total=total,
            bookmaker=bookmaker.get("title") or "Unknown",
            last_update=parse_datetime(bookmaker.get("last_update") or event.get("commence_time")) or utcnow(),
        )

    async def fetch_odds(self) -> Dict[str, BettingOdds]:
        events = await self.client.get_nfl_odds()
        odds_map: Dict[str, BettingOdds] = {}
        for event in events:
            home = find_team(event.get("home_team") or "")
            away = find_team(event.get("away_team") or "")
            if home is None or away is None:
                logger.debug(f"Skipping odds event with unknown teams: {event.get('away_team')} @ {event.get('home_team')}")
                continue
            odds = self._odds(event)
            if odds is not None:
                odds_map[odds_key(away, home)] = odds
        logger.info(f"The Odds API returned odds for {len(odds_map)} games")
        return odds_map
