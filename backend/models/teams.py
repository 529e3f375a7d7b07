# backend/models/teams.py
"""
Static NFL team catalog - the 32 franchises keyed by abbreviation
"""

from typing import Dict, List, Optional

from .game_models import Conference, Division, Team

ALL_TEAMS: List[Team] = [
    # NFC East
    Team("DAL", "Dallas Cowboys", Conference.NFC, Division.EAST),
    Team("PHI", "Philadelphia Eagles", Conference.NFC, Division.EAST),
    Team("NYG", "New York Giants", Conference.NFC, Division.EAST),
    Team("WAS", "Washington Commanders", Conference.NFC, Division.EAST),
    # NFC North
    Team("DET", "Detroit Lions", Conference.NFC, Division.NORTH),
    Team("GB", "Green Bay Packers", Conference.NFC, Division.NORTH),
    Team("MIN", "Minnesota Vikings", Conference.NFC, Division.NORTH),
    Team("CHI", "Chicago Bears", Conference.NFC, Division.NORTH),
    # NFC South
    Team("TB", "Tampa Bay Buccaneers", Conference.NFC, Division.SOUTH),
    Team("ATL", "Atlanta Falcons", Conference.NFC, Division.SOUTH),
    Team("NO", "New Orleans Saints", Conference.NFC, Division.SOUTH),
    Team("CAR", "Carolina Panthers", Conference.NFC, Division.SOUTH),
    # NFC West
    Team("SF", "San Francisco 49ers", Conference.NFC, Division.WEST),
    Team("SEA", "Seattle Seahawks", Conference.NFC, Division.WEST),
    Team("LAR", "Los Angeles Rams", Conference.NFC, Division.WEST),
    Team("ARI", "Arizona Cardinals", Conference.NFC, Division.WEST),
    # AFC East
    Team("BUF", "Buffalo Bills", Conference.AFC, Division.EAST),
    Team("MIA", "Miami Dolphins", Conference.AFC, Division.EAST),
    Team("NYJ", "New York Jets", Conference.AFC, Division.EAST),
    Team("NE", "New England Patriots", Conference.AFC, Division.EAST),
    # AFC North
    Team("BAL", "Baltimore Ravens", Conference.AFC, Division.NORTH),
    Team("PIT", "Pittsburgh Steelers", Conference.AFC, Division.NORTH),
    Team("CIN", "Cincinnati Bengals", Conference.AFC, Division.NORTH),
    Team("CLE", "Cleveland Browns", Conference.AFC, Division.NORTH),
    # AFC South
    Team("HOU", "Houston Texans", Conference.AFC, Division.SOUTH),
    Team("IND", "Indianapolis Colts", Conference.AFC, Division.SOUTH),
    Team("JAX", "Jacksonville Jaguars", Conference.AFC, Division.SOUTH),
    Team("TEN", "Tennessee Titans", Conference.AFC, Division.SOUTH),
    # AFC West
    Team("KC", "Kansas City Chiefs", Conference.AFC, Division.WEST),
    Team("LAC", "Los Angeles Chargers", Conference.AFC, Division.WEST),
    Team("LV", "Las Vegas Raiders", Conference.AFC, Division.WEST),
    Team("DEN", "Denver Broncos", Conference.AFC, Division.WEST),
]

_BY_ABBREVIATION: Dict[str, Team] = {team.abbreviation: team for team in ALL_TEAMS}
_BY_NAME: Dict[str, Team] = {team.name.lower(): team for team in ALL_TEAMS}

# Provider abbreviations that differ from ours
ABBREVIATION_ALIASES: Dict[str, str] = {
    "WSH": "WAS",
    "LA": "LAR",
    "JAC": "JAX",
    "OAK": "LV",
    "SD": "LAC",
    "STL": "LAR",
}


def normalize_abbreviation(abbreviation: str) -> str:
    abbr = (abbreviation or "").strip().upper()
    return ABBREVIATION_ALIASES.get(abbr, abbr)


def team_by_abbreviation(abbreviation: str) -> Optional[Team]:
    """Lookup a team by abbreviation (case-insensitive, provider aliases allowed)"""
    return _BY_ABBREVIATION.get(normalize_abbreviation(abbreviation))


def team_by_name(name: str) -> Optional[Team]:
    return _BY_NAME.get((name or "").strip().lower())


def find_team(identifier: str) -> Optional[Team]:
    """Resolve a provider team identifier: full name, abbreviation, or nickname.

    Odds and news providers label teams by display name, ESPN by abbreviation,
    and some feeds drop the city ("Chiefs"), so try each in turn.
    """
    if not identifier:
        return None
    team = team_by_name(identifier) or team_by_abbreviation(identifier)
    if team:
        return team
    nickname = identifier.strip().split(" ")[-1].lower()
    for candidate in ALL_TEAMS:
        if candidate.nickname.lower() == nickname:
            return candidate
    return None
