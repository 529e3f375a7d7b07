"""
Pytest Configuration and Shared Fixtures
=========================================
"""

import os
import sys
from types import SimpleNamespace

import pytest

# Add backend/ to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tests.fakes import FakeClock, make_game
from utils.cache import SourceCache


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_cache(clock):
    def _make(name="test", ttl=60):
        return SourceCache(name, ttl, clock=clock)
    return _make


@pytest.fixture
def settings():
    """Settings stand-in with mock providers and short TTLs"""
    return SimpleNamespace(
        PREDICTOR_STRATEGY="enhanced",
        OPENAI_API_KEY="",
        OPENAI_MODEL="gpt-4o-mini",
        ENSEMBLE_LLM_WEIGHT=0.7,
        USE_MOCK_DATA=True,
        ESPN_BASE_URL="https://espn.test",
        API_SPORTS_BASE_URL="https://api-sports.test",
        API_SPORTS_KEY="",
        NEWS_API_BASE_URL="https://newsapi.test",
        NEWS_API_KEY="",
        ODDS_API_BASE_URL="https://odds.test",
        ODDS_API_KEY="",
        HTTP_TIMEOUT=5,
        ROSTER_CACHE_TTL=900,
        GAMES_CACHE_TTL=3600,
        ARTICLES_CACHE_TTL=3600,
        ODDS_CACHE_TTL=21600,
        INJURY_CACHE_TTL=21600,
        NEWS_WINDOW_DAYS=7,
    )


@pytest.fixture
def record_games():
    """Kansas City 3-1 and Buffalo 1-3 before week 5"""
    return [
        make_game("KC", "DEN", 1, 27, 10),
        make_game("LV", "KC", 2, 20, 24),
        make_game("KC", "LAC", 3, 17, 21),
        make_game("KC", "MIA", 4, 30, 14),
        make_game("BUF", "NYJ", 1, 10, 20),
        make_game("NE", "BUF", 2, 13, 7),
        make_game("BUF", "MIA", 3, 28, 3),
        make_game("DAL", "BUF", 4, 31, 17),
    ]
