# backend/config.py
import os
from typing import Dict, Any

class Settings:
    # API Configuration
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8080"))

    # Upstream providers
    ESPN_BASE_URL: str = os.getenv("ESPN_BASE_URL", "https://site.api.espn.com/apis/site/v2/sports/football/nfl")
    API_SPORTS_BASE_URL: str = os.getenv("API_SPORTS_BASE_URL", "https://v1.american-football.api-sports.io")
    API_SPORTS_KEY: str = os.getenv("API_SPORTS_KEY", "")
    NEWS_API_BASE_URL: str = os.getenv("NEWS_API_BASE_URL", "https://newsapi.org/v2")
    NEWS_API_KEY: str = os.getenv("NEWS_API_KEY", "")
    ODDS_API_BASE_URL: str = os.getenv("ODDS_API_BASE_URL", "https://api.the-odds-api.com/v4")
    ODDS_API_KEY: str = os.getenv("ODDS_API_KEY", "")
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "10"))

    # Offline fixtures instead of live providers
    USE_MOCK_DATA: bool = os.getenv("USE_MOCK_DATA", "0") == "1"

    # Prediction strategy: baseline | enhanced | llm | ensemble
    PREDICTOR_STRATEGY: str = os.getenv("PREDICTOR_STRATEGY", "enhanced").lower()
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    # Share of the ensemble given to the LLM; the enhanced heuristic gets the rest
    ENSEMBLE_LLM_WEIGHT: float = float(os.getenv("ENSEMBLE_LLM_WEIGHT", "0.7"))

    # Cache TTLs (seconds)
    ROSTER_CACHE_TTL: int = int(os.getenv("ROSTER_CACHE_TTL", "900"))  # 15 minutes
    GAMES_CACHE_TTL: int = int(os.getenv("GAMES_CACHE_TTL", "3600"))
    ARTICLES_CACHE_TTL: int = int(os.getenv("ARTICLES_CACHE_TTL", "3600"))
    ODDS_CACHE_TTL: int = int(os.getenv("ODDS_CACHE_TTL", "21600"))  # 6 hours
    INJURY_CACHE_TTL: int = int(os.getenv("INJURY_CACHE_TTL", "21600"))

    # News Analyzer
    NEWS_WINDOW_DAYS: int = int(os.getenv("NEWS_WINDOW_DAYS", "7"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def get_config(cls) -> Dict[str, Any]:
        return {
            "api_host": cls.API_HOST,
            "api_port": cls.API_PORT,
            "espn_base_url": cls.ESPN_BASE_URL,
            "api_sports_enabled": bool(cls.API_SPORTS_KEY),
            "news_api_enabled": bool(cls.NEWS_API_KEY),
            "odds_api_enabled": bool(cls.ODDS_API_KEY),
            "openai_enabled": bool(cls.OPENAI_API_KEY),
            "use_mock_data": cls.USE_MOCK_DATA,
            "predictor_strategy": cls.PREDICTOR_STRATEGY,
            "ensemble_llm_weight": cls.ENSEMBLE_LLM_WEIGHT,
            "cache_ttls": {
                "roster": cls.ROSTER_CACHE_TTL,
                "games": cls.GAMES_CACHE_TTL,
                "articles": cls.ARTICLES_CACHE_TTL,
                "odds": cls.ODDS_CACHE_TTL,
                "injuries": cls.INJURY_CACHE_TTL,
            },
            "log_level": cls.LOG_LEVEL
        }

settings = Settings()
