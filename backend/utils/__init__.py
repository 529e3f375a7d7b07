# backend/utils/__init__.py
"""
Utilities package for StatShark
Contains the upstream API clients and the TTL source cache
"""
from .api_clients import ESPNClient, APISportsClient, NewsAPIClient, OddsAPIClient
from .cache import SourceCache, make_key

__all__ = ["ESPNClient", "APISportsClient", "NewsAPIClient", "OddsAPIClient", "SourceCache", "make_key"]
