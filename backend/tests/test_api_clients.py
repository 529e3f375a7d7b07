"""
Tests for utils/api_clients.py
==============================
HTTP failures are translated into ProviderError; requests carry the right
endpoints, parameters and auth headers.
"""

import asyncio
from unittest.mock import MagicMock

import pytest
import requests

from models.errors import ProviderError
from utils.api_clients import APISportsClient, ESPNClient, NewsAPIClient, OddsAPIClient


def session_returning(payload=None, status=200, error=None):
    session = MagicMock(spec=requests.Session)
    if error is not None:
        session.request.side_effect = error
        return session
    response = MagicMock()
    response.status_code = status
    response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    session.request.return_value = response
    return session


class TestMakeRequest:
    """Tests for the shared request helper"""

    def test_returns_json(self):
        client = ESPNClient("https://espn.test/", session=session_returning({"events": []}))
        assert client._make_request("/scoreboard") == {"events": []}
        args, kwargs = client.session.request.call_args
        assert args == ("GET", "https://espn.test/scoreboard")
        assert kwargs["timeout"] == 10

    def test_http_error_becomes_provider_error(self):
        client = ESPNClient("https://espn.test", session=session_returning(status=503))
        with pytest.raises(ProviderError) as exc:
            client._make_request("/scoreboard")
        assert exc.value.provider == "espn"
        assert exc.value.status_code == 503

    def test_connection_error_becomes_provider_error(self):
        error = requests.exceptions.ConnectionError("refused")
        client = ESPNClient("https://espn.test", session=session_returning(error=error))
        with pytest.raises(ProviderError):
            client._make_request("/scoreboard")

    def test_malformed_json_becomes_provider_error(self):
        session = session_returning({})
        session.request.return_value.json.side_effect = ValueError("no json")
        client = ESPNClient("https://espn.test", session=session)
        with pytest.raises(ProviderError):
            client._make_request("/scoreboard")


class TestESPNClient:
    def test_scoreboard_for_week(self):
        client = ESPNClient("https://espn.test", session=session_returning({"events": []}))
        asyncio.run(client.get_scoreboard(week=3, season=2024))
        params = client.session.request.call_args.kwargs["params"]
        assert params == {"week": 3, "seasontype": 2, "dates": 2024}

    def test_schedule_uses_lowercase_abbreviation(self):
        client = ESPNClient("https://espn.test", session=session_returning({"events": []}))
        asyncio.run(client.get_team_schedule("KC", 2024))
        assert client.session.request.call_args.args[1] == "https://espn.test/teams/kc/schedule"


class TestAPISportsClient:
    def test_sends_api_key_header_and_team_id(self):
        client = APISportsClient("https://api.test", "secret", session=session_returning({"response": [], "errors": []}))
        assert asyncio.run(client.get_games("KC", 2024)) == []
        kwargs = client.session.request.call_args.kwargs
        assert kwargs["headers"]["x-apisports-key"] == "secret"
        assert kwargs["params"] == {"team": 17, "season": 2024}

    def test_api_errors_raise(self):
        payload = {"response": [], "errors": {"token": "Error/Missing application key"}}
        client = APISportsClient("https://api.test", "bad", session=session_returning(payload))
        with pytest.raises(ProviderError):
            asyncio.run(client.get_players("KC", 2024))

    def test_unknown_team_raises(self):
        client = APISportsClient("https://api.test", "key", session=session_returning({}))
        with pytest.raises(ProviderError):
            client.team_id("XYZ")


class TestNewsAPIClient:
    def test_search_params(self):
        payload = {"status": "ok", "articles": [{"title": "t"}]}
        client = NewsAPIClient("https://news.test", "key", session=session_returning(payload))
        articles = asyncio.run(client.search("q", "2024-09-01T00:00:00", "2024-09-08T00:00:00"))
        assert articles == [{"title": "t"}]
        params = client.session.request.call_args.kwargs["params"]
        assert params["sortBy"] == "publishedAt"
        assert params["language"] == "en"
        assert params["apiKey"] == "key"

    def test_error_status_raises(self):
        payload = {"status": "error", "message": "rateLimited"}
        client = NewsAPIClient("https://news.test", "key", session=session_returning(payload))
        with pytest.raises(ProviderError):
            asyncio.run(client.search("q", "a", "b"))


class TestOddsAPIClient:
    def test_requests_all_markets(self):
        client = OddsAPIClient("https://odds.test", "key", session=session_returning([]))
        assert asyncio.run(client.get_nfl_odds()) == []
        args, kwargs = client.session.request.call_args
        assert args[1] == "https://odds.test/sports/americanfootball_nfl/odds"
        assert kwargs["params"]["markets"] == "h2h,spreads,totals"
        assert kwargs["params"]["oddsFormat"] == "american"

    def test_non_list_payload_raises(self):
        client = OddsAPIClient("https://odds.test", "key", session=session_returning({"message": "quota"}))
        with pytest.raises(ProviderError):
            asyncio.run(client.get_nfl_odds())
