"""
Tests for services/pipeline.py
==============================
End-to-end prediction over fake providers, plus the read-only operations
and cache administration the API exposes.
"""

import asyncio
from datetime import timedelta

import pytest

from models.errors import InsufficientDataError, UnknownTeamError
from models.game_models import Article, BettingOdds, Game, GameOutcome, InjuredPlayer, InjuryStatus, PlayerPosition, utcnow
from services.data_loader import DataLoader
from services.data_sources import ESPNArticleSource, ESPNGameSource, NewsAPIArticleSource, OddsAPISource
from services.injury_tracker import InjuryTracker
from services.llm_predictor import LLMPredictor
from services.mock_sources import MockGameSource
from services.news_analyzer import NewsAnalyzer
from services.odds_reconciler import OddsReconciler
from services.pipeline import PredictionPipeline, build_pipeline, resolve_team
from services.predictors import BaselinePredictor, EnhancedPredictor
from tests.fakes import (
    KICKOFF,
    FakeArticleSource,
    FakeGameSource,
    FakeInjurySource,
    FakeLLM,
    FakeOddsSource,
    FakeRosterSource,
    make_game,
    provider_down,
    team,
)

WEEK_FIVE = KICKOFF + timedelta(days=28)
ODDS = BettingOdds(home_moneyline=-200, away_moneyline=170, spread=-4.5, total=48.5, bookmaker="Book")


class OneTeamDownGameSource(FakeGameSource):
    def __init__(self, games, down):
        super().__init__(games=games)
        self.down = down

    async def fetch_games(self, team, season):
        if team.abbreviation == self.down:
            raise provider_down()
        return await super().fetch_games(team, season)


class RendezvousGameSource(FakeGameSource):
    """Holds every fetch until both teams' current seasons have been requested"""

    def __init__(self, games, expected):
        super().__init__(games=games)
        self.expected = set(expected)
        self.arrived = set()
        self.all_arrived = asyncio.Event()

    async def fetch_games(self, team, season):
        self.arrived.add((team.abbreviation, season))
        if self.expected <= self.arrived:
            self.all_arrived.set()
        await self.all_arrived.wait()
        return await super().fetch_games(team, season)


@pytest.fixture
def build(make_cache, record_games):
    def _build(games=None, articles=None, injuries=None, odds=None, predictor=None,
               game_error=None, injury_error=None, live=None, game_source=None):
        if articles is None:
            articles = [
                Article(title=f"{abbr} practice report", source="Wire",
                        published_at=WEEK_FIVE - timedelta(hours=6), teams=(team(abbr),))
                for abbr in ("KC", "BUF")
            ]
        game_source = game_source or FakeGameSource(
            games=record_games if games is None else games, live=live, error=game_error
        )
        loader = DataLoader(
            game_sources=[game_source],
            article_sources=[FakeArticleSource(articles=articles)],
            roster_sources=[FakeRosterSource()],
            games_cache=make_cache("games", 3600),
            articles_cache=make_cache("articles", 3600),
            roster_cache=make_cache("roster", 900),
        )
        return PredictionPipeline(
            loader=loader,
            injuries=InjuryTracker(FakeInjurySource(injuries, error=injury_error), make_cache("injuries", 21600)),
            news=NewsAnalyzer(loader),
            odds=OddsReconciler([FakeOddsSource(odds={"Buffalo Bills @ Kansas City Chiefs": ODDS} if odds is None else odds)],
                                make_cache("odds", 21600)),
            predictor=predictor or EnhancedPredictor(),
        )
    return _build


def predict(pipeline, home="KC", away="BUF", **kwargs):
    kwargs.setdefault("week", 5)
    kwargs.setdefault("scheduled_date", WEEK_FIVE)
    return asyncio.run(pipeline.predict(home, away, 2024, **kwargs))


class TestPredict:
    def test_full_prediction(self, build):
        prediction = predict(build())
        assert prediction.home_win_probability > 0.78
        assert prediction.home_win_probability == pytest.approx(0.5 + sum(f.impact for f in prediction.factors))
        # sample 8/20 weighted 0.7, plus injuries and news both present
        assert prediction.confidence == pytest.approx(0.7 * 0.4 + 0.3)
        assert prediction.odds == ODDS
        assert prediction.strategy == "enhanced"
        assert prediction.game.home_team == team("KC")
        assert prediction.game.week == 5
        assert (prediction.predicted_home_score, prediction.predicted_away_score) == (29, 10)

    def test_same_matchup_same_game_id(self, build):
        pipeline = build()
        assert predict(pipeline).game.id == predict(pipeline).game.id

    def test_lowercase_abbreviations_and_aliases(self, build):
        prediction = predict(build(), home="kc", away="buf")
        assert prediction.game.away_team == team("BUF")
        assert resolve_team("WSH") == team("WAS")

    def test_unknown_team(self, build):
        with pytest.raises(UnknownTeamError):
            predict(build(), home="XYZ")

    def test_team_histories_load_concurrently(self, build, record_games):
        async def run():
            source = RendezvousGameSource(record_games, expected={("KC", 2024), ("BUF", 2024)})
            pipeline = build(game_source=source)
            return await asyncio.wait_for(
                pipeline.predict("KC", "BUF", 2024, week=5, scheduled_date=WEEK_FIVE), timeout=5
            )

        assert asyncio.run(run()).home_win_probability > 0.78

    def test_games_outage_degrades_to_home_field(self, build):
        prediction = predict(build(game_error=provider_down(), predictor=BaselinePredictor()))
        assert prediction.home_win_probability == pytest.approx(0.53)
        assert prediction.confidence == 0.0
        assert prediction.odds == ODDS
        assert "Season history unavailable for KC, BUF" in prediction.reasoning

    def test_one_team_outage_counts_that_team_as_even(self, build, record_games):
        source = OneTeamDownGameSource(record_games, down="BUF")
        prediction = predict(build(game_source=source, predictor=BaselinePredictor()))
        # 0.5 + (0.75 - 0.5) * 0.5 + 0.03
        assert prediction.home_win_probability == pytest.approx(0.655)
        assert prediction.confidence == pytest.approx(4 / 20)
        assert "Season history unavailable for BUF" in prediction.reasoning

    def test_games_outage_fails_llm_strategy(self, build):
        client = FakeLLM(reply='{"homeWinProbability": 0.6, "confidence": 0.5, "reasoning": "x"}')
        with pytest.raises(InsufficientDataError):
            predict(build(game_error=provider_down(), predictor=LLMPredictor(client)))
        assert client.prompts == []

    def test_earlier_home_seasons_feed_head_to_head(self, build, record_games):
        meeting = make_game("BUF", "KC", 2, 17, 20, season=2023)
        prediction = predict(build(games=record_games + [meeting]))
        assert "head_to_head" in {f.name for f in prediction.factors}

    def test_injury_outage_degrades(self, build):
        prediction = predict(build(injury_error=provider_down()))
        assert "Injury reports unavailable" in prediction.reasoning
        assert prediction.confidence == pytest.approx(0.7 * 0.4 + 0.15)

    def test_home_injuries_lower_probability(self, build):
        healthy = predict(build()).home_win_probability
        injuries = {"KC": [InjuredPlayer("Starting QB", PlayerPosition.QB, InjuryStatus.OUT)]}
        assert predict(build(injuries=injuries)).home_win_probability == pytest.approx(healthy - 0.15)

    def test_missing_odds_get_placeholder(self, build):
        prediction = predict(build(odds={}))
        assert prediction.odds.is_authoritative is False

    def test_baseline_strategy(self, build):
        prediction = predict(build(predictor=BaselinePredictor()))
        assert prediction.strategy == "baseline"
        assert prediction.home_win_probability == pytest.approx(0.78)
        assert prediction.confidence == pytest.approx(0.4)

    def test_to_dict(self, build):
        payload = predict(build()).to_dict()
        assert payload["odds"]["bookmaker"] == "Book"
        assert payload["predicted_home_score"] == 29
        assert {f["name"] for f in payload["factors"]} == {
            "season_record", "home_field", "recent_form", "home_away_split", "injuries", "news",
        }


class TestReadOperations:
    def test_team_games(self, build, record_games):
        games = asyncio.run(build().team_games("KC", 2024))
        assert len(games) == 4
        assert all(g.involves(team("KC")) for g in games)

    def test_team_news_limit(self, build):
        now = utcnow()
        articles = [
            Article(title=f"Story {i}", source="Wire", published_at=now - timedelta(hours=i + 1), teams=(team("KC"),))
            for i in range(3)
        ]
        news = asyncio.run(build(articles=articles).team_news("KC", limit=2))
        assert [a.title for a in news] == ["Story 0", "Story 1"]

    def test_upcoming_games(self, build):
        now = utcnow()
        later = Game(home_team=team("KC"), away_team=team("BUF"), scheduled_date=now + timedelta(days=3), week=13, season=now.year)
        sooner = Game(home_team=team("DAL"), away_team=team("NYG"), scheduled_date=now + timedelta(days=1), week=13, season=now.year)
        finished = Game(home_team=team("MIA"), away_team=team("NE"), scheduled_date=now - timedelta(days=2),
                        week=12, season=now.year, outcome=GameOutcome(home_score=20, away_score=10))
        in_progress = Game(home_team=team("SF"), away_team=team("SEA"), scheduled_date=now - timedelta(hours=1),
                           week=13, season=now.year)
        games = asyncio.run(build(live=[later, finished, sooner, in_progress]).upcoming_games())
        assert games == [in_progress, sooner, later]

    def test_teams(self, build):
        teams = build().teams()
        assert len(teams) == 32
        assert team("KC") in teams

    def test_team_roster(self, build):
        roster = asyncio.run(build().team_roster("BUF", 2024))
        assert roster.team == team("BUF")
        assert roster.source == "fake-roster"


class TestCacheAdministration:
    def test_stats_cover_every_cache(self, build):
        pipeline = build()
        predict(pipeline)
        stats = pipeline.cache_stats()
        assert set(stats) == {"games", "articles", "roster", "injuries", "odds"}
        # both current seasons plus two earlier home seasons
        assert stats["games"]["entries"] == 4
        assert stats["odds"]["entries"] == 1

    def test_clear(self, build):
        pipeline = build()
        predict(pipeline)
        pipeline.cache_clear()
        assert all(s["entries"] == 0 for s in pipeline.cache_stats().values())

    def test_cleanup_removes_expired(self, build, clock):
        pipeline = build()
        predict(pipeline)
        clock.advance(3601)
        # games and articles expire after an hour; injuries and odds live six
        assert pipeline.cache_cleanup() == 6
        assert pipeline.cache_stats()["injuries"]["entries"] == 2

    def test_delegates_to_loader(self, build):
        pipeline = build()
        predict(pipeline)
        assert pipeline.cache_stats() == pipeline.loader.cache_stats()


class TestBuildPipeline:
    def test_mock_mode(self, settings):
        pipeline = build_pipeline(settings)
        assert isinstance(pipeline.loader.game_sources[0], MockGameSource)
        assert isinstance(pipeline.predictor, EnhancedPredictor)
        assert pipeline.news.window == timedelta(days=7)

    def test_mock_mode_predicts(self, settings):
        pipeline = build_pipeline(settings)
        prediction = asyncio.run(pipeline.predict("KC", "BUF", 2024, week=13,
                                                  scheduled_date=KICKOFF + timedelta(days=7 * 12)))
        assert 0.01 <= prediction.home_win_probability <= 0.99
        assert prediction.odds is not None

    def test_live_mode_provider_order(self, settings):
        settings.USE_MOCK_DATA = False
        settings.API_SPORTS_KEY = "a"
        settings.NEWS_API_KEY = "n"
        settings.ODDS_API_KEY = "o"
        pipeline = build_pipeline(settings)
        assert [s.name for s in pipeline.loader.game_sources] == ["espn", "api-sports"]
        assert isinstance(pipeline.loader.game_sources[0], ESPNGameSource)
        assert isinstance(pipeline.loader.article_sources[0], NewsAPIArticleSource)
        assert isinstance(pipeline.loader.article_sources[1], ESPNArticleSource)
        assert pipeline.loader.roster_sources[0].name == "api-sports"
        assert isinstance(pipeline.odds.sources[0], OddsAPISource)

    def test_live_mode_without_keys_is_espn_only(self, settings):
        settings.USE_MOCK_DATA = False
        pipeline = build_pipeline(settings)
        assert [type(s) for s in pipeline.loader.game_sources] == [ESPNGameSource]
        assert len(pipeline.odds.sources) == 1
