"""
Tests for services/data_loader.py
=================================
Provider fallback, caching and article merging.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from models.errors import AllProvidersFailedError
from models.game_models import Article, game_id_for
from services.data_loader import DataLoader
from tests.fakes import (
    FakeArticleSource,
    FakeGameSource,
    FakeRosterSource,
    make_game,
    provider_down,
    team,
)

BEFORE = datetime(2024, 9, 15, tzinfo=timezone.utc)
AFTER = BEFORE - timedelta(days=7)


def article(title, hours_before, teams=("KC",), source="Wire", key=None):
    return Article(
        title=title,
        source=source,
        published_at=BEFORE - timedelta(hours=hours_before),
        teams=tuple(team(t) for t in teams),
        id=game_id_for("article", key or title),
    )


@pytest.fixture
def build_loader(make_cache):
    def _build(game_sources=(), article_sources=(), roster_sources=()):
        return DataLoader(
            game_sources=game_sources,
            article_sources=article_sources,
            roster_sources=roster_sources,
            games_cache=make_cache("games", 3600),
            articles_cache=make_cache("articles", 3600),
            roster_cache=make_cache("roster", 900),
        )
    return _build


class TestLoadGames:
    def test_first_provider_wins(self, build_loader):
        games = [make_game("KC", "BUF", 1, 24, 17)]
        primary = FakeGameSource("primary", games=games)
        secondary = FakeGameSource("secondary", games=[make_game("KC", "DEN", 2)])
        loader = build_loader(game_sources=[primary, secondary])
        assert asyncio.run(loader.load_games(team("KC"), 2024)) == games
        assert secondary.calls == 0

    def test_falls_back_on_failure(self, build_loader):
        backup_games = [make_game("KC", "DEN", 2)]
        primary = FakeGameSource("primary", error=provider_down("primary"))
        backup = FakeGameSource("backup", games=backup_games)
        loader = build_loader(game_sources=[primary, backup])
        assert asyncio.run(loader.load_games(team("KC"), 2024)) == backup_games
        assert primary.calls == 1

    def test_all_providers_failing_raises(self, build_loader):
        loader = build_loader(game_sources=[
            FakeGameSource("a", error=provider_down("a")),
            FakeGameSource("b", error=provider_down("b")),
        ])
        with pytest.raises(AllProvidersFailedError) as exc:
            asyncio.run(loader.load_games(team("KC"), 2024))
        assert len(exc.value.failures) == 2

    def test_second_load_is_cached(self, build_loader):
        source = FakeGameSource(games=[make_game("KC", "BUF", 1, 24, 17)])
        loader = build_loader(game_sources=[source])

        async def run():
            await loader.load_games(team("KC"), 2024)
            await loader.load_games(team("KC"), 2024)

        asyncio.run(run())
        assert source.calls == 1
        assert loader.games_cache.get("games:KC:2024") is not None

    def test_force_refresh_bypasses_cache(self, build_loader):
        source = FakeGameSource(games=[make_game("KC", "BUF", 1, 24, 17)])
        loader = build_loader(game_sources=[source])

        async def run():
            await loader.load_games(team("KC"), 2024)
            await loader.load_games(team("KC"), 2024, force_refresh=True)

        asyncio.run(run())
        assert source.calls == 2

    def test_duplicate_games_removed(self, build_loader):
        game = make_game("KC", "BUF", 1, 24, 17, event_id="dup")
        loader = build_loader(game_sources=[FakeGameSource(games=[game, game])])
        assert len(asyncio.run(loader.load_games(team("KC"), 2024))) == 1

    def test_failure_is_not_cached(self, build_loader):
        loader = build_loader(game_sources=[FakeGameSource(error=provider_down())])
        with pytest.raises(AllProvidersFailedError):
            asyncio.run(loader.load_games(team("KC"), 2024))
        assert len(loader.games_cache) == 0


class TestLoadLiveScores:
    def test_never_cached(self, build_loader):
        source = FakeGameSource(live=[make_game("KC", "BUF", 13)])

        async def run():
            await loader.load_live_scores()
            return await loader.load_live_scores()

        loader = build_loader(game_sources=[source])
        assert len(asyncio.run(run())) == 1
        assert source.calls == 2


class TestLoadArticles:
    def test_merges_filters_and_sorts(self, build_loader):
        first = FakeArticleSource("first", articles=[
            article("Older", 48),
            article("Too old", 24 * 8),
            article("Other team", 2, teams=("BUF",)),
        ])
        second = FakeArticleSource("second", articles=[
            article("Newest", 1),
            article("older", 47, key="dupe-title"),
            article("Future", -1),
        ])
        loader = build_loader(article_sources=[first, second])
        titles = [a.title for a in asyncio.run(loader.load_articles(team("KC"), BEFORE, AFTER))]
        assert titles == ["Newest", "older"]

    def test_window_bounds(self, build_loader):
        exactly_after = Article(title="Edge", source="Wire", published_at=AFTER, teams=(team("KC"),))
        exactly_before = Article(title="Boundary", source="Wire", published_at=BEFORE, teams=(team("KC"),))
        loader = build_loader(article_sources=[FakeArticleSource(articles=[exactly_after, exactly_before])])
        titles = [a.title for a in asyncio.run(loader.load_articles(team("KC"), BEFORE, AFTER))]
        assert titles == ["Edge"]

    def test_partial_failure_keeps_results(self, build_loader):
        loader = build_loader(article_sources=[
            FakeArticleSource("down", error=provider_down("down")),
            FakeArticleSource("up", articles=[article("Still here", 3)]),
        ])
        assert [a.title for a in asyncio.run(loader.load_articles(team("KC"), BEFORE, AFTER))] == ["Still here"]

    def test_total_failure_raises(self, build_loader):
        loader = build_loader(article_sources=[FakeArticleSource(error=provider_down())])
        with pytest.raises(AllProvidersFailedError):
            asyncio.run(loader.load_articles(team("KC"), BEFORE, AFTER))

    def test_no_sources_raises(self, build_loader):
        with pytest.raises(AllProvidersFailedError):
            asyncio.run(build_loader().load_articles(team("KC"), BEFORE, AFTER))

    def test_cached_by_team_and_window(self, build_loader):
        source = FakeArticleSource(articles=[article("A", 3)])
        loader = build_loader(article_sources=[source])

        async def run():
            await loader.load_articles(team("KC"), BEFORE, AFTER)
            await loader.load_articles(team("KC"), BEFORE, AFTER)
            await loader.load_articles(team("KC"), BEFORE + timedelta(hours=1), AFTER)

        asyncio.run(run())
        assert source.calls == 2
        assert loader.articles_cache.get(f"articles:KC:{AFTER.isoformat()}:{BEFORE.isoformat()}") is not None

    def test_narrower_window_is_not_served_from_wider(self, build_loader):
        source = FakeArticleSource(articles=[article("Recent", 3), article("Older", 5 * 24)])
        loader = build_loader(article_sources=[source])

        async def run():
            week = await loader.load_articles(team("KC"), BEFORE, AFTER)
            day = await loader.load_articles(team("KC"), BEFORE, BEFORE - timedelta(days=1))
            return week, day

        week, day = asyncio.run(run())
        assert [a.title for a in week] == ["Recent", "Older"]
        assert [a.title for a in day] == ["Recent"]
        assert source.calls == 2


class TestLoadRoster:
    def test_fallback_and_cache(self, build_loader):
        primary = FakeRosterSource("api-sports", error=provider_down("api-sports"))
        backup = FakeRosterSource("espn")
        loader = build_loader(roster_sources=[primary, backup])

        async def run():
            first = await loader.load_roster(team("KC"), 2024)
            second = await loader.load_roster(team("KC"), 2024)
            return first, second

        first, second = asyncio.run(run())
        assert first.source == "espn"
        assert first is second
        assert backup.calls == 1


class TestCacheAdministration:
    def test_stats_clear_cleanup(self, build_loader, clock):
        loader = build_loader(game_sources=[FakeGameSource(games=[make_game("KC", "BUF", 1, 24, 17)])])
        asyncio.run(loader.load_games(team("KC"), 2024))
        assert loader.cache_stats()["games"]["entries"] == 1

        clock.advance(3601)
        assert loader.cleanup_cache() == 1

        asyncio.run(loader.load_games(team("KC"), 2024))
        loader.clear_cache()
        assert all(stats["entries"] == 0 for stats in loader.cache_stats().values())

    def test_registered_caches_are_administered(self, build_loader, make_cache):
        loader = build_loader()
        odds = make_cache("odds", 21600)
        odds.set("odds", {"KC": 1})
        loader.register_cache(odds)
        loader.register_cache(odds)

        assert list(loader.cache_stats()) == ["games", "articles", "roster", "odds"]
        loader.clear_cache()
        assert len(odds) == 0
