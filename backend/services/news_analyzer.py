# backend/services/news_analyzer.py
"""
Keyword-based news signal for a team.

The score is a small nudge, not a sentiment model: each negative keyword
found in one of the ten newest articles subtracts 0.05, each positive keyword
adds 0.03, and the sum is clamped to [-0.15, 0.10]. Matching is plain
substring containment over the lower-cased title and body.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from models.game_models import Article, FetchResult, Team, utcnow
from services.data_loader import DataLoader

logger = logging.getLogger(__name__)

NEGATIVE_KEYWORDS = (
    "injury", "injured", "out", "suspended", "arrest", "arrested",
    "jail", "divorce", "personal", "leave", "absence", "ruled out",
)
POSITIVE_KEYWORDS = ("return", "healthy", "activated", "cleared", "practice")

NEGATIVE_WEIGHT = -0.05
POSITIVE_WEIGHT = 0.03
MIN_IMPACT = -0.15
MAX_IMPACT = 0.10

ARTICLES_SCANNED = 10
MAX_HEADLINES = 5
RECENT_HOURS = 48


def window_end(moment: Optional[datetime] = None) -> datetime:
    """Top of the next hour, so news windows share cache keys within the hour"""
    moment = moment or utcnow()
    return moment.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)


@dataclass(frozen=True)
class NewsSignal:
    team: Team
    article_count: int = 0
    recent_count: int = 0
    impact: float = 0.0
    key_headline: Optional[str] = None
    articles: Tuple[Article, ...] = field(default_factory=tuple)

    @property
    def headlines(self) -> List[str]:
        return [article.title for article in self.articles]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'team': self.team.abbreviation,
            'article_count': self.article_count,
            'recent_count': self.recent_count,
            'impact': round(self.impact, 4),
            'key_headline': self.key_headline,
            'headlines': self.headlines,
        }


def score_articles(articles: List[Article]) -> Tuple[float, Optional[str]]:
    """Clamped keyword impact and the first headline that triggered a negative keyword"""
    impact = 0.0
    key_headline = None
    for article in articles[:ARTICLES_SCANNED]:
        text = f"{article.title} {article.content}".lower()
        for keyword in NEGATIVE_KEYWORDS:
            if keyword in text:
                impact += NEGATIVE_WEIGHT
                if key_headline is None:
                    key_headline = article.title
        for keyword in POSITIVE_KEYWORDS:
            if keyword in text:
                impact += POSITIVE_WEIGHT
    return max(MIN_IMPACT, min(MAX_IMPACT, impact)), key_headline


class NewsAnalyzer:
    def __init__(self, loader: DataLoader, window_days: int = 7):
        self.loader = loader
        self.window = timedelta(days=window_days)

    def summarize(self, team: Team, articles: List[Article], now: Optional[datetime] = None) -> NewsSignal:
        now = now or utcnow()
        newest = sorted(articles, key=lambda a: a.published_at, reverse=True)
        impact, key_headline = score_articles(newest)
        recent_cutoff = now - timedelta(hours=RECENT_HOURS)
        return NewsSignal(
            team=team,
            article_count=len(newest),
            recent_count=sum(1 for a in newest if a.published_at >= recent_cutoff),
            impact=impact,
            key_headline=key_headline,
            articles=tuple(newest[:MAX_HEADLINES]),
        )

    async def lookup(self, team: Team, before: Optional[datetime] = None,
                     window: Optional[timedelta] = None) -> FetchResult[NewsSignal]:
        before = before or window_end()
        after = before - (window or self.window)
        try:
            articles = await self.loader.load_articles(team, before, after)
        except Exception as e:
            logger.warning(f"News unavailable for {team.abbreviation}: {e}")
            return FetchResult.absent(str(e))
        signal = self.summarize(team, articles, now=min(before, utcnow()))
        logger.debug(f"News signal for {team.abbreviation}: {signal.impact:+.2f} from {signal.article_count} articles")
        return FetchResult.present(signal)

    async def analyze(self, team: Team, window: Optional[timedelta] = None,
                      before: Optional[datetime] = None) -> NewsSignal:
        """News signal for the team; an empty signal when no articles can be loaded"""
        result = await self.lookup(team, before=before, window=window)
        return result.value_or(NewsSignal(team=team))
