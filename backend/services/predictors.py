# backend/services/predictors.py
"""
Heuristic prediction strategies.

BaselinePredictor blends season win rates with a fixed home-field edge.
EnhancedPredictor starts from the same raw probability and adds recent form,
head-to-head history, home/away splits, and the injury and news adjustments
when those sub-fetches are present. EnsemblePredictor averages other
strategies by weight. The heuristics are deterministic and never raise for
upstream problems: missing data lowers confidence instead.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, Tuple

from models.errors import InsufficientDataError, PredictionError
from models.game_models import (
    FetchResult,
    Game,
    GameStore,
    Prediction,
    PredictionFactor,
    Team,
    TeamInjuryReport,
    clamp_probability,
)
from services.news_analyzer import NewsSignal

logger = logging.getLogger(__name__)

HOME_FIELD_ADVANTAGE = 0.03
WIN_RATE_WEIGHT = 0.5
FULL_CONFIDENCE_GAMES = 20

INJURY_WEIGHT = 0.15
NEWS_WEIGHT = 0.25
RECENT_FORM_WEIGHT = 0.15
HEAD_TO_HEAD_WEIGHT = 0.25
HOME_AWAY_WEIGHT = 0.12
HEAD_TO_HEAD_SEASONS = 3
SAMPLE_CONFIDENCE_WEIGHT = 0.7
SUB_FETCH_CONFIDENCE = 0.15

# Predicted scores: recent scoring average shifted by up to 8 points each way
SCORE_SAMPLE_GAMES = 5
SCORE_SWING = 16
DEFAULT_HOME_SCORE = 23
DEFAULT_AWAY_SCORE = 20

# =============================================================================
# CONTEXT
# =============================================================================

def _not_loaded() -> FetchResult:
    return FetchResult.absent("not loaded")


@dataclass
class PredictionContext:
    """Everything a strategy may look at.

    games holds both teams' current seasons plus earlier home-team seasons
    for head-to-head history. history_gaps names the teams whose current
    season could not be loaded.
    """
    games: List[Game] = field(default_factory=list)
    home_injuries: FetchResult[TeamInjuryReport] = field(default_factory=_not_loaded)
    away_injuries: FetchResult[TeamInjuryReport] = field(default_factory=_not_loaded)
    home_news: FetchResult[NewsSignal] = field(default_factory=_not_loaded)
    away_news: FetchResult[NewsSignal] = field(default_factory=_not_loaded)
    history_gaps: Tuple[Team, ...] = ()

    def __post_init__(self):
        self.store = GameStore(self.games)

    def completed_games(self, team: Team, game: Game) -> List[Game]:
        """Same-season completed games for the team that kicked off before the game"""
        return [
            g for g in self.store.completed_before(team, game.season, game.scheduled_date)
            if g.id != game.id
        ]

    def head_to_head(self, game: Game, seasons: int = HEAD_TO_HEAD_SEASONS) -> List[Game]:
        """Completed meetings of the two teams over this and the previous seasons"""
        return [
            g for g in self.store.head_to_head(
                game.home_team, game.away_team,
                range(game.season - seasons + 1, game.season + 1),
                game.scheduled_date,
            )
            if g.id != game.id
        ]

    def history_note(self) -> Optional[str]:
        if not self.history_gaps:
            return None
        names = ", ".join(team.abbreviation for team in self.history_gaps)
        return f"Season history unavailable for {names}; their record counts as even."


@dataclass(frozen=True)
class TeamRecord:
    wins: int = 0
    losses: int = 0
    ties: int = 0

    @property
    def games(self) -> int:
        return self.wins + self.losses + self.ties

    @property
    def win_rate(self) -> float:
        if self.games == 0:
            return 0.5
        return (self.wins + 0.5 * self.ties) / self.games

    def __str__(self) -> str:
        if self.ties:
            return f"{self.wins}-{self.losses}-{self.ties}"
        return f"{self.wins}-{self.losses}"


def team_record(team: Team, games: List[Game]) -> TeamRecord:
    results = [g.result_for(team) for g in games]
    return TeamRecord(wins=results.count("W"), losses=results.count("L"), ties=results.count("T"))


class GamePredictor(Protocol):
    name: str

    async def predict(self, game: Game, context: PredictionContext) -> Prediction: ...

# =============================================================================
# RECENT FORM
# =============================================================================

MAX_MOMENTUM = 0.15
BLOWOUT_MARGIN = 14
CLOSE_MARGIN = 7

TREND_MOMENTUM = {
    "strongly improving": 0.08,
    "improving": 0.04,
    "stable": 0.0,
    "declining": -0.04,
    "strongly declining": -0.08,
}


@dataclass(frozen=True)
class RecentForm:
    last_three_win_rate: float = 0.5
    last_three_margin: float = 0.0
    streak: int = 0
    blowout_losses: int = 0
    close_wins: int = 0
    trend: str = "stable"
    scoring_trend: float = 0.0

    @property
    def momentum(self) -> float:
        """Signed form adjustment in [-0.15, 0.15]; positive means a hot team"""
        value = (self.last_three_win_rate - 0.5) * 0.20
        value += self.last_three_margin / BLOWOUT_MARGIN * 0.08
        value += TREND_MOMENTUM[self.trend]

        if self.streak >= 3:
            value += 0.06
        elif self.streak >= 2:
            value += 0.03
        elif self.streak <= -3:
            value -= 0.06
        elif self.streak <= -2:
            value -= 0.03

        if self.blowout_losses >= 2:
            value -= 0.05
        elif self.blowout_losses == 1:
            value -= 0.02

        if self.close_wins >= 2:
            value += 0.03

        value += self.scoring_trend * 0.04
        return max(-MAX_MOMENTUM, min(MAX_MOMENTUM, value))

    def summary(self) -> str:
        if self.streak > 0:
            streak = f"W{self.streak}"
        elif self.streak < 0:
            streak = f"L{-self.streak}"
        else:
            streak = "none"
        return f"{self.trend}, {self.last_three_win_rate:.0%} over last 3, streak {streak}"


def _streak(team: Team, games: List[Game]) -> int:
    """Consecutive wins (positive) or non-wins (negative) ending with the latest game"""
    wins = [g.result_for(team) == "W" for g in reversed(games)]
    count = 0
    for won in wins:
        if won != wins[0]:
            break
        count += 1
    return count if wins[0] else -count


def _scoring_trend(team: Team, games: List[Game]) -> float:
    """Last four games' scoring against the four before, in units of 14 points"""
    if len(games) < 8:
        return 0.0
    recent = [g.points_for(team) for g in games[-4:]]
    earlier = [g.points_for(team) for g in games[-8:-4]]
    change = (sum(recent) - sum(earlier)) / 4.0
    return max(-1.0, min(1.0, change / BLOWOUT_MARGIN))


def _trend(win_rate_change: float, streak: int, scoring_trend: float) -> str:
    if win_rate_change > 0.3 and streak >= 2:
        return "strongly improving"
    if win_rate_change > 0.15 or (streak >= 2 and scoring_trend > 0.3):
        return "improving"
    if win_rate_change < -0.3 and streak <= -2:
        return "strongly declining"
    if win_rate_change < -0.15 or (streak <= -2 and scoring_trend < -0.3):
        return "declining"
    return "stable"


def recent_form(team: Team, games: List[Game]) -> RecentForm:
    """Form from the team's completed games, oldest first"""
    if not games:
        return RecentForm()
    last_three = games[-3:]
    last_five = [g.margin_for(team) for g in games[-5:]]
    last_three_rate = team_record(team, last_three).win_rate
    streak = _streak(team, games[-10:])
    scoring_trend = _scoring_trend(team, games)
    return RecentForm(
        last_three_win_rate=last_three_rate,
        last_three_margin=sum(g.margin_for(team) for g in last_three) / len(last_three),
        streak=streak,
        blowout_losses=sum(1 for margin in last_five if margin <= -BLOWOUT_MARGIN),
        close_wins=sum(1 for margin in last_five if 0 < margin <= CLOSE_MARGIN),
        trend=_trend(last_three_rate - team_record(team, games).win_rate, streak, scoring_trend),
        scoring_trend=scoring_trend,
    )


def _average_points(team: Team, games: List[Game], default: int) -> int:
    points = [g.points_for(team) for g in games[-SCORE_SAMPLE_GAMES:]]
    if not points:
        return default
    return sum(points) // len(points)


def predicted_scores(game: Game, home_games: List[Game], away_games: List[Game],
                     probability: float) -> Tuple[int, int]:
    """Recent scoring averages pushed apart by how lopsided the probability is"""
    swing = int((probability - 0.5) * SCORE_SWING)
    home_score = _average_points(game.home_team, home_games, DEFAULT_HOME_SCORE) + swing
    away_score = _average_points(game.away_team, away_games, DEFAULT_AWAY_SCORE) - swing
    return max(0, home_score), max(0, away_score)

# =============================================================================
# BASELINE
# =============================================================================

class BaselinePredictor:
    name = "baseline"

    def raw_probability(self, game: Game, context: PredictionContext) -> Tuple[float, TeamRecord, TeamRecord, int]:
        """Unclamped home win probability, both records and the sample size"""
        home_games = context.completed_games(game.home_team, game)
        away_games = context.completed_games(game.away_team, game)
        home_record = team_record(game.home_team, home_games)
        away_record = team_record(game.away_team, away_games)
        raw = 0.5 + (home_record.win_rate - away_record.win_rate) * WIN_RATE_WEIGHT + HOME_FIELD_ADVANTAGE
        return raw, home_record, away_record, len(home_games) + len(away_games)

    @staticmethod
    def sample_confidence(total_games: int) -> float:
        return min(1.0, total_games / FULL_CONFIDENCE_GAMES)

    @staticmethod
    def base_factors(home_record: TeamRecord, away_record: TeamRecord) -> List[PredictionFactor]:
        return [
            PredictionFactor(
                name="season_record",
                impact=(home_record.win_rate - away_record.win_rate) * WIN_RATE_WEIGHT,
                description=f"Home {home_record} ({home_record.win_rate:.1%}) vs away {away_record} ({away_record.win_rate:.1%})",
            ),
            PredictionFactor(
                name="home_field",
                impact=HOME_FIELD_ADVANTAGE,
                description=f"Home field advantage +{HOME_FIELD_ADVANTAGE:.1%}",
            ),
        ]

    @staticmethod
    def record_summary(game: Game, home_record: TeamRecord, away_record: TeamRecord, total_games: int) -> str:
        return (
            f"{game.home_team.name} are {home_record} ({home_record.win_rate:.1%}) and "
            f"{game.away_team.name} are {away_record} ({away_record.win_rate:.1%}) this season. "
            f"Home field adds {HOME_FIELD_ADVANTAGE:.1%}. Based on {total_games} completed games."
        )

    async def predict(self, game: Game, context: PredictionContext) -> Prediction:
        raw, home_record, away_record, total_games = self.raw_probability(game, context)
        notes = [self.record_summary(game, home_record, away_record, total_games)]
        history = context.history_note()
        if history:
            notes.append(history)
        return Prediction(
            game=game,
            home_win_probability=clamp_probability(raw),
            confidence=self.sample_confidence(total_games),
            reasoning="Baseline prediction. " + " ".join(notes),
            factors=tuple(self.base_factors(home_record, away_record)),
            strategy=self.name,
        )

# =============================================================================
# ENHANCED
# =============================================================================

def _both(home: FetchResult, away: FetchResult) -> bool:
    return home.is_present and away.is_present


class EnhancedPredictor:
    name = "enhanced"

    def __init__(self, baseline: Optional[BaselinePredictor] = None):
        self.baseline = baseline or BaselinePredictor()

    @staticmethod
    def _injury_notes(team: Team, report: TeamInjuryReport) -> str:
        key = report.key_injuries
        if not key:
            return f"{team.abbreviation} impact {report.total_impact:.2f}"
        names = ", ".join(f"{p.name} ({p.position.value}, {p.status.value})" for p in key[:3])
        return f"{team.abbreviation} impact {report.total_impact:.2f}, key: {names}"

    @staticmethod
    def recent_form_factor(game: Game, home_games: List[Game], away_games: List[Game]) -> Optional[PredictionFactor]:
        if not home_games or not away_games:
            return None
        home_form = recent_form(game.home_team, home_games)
        away_form = recent_form(game.away_team, away_games)
        return PredictionFactor(
            name="recent_form",
            impact=(home_form.momentum - away_form.momentum) * RECENT_FORM_WEIGHT,
            description=(
                f"Recent form: {game.home_team.abbreviation} {home_form.summary()}; "
                f"{game.away_team.abbreviation} {away_form.summary()}"
            ),
        )

    @staticmethod
    def head_to_head_factor(game: Game, context: PredictionContext) -> Optional[PredictionFactor]:
        meetings = context.head_to_head(game)
        if not meetings:
            return None
        record = team_record(game.home_team, meetings)
        return PredictionFactor(
            name="head_to_head",
            impact=(record.win_rate - 0.5) * 0.4 * HEAD_TO_HEAD_WEIGHT,
            description=(
                f"Head-to-head: {game.home_team.abbreviation} {record} against "
                f"{game.away_team.abbreviation} over the last {HEAD_TO_HEAD_SEASONS} seasons"
            ),
        )

    @staticmethod
    def home_away_factor(game: Game, home_games: List[Game], away_games: List[Game]) -> Optional[PredictionFactor]:
        at_home = [g for g in home_games if g.is_home(game.home_team)]
        on_road = [g for g in away_games if not g.is_home(game.away_team)]
        if not at_home and not on_road:
            return None
        home_record = team_record(game.home_team, at_home)
        away_record = team_record(game.away_team, on_road)
        split = ((home_record.win_rate - 0.5) + (0.5 - away_record.win_rate)) / 2.0
        return PredictionFactor(
            name="home_away_split",
            impact=split * HOME_AWAY_WEIGHT,
            description=(
                f"Home/away split: {game.home_team.abbreviation} {home_record} at home, "
                f"{game.away_team.abbreviation} {away_record} on the road"
            ),
        )

    async def predict(self, game: Game, context: PredictionContext) -> Prediction:
        raw, home_record, away_record, total_games = self.baseline.raw_probability(game, context)
        home_games = context.completed_games(game.home_team, game)
        away_games = context.completed_games(game.away_team, game)
        factors = self.baseline.base_factors(home_record, away_record)
        notes = [self.baseline.record_summary(game, home_record, away_record, total_games)]
        history = context.history_note()
        if history:
            notes.append(history)
        present_kinds = 0

        for factor in (
            self.recent_form_factor(game, home_games, away_games),
            self.head_to_head_factor(game, context),
            self.home_away_factor(game, home_games, away_games),
        ):
            if factor is None:
                continue
            raw += factor.impact
            factors.append(factor)
            notes.append(f"{factor.description} ({factor.impact:+.1%}).")

        if _both(context.home_injuries, context.away_injuries):
            home_report, away_report = context.home_injuries.value, context.away_injuries.value
            adjustment = (away_report.total_impact - home_report.total_impact) * INJURY_WEIGHT
            raw += adjustment
            present_kinds += 1
            description = (
                f"Injuries: {self._injury_notes(game.home_team, home_report)}; "
                f"{self._injury_notes(game.away_team, away_report)}"
            )
            factors.append(PredictionFactor(name="injuries", impact=adjustment, description=description))
            notes.append(f"{description} ({adjustment:+.1%}).")
        else:
            notes.append("Injury reports unavailable; no injury adjustment applied.")

        if _both(context.home_news, context.away_news):
            home_news, away_news = context.home_news.value, context.away_news.value
            adjustment = (home_news.impact - away_news.impact) * NEWS_WEIGHT
            raw += adjustment
            present_kinds += 1
            description = (
                f"News: {game.home_team.abbreviation} {home_news.impact:+.2f} "
                f"from {home_news.article_count} articles, {game.away_team.abbreviation} "
                f"{away_news.impact:+.2f} from {away_news.article_count} articles"
            )
            factors.append(PredictionFactor(name="news", impact=adjustment, description=description))
            notes.append(f"{description} ({adjustment:+.1%}).")
            for signal in (home_news, away_news):
                if signal.key_headline:
                    notes.append(f"Key {signal.team.abbreviation} headline: \"{signal.key_headline}\".")
        else:
            notes.append("News unavailable; no news adjustment applied.")

        probability = clamp_probability(raw)
        home_score, away_score = predicted_scores(game, home_games, away_games, probability)
        notes.append(
            f"Projected score: {game.home_team.abbreviation} {home_score}, "
            f"{game.away_team.abbreviation} {away_score}."
        )
        confidence = min(
            1.0,
            SAMPLE_CONFIDENCE_WEIGHT * self.baseline.sample_confidence(total_games)
            + SUB_FETCH_CONFIDENCE * present_kinds,
        )
        return Prediction(
            game=game,
            home_win_probability=probability,
            confidence=confidence,
            reasoning="Enhanced prediction. " + " ".join(notes),
            factors=tuple(factors),
            strategy=self.name,
            predicted_home_score=home_score,
            predicted_away_score=away_score,
        )

# =============================================================================
# ENSEMBLE
# =============================================================================

class EnsemblePredictor:
    """Weighted average of other strategies.

    Members run concurrently. A member that raises PredictionError is
    skipped and the remaining weights are renormalized; only when every
    member fails does the ensemble fail.
    """
    name = "ensemble"

    def __init__(self, members: Sequence[Tuple[GamePredictor, float]]):
        if not members:
            raise ValueError("An ensemble needs at least one member")
        self.members = list(members)

    async def predict(self, game: Game, context: PredictionContext) -> Prediction:
        results = await asyncio.gather(
            *(predictor.predict(game, context) for predictor, _ in self.members),
            return_exceptions=True,
        )
        weighted: List[Tuple[Prediction, float]] = []
        for (predictor, weight), result in zip(self.members, results):
            if isinstance(result, PredictionError):
                logger.warning(f"Ensemble member {predictor.name} failed, skipping: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            weighted.append((result, weight))
        if not weighted:
            raise InsufficientDataError("Every ensemble member failed")

        total = sum(weight for _, weight in weighted)
        probability = sum(p.home_win_probability * weight for p, weight in weighted) / total
        confidence = sum(p.confidence * weight for p, weight in weighted) / total
        factors = tuple(
            PredictionFactor(
                name=f"{p.strategy}_model",
                impact=(p.home_win_probability - 0.5) * weight / total,
                description=f"{p.strategy} model: {p.home_win_probability:.1%} at weight {weight / total:.2f}",
            )
            for p, weight in weighted
        )
        lines = [f"Ensemble prediction combining {len(weighted)} models: {probability:.1%}."]
        lines += [
            f"{p.strategy} ({weight / total:.2f}): {p.home_win_probability:.1%}, "
            f"confidence {p.confidence:.1%}. {p.reasoning}"
            for p, weight in weighted
        ]
        scored = next((p for p, _ in weighted if p.predicted_home_score is not None), None)
        return Prediction(
            game=game,
            home_win_probability=clamp_probability(probability),
            confidence=min(1.0, confidence),
            reasoning="\n".join(lines),
            factors=factors,
            strategy=self.name,
            predicted_home_score=scored.predicted_home_score if scored else None,
            predicted_away_score=scored.predicted_away_score if scored else None,
        )

# =============================================================================
# STRATEGY SELECTION
# =============================================================================

STRATEGIES = ("baseline", "enhanced", "llm", "ensemble")


def build_predictor(settings, llm_client=None) -> GamePredictor:
    """Pick the strategy named by PREDICTOR_STRATEGY.

    "llm" and "ensemble" need either an injected client or an OpenAI key;
    without one the enhanced strategy is used instead. The ensemble blends
    the enhanced heuristic with the LLM at ENSEMBLE_LLM_WEIGHT.
    """
    strategy = (settings.PREDICTOR_STRATEGY or "enhanced").lower()
    if strategy not in STRATEGIES:
        logger.warning(f"Unknown predictor strategy '{strategy}', using enhanced")
        strategy = "enhanced"

    if strategy == "baseline":
        return BaselinePredictor()

    if strategy in ("llm", "ensemble"):
        from services.llm_predictor import ChatGPTClient, LLMPredictor

        if llm_client is None and settings.OPENAI_API_KEY:
            llm_client = ChatGPTClient(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL)
        if llm_client is not None:
            llm = LLMPredictor(llm_client)
            if strategy == "llm":
                return llm
            weight = settings.ENSEMBLE_LLM_WEIGHT
            return EnsemblePredictor([(EnhancedPredictor(), 1.0 - weight), (llm, weight)])
        logger.warning(f"PREDICTOR_STRATEGY={strategy} but OPENAI_API_KEY is not set, using enhanced")

    return EnhancedPredictor()
