# backend/services/llm_predictor.py
import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional, Protocol

from openai import OpenAI

from models.errors import InsufficientDataError
from models.game_models import Game, Prediction, PredictionFactor, Team, TeamInjuryReport, clamp_probability
from services.news_analyzer import NewsSignal
from services.predictors import PredictionContext, team_record

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert NFL analyst. Answer only with the JSON object requested, "
    "using numbers for probabilities and confidence."
)

RECENT_RESULTS = 3
HEADLINES_PER_TEAM = 5


class LLMClient(Protocol):
    async def complete(self, prompt: str) -> str: ...


class ChatGPTClient:
    """OpenAI chat-completions client; the blocking SDK call runs in a worker thread"""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", max_tokens: int = 800,
                 temperature: float = 0.3, client: Optional[OpenAI] = None):
        self.client = client or OpenAI(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        logger.info(f"ChatGPT client initialized with model {model}")

    def _complete(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        return (response.choices[0].message.content or "").strip()

    async def complete(self, prompt: str) -> str:
        return await asyncio.to_thread(self._complete, prompt)

# =============================================================================
# PROMPT
# =============================================================================

def _recent_results(team: Team, games: List[Game]) -> List[str]:
    lines = []
    for game in sorted(games, key=lambda g: g.scheduled_date, reverse=True)[:RECENT_RESULTS]:
        home = game.is_home(team)
        team_score = game.outcome.home_score if home else game.outcome.away_score
        opponent_score = game.outcome.away_score if home else game.outcome.home_score
        location = "vs" if home else "@"
        lines.append(f"  {game.result_for(team)} {location} {game.opponent_of(team).abbreviation} {team_score}-{opponent_score}")
    return lines


def _injury_lines(report: TeamInjuryReport) -> List[str]:
    if not report.injuries:
        return ["  No reported injuries"]
    worst = sorted(report.injuries, key=lambda p: p.impact, reverse=True)[:5]
    return [f"  {p.name} ({p.position.value}) - {p.status.value}" for p in worst]


def _headline_lines(signal: NewsSignal) -> List[str]:
    return [f"  [{article.source.upper()}] {article.title}" for article in signal.articles[:HEADLINES_PER_TEAM]]


def build_prompt(game: Game, context: PredictionContext) -> str:
    sections = [
        "You are an expert NFL analyst. Analyze this upcoming game and provide a prediction.",
        "",
        "GAME DETAILS:",
        f"Home Team: {game.home_team.name} ({game.home_team.abbreviation})",
        f"Away Team: {game.away_team.name} ({game.away_team.abbreviation})",
        f"Date: {game.scheduled_date.strftime('%b %d, %Y %H:%M UTC')}",
        f"Week: {game.week}, Season: {game.season}",
    ]

    for label, team, injuries, news in (
        ("HOME", game.home_team, context.home_injuries, context.home_news),
        ("AWAY", game.away_team, context.away_injuries, context.away_news),
    ):
        games = context.completed_games(team, game)
        if games:
            sections += ["", f"{label} TEAM RECORD: {team_record(team, games)}", "Recent games:"]
            sections += _recent_results(team, games)
        if injuries.is_present:
            sections += ["", f"{label} TEAM INJURIES:"] + _injury_lines(injuries.value)
        if news.is_present and news.value.articles:
            sections += ["", f"{label} TEAM NEWS & SOCIAL MEDIA:"] + _headline_lines(news.value)

    sections += [
        "",
        "ANALYSIS REQUIRED:",
        "1. Analyze team performance trends",
        "2. Consider injury reports and roster changes from news",
        "3. Evaluate momentum and narrative factors from social media",
        "4. Account for home field advantage",
        "5. Consider division rivalry dynamics if applicable",
        "",
        "Provide your response in this JSON format:",
        "{",
        '    "homeWinProbability": <number between 0.0 and 1.0>,',
        '    "confidence": <number between 0.0 and 1.0>,',
        '    "reasoning": "<detailed explanation>",',
        '    "keyFactors": ["factor1", "factor2", "factor3"]',
        "}",
    ]
    return "\n".join(sections)

# =============================================================================
# RESPONSE PARSING
# =============================================================================

_JSON_FENCE = re.compile(r"```json\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_BARE_FENCE = re.compile(r"```\s*(.*?)```", re.DOTALL)


def extract_json(text: str) -> str:
    """JSON body from a ```json fence, a bare ``` fence, or the outermost {...} span"""
    for pattern in (_JSON_FENCE, _BARE_FENCE):
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise InsufficientDataError("LLM response contained no JSON object")
    return text[start:end + 1]


def _unit_interval(payload: Dict[str, Any], field: str) -> float:
    value = payload.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InsufficientDataError(f"LLM response field '{field}' is missing or not a number")
    if not 0.0 <= value <= 1.0:
        raise InsufficientDataError(f"LLM response field '{field}' out of range: {value}")
    return float(value)


def parse_llm_response(text: str) -> Dict[str, Any]:
    """Validated {homeWinProbability, confidence, reasoning, keyFactors} payload"""
    try:
        payload = json.loads(extract_json(text or ""))
    except json.JSONDecodeError as e:
        raise InsufficientDataError(f"LLM response is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise InsufficientDataError("LLM response JSON is not an object")

    reasoning = payload.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning.strip():
        raise InsufficientDataError("LLM response has no reasoning")
    key_factors = payload.get("keyFactors") or []
    if not isinstance(key_factors, list):
        raise InsufficientDataError("LLM response keyFactors is not a list")

    return {
        "homeWinProbability": _unit_interval(payload, "homeWinProbability"),
        "confidence": _unit_interval(payload, "confidence"),
        "reasoning": reasoning.strip(),
        "keyFactors": [str(factor) for factor in key_factors],
    }


class LLMPredictor:
    name = "llm"

    def __init__(self, client: LLMClient):
        self.client = client

    async def predict(self, game: Game, context: PredictionContext) -> Prediction:
        if context.history_gaps:
            missing = ", ".join(team.abbreviation for team in context.history_gaps)
            raise InsufficientDataError(f"Season history unavailable for {missing}")
        prompt = build_prompt(game, context)
        try:
            text = await self.client.complete(prompt)
        except Exception as e:
            logger.error(f"LLM request failed for {game.away_team.abbreviation} @ {game.home_team.abbreviation}: {e}")
            raise InsufficientDataError(f"LLM request failed: {e}") from e

        parsed = parse_llm_response(text)
        return Prediction(
            game=game,
            home_win_probability=clamp_probability(parsed["homeWinProbability"]),
            confidence=parsed["confidence"],
            reasoning=parsed["reasoning"],
            factors=tuple(
                PredictionFactor(name=f"llm_factor_{i + 1}", impact=0.0, description=factor)
                for i, factor in enumerate(parsed["keyFactors"])
            ),
            strategy=self.name,
        )
