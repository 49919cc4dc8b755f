from __future__ import annotations

import json
import math
from typing import Any, List, Mapping, Optional

from ..errors import MalformedResponse
from ..models import (
    AnalysisResult,
    CompetitorSection,
    ContentStrategySection,
    OpportunitiesSection,
    Priority,
    Recommendation,
    Scores,
    SimilarChannel,
    StrengthsSection,
    WeaknessesSection,
)

REQUIRED_SECTIONS = ("strengths", "weaknesses", "opportunities", "scores")
VALID_PRIORITIES = ("HIGH", "MEDIUM", "LOW")
DEFAULT_PRIORITY: Priority = "MEDIUM"


def parse_analysis_response(response_text: str) -> AnalysisResult:
    """
    Parse a provider answer into an AnalysisResult.

    Only the presence of the four top-level sections is enforced; every
    leaf field falls back to an explicit default so a partially garbled
    answer still yields a complete result.
    """
    payload = extract_json_object(response_text)

    missing = [name for name in REQUIRED_SECTIONS if payload.get(name) is None]
    if missing:
        raise MalformedResponse(
            f"Invalid response format: missing required fields ({', '.join(missing)})"
        )
    return decode_analysis(payload)


def extract_json_object(text: str) -> dict:
    """
    Return the JSON object in a provider answer.

    Handles:
    - A bare JSON object
    - JSON wrapped in prose or a markdown code block (first balanced object wins)
    """
    raw = (text or "").strip()
    if not raw:
        raise MalformedResponse("Empty response")

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        parsed = None
    except ValueError as exc:
        # Valid syntax the decoder still refuses, e.g. integers past the digit limit.
        raise MalformedResponse(f"Invalid JSON in response: {exc}") from exc
    if isinstance(parsed, dict):
        return parsed

    decoder = json.JSONDecoder()
    start = raw.find("{")
    while start != -1:
        try:
            candidate, _ = decoder.raw_decode(raw, start)
        except json.JSONDecodeError:
            candidate = None
        except ValueError as exc:
            raise MalformedResponse(f"Invalid JSON in response: {exc}") from exc
        if isinstance(candidate, dict):
            return candidate
        start = raw.find("{", start + 1)

    raise MalformedResponse("No JSON found in response")


def decode_analysis(payload: Mapping[str, Any]) -> AnalysisResult:
    strengths = _as_mapping(payload.get("strengths"))
    weaknesses = _as_mapping(payload.get("weaknesses"))
    opportunities = _as_mapping(payload.get("opportunities"))
    scores = _as_mapping(payload.get("scores"))

    return AnalysisResult(
        strengths=StrengthsSection(
            summary=_as_text(strengths.get("summary")),
            details=_as_text_list(strengths.get("details")),
            score=clamp_score(strengths.get("score")),
        ),
        weaknesses=WeaknessesSection(
            summary=_as_text(weaknesses.get("summary")),
            details=_as_text_list(weaknesses.get("details")),
            areas=_as_text_list(weaknesses.get("areas")),
        ),
        opportunities=OpportunitiesSection(
            summary=_as_text(opportunities.get("summary")),
            recommendations=[
                _decode_recommendation(item)
                for item in _as_list(opportunities.get("recommendations"))
                if isinstance(item, Mapping)
            ],
        ),
        scores=Scores(
            overall=clamp_score(scores.get("overall")),
            content_quality=clamp_score(scores.get("contentQuality")),
            engagement=clamp_score(scores.get("engagement")),
            growth_potential=clamp_score(scores.get("growthPotential")),
        ),
        competitors=_decode_competitors(payload.get("competitors")),
        content_strategy=_decode_content_strategy(payload.get("contentStrategy")),
    )


def clamp_score(value: Any) -> int:
    """Coerce a raw score to an integer in [0, 100]; non-numeric values become 0."""
    number = _as_number(value)
    if number is None:
        return 0
    bounded = max(0.0, min(100.0, number))
    return int(math.floor(bounded + 0.5))


def _decode_recommendation(item: Mapping[str, Any]) -> Recommendation:
    priority = _as_text(item.get("priority")).strip().upper()
    return Recommendation(
        title=_as_text(item.get("title")),
        description=_as_text(item.get("description")),
        priority=priority if priority in VALID_PRIORITIES else DEFAULT_PRIORITY,  # type: ignore[arg-type]
        estimated_impact=_as_text(item.get("estimatedImpact")),
    )


def _decode_competitors(value: Any) -> Optional[CompetitorSection]:
    if not isinstance(value, Mapping):
        return None
    return CompetitorSection(
        similar_channels=[
            SimilarChannel(
                channel_id=_as_text(item.get("channelId")),
                name=_as_text(item.get("name")),
                subscribers=_as_count(item.get("subscribers")),
                why_relevant=_as_text(item.get("whyRelevant")),
            )
            for item in _as_list(value.get("similarChannels"))
            if isinstance(item, Mapping)
        ],
        competitive_advantages=_as_text_list(value.get("competitiveAdvantages")),
        gaps=_as_text_list(value.get("gaps")),
    )


def _decode_content_strategy(value: Any) -> Optional[ContentStrategySection]:
    if not isinstance(value, Mapping):
        return None
    return ContentStrategySection(
        recommended_topics=_as_text_list(value.get("recommendedTopics")),
        content_gaps=_as_text_list(value.get("contentGaps")),
        optimization_tips=_as_text_list(value.get("optimizationTips")),
    )


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_text_list(value: Any) -> List[str]:
    texts: List[str] = []
    for item in _as_list(value):
        if isinstance(item, str):
            texts.append(item)
        elif isinstance(item, (int, float)) and not isinstance(item, bool):
            texts.append(str(item))
    return texts


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, int):
        try:
            number = float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    elif isinstance(value, float):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


def _as_count(value: Any) -> int:
    number = _as_number(value)
    if number is None or math.isinf(number):
        return 0
    return max(0, int(number))
