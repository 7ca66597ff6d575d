"""
Parsing and validation of provider force-analysis responses.

Providers are asked for a snake_case JSON object. This module turns the raw
text into a ScoredResult, rejecting structurally invalid output as a
retryable ``malformed_response`` ProviderError, and scores answer quality
with soft warnings that never reject a response.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from readiness_analytics.infrastructure.constants.llm_constants import (
    MAX_ANSWER_LENGTH,
    MAX_THEMES,
    MIN_ANSWER_LENGTH,
)
from readiness_analytics.schemas import (
    AnalysisRequest,
    ForceType,
    ProviderErrorKind,
    QualityLabel,
    ScoredResult,
    SentimentLabel,
)
from readiness_analytics.services.llm.exceptions import ProviderError
from readiness_analytics.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "primary_jtbd_force",
    "force_strength_score",
    "confidence_score",
    "key_themes",
    "sentiment_analysis",
    "actionable_insights",
)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass
class ValidationReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def score(self) -> float:
        return max(0.0, 1 - len(self.errors) * 0.2 - len(self.warnings) * 0.1)


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text.strip()).strip()


def _in_range(value: Any, lower: float, upper: float) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and lower <= value <= upper


def validate_response(payload: Dict[str, Any], answer_text: str) -> ValidationReport:
    """
    Check a decoded response for required fields, score ranges and answer quality.

    Args:
        payload: Decoded JSON object from the provider
        answer_text: The answer that was analyzed

    Returns:
        ValidationReport; errors make the response unusable, warnings do not
    """
    report = ValidationReport()

    for name in REQUIRED_FIELDS:
        if name not in payload or payload[name] in (None, ""):
            report.errors.append(f"Missing required field: {name}")

    if "force_strength_score" in payload and not _in_range(payload["force_strength_score"], 1, 5):
        report.errors.append("Force strength score must be 1-5")
    if "confidence_score" in payload and not _in_range(payload["confidence_score"], 1, 5):
        report.errors.append("Confidence score must be 1-5")

    sentiment = payload.get("sentiment_analysis")
    if isinstance(sentiment, dict):
        if not _in_range(sentiment.get("overall_score"), -1, 1):
            report.errors.append("Sentiment score must be -1 to 1")
    elif sentiment is not None:
        report.errors.append("sentiment_analysis must be an object")

    insights = payload.get("actionable_insights")
    if not isinstance(insights, dict) or not insights.get("summary_insight"):
        report.errors.append("Summary insight is required")

    themes = payload.get("key_themes") or []
    if not themes:
        report.warnings.append("No themes extracted - answer may be too short or unclear")
    elif len(themes) > MAX_THEMES:
        report.warnings.append("Too many themes extracted - answer may be unfocused")

    if len(answer_text) < MIN_ANSWER_LENGTH:
        report.warnings.append("Very short answer - analysis may be limited")
    elif len(answer_text) > MAX_ANSWER_LENGTH:
        report.warnings.append("Very long answer - may contain multiple themes")

    return report


def _sentiment_label_for(score: float) -> SentimentLabel:
    if score <= -0.6:
        return SentimentLabel.VERY_NEGATIVE
    if score < -0.2:
        return SentimentLabel.NEGATIVE
    if score <= 0.2:
        return SentimentLabel.NEUTRAL
    if score < 0.6:
        return SentimentLabel.POSITIVE
    return SentimentLabel.VERY_POSITIVE


def _coerce_quality(value: Any) -> QualityLabel:
    try:
        return QualityLabel(str(value).lower())
    except ValueError:
        # Unrated answers count as fair
        return QualityLabel.FAIR


def _secondary_forces(values: Any, primary: ForceType) -> List[ForceType]:
    forces: List[ForceType] = []
    for value in values or []:
        try:
            force = ForceType(str(value).lower())
        except ValueError:
            logger.debug(f"Dropping unknown secondary force {value!r}")
            continue
        if force != primary and force not in forces:
            forces.append(force)
    return forces[:2]


def parse_force_analysis(
    request: AnalysisRequest,
    raw_text: str,
    model: Optional[str] = None,
    tokens_used: int = 0,
    cost_cents: Decimal = Decimal("0"),
) -> ScoredResult:
    """
    Parse a provider response into a ScoredResult.

    Args:
        request: The request the response answers
        raw_text: Raw completion text
        model: Model that produced the response
        tokens_used: Tokens consumed, carried on the error if parsing fails
        cost_cents: Cost of the call, carried on the error if parsing fails

    Returns:
        The validated ScoredResult

    Raises:
        ProviderError: kind ``malformed_response`` when the output is unusable
    """

    def malformed(message: str) -> ProviderError:
        return ProviderError(
            message,
            kind=ProviderErrorKind.MALFORMED_RESPONSE,
            tokens_used=tokens_used,
            cost_cents=cost_cents,
        )

    try:
        payload = json.loads(strip_code_fences(raw_text or ""))
    except json.JSONDecodeError as e:
        raise malformed(f"Provider returned invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise malformed("Provider returned JSON that is not an object")

    report = validate_response(payload, request.raw_answer_text)
    if not report.is_valid:
        raise malformed(f"Invalid response structure: {', '.join(report.errors)}")
    for warning in report.warnings:
        logger.debug(f"Item {request.item_id}: {warning}")

    try:
        primary = ForceType(str(payload["primary_jtbd_force"]).lower())
    except ValueError as e:
        raise malformed(f"Unknown primary force: {payload['primary_jtbd_force']!r}") from e

    sentiment = payload["sentiment_analysis"]
    score = float(sentiment["overall_score"])
    try:
        label = SentimentLabel(str(sentiment.get("sentiment_label", "")).lower())
    except ValueError:
        label = _sentiment_label_for(score)

    quality = payload.get("quality_indicators") or {}

    try:
        return ScoredResult(
            item_id=request.item_id,
            primary_force=primary,
            secondary_forces=_secondary_forces(payload.get("secondary_jtbd_forces"), primary),
            force_strength=payload["force_strength_score"],
            confidence=payload["confidence_score"],
            sentiment={"score": score, "label": label},
            themes=[str(t).strip() for t in payload.get("key_themes") or [] if str(t).strip()],
            quality_label=_coerce_quality(quality.get("response_quality")),
            reasoning=str(payload.get("reasoning") or ""),
            emotional_indicators=[str(e) for e in sentiment.get("emotional_indicators") or []],
            summary_insight=payload["actionable_insights"].get("summary_insight"),
            model=model,
            analyzed_at=utc_now(),
        )
    except ValidationError as e:
        raise malformed(f"Response failed validation: {e.errors()[0]['msg']}") from e
