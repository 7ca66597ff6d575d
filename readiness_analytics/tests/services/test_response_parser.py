"""
Tests for force-analysis response parsing and validation.
"""

import json
from decimal import Decimal

import pytest

from readiness_analytics.schemas import ForceType, ProviderErrorKind, QualityLabel, SentimentLabel
from readiness_analytics.services.llm.exceptions import ProviderError
from readiness_analytics.services.llm.response_parser import (
    parse_force_analysis,
    strip_code_fences,
    validate_response,
)
from readiness_analytics.tests.fakes import make_request


def valid_payload(**overrides):
    payload = {
        "primary_jtbd_force": "pain_of_old",
        "secondary_jtbd_forces": ["anxiety_of_new"],
        "force_strength_score": 4,
        "confidence_score": 5,
        "reasoning": "Respondent describes repetitive manual work.",
        "key_themes": ["manual reporting", "time pressure"],
        "sentiment_analysis": {
            "overall_score": -0.6,
            "sentiment_label": "negative",
            "emotional_indicators": ["frustration"],
        },
        "actionable_insights": {"summary_insight": "Automate monthly reporting."},
        "quality_indicators": {"response_quality": "good"},
    }
    payload.update(overrides)
    return payload


def test_parse_valid_response():
    request = make_request("r1")
    result = parse_force_analysis(request, json.dumps(valid_payload()), model="gpt-4o")

    assert result.item_id == "r1"
    assert result.primary_force == ForceType.PAIN_OF_OLD
    assert result.secondary_forces == [ForceType.ANXIETY_OF_NEW]
    assert result.force_strength == 4
    assert result.sentiment.label == SentimentLabel.NEGATIVE
    assert result.themes == ["manual reporting", "time pressure"]
    assert result.quality_label == QualityLabel.GOOD
    assert result.emotional_indicators == ["frustration"]
    assert result.summary_insight == "Automate monthly reporting."
    assert result.model == "gpt-4o"
    assert result.analyzed_at is not None


def test_code_fences_are_stripped():
    fenced = "```json\n" + json.dumps(valid_payload()) + "\n```"
    assert strip_code_fences(fenced).startswith("{")
    assert parse_force_analysis(make_request("r1"), fenced).primary_force == ForceType.PAIN_OF_OLD


def test_invalid_json_is_malformed_and_keeps_usage():
    with pytest.raises(ProviderError) as exc_info:
        parse_force_analysis(
            make_request("r1"), "not json", tokens_used=321, cost_cents=Decimal("0.0963")
        )

    error = exc_info.value
    assert error.kind == ProviderErrorKind.MALFORMED_RESPONSE
    assert error.retryable
    assert error.tokens_used == 321
    assert error.cost_cents == Decimal("0.0963")


@pytest.mark.parametrize(
    "overrides",
    [
        {"force_strength_score": 7},
        {"confidence_score": 0},
        {"sentiment_analysis": {"overall_score": 1.5}},
        {"actionable_insights": {}},
        {"primary_jtbd_force": "curiosity"},
    ],
)
def test_out_of_range_fields_are_rejected(overrides):
    with pytest.raises(ProviderError) as exc_info:
        parse_force_analysis(make_request("r1"), json.dumps(valid_payload(**overrides)))
    assert exc_info.value.kind == ProviderErrorKind.MALFORMED_RESPONSE


def test_missing_required_field_is_rejected():
    payload = valid_payload()
    del payload["key_themes"]
    with pytest.raises(ProviderError):
        parse_force_analysis(make_request("r1"), json.dumps(payload))


def test_missing_sentiment_label_is_derived_from_score():
    payload = valid_payload(sentiment_analysis={"overall_score": 0.7})
    result = parse_force_analysis(make_request("r1"), json.dumps(payload))
    assert result.sentiment.label == SentimentLabel.VERY_POSITIVE


def test_unknown_quality_counts_as_fair():
    payload = valid_payload(quality_indicators={"response_quality": "stellar"})
    result = parse_force_analysis(make_request("r1"), json.dumps(payload))
    assert result.quality_label == QualityLabel.FAIR


def test_secondary_forces_are_deduplicated_and_limited():
    payload = valid_payload(
        secondary_jtbd_forces=["pain_of_old", "pull_of_new", "pull_of_new", "unknown", "anchors_to_old", "anxiety_of_new"]
    )
    result = parse_force_analysis(make_request("r1"), json.dumps(payload))
    assert result.secondary_forces == [ForceType.PULL_OF_NEW, ForceType.ANCHORS_TO_OLD]


def test_quality_warnings_do_not_reject():
    report = validate_response(valid_payload(key_themes=[]), "A reasonably detailed answer about reporting.")
    assert report.is_valid
    assert report.warnings == ["No themes extracted - answer may be too short or unclear"]

    report = validate_response(valid_payload(), "short")
    assert report.is_valid
    assert report.warnings == ["Very short answer - analysis may be limited"]
    assert report.score == pytest.approx(0.9)
