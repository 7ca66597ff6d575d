"""
Tests for organizational aggregation.
"""

from datetime import datetime, timezone

from readiness_analytics.schemas import (
    ForceType,
    QualityLabel,
    ScoredResult,
    SentimentLabel,
    SentimentScore,
)
from readiness_analytics.services.analytics.aggregation import aggregate, rank_themes
from readiness_analytics.tests.fakes import make_result


def test_empty_input_gives_zero_metrics():
    metrics = aggregate([])

    assert metrics.total_responses == 0
    assert metrics.average_confidence == 0.0
    assert metrics.quality_score == 0.0
    assert metrics.force_distribution == {}
    assert metrics.theme_frequency == {}
    assert metrics.date_range is None


def test_theme_frequency_is_ranked_by_count():
    results = [
        make_result("1", themes=["A", "B"]),
        make_result("2", themes=["A"]),
        make_result("3", themes=["C", "A"]),
    ]
    frequency = aggregate(results).theme_frequency

    assert frequency == {"A": 3, "B": 1, "C": 1}
    assert list(frequency)[0] == "A"


def test_theme_ranking_is_limited():
    results = [make_result(str(i), themes=[f"theme-{i}"]) for i in range(30)]
    assert len(rank_themes(results)) == 20


def test_quality_score_is_mean_of_weights():
    results = [
        make_result("1", quality_label=QualityLabel.GOOD),
        make_result("2", quality_label=QualityLabel.EXCELLENT),
        make_result("3", quality_label=QualityLabel.POOR),
        make_result("4", quality_label=QualityLabel.FAIR),
    ]
    assert aggregate(results).quality_score == 2.5


def test_distributions_and_averages():
    results = [
        make_result("1", primary_force=ForceType.PAIN_OF_OLD, force_strength=4, confidence=5,
                    sentiment_score=-0.5, sentiment_label=SentimentLabel.NEGATIVE),
        make_result("2", primary_force=ForceType.PAIN_OF_OLD, force_strength=2, confidence=4,
                    sentiment_score=-0.3, sentiment_label=SentimentLabel.NEGATIVE),
        make_result("3", primary_force=ForceType.PULL_OF_NEW, force_strength=5, confidence=3,
                    sentiment_score=0.8, sentiment_label=SentimentLabel.VERY_POSITIVE),
    ]
    metrics = aggregate(results)

    assert metrics.total_responses == 3
    assert metrics.force_distribution == {ForceType.PAIN_OF_OLD: 2, ForceType.PULL_OF_NEW: 1}
    assert metrics.sentiment_distribution == {
        SentimentLabel.NEGATIVE: 2,
        SentimentLabel.VERY_POSITIVE: 1,
    }
    assert metrics.average_confidence == 4.0
    assert metrics.average_force_strength == 3.67
    assert metrics.average_sentiment == 0.0
    assert metrics.force_strength_by_force == {ForceType.PAIN_OF_OLD: 3.0, ForceType.PULL_OF_NEW: 5.0}


def test_aggregate_is_idempotent():
    results = [make_result(str(i), themes=["x", f"t{i % 3}"]) for i in range(7)]
    assert aggregate(results) == aggregate(results)


def test_out_of_range_results_are_excluded():
    bad = ScoredResult.model_construct(
        item_id="bad",
        primary_force=ForceType.PAIN_OF_OLD,
        secondary_forces=[],
        force_strength=9,
        confidence=3,
        sentiment=SentimentScore(score=0.1, label=SentimentLabel.NEUTRAL),
        themes=["ignored"],
        quality_label=QualityLabel.GOOD,
        reasoning="",
        emotional_indicators=[],
        summary_insight=None,
        model=None,
        analyzed_at=None,
    )
    metrics = aggregate([make_result("ok"), bad])

    assert metrics.total_responses == 1
    assert metrics.excluded == 1
    assert "ignored" not in metrics.theme_frequency


def test_date_range_spans_analysis_times():
    early = datetime(2024, 3, 1, 9, tzinfo=timezone.utc)
    late = datetime(2024, 3, 5, 17, tzinfo=timezone.utc)
    metrics = aggregate([
        make_result("1", analyzed_at=late),
        make_result("2", analyzed_at=early),
    ])

    assert metrics.date_range.earliest == early
    assert metrics.date_range.latest == late
