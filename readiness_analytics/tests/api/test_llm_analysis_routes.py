"""
Tests for the LLM analysis API routes.
"""

from decimal import Decimal

from readiness_analytics.schemas import ProviderErrorKind
from readiness_analytics.services.llm.exceptions import ProviderError


def _item(item_id, category="pain", answer="Reports take two days to assemble by hand."):
    return {
        "item_id": item_id,
        "question": {"id": "q1", "text": "What slows your team down today?", "category": category},
        "answer": answer,
        "respondent": {"role": "Analyst", "department": "Finance"},
    }


def _run_batch(client, items, **options):
    payload = {"items": items, "options": {"organization_id": "org_1", **options}}
    return client.post("/api/llm/batch", json=payload)


def test_app_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_batch_analysis(client):
    response = _run_batch(
        client,
        [_item("a"), _item("b"), _item("c", category="demographic")],
        survey_id="s1",
    )

    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["total_requested"] == 2
    assert data["summary"]["succeeded"] == 2
    assert data["summary"]["failed"] == 0
    assert Decimal(data["summary"]["total_cost_cents"]) == Decimal("0.03")
    assert {r["item_id"] for r in data["results"]} == {"a", "b"}
    assert data["skipped"] == [{"item_id": "c", "reason": "demographic_excluded"}]


def test_batch_item_failures_are_reported(client, provider):
    provider.failing["b"] = ProviderError("invalid api key", kind=ProviderErrorKind.AUTH)

    response = _run_batch(client, [_item("a"), _item("b")])

    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["succeeded"] == 1
    assert data["failures"][0]["item_id"] == "b"
    assert data["failures"][0]["error_kind"] == "auth"


def test_batch_with_nothing_to_analyze(client):
    response = _run_batch(client, [_item("a", category="demographic")])

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "No analyzable items in batch"


def test_batch_with_duplicate_ids(client):
    response = _run_batch(client, [_item("a"), _item("a")])

    assert response.status_code == 400
    assert "Duplicate item id" in response.json()["detail"]


def test_batch_rejects_invalid_options(client):
    response = _run_batch(client, [_item("a")], parallelism=0)
    assert response.status_code == 422


def test_list_batch_logs(client):
    batch_id = _run_batch(client, [_item("a")]).json()["summary"]["batch_id"]

    response = client.get("/api/llm/batch", params={"organization_id": "org_1"})

    assert response.status_code == 200
    assert [log["batch_id"] for log in response.json()] == [batch_id]


def test_analyze_single(client):
    response = client.post(
        "/api/llm/analyze",
        json={"item": _item("solo"), "options": {"organization_id": "org_1"}},
    )

    assert response.status_code == 200
    assert response.json()["item_id"] == "solo"
    assert response.json()["primary_force"] == "pain_of_old"


def test_analyze_single_failure_maps_status(client, provider):
    provider.failing["solo"] = ProviderError("quota exhausted", kind=ProviderErrorKind.RATE_LIMITED)

    response = client.post(
        "/api/llm/analyze",
        json={"item": _item("solo"), "options": {"organization_id": "org_1", "max_retries": 1}},
    )

    assert response.status_code == 429
    detail = response.json()["detail"]
    assert detail["error_kind"] == "rate_limited"
    assert detail["attempts"] == 2


def test_analyze_single_skipped_item(client):
    response = client.post("/api/llm/analyze", json={"item": _item("solo", answer="   ")})

    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "empty_answer"


def test_cost_tracking(client):
    _run_batch(client, [_item("a"), _item("b")], survey_id="s1")

    response = client.get(
        "/api/llm/cost-tracking",
        params={"organization_id": "org_1", "timeframe": "7d", "granularity": "month"},
    )

    assert response.status_code == 200
    report = response.json()
    assert report["degraded"] is False
    assert report["summary"]["total_requests"] == 2
    assert report["summary"]["success_rate"] == 100.0
    assert len(report["buckets"]) == 1
    assert report["buckets"][0]["requests"] == 2
    assert report["by_provider"][0]["key"] == "scripted"
    assert report["by_survey"][0]["key"] == "s1"
    assert report["alerts"] == []


def test_cost_tracking_rejects_unknown_timeframe(client):
    response = client.get("/api/llm/cost-tracking", params={"organization_id": "org_1", "timeframe": "2w"})
    assert response.status_code == 400


def test_cost_settings_drive_alerts(client):
    response = client.put(
        "/api/llm/cost-tracking/settings",
        json={
            "organization_id": "org_1",
            "monthly_budget_cents": 1,
            "daily_limit_cents": 1000,
            "thresholds": {"monthly_critical_pct": 1, "monthly_warning_pct": 0.5},
        },
    )
    assert response.status_code == 200
    assert response.json()["monthly_budget_cents"] == 1

    _run_batch(client, [_item("a")])

    report = client.get("/api/llm/cost-tracking", params={"organization_id": "org_1"}).json()
    alert_types = [(a["type"], a["severity"]) for a in report["alerts"]]
    assert alert_types == [("monthly_budget", "critical")]


def test_organizational_metrics_from_payload(client):
    result = {
        "item_id": "x",
        "primary_force": "anxiety_of_new",
        "force_strength": 3,
        "confidence": 4,
        "sentiment": {"score": -0.2, "label": "neutral"},
        "themes": ["job security"],
        "quality_label": "excellent",
    }
    response = client.post("/api/llm/organizational", json={"results": [result, {**result, "item_id": "y"}]})

    assert response.status_code == 200
    metrics = response.json()
    assert metrics["total_responses"] == 2
    assert metrics["force_distribution"] == {"anxiety_of_new": 2}
    assert metrics["theme_frequency"] == {"job security": 2}
    assert metrics["quality_score"] == 4.0


def test_organizational_metrics_from_store(client):
    _run_batch(client, [_item("a"), _item("b")])

    response = client.get("/api/llm/organizational/org_1")

    assert response.status_code == 200
    assert response.json()["total_responses"] == 2


def test_provider_health(client):
    response = client.get("/api/llm/health")

    assert response.status_code == 200
    assert response.json()["provider"] == "scripted"
    assert response.json()["status"] == "healthy"
