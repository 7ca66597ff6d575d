"""
Test doubles for provider adapters and scored results.
"""

import asyncio
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from readiness_analytics.schemas import (
    AnalysisRequest,
    ForceType,
    QualityLabel,
    RespondentContext,
    ScoredResult,
    SentimentLabel,
    SentimentScore,
)
from readiness_analytics.services.llm.exceptions import ProviderError
from readiness_analytics.services.llm.providers.base import (
    BaseProviderAdapter,
    Completion,
    ProviderResponse,
)

TOKENS_PER_CALL = 1000
COST_PER_CALL = Decimal("0.0150")  # 1000 tokens of gpt-4o-mini


def make_request(item_id: str, force: ForceType = ForceType.PAIN_OF_OLD, answer: str = None) -> AnalysisRequest:
    return AnalysisRequest(
        item_id=item_id,
        question_id="q1",
        question_text="What slows your team down today?",
        expected_force=force,
        context=RespondentContext(role="Analyst", department="Finance"),
        raw_answer_text=answer or "Manual reporting takes two full days every month.",
    )


def make_result(
    item_id: str = "item",
    primary_force: ForceType = ForceType.PAIN_OF_OLD,
    force_strength: float = 4,
    confidence: float = 4,
    sentiment_score: float = -0.4,
    sentiment_label: SentimentLabel = SentimentLabel.NEGATIVE,
    themes: Iterable[str] = ("manual reporting",),
    quality_label: QualityLabel = QualityLabel.GOOD,
    **overrides,
) -> ScoredResult:
    return ScoredResult(
        item_id=item_id,
        primary_force=primary_force,
        force_strength=force_strength,
        confidence=confidence,
        sentiment=SentimentScore(score=sentiment_score, label=sentiment_label),
        themes=list(themes),
        quality_label=quality_label,
        reasoning="test",
        **overrides,
    )


class ScriptedProvider(BaseProviderAdapter):
    """
    Provider whose behaviour per item is scripted.

    ``script`` maps item ids to a list of steps consumed one per call; a step
    that is an exception is raised, anything else means success. ``failing``
    maps item ids to an error raised on every call.
    """

    provider_name = "scripted"

    def __init__(
        self,
        script: Optional[Dict[str, List[object]]] = None,
        failing: Optional[Dict[str, ProviderError]] = None,
        delay: float = 0.0,
        delays: Optional[Dict[str, float]] = None,
    ):
        super().__init__({"model": "gpt-4o-mini"})
        self.script = {item_id: list(steps) for item_id, steps in (script or {}).items()}
        self.failing = dict(failing or {})
        self.delay = delay
        self.delays = dict(delays or {})
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.started = asyncio.Event()

    async def analyze(self, request: AnalysisRequest) -> ProviderResponse:
        self.calls.append(request.item_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            delay = self.delays.get(request.item_id, self.delay)
            if delay:
                await asyncio.sleep(delay)
            if request.item_id in self.failing:
                raise self.failing[request.item_id]
            steps = self.script.get(request.item_id)
            step = steps.pop(0) if steps else None
            if isinstance(step, BaseException):
                raise step
            return ProviderResponse(
                result=make_result(request.item_id, primary_force=request.expected_force),
                tokens_used=TOKENS_PER_CALL,
                cost_cents=COST_PER_CALL,
                model=self.model_name,
            )
        finally:
            self.in_flight -= 1

    async def _complete(self, system_instruction: str, prompt: str) -> Completion:
        return Completion(text='{"status": "ok"}', tokens_used=5)

    def _get_client(self):
        return None
