"""
Request classification.

Turns a (question, answer, respondent) triple into a typed AnalysisRequest
by mapping the question's declared category onto a force type, or into a
ClassificationSkip when policy excludes the item.
"""

import json
import logging
from typing import Any, Iterable, List, Optional, Tuple, Union

from readiness_analytics.infrastructure.constants.llm_constants import (
    MAX_QUESTION_LENGTH,
    MAX_RESPONSE_LENGTH,
)
from readiness_analytics.schemas import (
    AnalysisRequest,
    BatchItem,
    BatchOptions,
    ClassificationSkip,
    ForceType,
    QuestionDefinition,
    RespondentContext,
)

logger = logging.getLogger(__name__)

# Declared question category -> force type. Categories not listed map to
# DEFAULT_FORCE.
CATEGORY_FORCE_MAP = {
    "pain": ForceType.PAIN_OF_OLD,
    "problems": ForceType.PAIN_OF_OLD,
    "current_issues": ForceType.PAIN_OF_OLD,
    "benefits": ForceType.PULL_OF_NEW,
    "opportunities": ForceType.PULL_OF_NEW,
    "ai_potential": ForceType.PULL_OF_NEW,
    "barriers": ForceType.ANCHORS_TO_OLD,
    "resistance": ForceType.ANCHORS_TO_OLD,
    "organizational": ForceType.ANCHORS_TO_OLD,
    "concerns": ForceType.ANXIETY_OF_NEW,
    "fears": ForceType.ANXIETY_OF_NEW,
    "risks": ForceType.ANXIETY_OF_NEW,
    "demographic": ForceType.DEMOGRAPHIC,
    "usage": ForceType.DEMOGRAPHIC,
    "experience": ForceType.DEMOGRAPHIC,
}

DEFAULT_FORCE = ForceType.DEMOGRAPHIC

SKIP_DEMOGRAPHIC = "demographic_excluded"
SKIP_EMPTY_ANSWER = "empty_answer"

ClassificationOutcome = Union[AnalysisRequest, ClassificationSkip]


def map_category_to_force(category: Optional[str]) -> ForceType:
    """
    Map a declared question category onto a force type.

    Matching ignores case and surrounding whitespace. Missing or unknown
    categories map to ``demographic``.
    """
    if not category:
        return DEFAULT_FORCE
    return CATEGORY_FORCE_MAP.get(category.strip().lower(), DEFAULT_FORCE)


def answer_to_text(answer: Any) -> str:
    """Render an answer value as text; structured values become JSON."""
    if answer is None:
        return ""
    if isinstance(answer, str):
        return answer.strip()
    return json.dumps(answer, ensure_ascii=False, default=str)


def _truncate(text: str, limit: int, label: str, item_id: str) -> str:
    if len(text) <= limit:
        return text
    logger.debug(f"Truncating {label} for item {item_id} from {len(text)} to {limit} characters")
    return text[:limit]


def classify(
    question: QuestionDefinition,
    answer: Any,
    context: Optional[RespondentContext] = None,
    options: Optional[BatchOptions] = None,
    item_id: Optional[str] = None,
) -> ClassificationOutcome:
    """
    Classify one answer.

    Args:
        question: Question definition with id, text and declared category
        answer: Free text or a structured answer value
        context: Respondent context; blank fields default to "Not specified"
        options: Batch options; only ``include_demographic`` is consulted
        item_id: Identifier for the item, defaults to the question id

    Returns:
        AnalysisRequest, or ClassificationSkip when excluded by policy
    """
    options = options or BatchOptions()
    item_id = item_id or question.id

    text = answer_to_text(answer)
    if not text:
        return ClassificationSkip(item_id=item_id, reason=SKIP_EMPTY_ANSWER)

    force = map_category_to_force(question.category)
    if force == ForceType.DEMOGRAPHIC and not options.include_demographic:
        return ClassificationSkip(item_id=item_id, reason=SKIP_DEMOGRAPHIC)

    base_context = context or RespondentContext()
    resolved_context = base_context.model_copy(
        update={"question_category": question.category or base_context.question_category}
    )

    return AnalysisRequest(
        item_id=item_id,
        question_id=question.id,
        question_text=_truncate(question.text, MAX_QUESTION_LENGTH, "question", item_id),
        expected_force=force,
        context=resolved_context,
        raw_answer_text=_truncate(text, MAX_RESPONSE_LENGTH, "answer", item_id),
    )


def classify_many(
    items: Iterable[BatchItem],
    options: Optional[BatchOptions] = None,
) -> Tuple[List[AnalysisRequest], List[ClassificationSkip]]:
    """
    Classify a sequence of batch items.

    Items without an explicit id get ``<question id>:<position>`` so ids stay
    unique when the same question appears more than once.

    Returns:
        (requests, skips) in input order
    """
    requests: List[AnalysisRequest] = []
    skips: List[ClassificationSkip] = []
    seen_ids = set()

    for position, item in enumerate(items):
        item_id = item.item_id or f"{item.question.id}:{position}"
        if item_id in seen_ids:
            raise ValueError(f"Duplicate item id in batch: {item_id}")
        seen_ids.add(item_id)

        outcome = classify(item.question, item.answer, item.respondent, options, item_id=item_id)
        if isinstance(outcome, ClassificationSkip):
            skips.append(outcome)
        else:
            requests.append(outcome)

    if skips:
        logger.info(f"Classified {len(requests)} items, skipped {len(skips)}")
    return requests, skips
