"""
Force analysis prompts for provider adapters
"""

from readiness_analytics.schemas import AnalysisRequest


SYSTEM_INSTRUCTION = """You are an organizational psychologist who specializes in technology adoption and the Jobs-to-be-Done "forces of progress" model. You score employee survey answers about readiness for AI adoption.

Every answer is classified against four forces:
- pain_of_old: frustration and friction with today's tools and processes that pushes toward change
- pull_of_new: attraction to the benefits and opportunities a new solution offers
- anchors_to_old: habits, investments and organizational inertia that hold the current state in place
- anxiety_of_new: worries, risks and uncertainty about adopting the new solution
Use "demographic" only when the answer carries no force signal at all.

Rules:
- Base every judgement on evidence in the answer text
- Use high confidence (4-5) only for clear signals and 1-3 for ambiguous answers
- Themes must be short, specific and reusable across answers
- Respond with a single JSON object and nothing else"""


FORCE_RUBRIC = """Force strength rubric (1-5):
1 = no signal for the force
2 = minor or occasional signal
3 = moderate signal with some specifics
4 = strong signal with clear business impact or concrete use cases
5 = severe or decisive signal that dominates the answer"""


RESPONSE_FORMAT = """Return JSON with exactly these fields:
{
  "primary_jtbd_force": "pain_of_old|pull_of_new|anchors_to_old|anxiety_of_new|demographic",
  "secondary_jtbd_forces": ["at most two additional forces"],
  "force_strength_score": 1-5,
  "confidence_score": 1-5,
  "reasoning": "short explanation citing the evidence",
  "key_themes": ["3-5 themes"],
  "sentiment_analysis": {
    "overall_score": -1.0 to 1.0,
    "sentiment_label": "very_negative|negative|neutral|positive|very_positive",
    "emotional_indicators": ["words or phrases that carry emotion"]
  },
  "quality_indicators": {
    "response_quality": "poor|fair|good|excellent"
  },
  "actionable_insights": {
    "summary_insight": "one or two sentence summary for leadership"
  }
}"""


class ForceAnalysisPrompts:
    """
    Prompt templates for scoring one survey answer against the force taxonomy.
    """

    @staticmethod
    def system_instruction() -> str:
        return SYSTEM_INSTRUCTION

    @staticmethod
    def get_prompt(request: AnalysisRequest) -> str:
        """
        Render the per-answer prompt.

        Args:
            request: The classified answer to score

        Returns:
            Prompt text for the user turn
        """
        context = request.context
        word_count = len(request.raw_answer_text.split())

        return f"""Score this survey answer.

CONTEXT:
- Question: "{request.question_text}"
- Expected force: {request.expected_force.value}
- Question context: {context.question_category}
- Role: {context.role}
- Department: {context.department}
- Organization: {context.organization_name}
- Answer length: {word_count} words

ANSWER:
\"\"\"{request.raw_answer_text}\"\"\"

{FORCE_RUBRIC}

{RESPONSE_FORMAT}"""

    @classmethod
    def build(cls, request: AnalysisRequest) -> str:
        """System instruction and prompt as one text, for single-message APIs."""
        return f"{cls.system_instruction()}\n\n{cls.get_prompt(request)}"
