"""
SWOT Analysis Service

Generates a strengths / weaknesses / opportunities / threats summary of a
client's check-in history with Gemini structured output, and serves it
through the insight cache so the model is called at most once per
freshness window per client.

Pipeline:
    SwotContext (scores, free-text answers, goals)
        -> build_swot_prompt()
        -> SwotAnalysisGenerator.generate()   Gemini, JSON schema, retries
        -> InsightCachePolicy                 reuse / regenerate / upsert

Generation errors propagate as InsightGenerationError. Client errors (4xx)
and malformed model output are not retried.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from google import genai
from pydantic import ValidationError

from core.config import settings
from core.exceptions import InsightGenerationError
from core.logging import log_fields
from schemas import SwotAnalysisPayload
from services.insight_cache import (
    GeneratedAnalysis,
    InsightCachePolicy,
    InsightResult,
    compute_data_fingerprint,
)
from services.insight_store import SqlInsightStore
from services.progress_metrics import ProgressMetrics, summarize_progress

logger = logging.getLogger(__name__)


MAX_TEXT_RESPONSES = 10

SYSTEM_PROMPT = """You are an assistant helping a health coach perform a SWOT analysis of a client's check-in history.

Apply functional health principles: look for root causes, connect the health domains
(sleep, stress, nutrition, movement, relationships) and explain how they affect one another.
Be specific to the data provided. Do not invent measurements that are not in the data."""

SWOT_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "strengths": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Internal positive factors.",
        },
        "weaknesses": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Internal areas for improvement.",
        },
        "opportunities": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "External positive factors or improvements.",
        },
        "threats": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "External risks or concerns.",
        },
        "overallAssessment": {
            "type": "STRING",
            "description": "2-3 paragraph summary of the analysis and overall progress.",
        },
    },
    "required": ["strengths", "weaknesses", "opportunities", "threats", "overallAssessment"],
}


@dataclass
class SwotContext:
    """Everything the prompt is built from. Scores are oldest first."""
    client_id: str
    client_name: str = "Client"
    coach_id: Optional[str] = None
    coach_specialization: Optional[str] = None
    scores: List[float] = field(default_factory=list)
    text_responses: List[str] = field(default_factory=list)
    measurements_count: int = 0
    primary_goal: Optional[str] = None
    secondary_goals: List[str] = field(default_factory=list)
    activity_level: Optional[str] = None

    @property
    def metrics(self) -> ProgressMetrics:
        return summarize_progress(self.scores)

    @property
    def data_fingerprint(self) -> str:
        return compute_data_fingerprint(self.scores)


def _fmt_score(value: Optional[float]) -> str:
    return "N/A" if value is None else f"{value:.0f}%"


def build_swot_prompt(context: SwotContext) -> str:
    """Build the user prompt for one client."""
    metrics = context.metrics
    parts = [
        "Perform a SWOT analysis for this client using a functional health framework.",
        "",
        f"Client: {context.client_name}",
        f"Current Progress Score: {_fmt_score(metrics.current_score)}",
        f"Average Progress Score: {_fmt_score(metrics.average_score)}",
        f"Score Trend: {metrics.trend.value}",
        f"Total Check-ins Completed: {metrics.check_ins_count}",
        f"Recent Measurements: {context.measurements_count} recorded",
    ]

    if context.primary_goal or context.secondary_goals or context.activity_level:
        parts.append("")
        parts.append("Onboarding Goals:")
        parts.append(f"- Primary Goal: {context.primary_goal or 'Not specified'}")
        parts.append(f"- Secondary Goals: {', '.join(context.secondary_goals) or 'None'}")
        parts.append(f"- Activity Level: {context.activity_level or 'Not specified'}")

    parts.append("")
    texts = context.text_responses[:MAX_TEXT_RESPONSES]
    if texts:
        parts.append(f"Recent Check-in Responses (last {len(texts)}):")
        parts.append("\n\n---\n\n".join(texts))
    else:
        parts.append("No detailed text responses available.")

    parts.append("")
    parts.append(
        "STRENGTHS: which functional systems and health pillars are working well.\n"
        "WEAKNESSES: imbalances, neglected pillars, cascading negative patterns.\n"
        "OPPORTUNITIES: lifestyle interventions that address root causes.\n"
        "THREATS: factors that could derail progress, early warning signs.\n"
        "Provide 3-5 specific, actionable items for each category."
    )
    return "\n".join(parts)


def _system_prompt(context: SwotContext) -> str:
    if context.coach_specialization:
        return SYSTEM_PROMPT.replace(
            "a health coach",
            f"a {context.coach_specialization} coach",
        )
    return SYSTEM_PROMPT


def _is_transient(error: Exception) -> bool:
    """4xx responses are permanent; everything else is worth retrying."""
    code = getattr(error, "code", None)
    if isinstance(code, int) and 400 <= code < 500:
        return False
    return True


def get_gemini_client():
    """Get a Gemini client instance, or None if no key is configured."""
    if not settings.GOOGLE_API_KEY:
        return None
    return genai.Client(api_key=settings.GOOGLE_API_KEY)


class SwotAnalysisGenerator:
    """
    Calls Gemini for a structured SWOT analysis.

    Usage:
        generator = SwotAnalysisGenerator(gemini_client=get_gemini_client())
        generated = generator.generate(context)
    """

    def __init__(
        self,
        gemini_client=None,
        model: Optional[str] = None,
        max_attempts: Optional[int] = None,
        retry_delay_s: Optional[float] = None,
    ):
        self.client = gemini_client
        self.model = model or settings.INSIGHT_MODEL
        self.max_attempts = max_attempts or settings.EXTERNAL_API_RETRY_ATTEMPTS
        self.retry_delay_s = (
            retry_delay_s if retry_delay_s is not None else settings.EXTERNAL_API_RETRY_DELAY_S
        )

    def generate(self, context: SwotContext) -> GeneratedAnalysis:
        if self.client is None:
            raise InsightGenerationError(
                "No Gemini client available. Set GOOGLE_API_KEY or pass gemini_client.",
                transient=False,
            )

        prompt = build_swot_prompt(context)
        raw_text, latency_ms = self._call_with_retry(prompt, _system_prompt(context), context.client_id)
        payload = self._parse(raw_text, context.client_id)

        logger.info(
            f"SWOT analysis generated for client {context.client_id}",
            extra=log_fields(client_id=context.client_id, model=self.model, latency_ms=latency_ms),
        )
        return GeneratedAnalysis(
            analysis=payload.model_dump(by_alias=True),
            data_fingerprint=context.data_fingerprint,
            metrics=context.metrics.to_dict(),
            coach_id=context.coach_id,
        )

    def _call_with_retry(self, prompt: str, system_prompt: str, client_id: str) -> Tuple[str, int]:
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return self._call_llm(prompt, system_prompt)
            except Exception as e:
                last_error = e
                if not _is_transient(e):
                    logger.error(f"SWOT generation rejected for client {client_id}: {e}")
                    raise InsightGenerationError(
                        f"Analysis provider rejected the request: {e}",
                        transient=False,
                    ) from e
                logger.warning(
                    f"SWOT generation attempt {attempt}/{self.max_attempts} "
                    f"failed for client {client_id}: {type(e).__name__}: {e}"
                )
                if attempt < self.max_attempts:
                    time.sleep(self.retry_delay_s * attempt)

        raise InsightGenerationError(
            f"Analysis provider failed after {self.max_attempts} attempts: {last_error}",
            transient=True,
        ) from last_error

    def _call_llm(self, prompt: str, system_prompt: str) -> Tuple[str, int]:
        start = time.monotonic()
        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=genai.types.GenerateContentConfig(
                system_instruction=system_prompt,
                max_output_tokens=settings.INSIGHT_MAX_TOKENS,
                temperature=settings.INSIGHT_TEMPERATURE,
                response_mime_type="application/json",
                response_schema=SWOT_RESPONSE_SCHEMA,
            ),
        )
        latency_ms = int((time.monotonic() - start) * 1000)

        text = getattr(response, "text", None)
        if not text or not str(text).strip():
            raise ValueError("Analysis provider returned an empty response")
        return str(text), latency_ms

    def _parse(self, raw_text: str, client_id: str) -> SwotAnalysisPayload:
        try:
            return SwotAnalysisPayload.model_validate(json.loads(raw_text))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Malformed SWOT analysis for client {client_id}: {e}")
            raise InsightGenerationError(
                f"Analysis provider returned malformed output: {e}",
                transient=False,
            ) from e


def get_swot_analysis(
    context: SwotContext,
    generator: SwotAnalysisGenerator,
    db: Any,
    force_regenerate: bool = False,
    freshness_window_days: Optional[float] = None,
) -> InsightResult:
    """
    Cached SWOT analysis for a client.

    Served from the swot_analysis table when younger than the freshness
    window, otherwise regenerated and written back. The write is flushed in
    a savepoint; committing `db` is up to the caller.
    """
    policy = InsightCachePolicy(
        SqlInsightStore(db),
        freshness_window_days=freshness_window_days,
    )
    return policy.get_or_generate(
        context.client_id,
        generate=lambda: generator.generate(context),
        force_regenerate=force_regenerate,
    )


def swot_result_to_dict(result: InsightResult) -> Dict[str, Any]:
    return {
        "success": True,
        "data": result.analysis,
        "cached": result.cached,
        "generatedAt": result.generated_at.isoformat(),
    }
