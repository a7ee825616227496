"""
Model-driven methodology scorer using Gemini structured output.

The response is requested as JSON against ModelScoringResponse and parsed
strictly. Each attempt yields a tagged outcome: ScoringOk with a validated
AnalysisResult, or SchemaError with the raw text and what was wrong. Schema
errors are retried a bounded number of times; transport failures are not.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Union

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaValidationError

from sales_coach.config import Settings
from sales_coach.errors import UpstreamError
from sales_coach.models.analysis import AnalysisResult, ComponentScore
from sales_coach.prompts.scoring_prompt import (
    PROMPT_VERSION,
    build_system_instruction,
    build_user_message,
)
from sales_coach.scoring.base import is_empty_transcript, no_data_result
from sales_coach.scoring.rubrics import MethodologyRubric

logger = logging.getLogger(__name__)


class ModelComponentScore(BaseModel):
    """One component as returned by the model."""

    name: str = Field(description="Component name, exactly as listed in the instructions")
    score: float = Field(ge=0, le=10, description="Score 0-10")
    indicators: list[str] = Field(default_factory=list, description="What the rep did well")
    missing: list[str] = Field(default_factory=list, description="What the rep skipped")


class ModelScoringResponse(BaseModel):
    """Structured output schema requested from the model."""

    components: list[ModelComponentScore]
    talk_ratio: Optional[float] = Field(default=None, ge=0, le=1, description="Rep share of words spoken")


@dataclass(frozen=True)
class ScoringOk:
    analysis: AnalysisResult


@dataclass(frozen=True)
class SchemaError:
    raw: str
    errors: list[str] = field(default_factory=list)


ScoringOutcome = Union[ScoringOk, SchemaError]


def parse_response(raw: str, rubric: MethodologyRubric) -> ScoringOutcome:
    """Validate raw model text against the schema and the rubric's component names."""
    try:
        response = ModelScoringResponse.model_validate_json(raw)
    except SchemaValidationError as e:
        return SchemaError(raw=raw, errors=[err["msg"] for err in e.errors()])

    returned = [c.name for c in response.components]
    expected = rubric.component_names
    problems = []
    unknown = [name for name in returned if name not in expected]
    if unknown:
        problems.append(f"Unknown components: {', '.join(unknown)}")
    absent = [name for name in expected if name not in returned]
    if absent:
        problems.append(f"Missing components: {', '.join(absent)}")
    if len(returned) != len(set(returned)):
        problems.append("Duplicate components")
    if problems:
        return SchemaError(raw=raw, errors=problems)

    by_name = {c.name: c for c in response.components}
    scores = [
        ComponentScore(
            name=name,
            score=by_name[name].score,
            indicators=by_name[name].indicators,
            missing_elements=by_name[name].missing,
        )
        for name in expected
    ]
    return ScoringOk(
        analysis=AnalysisResult(
            methodology=rubric.methodology.value,
            scores=scores,
            talk_ratio=response.talk_ratio,
        )
    )


class ModelScorer:
    """Scores transcripts with a Gemini model and a strict response schema."""

    def __init__(self, settings: Settings, client: Optional[genai.Client] = None):
        self.settings = settings
        self.model = settings.scoring_model
        self.max_attempts = settings.scoring_max_attempts
        self._client = client

    @property
    def client(self) -> genai.Client:
        """Lazy-load the Gemini client."""
        if self._client is None:
            self._client = genai.Client(
                api_key=self.settings.gemini_api_key,
                http_options=types.HttpOptions(
                    timeout=int(self.settings.request_timeout_seconds * 1000)
                ),
            )
        return self._client

    def attempt(
        self,
        transcript: str,
        summary: Optional[str],
        rubric: MethodologyRubric,
    ) -> ScoringOutcome:
        """Make one model call and parse it.

        Raises:
            UpstreamError: On API errors or timeouts.
        """
        config = types.GenerateContentConfig(
            system_instruction=build_system_instruction(rubric),
            response_mime_type="application/json",
            response_schema=ModelScoringResponse,
            temperature=0.2,
        )
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=build_user_message(transcript, summary),
                config=config,
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise UpstreamError(f"Scoring model call failed: {e}") from e

        return parse_response(response.text or "", rubric)

    def score(
        self,
        transcript: str,
        summary: Optional[str],
        rubric: MethodologyRubric,
    ) -> AnalysisResult:
        """
        Score a transcript, retrying schema-invalid responses.

        Args:
            transcript: Raw call transcript
            summary: Optional prior AI summary of the call
            rubric: Methodology rubric to score against

        Returns:
            AnalysisResult with one score per rubric component

        Raises:
            UpstreamError: When every attempt returned an invalid response or
                the model could not be reached.
        """
        if is_empty_transcript(transcript, self.settings.min_transcript_words):
            return no_data_result(rubric)

        start_time = time.time()
        last_errors: list[str] = []
        for attempt in range(1, self.max_attempts + 1):
            outcome = self.attempt(transcript, summary, rubric)
            if isinstance(outcome, ScoringOk):
                latency_ms = int((time.time() - start_time) * 1000)
                logger.info(
                    f"Model scoring ok: model={self.model} prompt_version={PROMPT_VERSION} "
                    f"methodology={rubric.methodology.value} attempts={attempt} latency_ms={latency_ms}"
                )
                return outcome.analysis

            last_errors = outcome.errors
            logger.warning(
                f"Model response failed schema validation (attempt {attempt}/{self.max_attempts}): "
                f"{'; '.join(outcome.errors)}"
            )
            logger.debug(f"Raw response: {outcome.raw}")

        raise UpstreamError(
            f"Scoring model returned invalid output after {self.max_attempts} attempts: "
            f"{'; '.join(last_errors)}"
        )
