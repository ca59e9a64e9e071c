"""
Consensus Narrative Generator.

Asks an LLM (Gemini) for a structured consensus report on one film,
given its scores, topics and a handful of representative review snippets.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from cinewall.exceptions import NarrativeGenerationError
from cinewall.models.aggregate import SubjectAggregate
from cinewall.models.report import NarrativeReport
from cinewall.utils.retry import RetryPolicy
import config.settings as settings

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are a film analyst who writes consensus reports from aggregated reviews.

Your task: read the scores, recurring themes and review snippets for one film
and explain where critics and audiences stand.

Rules:
- Base every statement on the provided sources, do not invent plot details
- Keep the tagline to one punchy sentence
- Keep the summary to two sentences
- Contrast critics and audience explicitly; say whether they agree and why
- Name specific elements (plot, acting, technical craft) where opinions diverge
- Describe the comment section mood with 3-5 adjectives

Output valid JSON only."""

NETWORK_ERRORS = (
    google_exceptions.DeadlineExceeded,
    google_exceptions.RetryError,
    ConnectionError,
    TimeoutError,
)


def build_request(
    aggregate: SubjectAggregate,
    max_reviews: int = settings.NARRATIVE_MAX_REVIEWS,
    snippet_chars: int = settings.NARRATIVE_SNIPPET_CHARS
) -> Dict[str, Any]:
    """
    Build the generator request body for an aggregate.

    Uses the newest `max_reviews` scans; each snippet is the scan's
    summary, verdict text or title, truncated to `snippet_chars`.
    """
    reviews: List[Dict[str, str]] = [
        {"title": scan.reviewer_name, "snippet": scan.snippet[:snippet_chars]}
        for scan in aggregate.scans[:max_reviews]
    ]
    return {
        "movie": aggregate.subject_name,
        "topics": list(aggregate.top_topics),
        "sentiments": {
            "critics": aggregate.critics_score,
            "audience": aggregate.audience_score,
        },
        "reviews": reviews,
    }


def _construct_user_prompt(request: Dict[str, Any]) -> str:
    """Construct user prompt from a request body."""
    sources = "\n".join(f"[{r['title']}]: {r['snippet']}" for r in request["reviews"])
    topics = ", ".join(request["topics"]) or "none recorded"
    return f"""Generate a consensus report for "{request['movie']}".

Scores: Critics {request['sentiments']['critics']} / Audience {request['sentiments']['audience']}
Key Themes: {topics}
Sources:
{sources}

Respond in JSON:
{{
  "tagline": "...",
  "summary": "...",
  "critics_vs_audience": "...",
  "conflict_points": "...",
  "comment_vibe": "..."
}}"""


class NarrativeGenerator:
    """
    Writes consensus narratives with Gemini.

    Rate-limit and unavailable responses are retried with exponential
    backoff through the injected RetryPolicy; every other failure is
    reported at once as NarrativeGenerationError.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = settings.NARRATIVE_MODEL,
        temperature: float = settings.LLM_TEMPERATURE,
        timeout_seconds: int = settings.NARRATIVE_TIMEOUT_SECONDS,
        retry_policy: Optional[RetryPolicy] = None
    ):
        """
        Initialize narrative generator.

        Args:
            api_key: Gemini API key
            model_name: Gemini model to use
            temperature: LLM temperature
            timeout_seconds: Per-request timeout
            retry_policy: Backoff policy for transient failures
        """
        self.model_name = model_name
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=settings.NARRATIVE_MAX_ATTEMPTS,
            base_delay=settings.RETRY_BASE_DELAY_SECONDS,
            multiplier=settings.RETRY_BACKOFF_MULTIPLIER,
        )

        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(
            model_name=model_name,
            generation_config={
                "temperature": temperature,
                "response_mime_type": "application/json"
            },
            system_instruction=SYSTEM_PROMPT
        )

        logger.info(f"Initialized NarrativeGenerator with model={model_name}, temp={temperature}")

    def generate(self, request: Dict[str, Any]) -> NarrativeReport:
        """
        Generate a narrative report.

        Args:
            request: Body built by build_request()

        Returns:
            NarrativeReport

        Raises:
            NarrativeGenerationError: On transport failure, exhausted
                retries, or a malformed response
        """
        prompt = _construct_user_prompt(request)

        try:
            response = self.retry_policy.call(
                self.model.generate_content,
                prompt,
                request_options={"timeout": self.timeout_seconds},
            )
        except Exception as e:
            status = getattr(e, "code", None)
            raise NarrativeGenerationError(
                f"Narrative generation failed for '{request['movie']}': {e}",
                retryable=self.retry_policy.retryable(e),
                status=status if isinstance(status, int) else None,
                network=isinstance(e, NETWORK_ERRORS),
            ) from e

        return self._parse_response(response, request["movie"])

    def _parse_response(self, response: Any, movie: str) -> NarrativeReport:
        """
        Parse the model response into a report.

        A partial or non-JSON body is a failure; no field of it is used.
        """
        try:
            text = response.text
        except (ValueError, AttributeError) as e:
            # Blocked or empty candidates
            raise NarrativeGenerationError(f"No response text for '{movie}': {e}") from e

        if not text:
            raise NarrativeGenerationError(f"Empty response for '{movie}'")

        try:
            data = json.loads(text)
            report = NarrativeReport.from_response(data)
        except (json.JSONDecodeError, ValueError) as e:
            raise NarrativeGenerationError(f"Malformed narrative for '{movie}': {e}") from e

        logger.info(f"Generated narrative for '{movie}': {report.tagline!r}")
        return report
