"""
Narrative report data model.

Output of the Consensus Narrative Generator, and the payload cached in
the narrative vault.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


REPORT_FIELDS = ("tagline", "summary", "critics_vs_audience", "conflict_points", "comment_vibe")

TAGLINE_DELAYED = "Analysis Delayed"
TAGLINE_NETWORK_ERROR = "Network Error"
TAGLINE_UNAVAILABLE = "Analysis Unavailable"
PLACEHOLDER_TAGLINES = (TAGLINE_DELAYED, TAGLINE_NETWORK_ERROR, TAGLINE_UNAVAILABLE)

# Cached payloads have been seen wrapped in several JSON string layers
MAX_DECODE_DEPTH = 5


@dataclass(frozen=True)
class NarrativeReport:
    """
    Structured consensus narrative for one film.

    `is_placeholder` marks stand-in reports produced on failure; they
    are shown to the user with a retry action and are never cached.
    """
    tagline: str
    summary: str
    critics_vs_audience: str = ""
    conflict_points: str = ""
    comment_vibe: str = ""
    is_placeholder: bool = False

    @classmethod
    def placeholder(cls, tagline: str, summary: str) -> "NarrativeReport":
        """Stand-in report for a failed generation."""
        if tagline not in PLACEHOLDER_TAGLINES:
            raise ValueError(f"Invalid placeholder tagline: {tagline}")
        return cls(tagline=tagline, summary=summary, is_placeholder=True)

    @classmethod
    def from_response(cls, data: Any) -> "NarrativeReport":
        """
        Build a report from a generator response body.

        Raises:
            ValueError: If any required field is missing or not a string
        """
        if not isinstance(data, dict):
            raise ValueError(f"Narrative response is not an object: {type(data).__name__}")

        missing = [f for f in REPORT_FIELDS if not isinstance(data.get(f), str)]
        if missing:
            raise ValueError(f"Narrative response missing fields: {', '.join(missing)}")

        return cls(**{f: data[f].strip() for f in REPORT_FIELDS})

    @classmethod
    def from_cached(cls, payload: Any) -> Optional["NarrativeReport"]:
        """
        Decode a cached vault payload.

        Accepts an object, a JSON string, or a JSON string of a JSON
        string. Corrupt, non-object, summary-less and placeholder payloads
        all return None so the caller regenerates.
        """
        data = payload
        depth = 0
        while isinstance(data, str) and depth < MAX_DECODE_DEPTH:
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                logger.warning(f"Corrupt cached report: {e}")
                return None
            depth += 1

        if not isinstance(data, dict):
            logger.warning(f"Cached report is not an object ({type(data).__name__})")
            return None

        if not isinstance(data.get("summary"), str) or not data["summary"].strip():
            logger.warning("Cached report has no summary")
            return None

        if data.get("is_placeholder") or data.get("tagline") in PLACEHOLDER_TAGLINES:
            logger.info("Cached report is a placeholder, ignoring")
            return None

        return cls(
            tagline=str(data.get("tagline") or ""),
            summary=data["summary"],
            critics_vs_audience=str(data.get("critics_vs_audience") or ""),
            conflict_points=str(data.get("conflict_points") or ""),
            comment_vibe=str(data.get("comment_vibe") or ""),
        )

    def to_dict(self) -> Dict[str, str]:
        """Response-shaped dict (the placeholder marker is not part of it)."""
        return {f: getattr(self, f) for f in REPORT_FIELDS}
