"""
Scan record data model.

Represents one ingested review or comment-aggregate about a film, with its
schema-variable result payload resolved into a closed shape.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from cinewall.scoring.normalizer import normalize_score

logger = logging.getLogger(__name__)


MODE_REVIEWER = "REVIEWER"
MODE_AUDIENCE = "AUDIENCE"
MODE_COMMENTS = "COMMENTS"

SENTIMENT_LABELS = ("Positive", "Negative", "Neutral", "Mixed")

# Ordered key spellings per concept; first present key wins
RATING_KEYS = ("sentiment_score", "sentimentScore", "score", "rating", "critic_score", "criticScore")
LABEL_KEYS = ("sentiment_label", "sentimentLabel", "overall_sentiment", "overallSentiment", "sentiment")
TEXT_KEYS = (
    "sentimentDescription",
    "sentiment_description",
    "overallSummary",
    "overall_summary",
    "summary",
    "description",
    "verdict",
)
SUMMARY_KEYS = ("summary", "overallSummary", "overall_summary", "sentimentDescription")
AUDIENCE_KEYS = ("audience_sentiment", "audienceSentiment", "audience_score", "audienceScore")
INSIGHT_KEYS = ("highQualityInsights", "high_quality_insights", "insights")
TOPIC_KEYS = ("topics", "keywords", "tags")

# Label derived from a normalized rating when no label key is present
DERIVED_POSITIVE_AT = 65
DERIVED_NEGATIVE_AT = 40

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def first_present(payload: Optional[Dict[str, Any]], keys: Sequence[str]) -> Any:
    """
    Return the value of the first key in `keys` present in `payload`.

    Each key is tried exactly, then case-insensitively, before moving on
    to the next spelling. None values count as absent.
    """
    if not isinstance(payload, dict):
        return None

    lowered = {str(k).lower(): k for k in payload}
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
        actual = lowered.get(key.lower())
        if actual is not None and payload[actual] is not None:
            return payload[actual]
    return None


def parse_label(value: Any) -> Optional[str]:
    """Canonicalize a sentiment label, or None if `value` is not one."""
    if not isinstance(value, str):
        return None
    cleaned = value.strip().lower()
    for label in SENTIMENT_LABELS:
        if label.lower() == cleaned:
            return label
    return None


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp into an aware datetime (UTC if naive)."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug(f"Unparseable created_at {value!r}, using epoch")
            return EPOCH
    else:
        return EPOCH

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class Insight:
    """An audience-comment excerpt plus its own short analysis."""
    username: str = ""
    text: str = ""
    analysis: str = ""

    @property
    def scoring_text(self) -> str:
        """Analysis when present, else the raw comment."""
        return self.analysis or self.text

    @classmethod
    def from_dict(cls, data: Any) -> "Insight":
        if isinstance(data, str):
            return cls(text=data.strip())
        if not isinstance(data, dict):
            return cls()
        return cls(
            username=_text(first_present(data, ("username", "user", "author"))),
            text=_text(first_present(data, ("text", "comment"))),
            analysis=_text(first_present(data, ("analysis",))),
        )


@dataclass(frozen=True)
class ScanResult:
    """
    Canonical form of the semi-structured `result` payload.

    Every field is optional; `from_payload` never raises.
    """
    rating: Optional[int] = None  # normalized 0-100
    label: Optional[str] = None  # Positive / Negative / Neutral / Mixed
    text: str = ""  # human-readable verdict used for scoring
    summary: str = ""  # short summary used for narrative snippets
    audience_rating: Optional[int] = None  # normalized 0-100
    audience_label: Optional[str] = None  # audience signal given as a sentiment label
    audience_text: str = ""  # audience signal given as prose
    insights: List[Insight] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return (
            self.rating is None
            and self.label is None
            and not self.text
            and self.audience_rating is None
            and self.audience_label is None
            and not self.audience_text
            and not self.insights
            and not self.topics
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "ScanResult":
        """Resolve every concept once through its ordered key list."""
        if not isinstance(payload, dict):
            return cls()

        rating = normalize_score(first_present(payload, RATING_KEYS))

        label = None
        for key in LABEL_KEYS:
            label = parse_label(first_present(payload, (key,)))
            if label:
                break
        if label is None and rating is not None:
            label = _label_from_rating(rating)

        text = _text(first_present(payload, TEXT_KEYS))
        if not text:
            # `sentiment` sometimes carries prose instead of a label
            raw_sentiment = first_present(payload, ("sentiment",))
            if isinstance(raw_sentiment, str) and parse_label(raw_sentiment) is None:
                text = raw_sentiment.strip()

        summary = _text(first_present(payload, SUMMARY_KEYS)) or text

        raw_audience = first_present(payload, AUDIENCE_KEYS)
        audience_rating = normalize_score(raw_audience)
        audience_label = None
        audience_text = ""
        if audience_rating is None and isinstance(raw_audience, str):
            audience_label = parse_label(raw_audience)
            if audience_label is None:
                audience_text = raw_audience.strip()

        raw_insights = first_present(payload, INSIGHT_KEYS)
        insights = []
        if isinstance(raw_insights, list):
            insights = [Insight.from_dict(item) for item in raw_insights]

        raw_topics = first_present(payload, TOPIC_KEYS)
        if isinstance(raw_topics, str):
            topics = [t.strip() for t in raw_topics.split(",") if t.strip()]
        elif isinstance(raw_topics, (list, tuple)):
            topics = [str(t) for t in raw_topics if t is not None]
        else:
            topics = []

        return cls(
            rating=rating,
            label=label,
            text=text,
            summary=summary,
            audience_rating=audience_rating,
            audience_label=audience_label,
            audience_text=audience_text,
            insights=insights,
            topics=topics,
        )


def _label_from_rating(rating: int) -> str:
    if rating >= DERIVED_POSITIVE_AT:
        return "Positive"
    if rating <= DERIVED_NEGATIVE_AT:
        return "Negative"
    return "Mixed"


@dataclass(frozen=True)
class ScanRecord:
    """
    One stored scan about a subject.

    `raw_result` keeps the original payload for display; scoring reads
    only the resolved `result`.
    """
    id: str
    created_at: datetime
    subject_name: str
    reviewer_name: str = ""
    mode: str = MODE_REVIEWER
    title: str = ""
    thumbnail: Optional[str] = None
    video_url: Optional[str] = None
    result: ScanResult = field(default_factory=ScanResult)
    raw_result: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not isinstance(self.subject_name, str) or not self.subject_name.strip():
            raise ValueError(f"Scan {self.id} has no subject_name")

    @property
    def is_audience_only(self) -> bool:
        return self.mode == MODE_COMMENTS

    @property
    def has_thumbnail(self) -> bool:
        return bool(self.thumbnail) and self.thumbnail.startswith("http")

    @property
    def snippet(self) -> str:
        """Best short text for this scan: summary, verdict, then title."""
        return self.result.summary or self.result.text or self.title

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ScanRecord":
        """
        Build a record from a store row.

        Raises:
            ValueError: If the row has no usable subject_name
        """
        raw_result = row.get("result")
        if not isinstance(raw_result, dict):
            raw_result = None
        mode = _text(row.get("mode")).upper() or MODE_REVIEWER
        return cls(
            id=_text(row.get("id")),
            created_at=parse_timestamp(row.get("created_at")),
            subject_name=_text(row.get("subject_name")),
            reviewer_name=_text(row.get("reviewer_name")),
            mode=mode,
            title=_text(row.get("title")),
            thumbnail=_text(row.get("thumbnail")) or None,
            video_url=_text(row.get("video_url")) or None,
            result=ScanResult.from_payload(raw_result),
            raw_result=raw_result,
        )

    def to_row(self) -> Dict[str, Any]:
        """Convert back to a JSON-serializable store row."""
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "mode": self.mode,
            "subject_name": self.subject_name,
            "reviewer_name": self.reviewer_name,
            "title": self.title,
            "thumbnail": self.thumbnail,
            "video_url": self.video_url,
            "result": self.raw_result,
        }
