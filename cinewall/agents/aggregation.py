"""
Per-Subject Aggregator.

Turns grouped scan records into one consensus aggregate per film:
reviewer counts, critic and audience scores, consensus line, top topics,
and poster / release-date proxies.
"""

import logging
import re
from collections import Counter
from typing import Iterable, List, Optional, Sequence, Tuple

from cinewall.agents.grouping import group_records
from cinewall.models.aggregate import SubjectAggregate, TitleMetadata
from cinewall.models.record import ScanRecord, ScanResult
from cinewall.scoring.blender import HybridBlender
from cinewall.scoring.lexicon import AUDIENCE, CRITIC, LexiconScorer
from cinewall.scoring.normalizer import clamp, round_half_up
from cinewall.utils.text import slugify
import config.settings as settings

logger = logging.getLogger(__name__)


# Consensus ladder on the critics score, highest bucket first
CONSENSUS_LADDER: Tuple[Tuple[int, str], ...] = (
    (90, "Universal Acclaim"),
    (80, "Critically Acclaimed"),
    (70, "Generally Favorable"),
    (60, "Mixed Positive"),
    (50, "Mixed or Average"),
    (40, "Generally Unfavorable"),
    (0, "Critical Disaster"),
)
PENDING_CONSENSUS = "Pending Analysis"

# Audience sample weights
INSIGHT_WEIGHT = 2.0
RECORD_WEIGHT = 1.0

# Polarity stretching for individual audience comments
STRETCH_HIGH_AT = 60
STRETCH_LOW_AT = 45
STRETCH_FACTOR = 0.25

# Corrections applied to an audience score inferred from a critic record
AUDIENCE_PACING_PENALTY = 5
CELEBRATION_FLOOR = 65
CELEBRATION_BONUS = 3
CELEBRATION_KEYWORDS = (
    "goosebumps", "whistle", "celebrat", "housefull", "theatre experience",
    "theater experience", "crowd", "fans", "cheer", "paisa vasool",
)

TOPIC_STOPWORDS = frozenset({
    "movie", "film", "films", "movies", "review", "reviews", "video",
    "story", "plot", "watch", "cinema", "really", "actor", "actors",
    "acting", "director", "screenplay", "scene", "scenes", "overall",
    "the", "and",
})

_NON_LETTERS = re.compile(r"[^a-z\s]")
_WHITESPACE = re.compile(r"\s+")


def consensus_line(critics_score: int) -> str:
    """Map a 0-100 critics score onto the consensus ladder."""
    for threshold, label in CONSENSUS_LADDER:
        if critics_score >= threshold:
            return label
    return CONSENSUS_LADDER[-1][1]


def stretch_polarity(score: float) -> float:
    """
    Push a single audience comment score away from the centre.

    Audience opinions cluster at the extremes: scores above 60 move up,
    scores below 45 move down, the band between is untouched.
    """
    if score > STRETCH_HIGH_AT:
        score += (score - STRETCH_HIGH_AT) * STRETCH_FACTOR
    elif score < STRETCH_LOW_AT:
        score -= (STRETCH_LOW_AT - score) * STRETCH_FACTOR
    return clamp(score, 10, 98)


def weighted_mean(samples: Sequence[Tuple[float, float]]) -> Optional[float]:
    """Mean of (value, weight) pairs, or None if there is no weight."""
    total_weight = sum(w for _, w in samples)
    if total_weight <= 0:
        return None
    return sum(v * w for v, w in samples) / total_weight


class SubjectAggregator:
    """
    Builds SubjectAggregates from scan records.

    Stateless apart from its scoring tables; one instance can serve any
    number of independent aggregations.
    """

    def __init__(
        self,
        lexicon: Optional[LexiconScorer] = None,
        blender: Optional[HybridBlender] = None,
        max_top_topics: int = settings.MAX_TOP_TOPICS,
        min_topic_length: int = settings.MIN_TOPIC_LENGTH,
        stopwords: Iterable[str] = TOPIC_STOPWORDS,
        default_poster: str = settings.DEFAULT_POSTER,
        case_insensitive: bool = settings.GROUPING_CASE_INSENSITIVE
    ):
        """
        Initialize aggregator.

        Args:
            lexicon: Text scorer (shared with the blender when not given)
            blender: Label/text blender
            max_top_topics: Length cap of top_topics
            min_topic_length: Shorter topic tokens are discarded
            stopwords: Generic terms never reported as topics
            default_poster: Poster used when no scan has a thumbnail
            case_insensitive: Subject grouping mode
        """
        self.lexicon = lexicon or (blender.lexicon if blender else LexiconScorer())
        self.blender = blender or HybridBlender(lexicon=self.lexicon)
        self.max_top_topics = max_top_topics
        self.min_topic_length = min_topic_length
        self.stopwords = frozenset(stopwords)
        self.default_poster = default_poster
        self.case_insensitive = case_insensitive

    def aggregate(
        self,
        records: Sequence[ScanRecord],
        enrich_metadata: bool = False,
        enricher=None
    ) -> List[SubjectAggregate]:
        """
        Aggregate all records into one SubjectAggregate per subject.

        Args:
            records: Scan records from the store
            enrich_metadata: Look titles up through `enricher`
            enricher: Object with lookup(name) -> Optional[TitleMetadata]

        Returns:
            Aggregates in first-seen subject order
        """
        groups = group_records(records, case_insensitive=self.case_insensitive)

        aggregates = []
        for group in groups.values():
            metadata = None
            if enrich_metadata and enricher is not None:
                metadata = self.lookup_metadata(enricher, group[0].subject_name.strip())
            aggregates.append(self.aggregate_group(group, metadata))

        logger.info(f"Aggregated {len(records)} scans into {len(aggregates)} subjects")
        return aggregates

    def aggregate_group(
        self,
        records: Sequence[ScanRecord],
        metadata: Optional[TitleMetadata] = None
    ) -> SubjectAggregate:
        """
        Aggregate one subject's records.

        Args:
            records: Non-empty list of records for the same subject
            metadata: Optional enrichment result

        Returns:
            SubjectAggregate
        """
        if not records:
            raise ValueError("Cannot aggregate an empty group")

        subject_name = records[0].subject_name.strip()
        reviewers_count = len({r.reviewer_name for r in records})

        newest_first = sorted(records, key=lambda r: r.created_at, reverse=True)
        oldest_first = sorted(records, key=lambda r: r.created_at)

        critic_samples: List[float] = []
        audience_samples: List[Tuple[float, float]] = []

        for record in newest_first:
            critic = self.critic_sample(record)
            if critic is not None:
                critic_samples.append(critic)
            audience_samples.extend(self.audience_samples(record))

        critics_score = (
            round_half_up(sum(critic_samples) / len(critic_samples)) if critic_samples else 0
        )
        audience_mean = weighted_mean(audience_samples)
        audience_score = round_half_up(audience_mean) if audience_mean is not None else 0

        consensus = consensus_line(critics_score) if critic_samples else PENDING_CONSENSUS

        top_topics = self.extract_topics(
            topic for record in newest_first for topic in record.result.topics
        )

        poster_url, title_metadata = self._resolve_presentation(oldest_first, metadata)

        logger.debug(
            f"'{subject_name}': {len(records)} scans, critics={critics_score} "
            f"({len(critic_samples)} samples), audience={audience_score} "
            f"({len(audience_samples)} samples)"
        )

        return SubjectAggregate(
            subject_name=subject_name,
            slug=slugify(subject_name),
            reviewers_count=reviewers_count,
            last_scanned=newest_first[0].created_at,
            critics_score=critics_score,
            audience_score=audience_score,
            consensus_line=consensus,
            top_topics=top_topics,
            poster_url=poster_url,
            scans=newest_first,
            metadata=title_metadata,
            critic_samples=len(critic_samples),
            audience_samples=len(audience_samples),
        )

    def critic_sample(self, record: ScanRecord) -> Optional[float]:
        """Critic score for a record, or None for audience-only (COMMENTS) scans."""
        if record.is_audience_only:
            return None
        result = record.result
        score = self.blender.blend(result.label, result.text, CRITIC, rating=result.rating)
        if logger.isEnabledFor(logging.DEBUG):
            if result.is_empty:
                logger.debug(f"Scan {record.id} has an empty result, scoring neutral")
            else:
                logger.debug(
                    f"Scan {record.id}: critic={score:.1f} "
                    f"keywords={self.lexicon.matched_keywords(result.text)}"
                )
        return score

    def audience_samples(self, record: ScanRecord) -> List[Tuple[float, float]]:
        """
        Audience (score, weight) samples contributed by one record.

        Priority:
        1. An explicit audience number on the record
        2. One stretched lexicon sample per insight, at double weight
        3. An audience sentiment label, anchored like a critic label and
           shifted by the record's verdict text
        4. Free audience prose, scored by the lexicon
        5. A score inferred from the record's own label and text
        """
        result = record.result

        if result.audience_rating is not None and result.audience_rating > 0:
            return [(float(result.audience_rating), RECORD_WEIGHT)]

        insight_texts = [i.scoring_text for i in result.insights if i.scoring_text]
        if insight_texts:
            return [
                (stretch_polarity(self.lexicon.score(text, AUDIENCE)), INSIGHT_WEIGHT)
                for text in insight_texts
            ]

        if result.audience_label:
            return [(self.blender.blend(result.audience_label, result.text, AUDIENCE), RECORD_WEIGHT)]

        if result.audience_text:
            return [(float(self.lexicon.score(result.audience_text, AUDIENCE)), RECORD_WEIGHT)]

        return [(self.infer_audience_score(result), RECORD_WEIGHT)]

    def infer_audience_score(self, result: ScanResult) -> float:
        """
        Estimate the audience view from a critic record.

        Starts from the audience-perspective blend, then: pacing
        complaints cost more, celebratory reception sets a floor plus a
        bonus, and logic complaints are forgiven by the amount the critic
        perspective charges for them.
        """
        text = result.text
        score = self.blender.blend(result.label, text, AUDIENCE, rating=result.rating)
        if not text:
            return score

        lower = text.lower()
        if self.lexicon.has_concern(lower, "pacing"):
            score -= AUDIENCE_PACING_PENALTY
        if any(k in lower for k in CELEBRATION_KEYWORDS):
            score = max(score, CELEBRATION_FLOOR) + CELEBRATION_BONUS
        if self.lexicon.has_concern(lower, "logic"):
            score -= self.lexicon.concern_impact("logic", CRITIC)

        return self.blender.clamp_to_label(score, result.label)

    def extract_topics(self, topics: Iterable[str]) -> List[str]:
        """
        Most frequent qualifying topic keywords, title-cased.

        Ties keep first-seen order.
        """
        counts: Counter = Counter()
        for topic in topics:
            cleaned = _NON_LETTERS.sub("", str(topic).lower())
            cleaned = _WHITESPACE.sub(" ", cleaned).strip()
            if len(cleaned) < self.min_topic_length or cleaned in self.stopwords:
                continue
            counts[cleaned] += 1

        return [t.title() for t, _ in counts.most_common(self.max_top_topics)]

    def _resolve_presentation(
        self,
        oldest_first: Sequence[ScanRecord],
        metadata: Optional[TitleMetadata]
    ) -> Tuple[str, TitleMetadata]:
        """Poster and metadata, preferring enrichment over scan-derived proxies."""
        release_proxy = oldest_first[0].created_at.date().isoformat()
        thumb = next((r.thumbnail for r in oldest_first if r.has_thumbnail), None)
        poster_url = thumb or self.default_poster

        if metadata is None:
            return poster_url, TitleMetadata(release_date=release_proxy)

        if metadata.poster_url:
            poster_url = metadata.poster_url
        if not metadata.release_date:
            metadata = TitleMetadata(**{**metadata.to_dict(), "release_date": release_proxy})
        return poster_url, metadata

    @staticmethod
    def lookup_metadata(enricher, subject_name: str) -> Optional[TitleMetadata]:
        try:
            return enricher.lookup(subject_name)
        except Exception as e:
            logger.warning(f"Metadata enrichment failed for '{subject_name}': {e}")
            return None


def aggregate(
    records: Sequence[ScanRecord],
    enrich_metadata: bool = False,
    enricher=None
) -> List[SubjectAggregate]:
    """Aggregate records with the default scoring tables."""
    return SubjectAggregator().aggregate(records, enrich_metadata, enricher)
