"""
Ingestion Agent.

Turns raw store rows into ScanRecords with a resolved result payload.
Also generates synthetic scans for demos and local testing.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from cinewall.models.record import MODE_AUDIENCE, MODE_COMMENTS, MODE_REVIEWER, ScanRecord

logger = logging.getLogger(__name__)


# Demo films and the verdict shapes scanners actually produced: every key
# spelling family is represented so the demo exercises the resolver.
DEMO_SUBJECTS = ("Interstellar", "The Room", "Kalki 2898 AD", "Dune Part Two")

DEMO_RESULTS: List[Dict[str, Any]] = [
    {
        "sentiment_label": "Positive",
        "sentimentDescription": "An excellent, brilliant film with stunning visuals.",
        "topics": ["visuals", "score", "performances"],
    },
    {
        "overallSentiment": "positive",
        "overallSummary": "Masterful direction, though the second half drags a bit.",
        "keywords": "direction, pacing, visuals",
    },
    {
        "sentimentScore": 4.5,
        "verdict": "Gripping and powerful, a must watch on the big screen.",
        "tags": ["experience", "sound"],
    },
    {
        "rating": 2,
        "summary": "Boring and predictable, a disappointing mess.",
        "topics": ["writing", "pacing"],
    },
    {
        "sentiment": "Mixed",
        "description": "One time watch. Good performances but the logic is weak.",
        "audience_sentiment": "Crowd was cheering, fans loved it",
        "topics": ["performances", "logic"],
    },
    {
        "highQualityInsights": [
            {"username": "@cinephile", "text": "Absolute masterpiece, goosebumps!", "analysis": ""},
            {"username": "@casual", "text": "Too long and boring in parts", "analysis": ""},
        ],
        "topics": ["climax", "runtime"],
    },
    {
        "score": 0.82,
        "sentiment": "A fun family entertainer with strong emotional beats.",
        "audienceScore": 88,
        "topics": ["family", "emotion"],
    },
]

DEMO_REVIEWERS = ("FilmCompanion", "CineReview", "BigScreenTalk", "Comments", "MovieNerd")


class IngestionAgent:
    """
    Converts store rows into ScanRecords.

    Rows arrive with an inconsistent result schema; key resolution happens
    once here so the aggregator only sees the canonical shape. Rows
    without a subject name are dropped with a warning.
    """

    def ingest(self, rows: Iterable[Dict[str, Any]]) -> List[ScanRecord]:
        """
        Convert raw rows into records, preserving input order.

        Args:
            rows: Row dicts as stored

        Returns:
            List of ScanRecord
        """
        records = []
        skipped = 0
        for row in rows:
            if not isinstance(row, dict):
                skipped += 1
                continue
            try:
                records.append(ScanRecord.from_row(row))
            except ValueError as e:
                logger.warning(f"Dropping row: {e}")
                skipped += 1

        if skipped:
            logger.info(f"Ingested {len(records)} scans, skipped {skipped} rows")
        else:
            logger.debug(f"Ingested {len(records)} scans")
        return records

    def generate_demo_scans(
        self,
        count: int = 20,
        now: Optional[datetime] = None
    ) -> List[ScanRecord]:
        """
        Generate synthetic scans.

        Cycles through the demo films and result shapes so every subject
        gets a mix of reviewer, audience and comment scans. Deterministic
        for a given `now` apart from the generated ids.

        Args:
            count: Number of scans
            now: Timestamp of the newest scan (defaults to current UTC time)

        Returns:
            List of ScanRecord, oldest first
        """
        now = now or datetime.now(timezone.utc)
        modes = (MODE_REVIEWER, MODE_REVIEWER, MODE_AUDIENCE)

        rows = []
        for i in range(count):
            subject = DEMO_SUBJECTS[i % len(DEMO_SUBJECTS)]
            result = DEMO_RESULTS[(i + i // len(DEMO_SUBJECTS)) % len(DEMO_RESULTS)]
            mode = MODE_COMMENTS if "highQualityInsights" in result else modes[i % len(modes)]
            reviewer = DEMO_REVIEWERS[(i // len(DEMO_SUBJECTS)) % len(DEMO_REVIEWERS)]

            # Vary the subject spelling to exercise case-insensitive grouping
            if i % 5 == 4:
                subject = subject.upper()

            rows.append({
                "id": str(uuid.uuid4()),
                "created_at": (now - timedelta(hours=count - i)).isoformat(),
                "mode": mode,
                "subject_name": subject,
                "reviewer_name": reviewer,
                "title": f"{subject} review by {reviewer}",
                "thumbnail": f"https://img.youtube.com/vi/demo{i}/hqdefault.jpg" if i % 2 == 0 else None,
                "video_url": f"https://www.youtube.com/watch?v=demo{i}",
                "result": dict(result),
            })

        records = self.ingest(rows)
        logger.info(f"Generated {len(records)} demo scans")
        return records
