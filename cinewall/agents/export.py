"""
Wall table export.

Writes the wall (one row per film) to CSV with a small JSON sidecar
describing the run.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import List, Sequence

import pandas as pd

from cinewall.models.aggregate import SubjectAggregate

logger = logging.getLogger(__name__)


WALL_COLUMNS = [
    "Film",
    "Slug",
    "Reviewers",
    "Critics",
    "Audience",
    "Consensus",
    "Topics",
    "Last Scanned",
    "Release Date",
    "Critic Samples",
    "Audience Samples",
    "Poster",
]


def build_wall_table(aggregates: Sequence[SubjectAggregate]) -> pd.DataFrame:
    """
    Build the wall DataFrame.

    Row order follows `aggregates`; callers sort before exporting.
    """
    rows = [
        {
            "Film": agg.subject_name,
            "Slug": agg.slug,
            "Reviewers": agg.reviewers_count,
            "Critics": agg.critics_score,
            "Audience": agg.audience_score,
            "Consensus": agg.consensus_line,
            "Topics": ", ".join(agg.top_topics),
            "Last Scanned": agg.last_scanned.isoformat(),
            "Release Date": agg.metadata.release_date,
            "Critic Samples": agg.critic_samples,
            "Audience Samples": agg.audience_samples,
            "Poster": agg.poster_url,
        }
        for agg in aggregates
    ]

    if not rows:
        logger.warning("No subjects found, creating empty wall table")
        return pd.DataFrame(columns=WALL_COLUMNS)

    return pd.DataFrame(rows, columns=WALL_COLUMNS)


def export_wall(
    aggregates: Sequence[SubjectAggregate],
    output_dir: str,
    sort: str = "trending"
) -> str:
    """
    Save the wall table and its metadata.

    Args:
        aggregates: Wall rows in display order
        output_dir: Directory to save CSV output
        sort: Sort mode the rows were produced with (recorded in metadata)

    Returns:
        Path to the CSV file
    """
    df = build_wall_table(aggregates)

    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, f"wall_{stamp}.csv")
    df.to_csv(output_path, index=False)

    logger.info(f"Wall table saved to {output_path} ({len(df)} films)")

    pending: List[str] = [agg.subject_name for agg in aggregates if agg.critic_samples == 0]
    metadata = {
        "sort": sort,
        "total_films": len(df),
        "total_scans": int(sum(len(agg.scans) for agg in aggregates)),
        "pending_analysis": pending,
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }
    metadata_path = output_path.replace(".csv", "_metadata.json")
    with open(metadata_path, 'w') as f:
        json.dump(metadata, f, indent=2)

    logger.info(f"Metadata saved to {metadata_path}")
    return output_path
