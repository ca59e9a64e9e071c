"""
Subject aggregate data model.

The per-film projection rebuilt from scan records on every read.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from cinewall.models.record import ScanRecord


@dataclass(frozen=True)
class TitleMetadata:
    """
    Canonical title metadata.

    Without enrichment only `release_date` (earliest scan date) is known.
    """
    release_date: Optional[str] = None
    poster_path: Optional[str] = None
    poster_url: Optional[str] = None  # poster_path expanded to a full image URL
    backdrop_path: Optional[str] = None
    overview: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    runtime: Optional[int] = None
    vote_average: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "release_date": self.release_date,
            "poster_path": self.poster_path,
            "poster_url": self.poster_url,
            "backdrop_path": self.backdrop_path,
            "overview": self.overview,
            "genres": list(self.genres),
            "runtime": self.runtime,
            "vote_average": self.vote_average,
        }


@dataclass(frozen=True)
class SubjectAggregate:
    """
    Consensus view of one film.

    Owned by the caller for one request; never persisted or mutated.
    """
    subject_name: str
    slug: str
    reviewers_count: int
    last_scanned: datetime
    critics_score: int  # 0-100
    audience_score: int  # 0-100
    consensus_line: str
    top_topics: List[str]
    poster_url: str
    scans: List[ScanRecord]  # newest first
    metadata: TitleMetadata = field(default_factory=TitleMetadata)
    critic_samples: int = 0
    audience_samples: int = 0

    def to_dict(self, include_scans: bool = False) -> Dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        data = {
            "subject_name": self.subject_name,
            "slug": self.slug,
            "reviewers_count": self.reviewers_count,
            "last_scanned": self.last_scanned.isoformat(),
            "critics_score": self.critics_score,
            "audience_score": self.audience_score,
            "consensus_line": self.consensus_line,
            "top_topics": list(self.top_topics),
            "poster_url": self.poster_url,
            "metadata": self.metadata.to_dict(),
            "critic_samples": self.critic_samples,
            "audience_samples": self.audience_samples,
        }
        if include_scans:
            data["scans"] = [scan.to_row() for scan in self.scans]
        return data
