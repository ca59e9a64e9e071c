"""
Metadata Enrichment Agent.

Looks films up on TMDB for poster, release date, genres and runtime.
Every failure mode (no key, timeout, not found, quota) collapses to
"no metadata".
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from cinewall.models.aggregate import TitleMetadata
import config.settings as settings

logger = logging.getLogger(__name__)


class MetadataEnricher:
    """
    Optional TMDB lookup.

    Two calls per title: search by query for the first match, then the
    detail record by id for runtime and genres. If the detail call fails
    the search hit alone is used.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = settings.TMDB_API_URL,
        image_base_url: str = settings.TMDB_IMAGE_BASE_URL,
        timeout_seconds: int = settings.METADATA_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize enricher.

        Args:
            api_key: TMDB API key; empty disables lookups
            api_url: TMDB API base URL
            image_base_url: Prefix for poster paths
            timeout_seconds: Per-request timeout
            session: Optional requests session (shared connection pool)
        """
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.image_base_url = image_base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

        if not api_key:
            logger.info("TMDB_API_KEY not set, metadata enrichment disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def lookup(self, query: str) -> Optional[TitleMetadata]:
        """
        Look a title up.

        Args:
            query: Film name as it appears in the scans

        Returns:
            TitleMetadata, or None if unavailable for any reason
        """
        if not self.enabled or not query or not query.strip():
            return None

        hit = self.search(query)
        if hit is None:
            logger.info(f"No TMDB match for '{query}'")
            return None

        details = self.details(hit.get("id")) if hit.get("id") is not None else None
        return self._to_metadata(details or hit)

    def search(self, query: str) -> Optional[Dict[str, Any]]:
        """First search match for `query`, or None."""
        data = self._get(
            "/search/movie",
            {"query": query.strip(), "language": "en-US", "page": 1},
        )
        if not data:
            return None
        results = data.get("results") or []
        if not isinstance(results, list) or not results:
            return None
        first = results[0]
        return first if isinstance(first, dict) else None

    def details(self, movie_id: Any) -> Optional[Dict[str, Any]]:
        """Detail record for a TMDB id, or None."""
        return self._get(f"/movie/{movie_id}", {})

    def _get(self, path: str, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """GET a TMDB endpoint; any failure is logged and returns None."""
        url = f"{self.api_url}{path}"
        try:
            response = self.session.get(
                url,
                params={**params, "api_key": self.api_key},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning(f"TMDB request failed ({path}): {e}")
            return None

        if response.status_code == 429:
            logger.warning("TMDB quota exceeded")
            return None
        if response.status_code != 200:
            logger.warning(f"TMDB error ({response.status_code}) for {path}")
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"TMDB returned invalid JSON for {path}: {e}")
            return None
        return data if isinstance(data, dict) else None

    def _to_metadata(self, data: Dict[str, Any]) -> TitleMetadata:
        poster_path = data.get("poster_path") or None
        return TitleMetadata(
            release_date=data.get("release_date") or None,
            poster_path=poster_path,
            poster_url=f"{self.image_base_url}{poster_path}" if poster_path else None,
            backdrop_path=data.get("backdrop_path") or None,
            overview=data.get("overview") or None,
            genres=_genre_names(data.get("genres")),
            runtime=data.get("runtime") if isinstance(data.get("runtime"), int) else None,
            vote_average=_as_float(data.get("vote_average")),
        )


def _genre_names(genres: Any) -> List[str]:
    if not isinstance(genres, list):
        return []
    names = []
    for genre in genres:
        if isinstance(genre, dict) and genre.get("name"):
            names.append(str(genre["name"]))
        elif isinstance(genre, str):
            names.append(genre)
    return names


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
