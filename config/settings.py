"""
Configuration settings for CineWall.

Tunables for the pipeline live here as module constants. Credentials are
read once into an AppConfig at process start and passed to the clients
that need them.
"""

import os
from dataclasses import dataclass
from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_ROOT = PROJECT_ROOT / "data"
OUTPUT_ROOT = PROJECT_ROOT / "output"
SCANS_FILENAME = "scans.json"
VAULT_FILENAME = "memory_vault.json"

# Store
SCAN_FETCH_LIMIT = 1000  # Most recent scans aggregated for the wall

# Grouping: case-insensitive, whitespace-collapsed subject keys
GROUPING_CASE_INSENSITIVE = True

# Aggregation
MAX_TOP_TOPICS = 3
MIN_TOPIC_LENGTH = 3
DEFAULT_POSTER = "https://picsum.photos/300/450?grayscale&blur=2"

# Narrative generation (Gemini)
NARRATIVE_MODEL = "gemini-1.5-flash"
LLM_TEMPERATURE = 0.0
NARRATIVE_TIMEOUT_SECONDS = 30
NARRATIVE_MAX_REVIEWS = 8
NARRATIVE_SNIPPET_CHARS = 300

# Retry for rate-limit / unavailable responses: 1s, 2s, 4s
NARRATIVE_MAX_ATTEMPTS = 4
RETRY_BASE_DELAY_SECONDS = 1.0
RETRY_BACKOFF_MULTIPLIER = 2.0

# Metadata lookup (TMDB)
TMDB_API_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"
METADATA_TIMEOUT_SECONDS = 10

# Logging
LOG_LEVEL = "INFO"  # DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE = "cinewall.log"


@dataclass(frozen=True)
class AppConfig:
    """
    Process-wide configuration, built once and passed by reference.

    Empty keys disable the matching collaborator: no metadata key means
    no enrichment, no Gemini key means narratives fall back to placeholders.
    """
    google_api_key: str = ""
    tmdb_api_key: str = ""
    data_root: Path = DATA_ROOT
    output_root: Path = OUTPUT_ROOT
    narrative_model: str = NARRATIVE_MODEL

    @classmethod
    def from_env(cls, data_root: str = None) -> "AppConfig":
        """Read credentials from the environment."""
        return cls(
            google_api_key=os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY", ""),
            tmdb_api_key=os.getenv("TMDB_API_KEY", ""),
            data_root=Path(data_root) if data_root else DATA_ROOT,
            output_root=OUTPUT_ROOT,
            narrative_model=os.getenv("CINEWALL_NARRATIVE_MODEL", NARRATIVE_MODEL),
        )
