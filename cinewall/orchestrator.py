"""
Consensus Service.

Coordinates the store, the aggregator and the optional collaborators
(metadata enricher, narrative generator, narrative vault) behind the
operations the CLI exposes: the wall, a single film, its narrative and
the vault listing.
"""

import logging
import os
from typing import Dict, List, Optional, Set, Tuple

from cinewall.agents.aggregation import SubjectAggregator
from cinewall.agents.enrichment import MetadataEnricher
from cinewall.agents.grouping import group_records
from cinewall.agents.narrative import NarrativeGenerator, build_request
from cinewall.exceptions import NarrativeGenerationError
from cinewall.models.aggregate import SubjectAggregate
from cinewall.models.record import ScanRecord
from cinewall.models.report import (
    NarrativeReport,
    TAGLINE_DELAYED,
    TAGLINE_NETWORK_ERROR,
    TAGLINE_UNAVAILABLE,
)
from cinewall.registry.narrative_vault import NarrativeVault, VaultEntry
from cinewall.utils.storage import StorageManager
from cinewall.utils.text import slugify, subject_key, unslugify
import config.settings as settings
from config.settings import AppConfig

logger = logging.getLogger(__name__)


SORT_TRENDING = "trending"
SORT_LATEST = "latest"
SORT_AZ = "az"
SORT_MODES = (SORT_TRENDING, SORT_LATEST, SORT_AZ)

SUMMARY_DELAYED = "The analysis service is busy. Try again in a moment."
SUMMARY_NETWORK_ERROR = "The analysis service could not be reached."
SUMMARY_UNAVAILABLE = "A consensus report could not be generated for this film."


class ConsensusService:
    """
    Entry point for wall, detail and narrative requests.

    Aggregates are rebuilt from the store on every call. Narrative
    generation is attempted at most once per film per service instance;
    pass force=True to retry after a placeholder.
    """

    def __init__(
        self,
        config: AppConfig,
        storage: Optional[StorageManager] = None,
        vault: Optional[NarrativeVault] = None,
        generator: Optional[NarrativeGenerator] = None,
        enricher: Optional[MetadataEnricher] = None,
        aggregator: Optional[SubjectAggregator] = None
    ):
        """
        Initialize service.

        Args:
            config: Process configuration
            storage: Scan store (defaults to one under config.data_root)
            vault: Narrative cache (defaults to memory_vault.json under data_root)
            generator: Narrative generator (built from the Gemini key when omitted)
            enricher: Metadata enricher (built from the TMDB key when omitted)
            aggregator: Scoring pipeline with default tables when omitted
        """
        self.config = config

        logger.info("Initializing consensus service components...")

        self.storage = storage or StorageManager(config.data_root)
        self.vault = vault or NarrativeVault(
            os.path.join(str(config.data_root), settings.VAULT_FILENAME)
        )
        self.enricher = enricher or MetadataEnricher(api_key=config.tmdb_api_key)
        self.aggregator = aggregator or SubjectAggregator()

        if generator is not None:
            self.generator = generator
        elif config.google_api_key:
            self.generator = NarrativeGenerator(
                api_key=config.google_api_key,
                model_name=config.narrative_model,
            )
        else:
            logger.warning("GOOGLE_API_KEY not set, narratives will be unavailable")
            self.generator = None

        self.case_insensitive = self.aggregator.case_insensitive
        self._attempted: Set[str] = set()
        self._session_reports: Dict[str, NarrativeReport] = {}

    def list_subjects(
        self,
        search: Optional[str] = None,
        sort: str = SORT_TRENDING,
        enrich: bool = False
    ) -> List[SubjectAggregate]:
        """
        Build the wall.

        Args:
            search: Case-insensitive substring filter on the film name
            sort: trending (most reviewers), latest (last scanned) or az
            enrich: Look each film up for metadata

        Returns:
            List of SubjectAggregate in display order

        Raises:
            ValueError: On an unknown sort mode
            StoreConnectionError: If the store cannot be read
        """
        if sort not in SORT_MODES:
            raise ValueError(f"Unknown sort mode '{sort}', expected one of {SORT_MODES}")

        records = self.storage.load_scans(limit=settings.SCAN_FETCH_LIMIT)
        aggregates = self.aggregator.aggregate(
            records,
            enrich_metadata=enrich and self.enricher.enabled,
            enricher=self.enricher,
        )

        if search and search.strip():
            needle = search.strip().casefold()
            aggregates = [a for a in aggregates if needle in a.subject_name.casefold()]

        return sort_aggregates(aggregates, sort)

    def get_subject(self, slug_or_name: str, enrich: bool = False) -> Optional[SubjectAggregate]:
        """
        Aggregate a single film.

        Accepts the display name in any case or its slug. Scans are
        matched with the same key rules as the wall grouping.

        Returns:
            SubjectAggregate, or None when no scan matches

        Raises:
            StoreConnectionError: If the store cannot be read
        """
        query = (slug_or_name or "").strip()
        if not query:
            return None

        limit = settings.SCAN_FETCH_LIMIT
        records = self.storage.load_scans(
            limit=limit, subject_name=query, case_insensitive=self.case_insensitive
        )
        if not records:
            records = self.storage.load_scans(
                limit=limit, subject_name=unslugify(query), case_insensitive=self.case_insensitive
            )
        if not records:
            records = self._match_slug(slugify(query), limit)
        if not records:
            logger.info(f"No scans found for '{query}'")
            return None

        metadata = None
        if enrich and self.enricher.enabled:
            metadata = self.aggregator.lookup_metadata(self.enricher, records[0].subject_name.strip())
        return self.aggregator.aggregate_group(records, metadata)

    def _match_slug(self, slug: str, limit: int) -> List[ScanRecord]:
        """
        Scans of the one film whose slug is `slug`.

        Slugs drop punctuation, so distinct films can share one. An
        ambiguous slug matches nothing.
        """
        matches = [r for r in self.storage.load_scans(limit=limit) if slugify(r.subject_name) == slug]
        groups = group_records(matches, case_insensitive=self.case_insensitive)
        if len(groups) > 1:
            names = sorted(records[0].subject_name for records in groups.values())
            logger.warning(f"Slug '{slug}' matches several films: {names}")
            return []
        return matches

    def get_narrative(self, aggregate: SubjectAggregate, force: bool = False) -> NarrativeReport:
        """
        Consensus narrative for a film.

        A usable vault entry is returned as-is. Otherwise the generator is
        called once per film for the lifetime of this service; later calls
        replay the session result until `force` is set. Only successful
        reports are written to the vault.

        Args:
            aggregate: Film to describe
            force: Skip the vault and the one-shot latch

        Returns:
            NarrativeReport, possibly a placeholder
        """
        key = subject_key(aggregate.subject_name, self.case_insensitive)

        if not force:
            cached = self.vault.get_report(aggregate.subject_name, self.case_insensitive)
            if cached is not None:
                logger.debug(f"Vault hit for '{aggregate.subject_name}'")
                return cached
            if key in self._attempted:
                logger.debug(f"Narrative already attempted for '{aggregate.subject_name}' this session")
                return self._session_reports[key]

        self._attempted.add(key)
        report = self._generate(aggregate)
        self._session_reports[key] = report
        return report

    def list_vault(self) -> List[Tuple[VaultEntry, NarrativeReport]]:
        """Cached (entry, report) pairs, newest first, unusable rows skipped."""
        return self.vault.list_reports()

    def _generate(self, aggregate: SubjectAggregate) -> NarrativeReport:
        if self.generator is None:
            return NarrativeReport.placeholder(TAGLINE_UNAVAILABLE, SUMMARY_UNAVAILABLE)

        try:
            report = self.generator.generate(build_request(aggregate))
        except NarrativeGenerationError as e:
            logger.warning(f"Narrative unavailable for '{aggregate.subject_name}': {e}")
            return placeholder_for(e)

        entry = self.vault.find(aggregate.subject_name, self.case_insensitive)
        vault_name = entry.subject_name if entry else aggregate.subject_name
        try:
            self.vault.upsert(vault_name, report)
        except OSError as e:
            logger.error(f"Failed to cache narrative for '{vault_name}': {e}")
        return report


def placeholder_for(error: NarrativeGenerationError) -> NarrativeReport:
    """Placeholder report matching a generation failure."""
    if error.retryable:
        return NarrativeReport.placeholder(TAGLINE_DELAYED, SUMMARY_DELAYED)
    if error.network:
        return NarrativeReport.placeholder(TAGLINE_NETWORK_ERROR, SUMMARY_NETWORK_ERROR)
    if error.status is not None and 400 <= error.status < 500:
        return NarrativeReport.placeholder(TAGLINE_UNAVAILABLE, SUMMARY_UNAVAILABLE)
    return NarrativeReport.placeholder(TAGLINE_DELAYED, SUMMARY_DELAYED)


def sort_aggregates(aggregates: List[SubjectAggregate], sort: str) -> List[SubjectAggregate]:
    """Order wall rows for a sort mode."""
    if sort == SORT_LATEST:
        return sorted(aggregates, key=lambda a: a.last_scanned, reverse=True)
    if sort == SORT_AZ:
        return sorted(aggregates, key=lambda a: a.subject_name.casefold())
    # Trending: most reviewers first, most recently scanned breaks ties
    return sorted(
        aggregates,
        key=lambda a: (a.reviewers_count, a.last_scanned),
        reverse=True,
    )
