"""
Unit tests for the Consensus Service.

Store and vault are real files in a temp directory; the generator and
enricher are mocks.
"""

import json
import os
import tempfile
from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as google_exceptions

from cinewall.agents.narrative import NarrativeGenerator
from cinewall.exceptions import NarrativeGenerationError, StoreConnectionError
from cinewall.models.aggregate import TitleMetadata
from cinewall.models.report import (
    NarrativeReport,
    TAGLINE_DELAYED,
    TAGLINE_NETWORK_ERROR,
    TAGLINE_UNAVAILABLE,
)
from cinewall.orchestrator import ConsensusService, placeholder_for
from cinewall.utils.retry import RetryPolicy
from config.settings import AppConfig

REPORT = {
    "tagline": "A towering achievement",
    "summary": "Critics and audiences agree.",
    "critics_vs_audience": "Both love it.",
    "conflict_points": "Runtime.",
    "comment_vibe": "Awed, emotional, loud",
}

ROWS = [
    {"id": "1", "created_at": "2024-06-01T10:00:00Z", "subject_name": "Dune", "reviewer_name": "A",
     "result": {"sentiment_label": "Positive", "summary": "excellent"}},
    {"id": "2", "created_at": "2024-06-02T10:00:00Z", "subject_name": "dune", "reviewer_name": "B",
     "result": {"rating": 3}},
    {"id": "3", "created_at": "2024-06-05T10:00:00Z", "subject_name": "Heat", "reviewer_name": "A",
     "result": {"score": 9}},
    {"id": "4", "created_at": "2024-06-03T10:00:00Z", "subject_name": "Spider-Man: No Way Home",
     "reviewer_name": "C", "result": {}},
]


@pytest.fixture
def data_root():
    with tempfile.TemporaryDirectory() as tmpdir:
        with open(os.path.join(tmpdir, "scans.json"), 'w') as f:
            json.dump(ROWS, f)
        yield tmpdir


@pytest.fixture
def generator():
    gen = MagicMock()
    gen.generate.return_value = NarrativeReport.from_response(REPORT)
    return gen


@pytest.fixture
def enricher():
    enricher = MagicMock(enabled=True)
    enricher.lookup.return_value = TitleMetadata(release_date="2021-10-22", genres=["Science Fiction"])
    return enricher


@pytest.fixture
def service(data_root, generator, enricher):
    return ConsensusService(AppConfig(data_root=data_root), generator=generator, enricher=enricher)


def test_wall_sort_modes(service):
    trending = service.list_subjects(sort="trending")
    assert [a.subject_name for a in trending][0] == "dune"
    assert trending[0].reviewers_count == 2

    latest = service.list_subjects(sort="latest")
    assert [a.subject_name for a in latest] == ["Heat", "Spider-Man: No Way Home", "dune"]

    az = service.list_subjects(sort="az")
    assert [a.subject_name for a in az] == ["dune", "Heat", "Spider-Man: No Way Home"]


def test_wall_search(service):
    assert [a.subject_name for a in service.list_subjects(search="SPIDER")] == ["Spider-Man: No Way Home"]
    assert service.list_subjects(search="nothing like this") == []


def test_wall_rejects_unknown_sort(service):
    with pytest.raises(ValueError):
        service.list_subjects(sort="popular")


def test_wall_enrichment(service, enricher):
    aggregates = service.list_subjects(enrich=True)
    assert enricher.lookup.call_count == 3
    assert all(a.metadata.genres == ["Science Fiction"] for a in aggregates)


@pytest.mark.parametrize("query", ["Dune", "DUNE", "dune", " dune "])
def test_detail_lookup_is_case_insensitive(service, query):
    agg = service.get_subject(query)
    assert agg is not None
    assert len(agg.scans) == 2


def test_detail_lookup_by_slug(service):
    assert service.get_subject("spider-man-no-way-home").subject_name == "Spider-Man: No Way Home"


def test_detail_matches_wall_aggregate(service):
    wall = {a.slug: a for a in service.list_subjects()}
    detail = service.get_subject("dune")
    assert detail.to_dict(include_scans=True) == wall[detail.slug].to_dict(include_scans=True)


def test_detail_unknown_subject(service):
    assert service.get_subject("Casablanca") is None
    assert service.get_subject("  ") is None


def test_detail_ambiguous_slug_matches_nothing(generator, enricher):
    rows = ROWS + [
        {"id": "5", "created_at": "2024-06-04T10:00:00Z", "subject_name": "Spider-Man No Way Home!",
         "reviewer_name": "D", "result": {"rating": 4}},
    ]
    with tempfile.TemporaryDirectory() as tmpdir:
        with open(os.path.join(tmpdir, "scans.json"), 'w') as f:
            json.dump(rows, f)
        service = ConsensusService(AppConfig(data_root=tmpdir), generator=generator, enricher=enricher)

        assert service.get_subject("spider-man-no-way-home") is None
        # Either film is still reachable by its name
        assert len(service.get_subject("Spider-Man No Way Home!").scans) == 1
        assert len(service.get_subject("spider-man: no way home").scans) == 1


def test_detail_and_wall_share_the_fetch_window(service):
    with patch("config.settings.SCAN_FETCH_LIMIT", 2):
        wall = {a.subject_name for a in service.list_subjects()}
        assert wall == {"Heat", "Spider-Man: No Way Home"}
        assert service.get_subject("dune") is None
        assert service.get_subject("heat") is not None


def test_detail_enrichment(service, enricher):
    agg = service.get_subject("heat", enrich=True)
    enricher.lookup.assert_called_once_with("Heat")
    assert agg.metadata.release_date == "2021-10-22"


def test_store_failure_is_distinct_from_no_data(data_root, generator, enricher):
    with open(os.path.join(data_root, "scans.json"), 'w') as f:
        f.write("{ broken")
    service = ConsensusService(AppConfig(data_root=data_root), generator=generator, enricher=enricher)
    with pytest.raises(StoreConnectionError):
        service.list_subjects()


def test_narrative_generated_once_and_cached(service, generator, data_root):
    agg = service.get_subject("dune")

    first = service.get_narrative(agg)
    second = service.get_narrative(agg)

    assert first == second
    assert generator.generate.call_count == 1
    assert service.vault.get_report(agg.subject_name) == first

    # a fresh service reads the vault instead of generating again
    fresh = ConsensusService(AppConfig(data_root=data_root), generator=generator, enricher=MagicMock())
    assert fresh.get_narrative(fresh.get_subject("Dune")).tagline == REPORT["tagline"]
    assert generator.generate.call_count == 1


def test_placeholder_not_cached_and_latched(service, generator):
    generator.generate.side_effect = NarrativeGenerationError("busy", retryable=True, status=429)
    agg = service.get_subject("heat")

    report = service.get_narrative(agg)
    assert report.is_placeholder
    assert report.tagline == TAGLINE_DELAYED
    assert service.vault.get("Heat") is None

    # one attempt per session
    assert service.get_narrative(agg) is report
    assert generator.generate.call_count == 1

    # explicit retry
    generator.generate.side_effect = None
    refreshed = service.get_narrative(agg, force=True)
    assert not refreshed.is_placeholder
    assert generator.generate.call_count == 2
    assert service.vault.get_report("Heat") == refreshed


def test_corrupt_vault_entry_triggers_regeneration(service, generator):
    service.vault.entries.clear()
    with open(service.vault.vault_path, 'w') as f:
        json.dump([{"subject_name": "Heat", "report": "{oops", "created_at": ""}], f)
    service.vault._load()

    report = service.get_narrative(service.get_subject("heat"))
    assert report.tagline == REPORT["tagline"]
    assert generator.generate.call_count == 1


def test_no_generator_gives_unavailable_placeholder(data_root, enricher):
    service = ConsensusService(AppConfig(data_root=data_root, google_api_key=""), enricher=enricher)
    assert service.generator is None
    report = service.get_narrative(service.get_subject("heat"))
    assert report.is_placeholder
    assert report.tagline == TAGLINE_UNAVAILABLE


def test_rate_limited_generation_end_to_end(data_root, enricher):
    """429 three times then success: sleeps 1, 2, 4 and one vault write."""
    sleeps = []
    with patch('cinewall.agents.narrative.genai'):
        generator = NarrativeGenerator(
            api_key="test-key",
            retry_policy=RetryPolicy(sleep=sleeps.append),
        )
    generator.model = MagicMock()
    generator.model.generate_content.side_effect = [
        google_exceptions.TooManyRequests("slow down"),
        google_exceptions.TooManyRequests("slow down"),
        google_exceptions.TooManyRequests("slow down"),
        MagicMock(text=json.dumps(REPORT)),
    ]
    service = ConsensusService(AppConfig(data_root=data_root), generator=generator, enricher=enricher)

    with patch.object(service.vault, "upsert", wraps=service.vault.upsert) as upsert:
        report = service.get_narrative(service.get_subject("dune"))

    assert report.summary == REPORT["summary"]
    assert sleeps == [1.0, 2.0, 4.0]
    upsert.assert_called_once()


@pytest.mark.parametrize("error, tagline", [
    (NarrativeGenerationError("x", retryable=True, status=429), TAGLINE_DELAYED),
    (NarrativeGenerationError("x", status=400), TAGLINE_UNAVAILABLE),
    (NarrativeGenerationError("x", network=True), TAGLINE_NETWORK_ERROR),
    (NarrativeGenerationError("malformed"), TAGLINE_DELAYED),
])
def test_placeholder_for(error, tagline):
    report = placeholder_for(error)
    assert report.is_placeholder
    assert report.tagline == tagline


def test_list_vault(service):
    service.get_narrative(service.get_subject("dune"))
    pairs = service.list_vault()
    assert len(pairs) == 1
    assert pairs[0][1].tagline == REPORT["tagline"]
