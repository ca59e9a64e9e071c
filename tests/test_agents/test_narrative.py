"""
Unit tests for the Consensus Narrative Generator.

Note: These tests use mocked Gemini responses to avoid API costs.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, PropertyMock, patch

import pytest
from google.api_core import exceptions as google_exceptions

from cinewall.agents.aggregation import SubjectAggregator
from cinewall.agents.narrative import NarrativeGenerator, _construct_user_prompt, build_request
from cinewall.exceptions import NarrativeGenerationError
from cinewall.models.record import ScanRecord
from cinewall.utils.retry import RetryPolicy

REPORT = {
    "tagline": "A towering achievement",
    "summary": "Critics and audiences agree.",
    "critics_vs_audience": "Both love it.",
    "conflict_points": "Runtime.",
    "comment_vibe": "Awed, emotional, loud",
}


def make_aggregate(count=3, summary="Gripping space epic"):
    base = datetime(2024, 6, 1, tzinfo=timezone.utc)
    records = [
        ScanRecord.from_row({
            "id": str(i),
            "created_at": (base + timedelta(hours=i)).isoformat(),
            "subject_name": "Interstellar",
            "reviewer_name": f"Reviewer {i}",
            "title": f"Video {i}",
            "result": {"sentiment": "Positive", "summary": summary, "topics": ["visuals"]},
        })
        for i in range(count)
    ]
    return SubjectAggregator().aggregate_group(records)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def generator(sleeps):
    """Create generator with mocked Gemini API and a recording sleep."""
    with patch('cinewall.agents.narrative.genai'):
        gen = NarrativeGenerator(
            api_key="test-key",
            model_name="gemini-1.5-flash",
            retry_policy=RetryPolicy(max_attempts=4, base_delay=1.0, multiplier=2.0, sleep=sleeps.append),
        )
    gen.model = MagicMock()
    return gen


def ok_response(body=None):
    return MagicMock(text=json.dumps(body or REPORT))


def test_build_request_shape():
    agg = make_aggregate(count=3)
    request = build_request(agg)
    assert request["movie"] == "Interstellar"
    assert request["topics"] == ["Visuals"]
    assert request["sentiments"] == {"critics": agg.critics_score, "audience": agg.audience_score}
    # newest first, titled by reviewer
    assert [r["title"] for r in request["reviews"]] == ["Reviewer 2", "Reviewer 1", "Reviewer 0"]


def test_build_request_limits_reviews_and_snippets():
    request = build_request(make_aggregate(count=12, summary="x" * 500))
    assert len(request["reviews"]) == 8
    assert all(len(r["snippet"]) == 300 for r in request["reviews"])


def test_prompt_includes_scores_and_sources():
    prompt = _construct_user_prompt(build_request(make_aggregate(count=1)))
    assert '"Interstellar"' in prompt
    assert "[Reviewer 0]: Gripping space epic" in prompt


def test_generate_success(generator, sleeps):
    generator.model.generate_content.return_value = ok_response()
    report = generator.generate(build_request(make_aggregate()))
    assert report.tagline == "A towering achievement"
    assert not report.is_placeholder
    assert sleeps == []

    _, kwargs = generator.model.generate_content.call_args
    assert kwargs["request_options"] == {"timeout": generator.timeout_seconds}


def test_rate_limited_then_success(generator, sleeps):
    """429 three times, then a valid payload: backoff of 1, 2, 4 seconds."""
    generator.model.generate_content.side_effect = [
        google_exceptions.TooManyRequests("slow down"),
        google_exceptions.TooManyRequests("slow down"),
        google_exceptions.TooManyRequests("slow down"),
        ok_response(),
    ]
    report = generator.generate(build_request(make_aggregate()))

    assert report.summary == REPORT["summary"]
    assert sleeps == [1.0, 2.0, 4.0]
    assert generator.model.generate_content.call_count == 4


def test_retries_exhausted_is_retryable_failure(generator, sleeps):
    generator.model.generate_content.side_effect = google_exceptions.ServiceUnavailable("down")
    with pytest.raises(NarrativeGenerationError) as exc_info:
        generator.generate(build_request(make_aggregate()))

    assert exc_info.value.retryable
    assert generator.model.generate_content.call_count == 4
    assert sleeps == [1.0, 2.0, 4.0]


def test_client_error_is_not_retried(generator, sleeps):
    generator.model.generate_content.side_effect = google_exceptions.InvalidArgument("bad request")
    with pytest.raises(NarrativeGenerationError) as exc_info:
        generator.generate(build_request(make_aggregate()))

    assert not exc_info.value.retryable
    assert exc_info.value.status == 400
    assert generator.model.generate_content.call_count == 1
    assert sleeps == []


def test_network_error_is_flagged(generator):
    generator.model.generate_content.side_effect = ConnectionError("unreachable")
    with pytest.raises(NarrativeGenerationError) as exc_info:
        generator.generate(build_request(make_aggregate()))
    assert exc_info.value.network
    assert not exc_info.value.retryable


@pytest.mark.parametrize("text", [
    "not json at all",
    json.dumps({"tagline": "only a tagline"}),
    json.dumps(["list"]),
    "",
])
def test_malformed_response_is_a_failure(generator, text):
    generator.model.generate_content.return_value = MagicMock(text=text)
    with pytest.raises(NarrativeGenerationError):
        generator.generate(build_request(make_aggregate()))


def test_blocked_response_is_a_failure(generator):
    blocked = MagicMock()
    type(blocked).text = PropertyMock(side_effect=ValueError("blocked"))
    generator.model.generate_content.return_value = blocked
    with pytest.raises(NarrativeGenerationError):
        generator.generate(build_request(make_aggregate()))
