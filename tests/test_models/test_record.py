"""
Unit tests for scan record parsing and key resolution.
"""

from datetime import datetime, timezone

import pytest

from cinewall.models.record import (
    EPOCH,
    MODE_COMMENTS,
    MODE_REVIEWER,
    ScanRecord,
    ScanResult,
    first_present,
    parse_timestamp,
)


def test_first_present_prefers_earlier_keys():
    payload = {"summary": "second", "sentimentDescription": "first"}
    assert first_present(payload, ("sentimentDescription", "summary")) == "first"


def test_first_present_falls_back_to_case_insensitive_match():
    assert first_present({"SentimentScore": 8}, ("sentimentScore",)) == 8


def test_first_present_treats_none_as_absent():
    payload = {"score": None, "rating": 4}
    assert first_present(payload, ("score", "rating")) == 4


def test_first_present_on_non_dict():
    assert first_present(None, ("score",)) is None
    assert first_present(["score"], ("score",)) is None


def test_result_resolves_snake_and_camel_spellings():
    snake = ScanResult.from_payload({"sentiment_label": "positive", "sentiment_description": "Great"})
    camel = ScanResult.from_payload({"overallSentiment": "Positive", "overallSummary": "Great"})
    assert snake.label == camel.label == "Positive"
    assert snake.text == camel.text == "Great"


def test_sentiment_prose_is_used_as_text():
    result = ScanResult.from_payload({"sentiment": "A thrilling ride"})
    assert result.label is None
    assert result.text == "A thrilling ride"


def test_label_is_derived_from_rating():
    assert ScanResult.from_payload({"score": 8.2}).label == "Positive"
    assert ScanResult.from_payload({"score": 1.5}).label == "Negative"
    assert ScanResult.from_payload({"score": 55}).label == "Mixed"


def test_audience_signal_numeric_or_text():
    numeric = ScanResult.from_payload({"audienceScore": "88"})
    textual = ScanResult.from_payload({"audience_sentiment": "Fans loved it"})
    assert numeric.audience_rating == 88 and numeric.audience_text == ""
    assert textual.audience_rating is None and textual.audience_text == "Fans loved it"
    assert textual.audience_label is None


def test_audience_label_is_kept_apart_from_prose():
    result = ScanResult.from_payload({"audienceSentiment": " positive "})
    assert result.audience_label == "Positive"
    assert result.audience_text == ""
    assert not result.is_empty


def test_insights_and_topics():
    result = ScanResult.from_payload({
        "highQualityInsights": [
            {"username": "@a", "text": "loved it", "analysis": "Strongly positive"},
            "plain string insight",
        ],
        "keywords": "music, visuals ,",
    })
    assert [i.scoring_text for i in result.insights] == ["Strongly positive", "plain string insight"]
    assert result.topics == ["music", "visuals"]


def test_non_dict_payload_is_empty():
    assert ScanResult.from_payload("garbage").is_empty
    assert ScanResult.from_payload(None).is_empty


def test_parse_timestamp():
    assert parse_timestamp("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert parse_timestamp("2024-05-01T10:00:00").tzinfo is not None
    assert parse_timestamp("yesterday") == EPOCH
    assert parse_timestamp(None) == EPOCH


def test_record_from_row():
    record = ScanRecord.from_row({
        "id": "s1",
        "created_at": "2024-05-01T10:00:00Z",
        "mode": "comments",
        "subject_name": "  Dune  ",
        "reviewer_name": "Comments",
        "thumbnail": "https://img/1.jpg",
        "result": {"summary": "Big and loud"},
    })
    assert record.mode == MODE_COMMENTS
    assert record.is_audience_only
    assert record.has_thumbnail
    assert record.snippet == "Big and loud"
    assert record.to_row()["result"] == {"summary": "Big and loud"}


def test_record_defaults():
    record = ScanRecord.from_row({"id": "s2", "subject_name": "Dune", "title": "Dune review", "thumbnail": "local.jpg"})
    assert record.mode == MODE_REVIEWER
    assert not record.has_thumbnail
    assert record.result.is_empty
    assert record.snippet == "Dune review"


def test_record_requires_subject():
    with pytest.raises(ValueError):
        ScanRecord.from_row({"id": "s3", "subject_name": "   "})
