"""
Unit tests for the lexicon sentiment scorer.
"""

import pytest

from cinewall.scoring.lexicon import (
    AUDIENCE,
    CRITIC,
    LexiconScorer,
    LexiconTier,
    TEXT_SCORE_MAX,
    TEXT_SCORE_MIN,
)


@pytest.fixture
def scorer():
    return LexiconScorer()


def test_no_match_is_exactly_neutral(scorer):
    assert scorer.score("A film about a man and his dog.", CRITIC) == 50
    assert scorer.score("A film about a man and his dog.", AUDIENCE) == 50


def test_empty_and_none_are_neutral(scorer):
    assert scorer.score("", CRITIC) == 50
    assert scorer.score(None, AUDIENCE) == 50
    assert scorer.score("   ", CRITIC) == 50


def test_craft_keywords_weigh_more_for_critics(scorer):
    text = "An excellent, brilliant film"
    assert scorer.score(text, CRITIC) == 94
    assert scorer.score(text, AUDIENCE) == 78


def test_crowd_keywords_weigh_more_for_audience(scorer):
    text = "Very entertaining"
    assert scorer.score(text, AUDIENCE) > scorer.score(text, CRITIC)


def test_matching_is_case_insensitive(scorer):
    assert scorer.score("MASTERPIECE", AUDIENCE) == scorer.score("masterpiece", AUDIENCE) == 82


def test_negative_text_scores_below_neutral(scorer):
    assert scorer.score("boring", AUDIENCE) == 32
    assert scorer.score("terrible waste of time", CRITIC) < 50


def test_phrase_override_short_circuits(scorer):
    text = "Brilliant visuals but honestly a one time watch"
    assert scorer.score(text, CRITIC) == 55
    assert scorer.score(text, AUDIENCE) == 58


def test_context_rules_apply_once(scorer):
    # two pacing keywords, one adjustment
    assert scorer.score("slow and lengthy", CRITIC) == 44
    assert scorer.score("slow and lengthy", AUDIENCE) == 41


def test_scores_are_clamped(scorer):
    rave = "masterpiece, phenomenal, perfect, outstanding, epic, excellent"
    pan = "terrible, awful, worst, garbage, disaster, unwatchable"
    assert scorer.score(rave, CRITIC) == TEXT_SCORE_MAX
    assert scorer.score(pan, AUDIENCE) == TEXT_SCORE_MIN


def test_scoring_is_deterministic(scorer):
    text = "Gripping but too long, with a few plot holes"
    assert scorer.score(text, CRITIC) == scorer.score(text, CRITIC)


def test_invalid_perspective_raises(scorer):
    with pytest.raises(ValueError):
        scorer.score("good", "reviewer")


def test_concern_helpers(scorer):
    assert scorer.has_concern("the second half drags", "pacing")
    assert not scorer.has_concern("tight and lean", "pacing")
    assert scorer.concern_impact("logic", CRITIC) == -8
    with pytest.raises(ValueError):
        scorer.has_concern("anything", "unknown")


def test_matched_keywords(scorer):
    found = scorer.matched_keywords("Excellent but boring and slow")
    assert found["craft"] == ["excellent"]
    assert found["letdown"] == ["boring"]
    assert found["pacing"] == ["slow"]


def test_tables_can_be_overridden():
    scorer = LexiconScorer(
        tiers=[LexiconTier("custom", ("banger",), 40, 40)],
        context_rules=[],
        overrides=[],
    )
    assert scorer.score("absolute banger", CRITIC) == 90
    assert scorer.score("excellent", CRITIC) == 50
