"""
Unit tests for the hybrid score blender.
"""

import pytest

from cinewall.scoring.blender import HybridBlender
from cinewall.scoring.lexicon import AUDIENCE, CRITIC


@pytest.fixture
def blender():
    return HybridBlender()


def test_anchor_only_when_text_is_neutral(blender):
    assert blender.blend("Positive", "", CRITIC) == 75
    assert blender.blend("Negative", "", CRITIC) == 35
    assert blender.blend("Mixed", "", CRITIC) == 55
    assert blender.blend("Neutral", "", CRITIC) == 50
    assert blender.blend(None, "", AUDIENCE) == 50


def test_critic_shift(blender):
    # lexicon 94 -> 75 + 44 * 0.4
    assert blender.blend("Positive", "An excellent, brilliant film", CRITIC) == pytest.approx(92.6)


def test_audience_trusts_text_more(blender):
    critic = blender.blend("Mixed", "masterpiece", CRITIC)
    audience = blender.blend("Mixed", "masterpiece", AUDIENCE)
    assert audience - 55 > critic - 55


def test_positive_label_floor(blender):
    score = blender.blend("Positive", "terrible, awful waste", AUDIENCE)
    assert score == 60


def test_negative_label_cap(blender):
    score = blender.blend("Negative", "masterpiece, phenomenal", AUDIENCE)
    assert score == 49


def test_rating_replaces_label_anchor(blender):
    assert blender.anchor("Positive", rating=90) == 90
    assert blender.blend("Mixed", "", CRITIC, rating=68) == 68


def test_result_is_bounded(blender):
    for label in ("Positive", "Negative", "Mixed", "Neutral", None):
        for text in ("", "masterpiece " * 5, "terrible awful worst garbage"):
            for perspective in (CRITIC, AUDIENCE):
                assert 10 <= blender.blend(label, text, perspective) <= 98
