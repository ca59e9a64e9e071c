"""
Hybrid Score Blender.

Combines a categorical sentiment label (the anchor) with the lexicon's
continuous text signal (the nuance shift) into one 0-100 score.
"""

import logging
from typing import Dict, Optional

from cinewall.scoring.lexicon import AUDIENCE, BASELINE, CRITIC, LexiconScorer
from cinewall.scoring.normalizer import clamp

logger = logging.getLogger(__name__)


LABEL_ANCHORS: Dict[str, int] = {
    "Positive": 75,
    "Negative": 35,
    "Mixed": 55,
    "Neutral": 50,
}

# Share of the text signal that moves the anchor. Audiences are read
# through their words, critics through their verdict label.
BLEND_FACTORS: Dict[str, float] = {
    CRITIC: 0.4,
    AUDIENCE: 0.75,
}

POSITIVE_FLOOR = 60
NEGATIVE_CAP = 49
BLEND_MIN = 10
BLEND_MAX = 98


class HybridBlender:
    """
    Anchor-plus-shift scorer.

        final = anchor + (lexicon_score - 50) * blend_factor

    then clamped so the score never contradicts the label (Positive >= 60,
    Negative <= 49) and finally bounded to [10, 98].
    """

    def __init__(
        self,
        lexicon: Optional[LexiconScorer] = None,
        anchors: Optional[Dict[str, int]] = None,
        blend_factors: Optional[Dict[str, float]] = None,
        positive_floor: int = POSITIVE_FLOOR,
        negative_cap: int = NEGATIVE_CAP,
    ):
        self.lexicon = lexicon or LexiconScorer()
        self.anchors = dict(anchors or LABEL_ANCHORS)
        self.blend_factors = dict(blend_factors or BLEND_FACTORS)
        self.positive_floor = positive_floor
        self.negative_cap = negative_cap

    def anchor(self, label: Optional[str], rating: Optional[int] = None) -> float:
        """
        Anchor score for a record.

        A normalized numeric rating, when the record has one, is a more
        direct anchor than the label bucket.
        """
        if rating is not None:
            return float(rating)
        return float(self.anchors.get(label or "Neutral", self.anchors["Neutral"]))

    def blend(
        self,
        label: Optional[str],
        text: Optional[str],
        perspective: str = CRITIC,
        rating: Optional[int] = None,
    ) -> float:
        """
        Blend label and text into one score.

        Args:
            label: Positive / Negative / Mixed / Neutral, or None
            text: Free-text verdict
            perspective: "critic" or "audience"
            rating: Optional normalized 0-100 rating used as the anchor

        Returns:
            Score in [10, 98], unrounded
        """
        base = self.anchor(label, rating)
        shift = self.lexicon.score(text, perspective) - BASELINE
        blended = base + shift * self.blend_factors[perspective]
        return self.clamp_to_label(blended, label)

    def clamp_to_label(self, score: float, label: Optional[str]) -> float:
        """Apply the label floor/cap, then the global bounds."""
        if label == "Positive":
            score = max(score, self.positive_floor)
        elif label == "Negative":
            score = min(score, self.negative_cap)
        return clamp(score, BLEND_MIN, BLEND_MAX)
