"""
Lexicon Sentiment Scorer.

Scores free-text verdicts on a 0-100 scale using weighted keyword tiers,
fixed-target idiom overrides, and contextual concern adjustments.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from cinewall.scoring.normalizer import clamp

logger = logging.getLogger(__name__)


CRITIC = "critic"
AUDIENCE = "audience"
PERSPECTIVES = (CRITIC, AUDIENCE)

BASELINE = 50
TEXT_SCORE_MIN = 10
TEXT_SCORE_MAX = 98


@dataclass(frozen=True)
class LexiconTier:
    """
    A keyword set with one impact per perspective.

    The impact is added to the baseline once for every keyword of the
    tier found in the text.
    """
    name: str
    keywords: Tuple[str, ...]
    critic_impact: int
    audience_impact: int

    def impact(self, perspective: str) -> int:
        return self.audience_impact if perspective == AUDIENCE else self.critic_impact


@dataclass(frozen=True)
class ContextRule:
    """A concern that shifts the score once when any of its keywords appear."""
    name: str
    keywords: Tuple[str, ...]
    critic_impact: int
    audience_impact: int

    def impact(self, perspective: str) -> int:
        return self.audience_impact if perspective == AUDIENCE else self.critic_impact


@dataclass(frozen=True)
class PhraseOverride:
    """An idiom whose meaning pins the score to a fixed target."""
    phrases: Tuple[str, ...]
    critic_target: int
    audience_target: int

    def target(self, perspective: str) -> int:
        return self.audience_target if perspective == AUDIENCE else self.critic_target


# Strongest positive to strongest negative. Audience weights favour
# communal, high-energy reception; critic weights favour craft.
DEFAULT_TIERS: Tuple[LexiconTier, ...] = (
    LexiconTier(
        name="acclaim",
        keywords=(
            "masterpiece", "extraordinary", "phenomenal", "perfect", "10/10",
            "blockbuster", "must watch", "must-watch", "outstanding",
            "mind-blowing", "mind blowing", "epic",
        ),
        critic_impact=30,
        audience_impact=32,
    ),
    LexiconTier(
        name="craft",
        keywords=(
            "excellent", "brilliant", "superb", "great", "well crafted",
            "well-crafted", "well written", "well-written", "gripping",
            "stunning", "powerful", "nuanced", "engaging",
        ),
        critic_impact=22,
        audience_impact=14,
    ),
    LexiconTier(
        name="crowd",
        keywords=(
            "entertaining", "enjoyable", "good", "fun ride", "goosebumps",
            "whistle", "paisa vasool", "crowd pleaser", "crowd-pleaser",
            "hype", "mass entertainer", "celebration",
        ),
        critic_impact=8,
        audience_impact=18,
    ),
    LexiconTier(
        name="mixed",
        keywords=(
            "mixed", "average", "decent", "okay", "mediocre", "passable",
            "predictable",
        ),
        critic_impact=5,
        audience_impact=5,
    ),
    LexiconTier(
        name="letdown",
        keywords=(
            "bad", "boring", "poor", "dull", "flop", "disappoint", "skippable",
            "weak", "lacklustre", "lackluster", "underwhelming", "bland",
        ),
        critic_impact=-16,
        audience_impact=-18,
    ),
    LexiconTier(
        name="disaster",
        keywords=(
            "terrible", "disaster", "awful", "waste", "worst", "garbage",
            "rotten", "torture", "unbearable", "unwatchable",
        ),
        critic_impact=-30,
        audience_impact=-30,
    ),
)

DEFAULT_CONTEXT_RULES: Tuple[ContextRule, ...] = (
    ContextRule(
        name="pacing",
        keywords=(
            "lengthy", "drag", "too long", "overlong", "slow", "stretched",
            "runtime",
        ),
        critic_impact=-6,
        audience_impact=-9,
    ),
    ContextRule(
        name="family",
        keywords=(
            "family entertainer", "family friendly", "family-friendly",
            "family audience", "with family", "kids",
        ),
        critic_impact=2,
        audience_impact=6,
    ),
    ContextRule(
        name="logic",
        keywords=(
            "illogical", "no logic", "lacks logic", "plot hole", "loophole",
            "makes no sense", "nonsensical", "far-fetched", "far fetched",
        ),
        critic_impact=-8,
        audience_impact=-3,
    ),
)

DEFAULT_OVERRIDES: Tuple[PhraseOverride, ...] = (
    PhraseOverride(
        phrases=(
            "one time watch", "one-time watch", "onetime watch",
            "watchable once", "watch once",
        ),
        critic_target=55,
        audience_target=58,
    ),
    PhraseOverride(
        phrases=("timepass", "time pass"),
        critic_target=50,
        audience_target=56,
    ),
)


class LexiconScorer:
    """
    Keyword-tier sentiment scorer.

    Scoring order:
    1. Phrase overrides short-circuit to their fixed target
    2. Tier keywords add their impact to the baseline of 50
    3. Context rules stack once per concern
    4. No match at all -> exactly 50; otherwise clamp to [10, 98]

    Tables default to the module constants and can be replaced per
    instance to try alternate weighting schemes.
    """

    def __init__(
        self,
        tiers: Sequence[LexiconTier] = DEFAULT_TIERS,
        context_rules: Sequence[ContextRule] = DEFAULT_CONTEXT_RULES,
        overrides: Sequence[PhraseOverride] = DEFAULT_OVERRIDES,
        score_min: int = TEXT_SCORE_MIN,
        score_max: int = TEXT_SCORE_MAX,
    ):
        self.tiers = tuple(tiers)
        self.context_rules = tuple(context_rules)
        self.overrides = tuple(overrides)
        self.score_min = score_min
        self.score_max = score_max
        self._rules_by_name: Dict[str, ContextRule] = {r.name: r for r in self.context_rules}

    def score(self, text: Optional[str], perspective: str = CRITIC) -> int:
        """
        Score free text from the given perspective.

        Args:
            text: Verdict text; None or empty yields the neutral 50
            perspective: "critic" or "audience"

        Returns:
            Integer score
        """
        _check_perspective(perspective)
        lower = (text or "").lower()
        if not lower.strip():
            return BASELINE

        override = self._find_override(lower)
        if override is not None:
            return override.target(perspective)

        total = BASELINE
        matched = 0

        for tier in self.tiers:
            for keyword in tier.keywords:
                if keyword in lower:
                    total += tier.impact(perspective)
                    matched += 1

        for rule in self.context_rules:
            if self._matches(rule.keywords, lower):
                total += rule.impact(perspective)
                matched += 1

        if matched == 0:
            return BASELINE

        return int(clamp(total, self.score_min, self.score_max))

    def matched_keywords(self, text: Optional[str]) -> Dict[str, List[str]]:
        """Keywords found per tier and per context rule, for debugging output."""
        lower = (text or "").lower()
        found: Dict[str, List[str]] = {}
        for group in self.tiers + self.context_rules:
            hits = [k for k in group.keywords if k in lower]
            if hits:
                found[group.name] = hits
        return found

    def has_concern(self, text: Optional[str], name: str) -> bool:
        """True if the context rule called `name` fires on `text`."""
        rule = self._rules_by_name.get(name)
        if rule is None:
            raise ValueError(f"Unknown context rule: {name}")
        return self._matches(rule.keywords, (text or "").lower())

    def concern_impact(self, name: str, perspective: str) -> int:
        """Impact of the context rule called `name` for `perspective`."""
        rule = self._rules_by_name.get(name)
        if rule is None:
            raise ValueError(f"Unknown context rule: {name}")
        return rule.impact(perspective)

    def _find_override(self, lower: str) -> Optional[PhraseOverride]:
        for override in self.overrides:
            if self._matches(override.phrases, lower):
                logger.debug(f"Phrase override hit: {override.phrases[0]!r}")
                return override
        return None

    @staticmethod
    def _matches(keywords: Sequence[str], lower: str) -> bool:
        return any(k in lower for k in keywords)


def _check_perspective(perspective: str) -> None:
    if perspective not in PERSPECTIVES:
        raise ValueError(
            f"Invalid perspective: {perspective}. Must be 'critic' or 'audience'"
        )
