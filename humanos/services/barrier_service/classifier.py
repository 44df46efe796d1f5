"""Barrier classifier - deterministic avoidance-pattern detection.

Rules are independent: every rule that fires contributes one detection
with a fixed confidence. Results are ranked by confidence, ties keeping
rule order. A rule whose barrier id is missing from the catalog is skipped.
"""
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from humanos.shared.models import DetectedBarrier, StudentContext, rank_detections
from .catalog import BarrierCatalog, get_barrier_catalog
from .config import (
    BOREDOM_PATTERNS,
    CONFRONTATIONAL_PATTERNS,
    IDK_PATTERNS,
    MINIMAL_RESPONSE_LENGTH,
    PLAYFUL_PATTERNS,
)

logger = logging.getLogger(__name__)


def _compile(patterns: Sequence[str]) -> List[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


_IDK = _compile(IDK_PATTERNS)
_CONFRONTATIONAL = _compile(CONFRONTATIONAL_PATTERNS)
_PLAYFUL = _compile(PLAYFUL_PATTERNS)
_BOREDOM = _compile(BOREDOM_PATTERNS)


def _any_match(regexes: Sequence[re.Pattern], text: str) -> bool:
    return any(r.search(text) for r in regexes)


def says_i_dont_know(text: str) -> bool:
    """True for "I don't know" and its variants (idk, dunno, no idea)."""
    return _any_match(_IDK, text)


def is_confrontational(text: str) -> bool:
    return _any_match(_CONFRONTATIONAL, text)


def is_minimal_response(text: str) -> bool:
    return len(text.strip()) < MINIMAL_RESPONSE_LENGTH and not says_i_dont_know(text)


def is_playful(text: str) -> bool:
    return _any_match(_PLAYFUL, text)


def indicates_boredom(text: str) -> bool:
    return _any_match(_BOREDOM, text)


@dataclass(frozen=True)
class BarrierRule:
    """One detection rule mapped to a catalog barrier."""
    barrier_id: str
    confidence: float
    reasoning: str
    matches: Callable[[str], bool]


DEFAULT_RULES: tuple = (
    BarrierRule(
        barrier_id="lack_of_motivation",
        confidence=0.8,
        reasoning="Student used 'I don't know' - primary avoidance tactic",
        matches=says_i_dont_know,
    ),
    BarrierRule(
        barrier_id="confrontational_showoff",
        confidence=0.7,
        reasoning="Confrontational or dismissive language detected",
        matches=is_confrontational,
    ),
    BarrierRule(
        barrier_id="silent_avoider",
        confidence=0.6,
        reasoning="Minimal engagement, very short response",
        matches=is_minimal_response,
    ),
    BarrierRule(
        barrier_id="quiet_playful_avoider",
        confidence=0.65,
        reasoning="Playful or off-topic response",
        matches=is_playful,
    ),
    BarrierRule(
        barrier_id="high_achiever_underengaged",
        confidence=0.7,
        reasoning="Indicates boredom or unchallenging material",
        matches=indicates_boredom,
    ),
)


class BarrierClassifier:
    """Matches a message against the barrier rules."""

    def __init__(
        self,
        catalog: Optional[BarrierCatalog] = None,
        rules: Sequence[BarrierRule] = DEFAULT_RULES,
    ):
        self.catalog = catalog or get_barrier_catalog()
        self.rules = tuple(rules)

    def detect(self, text: str, context: Optional[StudentContext] = None) -> List[DetectedBarrier]:
        """Detect barriers in one message.

        Args:
            text: Student message (already cleared by safeguarding)
            context: Student context; accepted for rules that need it

        Returns:
            Detections ranked by confidence, empty if nothing fired
        """
        detections = []
        for rule in self.rules:
            if not rule.matches(text):
                continue

            barrier = self.catalog.get(rule.barrier_id)
            if barrier is None:
                logger.warning(
                    "BARRIER_NOT_IN_CATALOG",
                    extra={"barrier_id": rule.barrier_id}
                )
                continue

            detections.append(DetectedBarrier(
                barrier=barrier,
                confidence=rule.confidence,
                reasoning=(rule.reasoning,),
            ))

        return rank_detections(detections)
