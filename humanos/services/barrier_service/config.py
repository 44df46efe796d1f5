"""Barrier Service configuration: detection phrase tables and selector tuning."""
import os
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class SelectorConfig:
    """Intervention selector tuning."""

    # emotional_level strictly above this prefers a calming lever
    emotional_override_threshold: float = 0.7

    # Substrings of brain_state_target that mark a calming lever (case-sensitive)
    calming_keywords: Tuple[str, ...] = ("lower", "calm")

    @classmethod
    def from_env(cls) -> "SelectorConfig":
        """Environment variables:
            EMOTIONAL_OVERRIDE_THRESHOLD: default 0.7
        """
        return cls(
            emotional_override_threshold=float(
                os.getenv("EMOTIONAL_OVERRIDE_THRESHOLD", str(cls.emotional_override_threshold))
            ),
        )


# Trimmed replies shorter than this count as minimal engagement
MINIMAL_RESPONSE_LENGTH = 10

IDK_PATTERNS: Tuple[str, ...] = (
    r"\bi don[’']?t know\b",
    r"\bidk\b",
    r"\bdunno\b",
    r"\bno idea\b",
)

CONFRONTATIONAL_PATTERNS: Tuple[str, ...] = (
    r"\bthis is (stupid|dumb|boring)\b",
    r"\bwhy (do|should) i\b",
    r"\bi don[’']?t (care|want to)\b",
    r"\bwhatever\b",
    r"\bso what\b",
    r"\bmake me\b",
)

PLAYFUL_PATTERNS: Tuple[str, ...] = (
    r"\b(haha\w*|lol|lmao)\b",
    r"\bcan we (play|do something else)\b",
    "[\U0001F600\U0001F602\U0001F3AE\U0001F3B2]",  # grinning, tears of joy, game controller, die
)

BOREDOM_PATTERNS: Tuple[str, ...] = (
    r"\bthis is (too )?easy\b",
    r"\bi (already )?know this\b",
    r"\bwhen do we do something interesting\b",
    r"\bcan i do something else\b",
)
