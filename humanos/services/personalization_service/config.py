"""Configuration for interest personalization and play-break rewards."""
import os
import re
from dataclasses import dataclass
from typing import Dict, Pattern, Tuple


@dataclass(frozen=True)
class PersonalizationConfig:
    """Personalization and reward settings."""
    new_interest_confidence: float = 0.8
    recent_interest_window: int = 5       # most recent interests considered
    usage_limit: int = 3                  # at or above this, use the generic reply
    usage_lookback: int = 10              # recent interactions scanned for usage
    reward_code_prefix: str = "GAME"
    reward_validity_seconds: int = 300

    def __post_init__(self):
        if not 0.0 <= self.new_interest_confidence <= 1.0:
            raise ValueError("new_interest_confidence must be 0.0-1.0")
        if "-" in self.reward_code_prefix or not self.reward_code_prefix:
            raise ValueError("reward_code_prefix must be non-empty and contain no '-'")
        if self.usage_lookback < 1:
            raise ValueError("usage_lookback must be >= 1")

    @classmethod
    def from_env(cls) -> "PersonalizationConfig":
        """Load configuration from environment variables."""
        return cls(
            reward_code_prefix=os.getenv("REWARD_CODE_PREFIX", "GAME"),
            reward_validity_seconds=int(os.getenv("REWARD_VALIDITY_SECONDS", "300")),
        )


# (category, label, pattern)
INTEREST_PATTERNS: Tuple[Tuple[str, str, Pattern], ...] = (
    ("games", "Minecraft", re.compile(r"minecraft", re.IGNORECASE)),
    ("games", "Fortnite", re.compile(r"fortnite", re.IGNORECASE)),
    ("games", "Roblox", re.compile(r"roblox", re.IGNORECASE)),
    ("sports", "Football", re.compile(r"football|soccer", re.IGNORECASE)),
    ("sports", "Basketball", re.compile(r"basketball", re.IGNORECASE)),
    ("hobbies", "Drawing", re.compile(r"\b(drawing|art)\b", re.IGNORECASE)),
    ("hobbies", "Music", re.compile(r"music|guitar|piano", re.IGNORECASE)),
)

# Template families; {interest} is replaced with the interest label
PERSONALIZATION_TEMPLATES: Dict[str, Tuple[str, ...]] = {
    "gameReward": (
        "Complete this and you'll get 5 minutes on {interest}!",
        "Let's knock this out so you can play {interest}.",
        "Finish this task = {interest} time. Deal?",
    ),
    "taskFraming": (
        "Think of this like {interest} - you need to figure out the strategy.",
        "This is like leveling up in {interest} - just need to complete this challenge.",
        "Remember how you solved that puzzle in {interest}? Same thinking here.",
    ),
    "encouragement": (
        "You've got this - you tackle way harder stuff in {interest}!",
        "If you can master {interest}, you can handle this.",
        "Apply that {interest} focus here and you'll crush it.",
    ),
}

# task type -> template family; anything else gets encouragement
TASK_TYPE_FAMILIES: Dict[str, str] = {
    "reward": "gameReward",
    "challenge": "taskFraming",
    "task": "taskFraming",
}
DEFAULT_FAMILY = "encouragement"

GENERIC_RESPONSE = "Let's tackle this together. Give it a try and see what you can do!"

# Reward heuristic
MIN_REWARD_MESSAGE_LENGTH = 50
REWARD_BLOCKING_PHRASE = "i don't know"
