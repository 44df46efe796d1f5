"""Play-break rewards: eligibility and time-limited unlock codes.

Codes look like GAME-<issued epoch millis>-<random suffix>, upper-cased.
Validity is derived from the embedded timestamp, so a code can be checked
without any stored state.
"""
import logging
import random
import string
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from humanos.shared.models import GameAccessReward

from .config import (
    MIN_REWARD_MESSAGE_LENGTH,
    REWARD_BLOCKING_PHRASE,
    PersonalizationConfig,
)

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
_SUFFIX_LENGTH = 6


def engagement_policy(message: str) -> bool:
    """Default policy: a longer message that is not an "I don't know"."""
    return (
        len(message) > MIN_REWARD_MESSAGE_LENGTH
        and REWARD_BLOCKING_PHRASE not in message.lower()
    )


class RewardEvaluator:
    """Decides whether a message earns a play break."""

    def __init__(self, policy: Callable[[str], bool] = engagement_policy):
        self.policy = policy

    def evaluate(self, message: str) -> bool:
        return bool(self.policy(message))


class RewardCodeIssuer:
    """Issues and validates time-limited unlock codes."""

    def __init__(
        self,
        config: Optional[PersonalizationConfig] = None,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        """Initialize issuer.

        Args:
            config: Prefix and validity window
            clock: Returns epoch seconds
            rng: Random source for code suffixes
        """
        self.config = config or PersonalizationConfig()
        self.clock = clock
        self.rng = rng or random.SystemRandom()

    @property
    def validity_ms(self) -> int:
        return self.config.reward_validity_seconds * 1000

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def issue(self, earned_through: str) -> GameAccessReward:
        """Create a reward valid for the configured window from now."""
        issued_ms = self._now_ms()
        suffix = "".join(self.rng.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
        code = f"{self.config.reward_code_prefix}-{issued_ms}-{suffix}".upper()

        reward = GameAccessReward(
            unlock_code=code,
            issued_at=datetime.fromtimestamp(issued_ms / 1000, tz=timezone.utc),
            valid_until=datetime.fromtimestamp(
                (issued_ms + self.validity_ms) / 1000, tz=timezone.utc
            ),
            earned_through=earned_through,
        )
        logger.info(
            "REWARD_ISSUED",
            extra={"earned_through": earned_through, "valid_until": reward.valid_until.isoformat()}
        )
        return reward

    def validate(self, code: str) -> bool:
        """Check a code's shape and whether its window is still open."""
        if not code:
            return False

        parts = code.strip().upper().split("-")
        if len(parts) != 3:
            return False

        prefix, timestamp, suffix = parts
        if prefix != self.config.reward_code_prefix.upper() or not suffix:
            return False

        try:
            issued_ms = int(timestamp)
        except ValueError:
            return False

        elapsed = self._now_ms() - issued_ms
        return 0 <= elapsed < self.validity_ms
