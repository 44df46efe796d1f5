"""Configuration for the coaching pipeline."""
import os
from dataclasses import dataclass


GENERIC_FALLBACK = "I'm here to help. What would you like to work on?"
APOLOGETIC_FALLBACK = (
    "Sorry, something went wrong on my side. "
    "Let's take a breath and try that again in a moment."
)

# Reasoning trail entries
REASON_SAFEGUARDING = "Safeguarding concern detected - escalating to human team"
REASON_PERSONALIZED = "Personalized with student interests"
REASON_NOT_PERSONALIZED = "Response not personalized"
REASON_REWARD = "Student earned play break reward"
REASON_NO_REWARD = "No reward earned"
REASON_OFFENSE_RISK = "WARNING: Potential offense risk detected"
REASON_AGE_ADJUSTMENT_FAILED = "Age adjustment failed, using original"


@dataclass(frozen=True)
class CoachConfig:
    """Coach engine settings."""
    personalization_rate: float = 0.3   # chance of personalizing a reply
    port: int = 8002

    def __post_init__(self):
        if not 0.0 <= self.personalization_rate <= 1.0:
            raise ValueError(
                f"personalization_rate must be 0.0-1.0, got {self.personalization_rate}"
            )

    @classmethod
    def from_env(cls) -> "CoachConfig":
        """Load configuration from environment variables."""
        return cls(
            personalization_rate=float(os.getenv("PERSONALIZATION_RATE", "0.3")),
            port=int(os.getenv("PORT", "8002")),
        )
