"""Interest tracking models used for response personalization."""
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional


CONFIDENCE_STEP = 0.1


@dataclass(frozen=True)
class Interest:
    """Something the student has mentioned caring about.

    confidence grows by 0.1 per repeat mention and saturates at 1.0;
    mention_count only ever increases.
    """
    category: str           # games, sports, hobbies, ...
    specific: str           # Minecraft, Football, Drawing, ...
    confidence: float
    last_mentioned: datetime
    mention_count: int = 1

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be 0.0-1.0, got {self.confidence}")
        if self.mention_count < 1:
            raise ValueError(f"mention_count must be >= 1, got {self.mention_count}")

    @property
    def key(self) -> tuple:
        return (self.category, self.specific)

    def reinforced(self, mentioned_at: datetime) -> "Interest":
        """Copy of this interest after another mention."""
        return replace(
            self,
            confidence=min(round(self.confidence + CONFIDENCE_STEP, 6), 1.0),
            last_mentioned=mentioned_at,
            mention_count=self.mention_count + 1,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "specific": self.specific,
            "confidence": self.confidence,
            "last_mentioned": self.last_mentioned.isoformat(),
            "mention_count": self.mention_count,
        }


@dataclass(frozen=True)
class InteractionRecord:
    """One processed exchange, kept for usage counting and later aggregation."""
    student_message: str
    ai_response: str
    timestamp: datetime
    barrier_detected: Optional[str] = None
    reward_given: bool = False
    trauma_flagged: bool = False

    def mentions(self, label: str) -> bool:
        """Whether the reply referenced label (case-insensitive)."""
        return label.lower() in self.ai_response.lower()


@dataclass(frozen=True)
class GameAccessReward:
    """Time-boxed unlock code earned by engaging with a task."""
    unlock_code: str
    issued_at: datetime
    valid_until: datetime
    earned_through: str
    used: bool = False

    def __post_init__(self):
        if self.valid_until <= self.issued_at:
            raise ValueError("valid_until must be after issued_at")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unlock_code": self.unlock_code,
            "issued_at": self.issued_at.isoformat(),
            "valid_until": self.valid_until.isoformat(),
            "earned_through": self.earned_through,
            "used": self.used,
        }
