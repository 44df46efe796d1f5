"""Safeguarding domain models: severity grades, trauma flags, status tiers.

Severity is graded 0-4:
    0 = nothing detected
    1 = low concern ... 4 = imminent danger
Severity 3 and above stops the coaching pipeline and escalates to humans.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
import uuid


MAX_SEVERITY = 4


class SafeguardingCategory(Enum):
    """Concern categories recorded on a trauma flag."""
    SEXUAL = "sexual"
    VIOLENCE = "violence"
    NEGLECT = "neglect"
    EMOTIONAL = "emotional"
    PHYSICAL = "physical"
    OTHER = "other"
    NONE = "none"           # Scan result only, never stored on a flag


class SafeguardingStatus(Enum):
    """Per-student safeguarding status.

    Tiers are ordered. Automatic transitions only ever raise the tier;
    lowering it (e.g. back to CLEAR) is a human review action.
    """
    CLEAR = "clear"
    MONITORING = "monitoring"
    ESCALATED = "escalated"
    ACTIVE_SUPPORT = "active_support"

    @property
    def tier(self) -> int:
        return _STATUS_TIERS[self]

    @classmethod
    def for_severity(cls, severity: int) -> "SafeguardingStatus":
        """Status a detection of this severity requires."""
        if severity >= 3:
            return cls.ESCALATED
        if severity >= 1:
            return cls.MONITORING
        return cls.CLEAR

    def raised_to(self, target: "SafeguardingStatus") -> "SafeguardingStatus":
        """Return whichever of self/target is the higher tier."""
        return target if target.tier > self.tier else self


_STATUS_TIERS = {
    SafeguardingStatus.CLEAR: 0,
    SafeguardingStatus.MONITORING: 1,
    SafeguardingStatus.ESCALATED: 2,
    SafeguardingStatus.ACTIVE_SUPPORT: 3,
}


@dataclass(frozen=True)
class SafeguardingResult:
    """Outcome of a safeguarding scan on one message.

    Immutable - produced by the scanner, consumed by the orchestrator and
    the escalation state machine.
    """
    detected: bool
    severity: int
    category: SafeguardingCategory
    pattern_id: Optional[str] = None
    reasoning: str = ""

    def __post_init__(self):
        if not 0 <= self.severity <= MAX_SEVERITY:
            raise ValueError(f"Severity must be 0-{MAX_SEVERITY}, got {self.severity}")
        if self.detected != (self.severity > 0):
            raise ValueError("detected must be True exactly when severity > 0")

    @classmethod
    def clear(cls) -> "SafeguardingResult":
        return cls(detected=False, severity=0, category=SafeguardingCategory.NONE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detected": self.detected,
            "severity": self.severity,
            "category": self.category.value,
        }


@dataclass(frozen=True)
class TraumaFlag:
    """Persisted safeguarding incident awaiting human review.

    Append-only: the escalation state machine creates flags, the human
    review workflow replaces them with a reviewed copy. content holds the
    raw student message and must be treated as sensitive.
    """
    severity: int
    category: SafeguardingCategory
    content: str
    ai_response: str
    flag_id: str = field(default_factory=lambda: f"flag_{uuid.uuid4().hex[:12]}")
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    human_reviewed: bool = False
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    outcome: Optional[str] = None

    def __post_init__(self):
        if not 1 <= self.severity <= MAX_SEVERITY:
            raise ValueError(f"Flag severity must be 1-{MAX_SEVERITY}, got {self.severity}")
        if self.category == SafeguardingCategory.NONE:
            raise ValueError("Flag category cannot be 'none'")

    def to_dict(self, include_content: bool = False) -> Dict[str, Any]:
        """Serialize for API responses and alert payloads.

        Args:
            include_content: Whether to include the raw message text
        """
        result = {
            "flag_id": self.flag_id,
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity,
            "category": self.category.value,
            "ai_response": self.ai_response,
            "human_reviewed": self.human_reviewed,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "outcome": self.outcome,
        }
        if include_content:
            result["content"] = self.content
        return result
