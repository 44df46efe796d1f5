"""Safeguarding Service configuration, pattern tables and response templates.

Pattern groups run in the order listed, highest severity first within a
category. The first matching group decides the result.
"""
import os
from dataclasses import dataclass
from typing import Tuple

from humanos.shared.models import SafeguardingCategory


@dataclass(frozen=True)
class PatternGroup:
    """A set of regexes sharing one severity grade.

    Age-modulated groups grade one level lower once the student has
    reached the developmental threshold for their age band.
    """
    group_id: str
    patterns: Tuple[str, ...]
    severity: int
    description: str
    age_modulated: bool = False


@dataclass(frozen=True)
class SafeguardingConfig:
    """Configuration for safeguarding scanning and escalation."""

    # Severity at or above which coaching stops and humans are alerted
    escalation_severity: int = 3

    # Severity that additionally triggers emergency notification
    emergency_severity: int = 4

    # Attempts at persisting a trauma flag before giving up
    flag_persist_retries: int = 3

    # Kinesis delivery
    stream_name: str = "humanos-safeguarding-alerts"
    alert_publishing_enabled: bool = True
    aws_region: str = "us-east-1"

    # Version tracking for audit trail
    pattern_version: str = "2026.10.01"

    def __post_init__(self):
        if self.flag_persist_retries < 1:
            raise ValueError("flag_persist_retries must be >= 1")

    @classmethod
    def from_env(cls) -> "SafeguardingConfig":
        """Create config from environment variables.

        Environment variables:
            FLAG_PERSIST_RETRIES: Flag persistence attempts (default 3)
            SAFEGUARDING_STREAM_NAME: Kinesis stream for alerts
            ALERT_PUBLISHING_ENABLED: "false" disables Kinesis delivery
            AWS_REGION: AWS region (default us-east-1)
            PATTERN_VERSION: Pattern table version tag
        """
        return cls(
            flag_persist_retries=int(os.getenv("FLAG_PERSIST_RETRIES", "3")),
            stream_name=os.getenv("SAFEGUARDING_STREAM_NAME", cls.stream_name),
            alert_publishing_enabled=os.getenv("ALERT_PUBLISHING_ENABLED", "true").lower() != "false",
            aws_region=os.getenv("AWS_REGION", cls.aws_region),
            pattern_version=os.getenv("PATTERN_VERSION", cls.pattern_version),
        )


def developmental_threshold(age: int) -> int:
    """Age band ceiling used to grade age-modulated patterns."""
    if age < 10:
        return 10
    if age < 13:
        return 13
    return 16


# Detectors run in this order; within each, groups run top to bottom.
SAFEGUARDING_PATTERNS: Tuple[Tuple[SafeguardingCategory, Tuple[PatternGroup, ...]], ...] = (
    (SafeguardingCategory.SEXUAL, (
        PatternGroup(
            group_id="sexual_high",
            patterns=(r"\b(sexual act|sexual abuse|touched me|made me)\b",),
            severity=4,
            description="Disclosure of sexual contact",
        ),
        PatternGroup(
            group_id="sexual_moderate",
            patterns=(r"\b(inappropriate touch|uncomfortable|scared of)\b",),
            severity=3,
            description="Possible inappropriate contact",
            age_modulated=True,
        ),
    )),
    (SafeguardingCategory.VIOLENCE, (
        PatternGroup(
            group_id="violence_immediate",
            patterns=(
                r"\b(going to hurt|going to kill|have a plan|get a weapon)\b",
                r"\b(tonight|tomorrow|after school)\b.*\b(hurt|kill|attack)\b",
            ),
            severity=4,
            description="Immediate threat: intent with near-term timing",
        ),
        PatternGroup(
            group_id="violence_severe",
            patterns=(
                r"\b(want to hurt|want to kill)\b",
                r"\bhate\b.*\bwant\b.*\bdead\b",
                r"\b(hit|punch|stab|shoot)\b.*\b(specific person|name)\b",
            ),
            severity=3,
            description="Severe violence: intent without a plan",
        ),
    )),
    (SafeguardingCategory.NEGLECT, (
        PatternGroup(
            group_id="neglect_basic_needs",
            patterns=(
                r"\b(no food|haven'?t eaten|starving)\b",
                r"\b(no one cares|left alone|abandoned)\b",
            ),
            severity=3,
            description="Basic needs unmet or left unsupervised",
        ),
    )),
)


# Canned replies by severity tier, used verbatim in the returned message
# and recorded as the flag's AI response.
EMERGENCY_RESPONSE = (
    "I'm very concerned about what you've shared. Your safety is the most "
    "important thing right now. I'm connecting you with someone who can help "
    "immediately. Please stay with me."
)
ESCALATION_RESPONSE = (
    "Thanks for sharing that with me. I think it would be really helpful for "
    "you to talk with someone who specializes in these situations. I'm going "
    "to connect you with a support person who can help."
)
MONITORING_RESPONSE = (
    "I hear you. Let's take a break from the work for now. I'm going to make "
    "sure you get some support."
)


def response_for_severity(severity: int) -> str:
    """Tier template for a detected severity (1-4)."""
    if severity >= 4:
        return EMERGENCY_RESPONSE
    if severity == 3:
        return ESCALATION_RESPONSE
    return MONITORING_RESPONSE
