"""Safeguarding Service: harm detection and human escalation.

Every student message is scanned here before any coaching logic. Severity
3 and above stops the coaching pipeline; every detection is recorded as a
trauma flag and the safeguarding team is notified.

Components:
- scanner.py: SafeguardingScanner, ordered pattern battery (pure)
- text_normalizer.py: evasion normalization for the second pass
- config.py: pattern tables, severity thresholds, response templates
- escalation.py: EscalationStateMachine, flag/status/notify side effects
- sink.py: best-effort persistence and alert delivery
- repository.py: trauma flag and status storage (PostgreSQL or memory)
- alert_publisher.py: Kinesis alert delivery
- review.py: human review workflow

Usage:
    scanner = SafeguardingScanner()
    result = scanner.scan(text, age)
    if result.detected:
        outcome = escalation.handle_detection(student_id, text, result)
"""

from .alert_publisher import SafeguardingAlert, SafeguardingAlertPublisher
from .config import (
    SafeguardingConfig,
    PatternGroup,
    SAFEGUARDING_PATTERNS,
    EMERGENCY_RESPONSE,
    ESCALATION_RESPONSE,
    MONITORING_RESPONSE,
    developmental_threshold,
    response_for_severity,
)
from .escalation import EscalationOutcome, EscalationStateMachine
from .repository import SafeguardingRepository
from .review import SafeguardingReviewService
from .scanner import SafeguardingScanner
from .sink import SafeguardingSink
from .text_normalizer import TextNormalizer, normalize_text

__all__ = [
    "SafeguardingAlert",
    "SafeguardingAlertPublisher",
    "SafeguardingConfig",
    "PatternGroup",
    "SAFEGUARDING_PATTERNS",
    "EMERGENCY_RESPONSE",
    "ESCALATION_RESPONSE",
    "MONITORING_RESPONSE",
    "developmental_threshold",
    "response_for_severity",
    "EscalationOutcome",
    "EscalationStateMachine",
    "SafeguardingRepository",
    "SafeguardingReviewService",
    "SafeguardingScanner",
    "SafeguardingSink",
    "TextNormalizer",
    "normalize_text",
]
