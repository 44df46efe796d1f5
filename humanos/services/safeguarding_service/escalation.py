"""Escalation state machine for safeguarding detections.

For every detection with severity > 0, in this order:
    1. Append a TraumaFlag (retried; failure is surfaced, not raised)
    2. Raise the student's status (escalated for >= 3, else monitoring)
    3. Notify the safeguarding team
    4. Severity 4 only: send an emergency notification

Nothing here is ever rolled back. Steps 2-4 run even if step 1 failed;
in that case the alert carries the full flag so the record survives.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from humanos.shared.models import (
    SafeguardingResult,
    SafeguardingStatus,
    TraumaFlag,
)
from humanos.shared.utils import hash_pii_for_log, truncate_sensitive
from .alert_publisher import (
    EMERGENCY_EVENT,
    ESCALATION_EVENT,
    SafeguardingAlert,
)
from .config import SafeguardingConfig, response_for_severity
from .sink import SafeguardingSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EscalationOutcome:
    """What the escalation side effects actually achieved."""
    flag_id: str
    response: str
    persisted: bool
    status_updated: bool
    notified: bool
    emergency_notified: bool = False

    def to_dict(self) -> dict:
        return {
            "flag_id": self.flag_id,
            "persisted": self.persisted,
            "status_updated": self.status_updated,
            "notified": self.notified,
            "emergency_notified": self.emergency_notified,
        }


class EscalationStateMachine:
    """Applies the escalation side effects for one detection."""

    def __init__(
        self,
        sink: SafeguardingSink,
        config: Optional[SafeguardingConfig] = None,
    ):
        self.sink = sink
        self.config = config or SafeguardingConfig()

    def handle_detection(
        self,
        student_id: str,
        message: str,
        result: SafeguardingResult,
    ) -> EscalationOutcome:
        """Record and escalate a safeguarding detection.

        Args:
            student_id: Student identifier
            message: Raw student message (stored on the flag)
            result: Scanner result with severity > 0

        Returns:
            EscalationOutcome describing which effects succeeded

        Raises:
            ValueError: If result carries no detection

        Logs:
            - SAFEGUARDING_ESCALATION: severity >= escalation threshold (critical)
            - SAFEGUARDING_MONITORING: lower severities (warning)
            - TRAUMA_FLAG_PERSIST_FAILED: all persistence attempts failed (critical)
        """
        if not result.detected:
            raise ValueError("handle_detection requires a detected result")

        student_id_hash = hash_pii_for_log(student_id)
        response = response_for_severity(result.severity)
        escalating = result.severity >= self.config.escalation_severity

        log_fn = logger.critical if escalating else logger.warning
        log_fn(
            "SAFEGUARDING_ESCALATION" if escalating else "SAFEGUARDING_MONITORING",
            extra={
                "student_id_hash": student_id_hash,
                "severity": result.severity,
                "category": result.category.value,
                "pattern_id": result.pattern_id,
            }
        )

        # 1. Flag
        flag = TraumaFlag(
            severity=result.severity,
            category=result.category,
            content=message,
            ai_response=response,
        )
        persisted = self._persist_with_retries(student_id, flag)
        if not persisted:
            logger.critical(
                "TRAUMA_FLAG_PERSIST_FAILED",
                extra={
                    "flag_id": flag.flag_id,
                    "student_id_hash": student_id_hash,
                    "severity": flag.severity,
                    "attempts": self.config.flag_persist_retries,
                    "action": "FLAG_CARRIED_IN_ALERT",
                }
            )

        # 2. Status
        status_updated = self.sink.raise_status(
            student_id, SafeguardingStatus.for_severity(result.severity)
        )

        # 3. Safeguarding team
        notified = self.sink.notify(
            self._build_alert(student_id, student_id_hash, flag, persisted, ESCALATION_EVENT, escalating)
        )

        # 4. Emergency
        emergency_notified = False
        if result.severity >= self.config.emergency_severity:
            emergency_notified = self.sink.notify(
                self._build_alert(student_id, student_id_hash, flag, persisted, EMERGENCY_EVENT, True)
            )

        outcome = EscalationOutcome(
            flag_id=flag.flag_id,
            response=response,
            persisted=persisted,
            status_updated=status_updated,
            notified=notified,
            emergency_notified=emergency_notified,
        )
        logger.info(
            "SAFEGUARDING_ESCALATION_COMPLETED",
            extra={"student_id_hash": student_id_hash, **outcome.to_dict()}
        )
        return outcome

    def _persist_with_retries(self, student_id: str, flag: TraumaFlag) -> bool:
        for attempt in range(1, self.config.flag_persist_retries + 1):
            if self.sink.persist_flag(student_id, flag):
                return True
            logger.warning(
                "TRAUMA_FLAG_PERSIST_RETRY",
                extra={"flag_id": flag.flag_id, "attempt": attempt}
            )
        return False

    def _build_alert(
        self,
        student_id: str,
        student_id_hash: str,
        flag: TraumaFlag,
        persisted: bool,
        event_type: str,
        urgent: bool,
    ) -> SafeguardingAlert:
        return SafeguardingAlert(
            event_id=f"evt_{uuid.uuid4().hex[:12]}",
            event_type=event_type,
            student_id=student_id,
            student_id_hash=student_id_hash,
            flag_id=flag.flag_id,
            severity=flag.severity,
            category=flag.category.value,
            content=truncate_sensitive(flag.content),
            response=flag.ai_response,
            urgent=urgent,
            flag_persisted=persisted,
            flag=None if persisted else flag.to_dict(include_content=True),
        )
