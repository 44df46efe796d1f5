"""Best-effort boundary between escalation logic and its side effects.

Every method reports success as a bool and never raises, so a broken
database or stream cannot stop the student from getting the safeguarding
reply.
"""
import logging
from typing import Optional

from humanos.shared.database import RepositoryError
from humanos.shared.models import SafeguardingStatus, TraumaFlag
from humanos.shared.utils import hash_pii_for_log
from .alert_publisher import SafeguardingAlert, SafeguardingAlertPublisher
from .repository import SafeguardingRepository

logger = logging.getLogger(__name__)


class SafeguardingSink:
    """Persists flags and status, and delivers alerts."""

    def __init__(
        self,
        repository: SafeguardingRepository,
        publisher: Optional[SafeguardingAlertPublisher] = None,
    ):
        self.repository = repository
        self.publisher = publisher

    def persist_flag(self, student_id: str, flag: TraumaFlag) -> bool:
        try:
            self.repository.append_flag(student_id, flag)
            return True
        except RepositoryError as e:
            logger.error(
                "TRAUMA_FLAG_PERSIST_ATTEMPT_FAILED",
                extra={
                    "flag_id": flag.flag_id,
                    "student_id_hash": hash_pii_for_log(student_id),
                    "error": str(e),
                }
            )
            return False

    def raise_status(self, student_id: str, target: SafeguardingStatus) -> bool:
        try:
            updated = self.repository.raise_status(student_id, target)
        except RepositoryError as e:
            logger.critical(
                "SAFEGUARDING_STATUS_UPDATE_FAILED",
                extra={
                    "student_id_hash": hash_pii_for_log(student_id),
                    "target_status": target.value,
                    "error": str(e),
                }
            )
            return False

        logger.info(
            "SAFEGUARDING_STATUS_UPDATED",
            extra={
                "student_id_hash": hash_pii_for_log(student_id),
                "target_status": target.value,
                "status": updated.value,
            }
        )
        return True

    def notify(self, alert: SafeguardingAlert) -> bool:
        if self.publisher is None:
            logger.critical(
                "SAFEGUARDING_ALERT_NOT_DELIVERED",
                extra={
                    "event_id": alert.event_id,
                    "event_type": alert.event_type,
                    "student_id_hash": alert.student_id_hash,
                    "reason": "no_publisher_configured",
                }
            )
            return False

        try:
            return self.publisher.publish(alert)
        except Exception as e:
            logger.critical(
                "SAFEGUARDING_ALERT_PUBLISH_FAILED",
                extra={
                    "event_id": alert.event_id,
                    "event_type": alert.event_type,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            return False
