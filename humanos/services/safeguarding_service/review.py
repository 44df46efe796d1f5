"""Human review workflow for safeguarding records.

Safeguarding staff mark flags as reviewed and may set a student's status
directly. This is the only path that can lower a status, including the
return to CLEAR.
"""
import logging
from typing import List, Optional

from humanos.shared.models import SafeguardingStatus, TraumaFlag
from humanos.shared.utils import hash_pii_for_log
from .repository import SafeguardingRepository

logger = logging.getLogger(__name__)


class SafeguardingReviewService:
    """Review actions performed by safeguarding staff."""

    def __init__(self, repository: SafeguardingRepository):
        self.repository = repository

    def get_status(self, student_id: str) -> SafeguardingStatus:
        return self.repository.get_status(student_id)

    def list_flags(self, student_id: str, pending_only: bool = False) -> List[TraumaFlag]:
        flags = self.repository.list_flags(student_id)
        if pending_only:
            return [f for f in flags if not f.human_reviewed]
        return flags

    def mark_reviewed(
        self,
        student_id: str,
        flag_id: str,
        reviewed_by: str,
        outcome: Optional[str] = None,
    ) -> TraumaFlag:
        """Record that a staff member reviewed a flag.

        Args:
            student_id: Student the flag belongs to
            flag_id: Flag identifier
            reviewed_by: Reviewer identifier (required)
            outcome: Free-text review outcome

        Returns:
            The reviewed flag

        Raises:
            ValueError: If reviewed_by is empty
            NotFoundError: If the flag does not exist
        """
        if not reviewed_by or not reviewed_by.strip():
            raise ValueError("reviewed_by is required")

        flag = self.repository.record_review(student_id, flag_id, reviewed_by, outcome)

        logger.info(
            "TRAUMA_FLAG_REVIEWED",
            extra={
                "flag_id": flag_id,
                "student_id_hash": hash_pii_for_log(student_id),
                "reviewed_by": reviewed_by,
                "outcome": outcome,
            }
        )
        return flag

    def set_status(
        self,
        student_id: str,
        status: SafeguardingStatus,
        changed_by: str,
    ) -> SafeguardingStatus:
        """Set status explicitly after human review.

        Raises:
            ValueError: If changed_by is empty
        """
        if not changed_by or not changed_by.strip():
            raise ValueError("changed_by is required")

        previous = self.repository.get_status(student_id)
        updated = self.repository.set_status(student_id, status, changed_by)

        logger.warning(
            "SAFEGUARDING_STATUS_SET_BY_REVIEWER",
            extra={
                "student_id_hash": hash_pii_for_log(student_id),
                "previous_status": previous.value,
                "status": updated.value,
                "changed_by": changed_by,
            }
        )
        return updated
