"""Safeguarding record storage: trauma flags and per-student status.

Flags are append-only; the only change ever made to a stored flag is the
human review stamp. Status writes are single atomic upserts. Automatic
transitions go through raise_status(), which never lowers the tier;
set_status() is reserved for human review.

Without a ConnectionManager the repository keeps records in memory
(development and tests).
"""
import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from humanos.shared.database import (
    ConnectionManager,
    NotFoundError,
    RepositoryError,
)
from humanos.shared.models import (
    SafeguardingCategory,
    SafeguardingStatus,
    TraumaFlag,
)
from humanos.shared.utils import hash_pii_for_log

logger = logging.getLogger(__name__)

_FLAG_COLUMNS = (
    "flag_id, timestamp, severity, category, content, ai_response, "
    "human_reviewed, reviewed_by, reviewed_at, outcome"
)


class SafeguardingRepository:
    """Repository for trauma flags and safeguarding status."""

    def __init__(self, connection_manager: Optional[ConnectionManager] = None):
        """Initialize repository.

        Args:
            connection_manager: PostgreSQL connection manager; None keeps
                records in memory
        """
        self.connection_manager = connection_manager

        self._lock = threading.Lock()
        self._flags: Dict[str, List[TraumaFlag]] = {}
        self._statuses: Dict[str, SafeguardingStatus] = {}

        logger.info(
            "SAFEGUARDING_REPOSITORY_INITIALIZED",
            extra={"backend": "postgresql" if connection_manager else "memory"}
        )

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    def append_flag(self, student_id: str, flag: TraumaFlag) -> None:
        """Store a new trauma flag.

        Raises:
            RepositoryError: If storage fails
        """
        if self.connection_manager:
            self._append_flag_postgres(student_id, flag)
        else:
            with self._lock:
                self._flags.setdefault(student_id, []).append(flag)

        logger.info(
            "TRAUMA_FLAG_STORED",
            extra={
                "flag_id": flag.flag_id,
                "student_id_hash": hash_pii_for_log(student_id),
                "severity": flag.severity,
                "category": flag.category.value,
            }
        )

    def _append_flag_postgres(self, student_id: str, flag: TraumaFlag) -> None:
        query = f"""
            INSERT INTO trauma_flags (student_id, {_FLAG_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        params = (
            student_id,
            flag.flag_id,
            flag.timestamp,
            flag.severity,
            flag.category.value,
            flag.content,
            flag.ai_response,
            flag.human_reviewed,
            flag.reviewed_by,
            flag.reviewed_at,
            flag.outcome,
        )
        try:
            with self.connection_manager.transaction() as cur:
                cur.execute(query, params)
        except Exception as e:
            logger.error(
                "POSTGRES_FLAG_APPEND_FAILED",
                extra={"flag_id": flag.flag_id, "error": str(e)}
            )
            raise RepositoryError(f"Failed to append trauma flag: {e}")

    def list_flags(self, student_id: str) -> List[TraumaFlag]:
        """All flags for a student, oldest first."""
        if not self.connection_manager:
            with self._lock:
                return list(self._flags.get(student_id, []))

        query = f"""
            SELECT {_FLAG_COLUMNS} FROM trauma_flags
            WHERE student_id = %s ORDER BY timestamp ASC
        """
        try:
            with self.connection_manager.transaction() as cur:
                cur.execute(query, (student_id,))
                rows = cur.fetchall()
        except Exception as e:
            raise RepositoryError(f"Failed to list trauma flags: {e}")
        return [self._row_to_flag(row) for row in rows]

    def get_flag(self, student_id: str, flag_id: str) -> TraumaFlag:
        """Fetch one flag.

        Raises:
            NotFoundError: If the student has no flag with this id
        """
        for flag in self.list_flags(student_id):
            if flag.flag_id == flag_id:
                return flag
        raise NotFoundError(f"Flag {flag_id} not found")

    def record_review(
        self,
        student_id: str,
        flag_id: str,
        reviewed_by: str,
        outcome: Optional[str] = None,
        reviewed_at: Optional[datetime] = None,
    ) -> TraumaFlag:
        """Stamp a flag as reviewed by a human.

        Returns:
            The reviewed flag

        Raises:
            NotFoundError: If the flag does not exist
            RepositoryError: If storage fails
        """
        reviewed_at = reviewed_at or datetime.now(timezone.utc)

        if self.connection_manager:
            return self._record_review_postgres(student_id, flag_id, reviewed_by, outcome, reviewed_at)

        with self._lock:
            flags = self._flags.get(student_id, [])
            for index, flag in enumerate(flags):
                if flag.flag_id == flag_id:
                    reviewed = replace(
                        flag,
                        human_reviewed=True,
                        reviewed_by=reviewed_by,
                        reviewed_at=reviewed_at,
                        outcome=outcome,
                    )
                    flags[index] = reviewed
                    return reviewed
        raise NotFoundError(f"Flag {flag_id} not found")

    def _record_review_postgres(
        self,
        student_id: str,
        flag_id: str,
        reviewed_by: str,
        outcome: Optional[str],
        reviewed_at: datetime,
    ) -> TraumaFlag:
        query = f"""
            UPDATE trauma_flags
            SET human_reviewed = TRUE, reviewed_by = %s, reviewed_at = %s, outcome = %s
            WHERE student_id = %s AND flag_id = %s
            RETURNING {_FLAG_COLUMNS}
        """
        try:
            with self.connection_manager.transaction() as cur:
                cur.execute(query, (reviewed_by, reviewed_at, outcome, student_id, flag_id))
                row = cur.fetchone()
        except Exception as e:
            raise RepositoryError(f"Failed to record review: {e}")

        if row is None:
            raise NotFoundError(f"Flag {flag_id} not found")
        return self._row_to_flag(row)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self, student_id: str) -> SafeguardingStatus:
        """Current status; students never flagged are CLEAR."""
        if not self.connection_manager:
            with self._lock:
                return self._statuses.get(student_id, SafeguardingStatus.CLEAR)

        try:
            with self.connection_manager.transaction() as cur:
                cur.execute(
                    "SELECT status FROM safeguarding_status WHERE student_id = %s",
                    (student_id,),
                )
                row = cur.fetchone()
        except Exception as e:
            raise RepositoryError(f"Failed to read status: {e}")
        return SafeguardingStatus(row[0]) if row else SafeguardingStatus.CLEAR

    def raise_status(
        self,
        student_id: str,
        target: SafeguardingStatus,
    ) -> SafeguardingStatus:
        """Move status up to target; a higher current tier is kept.

        Returns:
            Status after the update
        """
        if not self.connection_manager:
            with self._lock:
                current = self._statuses.get(student_id, SafeguardingStatus.CLEAR)
                updated = current.raised_to(target)
                self._statuses[student_id] = updated
                return updated

        upsert = """
            INSERT INTO safeguarding_status (student_id, status, tier, updated_at, updated_by)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (student_id) DO UPDATE
            SET status = EXCLUDED.status, tier = EXCLUDED.tier,
                updated_at = EXCLUDED.updated_at, updated_by = EXCLUDED.updated_by
            WHERE safeguarding_status.tier < EXCLUDED.tier
        """
        try:
            with self.connection_manager.transaction() as cur:
                cur.execute(upsert, (
                    student_id, target.value, target.tier,
                    datetime.now(timezone.utc), "system",
                ))
                cur.execute(
                    "SELECT status FROM safeguarding_status WHERE student_id = %s",
                    (student_id,),
                )
                row = cur.fetchone()
        except Exception as e:
            raise RepositoryError(f"Failed to raise status: {e}")
        return SafeguardingStatus(row[0]) if row else target

    def set_status(
        self,
        student_id: str,
        status: SafeguardingStatus,
        changed_by: str,
    ) -> SafeguardingStatus:
        """Overwrite status unconditionally. Human review only."""
        if not self.connection_manager:
            with self._lock:
                self._statuses[student_id] = status
            return status

        upsert = """
            INSERT INTO safeguarding_status (student_id, status, tier, updated_at, updated_by)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (student_id) DO UPDATE
            SET status = EXCLUDED.status, tier = EXCLUDED.tier,
                updated_at = EXCLUDED.updated_at, updated_by = EXCLUDED.updated_by
        """
        try:
            with self.connection_manager.transaction() as cur:
                cur.execute(upsert, (
                    student_id, status.value, status.tier,
                    datetime.now(timezone.utc), changed_by,
                ))
        except Exception as e:
            raise RepositoryError(f"Failed to set status: {e}")
        return status

    def _row_to_flag(self, row: tuple) -> TraumaFlag:
        """Convert PostgreSQL row to TraumaFlag."""
        return TraumaFlag(
            flag_id=row[0],
            timestamp=row[1],
            severity=row[2],
            category=SafeguardingCategory(row[3]),
            content=row[4],
            ai_response=row[5],
            human_reviewed=row[6],
            reviewed_by=row[7],
            reviewed_at=row[8],
            outcome=row[9],
        )
