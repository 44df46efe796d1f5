"""Interest detection and the per-student interest store.

Interests are detected with fixed patterns on each processed message and
tracked after the reply is composed, so a mention only affects later
messages. Interaction records feed recent_usage_count(), which the
sampler uses to avoid leaning on the same interest too often.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from humanos.shared.database import ConnectionManager, RepositoryError
from humanos.shared.models import Interest, InteractionRecord
from humanos.shared.utils import hash_pii_for_log

from .config import INTEREST_PATTERNS, PersonalizationConfig

logger = logging.getLogger(__name__)


def detect_interests(
    message: str,
    confidence: float = 0.8,
    mentioned_at: Optional[datetime] = None,
) -> List[Interest]:
    """Find interests mentioned in a message.

    Args:
        message: Student message
        confidence: Confidence given to a first mention
        mentioned_at: Mention time (defaults to now)

    Returns:
        One Interest per matched label, in pattern order
    """
    if not message:
        return []

    mentioned_at = mentioned_at or datetime.now(timezone.utc)
    return [
        Interest(
            category=category,
            specific=label,
            confidence=confidence,
            last_mentioned=mentioned_at,
        )
        for category, label, pattern in INTEREST_PATTERNS
        if pattern.search(message)
    ]


class InterestRepository:
    """Store for student interests and interaction history.

    Interests are keyed by (category, specific) and never deleted.
    """

    def __init__(
        self,
        connection_manager: Optional[ConnectionManager] = None,
        config: Optional[PersonalizationConfig] = None,
    ):
        """Initialize repository.

        Args:
            connection_manager: PostgreSQL connection manager; None keeps
                records in memory
            config: Personalization settings (usage lookback)
        """
        self.connection_manager = connection_manager
        self.config = config or PersonalizationConfig()

        self._lock = threading.Lock()
        self._interests: Dict[str, Dict[tuple, Interest]] = {}
        self._interactions: Dict[str, List[InteractionRecord]] = {}

        logger.info(
            "INTEREST_REPOSITORY_INITIALIZED",
            extra={"backend": "postgresql" if connection_manager else "memory"}
        )

    def get_interests(self, student_id: str) -> List[Interest]:
        """All tracked interests for a student."""
        if not self.connection_manager:
            with self._lock:
                return list(self._interests.get(student_id, {}).values())

        query = """
            SELECT category, specific, confidence, last_mentioned, mention_count
            FROM student_interests WHERE student_id = %s
        """
        try:
            with self.connection_manager.transaction() as cur:
                cur.execute(query, (student_id,))
                rows = cur.fetchall()
        except Exception as e:
            raise RepositoryError(f"Failed to read interests: {e}")

        return [
            Interest(
                category=row[0],
                specific=row[1],
                confidence=row[2],
                last_mentioned=row[3],
                mention_count=row[4],
            )
            for row in rows
        ]

    def track_interests(
        self,
        student_id: str,
        interests: List[Interest],
    ) -> List[Interest]:
        """Record newly detected mentions.

        A repeat mention bumps confidence by 0.1 (max 1.0), increments
        mention_count and refreshes last_mentioned.

        Returns:
            Stored interests after the update, in input order
        """
        if not interests:
            return []

        if self.connection_manager:
            stored = [self._upsert_interest_postgres(student_id, i) for i in interests]
        else:
            stored = []
            with self._lock:
                existing = self._interests.setdefault(student_id, {})
                for interest in interests:
                    current = existing.get(interest.key)
                    updated = (
                        current.reinforced(interest.last_mentioned)
                        if current else interest
                    )
                    existing[interest.key] = updated
                    stored.append(updated)

        logger.info(
            "INTERESTS_TRACKED",
            extra={
                "student_id_hash": hash_pii_for_log(student_id),
                "interests": [i.specific for i in stored],
            }
        )
        return stored

    def _upsert_interest_postgres(self, student_id: str, interest: Interest) -> Interest:
        upsert = """
            INSERT INTO student_interests
                (student_id, category, specific, confidence, last_mentioned, mention_count)
            VALUES (%s, %s, %s, %s, %s, 1)
            ON CONFLICT (student_id, category, specific) DO UPDATE
            SET confidence = LEAST(student_interests.confidence + 0.1, 1.0),
                last_mentioned = EXCLUDED.last_mentioned,
                mention_count = student_interests.mention_count + 1
            RETURNING category, specific, confidence, last_mentioned, mention_count
        """
        try:
            with self.connection_manager.transaction() as cur:
                cur.execute(upsert, (
                    student_id,
                    interest.category,
                    interest.specific,
                    interest.confidence,
                    interest.last_mentioned,
                ))
                row = cur.fetchone()
        except Exception as e:
            raise RepositoryError(f"Failed to track interest: {e}")

        return Interest(
            category=row[0],
            specific=row[1],
            confidence=min(round(row[2], 6), 1.0),
            last_mentioned=row[3],
            mention_count=row[4],
        )

    def record_interaction(self, student_id: str, record: InteractionRecord) -> None:
        """Append an interaction to the student's history."""
        if not self.connection_manager:
            with self._lock:
                history = self._interactions.setdefault(student_id, [])
                history.append(record)
                # Only the lookback window is ever read
                del history[:-self.config.usage_lookback]
            return

        query = """
            INSERT INTO interactions
                (student_id, timestamp, student_message, ai_response,
                 barrier_detected, reward_given, trauma_flagged)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
        """
        try:
            with self.connection_manager.transaction() as cur:
                cur.execute(query, (
                    student_id,
                    record.timestamp,
                    record.student_message,
                    record.ai_response,
                    record.barrier_detected,
                    record.reward_given,
                    record.trauma_flagged,
                ))
        except Exception as e:
            raise RepositoryError(f"Failed to record interaction: {e}")

    def recent_interactions(self, student_id: str) -> List[InteractionRecord]:
        """Most recent interactions, newest first, up to the usage lookback."""
        limit = self.config.usage_lookback

        if not self.connection_manager:
            with self._lock:
                history = self._interactions.get(student_id, [])
                return list(reversed(history[-limit:]))

        query = """
            SELECT student_message, ai_response, timestamp,
                   barrier_detected, reward_given, trauma_flagged
            FROM interactions WHERE student_id = %s
            ORDER BY timestamp DESC LIMIT %s
        """
        try:
            with self.connection_manager.transaction() as cur:
                cur.execute(query, (student_id, limit))
                rows = cur.fetchall()
        except Exception as e:
            raise RepositoryError(f"Failed to read interactions: {e}")

        return [InteractionRecord(*row) for row in rows]

    def recent_usage_count(self, student_id: str, label: str) -> int:
        """How many recent replies referenced an interest label."""
        return sum(
            1 for record in self.recent_interactions(student_id)
            if record.mentions(label)
        )
