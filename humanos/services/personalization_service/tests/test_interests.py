"""Tests for interest detection and the interest repository."""
from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import MagicMock

from humanos.shared.database import RepositoryError
from humanos.shared.models import Interest, InteractionRecord
from humanos.shared.utils import configure_pii_salt
from humanos.services.personalization_service.interests import (
    InterestRepository,
    detect_interests,
)

T0 = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def setup_pii_salt():
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


def _record(reply, minutes=0):
    return InteractionRecord(
        student_message="msg",
        ai_response=reply,
        timestamp=T0 + timedelta(minutes=minutes),
    )


class TestDetectInterests:
    """Pattern-based interest detection."""

    def test_games_and_sports(self):
        interests = detect_interests("I played Minecraft then went to soccer", mentioned_at=T0)

        assert [(i.category, i.specific) for i in interests] == [
            ("games", "Minecraft"),
            ("sports", "Football"),
        ]
        assert all(i.confidence == 0.8 for i in interests)
        assert all(i.mention_count == 1 for i in interests)

    def test_music_instruments(self):
        interests = detect_interests("I practice piano every day")

        assert [i.specific for i in interests] == ["Music"]

    def test_art_needs_whole_word(self):
        assert detect_interests("Let's start the work") == []
        assert [i.specific for i in detect_interests("I like art")] == ["Drawing"]

    def test_case_insensitive(self):
        assert [i.specific for i in detect_interests("ROBLOX is fun")] == ["Roblox"]

    def test_nothing_detected(self):
        assert detect_interests("I don't know") == []
        assert detect_interests("") == []


class TestTrackInterests:
    """Tracking repeat mentions in memory."""

    def test_first_mention_stored(self):
        repo = InterestRepository()

        repo.track_interests("student_1", detect_interests("minecraft", mentioned_at=T0))

        stored = repo.get_interests("student_1")
        assert len(stored) == 1
        assert stored[0].specific == "Minecraft"

    def test_repeat_mention_reinforces(self):
        repo = InterestRepository()
        repo.track_interests("student_1", detect_interests("minecraft", mentioned_at=T0))

        later = T0 + timedelta(hours=1)
        updated = repo.track_interests("student_1", detect_interests("minecraft", mentioned_at=later))

        assert updated[0].confidence == pytest.approx(0.9)
        assert updated[0].mention_count == 2
        assert updated[0].last_mentioned == later

    def test_confidence_saturates(self):
        repo = InterestRepository()
        for _ in range(5):
            repo.track_interests("student_1", detect_interests("minecraft", mentioned_at=T0))

        interest = repo.get_interests("student_1")[0]
        assert interest.confidence == 1.0
        assert interest.mention_count == 5

    def test_students_isolated(self):
        repo = InterestRepository()
        repo.track_interests("student_1", detect_interests("minecraft"))

        assert repo.get_interests("student_2") == []

    def test_empty_list_is_noop(self):
        repo = InterestRepository()

        assert repo.track_interests("student_1", []) == []
        assert repo.get_interests("student_1") == []


class TestUsageCount:
    """Counting recent replies that used an interest."""

    def test_counts_case_insensitive_mentions(self):
        repo = InterestRepository()
        repo.record_interaction("student_1", _record("Think of this like Minecraft"))
        repo.record_interaction("student_1", _record("minecraft time!"))
        repo.record_interaction("student_1", _record("Let's try the first line."))

        assert repo.recent_usage_count("student_1", "Minecraft") == 2

    def test_only_recent_interactions_counted(self):
        repo = InterestRepository()
        for minute in range(5):
            repo.record_interaction("student_1", _record("Minecraft", minutes=minute))
        for minute in range(5, 15):
            repo.record_interaction("student_1", _record("Keep going", minutes=minute))

        assert repo.recent_usage_count("student_1", "Minecraft") == 0

    def test_recent_interactions_newest_first(self):
        repo = InterestRepository()
        repo.record_interaction("student_1", _record("first", minutes=0))
        repo.record_interaction("student_1", _record("second", minutes=1))

        replies = [r.ai_response for r in repo.recent_interactions("student_1")]
        assert replies == ["second", "first"]

    def test_unknown_student(self):
        assert InterestRepository().recent_usage_count("nobody", "Minecraft") == 0

    def test_history_kept_to_lookback(self):
        repo = InterestRepository()
        for minute in range(25):
            repo.record_interaction("student_1", _record(f"reply {minute}", minutes=minute))

        history = repo._interactions["student_1"]
        assert len(history) == 10
        assert history[0].ai_response == "reply 15"
        assert history[-1].ai_response == "reply 24"


class TestPostgresBackend:
    """SQL paths use the connection manager's transaction."""

    def _manager(self, cursor):
        manager = MagicMock()
        manager.transaction.return_value.__enter__.return_value = cursor
        return manager

    def test_get_interests_maps_rows(self):
        cursor = MagicMock()
        cursor.fetchall.return_value = [("games", "Roblox", 0.9, T0, 2)]
        repo = InterestRepository(connection_manager=self._manager(cursor))

        interests = repo.get_interests("student_1")

        assert interests == [Interest("games", "Roblox", 0.9, T0, 2)]

    def test_track_upserts(self):
        cursor = MagicMock()
        cursor.fetchone.return_value = ("games", "Roblox", 0.9000000001, T0, 2)
        repo = InterestRepository(connection_manager=self._manager(cursor))

        stored = repo.track_interests("student_1", detect_interests("roblox", mentioned_at=T0))

        assert "ON CONFLICT" in cursor.execute.call_args[0][0]
        assert stored[0].confidence == pytest.approx(0.9)

    def test_failure_raises_repository_error(self):
        manager = MagicMock()
        manager.transaction.side_effect = Exception("db down")
        repo = InterestRepository(connection_manager=manager)

        with pytest.raises(RepositoryError):
            repo.get_interests("student_1")

    def test_usage_count_from_rows(self):
        cursor = MagicMock()
        cursor.fetchall.return_value = [
            ("msg", "Minecraft time", T0, None, False, False),
            ("msg", "Keep going", T0, None, False, False),
        ]
        repo = InterestRepository(connection_manager=self._manager(cursor))

        assert repo.recent_usage_count("student_1", "minecraft") == 1
