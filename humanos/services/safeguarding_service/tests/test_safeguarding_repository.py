"""Tests for SafeguardingRepository and the human review workflow."""
from datetime import datetime, timezone

import pytest
from unittest.mock import MagicMock

from humanos.shared.database import NotFoundError, RepositoryError
from humanos.shared.models import (
    SafeguardingCategory,
    SafeguardingStatus,
    TraumaFlag,
)
from humanos.shared.utils import configure_pii_salt
from humanos.services.safeguarding_service.repository import SafeguardingRepository
from humanos.services.safeguarding_service.review import SafeguardingReviewService


@pytest.fixture(autouse=True)
def setup_pii_salt():
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


def _flag(severity=3, flag_id="flag_abc"):
    return TraumaFlag(
        flag_id=flag_id,
        severity=severity,
        category=SafeguardingCategory.VIOLENCE,
        content="I want to hurt him",
        ai_response="...",
    )


class TestMemoryBackend:
    """In-memory storage used without a database."""

    def test_append_and_list(self):
        repo = SafeguardingRepository()

        repo.append_flag("student_1", _flag(flag_id="flag_1"))
        repo.append_flag("student_1", _flag(flag_id="flag_2"))
        repo.append_flag("student_2", _flag(flag_id="flag_3"))

        assert [f.flag_id for f in repo.list_flags("student_1")] == ["flag_1", "flag_2"]
        assert repo.list_flags("nobody") == []

    def test_list_returns_copy(self):
        repo = SafeguardingRepository()
        repo.append_flag("student_1", _flag())

        repo.list_flags("student_1").clear()

        assert len(repo.list_flags("student_1")) == 1

    def test_get_flag_not_found(self):
        repo = SafeguardingRepository()

        with pytest.raises(NotFoundError):
            repo.get_flag("student_1", "flag_missing")

    def test_status_defaults_clear(self):
        assert SafeguardingRepository().get_status("student_1") == SafeguardingStatus.CLEAR

    def test_raise_status_is_monotonic(self):
        repo = SafeguardingRepository()

        assert repo.raise_status("s", SafeguardingStatus.MONITORING) == SafeguardingStatus.MONITORING
        assert repo.raise_status("s", SafeguardingStatus.ESCALATED) == SafeguardingStatus.ESCALATED
        assert repo.raise_status("s", SafeguardingStatus.MONITORING) == SafeguardingStatus.ESCALATED

    def test_set_status_can_lower(self):
        repo = SafeguardingRepository()
        repo.raise_status("s", SafeguardingStatus.ESCALATED)

        repo.set_status("s", SafeguardingStatus.CLEAR, changed_by="counselor_1")

        assert repo.get_status("s") == SafeguardingStatus.CLEAR

    def test_record_review(self):
        repo = SafeguardingRepository()
        repo.append_flag("student_1", _flag())
        reviewed_at = datetime(2026, 3, 1, tzinfo=timezone.utc)

        flag = repo.record_review("student_1", "flag_abc", "counselor_1", "parent contacted", reviewed_at)

        assert flag.human_reviewed is True
        assert flag.reviewed_by == "counselor_1"
        assert flag.reviewed_at == reviewed_at
        assert repo.get_flag("student_1", "flag_abc").outcome == "parent contacted"

    def test_record_review_unknown_flag(self):
        repo = SafeguardingRepository()

        with pytest.raises(NotFoundError):
            repo.record_review("student_1", "flag_missing", "counselor_1")


@pytest.fixture
def postgres():
    manager = MagicMock()
    cursor = MagicMock()
    manager.transaction.return_value.__enter__.return_value = cursor
    return manager, cursor


class TestPostgresBackend:
    """SQL issued against the connection manager."""

    def test_append_flag_inserts(self, postgres):
        manager, cursor = postgres
        repo = SafeguardingRepository(manager)

        repo.append_flag("student_1", _flag())

        query, params = cursor.execute.call_args.args
        assert "INSERT INTO trauma_flags" in query
        assert params[0] == "student_1"
        assert params[1] == "flag_abc"

    def test_append_flag_failure_raises_repository_error(self, postgres):
        manager, cursor = postgres
        cursor.execute.side_effect = RuntimeError("connection reset")
        repo = SafeguardingRepository(manager)

        with pytest.raises(RepositoryError):
            repo.append_flag("student_1", _flag())

    def test_list_flags_maps_rows(self, postgres):
        manager, cursor = postgres
        ts = datetime(2026, 1, 1, tzinfo=timezone.utc)
        cursor.fetchall.return_value = [
            ("flag_1", ts, 4, "sexual", "text", "reply", False, None, None, None),
        ]
        repo = SafeguardingRepository(manager)

        flags = repo.list_flags("student_1")

        assert flags[0].flag_id == "flag_1"
        assert flags[0].category == SafeguardingCategory.SEXUAL
        assert flags[0].timestamp == ts

    def test_raise_status_uses_conditional_upsert(self, postgres):
        manager, cursor = postgres
        cursor.fetchone.return_value = ("escalated",)
        repo = SafeguardingRepository(manager)

        status = repo.raise_status("student_1", SafeguardingStatus.MONITORING)

        upsert = cursor.execute.call_args_list[0].args[0]
        assert "ON CONFLICT" in upsert
        assert "safeguarding_status.tier < EXCLUDED.tier" in upsert
        assert status == SafeguardingStatus.ESCALATED

    def test_get_status_missing_row_is_clear(self, postgres):
        manager, cursor = postgres
        cursor.fetchone.return_value = None
        repo = SafeguardingRepository(manager)

        assert repo.get_status("student_1") == SafeguardingStatus.CLEAR

    def test_record_review_missing_row(self, postgres):
        manager, cursor = postgres
        cursor.fetchone.return_value = None
        repo = SafeguardingRepository(manager)

        with pytest.raises(NotFoundError):
            repo.record_review("student_1", "flag_missing", "counselor_1")


class TestReviewService:
    """Human review actions."""

    def test_mark_reviewed(self):
        repo = SafeguardingRepository()
        repo.append_flag("student_1", _flag())
        service = SafeguardingReviewService(repo)

        flag = service.mark_reviewed("student_1", "flag_abc", "counselor_1", "resolved")

        assert flag.human_reviewed is True
        assert service.list_flags("student_1", pending_only=True) == []

    def test_mark_reviewed_requires_reviewer(self):
        service = SafeguardingReviewService(SafeguardingRepository())

        with pytest.raises(ValueError):
            service.mark_reviewed("student_1", "flag_abc", "  ")

    def test_set_status_returns_to_clear(self):
        repo = SafeguardingRepository()
        repo.raise_status("student_1", SafeguardingStatus.ESCALATED)
        service = SafeguardingReviewService(repo)

        status = service.set_status("student_1", SafeguardingStatus.CLEAR, "counselor_1")

        assert status == SafeguardingStatus.CLEAR
        assert service.get_status("student_1") == SafeguardingStatus.CLEAR

    def test_set_status_requires_actor(self):
        service = SafeguardingReviewService(SafeguardingRepository())

        with pytest.raises(ValueError):
            service.set_status("student_1", SafeguardingStatus.CLEAR, "")
