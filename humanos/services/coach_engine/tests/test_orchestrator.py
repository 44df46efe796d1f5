"""Tests for the coach orchestrator pipeline."""
import random
import threading
from unittest.mock import MagicMock, patch

import pytest

from humanos.shared.database import RepositoryError
from humanos.shared.models import SafeguardingStatus, StudentContext
from humanos.shared.utils import configure_pii_salt
from humanos.services.coach_engine.config import (
    APOLOGETIC_FALLBACK,
    GENERIC_FALLBACK,
    REASON_AGE_ADJUSTMENT_FAILED,
    REASON_NO_REWARD,
    REASON_NOT_PERSONALIZED,
    REASON_OFFENSE_RISK,
    REASON_PERSONALIZED,
    REASON_REWARD,
    REASON_SAFEGUARDING,
    CoachConfig,
)
from humanos.services.coach_engine.orchestrator import StudentLocks, build_orchestrator
from humanos.services.personalization_service import InterestRepository, detect_interests
from humanos.services.safeguarding_service import (
    EMERGENCY_RESPONSE,
    ESCALATION_RESPONSE,
    SafeguardingRepository,
)

ENGAGED_MESSAGE = "I worked through the first two fractions and checked each answer with the example."


@pytest.fixture(autouse=True)
def setup_pii_salt():
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


class FixedRandom(random.Random):
    """Random source whose random() always returns the same value."""

    def __init__(self, value):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


def _context(age=12, emotional_level=0.3):
    return StudentContext.from_dict({
        "age": age,
        "brain_state": {
            "primal_level": 0.2,
            "emotional_level": emotional_level,
            "rational_level": 0.5,
        },
    })


@pytest.fixture
def repository():
    return SafeguardingRepository()


@pytest.fixture
def store():
    return InterestRepository()


def _orchestrator(repository, store, personalize=False, **kwargs):
    return build_orchestrator(
        safeguarding_repository=repository,
        interest_store=store,
        rng=FixedRandom(0.0 if personalize else 0.99),
        **kwargs,
    )


class TestScenarios:
    """End-to-end scenarios."""

    def test_idk_gets_first_lever(self, repository, store):
        orchestrator = _orchestrator(repository, store)

        response = orchestrator.process_message("student_1", "idk", _context(12, 0.3))

        assert [d.barrier.id for d in response.detected_barriers] == ["lack_of_motivation"]
        assert response.detected_barriers[0].confidence == 0.8
        assert response.intervention.name == "micro_goal_celebration"
        assert response.message == "Let's just find one small thing you do know."
        assert response.safeguarding_alert is False
        assert response.reward_earned is False
        assert list(response.reasoning) == [
            "Detected barrier: Lack of motivation",
            "Selected intervention: micro_goal_celebration",
            "Response adjusted for age 12",
            REASON_NOT_PERSONALIZED,
            REASON_NO_REWARD,
        ]

    def test_immediate_threat_short_circuits(self, repository, store):
        orchestrator = _orchestrator(repository, store)

        response = orchestrator.process_message(
            "student_2", "I'm going to kill him tonight after school", _context(14)
        )

        assert response.safeguarding_alert is True
        assert response.escalated is True
        assert response.message == EMERGENCY_RESPONSE
        assert response.intervention is None
        assert response.detected_barriers == ()
        assert response.reward_earned is False
        assert response.reasoning == (REASON_SAFEGUARDING,)

        flags = repository.list_flags("student_2")
        assert len(flags) == 1
        assert flags[0].severity == 4
        assert repository.get_status("student_2") == SafeguardingStatus.ESCALATED

    def test_engaged_message_earns_reward(self, repository, store):
        orchestrator = _orchestrator(repository, store)

        response = orchestrator.process_message("student_3", ENGAGED_MESSAGE, _context())

        assert response.reward_earned is True
        assert response.detected_barriers == ()
        assert response.message == GENERIC_FALLBACK
        assert "Selected intervention: none" in response.reasoning
        assert REASON_REWARD in response.reasoning


class TestSafeguardingPrecedence:
    """Safeguarding runs first and decides whether coaching continues."""

    def test_short_circuit_ignores_barriers_and_reward(self, repository, store):
        orchestrator = _orchestrator(repository, store)
        message = "idk whatever, I want to kill him, this message is long enough to earn a reward"

        response = orchestrator.process_message("student_4", message, _context())

        assert response.message == ESCALATION_RESPONSE
        assert response.detected_barriers == ()
        assert response.reward_earned is False
        assert response.safeguarding_alert is True

    def test_low_severity_continues_pipeline(self, repository, store):
        orchestrator = _orchestrator(repository, store)

        response = orchestrator.process_message(
            "student_5", "I feel uncomfortable around him", _context(age=17)
        )

        assert response.escalated is False
        assert response.safeguarding_alert is True
        assert response.message == GENERIC_FALLBACK
        assert repository.list_flags("student_5")[0].severity == 2
        assert repository.get_status("student_5") == SafeguardingStatus.MONITORING

    def test_clean_message_no_alert(self, repository, store):
        response = _orchestrator(repository, store).process_message(
            "student_6", "idk", _context()
        )

        assert response.safeguarding_alert is False
        assert repository.list_flags("student_6") == []

    def test_flag_persist_failure_still_escalates(self, store):
        repository = MagicMock(spec=SafeguardingRepository)
        repository.append_flag.side_effect = RepositoryError("db down")
        repository.raise_status.return_value = SafeguardingStatus.ESCALATED
        orchestrator = _orchestrator(repository, store)

        response = orchestrator.process_message("student_7", "I want to hurt him", _context())

        assert response.message == ESCALATION_RESPONSE
        assert response.escalation.persisted is False
        assert repository.append_flag.call_count == 3


class TestInterventionChoice:
    """Lever choice flows into the reply."""

    def test_calming_lever_when_emotional(self, repository, store):
        orchestrator = _orchestrator(repository, store)

        response = orchestrator.process_message("student_8", "This is stupid", _context(12, 0.9))

        assert response.detected_barriers[0].barrier.id == "confrontational_showoff"
        assert response.intervention.name == "calm_reset"
        assert response.message == "Sounds like today is annoying. Let's pause for a second."

    def test_first_lever_when_calm(self, repository, store):
        orchestrator = _orchestrator(repository, store)

        response = orchestrator.process_message("student_9", "This is stupid", _context(12, 0.3))

        assert response.intervention.name == "micro_goal_celebration"

    def test_idk_and_confrontational_ranked(self, repository, store):
        orchestrator = _orchestrator(repository, store)

        response = orchestrator.process_message("student_10", "idk, this is boring", _context())

        assert [d.barrier.id for d in response.detected_barriers] == [
            "lack_of_motivation",
            "confrontational_showoff",
        ]


class TestPersonalization:
    """Interest-based rewriting."""

    def test_personalized_with_tracked_interest(self, repository, store):
        store.track_interests("student_11", detect_interests("minecraft"))
        orchestrator = _orchestrator(repository, store, personalize=True)

        response = orchestrator.process_message("student_11", "idk", _context())

        assert "Minecraft" in response.message
        assert REASON_PERSONALIZED in response.reasoning

    def test_no_interests_not_personalized(self, repository, store):
        orchestrator = _orchestrator(repository, store, personalize=True)

        response = orchestrator.process_message("student_12", "idk", _context())

        assert response.message == "Let's just find one small thing you do know."
        assert REASON_NOT_PERSONALIZED in response.reasoning

    def test_trigger_not_drawn(self, repository, store):
        store.track_interests("student_13", detect_interests("minecraft"))
        orchestrator = _orchestrator(repository, store, personalize=False)

        response = orchestrator.process_message("student_13", "idk", _context())

        assert "Minecraft" not in response.message

    def test_rate_zero_never_personalizes(self, repository, store):
        store.track_interests("student_14", detect_interests("minecraft"))
        orchestrator = _orchestrator(
            repository, store, personalize=True, config=CoachConfig(personalization_rate=0.0)
        )

        response = orchestrator.process_message("student_14", "idk", _context())

        assert "Minecraft" not in response.message

    def test_interest_tracked_after_reply(self, repository, store):
        orchestrator = _orchestrator(repository, store, personalize=True)
        message = "I was playing minecraft all night and now I have to do this homework"

        response = orchestrator.process_message("student_15", message, _context())

        assert "Minecraft" not in response.message
        assert [i.specific for i in store.get_interests("student_15")] == ["Minecraft"]

    def test_interaction_recorded(self, repository, store):
        orchestrator = _orchestrator(repository, store)

        response = orchestrator.process_message("student_16", "idk", _context())

        records = store.recent_interactions("student_16")
        assert len(records) == 1
        assert records[0].ai_response == response.message
        assert records[0].barrier_detected == "lack_of_motivation"

    def test_store_failure_skips_personalization(self, repository):
        store = InterestRepository()
        store.get_interests = MagicMock(side_effect=RepositoryError("down"))
        store.track_interests = MagicMock(side_effect=RepositoryError("down"))
        orchestrator = _orchestrator(repository, store, personalize=True)

        response = orchestrator.process_message("student_17", "idk", _context())

        assert response.message == "Let's just find one small thing you do know."
        assert REASON_NOT_PERSONALIZED in response.reasoning


class TestAgeAdjustment:
    """Age handling inside the pipeline."""

    def test_adjuster_failure_uses_original(self, repository, store):
        orchestrator = _orchestrator(repository, store)
        orchestrator.age_adjuster = MagicMock()
        orchestrator.age_adjuster.adjust_language.side_effect = RuntimeError("broken")

        response = orchestrator.process_message("student_18", "idk", _context())

        assert response.message == "Let's just find one small thing you do know."
        assert REASON_AGE_ADJUSTMENT_FAILED in response.reasoning

    def test_offense_risk_noted(self, repository, store):
        orchestrator = _orchestrator(repository, store)

        with patch.object(orchestrator.age_adjuster, "check_offense_risk", return_value=["risk"]):
            response = orchestrator.process_message("student_19", "idk", _context())

        assert REASON_OFFENSE_RISK in response.reasoning


class TestFailureHandling:
    """Contract violations raise; everything else degrades."""

    def test_missing_student_id_raises(self, repository, store):
        with pytest.raises(ValueError):
            _orchestrator(repository, store).process_message("", "idk", _context())

    def test_raw_context_rejected(self, repository, store):
        with pytest.raises(ValueError):
            _orchestrator(repository, store).process_message("student_20", "idk", {"age": 12})

    def test_unexpected_failure_returns_apology(self, repository, store):
        orchestrator = _orchestrator(repository, store)
        orchestrator.classifier = MagicMock()
        orchestrator.classifier.detect.side_effect = RuntimeError("boom")

        response = orchestrator.process_message("student_21", "idk", _context())

        assert response.message == APOLOGETIC_FALLBACK
        assert response.safeguarding_alert is False

    def test_failure_after_serious_detection_keeps_escalation_reply(self, repository, store):
        orchestrator = _orchestrator(repository, store)

        with patch.object(
            orchestrator.escalation, "handle_detection", side_effect=RuntimeError("boom")
        ):
            response = orchestrator.process_message(
                "student_22", "I'm going to kill him tonight after school", _context(14)
            )

        assert response.message == EMERGENCY_RESPONSE
        assert response.safeguarding_alert is True


class TestUnconfiguredSalt:
    """Safeguarding writes do not depend on log hashing."""

    @pytest.fixture
    def no_salt(self, monkeypatch):
        monkeypatch.setattr("humanos.shared.utils.pii._PII_SALT", None)

    def test_flag_and_status_recorded(self, no_salt, repository, store):
        publisher = MagicMock()
        publisher.publish.return_value = True
        orchestrator = _orchestrator(repository, store, publisher=publisher)

        response = orchestrator.process_message(
            "student_24", "I'm going to kill him tonight after school", _context(14)
        )

        assert response.message == EMERGENCY_RESPONSE
        assert response.escalation.persisted is True
        assert len(repository.list_flags("student_24")) == 1
        assert repository.get_status("student_24") == SafeguardingStatus.ESCALATED
        assert publisher.publish.call_count == 2

    def test_fallback_does_not_raise(self, no_salt, repository, store):
        orchestrator = _orchestrator(repository, store)
        orchestrator.classifier = MagicMock()
        orchestrator.classifier.detect.side_effect = RuntimeError("boom")

        response = orchestrator.process_message("student_25", "idk", _context())

        assert response.message == APOLOGETIC_FALLBACK


class TestStudentLocks:
    """Per-student serialization."""

    def test_same_student_waits(self):
        locks = StudentLocks()
        entered = threading.Event()

        def worker():
            with locks.hold("student_1"):
                entered.set()

        with locks.hold("student_1"):
            thread = threading.Thread(target=worker)
            thread.start()
            assert not entered.wait(0.1)

        thread.join(1)
        assert entered.is_set()

    def test_other_students_not_blocked(self):
        locks = StudentLocks()
        entered = threading.Event()

        def worker():
            with locks.hold("student_2"):
                entered.set()

        with locks.hold("student_1"):
            thread = threading.Thread(target=worker)
            thread.start()
            assert entered.wait(1)
        thread.join(1)

    def test_locks_released_after_use(self, repository, store):
        orchestrator = _orchestrator(repository, store)

        orchestrator.process_message("student_23", "idk", _context())

        assert len(orchestrator.locks) == 0
