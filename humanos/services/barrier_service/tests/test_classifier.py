"""Tests for BarrierClassifier and InterventionSelector."""
import pytest

from humanos.shared.models import (
    BarrierCategory,
    BrainState,
    DetectedBarrier,
    InterventionLever,
    StudentBarrier,
    StudentContext,
)
from humanos.services.barrier_service.catalog import BarrierCatalog
from humanos.services.barrier_service.classifier import BarrierClassifier
from humanos.services.barrier_service.selector import InterventionSelector


@pytest.fixture(scope="module")
def catalog():
    return BarrierCatalog.load()


@pytest.fixture
def classifier(catalog):
    return BarrierClassifier(catalog)


def _context(emotional_level=0.3):
    return StudentContext(
        age=12,
        brain_state=BrainState(
            primal_level=0.2,
            emotional_level=emotional_level,
            rational_level=0.5,
        ),
    )


def _ids(detections):
    return [(d.barrier.id, d.confidence) for d in detections]


class TestDetect:
    """Rule firing and ranking."""

    def test_idk_and_confrontational(self, classifier):
        detections = classifier.detect("I don't know, this is stupid", _context())

        assert _ids(detections) == [
            ("lack_of_motivation", 0.8),
            ("confrontational_showoff", 0.7),
        ]

    def test_short_reply_is_silent_avoider(self, classifier):
        detections = classifier.detect("ok", _context())

        assert _ids(detections) == [("silent_avoider", 0.6)]

    def test_short_idk_is_only_lack_of_motivation(self, classifier):
        detections = classifier.detect("idk", _context())

        assert _ids(detections) == [("lack_of_motivation", 0.8)]

    @pytest.mark.parametrize("text", ["dunno what to do", "I have no idea here", "I don’t know this one"])
    def test_idk_variants(self, classifier, text):
        assert classifier.detect(text, _context())[0].barrier.id == "lack_of_motivation"

    @pytest.mark.parametrize("text", [
        "why should I even do this",
        "I don't care about fractions",
        "whatever you say mate",
        "so what if I don't",
    ])
    def test_confrontational_variants(self, classifier, text):
        assert "confrontational_showoff" in [d.barrier.id for d in classifier.detect(text, _context())]

    def test_playful(self, classifier):
        detections = classifier.detect("haha can we play a game instead", _context())

        assert _ids(detections) == [("quiet_playful_avoider", 0.65)]

    def test_emoji_is_playful(self, classifier):
        detections = classifier.detect("\U0001F3AE\U0001F3AE\U0001F3AE", _context())

        assert "quiet_playful_avoider" in [d.barrier.id for d in detections]

    def test_boredom(self, classifier):
        detections = classifier.detect("this is too easy, I already know this", _context())

        assert _ids(detections) == [("high_achiever_underengaged", 0.7)]

    def test_ties_keep_rule_order(self, classifier):
        detections = classifier.detect("whatever, this is easy stuff", _context())

        assert _ids(detections) == [
            ("confrontational_showoff", 0.7),
            ("high_achiever_underengaged", 0.7),
        ]

    def test_short_playful_ranked_above_silent(self, classifier):
        detections = classifier.detect("lol", _context())

        assert _ids(detections) == [
            ("quiet_playful_avoider", 0.65),
            ("silent_avoider", 0.6),
        ]

    def test_engaged_message_has_no_barriers(self, classifier):
        assert classifier.detect("I think the answer is 42 because six times seven", _context()) == []

    def test_unknown_catalog_id_skipped(self, catalog):
        partial = BarrierCatalog({"lack_of_motivation": catalog.get("lack_of_motivation")})
        classifier = BarrierClassifier(partial)

        detections = classifier.detect("I don't know, whatever", _context())

        assert _ids(detections) == [("lack_of_motivation", 0.8)]

    def test_reasoning_present(self, classifier):
        detection = classifier.detect("idk", _context())[0]

        assert detection.reasoning
        assert "I don't know" in detection.reasoning[0]


def _lever(name, target):
    return InterventionLever(name=name, description=name, steps=(f"{name} step",), brain_state_target=target)


def _detection(*levers, confidence=0.8):
    barrier = StudentBarrier(
        id="test_barrier",
        name="Test",
        category=BarrierCategory.ACUTE,
        effective_levers=tuple(levers),
    )
    return DetectedBarrier(barrier=barrier, confidence=confidence, reasoning=("test",))


class TestSelect:
    """Lever selection rules."""

    def test_no_barriers(self):
        assert InterventionSelector().select([], _context()) is None

    def test_first_lever_by_default(self):
        detection = _detection(_lever("a", "build_trust"), _lever("b", "calm_down"))

        assert InterventionSelector().select([detection], _context(0.5)).name == "a"

    def test_calming_lever_when_flooded(self):
        detection = _detection(_lever("a", "build_trust"), _lever("b", "lower_primal_level"))

        assert InterventionSelector().select([detection], _context(0.8)).name == "b"

    def test_threshold_is_strict(self):
        detection = _detection(_lever("a", "build_trust"), _lever("b", "calm_down"))

        assert InterventionSelector().select([detection], _context(0.7)).name == "a"

    def test_calm_match_is_case_sensitive(self):
        detection = _detection(_lever("a", "build_trust"), _lever("b", "Calm_Down"))

        assert InterventionSelector().select([detection], _context(0.9)).name == "a"

    def test_no_calming_lever_falls_back_to_first(self):
        detection = _detection(_lever("a", "build_trust"), _lever("b", "increase_autonomy"))

        assert InterventionSelector().select([detection], _context(0.9)).name == "a"

    def test_only_top_barrier_used(self):
        top = _detection(_lever("top", "x"), confidence=0.8)
        other = _detection(_lever("other", "calm"), confidence=0.6)

        assert InterventionSelector().select([top, other], _context(0.9)).name == "top"

    def test_catalog_confrontational_calm_reset(self, classifier):
        ranked = classifier.detect("this is stupid", _context(0.85))

        lever = InterventionSelector().select(ranked, _context(0.85))

        assert lever.name == "calm_reset"
