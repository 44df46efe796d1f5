"""Tests for PersonalizationSampler."""
import random
from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import MagicMock

from humanos.shared.models import Interest
from humanos.shared.utils import configure_pii_salt
from humanos.services.personalization_service.config import (
    GENERIC_RESPONSE,
    PERSONALIZATION_TEMPLATES,
)
from humanos.services.personalization_service.sampler import (
    PersonalizationSampler,
    template_family,
)

T0 = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def setup_pii_salt():
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


def _interest(label, hours_ago):
    return Interest("games", label, 0.8, T0 - timedelta(hours=hours_ago))


def _store(usage=0):
    store = MagicMock()
    store.recent_usage_count.return_value = usage
    return store


class TestChooseInterest:
    """Interest rotation."""

    def test_least_recent_of_top_five(self):
        sampler = PersonalizationSampler(_store())
        interests = [_interest(f"G{i}", hours_ago=i) for i in range(7)]

        assert sampler.choose_interest(interests).specific == "G4"

    def test_fewer_than_five(self):
        sampler = PersonalizationSampler(_store())
        interests = [_interest("Roblox", 1), _interest("Minecraft", 3)]

        assert sampler.choose_interest(interests).specific == "Minecraft"

    def test_none_without_interests(self):
        assert PersonalizationSampler(_store()).choose_interest([]) is None


class TestPersonalize:
    """Template rewriting and overuse throttling."""

    def test_task_template_uses_interest(self):
        sampler = PersonalizationSampler(_store(usage=0), rng=random.Random(1))

        result = sampler.personalize("student_1", [_interest("Minecraft", 1)], "task")

        assert result.personalized
        assert "Minecraft" in result.message
        assert result.message in [
            t.format(interest="Minecraft") for t in PERSONALIZATION_TEMPLATES["taskFraming"]
        ]

    def test_reward_family(self):
        rng = MagicMock()
        rng.choice.side_effect = lambda options: options[0]
        sampler = PersonalizationSampler(_store(), rng=rng)

        result = sampler.personalize("student_1", [_interest("Fortnite", 1)], "reward")

        assert result.message == "Complete this and you'll get 5 minutes on Fortnite!"

    def test_overused_interest_falls_back(self):
        store = _store(usage=3)
        sampler = PersonalizationSampler(store)

        result = sampler.personalize("student_1", [_interest("Minecraft", 1)], "task")

        assert result.message == GENERIC_RESPONSE
        assert not result.personalized
        store.recent_usage_count.assert_called_once_with("student_1", "Minecraft")

    def test_usage_below_limit_personalizes(self):
        sampler = PersonalizationSampler(_store(usage=2))

        result = sampler.personalize("student_1", [_interest("Minecraft", 1)], "encouragement")

        assert result.personalized

    def test_no_interests_generic(self):
        store = _store()
        result = PersonalizationSampler(store).personalize("student_1", [], "task")

        assert result.message == GENERIC_RESPONSE
        store.recent_usage_count.assert_not_called()


class TestTemplateFamily:
    """Task type to template family mapping."""

    @pytest.mark.parametrize("task_type,family", [
        ("reward", "gameReward"),
        ("challenge", "taskFraming"),
        ("task", "taskFraming"),
        ("encouragement", "encouragement"),
        ("anything", "encouragement"),
    ])
    def test_mapping(self, task_type, family):
        assert template_family(task_type) == family
