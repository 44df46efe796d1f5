"""Personalization Service: interests, reply personalization and rewards.

Components:
- interests.py: detect_interests(), InterestRepository (the interest store)
- sampler.py: PersonalizationSampler rewrites replies with an interest
- rewards.py: RewardEvaluator and time-limited RewardCodeIssuer
- config.py: interest patterns, template families, reward settings
"""

from .config import GENERIC_RESPONSE, PersonalizationConfig
from .interests import InterestRepository, detect_interests
from .rewards import RewardCodeIssuer, RewardEvaluator, engagement_policy
from .sampler import PersonalizationResult, PersonalizationSampler

__all__ = [
    "GENERIC_RESPONSE",
    "PersonalizationConfig",
    "InterestRepository",
    "detect_interests",
    "RewardCodeIssuer",
    "RewardEvaluator",
    "engagement_policy",
    "PersonalizationResult",
    "PersonalizationSampler",
]
