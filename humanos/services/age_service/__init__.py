"""Age Service: developmental-stage language adjustment.

Components:
- adjuster.py: AgeAdjuster (adjust_language, check_offense_risk,
  safeguarding_response)
- config.py: age groups, vocabulary and phrase tables
"""

from .adjuster import AgeAdjuster
from .config import AGE_GROUPS, AgeGroup

__all__ = [
    "AgeAdjuster",
    "AGE_GROUPS",
    "AgeGroup",
]
