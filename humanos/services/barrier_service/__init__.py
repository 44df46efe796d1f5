"""Barrier Service: avoidance-pattern detection and lever selection.

Components:
- catalog.py: BarrierCatalog loaded once from data/barriers.json
- classifier.py: BarrierClassifier, independent phrase rules
- selector.py: InterventionSelector, lever choice for the top barrier
- config.py: phrase tables and selector thresholds
"""

from .catalog import BarrierCatalog, CatalogError, get_barrier_catalog
from .classifier import BarrierClassifier, BarrierRule, DEFAULT_RULES, says_i_dont_know
from .config import SelectorConfig
from .selector import InterventionSelector

__all__ = [
    "BarrierCatalog",
    "CatalogError",
    "get_barrier_catalog",
    "BarrierClassifier",
    "BarrierRule",
    "DEFAULT_RULES",
    "says_i_dont_know",
    "SelectorConfig",
    "InterventionSelector",
]
