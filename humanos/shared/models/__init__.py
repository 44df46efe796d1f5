"""Shared domain models for the HumanOS coach platform."""
from .etp import (
    BarrierCategory,
    BrainMode,
    BrainState,
    ContextValidationError,
    DetectedBarrier,
    ETP,
    ETPCategory,
    InterventionLever,
    RoutineProfile,
    StudentBarrier,
    StudentContext,
    rank_detections,
)
from .personalization import GameAccessReward, InteractionRecord, Interest
from .safeguarding import (
    MAX_SEVERITY,
    SafeguardingCategory,
    SafeguardingResult,
    SafeguardingStatus,
    TraumaFlag,
)

__all__ = [
    "BarrierCategory",
    "BrainMode",
    "BrainState",
    "ContextValidationError",
    "DetectedBarrier",
    "ETP",
    "ETPCategory",
    "InterventionLever",
    "RoutineProfile",
    "StudentBarrier",
    "StudentContext",
    "rank_detections",
    "GameAccessReward",
    "InteractionRecord",
    "Interest",
    "MAX_SEVERITY",
    "SafeguardingCategory",
    "SafeguardingResult",
    "SafeguardingStatus",
    "TraumaFlag",
]
