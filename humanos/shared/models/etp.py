"""Student state and barrier catalog domain models.

StudentContext arrives with every request and describes the student's
current regulatory state. StudentBarrier and InterventionLever make up the
read-only barrier catalog loaded at startup.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Sequence, Tuple


class ContextValidationError(ValueError):
    """Request context violates the input contract."""
    pass


def _require_unit_interval(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ContextValidationError(f"{name} must be a number, got {value!r}")
    if not 0.0 <= value <= 1.0:
        raise ContextValidationError(f"{name} must be 0.0-1.0, got {value}")


class BrainMode(Enum):
    """Which brain layer is currently driving the student's behaviour."""
    PRIMAL = "primal"           # Physical needs: hunger, tiredness, threat
    EMOTIONAL = "emotional"     # Fear, frustration, overwhelm
    RATIONAL = "rational"       # Cortical thinking available


class ETPCategory(Enum):
    """Emotional trigger point families."""
    PAIN = "pain"
    PLEASURE = "pleasure"
    SOCIAL = "social"
    GOAL = "goal"


class BarrierCategory(Enum):
    """Barrier classification."""
    ACUTE = "acute"             # Specific fear about the current task
    CHRONIC = "chronic"         # Long-term learned pattern
    STRUCTURAL = "structural"   # Created by the system around the student


@dataclass(frozen=True)
class BrainState:
    """Three-axis regulatory state, each axis 0.0-1.0."""
    primal_level: float
    emotional_level: float
    rational_level: float
    current_mode: BrainMode = BrainMode.RATIONAL

    def __post_init__(self):
        _require_unit_interval("primal_level", self.primal_level)
        _require_unit_interval("emotional_level", self.emotional_level)
        _require_unit_interval("rational_level", self.rational_level)


@dataclass(frozen=True)
class ETP:
    """An activated emotional trigger point."""
    name: str
    category: ETPCategory
    intensity: float

    def __post_init__(self):
        _require_unit_interval(f"etp[{self.name}].intensity", self.intensity)


@dataclass(frozen=True)
class RoutineProfile:
    """How dependent the student is on imposed structure."""
    routine_dependency: float = 0.0   # 0 self-directed, 1 needs complete structure
    thinking_atrophy: float = 0.0     # 0 thinking is easy, 1 thinking is painful
    fence_voltage: float = 0.0        # Pain when routine is disrupted

    def __post_init__(self):
        _require_unit_interval("routine_dependency", self.routine_dependency)
        _require_unit_interval("thinking_atrophy", self.thinking_atrophy)
        _require_unit_interval("fence_voltage", self.fence_voltage)


@dataclass(frozen=True)
class StudentContext:
    """Ephemeral per-request student state.

    Out-of-range scores raise ContextValidationError; nothing is clamped.
    """
    age: int
    brain_state: BrainState
    activated_etps: Tuple[ETP, ...] = ()
    routine_profile: RoutineProfile = field(default_factory=RoutineProfile)
    social_need: float = 0.0
    autonomy_resistance: float = 0.0
    status_seeking: float = 0.0

    def __post_init__(self):
        if isinstance(self.age, bool) or not isinstance(self.age, int) or self.age <= 0:
            raise ContextValidationError(f"age must be a positive integer, got {self.age!r}")
        _require_unit_interval("social_need", self.social_need)
        _require_unit_interval("autonomy_resistance", self.autonomy_resistance)
        _require_unit_interval("status_seeking", self.status_seeking)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StudentContext":
        """Build a context from a request body.

        Args:
            data: Decoded JSON context object

        Returns:
            Validated StudentContext

        Raises:
            ContextValidationError: On missing fields or out-of-range values
        """
        if not isinstance(data, Mapping):
            raise ContextValidationError("context must be an object")
        if "age" not in data:
            raise ContextValidationError("context.age is required")
        brain = data.get("brain_state")
        if not isinstance(brain, Mapping):
            raise ContextValidationError("context.brain_state is required")
        etp_items = data.get("activated_etps", [])
        if not isinstance(etp_items, (list, tuple)):
            raise ContextValidationError("context.activated_etps must be a list")
        if not all(isinstance(item, Mapping) for item in etp_items):
            raise ContextValidationError("context.activated_etps items must be objects")
        routine = data.get("routine_profile") or {}
        if not isinstance(routine, Mapping):
            raise ContextValidationError("context.routine_profile must be an object")

        try:
            brain_state = BrainState(
                primal_level=brain["primal_level"],
                emotional_level=brain["emotional_level"],
                rational_level=brain["rational_level"],
                current_mode=BrainMode(brain.get("current_mode", BrainMode.RATIONAL.value)),
            )
            etps = tuple(
                ETP(
                    name=item["name"],
                    category=ETPCategory(item["category"]),
                    intensity=item["intensity"],
                )
                for item in etp_items
            )
            routine_profile = RoutineProfile(
                routine_dependency=routine.get("routine_dependency", 0.0),
                thinking_atrophy=routine.get("thinking_atrophy", 0.0),
                fence_voltage=routine.get("fence_voltage", 0.0),
            )
        except KeyError as e:
            raise ContextValidationError(f"context field missing: {e.args[0]}")
        except (TypeError, ValueError) as e:
            if isinstance(e, ContextValidationError):
                raise
            raise ContextValidationError(str(e))

        return cls(
            age=data["age"],
            brain_state=brain_state,
            activated_etps=etps,
            routine_profile=routine_profile,
            social_need=data.get("social_need", 0.0),
            autonomy_resistance=data.get("autonomy_resistance", 0.0),
            status_seeking=data.get("status_seeking", 0.0),
        )


@dataclass(frozen=True)
class InterventionLever:
    """A concrete coaching action addressing a barrier.

    brain_state_target is a free-text tag. The selector looks for the
    substrings "lower" and "calm" in it to find de-escalating levers.
    """
    name: str
    description: str
    steps: Tuple[str, ...]
    etp_reduction: Tuple[str, ...] = ()
    brain_state_target: str = ""
    prerequisites: Tuple[str, ...] = ()
    benefits: Tuple[str, ...] = ()
    when_to_use: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InterventionLever":
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            steps=tuple(data.get("steps", ())),
            etp_reduction=tuple(data.get("etp_reduction", ())),
            brain_state_target=data.get("brain_state_target", ""),
            prerequisites=tuple(data.get("prerequisites", ())),
            benefits=tuple(data.get("benefits", ())),
            when_to_use=tuple(data.get("when_to_use", ())),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "steps": list(self.steps),
            "etp_reduction": list(self.etp_reduction),
            "brain_state_target": self.brain_state_target,
            "prerequisites": list(self.prerequisites),
            "benefits": list(self.benefits),
            "when_to_use": list(self.when_to_use),
        }


@dataclass(frozen=True)
class StudentBarrier:
    """A catalogued avoidance pattern with ranked counter-interventions.

    effective_levers order is the default preference order.
    """
    id: str
    name: str
    category: BarrierCategory
    effective_levers: Tuple[InterventionLever, ...]
    description: str = ""
    activated_etps: Tuple[str, ...] = ()
    avoidance_tactics: Tuple[str, ...] = ()
    underlying_cause: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StudentBarrier":
        return cls(
            id=data["id"],
            name=data["name"],
            category=BarrierCategory(data["category"]),
            effective_levers=tuple(
                InterventionLever.from_dict(lever)
                for lever in data.get("effective_levers", ())
            ),
            description=data.get("description", ""),
            activated_etps=tuple(data.get("activated_etps", ())),
            avoidance_tactics=tuple(data.get("avoidance_tactics", ())),
            underlying_cause=data.get("underlying_cause", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "description": self.description,
            "activated_etps": list(self.activated_etps),
            "avoidance_tactics": list(self.avoidance_tactics),
            "underlying_cause": self.underlying_cause,
        }


@dataclass(frozen=True)
class DetectedBarrier:
    """A barrier matched against one message."""
    barrier: StudentBarrier
    confidence: float
    reasoning: Tuple[str, ...]

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be 0.0-1.0, got {self.confidence}")
        if not self.reasoning:
            raise ValueError("DetectedBarrier requires at least one reasoning string")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "barrier_id": self.barrier.id,
            "name": self.barrier.name,
            "category": self.barrier.category.value,
            "confidence": self.confidence,
            "reasoning": list(self.reasoning),
        }


def rank_detections(detections: Sequence[DetectedBarrier]) -> List[DetectedBarrier]:
    """Order detections by confidence, highest first.

    sorted() is stable, so equal confidences keep detection order.
    """
    return sorted(detections, key=lambda d: d.confidence, reverse=True)

