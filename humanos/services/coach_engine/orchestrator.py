"""Coach orchestrator: the per-message triage and intervention pipeline.

Order of operations for one message:
    1. Safeguarding scan
    2. Severity >= 3: escalate and return the escalation reply (stop)
    3. Barrier detection
    4. Intervention selection for the top barrier
    5. Base reply from the lever (or the generic fallback)
    6. Age adjustment
    7. Sometimes: personalization with the student's interests
    8. Reward evaluation
Lower-severity detections are escalated in step 2 but do not stop the
pipeline. Interests are tracked after the reply is composed.

Calls for the same student are serialized; different students run
concurrently.
"""
import logging
import random
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from humanos.shared.models import (
    DetectedBarrier,
    InteractionRecord,
    InterventionLever,
    SafeguardingResult,
    StudentContext,
)
from humanos.shared.utils import hash_pii_for_log
from humanos.services.age_service import AgeAdjuster
from humanos.services.barrier_service import (
    BarrierCatalog,
    BarrierClassifier,
    InterventionSelector,
    SelectorConfig,
    get_barrier_catalog,
)
from humanos.services.personalization_service import (
    InterestRepository,
    PersonalizationSampler,
    RewardEvaluator,
    detect_interests,
)
from humanos.services.safeguarding_service import (
    EscalationOutcome,
    EscalationStateMachine,
    SafeguardingAlertPublisher,
    SafeguardingConfig,
    SafeguardingRepository,
    SafeguardingScanner,
    SafeguardingSink,
    response_for_severity,
)
from .config import (
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

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoachResponse:
    """Result of processing one student message."""
    message: str
    intervention: Optional[InterventionLever] = None
    detected_barriers: Tuple[DetectedBarrier, ...] = ()
    safeguarding_alert: bool = False
    reward_earned: bool = False
    reasoning: Tuple[str, ...] = ()
    escalated: bool = False             # pipeline stopped for a safeguarding concern
    escalation: Optional[EscalationOutcome] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "intervention": self.intervention.to_dict() if self.intervention else None,
            "detected_barriers": [d.to_dict() for d in self.detected_barriers],
            "safeguarding_alert": self.safeguarding_alert,
            "reward_earned": self.reward_earned,
            "reasoning": list(self.reasoning),
        }


class StudentLocks:
    """Per-student locks, dropped once no caller holds or waits on them."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}

    @contextmanager
    def hold(self, student_id: str):
        with self._guard:
            lock = self._locks.setdefault(student_id, threading.Lock())
            self._users[student_id] = self._users.get(student_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[student_id] -= 1
                if not self._users[student_id]:
                    del self._users[student_id]
                    del self._locks[student_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class CoachOrchestrator:
    """Runs a student message through triage, intervention and rewards."""

    def __init__(
        self,
        scanner: SafeguardingScanner,
        escalation: EscalationStateMachine,
        classifier: BarrierClassifier,
        selector: InterventionSelector,
        age_adjuster: AgeAdjuster,
        interest_store,
        sampler: PersonalizationSampler,
        reward_evaluator: Optional[RewardEvaluator] = None,
        config: Optional[CoachConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize orchestrator.

        Args:
            scanner: Safeguarding scanner
            escalation: Escalation state machine
            classifier: Barrier classifier
            selector: Intervention selector
            age_adjuster: Age-appropriate language adjustment
            interest_store: get_interests / track_interests / record_interaction
            sampler: Personalization sampler
            reward_evaluator: Reward policy (default heuristic if None)
            config: Coach settings
            rng: Random source for the personalization trigger
        """
        self.scanner = scanner
        self.escalation = escalation
        self.classifier = classifier
        self.selector = selector
        self.age_adjuster = age_adjuster
        self.interest_store = interest_store
        self.sampler = sampler
        self.reward_evaluator = reward_evaluator or RewardEvaluator()
        self.config = config or CoachConfig()
        self.rng = rng or random.Random()
        self.locks = StudentLocks()

    def process_message(
        self,
        student_id: str,
        message: str,
        context: StudentContext,
    ) -> CoachResponse:
        """Process one student message.

        Args:
            student_id: Student identifier
            message: Student message text
            context: Validated per-request student context

        Returns:
            CoachResponse. Unexpected internal failures produce the
            apologetic fallback instead of raising.

        Raises:
            ValueError: If student_id or message is missing
        """
        if not student_id or not isinstance(student_id, str):
            raise ValueError("student_id is required")
        if not isinstance(message, str):
            raise ValueError("message must be a string")
        if not isinstance(context, StudentContext):
            raise ValueError("context must be a StudentContext")

        with self.locks.hold(student_id):
            scan: List[SafeguardingResult] = []
            try:
                return self._process(student_id, message, context, scan)
            except Exception as e:
                return self._fallback(student_id, scan, e)

    def _process(
        self,
        student_id: str,
        message: str,
        context: StudentContext,
        scan: List[SafeguardingResult],
    ) -> CoachResponse:
        reasoning: List[str] = []

        # 1-2. Safeguarding first; escalation effects precede everything else
        result = self.scanner.scan(message, context.age)
        scan.append(result)

        outcome = None
        if result.detected:
            outcome = self.escalation.handle_detection(student_id, message, result)
            if result.severity >= self.escalation.config.escalation_severity:
                reasoning.append(REASON_SAFEGUARDING)
                return CoachResponse(
                    message=outcome.response,
                    safeguarding_alert=True,
                    reasoning=tuple(reasoning),
                    escalated=True,
                    escalation=outcome,
                )

        # 3. Barriers
        detected = self.classifier.detect(message, context)
        if detected:
            top = detected[0]
            reasoning.append(f"Detected barrier: {top.barrier.name}")
            logger.info(
                "BARRIER_DETECTED",
                extra={
                    "student_id_hash": hash_pii_for_log(student_id),
                    "barrier_id": top.barrier.id,
                    "confidence": top.confidence,
                    "barrier_count": len(detected),
                }
            )

        # 4. Intervention
        lever = self.selector.select(detected, context)
        reasoning.append(f"Selected intervention: {lever.name if lever else 'none'}")

        # 5-6. Reply text
        text = self._base_text(lever)
        text = self._adjust_for_age(text, context.age, reasoning)

        # 7. Personalization
        text = self._maybe_personalize(student_id, text, lever, reasoning)

        # 8. Reward
        reward_earned = self.reward_evaluator.evaluate(message)
        reasoning.append(REASON_REWARD if reward_earned else REASON_NO_REWARD)

        self._track(student_id, message, text, detected, reward_earned, result.detected)

        return CoachResponse(
            message=text,
            intervention=lever,
            detected_barriers=tuple(detected),
            safeguarding_alert=result.severity > 0,
            reward_earned=reward_earned,
            reasoning=tuple(reasoning),
            escalation=outcome,
        )

    def _base_text(self, lever: Optional[InterventionLever]) -> str:
        if lever is None:
            return GENERIC_FALLBACK
        if lever.steps:
            return lever.steps[0]
        return lever.description or GENERIC_FALLBACK

    def _adjust_for_age(self, text: str, age: int, reasoning: List[str]) -> str:
        try:
            adjusted = self.age_adjuster.adjust_language(text, age)
        except Exception as e:
            logger.error(
                "AGE_ADJUSTMENT_FAILED",
                extra={"age": age, "error": str(e)}
            )
            reasoning.append(REASON_AGE_ADJUSTMENT_FAILED)
            return text

        reasoning.append(f"Response adjusted for age {age}")

        risks = self.age_adjuster.check_offense_risk(adjusted, age)
        if risks:
            reasoning.append(REASON_OFFENSE_RISK)
            logger.warning(
                "OFFENSE_RISK_DETECTED",
                extra={"age": age, "risks": risks}
            )
        return adjusted

    def _maybe_personalize(
        self,
        student_id: str,
        text: str,
        lever: Optional[InterventionLever],
        reasoning: List[str],
    ) -> str:
        if self.rng.random() >= self.config.personalization_rate:
            reasoning.append(REASON_NOT_PERSONALIZED)
            return text

        try:
            interests = self.interest_store.get_interests(student_id)
            if not interests:
                reasoning.append(REASON_NOT_PERSONALIZED)
                return text
            task_type = "task" if lever else "encouragement"
            result = self.sampler.personalize(student_id, interests, task_type)
        except Exception as e:
            logger.warning(
                "PERSONALIZATION_SKIPPED",
                extra={"student_id_hash": hash_pii_for_log(student_id), "error": str(e)}
            )
            reasoning.append(REASON_NOT_PERSONALIZED)
            return text

        reasoning.append(REASON_PERSONALIZED if result.personalized else REASON_NOT_PERSONALIZED)
        return result.message

    def _track(
        self,
        student_id: str,
        message: str,
        reply: str,
        detected: Sequence[DetectedBarrier],
        reward_earned: bool,
        flagged: bool,
    ) -> None:
        """Record interests and the interaction; failures never reach the student."""
        try:
            self.interest_store.track_interests(student_id, detect_interests(message))
            self.interest_store.record_interaction(
                student_id,
                InteractionRecord(
                    student_message=message,
                    ai_response=reply,
                    timestamp=datetime.now(timezone.utc),
                    barrier_detected=detected[0].barrier.id if detected else None,
                    reward_given=reward_earned,
                    trauma_flagged=flagged,
                ),
            )
        except Exception as e:
            logger.warning(
                "INTEREST_TRACKING_FAILED",
                extra={"student_id_hash": hash_pii_for_log(student_id), "error": str(e)}
            )

    def _fallback(
        self,
        student_id: str,
        scan: List[SafeguardingResult],
        error: Exception,
    ) -> CoachResponse:
        result = scan[0] if scan else None
        logger.error(
            "COACH_PIPELINE_FAILED",
            extra={
                "student_id_hash": hash_pii_for_log(student_id),
                "error": str(error),
                "error_type": type(error).__name__,
                "severity": result.severity if result else None,
            }
        )

        # A known escalation still gets the escalation reply
        if result and result.severity >= self.escalation.config.escalation_severity:
            return CoachResponse(
                message=response_for_severity(result.severity),
                safeguarding_alert=True,
                reasoning=(REASON_SAFEGUARDING,),
                escalated=True,
            )

        return CoachResponse(
            message=APOLOGETIC_FALLBACK,
            safeguarding_alert=bool(result and result.detected),
        )


def build_orchestrator(
    safeguarding_repository: Optional[SafeguardingRepository] = None,
    interest_store: Optional[InterestRepository] = None,
    publisher: Optional[SafeguardingAlertPublisher] = None,
    catalog: Optional[BarrierCatalog] = None,
    config: Optional[CoachConfig] = None,
    safeguarding_config: Optional[SafeguardingConfig] = None,
    rng: Optional[random.Random] = None,
) -> CoachOrchestrator:
    """Wire a CoachOrchestrator from its collaborators.

    Anything not supplied is created with defaults: in-memory
    repositories, the bundled barrier catalog and no alert publisher.
    """
    safeguarding_config = safeguarding_config or SafeguardingConfig()
    safeguarding_repository = safeguarding_repository or SafeguardingRepository()
    interest_store = interest_store or InterestRepository()
    rng = rng or random.Random()

    sink = SafeguardingSink(safeguarding_repository, publisher)
    return CoachOrchestrator(
        scanner=SafeguardingScanner(config=safeguarding_config),
        escalation=EscalationStateMachine(sink, config=safeguarding_config),
        classifier=BarrierClassifier(catalog=catalog or get_barrier_catalog()),
        selector=InterventionSelector(SelectorConfig.from_env()),
        age_adjuster=AgeAdjuster(),
        interest_store=interest_store,
        sampler=PersonalizationSampler(interest_store, config=interest_store.config, rng=rng),
        config=config,
        rng=rng,
    )
