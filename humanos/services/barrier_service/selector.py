"""Intervention selector: pick one lever for the top-ranked barrier."""
import logging
from typing import Optional, Sequence

from humanos.shared.models import DetectedBarrier, InterventionLever, StudentContext
from .config import SelectorConfig

logger = logging.getLogger(__name__)


class InterventionSelector:
    """Chooses a lever from the highest-confidence barrier.

    When the student is emotionally flooded (emotional_level above the
    override threshold) the first calming lever wins; otherwise the
    catalog's preferred (first) lever is used.
    """

    def __init__(self, config: Optional[SelectorConfig] = None):
        self.config = config or SelectorConfig()

    def select(
        self,
        ranked: Sequence[DetectedBarrier],
        context: StudentContext,
    ) -> Optional[InterventionLever]:
        """Select a lever.

        Args:
            ranked: Detections ordered by confidence, highest first
            context: Current student context

        Returns:
            The chosen lever, or None if there are no detections or the
            top barrier has no levers
        """
        if not ranked:
            return None

        levers = ranked[0].barrier.effective_levers
        if not levers:
            return None

        if context.brain_state.emotional_level > self.config.emotional_override_threshold:
            for lever in levers:
                if self._is_calming(lever):
                    logger.debug(
                        "CALMING_LEVER_SELECTED",
                        extra={
                            "barrier_id": ranked[0].barrier.id,
                            "lever": lever.name,
                            "emotional_level": context.brain_state.emotional_level,
                        }
                    )
                    return lever

        return levers[0]

    def _is_calming(self, lever: InterventionLever) -> bool:
        return any(k in lever.brain_state_target for k in self.config.calming_keywords)
