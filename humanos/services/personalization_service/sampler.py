"""Interest-based rewriting of coaching replies."""
import logging
import random
from dataclasses import dataclass
from typing import Optional, Sequence

from humanos.shared.models import Interest
from humanos.shared.utils import hash_pii_for_log

from .config import (
    DEFAULT_FAMILY,
    GENERIC_RESPONSE,
    PERSONALIZATION_TEMPLATES,
    TASK_TYPE_FAMILIES,
    PersonalizationConfig,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersonalizationResult:
    """Rewritten reply and the interest it used, if any."""
    message: str
    interest: Optional[Interest] = None

    @property
    def personalized(self) -> bool:
        return self.interest is not None


def template_family(task_type: str) -> str:
    return TASK_TYPE_FAMILIES.get(task_type, DEFAULT_FAMILY)


class PersonalizationSampler:
    """Picks an interest and a template to rewrite a reply with.

    Of the five most recently mentioned interests the least recent one is
    chosen, which rotates through interests instead of repeating the
    latest. If recent replies already used it three or more times, the
    generic reply is returned instead.
    """

    def __init__(
        self,
        store,
        config: Optional[PersonalizationConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize sampler.

        Args:
            store: Interest store providing recent_usage_count()
            config: Personalization settings
            rng: Random source for template choice
        """
        self.store = store
        self.config = config or PersonalizationConfig()
        self.rng = rng or random.Random()

    def choose_interest(self, interests: Sequence[Interest]) -> Optional[Interest]:
        if not interests:
            return None
        recent = sorted(interests, key=lambda i: i.last_mentioned, reverse=True)
        return recent[:self.config.recent_interest_window][-1]

    def personalize(
        self,
        student_id: str,
        interests: Sequence[Interest],
        task_type: str,
    ) -> PersonalizationResult:
        """Rewrite a reply around one of the student's interests.

        Args:
            student_id: Student identifier
            interests: Tracked interests
            task_type: "reward", "challenge"/"task" or anything else for
                encouragement

        Returns:
            PersonalizationResult; generic text when there are no
            interests or the chosen one is overused
        """
        interest = self.choose_interest(interests)
        if interest is None:
            return PersonalizationResult(GENERIC_RESPONSE)

        usage = self.store.recent_usage_count(student_id, interest.specific)
        if usage >= self.config.usage_limit:
            logger.info(
                "PERSONALIZATION_INTEREST_OVERUSED",
                extra={
                    "student_id_hash": hash_pii_for_log(student_id),
                    "interest": interest.specific,
                    "usage": usage,
                }
            )
            return PersonalizationResult(GENERIC_RESPONSE)

        family = template_family(task_type)
        template = self.rng.choice(PERSONALIZATION_TEMPLATES[family])
        return PersonalizationResult(
            message=template.format(interest=interest.specific),
            interest=interest,
        )
