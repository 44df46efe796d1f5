"""Age group definitions and language tables."""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class AgeGroup:
    """Developmental band with its sentence-length limit."""
    name: str
    min_age: int
    max_age: int
    max_words_per_sentence: Optional[int]   # None = no limit

    def contains(self, age: int) -> bool:
        return self.min_age <= age <= self.max_age


AGE_GROUPS: Tuple[AgeGroup, ...] = (
    AgeGroup("early_primary", 5, 7, 8),
    AgeGroup("late_primary", 8, 10, 12),
    AgeGroup("early_adolescence", 11, 13, 18),
    AgeGroup("adolescence", 14, 18, None),
)

# Applied under age 10
VOCABULARY_REPLACEMENTS: Dict[str, str] = {
    "evaluate": "look at",
    "consider": "think about",
    "demonstrate": "show",
    "analyze": "look at carefully",
    "synthesize": "put together",
    "hypothesis": "idea to test",
    "implement": "try out",
    "facilitate": "help with",
    "comprehend": "understand",
    "utilize": "use",
    "commence": "start",
    "terminate": "stop",
    "substantial": "big",
    "sufficient": "enough",
    "challenge": "hard thing",
    "struggle": "having trouble",
}

# Removed under age 8
ABSTRACT_PHRASES: Tuple[str, ...] = (
    "in other words,",
    "metaphorically speaking,",
    "from a theoretical perspective,",
    "conceptually,",
    "theoretically,",
    "hypothetically,",
    "essentially,",
    "arguably,",
)

# Offense-risk markers
CONDESCENDING_PHRASES: Tuple[str, ...] = (
    "super duper",
    "really really",
    "yay!",
    "good job!",
    "well done!",
)
COMPLEX_WORDS: Tuple[str, ...] = (
    "evaluate", "analyze", "synthesize", "hypothesis",
    "implementation", "facilitate", "comprehend", "utilize",
)
ABSTRACT_MARKERS: Tuple[str, ...] = (
    "consider", "imagine", "suppose", "what if",
    "theoretically", "in theory", "conceptually",
)

SENTENCE_BREAK_WORDS = frozenset({"and", "but", "or"})
