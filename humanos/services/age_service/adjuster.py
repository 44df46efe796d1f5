"""Age-appropriate language adjustment.

Every coaching reply passes through adjust_language() before it is sent.
Ages outside the defined groups are returned unchanged.
"""
import re
from typing import List, Optional, Sequence

from .config import (
    ABSTRACT_MARKERS,
    ABSTRACT_PHRASES,
    AGE_GROUPS,
    COMPLEX_WORDS,
    CONDESCENDING_PHRASES,
    SENTENCE_BREAK_WORDS,
    VOCABULARY_REPLACEMENTS,
    AgeGroup,
)


_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_VOCABULARY = {
    word: re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)
    for word in VOCABULARY_REPLACEMENTS
}
_ABSTRACT = [re.compile(re.escape(p), re.IGNORECASE) for p in ABSTRACT_PHRASES]


def _capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:] if text else text


def _finish_sentence(text: str) -> str:
    text = _capitalize_first(text.strip())
    if text and text[-1] not in ".!?":
        text += "."
    return text


class AgeAdjuster:
    """Rewrites replies for a student's developmental stage."""

    def __init__(self, groups: Sequence[AgeGroup] = AGE_GROUPS):
        self.groups = tuple(groups)

    def group_for(self, age: int) -> Optional[AgeGroup]:
        for group in self.groups:
            if group.contains(age):
                return group
        return None

    def adjust_language(self, text: str, age: int) -> str:
        """Adjust a reply for the student's age.

        Under 10, complex words are swapped for simpler ones. Sentences
        over the group's word limit are split at commas and conjunctions.
        Under 8, abstract framing phrases are removed.

        Args:
            text: Reply text
            age: Student age

        Returns:
            Adjusted text; unchanged when no age group covers age
        """
        group = self.group_for(age)
        if group is None or not text:
            return text

        adjusted = text
        if age < 10:
            adjusted = self._simplify_vocabulary(adjusted)
        if group.max_words_per_sentence:
            adjusted = self._shorten_sentences(adjusted, group.max_words_per_sentence)
        if age < 8:
            adjusted = self._remove_abstract_phrases(adjusted)
        return adjusted

    def check_offense_risk(self, text: str, age: int) -> List[str]:
        """List ways a reply might land badly for this age.

        Returns:
            Human-readable risk descriptions (empty if none)
        """
        group = self.group_for(age)
        if group is None:
            return []

        risks = []
        lowered = text.lower()

        if age >= 10:
            for phrase in CONDESCENDING_PHRASES:
                if phrase in lowered:
                    risks.append(f"Potentially condescending language for age {age}: '{phrase}'")
                    break

        if age < 8:
            found = [w for w in COMPLEX_WORDS if w in lowered]
            if found:
                risks.append(f"Too complex vocabulary for age {age}: {found}")

        if age < 12 and group.max_words_per_sentence:
            limit = group.max_words_per_sentence
            for sentence in text.split("."):
                word_count = len(sentence.split())
                if word_count > limit * 2:
                    risks.append(
                        f"Sentence too complex for age {age}: {word_count} words (max {limit})"
                    )
                    break

        if age < 8:
            for marker in ABSTRACT_MARKERS:
                if marker in lowered:
                    risks.append(f"Abstract concept for age {age}: '{marker}'")
                    break

        return risks

    def safeguarding_response(self, age: int) -> str:
        """Age-tiered signpost to a trusted adult."""
        if age < 10:
            return "Let's talk to a trusted adult about this. A teacher or parent can help."
        if age < 13:
            return (
                "I think it would be helpful to talk to someone who can support you "
                "better, like a teacher, parent, or counselor."
            )
        return (
            "I think it would be helpful to talk to a trusted adult or counselor "
            "about this. Your wellbeing is important."
        )

    def _simplify_vocabulary(self, text: str) -> str:
        for word, pattern in _VOCABULARY.items():
            simple = VOCABULARY_REPLACEMENTS[word]
            text = pattern.sub(
                lambda m, s=simple: _capitalize_first(s) if m.group(0)[0].isupper() else s,
                text,
            )
        return text

    def _shorten_sentences(self, text: str, max_words: int) -> str:
        sentences = _SENTENCE_SPLIT.split(text.strip())
        if all(len(s.split()) <= max_words for s in sentences):
            return text

        result = []
        for sentence in sentences:
            words = sentence.split()
            if len(words) <= max_words:
                result.append(sentence)
            else:
                result.extend(self._split_sentence(words, max_words))
        return " ".join(result)

    def _split_sentence(self, words: List[str], max_words: int) -> List[str]:
        """Break one long sentence into chunks of at most max_words.

        A chunk ends after a word carrying a comma, or before "and",
        "but" or "or", once it is at least half the limit.
        """
        chunks = []
        current: List[str] = []
        half = max_words // 2

        for word in words:
            if current and word.lower() in SENTENCE_BREAK_WORDS and len(current) >= half:
                chunks.append(current)
                current = []

            current.append(word)

            if len(current) >= max_words or (word.endswith(",") and len(current) >= half):
                current[-1] = current[-1].rstrip(",")
                chunks.append(current)
                current = []

        if current:
            chunks.append(current)

        return [_finish_sentence(" ".join(chunk)) for chunk in chunks]

    def _remove_abstract_phrases(self, text: str) -> str:
        for pattern in _ABSTRACT:
            text = pattern.sub("", text)
        return _capitalize_first(" ".join(text.split()))
