"""Evasion normalization for the safeguarding second pass.

Students sometimes disguise disclosures (h4ve a pl4n, ⓗⓤⓡⓣ, s.t.a.r.v.i.n.g).
The scanner runs its pattern battery on the raw text first and, only if
nothing matched, again on the output of normalize_text().
"""
import logging
import re
import unicodedata
from typing import Dict, FrozenSet, Optional, Tuple

logger = logging.getLogger(__name__)


# Digits and symbols commonly standing in for letters
LEETSPEAK_MAP: Dict[str, str] = {
    "0": "o",
    "1": "i",
    "3": "e",
    "4": "a",
    "5": "s",
    "7": "t",
    "8": "b",
    "@": "a",
    "$": "s",
    "+": "t",
    "|": "l",
}

# Styled unicode alphabets: (first code point, last code point, ASCII base)
STYLED_LETTER_RANGES: Tuple[Tuple[int, int, int], ...] = (
    (0x1D400, 0x1D419, ord("A")),   # Mathematical bold
    (0x1D41A, 0x1D433, ord("a")),
    (0x1D434, 0x1D44D, ord("A")),   # Mathematical italic
    (0x1D44E, 0x1D467, ord("a")),
    (0x1D538, 0x1D551, ord("A")),   # Double-struck
    (0x1D552, 0x1D56B, ord("a")),
    (0x24B6, 0x24CF, ord("A")),     # Circled
    (0x24D0, 0x24E9, ord("a")),
    (0xFF21, 0xFF3A, ord("A")),     # Fullwidth
    (0xFF41, 0xFF5A, ord("a")),
)

STRIP_CHARS: FrozenSet[str] = frozenset({
    "\u200b",  # Zero-width space
    "\u200c",  # Zero-width non-joiner
    "\u200d",  # Zero-width joiner
    "\ufeff",  # Byte order mark
    "\u00ad",  # Soft hyphen
    "\u2060",  # Word joiner
})

# Three or more single letters joined by separators: k.i.l.l, s t a r v i n g
_SPACED_LETTERS = re.compile(r"\b[a-z]\b(?:[\.\-_\s]+[a-z]\b){2,}")
_SEPARATORS = re.compile(r"[\.\-_\s]+")


class TextNormalizer:
    """Rewrites disguised text into plain lowercase ASCII words."""

    def normalize(self, text: str) -> str:
        """Normalize text for the second scanning pass.

        Order: strip invisible characters, map styled unicode and leetspeak
        to letters, lowercase, join separated letters, collapse whitespace.

        Args:
            text: Raw student message

        Returns:
            Normalized text (may be empty)
        """
        if not text:
            return ""

        result = "".join(c for c in text if c not in STRIP_CHARS)
        result = "".join(self._to_ascii(c) for c in result)
        result = "".join(LEETSPEAK_MAP.get(c, c) for c in result)
        result = result.lower()
        result = _SPACED_LETTERS.sub(lambda m: _SEPARATORS.sub("", m.group(0)), result)
        return " ".join(result.split())

    def _to_ascii(self, char: str) -> str:
        code_point = ord(char)
        for start, end, base in STYLED_LETTER_RANGES:
            if start <= code_point <= end:
                return chr(base + (code_point - start))

        if code_point < 128:
            return char

        # Accented and compatibility forms: keep only the ASCII base letter
        decomposed = unicodedata.normalize("NFKD", char)
        ascii_only = "".join(
            c for c in decomposed
            if unicodedata.category(c) != "Mn" and ord(c) < 128
        )
        return ascii_only or char


_normalizer: Optional[TextNormalizer] = None


def get_normalizer() -> TextNormalizer:
    """Get the shared TextNormalizer instance."""
    global _normalizer
    if _normalizer is None:
        _normalizer = TextNormalizer()
        logger.debug(
            "TEXT_NORMALIZER_INITIALIZED",
            extra={"leetspeak_mappings": len(LEETSPEAK_MAP)}
        )
    return _normalizer


def normalize_text(text: str) -> str:
    """Convenience wrapper around the shared normalizer."""
    return get_normalizer().normalize(text)
