"""Safeguarding scanner - deterministic harm detection.

Every student message is scanned here before any coaching logic runs.
Detectors run in a fixed order (sexual, violence, neglect) and the first
matching pattern group decides the result. If the raw text matches nothing,
the battery runs a second time on evasion-normalized text.

The scanner is pure: it never persists, notifies, or mutates state.
Escalation side effects belong to escalation.EscalationStateMachine.
"""
import logging
import re
from typing import List, Optional, Tuple

from humanos.shared.models import SafeguardingCategory, SafeguardingResult
from humanos.shared.utils import hash_text_for_audit
from .config import (
    SAFEGUARDING_PATTERNS,
    PatternGroup,
    SafeguardingConfig,
    developmental_threshold,
)
from .text_normalizer import TextNormalizer, get_normalizer

logger = logging.getLogger(__name__)


class _CompiledGroup:
    """PatternGroup with its regexes compiled once."""

    def __init__(self, category: SafeguardingCategory, group: PatternGroup):
        self.category = category
        self.group = group
        self.regexes: List[re.Pattern] = [
            re.compile(pattern, re.IGNORECASE) for pattern in group.patterns
        ]

    def matches(self, text: str) -> bool:
        return any(regex.search(text) for regex in self.regexes)

    def severity_for(self, age: int) -> int:
        if not self.group.age_modulated:
            return self.group.severity
        if age < developmental_threshold(age):
            return self.group.severity
        return self.group.severity - 1


class SafeguardingScanner:
    """Ordered battery of category detectors.

    Usage:
        scanner = SafeguardingScanner()
        result = scanner.scan("I'm going to hurt him tonight", age=14)
        if result.severity >= 3:
            ...escalate...
    """

    def __init__(
        self,
        config: Optional[SafeguardingConfig] = None,
        normalizer: Optional[TextNormalizer] = None,
    ):
        """Initialize scanner and precompile the pattern battery.

        Args:
            config: Safeguarding configuration (pattern version)
            normalizer: Evasion normalizer for the second pass
        """
        self.config = config or SafeguardingConfig()
        self._normalizer = normalizer or get_normalizer()
        self._battery: Tuple[_CompiledGroup, ...] = tuple(
            _CompiledGroup(category, group)
            for category, groups in SAFEGUARDING_PATTERNS
            for group in groups
        )

        logger.info(
            "SAFEGUARDING_SCANNER_INITIALIZED",
            extra={
                "pattern_version": self.config.pattern_version,
                "group_count": len(self._battery),
            }
        )

    def scan(self, text: str, age: int) -> SafeguardingResult:
        """Scan one message for safeguarding concerns.

        Args:
            text: Raw student message
            age: Student age, used to grade age-modulated patterns

        Returns:
            SafeguardingResult; severity 0 and category NONE when nothing
            matched. Empty or whitespace-only text never matches.

        Logs:
            - SAFEGUARDING_SCAN_MATCH: A pattern group matched
        """
        if not text or not text.strip():
            return SafeguardingResult.clear()

        result = self._run_battery(text, age, evasion_pass=False)
        if result is None:
            normalized = self._normalizer.normalize(text)
            if normalized and normalized != text.lower():
                result = self._run_battery(normalized, age, evasion_pass=True)

        if result is None:
            return SafeguardingResult.clear()

        logger.warning(
            "SAFEGUARDING_SCAN_MATCH",
            extra={
                "pattern_id": result.pattern_id,
                "category": result.category.value,
                "severity": result.severity,
                "age": age,
                "text_hash": hash_text_for_audit(text),
                "text_length": len(text),
                "pattern_version": self.config.pattern_version,
            }
        )
        return result

    def _run_battery(
        self,
        text: str,
        age: int,
        evasion_pass: bool,
    ) -> Optional[SafeguardingResult]:
        for compiled in self._battery:
            if not compiled.matches(text):
                continue

            reasoning = compiled.group.description
            if evasion_pass:
                reasoning += " (matched after evasion normalization)"

            return SafeguardingResult(
                detected=True,
                severity=compiled.severity_for(age),
                category=compiled.category,
                pattern_id=compiled.group.group_id,
                reasoning=reasoning,
            )
        return None
