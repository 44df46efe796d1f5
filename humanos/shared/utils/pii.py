"""Student data handling: identifiers and message text never reach logs raw.

Student IDs are hashed with a salted SHA-256 before they appear in logs,
alert partition keys or analytics. Raw message text is only stored in the
safeguarding record and the alert sent to the safeguarding team.
"""
import hashlib
import logging
from typing import Optional

logger = logging.getLogger(__name__)

MIN_SALT_LENGTH = 32
UNHASHED_PLACEHOLDER = "unhashed"

_PII_SALT: Optional[str] = None


def configure_pii_salt(salt: str) -> None:
    """Configure the salt used by hash_pii().

    Must be called once at startup, before any message is processed.

    Args:
        salt: Secret salt value (at least 32 characters)

    Raises:
        ValueError: If salt is empty or too short
    """
    global _PII_SALT
    if not salt or len(salt) < MIN_SALT_LENGTH:
        logger.critical(
            "PII_SALT_CONFIGURATION_FAILED",
            extra={"reason": "Salt too short or empty", "min_length": MIN_SALT_LENGTH}
        )
        raise ValueError(f"PII salt must be at least {MIN_SALT_LENGTH} characters")

    _PII_SALT = salt
    logger.info("PII_SALT_CONFIGURED", extra={"salt_length": len(salt)})


def hash_pii(value: str) -> str:
    """Hash a student identifier for logging and event routing.

    Args:
        value: Student ID or other identifying value

    Returns:
        64-char hex digest

    Raises:
        RuntimeError: If the salt has not been configured
    """
    if _PII_SALT is None:
        logger.critical(
            "PII_HASH_FAILED",
            extra={"reason": "Salt not configured", "action": "call configure_pii_salt()"}
        )
        raise RuntimeError("PII salt not configured. Call configure_pii_salt() first.")

    return hashlib.sha256(f"{_PII_SALT}{value}".encode()).hexdigest()


def hash_pii_for_log(value: str) -> str:
    """Like hash_pii(), but never raises.

    Used for log fields and routing keys on paths that must complete
    (safeguarding writes, fallbacks). Without a salt the raw value is
    withheld and a fixed placeholder is returned.
    """
    if _PII_SALT is None:
        logger.critical(
            "PII_HASH_UNAVAILABLE",
            extra={"reason": "Salt not configured", "action": "call configure_pii_salt()"}
        )
        return UNHASHED_PLACEHOLDER
    return hash_pii(value)


def hash_text_for_audit(text: str) -> str:
    """Fingerprint message text so log lines can be matched to stored records."""
    return hashlib.sha256(text.encode()).hexdigest()


def truncate_sensitive(text: str, max_chars: int = 200) -> str:
    """Cut raw content down for alert payloads.

    Args:
        text: Raw message text
        max_chars: Maximum characters kept before the ellipsis

    Returns:
        The text unchanged if short enough, otherwise its prefix plus "..."
    """
    if len(text) > max_chars:
        return text[:max_chars] + "..."
    return text
