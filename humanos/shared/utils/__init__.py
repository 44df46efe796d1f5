"""Shared utilities for the HumanOS coach platform."""
from .pii import (
    UNHASHED_PLACEHOLDER,
    configure_pii_salt,
    hash_pii,
    hash_pii_for_log,
    hash_text_for_audit,
    truncate_sensitive,
)

__all__ = [
    "UNHASHED_PLACEHOLDER",
    "configure_pii_salt",
    "hash_pii",
    "hash_pii_for_log",
    "hash_text_for_audit",
    "truncate_sensitive",
]
