"""Coach Engine: the per-message coaching pipeline.

Safeguarding runs first; a serious concern stops the pipeline and hands
the student to the safeguarding team. Otherwise barriers are detected, a
lever is chosen and the reply is adjusted for age, sometimes personalized
and checked for a play-break reward.

Components:
- orchestrator.py: CoachOrchestrator, CoachResponse, build_orchestrator()
- handler.py: Flask HTTP endpoints (coach, rewards, safeguarding review)
- config.py: CoachConfig, fallback replies, reasoning strings

Usage:
    orchestrator = build_orchestrator()
    response = orchestrator.process_message(student_id, message, context)
"""

from .config import APOLOGETIC_FALLBACK, GENERIC_FALLBACK, CoachConfig
from .orchestrator import (
    CoachOrchestrator,
    CoachResponse,
    StudentLocks,
    build_orchestrator,
)

__all__ = [
    "APOLOGETIC_FALLBACK",
    "GENERIC_FALLBACK",
    "CoachConfig",
    "CoachOrchestrator",
    "CoachResponse",
    "StudentLocks",
    "build_orchestrator",
]
