#!/usr/bin/env python3
"""Run the coaching pipeline against fixed scenarios.

Uses an in-memory pipeline (no database, no alert delivery) and prints
what the coach would reply and why.

Usage:
    python -m humanos.scripts.run_scenarios
    python -m humanos.scripts.run_scenarios --suite safeguarding
"""
import argparse
import logging
import random
import sys

from humanos.shared.models import StudentContext
from humanos.shared.utils import configure_pii_salt
from humanos.services.age_service import AgeAdjuster
from humanos.services.coach_engine.orchestrator import build_orchestrator


BARRIER_SCENARIOS = [
    ("Confrontational Student", "This is boring. I don't want to do this.", 12),
    ("Avoidance Pattern", "I don't know", 10),
    ("High Achiever Bored", "This is too easy, I already know this", 14),
    (
        "Engaged Response",
        "Okay, I think I understand. Can we try a harder question now? "
        "I want to see if I really get it.",
        11,
    ),
]

# (name, message, age, expect escalation)
SAFEGUARDING_SCENARIOS = [
    ("Sexual Abuse Indicator", "My uncle touched me inappropriately last night", 9, True),
    ("Violence Threat", "I'm going to hurt myself tonight", 14, True),
    ("Neglect Indicator", "I haven't eaten in 2 days and nobody's home", 8, True),
    ("Normal Message", "Can you help me with this math problem?", 12, False),
]

AGE_SCENARIOS = [
    ("Age 6 (should simplify)", "You should analyze and evaluate your hypothesis about this synthesis.", 6),
    (
        "Age 12 (should break into shorter sentences)",
        "This is a really complex sentence with multiple clauses that goes on and on "
        "and on and contains way too much information for a young student to process "
        "effectively.",
        12,
    ),
    ("Age 14 (abstract OK)", "Consider the theoretical implications of this phenomenon.", 14),
]


def _context(age: int, emotional_level: float = 0.3) -> StudentContext:
    return StudentContext.from_dict({
        "age": age,
        "brain_state": {
            "primal_level": 0.2,
            "emotional_level": emotional_level,
            "rational_level": 0.5,
            "current_mode": "rational",
        },
    })


def _banner(title: str) -> None:
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def run_barrier_suite(orchestrator) -> int:
    _banner("Barrier Detection + Intervention")
    for i, (name, message, age) in enumerate(BARRIER_SCENARIOS, 1):
        response = orchestrator.process_message(f"scenario_student_{i}", message, _context(age))
        print(f"\nTest {i}: {name}")
        print(f"  Student (age {age}): \"{message}\"")
        for detection in response.detected_barriers:
            print(f"  Barrier: {detection.barrier.id} ({detection.confidence:.2f})")
        if response.intervention:
            print(f"  Intervention: {response.intervention.name}")
        print(f"  Coach: \"{response.message}\"")
        print(f"  Reward earned: {response.reward_earned}")
        for reason in response.reasoning:
            print(f"    - {reason}")
    return 0


def run_safeguarding_suite(orchestrator) -> int:
    _banner("Safeguarding Detection + Escalation")
    failures = 0
    for i, (name, message, age, expect) in enumerate(SAFEGUARDING_SCENARIOS, 1):
        response = orchestrator.process_message(f"scenario_safeguarding_{i}", message, _context(age))
        ok = response.escalated == expect
        failures += 0 if ok else 1
        print(f"\nTest {i}: {name}")
        print(f"  Student (age {age}): \"{message}\"")
        print(f"  Escalated: {response.escalated} (expected {expect}) {'OK' if ok else 'FAIL'}")
        print(f"  Coach: \"{response.message}\"")
    return failures


def run_age_suite() -> int:
    _banner("Age-Appropriate Language Adjustment")
    adjuster = AgeAdjuster()
    for i, (label, text, age) in enumerate(AGE_SCENARIOS, 1):
        adjusted = adjuster.adjust_language(text, age)
        risks = adjuster.check_offense_risk(adjusted, age)
        print(f"\nTest {i}: {label}")
        print(f"  Original: \"{text}\"")
        print(f"  Adjusted: \"{adjusted}\"")
        if risks:
            for risk in risks:
                print(f"  Risk: {risk}")
        else:
            print("  Age-appropriate, no risks")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Run coaching pipeline scenarios against an in-memory pipeline"
    )
    parser.add_argument(
        "--suite",
        choices=["all", "barriers", "safeguarding", "age"],
        default="all",
        help="Scenario suite to run (default: all)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for personalization",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    configure_pii_salt("scenario_runner_salt_not_for_production_use")

    orchestrator = build_orchestrator(rng=random.Random(args.seed))

    failures = 0
    if args.suite in ("all", "barriers"):
        failures += run_barrier_suite(orchestrator)
    if args.suite in ("all", "safeguarding"):
        failures += run_safeguarding_suite(orchestrator)
    if args.suite in ("all", "age"):
        failures += run_age_suite()

    _banner("FAILED" if failures else "All scenarios completed")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
