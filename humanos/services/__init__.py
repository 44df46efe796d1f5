"""HumanOS coaching services.

- safeguarding_service: harm detection, trauma flags and escalation
- barrier_service: avoidance-pattern detection and lever selection
- age_service: age-appropriate language adjustment
- personalization_service: interests, personalization and rewards
- coach_engine: the per-message pipeline and HTTP boundary
"""
