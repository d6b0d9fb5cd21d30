"""Core mathematics and configuration for the live odds engine.

This package contains pure, sport-agnostic building blocks:

- ``sport_config`` : per-sport model constants and the read-only registry
- ``odds_math``    : erf / normal CDF approximations, probability to decimal odds
- ``elapsed_time`` : elapsed-minute resolution from provider live metadata
- ``live_models``  : in-play Poisson and score-margin outcome models

Nothing in this package imports from ``backend.services`` or ``backend.models``.
All modules are side-effect-free and unit-testable in isolation.
"""
