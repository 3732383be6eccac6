"""
Learning Engine Module.

This module contains the adaptive testing algorithm logic:
- 3PL item response model
- Maximum-likelihood ability estimation
- Maximum-information item selection with content balancing
- Stopping rules and session orchestration

Algorithm constants live in `config` with their provenance.
"""

from adaptive_cat.learning_engine.constants import AbilityLevel, SessionStatus, SessionType, StopReason

__all__ = [
    # Constants
    "AbilityLevel",
    "SessionStatus",
    "SessionType",
    "StopReason",
]
