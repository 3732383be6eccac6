"""Computerized adaptive testing (3PL IRT) engine and session orchestrator."""

from adaptive_cat.learning_engine.cat.domain import CatSession, Item, ResponseEvent, ScoredResponse
from adaptive_cat.learning_engine.cat.estimation import estimate_ability
from adaptive_cat.learning_engine.cat.prob import information, probability
from adaptive_cat.learning_engine.cat.repo import CatRepository, InMemoryCatRepository
from adaptive_cat.learning_engine.cat.scoring import classify_ability, standard_error
from adaptive_cat.learning_engine.cat.selection import select_next_item
from adaptive_cat.learning_engine.cat.service import CatSessionService
from adaptive_cat.learning_engine.cat.stopping import StopDecision, should_stop

__all__ = [
    # Model
    "probability",
    "information",
    # Estimation and precision
    "estimate_ability",
    "standard_error",
    "classify_ability",
    # Selection and stopping
    "select_next_item",
    "should_stop",
    "StopDecision",
    # Domain
    "Item",
    "ScoredResponse",
    "ResponseEvent",
    "CatSession",
    # Orchestration
    "CatRepository",
    "InMemoryCatRepository",
    "CatSessionService",
]
