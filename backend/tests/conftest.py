"""Pytest configuration and shared fixtures."""

import logging
import random

import pytest

from adaptive_cat.learning_engine.cat.repo import InMemoryCatRepository
from adaptive_cat.learning_engine.cat.service import CatSessionService
from adaptive_cat.schemas.cat import CatConfig
from tests.helpers.items import make_bank


@pytest.fixture
def item_bank():
    """20 items: 5 per default category, difficulties spread over [-2, 2]."""
    return make_bank(per_category=5)


@pytest.fixture
def repository(item_bank) -> InMemoryCatRepository:
    return InMemoryCatRepository(items=item_bank)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def make_service(repository, rng):
    """Factory for services over the shared repository with config overrides."""

    def _make(**overrides) -> CatSessionService:
        return CatSessionService(repository, config=CatConfig(**overrides), rng=rng)

    return _make


@pytest.fixture
def restore_root_logger():
    """Undo root logger changes made by setup_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)
