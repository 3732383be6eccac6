"""Tests for settings, CAT configuration and the constants registry."""

import json

import pytest
from pydantic import ValidationError

from adaptive_cat.core.config import Settings
from adaptive_cat.learning_engine.config import get_cat_defaults, validate_all_constants
from adaptive_cat.schemas.cat import CatConfig


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.CAT_MIN_ITEMS == 20
        assert s.CAT_MAX_ITEMS == 20
        assert s.CAT_TARGET_SEM == 0.25
        assert s.CAT_NEAR_TIE_RATIO == 0.95
        assert s.CAT_TARGET_DISTRIBUTION == {"Spelling": 5, "Grammar": 5, "Pronunciation": 5, "Syntax": 5}
        assert s.CAT_RANDOM_SEED is None

    def test_distribution_from_pairs(self, monkeypatch):
        monkeypatch.setenv("CAT_TARGET_DISTRIBUTION", "Spelling:3, Grammar:2")
        assert Settings().CAT_TARGET_DISTRIBUTION == {"Spelling": 3, "Grammar": 2}

    def test_distribution_from_json(self, monkeypatch):
        monkeypatch.setenv("CAT_TARGET_DISTRIBUTION", json.dumps({"Syntax": 4}))
        assert Settings().CAT_TARGET_DISTRIBUTION == {"Syntax": 4}

    def test_empty_distribution(self, monkeypatch):
        monkeypatch.setenv("CAT_TARGET_DISTRIBUTION", "")
        assert Settings().CAT_TARGET_DISTRIBUTION == {}

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CAT_MIN_ITEMS", "5")
        monkeypatch.setenv("CAT_MAX_ITEMS", "15")
        monkeypatch.setenv("CAT_RANDOM_SEED", "42")
        s = Settings()
        assert (s.CAT_MIN_ITEMS, s.CAT_MAX_ITEMS, s.CAT_RANDOM_SEED) == (5, 15, 42)

    def test_min_above_max_rejected(self):
        with pytest.raises(ValidationError):
            Settings(CAT_MIN_ITEMS=30, CAT_MAX_ITEMS=20)

    def test_near_tie_ratio_bounds(self):
        with pytest.raises(ValidationError):
            Settings(CAT_NEAR_TIE_RATIO=1.5)


class TestCatConfig:
    def test_defaults_match_registry(self):
        config = CatConfig()
        defaults = get_cat_defaults()
        assert config.min_items == defaults["min_items"]
        assert config.max_items == defaults["max_items"]
        assert config.target_sem == defaults["target_sem"]
        assert config.target_distribution == defaults["target_distribution"]
        assert config.mle_max_iter == 50
        assert config.mle_tol == 0.001

    def test_min_above_max_rejected(self):
        with pytest.raises(ValidationError):
            CatConfig(min_items=5, max_items=3)

    def test_target_sem_positive(self):
        with pytest.raises(ValidationError):
            CatConfig(target_sem=0)

    def test_from_settings(self):
        s = Settings(CAT_MIN_ITEMS=4, CAT_MAX_ITEMS=8, CAT_TARGET_SEM=0.4, CAT_TARGET_DISTRIBUTION="Grammar:8")
        config = CatConfig.from_settings(s)
        assert config.min_items == 4
        assert config.max_items == 8
        assert config.target_sem == 0.4
        assert config.target_distribution == {"Grammar": 8}

    def test_distribution_not_shared(self):
        first = CatConfig()
        first.target_distribution["Spelling"] = 0
        assert CatConfig().target_distribution["Spelling"] == 5


def test_registry_consistent():
    assert validate_all_constants() == []
