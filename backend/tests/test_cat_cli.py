"""Tests for the CAT command line interface."""

from click.testing import CliRunner

from adaptive_cat.learning_engine.cat.cli import build_synthetic_pool, cli


def test_demo(restore_root_logger):
    result = CliRunner().invoke(cli, ["--log-level", "WARNING", "demo"])
    assert result.exit_code == 0, result.output
    assert "= 0.7594" in result.output
    assert "Estimated theta:" in result.output
    assert "Stop after 15 items" in result.output


def test_simulate(restore_root_logger):
    result = CliRunner().invoke(
        cli,
        ["--log-level", "WARNING", "simulate", "--true-theta", "1.0", "--seed", "7", "--min-items", "5", "--max-items", "8"],
    )
    assert result.exit_code == 0, result.output
    assert "Final theta:" in result.output
    assert "Items:" in result.output


def test_simulate_rejects_invalid_bounds(restore_root_logger):
    result = CliRunner().invoke(
        cli,
        ["--log-level", "WARNING", "simulate", "--seed", "1", "--min-items", "9", "--max-items", "3"],
    )
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_synthetic_pool_deterministic():
    distribution = {"Spelling": 5, "Grammar": 5}
    first = build_synthetic_pool(distribution, items_per_category=4, seed=3)
    second = build_synthetic_pool(distribution, items_per_category=4, seed=3)

    assert first == second
    assert len(first) == 8
    assert {item.category for item in first} == {"Spelling", "Grammar"}
    assert all(0.1 <= item.c <= 0.3 and -3 <= item.b <= 3 for item in first)
