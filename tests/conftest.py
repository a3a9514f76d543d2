"""
Pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def seeded_config():
    """Run configuration with a fixed seed for `?`."""
    from fungesim.core import RunConfig
    return RunConfig(random_seed=42, tick_limit=10_000)


@pytest.fixture
def make_scheduler(seeded_config):
    """Factory: program text (+ optional config overrides) -> Scheduler."""
    from fungesim.core import RunConfig, Scheduler

    def _make(text: str, **overrides):
        if overrides:
            params = {
                "extend_bounds": seeded_config.extend_bounds,
                "random_seed": seeded_config.random_seed,
                "tick_limit": seeded_config.tick_limit,
                "unknown_policy": seeded_config.unknown_policy,
            }
            params.update(overrides)
            config = RunConfig(**params)
        else:
            config = seeded_config
        return Scheduler.from_source(text, config=config)

    return _make


@pytest.fixture
def run_program(make_scheduler):
    """Factory: run program text to completion and return the scheduler."""

    def _run(text: str, max_ticks: int = 1_000, **overrides):
        scheduler = make_scheduler(text, **overrides)
        scheduler.run(max_ticks=max_ticks)
        return scheduler

    return _run


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(seed=42)
