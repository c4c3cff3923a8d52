"""Pytest configuration and fixtures."""

import logging
from collections.abc import Iterator
from datetime import date

import pytest

from loanbook.store import PortfolioStore


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    """Undo handler changes made by setup_logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    package_level = logging.getLogger("loanbook").level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("loanbook").setLevel(package_level)


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def today() -> date:
    """Fixed reference date used as the store clock."""
    return date(2024, 3, 20)


@pytest.fixture
def store(today: date) -> PortfolioStore:
    """Fresh in-memory store whose clock is pinned to ``today``."""
    return PortfolioStore(clock=lambda: today)
