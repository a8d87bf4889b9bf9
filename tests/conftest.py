"""
Shared pytest fixtures for the repomigrate tests.

This module provides:
- Change fixtures (change, changes)
- Harness fixtures (harness, review_harness)
- Cache fixtures (directory_factory, fake_repository_factory)
- Tracing fixtures (mock_tracer)
"""

from __future__ import annotations

from pathlib import Path

import pytest

from repomigrate.cache.directories import DirectoryFactory
from repomigrate.models import Change
from repomigrate.observability import MockTracer
from repomigrate.testing import MigrationTestHarness, build_change, build_changes


# ============================================================================
# Change Fixtures
# ============================================================================


@pytest.fixture
def change() -> Change:
    """A single change carrying a Change-Id label."""
    return build_change("c1", change_id="I0000000000000000000000000000000000000001")


@pytest.fixture
def changes() -> list[Change]:
    """A linear history of three changes."""
    return build_changes("c1", "c2", "c3")


# ============================================================================
# Harness Fixtures
# ============================================================================


@pytest.fixture
def harness(tmp_path: Path) -> MigrationTestHarness:
    """In-memory collaborators without a review system."""
    return MigrationTestHarness(tmp_path / "work")


@pytest.fixture
def review_harness(tmp_path: Path) -> MigrationTestHarness:
    """In-memory collaborators with the review system wired in."""
    return MigrationTestHarness(tmp_path / "work", with_review=True)


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
def directory_factory(tmp_path: Path) -> DirectoryFactory:
    return DirectoryFactory(tmp_path / "cache-root")


class FakeRepository:
    """Repository double recording git operations without running git."""

    def __init__(self, git_dir: Path) -> None:
        self.git_dir = git_dir
        self.config: dict[str, str] = {}
        self.init_calls = 0

    async def init(self) -> None:
        self.init_calls += 1
        self.git_dir.mkdir(parents=True, exist_ok=True)
        (self.git_dir / "HEAD").write_text("ref: refs/heads/main\n")

    async def is_valid(self) -> bool:
        return (self.git_dir / "HEAD").is_file()

    async def set_config(self, key: str, value: str) -> None:
        self.config[key] = value
        (self.git_dir / "config").write_text(f"{key}={value}\n")


@pytest.fixture
def fake_repository_factory():
    """
    Factory building FakeRepository instances.

    The created repositories are exposed through ``factory.created``.
    """
    created: list[FakeRepository] = []

    def factory(git_dir: Path) -> FakeRepository:
        repository = FakeRepository(git_dir)
        created.append(repository)
        return repository

    factory.created = created
    return factory


# ============================================================================
# Tracing Fixtures
# ============================================================================


@pytest.fixture
def mock_tracer() -> MockTracer:
    return MockTracer()
