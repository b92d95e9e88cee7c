"""Pytest configuration and fixtures."""

from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.rules.engine import RulesEngine
from app.rules.models import InputRecord
from app.rules.resolver import RulesetRegistry

OVERLAY_FILES = ["overlay-c1.yaml", "overlay-c2.yaml"]


def make_record(
    a: bool = True,
    b: bool = True,
    c: bool = True,
    d: float = 4.7,
    e: int = 5,
    f: int = 2,
    selector: str = "B",
) -> InputRecord:
    """Build an input record, defaulting to the sample request."""
    return InputRecord(a=a, b=b, c=c, d=d, e=e, f=f, selector=selector)


@pytest.fixture(scope="session")
def registry() -> RulesetRegistry:
    """Registry built from the shipped ruleset files."""
    return RulesetRegistry.from_files("base.yaml", OVERLAY_FILES)


@pytest.fixture
def engine(registry: RulesetRegistry) -> RulesEngine:
    """Engine over the shipped rulesets."""
    return RulesEngine(registry)


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create FastAPI test client."""
    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def write_ruleset(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a ruleset file into a temporary rulesets directory."""

    def _write(filename: str, content: str) -> Path:
        path = tmp_path / filename
        path.write_text(content, encoding="utf-8")
        return path

    return _write
