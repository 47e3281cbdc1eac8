"""Pytest configuration and shared fixtures for the adocflat test suite.

This module provides shared fixtures, test configuration, and utilities
that are used across the entire test suite.
"""

import os
from pathlib import Path
from typing import Callable

import pytest

# Configure Hypothesis for property-based testing
try:
    from hypothesis import Phase, Verbosity, settings

    settings.register_profile("ci", max_examples=100, verbosity=Verbosity.verbose)
    settings.register_profile("dev", max_examples=20)
    settings.register_profile(
        "debug", max_examples=10, verbosity=Verbosity.verbose, phases=[Phase.explicit, Phase.reuse, Phase.generate]
    )

    settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))
except ImportError:
    # Hypothesis not installed, skip configuration
    pass


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests - fast, isolated component tests")
    config.addinivalue_line("markers", "integration: Integration tests - component interaction tests")
    config.addinivalue_line("markers", "slow: Slow tests that may take several seconds")
    config.addinivalue_line("markers", "cli: Tests related to command-line interface")


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ADOCFLAT_* variables from the developer's shell out of the tests."""
    for key in list(os.environ):
        if key.startswith("ADOCFLAT_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def write_tree(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Provide a helper writing a mapping of relative path -> text below tmp_path.

    Returns
    -------
    Callable
        Function taking the file mapping and returning the root directory

    """

    def _write(files: dict[str, str]) -> Path:
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8", newline="")
        return tmp_path

    return _write


@pytest.fixture
def manual_tree(write_tree: Callable[[dict[str, str]], Path]) -> Path:
    """Provide a small multi-file manual with nested includes and cross-references.

    Returns
    -------
    Path
        Directory containing ``manual.adoc`` and its chapters

    """
    return write_tree(
        {
            "manual.adoc": (
                "= Manual\n"
                ":chapters: chapters\n"
                "\n"
                "include::{chapters}/intro.adoc[]\n"
                "include::{chapters}/usage.adoc[leveloffset=+1]\n"
            ),
            "chapters/intro.adoc": "[[intro]]\n== Introduction\nRead <<usage>> next.\n",
            "chapters/usage.adoc": "[[usage,Usage Guide]]\n= Usage\nBack to <<intro>>.\ninclude::snippets/run.txt[]\n",
            "chapters/snippets/run.txt": "----\n$ run [[not-an-anchor]]\n----\n",
        }
    )
