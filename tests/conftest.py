"""
Pytest configuration and shared fixtures for all java2igcse tests.

The conversion driver is stateless (every call builds its own reporter,
context and renumberer), so one instance is shared by the whole session.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))
from java2igcse.compiler.driver import ConversionDriver, ConversionOptions
from java2igcse.passes.base import ConversionContext
from java2igcse.shared.errors import DiagnosticReporter


# =============================================================================
# Session-scoped fixtures (shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def session_converter():
    """
    Session-scoped converter shared across ALL tests.

    Safe to share: the driver only holds its options, and the lark grammar
    is compiled once per process.
    """
    return ConversionDriver()


@pytest.fixture(scope="session")
def session_quiet_converter():
    """Converter that leaves explanatory comments out of the pseudocode."""
    return ConversionDriver(ConversionOptions(include_comments=False))


# =============================================================================
# Module- and class-scoped fixtures
# =============================================================================

@pytest.fixture(scope="module")
def module_converter(session_converter):
    """Module-scoped converter - returns the session converter."""
    return session_converter


@pytest.fixture(scope="class")
def class_converter(session_converter):
    """Class-scoped converter - returns the session converter."""
    return session_converter


@pytest.fixture(scope="class")
def converter(session_converter):
    """Class-scoped converter - shared across all tests in a class."""
    return session_converter


# =============================================================================
# Function-scoped fixtures (one per test)
# =============================================================================

@pytest.fixture
def reporter():
    """Fresh diagnostics sink."""
    return DiagnosticReporter()


@pytest.fixture
def java_context(reporter):
    """Fresh Java conversion context reporting into ``reporter``."""
    return ConversionContext("java", reporter)


@pytest.fixture
def typescript_context(reporter):
    """Fresh TypeScript conversion context reporting into ``reporter``."""
    return ConversionContext("typescript", reporter)


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers for test organization."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
