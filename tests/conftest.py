"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402


FIXED_NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings():
    """Settings with defaults only (no .env or environment overrides)."""
    return Settings(_env_file=None)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def make_session(settings, rng):
    """Factory for sessions with a seeded generator and fixed clock."""
    from quizzer.session import QuizSession

    def _make(**kwargs):
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("rng", rng)
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        return QuizSession(**kwargs)

    return _make


@pytest.fixture
def mc_question():
    return {
        "id": "mc-1",
        "type": "multiple-choice",
        "question": "Which layer of the OSI model handles routing?",
        "options": ["Physical", "Data Link", "Network", "Transport"],
        "correct": 2,
        "explanation": "Routing happens at layer 3.",
        "tags": ["networking"],
    }


@pytest.fixture
def numeric_question():
    return {
        "id": "num-1",
        "type": "numeric-input",
        "question": "How many hosts fit in a /19?",
        "answer": 5000,
        "tolerance": 0.01,
        "unit": "hosts",
        "explanation": "Roughly 8K addresses.",
    }


@pytest.fixture
def ordering_question():
    return {
        "id": "ord-1",
        "type": "ordering",
        "question": "Order the TCP handshake",
        "items": ["SYN", "SYN-ACK", "ACK"],
        "correctOrder": [0, 1, 2],
        "explanation": "SYN first.",
    }


@pytest.fixture
def multi_select_question():
    return {
        "id": "ms-1",
        "type": "multi-select",
        "question": "Which are routing protocols?",
        "options": ["OSPF", "HTTP", "BGP", "SMTP"],
        "correctIndices": [0, 2],
        "explanation": "OSPF and BGP route.",
        "tags": ["networking", "routing"],
    }


@pytest.fixture
def two_stage_question():
    return {
        "id": "ts-1",
        "type": "two-stage",
        "references": [{"title": "RFC 791"}],
        "stages": [
            {
                "question": "Which protocol delivers packets?",
                "options": ["IP", "ARP"],
                "correct": 0,
                "explanation": "IP delivers.",
            },
            {
                "question": "Which layer does it live in?",
                "options": ["Layer 2", "Layer 3"],
                "correct": 1,
                "explanation": "Network layer.",
            },
        ],
    }
