"""Pytest configuration and fixtures."""

import os

# Set before any refinery import caches settings
os.environ["REFINERY_ENV"] = "test"
os.environ["TEXT_GENERATION_PROVIDER"] = "mock"

import pytest  # noqa: E402

from refinery.core.altitude_blueprint import create_altitude_template  # noqa: E402
from refinery.core.config import get_settings  # noqa: E402
from refinery.core.layer_sequence import create_template_from_blueprint  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["REFINERY_ENV"] = "test"
    os.environ["TEXT_GENERATION_PROVIDER"] = "mock"
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def business_blueprint() -> dict:
    """Three-layer blueprint A -> B -> C with C as the output layer."""
    return {
        "name": "Venture Template",
        "description": "Shape a venture idea",
        "layers": [
            {
                "id": "A",
                "name": "Intent",
                "description": "What the user wants",
                "focus": "Clarify the business goal",
                "questions": ["What business do you want to start?", "Why now?"],
                "transition": "Moving from intent to shape",
            },
            {
                "id": "B",
                "name": "Shape",
                "description": "What the venture looks like",
                "focus": "Choose the venture model",
                "questions": ["Who are your customers?", "How will you charge?"],
                "transition": "Moving from shape to output",
                "vocabulary": {
                    "branchRules": [
                        {"label": "Venture Type", "value": "Business", "triggers": ["business", "company"]},
                    ],
                },
            },
            {
                "id": "C",
                "name": "Plan",
                "description": "The final plan",
                "focus": "Summarise the plan",
            },
        ],
        "outputFormat": {
            "type": "json",
            "structure": {
                "intent": {"type": "layer_data", "layerId": "A"},
                "shape": {"type": "layer_data", "layerId": "B"},
            },
        },
    }


@pytest.fixture
def business_template(business_blueprint):
    return create_template_from_blueprint(business_blueprint)


@pytest.fixture
def altitude_template():
    return create_altitude_template()
