"""Pytest configuration and fixtures for integration tests.

These tests call the real Gemini API. They are skipped unless a real
GEMINI_API_KEY is available (environment or .env in the project root).
Persistence always uses a temporary SQLite database.
"""

import os

import pytest

from smartchef.gateway.gateway import GenerationGateway


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "integration" in item.path.parts:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="session", autouse=True)
def check_api_keys():
    """Skip the integration session when no real GEMINI_API_KEY is configured."""
    gemini_key = os.getenv("GEMINI_API_KEY")
    if not gemini_key or gemini_key == "test-api-key":
        pytest.skip(
            "Integration tests skipped. Missing API key: GEMINI_API_KEY. Please set it in your .env file.",
            allow_module_level=True,
        )


@pytest.fixture
def gateway():
    return GenerationGateway()
