"""Shared pytest configuration.

Configuration is validated when ``smartchef.utils.config`` is first imported, so
.env is loaded and a placeholder API key is seeded before any test module is
collected. Unit tests never reach the network; integration tests skip
themselves without a real key.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

PLACEHOLDER_API_KEY = "test-api-key"


def pytest_configure(config):
    load_dotenv(Path(__file__).parent.parent / ".env")
    os.environ.setdefault("GEMINI_API_KEY", PLACEHOLDER_API_KEY)
    os.environ.setdefault("LOG_LEVEL", "WARNING")
    os.environ["ENABLE_TRACING"] = "false"
