from __future__ import annotations

import pytest

PROVIDER_ENV = (
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_BASE_URL",
    "DEEPSEEK_API_KEY",
    "DEEPSEEK_API_BASE_URL",
    "DEEPSEEK_MODELS",
    "SOURCE_TEXT_BUDGET",
)


@pytest.fixture(autouse=True)
def _isolated_provider_env(monkeypatch: pytest.MonkeyPatch):
    """Keep real credentials in the developer's shell out of the tests."""
    for key in PROVIDER_ENV:
        monkeypatch.delenv(key, raising=False)
    yield
