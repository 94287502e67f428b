"""Global pytest fixtures for deterministic test environment."""

from __future__ import annotations

import pytest

from chat_gateway.providers import PROVIDER_DEFAULTS


@pytest.fixture(autouse=True)
def _isolate_provider_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear provider API keys that can leak into tests on developer machines."""
    for defaults in PROVIDER_DEFAULTS.values():
        if defaults.get("env_key"):
            monkeypatch.delenv(defaults["env_key"], raising=False)
