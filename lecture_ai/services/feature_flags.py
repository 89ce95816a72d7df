from __future__ import annotations

from typing import Any

from lecture_ai.services.store import ArtifactStore

_TRUTHY = (True, "true", "1", 1)


def _flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return value in _TRUTHY


class FeatureFlags:
    """
    Reads the ai_config table on every call so admins can flip switches
    without a restart.

    features_enabled is the master switch; summary_enabled / quiz_enabled
    default to on when unset.
    """

    def __init__(self, store: ArtifactStore, fallback_enabled: bool = True) -> None:
        self._store = store
        self._fallback_enabled = fallback_enabled

    def features_enabled(self) -> bool:
        return _flag(self._store.get_config("features_enabled"), self._fallback_enabled)

    def is_enabled(self, kind: str) -> bool:
        if not self.features_enabled():
            return False
        if kind == "cumulative_quiz":
            kind = "quiz"
        return _flag(self._store.get_config(f"{kind}_enabled"), True)

    def default_model(self) -> str | None:
        value = self._store.get_config("default_model")
        return str(value) if value else None

    def snapshot(self) -> dict[str, Any]:
        return {
            "features_enabled": self.features_enabled(),
            "summary_enabled": self.is_enabled("summary"),
            "quiz_enabled": self.is_enabled("quiz"),
            "default_model": self.default_model(),
        }
