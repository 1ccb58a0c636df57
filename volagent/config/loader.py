"""Environment aware configuration loader for the volatility agent."""

from __future__ import annotations

import copy
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SETTINGS: Dict[str, Any] = {
    "watchlists": {
        "default": ["TQQQ", "SQQQ", "SPY", "QQQ", "IWM", "DIA"],
    },
    "adapter": {
        "provider": "mock",
        "fallback": ["mock"],
        "settings": {},
    },
    "mock": {
        "seed": None,
        "history_length": 50,
        "iv_history_length": 252,
    },
    "massive": {
        "base_url": "https://api.massive.com",
        "ttls": {"default": 15.0, "market": 8.0, "options": 30.0, "reference": 60.0},
        "retries": 2,
        "base_delay": 0.1,
    },
    "refresh": {
        "interval_seconds": 30,
    },
}

CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"
ENVIRONMENT_VARIABLE = "APP_ENV"


class AdapterSettings(BaseModel):
    provider: str = "mock"
    fallback: List[str] = Field(default_factory=lambda: ["mock"])
    settings: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @field_validator("provider")
    @classmethod
    def _normalize_provider(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("fallback", mode="before")
    @classmethod
    def _coerce_fallback(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(item).strip().lower() for item in value]

    def settings_for(self, provider: str) -> Dict[str, Any]:
        return dict(self.settings.get(provider, {}) or {})


class MockSettings(BaseModel):
    seed: Optional[int] = None
    history_length: int = Field(default=50, gt=0)
    iv_history_length: int = Field(default=252, ge=0)


class MassiveTTLSettings(BaseModel):
    default: float = 15.0
    market: float = 8.0
    options: float = 30.0
    reference: float = 60.0


class MassiveSettings(BaseModel):
    base_url: str = "https://api.massive.com"
    ttls: MassiveTTLSettings = Field(default_factory=MassiveTTLSettings)
    retries: int = Field(default=2, ge=0)
    base_delay: float = Field(default=0.1, ge=0)


class RefreshSettings(BaseModel):
    interval_seconds: float = Field(default=30, gt=0)


class AppSettings(BaseModel):
    """Fully resolved application settings loaded from YAML."""

    model_config = ConfigDict(frozen=True)

    env: str
    watchlists: Dict[str, List[str]]
    adapter: AdapterSettings
    mock: MockSettings
    massive: MassiveSettings
    refresh: RefreshSettings

    @field_validator("env")
    @classmethod
    def _normalize_env(cls, value: str) -> str:
        return value.lower()

    @field_validator("watchlists", mode="before")
    @classmethod
    def _coerce_watchlists(cls, value: Mapping[str, Any]) -> Dict[str, List[str]]:
        return {key: [str(symbol).upper() for symbol in items or []] for key, items in dict(value or {}).items()}

    def get_watchlist(self, name: str = "default") -> List[str]:
        return list(self.watchlists.get(name, []))


def _deep_merge(base: MutableMapping[str, Any], overrides: Mapping[str, Any]) -> MutableMapping[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, Mapping):
            existing = base.get(key)
            if isinstance(existing, MutableMapping):
                base[key] = _deep_merge(copy.deepcopy(existing), value)
            else:
                base[key] = copy.deepcopy(value)
        else:
            base[key] = copy.deepcopy(value)
    return base


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping at the root.")
    return data


def _build_settings(env: str, config_dir: Path) -> AppSettings:
    config_path = config_dir / f"{env}.yaml"
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file for environment '{env}' not found at {config_path}")

    merged = _deep_merge(copy.deepcopy(DEFAULT_SETTINGS), _load_yaml(config_path))
    merged["env"] = env
    return AppSettings.model_validate(merged)


@lru_cache(maxsize=None)
def _cached_settings(env: str, config_dir: Path) -> AppSettings:
    return _build_settings(env, config_dir)


def get_settings(env: Optional[str] = None, config_dir: Optional[Path] = None) -> AppSettings:
    """Load settings for the requested environment (default: APP_ENV or 'dev')."""

    resolved_env = (env or os.getenv(ENVIRONMENT_VARIABLE, "dev")).strip().lower()
    return _cached_settings(resolved_env, Path(config_dir) if config_dir else CONFIG_DIR)


def reset_settings_cache() -> None:
    """Clear the cached settings, primarily used during tests."""

    _cached_settings.cache_clear()


__all__ = [
    "AdapterSettings",
    "AppSettings",
    "CONFIG_DIR",
    "MassiveSettings",
    "MassiveTTLSettings",
    "MockSettings",
    "RefreshSettings",
    "get_settings",
    "reset_settings_cache",
]
