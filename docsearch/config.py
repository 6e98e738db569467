"""Persistent JSON config helpers.

Stores build and query defaults: strict/lenient building, partition scheme,
match mode, result limit, loader pool size, and the highlight style.
All access is defensive: malformed or missing config falls back safely.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path

from platformdirs import user_config_dir

from .index.partition import SCHEME_ALPHA, SCHEMES
from .search.matching import MATCH_MODES, MATCH_SUBSTRING
from .search.runtime import DEFAULT_LOAD_WORKERS

APP_NAME = "docsearch"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH
DEFAULT_STYLE = "monokai"


@dataclass(frozen=True)
class Settings:
    strict: bool = True
    scheme: str = SCHEME_ALPHA
    shard_count: int | None = None
    match_mode: str = MATCH_SUBSTRING
    result_limit: int | None = None
    load_workers: int = DEFAULT_LOAD_WORKERS
    style: str = DEFAULT_STYLE


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON."""
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def _coerce_positive_int(value: object) -> int | None:
    """Booleans, non-integers, and values below one are treated as unset."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def _coerce_choice(value: object, choices: tuple[str, ...], default: str) -> str:
    if not isinstance(value, str):
        return default
    stripped = value.strip().lower()
    return stripped if stripped in choices else default


def settings_from_mapping(data: dict[str, object]) -> Settings:
    """Build ``Settings`` from a decoded config object, defaulting every invalid field."""
    defaults = Settings()

    strict = data.get("strict")
    scheme = _coerce_choice(data.get("scheme"), SCHEMES, defaults.scheme)
    shard_count = _coerce_positive_int(data.get("shard_count")) if scheme != SCHEME_ALPHA else None
    style = data.get("style")
    return Settings(
        strict=strict if isinstance(strict, bool) else defaults.strict,
        scheme=scheme,
        shard_count=shard_count,
        match_mode=_coerce_choice(data.get("match_mode"), MATCH_MODES, defaults.match_mode),
        result_limit=_coerce_positive_int(data.get("result_limit")),
        load_workers=_coerce_positive_int(data.get("load_workers")) or defaults.load_workers,
        style=style.strip() if isinstance(style, str) and style.strip() else defaults.style,
    )


def load_settings() -> Settings:
    return settings_from_mapping(load_config())


def save_settings(settings: Settings) -> None:
    """Merge ``settings`` into the persisted config, keeping unrelated keys."""
    config = load_config()
    config.update(asdict(settings))
    save_config(config)


SETTING_KEYS: tuple[str, ...] = tuple(item.name for item in fields(Settings))
_BOOL_WORDS = {"true": True, "yes": True, "on": True, "1": True, "false": False, "no": False, "off": False, "0": False}
_INT_KEYS = ("shard_count", "result_limit", "load_workers")
_NULLABLE_KEYS = ("shard_count", "result_limit")


def _parse_setting_text(key: str, text: str) -> object:
    stripped = text.strip()
    if key == "strict":
        try:
            return _BOOL_WORDS[stripped.lower()]
        except KeyError:
            raise ValueError(f"{key} expects true or false, got {text!r}") from None
    if key in _INT_KEYS:
        if key in _NULLABLE_KEYS and stripped.lower() in ("none", "null", ""):
            return None
        try:
            return int(stripped)
        except ValueError:
            raise ValueError(f"{key} expects an integer, got {text!r}") from None
    if key in ("scheme", "match_mode"):
        return stripped.lower()
    return stripped


def update_setting(settings: Settings, key: str, text: str) -> Settings:
    """Return ``settings`` with ``key`` set from command-line ``text``.

    Raises ``ValueError`` for unknown keys and for values that the defensive
    loader would discard.
    """
    if key not in SETTING_KEYS:
        raise ValueError(f"unknown setting {key!r}; expected one of: {', '.join(SETTING_KEYS)}")
    value = _parse_setting_text(key, text)
    data: dict[str, object] = asdict(settings)
    data[key] = value
    updated = settings_from_mapping(data)
    if getattr(updated, key) != value:
        raise ValueError(f"invalid value for {key}: {text!r}")
    return updated


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "DEFAULT_CONFIG_PATH",
    "SETTING_KEYS",
    "Settings",
    "load_config",
    "load_settings",
    "save_config",
    "save_settings",
    "settings_from_mapping",
    "update_setting",
]
