"""Configuration loading helpers for dub-timeline."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from copy import deepcopy
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

import yaml
from jsonschema import Draft7Validator

__all__ = ["ConfigError", "load_config"]

PROJECT_ROOT = Path(__file__).resolve().parents[3]
CONFIG_DIR = PROJECT_ROOT / "configs"
SCHEMA_PATH = Path(__file__).with_name("schema.json")
ENV_PREFIX = "DUB_TIMELINE_"
ENV_SEPARATOR = "__"


class ConfigError(RuntimeError):
    """Raised when configuration loading or validation fails."""


def load_config(
    env: str = "dev",
    *,
    config_dir: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    validate: bool = True,
) -> dict[str, Any]:
    """Load the ``logging`` and ``timeline`` settings for ``env``.

    Layers, later ones winning:
        1. ``configs/{env}.yaml`` (or ``.yml``) under ``config_dir``.
        2. The ``overrides`` mapping.
        3. ``DUB_TIMELINE_*`` variables from ``environ`` (``os.environ`` by default), with
           ``__`` separating nested keys: ``DUB_TIMELINE_TIMELINE__MAX_WORKERS=4``.

    Values from the environment are parsed as YAML scalars, so ``48000`` becomes an int and
    ``null`` becomes ``None``.
    """

    base_dir = Path(config_dir) if config_dir is not None else CONFIG_DIR
    config = _read_yaml(_find_config_file(base_dir, env))

    for layer in (overrides, _env_overrides(os.environ if environ is None else environ)):
        if layer:
            config = _deep_merge(config, layer)

    if validate:
        _validate_config(config)
    return config


def _find_config_file(base_dir: Path, env: str) -> Path:
    for suffix in (".yaml", ".yml"):
        candidate = base_dir / f"{env}{suffix}"
        if candidate.exists():
            return candidate
    raise FileNotFoundError(f"Configuration file not found for environment '{env}' in {base_dir}.")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse YAML configuration {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping in {path}.")
    return data


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge two mappings without mutating either."""
    result: dict[str, Any] = deepcopy(dict(base))
    for key, value in overrides.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(current, value)
        else:
            result[key] = deepcopy(value)
    return result


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Build a nested override mapping from ``DUB_TIMELINE_*`` variables."""
    overrides: dict[str, Any] = {}
    for name, raw_value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        keys = [
            token.strip().lower().replace("-", "_")
            for token in name[len(ENV_PREFIX) :].split(ENV_SEPARATOR)
            if token.strip()
        ]
        if not keys:
            continue

        node = overrides
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = node[key] = {}
            node = child
        node[keys[-1]] = _parse_env_value(raw_value)
    return overrides


def _parse_env_value(raw_value: str) -> Any:
    if raw_value == "":
        return ""
    try:
        return yaml.safe_load(raw_value)
    except yaml.YAMLError:
        return raw_value


@lru_cache(maxsize=1)
def _schema() -> dict[str, Any]:
    data = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ConfigError("Configuration schema must be a JSON object.")
    return cast(dict[str, Any], data)


def _validate_config(config: Mapping[str, Any]) -> None:
    errors = sorted(
        Draft7Validator(_schema()).iter_errors(config), key=lambda err: list(err.path)
    )
    if not errors:
        return

    lines = []
    for error in errors:
        path = ".".join(str(piece) for piece in error.path) or "<root>"
        lines.append(f"- {path}: {error.message}")
    raise ConfigError("Configuration validation failed:\n" + "\n".join(lines)) from errors[0]
