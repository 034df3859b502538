"""
Kernel settings (``gym_kernel.config``).

Responsibility
--------------
Loads ``KernelSettings`` from an optional YAML file and ``GYM_KERNEL_*``
environment variables.  Environment values win over the file; the file
wins over the defaults.

Failure modes
-------------
* Missing YAML file given explicitly  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or an unknown execution mode  -> ``ValueError``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from gym_kernel.domain.identifiers import SYSTEM_ACTOR_ID

ENV_PREFIX = "GYM_KERNEL_"
CONFIG_PATH_ENV = f"{ENV_PREFIX}CONFIG"
EXECUTION_MODES = ("auto", "atomic", "sequential")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class KernelSettings:
    database_url: str = "sqlite:///gym_kernel.db"
    echo: bool = False
    execution_mode: str = "auto"
    require_atomic: bool = False
    log_level: str = "INFO"
    default_actor_id: UUID = SYSTEM_ACTOR_ID

    def __post_init__(self) -> None:
        if self.execution_mode not in EXECUTION_MODES:
            raise ValueError(
                f"execution_mode must be one of {EXECUTION_MODES}, got {self.execution_mode!r}"
            )


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"{key} must be a boolean, got {value!r}")


def _coerce(key: str, value: Any) -> Any:
    if key in ("echo", "require_atomic"):
        return _parse_bool(key, value)
    if key == "default_actor_id":
        return value if isinstance(value, UUID) else UUID(str(value))
    if key == "log_level":
        return str(value).upper()
    return str(value)


def settings_from_mapping(data: Mapping[str, Any], base: KernelSettings | None = None) -> KernelSettings:
    """Overlay ``data`` on ``base`` (or the defaults)."""
    known = {f.name for f in fields(KernelSettings)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown settings: {sorted(unknown)}")
    changes = {key: _coerce(key, value) for key, value in data.items() if value is not None}
    return replace(base or KernelSettings(), **changes)


def load_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    # Allow the settings to live under a top-level "gym_kernel" key
    return data.get("gym_kernel", data)


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    env = os.environ if environ is None else environ
    overrides: dict[str, str] = {}
    for f in fields(KernelSettings):
        value = env.get(f"{ENV_PREFIX}{f.name.upper()}")
        if value is not None:
            overrides[f.name] = value
    return overrides


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> KernelSettings:
    """
    Resolve settings from defaults, YAML file and environment.

    The file is ``path`` if given, else ``$GYM_KERNEL_CONFIG`` if set.
    """
    env = os.environ if environ is None else environ
    settings = KernelSettings()
    config_path = path or env.get(CONFIG_PATH_ENV)
    if config_path:
        settings = settings_from_mapping(load_yaml(Path(config_path)), settings)
    return settings_from_mapping(env_overrides(env), settings)
