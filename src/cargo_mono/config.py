# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Configuration reader for cargo-mono.

Reads the optional ``cargo-mono.toml`` next to the workspace's root
``Cargo.toml`` and returns a validated :class:`CargoMonoConfig`. All keys
are flat and optional; a missing file means every default applies.

Validation Pipeline::

    cargo-mono.toml
    ┌─────────────────────┐
    │ publish_dealy = 10  │  ← typo!
    └─────────┬───────────┘
              │
              ▼
    ┌──────────────────┐     ┌──────────────────────────────┐
    │ 1. Unknown key   │────→│ CM-CONFIG-INVALID-KEY:       │
    │    detection     │     │ hint: "Did you mean          │
    └────────┬─────────┘     │       'publish_delay'?"      │
             │               └──────────────────────────────┘
             ▼
    ┌──────────────────┐     ┌──────────────────────────────┐
    │ 2. Type check    │────→│ CM-CONFIG-INVALID-VALUE:     │
    │    each value    │     │ 'publish_delay' must be ...  │
    └────────┬─────────┘     └──────────────────────────────┘
             │
             ▼
    ┌──────────────────┐
    │ CargoMonoConfig  │  ← frozen dataclass
    └──────────────────┘

Supported keys::

    registry_url           = "https://index.crates.io"  # sparse index root
    allow_not_found        = true      # unpublished crates count as 0.0.0
    wildcard_unpublishable = true      # a "*" requirement blocks publishing
    publish_delay          = 5.0       # seconds slept before each publish
    commit_message         = "Bump versions"
    http_pool_size         = 10
    http_timeout           = 30.0

Usage::

    from cargo_mono.config import load_config

    cfg = load_config(workspace.root)
    print(cfg.publish_delay)
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomlkit
import tomlkit.exceptions

from cargo_mono.errors import CargoMonoError, E
from cargo_mono.logging import get_logger

logger = get_logger(__name__)

CONFIG_FILENAME = 'cargo-mono.toml'

DEFAULT_REGISTRY_URL = 'https://index.crates.io'
DEFAULT_PUBLISH_DELAY = 5.0
DEFAULT_COMMIT_MESSAGE = 'Bump versions'


@dataclass(frozen=True)
class CargoMonoConfig:
    """Validated configuration for a cargo-mono run.

    Attributes:
        registry_url: Root of the crates.io sparse index.
        allow_not_found: Resolve crates with no registry entries to
            ``0.0.0`` instead of failing the lookup.
        wildcard_unpublishable: Treat crates with any ``"*"`` dependency
            requirement as unpublishable.
        publish_delay: Seconds to wait before each ``cargo publish``.
        commit_message: Message used by ``bump --git``.
        http_pool_size: Max connections for the httpx pool.
        http_timeout: Per-request timeout in seconds.
        config_path: The file the values were read from, if any.
    """

    registry_url: str = DEFAULT_REGISTRY_URL
    allow_not_found: bool = True
    wildcard_unpublishable: bool = True
    publish_delay: float = DEFAULT_PUBLISH_DELAY
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    http_pool_size: int = 10
    http_timeout: float = 30.0
    config_path: Path | None = None


_TYPE_MAP: dict[str, type | tuple[type, ...]] = {
    'registry_url': str,
    'allow_not_found': bool,
    'wildcard_unpublishable': bool,
    'publish_delay': (int, float),
    'commit_message': str,
    'http_pool_size': int,
    'http_timeout': (int, float),
}

VALID_KEYS: frozenset[str] = frozenset(_TYPE_MAP)


def _validate_value_type(key: str, value: Any) -> None:  # noqa: ANN401 - dynamic config values
    """Raise if a config value has the wrong type."""
    expected = _TYPE_MAP[key]
    # bool is an int subclass; keep `http_pool_size = true` out.
    if isinstance(value, bool) and expected is not bool:
        ok = False
    else:
        ok = isinstance(value, expected)
    if not ok:
        type_name = expected.__name__ if isinstance(expected, type) else ' or '.join(t.__name__ for t in expected)
        raise CargoMonoError(
            code=E.CONFIG_INVALID_VALUE,
            message=f"'{key}' must be {type_name}, got {type(value).__name__}",
            hint=f'Check the value of {key} in {CONFIG_FILENAME}.',
        )


def _validate_ranges(raw: dict[str, Any]) -> None:  # noqa: ANN401
    if raw.get('publish_delay', 0) < 0:
        raise CargoMonoError(
            code=E.CONFIG_INVALID_VALUE,
            message=f"'publish_delay' must not be negative, got {raw['publish_delay']}",
        )
    for key in ('http_pool_size', 'http_timeout'):
        if key in raw and raw[key] <= 0:
            raise CargoMonoError(
                code=E.CONFIG_INVALID_VALUE,
                message=f"'{key}' must be positive, got {raw[key]}",
            )


def load_config(workspace_root: Path, *, path: Path | None = None) -> CargoMonoConfig:
    """Load and validate ``cargo-mono.toml``.

    Args:
        workspace_root: Directory searched for ``cargo-mono.toml``.
        path: Explicit config file; must exist when given.

    Returns:
        A validated :class:`CargoMonoConfig`.

    Raises:
        CargoMonoError: If the file cannot be read or parsed, or holds
            unknown keys or values of the wrong type.
    """
    config_path = path or workspace_root / CONFIG_FILENAME

    if path is None and not config_path.is_file():
        logger.debug('no_config_file', path=str(config_path))
        return CargoMonoConfig()

    try:
        text = config_path.read_text(encoding='utf-8')
    except OSError as exc:
        raise CargoMonoError(
            code=E.CONFIG_PARSE_ERROR,
            message=f'Failed to read {config_path}: {exc}',
        ) from exc

    try:
        doc = tomlkit.parse(text)
    except tomlkit.exceptions.TOMLKitError as exc:
        raise CargoMonoError(
            code=E.CONFIG_PARSE_ERROR,
            message=f'Failed to parse {config_path}: {exc}',
        ) from exc

    raw: dict[str, Any] = dict(doc)  # noqa: ANN401

    for key in raw:
        if key not in VALID_KEYS:
            suggestion = difflib.get_close_matches(key, VALID_KEYS, n=1, cutoff=0.6)
            hint = f"Did you mean '{suggestion[0]}'?" if suggestion else f'Valid keys: {", ".join(sorted(VALID_KEYS))}'
            raise CargoMonoError(
                code=E.CONFIG_INVALID_KEY,
                message=f"Unknown key '{key}' in {config_path.name}",
                hint=hint,
            )

    for key, value in raw.items():
        _validate_value_type(key, value)
    _validate_ranges(raw)

    kwargs: dict[str, Any] = {key: value for key, value in raw.items()}  # noqa: ANN401
    for key in ('publish_delay', 'http_timeout'):
        if key in kwargs:
            kwargs[key] = float(kwargs[key])
    for key in ('registry_url', 'commit_message'):
        if key in kwargs:
            kwargs[key] = str(kwargs[key])
    if 'http_pool_size' in kwargs:
        kwargs['http_pool_size'] = int(kwargs['http_pool_size'])

    logger.debug('config_loaded', path=str(config_path), keys=sorted(kwargs))
    return CargoMonoConfig(**kwargs, config_path=config_path)


__all__ = [
    'CONFIG_FILENAME',
    'DEFAULT_COMMIT_MESSAGE',
    'DEFAULT_PUBLISH_DELAY',
    'DEFAULT_REGISTRY_URL',
    'VALID_KEYS',
    'CargoMonoConfig',
    'load_config',
]
