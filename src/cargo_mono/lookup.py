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

"""Batch lookup of published crate versions.

Every name is queried at once and the caller waits for all of them::

    names ──┬──▶ list_versions("a") ──┐
            ├──▶ list_versions("b") ──┼──▶ {"a": 0.3.1, "b": 1.2.0}
            └──▶ list_versions("c") ──┘        or one aggregated error

A single failing query fails the whole batch. The error message lists
every crate that failed together with its cause, and no partial map is
returned.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import semver

from cargo_mono.backends.registry import Registry
from cargo_mono.errors import CargoMonoError, E
from cargo_mono.logging import get_logger
from cargo_mono.versions import ZERO_VERSION, parse_version

logger = get_logger(__name__)


async def lookup_version(
    registry: Registry,
    name: str,
    *,
    allow_not_found: bool,
) -> semver.Version:
    """Return the highest published version of ``name``.

    Args:
        registry: Registry to query.
        name: Crate name.
        allow_not_found: Resolve a crate without entries to ``0.0.0``.

    Raises:
        CargoMonoError: If the query fails, an entry is not a valid
            version, or the crate is absent and ``allow_not_found`` is off.
    """
    raw = await registry.list_versions(name)
    if not raw:
        if allow_not_found:
            logger.debug('crate_not_published', crate=name, assumed=str(ZERO_VERSION))
            return ZERO_VERSION
        raise CargoMonoError(
            code=E.REGISTRY_LOOKUP_FAILED,
            message=f"Crate '{name}' has no published versions",
            hint=(
                'Pass --allow-not-found or set allow_not_found = true in cargo-mono.toml '
                'to treat unpublished crates as 0.0.0.'
            ),
        )
    try:
        return max(parse_version(v) for v in raw)
    except CargoMonoError as exc:
        raise CargoMonoError(
            code=E.REGISTRY_LOOKUP_FAILED,
            message=f"Registry lists an invalid version for '{name}': {exc.info.message}",
        ) from exc


async def lookup_versions(
    registry: Registry,
    names: Iterable[str],
    *,
    allow_not_found: bool,
) -> dict[str, semver.Version]:
    """Look up the published version of every name concurrently.

    Args:
        registry: Registry to query.
        names: Crate names; duplicates are queried once.
        allow_not_found: Resolve crates without entries to ``0.0.0``.

    Returns:
        Mapping of crate name to its highest published version.

    Raises:
        CargoMonoError: ``REGISTRY_LOOKUP_FAILED`` aggregating every
            per-crate failure, if any query failed.
    """
    unique = sorted(set(names))
    results = await asyncio.gather(
        *(lookup_version(registry, name, allow_not_found=allow_not_found) for name in unique),
        return_exceptions=True,
    )

    versions: dict[str, semver.Version] = {}
    failures: list[str] = []
    for name, result in zip(unique, results, strict=True):
        if isinstance(result, CargoMonoError):
            failures.append(f'{name}: {result.info.message}')
        elif isinstance(result, Exception):
            failures.append(f'{name}: {result!r}')
        elif isinstance(result, BaseException):
            raise result
        else:
            versions[name] = result

    if failures:
        logger.error('registry_lookup_failed', failed=len(failures), total=len(unique))
        raise CargoMonoError(
            code=E.REGISTRY_LOOKUP_FAILED,
            message='Failed to get the published version of crates:\n  ' + '\n  '.join(failures),
        )

    logger.debug('registry_lookup_complete', crates=len(versions))
    return versions


__all__ = [
    'lookup_version',
    'lookup_versions',
]
