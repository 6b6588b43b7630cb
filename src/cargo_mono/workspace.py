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

"""Cargo workspace model and discovery.

The workspace shape comes from ``cargo metadata --no-deps``, which already
resolves member globs, inherited ``workspace = true`` fields and renamed
dependencies. Only workspace members are kept, sorted by name.

Key Concepts (ELI5)::

    ┌─────────────────────────┬────────────────────────────────────────────┐
    │ Concept                 │ ELI5 Explanation                           │
    ├─────────────────────────┼────────────────────────────────────────────┤
    │ Package                 │ One crate in the workspace: its name,      │
    │                         │ version, Cargo.toml path and what it uses. │
    ├─────────────────────────┼────────────────────────────────────────────┤
    │ Dependency              │ One line of a [dependencies] table, with   │
    │                         │ its kind (normal, dev or build).           │
    ├─────────────────────────┼────────────────────────────────────────────┤
    │ can_publish()           │ Is this crate allowed on crates.io at all? │
    │                         │ ``publish = false`` or a ``"*"`` dep says  │
    │                         │ no.                                        │
    └─────────────────────────┴────────────────────────────────────────────┘

Usage::

    from cargo_mono.workspace import can_publish, load_workspace

    workspace = await load_workspace(Path('.'))
    for pkg in workspace.packages:
        print(pkg.name, pkg.version, can_publish(pkg))
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import semver

from cargo_mono.backends._run import run_command
from cargo_mono.errors import CargoMonoError, E
from cargo_mono.logging import get_logger
from cargo_mono.versions import parse_version

logger = get_logger(__name__)

#: Requirement string Cargo reports for a dependency with no version.
WILDCARD_REQ = '*'


class DependencyKind(str, Enum):
    """Which dependency table an entry was declared in."""

    NORMAL = 'normal'
    DEV = 'dev'
    BUILD = 'build'


@dataclass(frozen=True)
class Dependency:
    """A declared dependency of a workspace package.

    Attributes:
        name: Name of the depended-on crate (after ``package = ...``
            renames are resolved).
        req: Version requirement string, ``"*"`` when none was given.
        kind: The dependency table the entry came from.
        path: Local path for path dependencies, otherwise ``None``.
    """

    name: str
    req: str = WILDCARD_REQ
    kind: DependencyKind = DependencyKind.NORMAL
    path: Path | None = None


@dataclass(frozen=True)
class Package:
    """A crate that is a member of the workspace.

    Attributes:
        name: Crate name, unique within the workspace.
        version: Local version from the manifest.
        manifest_path: Path to the crate's ``Cargo.toml``.
        publish: Registries the crate may be published to. ``None``
            means unrestricted; an empty tuple is ``publish = false``.
        dependencies: Declared dependencies in manifest order.
    """

    name: str
    version: semver.Version
    manifest_path: Path
    publish: tuple[str, ...] | None = None
    dependencies: tuple[Dependency, ...] = ()

    def depends_on(self, name: str) -> bool:
        """Return ``True`` if any dependency table names ``name``."""
        return any(dep.name == name for dep in self.dependencies)


@dataclass(frozen=True)
class Workspace:
    """The packages of one Cargo workspace.

    Attributes:
        root: The workspace root directory.
        packages: Member packages sorted by name.
    """

    root: Path
    packages: list[Package] = field(default_factory=list)

    def get(self, name: str) -> Package:
        """Return the member named ``name``.

        Raises:
            CargoMonoError: If no member has that name.
        """
        for pkg in self.packages:
            if pkg.name == name:
                return pkg
        raise CargoMonoError(
            code=E.WORKSPACE_PACKAGE_NOT_FOUND,
            message=f"Package '{name}' is not a member of the workspace at {self.root}",
            hint=f'Members: {", ".join(p.name for p in self.packages) or "(none)"}',
        )


def can_publish(package: Package, *, wildcard_unpublishable: bool = True) -> bool:
    """Decide whether ``package`` is a candidate for bumping and publishing.

    Args:
        package: The package to check.
        wildcard_unpublishable: Treat any ``"*"`` requirement as a sign
            the crate is not ready for release.

    Returns:
        ``False`` for ``publish = false`` crates and, when enabled, for
        crates with wildcard requirements. ``True`` otherwise.
    """
    if package.publish is not None and not package.publish:
        return False
    if wildcard_unpublishable and any(dep.req == WILDCARD_REQ for dep in package.dependencies):
        return False
    return True


def _parse_dependency(raw: dict[str, Any]) -> Dependency:  # noqa: ANN401 - cargo metadata JSON
    kind = raw.get('kind') or DependencyKind.NORMAL.value
    path = raw.get('path')
    return Dependency(
        name=raw['name'],
        req=raw.get('req') or WILDCARD_REQ,
        kind=DependencyKind(kind),
        path=Path(path) if path else None,
    )


def _parse_package(raw: dict[str, Any]) -> Package:  # noqa: ANN401 - cargo metadata JSON
    publish = raw.get('publish')
    return Package(
        name=raw['name'],
        version=parse_version(raw['version']),
        manifest_path=Path(raw['manifest_path']),
        publish=tuple(publish) if publish is not None else None,
        dependencies=tuple(_parse_dependency(d) for d in raw.get('dependencies', [])),
    )


def parse_metadata(data: dict[str, Any]) -> Workspace:  # noqa: ANN401 - cargo metadata JSON
    """Build a :class:`Workspace` from decoded ``cargo metadata`` output.

    Raises:
        CargoMonoError: If the document lacks the expected fields.
    """
    try:
        members = set(data['workspace_members'])
        packages = [_parse_package(p) for p in data['packages'] if p['id'] in members]
        root = Path(data['workspace_root'])
    except (KeyError, TypeError, ValueError) as exc:
        raise CargoMonoError(
            code=E.WORKSPACE_METADATA_FAILED,
            message=f'Unexpected `cargo metadata` output: {exc!r}',
        ) from exc

    packages.sort(key=lambda p: p.name)
    logger.debug('workspace_loaded', root=str(root), packages=len(packages))
    return Workspace(root=root, packages=packages)


async def load_workspace(cwd: Path | None = None) -> Workspace:
    """Run ``cargo metadata`` in ``cwd`` and return the workspace.

    Raises:
        CargoMonoError: If cargo cannot be run, fails, or prints
            something that is not metadata JSON.
    """
    cmd = ['cargo', 'metadata', '--no-deps', '--format-version', '1']
    try:
        result = await asyncio.to_thread(run_command, cmd, cwd=cwd)
    except OSError as exc:
        raise CargoMonoError(
            code=E.WORKSPACE_METADATA_FAILED,
            message=f'Could not run `{" ".join(cmd)}`: {exc}',
            hint='Install the Rust toolchain or put cargo on PATH.',
        ) from exc

    if not result.ok:
        raise CargoMonoError(
            code=E.WORKSPACE_METADATA_FAILED,
            message=f'`{result.command_str}` exited with {result.return_code}: {result.stderr.strip()}',
        )

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        raise CargoMonoError(
            code=E.WORKSPACE_METADATA_FAILED,
            message=f'`{result.command_str}` printed invalid JSON: {exc}',
        ) from exc
    return parse_metadata(data)


__all__ = [
    'WILDCARD_REQ',
    'Dependency',
    'DependencyKind',
    'Package',
    'Workspace',
    'can_publish',
    'load_workspace',
    'parse_metadata',
]
