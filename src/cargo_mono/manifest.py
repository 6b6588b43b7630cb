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

"""Write bumped versions into Cargo.toml files.

Uses `tomlkit <https://github.com/python-poetry/tomlkit>`_ so comments,
ordering and whitespace survive; only the touched values change.

What gets rewritten::

    [package]
    version = "0.1.0"                  → "0.2.0"  (if the crate was bumped)

    [dependencies]
    foo = "0.1"                        → "0.2.0"
    bar = { path = "../bar", version = "0.3" }
                                       → version = "0.4.0", path kept
    baz = { workspace = true }         → untouched, inherits from the root
    dev = { path = "../dev" }          → untouched, no requirement to rewrite
    qux = { package = "foo", version = "0.1" }
                                       → matched by the real crate name

    [dev-dependencies], [build-dependencies], [target.'cfg(..)'.*]
    and the root's [workspace.dependencies] follow the same rules.

A dependency entry that is neither a string nor a table cannot carry a
version and is reported as ``MANIFEST_STRUCTURE_ERROR``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any

import semver
import tomlkit
import tomlkit.exceptions

from cargo_mono.errors import CargoMonoError, E
from cargo_mono.logging import get_logger
from cargo_mono.workspace import Package

logger = get_logger(__name__)

DEPENDENCY_SECTIONS: tuple[str, ...] = ('dependencies', 'dev-dependencies', 'build-dependencies')


def _dependency_tables(doc: tomlkit.TOMLDocument) -> Iterator[tuple[str, Any]]:  # noqa: ANN401 - tomlkit containers
    """Yield ``(label, table)`` for every dependency table in ``doc``."""
    for section in DEPENDENCY_SECTIONS:
        table = doc.get(section)
        if isinstance(table, dict):
            yield section, table

    targets = doc.get('target')
    if isinstance(targets, dict):
        for cfg, target in targets.items():
            if not isinstance(target, dict):
                continue
            for section in DEPENDENCY_SECTIONS:
                table = target.get(section)
                if isinstance(table, dict):
                    yield f'target.{cfg}.{section}', table

    workspace = doc.get('workspace')
    if isinstance(workspace, dict):
        table = workspace.get('dependencies')
        if isinstance(table, dict):
            yield 'workspace.dependencies', table


def _set_package_version(doc: tomlkit.TOMLDocument, path: Path, version: semver.Version) -> bool:
    package = doc.get('package')
    if not isinstance(package, dict):
        raise CargoMonoError(
            code=E.MANIFEST_PARSE_ERROR,
            message=f'{path} has no [package] table',
        )
    current = package.get('version')
    if isinstance(current, dict) and current.get('workspace') is True:
        logger.warning(
            'version_inherited',
            manifest=str(path),
            hint='version = { workspace = true }; bump [workspace.package] in the root manifest',
        )
        return False
    if current is not None and not isinstance(current, str):
        raise CargoMonoError(
            code=E.MANIFEST_STRUCTURE_ERROR,
            message=f'{path}: package.version is a {type(current).__name__}, expected a string',
        )
    if current == str(version):
        return False
    package['version'] = str(version)
    logger.debug('package_version_set', manifest=str(path), old=current, new=str(version))
    return True


def _set_dependency_versions(
    doc: tomlkit.TOMLDocument,
    path: Path,
    dependants: Mapping[str, semver.Version],
) -> bool:
    changed = False
    for label, table in _dependency_tables(doc):
        for key in list(table.keys()):
            entry = table[key]
            if isinstance(entry, str):
                if key not in dependants:
                    continue
                new_req = str(dependants[key])
                if entry == new_req:
                    continue
                table[key] = new_req
            elif isinstance(entry, dict):
                crate = entry.get('package', key)
                # Path-only and `workspace = true` entries carry no requirement to rewrite.
                if crate not in dependants or 'version' not in entry:
                    continue
                new_req = str(dependants[crate])
                if entry.get('version') == new_req:
                    continue
                entry['version'] = new_req
            elif key not in dependants:
                continue
            else:
                raise CargoMonoError(
                    code=E.MANIFEST_STRUCTURE_ERROR,
                    message=(
                        f"{path}: [{label}] entry '{key}' is a {type(entry).__name__}, expected a string or a table"
                    ),
                )
            changed = True
            logger.debug('dependency_requirement_set', manifest=str(path), section=label, dependency=key, req=new_req)
    return changed


def patch_manifest(
    path: Path,
    dependants: Mapping[str, semver.Version],
    *,
    package_name: str | None = None,
) -> bool:
    """Rewrite versions in the manifest at ``path``.

    Args:
        path: The ``Cargo.toml`` to rewrite.
        dependants: New version of every bumped crate.
        package_name: Name of the crate the manifest declares, or
            ``None`` for a virtual workspace manifest.

    Returns:
        ``True`` if the file was rewritten.

    Raises:
        CargoMonoError: ``MANIFEST_PARSE_ERROR`` if the file cannot be
            read or parsed, ``MANIFEST_STRUCTURE_ERROR`` if a touched
            value has an unexpected shape.
    """
    try:
        text = path.read_text(encoding='utf-8')
    except OSError as exc:
        raise CargoMonoError(
            code=E.MANIFEST_PARSE_ERROR,
            message=f'Failed to read {path}: {exc}',
        ) from exc

    try:
        doc = tomlkit.parse(text)
    except tomlkit.exceptions.TOMLKitError as exc:
        raise CargoMonoError(
            code=E.MANIFEST_PARSE_ERROR,
            message=f'Failed to parse {path}: {exc}',
        ) from exc

    changed = False
    if package_name is not None and package_name in dependants:
        changed = _set_package_version(doc, path, dependants[package_name])
    changed = _set_dependency_versions(doc, path, dependants) or changed

    if not changed:
        return False
    path.write_text(tomlkit.dumps(doc), encoding='utf-8')
    logger.info('manifest_patched', manifest=str(path))
    return True


def apply(package: Package, dependants: Mapping[str, semver.Version]) -> bool:
    """Apply ``dependants`` to the manifest of ``package``.

    Sets the package's own version if it was bumped and rewrites every
    requirement on a bumped crate.
    """
    return patch_manifest(package.manifest_path, dependants, package_name=package.name)


def _affected(package: Package, dependants: Mapping[str, semver.Version]) -> bool:
    return package.name in dependants or any(dep.name in dependants for dep in package.dependencies)


async def apply_all(
    packages: Sequence[Package],
    dependants: Mapping[str, semver.Version],
    *,
    workspace_manifest: Path | None = None,
) -> list[Path]:
    """Patch every manifest touched by ``dependants``.

    Each file is rewritten in a worker thread. Files are handled one at
    a time, so a failure leaves earlier files patched and later ones
    untouched.

    Args:
        packages: All workspace packages.
        dependants: New version of every bumped crate.
        workspace_manifest: The root ``Cargo.toml``; patched for
            ``[workspace.dependencies]`` when it does not belong to one
            of ``packages``.

    Returns:
        Paths of the manifests that were rewritten.
    """
    changed: list[Path] = []
    visited: set[Path] = set()
    for pkg in packages:
        if not _affected(pkg, dependants):
            continue
        visited.add(pkg.manifest_path)
        if await asyncio.to_thread(apply, pkg, dependants):
            changed.append(pkg.manifest_path)

    if workspace_manifest is not None and workspace_manifest not in visited and workspace_manifest.is_file():
        root_package = next((p.name for p in packages if p.manifest_path == workspace_manifest), None)
        if await asyncio.to_thread(patch_manifest, workspace_manifest, dependants, package_name=root_package):
            changed.append(workspace_manifest)
    return changed


__all__ = [
    'DEPENDENCY_SECTIONS',
    'apply',
    'apply_all',
    'patch_manifest',
]
