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

"""The ``bump`` workflow: resolve, rewrite manifests, optionally commit.

Data Flow::

    targets ──▶ resolve_many() ──▶ {crate: new version}
                   │                       │
             registry lookups              ▼
                                    apply_all() ──▶ rewritten Cargo.toml files
                                           │
                                   (--git) ▼
                         cargo update --workspace + git commit

Nothing is rolled back on failure: manifests rewritten before an error
stay rewritten.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import semver
from rich.table import Table

from cargo_mono.backends.cargo import update_lockfile
from cargo_mono.backends.git import GitCommitter
from cargo_mono.backends.registry import Registry
from cargo_mono.config import DEFAULT_COMMIT_MESSAGE
from cargo_mono.dependants import resolve_many
from cargo_mono.logging import get_logger
from cargo_mono.manifest import apply_all
from cargo_mono.prompt import Prompter
from cargo_mono.workspace import Workspace

logger = get_logger(__name__)


@dataclass(frozen=True)
class BumpOptions:
    """Options of one ``bump`` invocation.

    Attributes:
        breaking: The change to the targets is breaking.
        with_dependants: Also bump dependants of non-breaking changes.
        interactive: Ask the operator per crate.
        allow_not_found: Treat never-published crates as ``0.0.0``.
        git: Commit the rewritten files.
        dry_run: Compute and show the plan without writing anything.
        wildcard_unpublishable: Passed to
            :func:`~cargo_mono.workspace.can_publish`.
        commit_message: Message of the ``--git`` commit.
    """

    breaking: bool = False
    with_dependants: bool = False
    interactive: bool = False
    allow_not_found: bool = True
    git: bool = False
    dry_run: bool = False
    wildcard_unpublishable: bool = True
    commit_message: str = DEFAULT_COMMIT_MESSAGE


@dataclass
class BumpResult:
    """What a ``bump`` run did.

    Attributes:
        versions: New version of every bumped crate, in resolution order.
        changed: Files that were rewritten.
        committed: Whether a commit was created.
    """

    versions: dict[str, semver.Version] = field(default_factory=dict)
    changed: list[Path] = field(default_factory=list)
    committed: bool = False


def plan_table(workspace: Workspace, versions: dict[str, semver.Version]) -> Table:
    """Render the bump plan as a rich table."""
    table = Table(title='Version bumps', title_justify='left')
    table.add_column('Crate', style='bold')
    table.add_column('Local')
    table.add_column('New', style='green')
    local = {p.name: p.version for p in workspace.packages}
    for name, new in versions.items():
        table.add_row(name, str(local.get(name, '?')), str(new))
    return table


async def bump_workspace(
    workspace: Workspace,
    targets: Sequence[str],
    *,
    registry: Registry,
    options: BumpOptions,
    prompter: Prompter | None = None,
    committer: GitCommitter | None = None,
) -> BumpResult:
    """Bump ``targets`` and everything that has to move with them.

    Args:
        workspace: The loaded workspace.
        targets: Names of the changed crates.
        registry: Source of published versions.
        options: Run options.
        prompter: Required with ``options.interactive``.
        committer: Used with ``options.git``; defaults to a
            :class:`GitCommitter` at the workspace root.

    Raises:
        CargoMonoError: From resolution, manifest patching, or git.
    """
    result = BumpResult()
    result.versions = await resolve_many(
        targets,
        workspace.packages,
        registry,
        breaking=options.breaking,
        with_dependants=options.with_dependants,
        interactive=options.interactive,
        allow_not_found=options.allow_not_found,
        prompter=prompter,
        wildcard_unpublishable=options.wildcard_unpublishable,
    )
    logger.info('bump_plan', targets=list(targets), crates=len(result.versions))

    if options.dry_run or not result.versions:
        return result

    result.changed = await apply_all(
        workspace.packages,
        result.versions,
        workspace_manifest=workspace.root / 'Cargo.toml',
    )

    if options.git and result.changed:
        paths = list(result.changed)
        lockfile = workspace.root / 'Cargo.lock'
        if lockfile.is_file():
            await asyncio.to_thread(update_lockfile, workspace.root)
            paths.append(lockfile)
        git = committer or GitCommitter(workspace.root)
        result.committed = await git.commit(options.commit_message, paths=paths) is not None

    return result


__all__ = [
    'BumpOptions',
    'BumpResult',
    'bump_workspace',
    'plan_table',
]
