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

"""Ordered publishing of workspace crates.

Publishes crates one at a time in dependency order. Each run moves
through a small state machine::

    BUILDING ──▶ SORTED ──▶ PUBLISHING ──▶ DONE
        │
        └──────▶ CYCLE_ERROR

Per run:

1. **Build** the publish graph (see :mod:`cargo_mono.graph`) and look up
   the published version of every crate in it, concurrently.
2. **Guard**: unless ``allow_only_deps`` is set, the target's local
   version must be newer than what the registry has. Otherwise nothing is
   published at all.
3. **Sort** topologically. A cycle is fatal.
4. **Publish** in order. Crates whose local version is not newer than the
   registry's are skipped, which makes an interrupted run safe to repeat.
   Every upload is preceded by a fixed delay for the registry's rate
   limit.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Concept             │ ELI5 Explanation                               │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Sequential          │ One upload at a time. The next crate may need │
    │                     │ the one before it to be on crates.io already. │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Skip if published   │ Re-running after a failure just continues     │
    │                     │ where the last run stopped.                   │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ No rollback         │ crates.io uploads are permanent; crates that  │
    │                     │ went out before a failure stay out.           │
    └─────────────────────┴────────────────────────────────────────────────┘

Usage::

    from cargo_mono.publisher import PublishConfig, PublishScheduler

    scheduler = PublishScheduler(
        workspace.packages,
        registry=CratesIoIndex(),
        publisher=CargoPublisher(),
        config=PublishConfig(target='app'),
    )
    result = await scheduler.run()
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

import semver

from cargo_mono.backends.cargo import Publisher
from cargo_mono.backends.registry import Registry
from cargo_mono.config import DEFAULT_PUBLISH_DELAY
from cargo_mono.errors import CargoMonoError, E
from cargo_mono.graph import ALL_TARGETS, build_graph, topo_sort
from cargo_mono.logging import get_logger
from cargo_mono.lookup import lookup_versions
from cargo_mono.workspace import Package

logger = get_logger(__name__)


class PublishState(str, Enum):
    """Lifecycle of a publish run."""

    BUILDING = 'building'
    SORTED = 'sorted'
    PUBLISHING = 'publishing'
    DONE = 'done'
    CYCLE_ERROR = 'cycle_error'


@dataclass(frozen=True)
class PublishConfig:
    """Configuration for a publish run.

    Attributes:
        target: Crate to publish (plus its dependants and what they
            need), or ``"*"``.
        allow_only_deps: Publish the rest of the graph even when the
            target itself is already published.
        no_verify: Pass ``--no-verify`` to ``cargo publish``.
        dry_run: Log the commands instead of running them.
        delay: Seconds to wait before each upload.
        allow_not_found: Treat never-published crates as ``0.0.0``.
        wildcard_unpublishable: Passed to
            :func:`~cargo_mono.workspace.can_publish`.
    """

    target: str = ALL_TARGETS
    allow_only_deps: bool = False
    no_verify: bool = False
    dry_run: bool = False
    delay: float = DEFAULT_PUBLISH_DELAY
    allow_not_found: bool = True
    wildcard_unpublishable: bool = True


@dataclass
class PublishResult:
    """Outcome of a publish run.

    Attributes:
        order: Crate names in the order they were considered.
        published: Crates that were uploaded (or would be, in dry-run).
        skipped: Crates whose version was already on the registry.
    """

    order: list[str] = field(default_factory=list)
    published: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def summary(self) -> str:
        """Return a one-line human-readable summary."""
        return f'{len(self.published)} published, {len(self.skipped)} skipped'


class PublishScheduler:
    """Drives one publish run over a workspace.

    Args:
        packages: All workspace packages.
        registry: Source of published versions.
        publisher: Uploads a single crate.
        config: Run options.
        sleep: Awaitable delay function, replaceable in tests.
    """

    def __init__(
        self,
        packages: Sequence[Package],
        *,
        registry: Registry,
        publisher: Publisher,
        config: PublishConfig | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        """Initialize with the workspace, backends, and options."""
        self._packages = list(packages)
        self._registry = registry
        self._publisher = publisher
        self._config = config or PublishConfig()
        self._sleep = sleep
        self.state = PublishState.BUILDING
        self.result = PublishResult()

    def _check_target(self, published: dict[str, semver.Version]) -> None:
        target = self._config.target
        if target == ALL_TARGETS or self._config.allow_only_deps:
            return
        local = next(p.version for p in self._packages if p.name == target)
        remote = published[target]
        if local <= remote:
            raise CargoMonoError(
                code=E.VERSION_ALREADY_PUBLISHED,
                message=f"Version of '{target}' ({local}) is not newer than the published version ({remote})",
                hint=f"Run 'cargo-mono bump {target}' first, or pass --allow-only-deps.",
            )

    async def run(self) -> PublishResult:
        """Execute the run.

        Returns:
            The :class:`PublishResult`, also kept on :attr:`result`.

        Raises:
            CargoMonoError: On an unknown or unpublishable target, a
                registry lookup failure, the already-published guard, a
                dependency cycle, or a failed upload. Crates uploaded
                before the failure stay listed in :attr:`result`.
        """
        config = self._config
        self.state = PublishState.BUILDING
        graph = build_graph(
            self._packages,
            target=config.target,
            wildcard_unpublishable=config.wildcard_unpublishable,
        )
        published = await lookup_versions(
            self._registry,
            graph.names,
            allow_not_found=config.allow_not_found,
        )
        self._check_target(published)

        try:
            order = topo_sort(graph)
        except CargoMonoError as exc:
            if exc.code is E.GRAPH_CYCLE_DETECTED:
                self.state = PublishState.CYCLE_ERROR
            raise
        self.state = PublishState.SORTED
        self.result.order = [p.name for p in order]
        logger.info('publish_order', target=config.target, order=self.result.order)

        self.state = PublishState.PUBLISHING
        for pkg in order:
            remote = published[pkg.name]
            if pkg.version <= remote:
                logger.info('publish_skipped', crate=pkg.name, local=str(pkg.version), published=str(remote))
                self.result.skipped.append(pkg.name)
                continue

            if not config.dry_run and config.delay > 0:
                await self._sleep(config.delay)
            logger.info('publish_started', crate=pkg.name, version=str(pkg.version), published=str(remote))
            await self._publisher.publish(pkg, no_verify=config.no_verify, dry_run=config.dry_run)
            self.result.published.append(pkg.name)
            logger.info('publish_succeeded', crate=pkg.name, version=str(pkg.version))

        self.state = PublishState.DONE
        logger.info('publish_complete', summary=self.result.summary())
        return self.result


async def publish_workspace(
    packages: Sequence[Package],
    *,
    registry: Registry,
    publisher: Publisher,
    config: PublishConfig | None = None,
) -> PublishResult:
    """Run a :class:`PublishScheduler` once and return its result."""
    scheduler = PublishScheduler(packages, registry=registry, publisher=publisher, config=config)
    return await scheduler.run()


__all__ = [
    'PublishConfig',
    'PublishResult',
    'PublishScheduler',
    'PublishState',
    'publish_workspace',
]
