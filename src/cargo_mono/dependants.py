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

"""Dependants closure: which crates must be bumped together.

Starting from a changed crate, walk to the crates that depend on it,
then to the crates that depend on those, and give each one a new
version computed from its published version.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Concept             │ ELI5 Explanation                               │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Dependant           │ A crate whose Cargo.toml names the changed    │
    │                     │ crate. It needs a new requirement, and so a   │
    │                     │ new version of its own.                       │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ breaking            │ Breaking changes always drag dependants       │
    │                     │ along. Non-breaking ones only do with         │
    │                     │ ``with_dependants``.                          │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ interactive         │ Ask per crate: "is this breaking?" If not,    │
    │                     │ pick which dependants to bump by hand.        │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Visited guard       │ A crate already in the result is never        │
    │                     │ looked at again, so dependency cycles end.    │
    └─────────────────────┴────────────────────────────────────────────────┘

Traversal::

    stack = [(start, breaking)]
    pop (name, breaking)
      ├─ name already bumped?      → skip
      ├─ interactive?              → ask; answer replaces breaking
      ├─ record name → bump(published[name], breaking)
      └─ push (dependant, breaking) for each dependant to follow

The stack replaces recursion; each crate is inserted exactly once
whatever the visiting order.

Usage::

    from cargo_mono.dependants import resolve_many

    plan = await resolve_many(
        ['foo'],
        workspace.packages,
        registry,
        breaking=True,
        with_dependants=False,
        interactive=False,
        allow_not_found=True,
    )
    # {'foo': Version(0, 2, 0), 'bar': Version(0, 4, 0)}
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping, Sequence

import semver

from cargo_mono.backends.registry import Registry
from cargo_mono.errors import CargoMonoError, E
from cargo_mono.logging import get_logger
from cargo_mono.lookup import lookup_versions
from cargo_mono.prompt import Prompter, validate_confirm, validate_selection
from cargo_mono.versions import bump
from cargo_mono.workspace import Package, can_publish

logger = get_logger(__name__)

DependantsMap = dict[str, semver.Version]


def direct_dependants(name: str, packages: Iterable[Package]) -> list[str]:
    """Return the names of ``packages`` that declare a dependency on ``name``."""
    return sorted(p.name for p in packages if p.name != name and p.depends_on(name))


def transitive_dependants(names: Iterable[str], packages: Sequence[Package]) -> set[str]:
    """Return every package reachable from ``names`` over dependant edges.

    The start names are included in the result.
    """
    seen: set[str] = set(names)
    stack = list(seen)
    while stack:
        current = stack.pop()
        for dependant in direct_dependants(current, packages):
            if dependant not in seen:
                seen.add(dependant)
                stack.append(dependant)
    return seen


def _check_member(name: str, packages: Sequence[Package]) -> None:
    if not any(p.name == name for p in packages):
        raise CargoMonoError(
            code=E.WORKSPACE_PACKAGE_NOT_FOUND,
            message=f"Package '{name}' is not a member of the workspace",
            hint=f'Members: {", ".join(p.name for p in packages) or "(none)"}',
        )


def resolve(
    start: str,
    packages: Sequence[Package],
    published: Mapping[str, semver.Version],
    *,
    breaking: bool,
    with_dependants: bool,
    interactive: bool,
    prompter: Prompter | None = None,
    wildcard_unpublishable: bool = True,
    into: DependantsMap | None = None,
) -> DependantsMap:
    """Compute the crates to bump when ``start`` changes.

    Blocking when ``interactive`` is set: the prompter is called
    directly. Run it through ``asyncio.to_thread`` from async code.

    Args:
        start: Name of the changed crate.
        packages: All workspace packages.
        published: Published version of every crate that may be visited.
        breaking: Whether the change to ``start`` is breaking. Ignored
            in interactive mode, where the operator answers per crate.
        with_dependants: Also bump dependants of non-breaking changes.
        interactive: Ask the operator instead of following the flags.
        prompter: Required when ``interactive`` is set.
        wildcard_unpublishable: Passed to :func:`can_publish`.
        into: An existing map to extend; crates already in it are
            treated as resolved.

    Returns:
        The map of crate name to new version (``into`` if given).

    Raises:
        CargoMonoError: If ``start`` is not a workspace member, a
            visited crate has no published version, or the prompter
            answers with the wrong shape.
    """
    if interactive and prompter is None:
        raise ValueError('interactive resolution needs a prompter')
    _check_member(start, packages)

    result: DependantsMap = into if into is not None else {}
    candidates = [p for p in packages if can_publish(p, wildcard_unpublishable=wildcard_unpublishable)]
    by_name = {p.name: p for p in candidates}

    stack: list[tuple[str, bool]] = [(start, breaking)]
    while stack:
        name, is_breaking = stack.pop()
        if name in result:
            continue
        if name not in by_name:
            logger.warning('skip_unpublishable', crate=name)
            continue

        pending = [d for d in direct_dependants(name, candidates) if d not in result]
        follow: list[str] = []
        if interactive and prompter is not None:
            question = f'Is the change to `{name}` breaking?'
            is_breaking = validate_confirm(question, prompter.confirm(question))
            if is_breaking:
                follow = pending
            elif pending:
                question = f'Which dependants of `{name}` should also be bumped?'
                follow = validate_selection(question, pending, prompter.select(question, pending))
        elif is_breaking or with_dependants:
            follow = pending

        previous = published.get(name)
        if previous is None:
            raise CargoMonoError(
                code=E.REGISTRY_LOOKUP_FAILED,
                message=f"No published version known for '{name}'",
            )
        new_version = bump(previous, is_breaking)
        result[name] = new_version
        logger.info(
            'version_bumped',
            crate=name,
            published=str(previous),
            new=str(new_version),
            breaking=is_breaking,
        )

        # Reversed so dependants are visited in name order.
        for dependant in reversed(follow):
            stack.append((dependant, is_breaking))

    return result


async def resolve_many(
    targets: Sequence[str],
    packages: Sequence[Package],
    registry: Registry,
    *,
    breaking: bool,
    with_dependants: bool,
    interactive: bool,
    allow_not_found: bool,
    prompter: Prompter | None = None,
    wildcard_unpublishable: bool = True,
) -> DependantsMap:
    """Look up published versions, then resolve every target into one map.

    Only crates that the traversal could reach are looked up: the
    targets, plus their transitive dependants when dependants may be
    followed.

    Raises:
        CargoMonoError: If a target is not a workspace member, the
            registry lookup fails, or resolution fails.
    """
    for target in targets:
        _check_member(target, packages)

    candidates = [p for p in packages if can_publish(p, wildcard_unpublishable=wildcard_unpublishable)]
    candidate_names = {p.name for p in candidates}
    if breaking or with_dependants or interactive:
        reachable = transitive_dependants(targets, candidates)
    else:
        reachable = set(targets)
    published = await lookup_versions(
        registry,
        reachable & candidate_names,
        allow_not_found=allow_not_found,
    )

    result: DependantsMap = {}
    for target in targets:
        await asyncio.to_thread(
            resolve,
            target,
            packages,
            published,
            breaking=breaking,
            with_dependants=with_dependants,
            interactive=interactive,
            prompter=prompter,
            wildcard_unpublishable=wildcard_unpublishable,
            into=result,
        )
    return result


__all__ = [
    'DependantsMap',
    'direct_dependants',
    'resolve',
    'resolve_many',
    'transitive_dependants',
]
