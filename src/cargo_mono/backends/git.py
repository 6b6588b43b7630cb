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

"""Git commit helper for ``bump --git``.

Stages the rewritten manifests (and the lockfile) and commits exactly
those paths, leaving anything else the operator has staged alone. Paths
that git ignores are dropped first so ``git add`` does not refuse them.

All methods are async; the blocking ``git`` calls run in
``asyncio.to_thread()``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path

from cargo_mono.backends._run import CommandResult, run_command
from cargo_mono.errors import CargoMonoError, E
from cargo_mono.logging import get_logger

log = get_logger('cargo_mono.backends.git')


class GitCommitter:
    """Commits version bumps with the ``git`` CLI.

    Args:
        repo_root: Directory the ``git`` commands run in.
    """

    def __init__(self, repo_root: Path) -> None:
        """Initialize with the repository root."""
        self._root = repo_root

    def _git(self, *args: str, dry_run: bool = False) -> CommandResult:
        try:
            return run_command(['git', *args], cwd=self._root, dry_run=dry_run)
        except OSError as exc:
            raise CargoMonoError(
                code=E.COMMAND_FAILED,
                message=f'Could not run git: {exc}',
            ) from exc

    def _check(self, result: CommandResult) -> CommandResult:
        if not result.ok:
            raise CargoMonoError(
                code=E.COMMAND_FAILED,
                message=f'`{result.command_str}` exited with {result.return_code}: {result.stderr.strip()}',
            )
        return result

    async def ignored(self, paths: Sequence[Path]) -> set[Path]:
        """Return the subset of ``paths`` that git ignores."""
        if not paths:
            return set()
        result = await asyncio.to_thread(self._git, 'check-ignore', '--', *(str(p) for p in paths))
        # 0: some paths ignored, 1: none ignored, anything else: error.
        if result.return_code == 1:
            return set()
        self._check(result)
        listed = {line.strip() for line in result.stdout.splitlines() if line.strip()}
        return {p for p in paths if str(p) in listed}

    async def commit(
        self,
        message: str,
        *,
        paths: Sequence[Path],
        dry_run: bool = False,
    ) -> CommandResult | None:
        """Stage ``paths`` and commit them with ``message``.

        Returns:
            The result of ``git commit``, or ``None`` when every path is
            ignored and there is nothing to commit.

        Raises:
            CargoMonoError: If a git command fails.
        """
        ignored = await self.ignored(paths)
        if ignored:
            log.info('skip_ignored_paths', paths=sorted(str(p) for p in ignored))
        to_commit = [str(p) for p in paths if p not in ignored]
        if not to_commit:
            log.warning('nothing_to_commit')
            return None

        self._check(await asyncio.to_thread(self._git, 'add', '--', *to_commit, dry_run=dry_run))
        log.info('commit', message=message[:80], paths=len(to_commit))
        return self._check(
            await asyncio.to_thread(self._git, 'commit', '-m', message, '--', *to_commit, dry_run=dry_run),
        )


__all__ = [
    'GitCommitter',
]
