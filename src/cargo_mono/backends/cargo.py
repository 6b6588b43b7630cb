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

"""``cargo publish`` runner with live output.

``cargo publish`` can take minutes (packaging, verification build,
upload, waiting for the index), so its diagnostics are forwarded line by
line while it runs::

    cargo publish ──stderr──▶ reader task ──▶ operator's terminal
                  ──stdout──▶ reader task ──▶ debug log
                  ──exit────▶ proc.wait()

Both pipes are drained concurrently; a child blocked on a full pipe
would never exit. The step is finished only when both readers have hit
EOF and the exit status is known. There is no timeout.
"""

from __future__ import annotations

import asyncio
import sys
import time
from collections import deque
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, TextIO, runtime_checkable

from cargo_mono.backends._run import CommandResult, run_command
from cargo_mono.errors import CargoMonoError, E
from cargo_mono.logging import get_logger
from cargo_mono.workspace import Package

log = get_logger('cargo_mono.backends.cargo')

# Lines of stderr kept for the error message of a failed publish.
_STDERR_TAIL = 20

# Longest line the stream readers accept.
_LINE_LIMIT = 1024 * 1024


@runtime_checkable
class Publisher(Protocol):
    """Protocol for uploading one crate to the registry."""

    async def publish(
        self,
        package: Package,
        *,
        no_verify: bool = False,
        dry_run: bool = False,
    ) -> CommandResult:
        """Publish ``package`` and return once the upload has finished.

        Raises:
            CargoMonoError: ``PUBLISH_FAILED`` if the upload could not be
                started or did not succeed.
        """
        ...


async def _drain(stream: asyncio.StreamReader | None, sink: Callable[[str], None]) -> None:
    if stream is None:
        return
    while True:
        raw = await stream.readline()
        if not raw:
            return
        sink(raw.decode('utf-8', errors='replace').rstrip('\r\n'))


async def _reap(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        proc.kill()
    await proc.wait()


class CargoPublisher:
    """:class:`Publisher` that shells out to ``cargo publish``.

    Args:
        cargo: The cargo executable.
        output: Where stderr lines are forwarded (defaults to
            ``sys.stderr`` at call time).
    """

    def __init__(self, *, cargo: str = 'cargo', output: TextIO | None = None) -> None:
        """Initialize with the cargo executable and output stream."""
        self._cargo = cargo
        self._output = output

    def command(self, package: Package, *, no_verify: bool = False) -> list[str]:
        """Return the argv used to publish ``package``."""
        cmd = [self._cargo, 'publish']
        if no_verify:
            cmd.append('--no-verify')
        cmd += ['--color', 'always', '--manifest-path', str(package.manifest_path)]
        return cmd

    async def publish(
        self,
        package: Package,
        *,
        no_verify: bool = False,
        dry_run: bool = False,
    ) -> CommandResult:
        """Run ``cargo publish`` for ``package``, streaming its stderr."""
        cmd = self.command(package, no_verify=no_verify)
        cmd_str = ' '.join(cmd)
        if dry_run:
            log.info('dry_run', cmd=cmd_str)
            return CommandResult(command=cmd, return_code=0, dry_run=True)

        out = self._output or sys.stderr
        tail: deque[str] = deque(maxlen=_STDERR_TAIL)

        def _forward(line: str) -> None:
            tail.append(line)
            print(line, file=out, flush=True)  # noqa: T201 - live cargo output

        def _debug(line: str) -> None:
            log.debug('cargo_stdout', crate=package.name, line=line)

        log.debug('cargo_publish_spawn', crate=package.name, cmd=cmd_str)
        start = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=_LINE_LIMIT,
            )
        except OSError as exc:
            raise CargoMonoError(
                code=E.PUBLISH_FAILED,
                message=f"Could not start `{cmd_str}` for '{package.name}': {exc}",
                hint='Install the Rust toolchain or put cargo on PATH.',
            ) from exc

        try:
            await asyncio.gather(_drain(proc.stderr, _forward), _drain(proc.stdout, _debug))
        except Exception as exc:
            await _reap(proc)
            raise CargoMonoError(
                code=E.PUBLISH_FAILED,
                message=f"Lost the output of `{cmd_str}` for '{package.name}': {exc}",
            ) from exc
        except BaseException:
            await _reap(proc)
            raise
        return_code = await proc.wait()
        duration = (time.monotonic() - start) * 1000

        result = CommandResult(
            command=cmd,
            return_code=return_code,
            stderr='\n'.join(tail),
            duration=duration,
        )
        if not result.ok:
            raise CargoMonoError(
                code=E.PUBLISH_FAILED,
                message=f"`cargo publish` for '{package.name}' exited with {return_code}:\n{result.stderr}",
            )
        log.debug('cargo_publish_ok', crate=package.name, duration=duration)
        return result


def update_lockfile(workspace_root: Path, *, dry_run: bool = False) -> CommandResult:
    """Record bumped workspace versions in ``Cargo.lock``.

    Runs ``cargo update --workspace``, which only touches the entries of
    workspace members.

    Raises:
        CargoMonoError: ``COMMAND_FAILED`` if cargo cannot be run or fails.
    """
    cmd = ['cargo', 'update', '--workspace']
    try:
        result = run_command(cmd, cwd=workspace_root, dry_run=dry_run)
    except OSError as exc:
        raise CargoMonoError(
            code=E.COMMAND_FAILED,
            message=f'Could not run `{" ".join(cmd)}`: {exc}',
        ) from exc
    if not result.ok:
        raise CargoMonoError(
            code=E.COMMAND_FAILED,
            message=f'`{result.command_str}` exited with {result.return_code}: {result.stderr.strip()}',
        )
    return result


__all__ = [
    'CargoPublisher',
    'Publisher',
    'update_lockfile',
]
