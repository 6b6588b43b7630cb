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

"""Tests for cargo_mono.backends.cargo module."""

from __future__ import annotations

import asyncio
import io
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from cargo_mono.backends._run import CommandResult
from cargo_mono.backends.cargo import CargoPublisher, Publisher, update_lockfile
from cargo_mono.errors import CargoMonoError, E
from cargo_mono.logging import configure_logging
from tests._fakes import pkg

configure_logging(quiet=True)


def _stream(*lines: str) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for line in lines:
        reader.feed_data(line.encode())
    reader.feed_eof()
    return reader


def _process(return_code: int = 0, stdout: tuple[str, ...] = (), stderr: tuple[str, ...] = ()) -> MagicMock:
    proc = MagicMock()
    proc.stdout = _stream(*stdout)
    proc.stderr = _stream(*stderr)
    proc.wait = AsyncMock(return_value=return_code)
    return proc


class TestCargoPublisherCommand:
    """Tests for CargoPublisher.command()."""

    def test_implements_protocol(self) -> None:
        """Test implements protocol."""
        assert isinstance(CargoPublisher(), Publisher)

    def test_command(self) -> None:
        """Test the publish argv."""
        core = pkg('core')
        assert CargoPublisher().command(core) == [
            'cargo',
            'publish',
            '--color',
            'always',
            '--manifest-path',
            str(Path('/ws/core/Cargo.toml')),
        ]

    def test_command_no_verify(self) -> None:
        """Test --no-verify goes right after the subcommand."""
        cmd = CargoPublisher(cargo='/opt/cargo').command(pkg('core'), no_verify=True)
        assert cmd[:3] == ['/opt/cargo', 'publish', '--no-verify']


class TestCargoPublisherPublish:
    """Tests for CargoPublisher.publish()."""

    @pytest.mark.asyncio
    async def test_streams_stderr(self) -> None:
        """Test stderr lines are forwarded as they are read."""
        out = io.StringIO()
        proc = _process(0, stdout=('ok\n',), stderr=('   Packaging core v0.1.0\n', '   Uploading core v0.1.0\n'))
        with patch('asyncio.create_subprocess_exec', AsyncMock(return_value=proc)) as spawn:
            result = await CargoPublisher(output=out).publish(pkg('core'))
        assert result.ok
        assert out.getvalue() == '   Packaging core v0.1.0\n   Uploading core v0.1.0\n'
        args = spawn.call_args.args
        assert args[:2] == ('cargo', 'publish')
        assert spawn.call_args.kwargs['stdin'] == asyncio.subprocess.DEVNULL

    @pytest.mark.asyncio
    async def test_failure_raises_with_stderr_tail(self) -> None:
        """Test a non-zero exit raises PUBLISH_FAILED with the last stderr lines."""
        lines = tuple(f'line {i}\n' for i in range(30))
        proc = _process(101, stderr=(*lines, 'error: crate version `0.1.0` is already uploaded\n'))
        with patch('asyncio.create_subprocess_exec', AsyncMock(return_value=proc)):
            with pytest.raises(CargoMonoError) as exc_info:
                await CargoPublisher(output=io.StringIO()).publish(pkg('core'))
        message = str(exc_info.value)
        assert exc_info.value.code == E.PUBLISH_FAILED
        assert 'exited with 101' in message
        assert 'already uploaded' in message
        assert 'line 0\n' not in message

    @pytest.mark.asyncio
    async def test_spawn_failure(self) -> None:
        """Test a missing cargo binary raises PUBLISH_FAILED."""
        with patch('asyncio.create_subprocess_exec', AsyncMock(side_effect=FileNotFoundError('cargo'))):
            with pytest.raises(CargoMonoError) as exc_info:
                await CargoPublisher().publish(pkg('core'))
        assert exc_info.value.code == E.PUBLISH_FAILED

    @pytest.mark.asyncio
    async def test_unreadable_output_kills_child(self) -> None:
        """Test an over-long output line kills and reaps cargo before raising."""
        proc = _process(-9)
        proc.returncode = None
        proc.stderr = asyncio.StreamReader(limit=16)
        proc.stderr.feed_data(b'x' * 64 + b'\n')
        proc.stderr.feed_eof()
        with patch('asyncio.create_subprocess_exec', AsyncMock(return_value=proc)):
            with pytest.raises(CargoMonoError) as exc_info:
                await CargoPublisher(output=io.StringIO()).publish(pkg('core'))
        assert exc_info.value.code == E.PUBLISH_FAILED
        assert 'Lost the output' in str(exc_info.value)
        proc.kill.assert_called_once_with()
        proc.wait.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_dry_run_spawns_nothing(self) -> None:
        """Test dry-run only logs the command."""
        with patch('asyncio.create_subprocess_exec', AsyncMock()) as spawn:
            result = await CargoPublisher().publish(pkg('core'), dry_run=True)
        assert result.dry_run
        spawn.assert_not_called()

    @pytest.mark.asyncio
    async def test_crlf_stripped(self) -> None:
        """Test Windows line endings are not forwarded twice."""
        out = io.StringIO()
        proc = _process(0, stderr=('Uploading\r\n',))
        with patch('asyncio.create_subprocess_exec', AsyncMock(return_value=proc)):
            await CargoPublisher(output=out).publish(pkg('core'))
        assert out.getvalue() == 'Uploading\n'


class TestUpdateLockfile:
    """Tests for update_lockfile()."""

    def test_runs_cargo_update(self) -> None:
        """Test cargo update --workspace runs in the workspace root."""
        ok = CommandResult(command=['cargo', 'update', '--workspace'], return_code=0)
        with patch('cargo_mono.backends.cargo.run_command', return_value=ok) as mock_run:
            assert update_lockfile(Path('/ws')) is ok
        mock_run.assert_called_once_with(['cargo', 'update', '--workspace'], cwd=Path('/ws'), dry_run=False)

    def test_failure(self) -> None:
        """Test a failing cargo update raises COMMAND_FAILED."""
        bad = CommandResult(command=['cargo', 'update', '--workspace'], return_code=101, stderr='no Cargo.toml')
        with patch('cargo_mono.backends.cargo.run_command', return_value=bad):
            with pytest.raises(CargoMonoError) as exc_info:
                update_lockfile(Path('/ws'))
        assert exc_info.value.code == E.COMMAND_FAILED

    def test_cargo_missing(self) -> None:
        """Test a missing cargo raises COMMAND_FAILED."""
        with patch('cargo_mono.backends.cargo.run_command', side_effect=FileNotFoundError('cargo')):
            with pytest.raises(CargoMonoError) as exc_info:
                update_lockfile(Path('/ws'))
        assert exc_info.value.code == E.COMMAND_FAILED
