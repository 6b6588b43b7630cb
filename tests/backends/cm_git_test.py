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

"""Tests for cargo_mono.backends.git module."""

from __future__ import annotations

from pathlib import Path

import pytest
from cargo_mono.backends._run import CommandResult
from cargo_mono.backends.git import GitCommitter
from cargo_mono.errors import CargoMonoError, E
from cargo_mono.logging import configure_logging

configure_logging(quiet=True)


class _FakeGit:
    """Stands in for run_command and answers per git subcommand."""

    def __init__(self, *, ignored: list[str] | None = None, fail: str = '') -> None:
        self.ignored = ignored or []
        self.fail = fail
        self.calls: list[list[str]] = []

    def __call__(self, cmd: list[str], *, cwd: Path | None = None, dry_run: bool = False) -> CommandResult:
        self.calls.append(cmd)
        sub = cmd[1]
        if sub == self.fail:
            return CommandResult(command=cmd, return_code=128, stderr='fatal: nope')
        if sub == 'check-ignore':
            if not self.ignored:
                return CommandResult(command=cmd, return_code=1)
            return CommandResult(command=cmd, return_code=0, stdout='\n'.join(self.ignored) + '\n')
        return CommandResult(command=cmd, return_code=0, dry_run=dry_run)


class TestGitCommitter:
    """Tests for GitCommitter."""

    @pytest.mark.asyncio
    async def test_commit_paths(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test the given paths are added and committed, nothing else."""
        git = _FakeGit()
        monkeypatch.setattr('cargo_mono.backends.git.run_command', git)
        paths = [tmp_path / 'a' / 'Cargo.toml', tmp_path / 'Cargo.lock']
        result = await GitCommitter(tmp_path).commit('Bump versions', paths=paths)
        assert result is not None and result.ok
        assert [c[1] for c in git.calls] == ['check-ignore', 'add', 'commit']
        assert git.calls[1] == ['git', 'add', '--', *(str(p) for p in paths)]
        assert git.calls[2] == ['git', 'commit', '-m', 'Bump versions', '--', *(str(p) for p in paths)]

    @pytest.mark.asyncio
    async def test_ignored_paths_dropped(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test git-ignored paths are not staged."""
        lock = tmp_path / 'Cargo.lock'
        manifest = tmp_path / 'a' / 'Cargo.toml'
        git = _FakeGit(ignored=[str(lock)])
        monkeypatch.setattr('cargo_mono.backends.git.run_command', git)
        await GitCommitter(tmp_path).commit('msg', paths=[manifest, lock])
        assert git.calls[1] == ['git', 'add', '--', str(manifest)]

    @pytest.mark.asyncio
    async def test_everything_ignored(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test nothing is committed when every path is ignored."""
        lock = tmp_path / 'Cargo.lock'
        git = _FakeGit(ignored=[str(lock)])
        monkeypatch.setattr('cargo_mono.backends.git.run_command', git)
        assert await GitCommitter(tmp_path).commit('msg', paths=[lock]) is None
        assert [c[1] for c in git.calls] == ['check-ignore']

    @pytest.mark.asyncio
    async def test_commit_failure(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test a failing git commit raises COMMAND_FAILED."""
        monkeypatch.setattr('cargo_mono.backends.git.run_command', _FakeGit(fail='commit'))
        with pytest.raises(CargoMonoError) as exc_info:
            await GitCommitter(tmp_path).commit('msg', paths=[tmp_path / 'Cargo.toml'])
        assert exc_info.value.code == E.COMMAND_FAILED
        assert 'fatal: nope' in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_check_ignore_failure(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test a broken repository fails at check-ignore."""
        monkeypatch.setattr('cargo_mono.backends.git.run_command', _FakeGit(fail='check-ignore'))
        with pytest.raises(CargoMonoError) as exc_info:
            await GitCommitter(tmp_path).ignored([tmp_path / 'Cargo.toml'])
        assert exc_info.value.code == E.COMMAND_FAILED

    @pytest.mark.asyncio
    async def test_git_missing(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test a missing git binary raises COMMAND_FAILED."""

        def _missing(cmd: list[str], **kwargs: object) -> CommandResult:
            raise FileNotFoundError('git')

        monkeypatch.setattr('cargo_mono.backends.git.run_command', _missing)
        with pytest.raises(CargoMonoError) as exc_info:
            await GitCommitter(tmp_path).commit('msg', paths=[tmp_path / 'Cargo.toml'])
        assert exc_info.value.code == E.COMMAND_FAILED

    @pytest.mark.asyncio
    async def test_no_paths(self, tmp_path: Path) -> None:
        """Test an empty path list needs no git call."""
        assert await GitCommitter(tmp_path).ignored([]) == set()
