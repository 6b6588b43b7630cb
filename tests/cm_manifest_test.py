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

"""Tests for cargo_mono.manifest module."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit
from cargo_mono.errors import CargoMonoError, E
from cargo_mono.logging import configure_logging
from cargo_mono.manifest import apply, apply_all, patch_manifest
from cargo_mono.versions import parse_version
from tests._fakes import dep, pkg

configure_logging(quiet=True)

_APP_MANIFEST = """\
# The application crate.
[package]
name = "app"
version = "0.1.0"   # bumped by cargo-mono
edition = "2021"

[dependencies]
core = "0.1.0"  # keep in sync
serde = { version = "1", features = ["derive"] }
macros = { path = "../macros", version = "0.3.0" }
renamed = { package = "core", version = "0.1.0", path = "../core" }

[dev-dependencies]
testkit = { path = "../testkit" }

[target.'cfg(unix)'.dependencies]
core = { version = "0.1.0", path = "../core" }

[dependencies.logging]
path = "../logging"
version = "0.9.0"
"""


def _write(root: Path, name: str, text: str) -> Path:
    path = root / name / 'Cargo.toml'
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding='utf-8')
    return path


def _versions(**kwargs: str) -> dict:
    return {name: parse_version(v) for name, v in kwargs.items()}


class TestPatchManifest:
    """Tests for patch_manifest()."""

    def test_package_version(self, tmp_path: Path) -> None:
        """Test the crate's own version is rewritten."""
        path = _write(tmp_path, 'app', _APP_MANIFEST)
        assert patch_manifest(path, _versions(app='0.2.0'), package_name='app')
        doc = tomlkit.parse(path.read_text(encoding='utf-8'))
        assert doc['package']['version'] == '0.2.0'

    def test_string_dependency(self, tmp_path: Path) -> None:
        """Test a `name = "x"` dependency is rewritten."""
        path = _write(tmp_path, 'app', _APP_MANIFEST)
        patch_manifest(path, _versions(core='0.2.0'), package_name='app')
        doc = tomlkit.parse(path.read_text(encoding='utf-8'))
        assert doc['dependencies']['core'] == '0.2.0'

    def test_table_dependencies(self, tmp_path: Path) -> None:
        """Test inline tables, renames, target tables and sub-tables are rewritten."""
        path = _write(tmp_path, 'app', _APP_MANIFEST)
        patch_manifest(path, _versions(core='0.2.0', macros='0.4.0', logging='1.0.0'), package_name='app')
        doc = tomlkit.parse(path.read_text(encoding='utf-8'))
        assert doc['dependencies']['macros']['version'] == '0.4.0'
        assert doc['dependencies']['macros']['path'] == '../macros'
        assert doc['dependencies']['renamed']['version'] == '0.2.0'
        assert doc['target']["cfg(unix)"]['dependencies']['core']['version'] == '0.2.0'
        assert doc['dependencies']['logging']['version'] == '1.0.0'

    def test_unrelated_entries_untouched(self, tmp_path: Path) -> None:
        """Test entries for crates that were not bumped keep their text."""
        path = _write(tmp_path, 'app', _APP_MANIFEST)
        patch_manifest(path, _versions(core='0.2.0'), package_name='app')
        text = path.read_text(encoding='utf-8')
        assert 'serde = { version = "1", features = ["derive"] }' in text
        assert 'testkit = { path = "../testkit" }' in text
        assert 'edition = "2021"' in text

    def test_comments_preserved(self, tmp_path: Path) -> None:
        """Test comments survive the rewrite."""
        path = _write(tmp_path, 'app', _APP_MANIFEST)
        patch_manifest(path, _versions(app='0.2.0', core='0.2.0'), package_name='app')
        text = path.read_text(encoding='utf-8')
        assert text.startswith('# The application crate.\n')
        assert 'version = "0.2.0"   # bumped by cargo-mono' in text
        assert 'core = "0.2.0"  # keep in sync' in text

    def test_round_trip(self, tmp_path: Path) -> None:
        """Test only the version values differ after a rewrite."""
        path = _write(tmp_path, 'app', _APP_MANIFEST)
        patch_manifest(path, _versions(app='0.2.0', macros='0.4.0'), package_name='app')
        expected = _APP_MANIFEST.replace('version = "0.1.0"   #', 'version = "0.2.0"   #').replace(
            'version = "0.3.0"', 'version = "0.4.0"'
        )
        actual = path.read_text(encoding='utf-8')
        assert tomlkit.parse(actual).unwrap() == tomlkit.parse(expected).unwrap()
        before, after = _APP_MANIFEST.splitlines(), actual.splitlines()
        assert len(before) == len(after)
        changed = [line for line, new in zip(before, after, strict=True) if line != new]
        assert changed == ['version = "0.1.0"   # bumped by cargo-mono', 'macros = { path = "../macros", version = "0.3.0" }']

    def test_package_name_not_bumped(self, tmp_path: Path) -> None:
        """Test the package version stays when the crate itself is not bumped."""
        path = _write(tmp_path, 'app', _APP_MANIFEST)
        patch_manifest(path, _versions(core='0.2.0'), package_name='app')
        assert tomlkit.parse(path.read_text(encoding='utf-8'))['package']['version'] == '0.1.0'

    def test_no_change_no_write(self, tmp_path: Path) -> None:
        """Test the file is not rewritten when nothing matches."""
        path = _write(tmp_path, 'app', _APP_MANIFEST)
        before = path.stat().st_mtime_ns
        assert not patch_manifest(path, _versions(unrelated='9.0.0'), package_name='app')
        assert path.stat().st_mtime_ns == before
        assert path.read_text(encoding='utf-8') == _APP_MANIFEST

    def test_already_at_version(self, tmp_path: Path) -> None:
        """Test a manifest already at the target versions reports no change."""
        path = _write(tmp_path, 'app', _APP_MANIFEST)
        assert not patch_manifest(path, _versions(app='0.1.0', macros='0.3.0'), package_name='app')

    def test_workspace_inherited_entries_skipped(self, tmp_path: Path) -> None:
        """Test `workspace = true` entries and versions are left alone."""
        path = _write(
            tmp_path,
            'app',
            '[package]\nname = "app"\nversion = { workspace = true }\n\n'
            '[dependencies]\ncore = { workspace = true }\n',
        )
        assert not patch_manifest(path, _versions(app='0.2.0', core='0.2.0'), package_name='app')

    def test_path_only_entries_get_no_version(self, tmp_path: Path) -> None:
        """Test a path-only dependency of a bumped crate is not given a requirement."""
        text = '[package]\nname = "app"\nversion = "0.1.0"\n\n[dev-dependencies]\ncore = { path = "../core" }\n'
        path = _write(tmp_path, 'app', text)
        assert not patch_manifest(path, _versions(core='0.2.0'), package_name='app')
        assert path.read_text(encoding='utf-8') == text

    def test_path_only_entries_skipped_beside_versioned_ones(self, tmp_path: Path) -> None:
        """Test a path-only table stays as-is while a versioned one is rewritten."""
        path = _write(tmp_path, 'app', _APP_MANIFEST)
        assert patch_manifest(path, _versions(testkit='0.5.0', macros='0.4.0'), package_name='app')
        doc = tomlkit.parse(path.read_text(encoding='utf-8'))
        assert 'version' not in doc['dev-dependencies']['testkit']
        assert doc['dependencies']['macros']['version'] == '0.4.0'

    def test_workspace_dependencies(self, tmp_path: Path) -> None:
        """Test a virtual root manifest's [workspace.dependencies] is rewritten."""
        path = tmp_path / 'Cargo.toml'
        path.write_text(
            '[workspace]\nmembers = ["core", "app"]\n\n'
            '[workspace.dependencies]\ncore = { path = "core", version = "0.1.0" }\n',
            encoding='utf-8',
        )
        assert patch_manifest(path, _versions(core='0.2.0'))
        doc = tomlkit.parse(path.read_text(encoding='utf-8'))
        assert doc['workspace']['dependencies']['core']['version'] == '0.2.0'

    def test_missing_package_table(self, tmp_path: Path) -> None:
        """Test a bumped crate whose manifest lacks [package] is a parse error."""
        path = _write(tmp_path, 'app', '[dependencies]\ncore = "0.1.0"\n')
        with pytest.raises(CargoMonoError) as exc_info:
            patch_manifest(path, _versions(app='0.2.0'), package_name='app')
        assert exc_info.value.code == E.MANIFEST_PARSE_ERROR

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Test invalid TOML raises MANIFEST_PARSE_ERROR."""
        path = _write(tmp_path, 'app', '[package\nname = "app"\n')
        with pytest.raises(CargoMonoError) as exc_info:
            patch_manifest(path, _versions(app='0.2.0'), package_name='app')
        assert exc_info.value.code == E.MANIFEST_PARSE_ERROR

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test an unreadable file raises MANIFEST_PARSE_ERROR."""
        with pytest.raises(CargoMonoError) as exc_info:
            patch_manifest(tmp_path / 'nope' / 'Cargo.toml', _versions(app='0.2.0'), package_name='app')
        assert exc_info.value.code == E.MANIFEST_PARSE_ERROR

    def test_dependency_of_wrong_shape(self, tmp_path: Path) -> None:
        """Test a bumped dependency that is neither string nor table is a structural error."""
        path = _write(tmp_path, 'app', '[package]\nname = "app"\nversion = "0.1.0"\n\n[dependencies]\ncore = 1\n')
        with pytest.raises(CargoMonoError) as exc_info:
            patch_manifest(path, _versions(core='0.2.0'), package_name='app')
        assert exc_info.value.code == E.MANIFEST_STRUCTURE_ERROR

    def test_odd_entry_for_unrelated_crate_ignored(self, tmp_path: Path) -> None:
        """Test oddly shaped entries for crates that were not bumped are ignored."""
        path = _write(
            tmp_path,
            'app',
            '[package]\nname = "app"\nversion = "0.1.0"\n\n[dependencies]\nweird = 1\ncore = "0.1.0"\n',
        )
        assert patch_manifest(path, _versions(core='0.2.0'), package_name='app')

    def test_package_version_wrong_type(self, tmp_path: Path) -> None:
        """Test a non-string package version is a structural error."""
        path = _write(tmp_path, 'app', '[package]\nname = "app"\nversion = 1\n')
        with pytest.raises(CargoMonoError) as exc_info:
            patch_manifest(path, _versions(app='0.2.0'), package_name='app')
        assert exc_info.value.code == E.MANIFEST_STRUCTURE_ERROR


class TestApply:
    """Tests for apply() and apply_all()."""

    def test_apply_uses_package_name(self, tmp_path: Path) -> None:
        """Test apply() sets the package's own version."""
        path = _write(tmp_path, 'core', '[package]\nname = "core"\nversion = "0.1.0"\n')
        core = pkg('core', root=tmp_path)
        assert core.manifest_path == path
        assert apply(core, _versions(core='0.2.0'))
        assert 'version = "0.2.0"' in path.read_text(encoding='utf-8')

    @pytest.mark.asyncio
    async def test_apply_all_scenario(self, tmp_path: Path) -> None:
        """Test A and B are both rewritten for {A: 0.2.0, B: 0.2.0}."""
        a_path = _write(tmp_path, 'a', '[package]\nname = "a"\nversion = "0.1.0"\n')
        b_path = _write(
            tmp_path,
            'b',
            '[package]\nname = "b"\nversion = "0.1.0"\n\n[dependencies]\na = { path = "../a", version = "0.1" }\n',
        )
        packages = [pkg('a', root=tmp_path), pkg('b', deps=[dep('a', '^0.1')], root=tmp_path)]
        changed = await apply_all(packages, _versions(a='0.2.0', b='0.2.0'))
        assert changed == [a_path, b_path]
        b_doc = tomlkit.parse(b_path.read_text(encoding='utf-8'))
        assert b_doc['package']['version'] == '0.2.0'
        assert b_doc['dependencies']['a']['version'] == '0.2.0'
        assert tomlkit.parse(a_path.read_text(encoding='utf-8'))['package']['version'] == '0.2.0'

    @pytest.mark.asyncio
    async def test_apply_all_skips_unaffected(self, tmp_path: Path) -> None:
        """Test manifests of unaffected crates are never opened."""
        _write(tmp_path, 'a', '[package]\nname = "a"\nversion = "0.1.0"\n')
        packages = [pkg('a', root=tmp_path), pkg('ghost', root=tmp_path)]
        changed = await apply_all(packages, _versions(a='0.2.0'))
        assert [p.parent.name for p in changed] == ['a']

    @pytest.mark.asyncio
    async def test_apply_all_root_manifest(self, tmp_path: Path) -> None:
        """Test the virtual root manifest is patched for workspace dependencies."""
        _write(tmp_path, 'a', '[package]\nname = "a"\nversion = "0.1.0"\n')
        root = tmp_path / 'Cargo.toml'
        root.write_text('[workspace.dependencies]\na = { path = "a", version = "0.1.0" }\n', encoding='utf-8')
        changed = await apply_all([pkg('a', root=tmp_path)], _versions(a='0.2.0'), workspace_manifest=root)
        assert changed[-1] == root
        assert 'version = "0.2.0"' in root.read_text(encoding='utf-8')

    @pytest.mark.asyncio
    async def test_apply_all_missing_root_manifest(self, tmp_path: Path) -> None:
        """Test a missing root manifest is not an error."""
        _write(tmp_path, 'a', '[package]\nname = "a"\nversion = "0.1.0"\n')
        changed = await apply_all(
            [pkg('a', root=tmp_path)], _versions(a='0.2.0'), workspace_manifest=tmp_path / 'Cargo.toml'
        )
        assert len(changed) == 1
