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

"""Structured errors for cargo-mono.

Every fatal condition carries a ``CM-NAMED-KEY`` code, a message naming
the package and stage that failed, and an optional hint.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Concept             │ ELI5 Explanation                               │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ ErrorCode           │ A named ID like "CM-GRAPH-CYCLE-DETECTED".    │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ CargoMonoError      │ The one exception type the tool raises. The   │
    │                     │ CLI catches it, prints it and exits with 1.   │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ explain()           │ Look up a code and print what it means.       │
    └─────────────────────┴────────────────────────────────────────────────┘

Code categories::

    CM-CONFIG-*       cargo-mono.toml problems
    CM-WORKSPACE-*    cargo metadata and package lookup
    CM-REGISTRY-*     crates.io index queries
    CM-PROMPT-*       interactive answers of the wrong shape
    CM-MANIFEST-*     Cargo.toml parsing and rewriting
    CM-GRAPH-*        publish ordering
    CM-VERSION-*      version parsing and the already-published guard
    CM-PUBLISH-*      cargo publish subprocess
    CM-COMMAND-*      other external tools (git)

Usage::

    from cargo_mono.errors import CargoMonoError, E

    raise CargoMonoError(
        code=E.WORKSPACE_PACKAGE_NOT_FOUND,
        message="Package 'foo' is not a member of the workspace",
    )
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from rich.console import Console
from rich.markup import escape as rich_escape


class ErrorCode(str, Enum):
    """All cargo-mono diagnostic codes."""

    # Configuration
    CONFIG_PARSE_ERROR = 'CM-CONFIG-PARSE-ERROR'
    CONFIG_INVALID_KEY = 'CM-CONFIG-INVALID-KEY'
    CONFIG_INVALID_VALUE = 'CM-CONFIG-INVALID-VALUE'

    # Workspace
    WORKSPACE_METADATA_FAILED = 'CM-WORKSPACE-METADATA-FAILED'
    WORKSPACE_PACKAGE_NOT_FOUND = 'CM-WORKSPACE-PACKAGE-NOT-FOUND'
    WORKSPACE_PACKAGE_UNPUBLISHABLE = 'CM-WORKSPACE-PACKAGE-UNPUBLISHABLE'

    # Registry
    REGISTRY_LOOKUP_FAILED = 'CM-REGISTRY-LOOKUP-FAILED'

    # Interactive prompt
    PROMPT_PROTOCOL_ERROR = 'CM-PROMPT-PROTOCOL-ERROR'

    # Manifest
    MANIFEST_PARSE_ERROR = 'CM-MANIFEST-PARSE-ERROR'
    MANIFEST_STRUCTURE_ERROR = 'CM-MANIFEST-STRUCTURE-ERROR'

    # Graph
    GRAPH_CYCLE_DETECTED = 'CM-GRAPH-CYCLE-DETECTED'

    # Versions
    VERSION_INVALID = 'CM-VERSION-INVALID'
    VERSION_ALREADY_PUBLISHED = 'CM-VERSION-ALREADY-PUBLISHED'

    # Subprocesses
    PUBLISH_FAILED = 'CM-PUBLISH-FAILED'
    COMMAND_FAILED = 'CM-COMMAND-FAILED'


# Convenience alias for shorter imports.
E = ErrorCode


@dataclass(frozen=True)
class ErrorInfo:
    """Metadata for a single error code.

    Attributes:
        code: The ``CM-NAMED-KEY`` error code.
        message: Human-readable description of what went wrong.
        hint: Optional suggestion for how to fix the error.
    """

    code: ErrorCode
    message: str
    hint: str = ''


class CargoMonoError(Exception):
    """Base exception for all cargo-mono errors.

    Args:
        code: The error code from :class:`ErrorCode`.
        message: Human-readable description of what went wrong.
        hint: Optional suggestion for how to fix the error.
    """

    def __init__(self, code: ErrorCode, message: str, hint: str = '') -> None:
        """Initialize with an error code, message, and optional hint."""
        self.info = ErrorInfo(code=code, message=message, hint=hint)
        super().__init__(f'[{code.value}] {message}')

    @property
    def code(self) -> ErrorCode:
        """The error code."""
        return self.info.code

    @property
    def hint(self) -> str:
        """Suggestion for fixing this error, or empty string."""
        return self.info.hint


ERRORS: dict[ErrorCode, ErrorInfo] = {
    E.CONFIG_PARSE_ERROR: ErrorInfo(
        code=E.CONFIG_PARSE_ERROR,
        message='cargo-mono.toml could not be read or is not valid TOML.',
        hint='Check the file for syntax errors.',
    ),
    E.CONFIG_INVALID_KEY: ErrorInfo(
        code=E.CONFIG_INVALID_KEY,
        message='cargo-mono.toml contains a key cargo-mono does not know.',
        hint='Check the spelling; the error lists the closest valid key.',
    ),
    E.CONFIG_INVALID_VALUE: ErrorInfo(
        code=E.CONFIG_INVALID_VALUE,
        message='A value in cargo-mono.toml has the wrong type or is out of range.',
    ),
    E.WORKSPACE_METADATA_FAILED: ErrorInfo(
        code=E.WORKSPACE_METADATA_FAILED,
        message='`cargo metadata` failed or returned output that could not be read.',
        hint='Run cargo-mono from inside a Cargo workspace with cargo on PATH.',
    ),
    E.WORKSPACE_PACKAGE_NOT_FOUND: ErrorInfo(
        code=E.WORKSPACE_PACKAGE_NOT_FOUND,
        message='The named package is not a member of the workspace.',
        hint="Check the name against the [package] name in the crate's Cargo.toml.",
    ),
    E.WORKSPACE_PACKAGE_UNPUBLISHABLE: ErrorInfo(
        code=E.WORKSPACE_PACKAGE_UNPUBLISHABLE,
        message='The named package is marked `publish = false` or has a "*" requirement.',
        hint='Give every dependency a version requirement, or set wildcard_unpublishable = false.',
    ),
    E.REGISTRY_LOOKUP_FAILED: ErrorInfo(
        code=E.REGISTRY_LOOKUP_FAILED,
        message='At least one crate could not be looked up in the registry index.',
        hint=(
            'If some crates have never been published, pass --allow-not-found '
            'or set allow_not_found = true in cargo-mono.toml.'
        ),
    ),
    E.PROMPT_PROTOCOL_ERROR: ErrorInfo(
        code=E.PROMPT_PROTOCOL_ERROR,
        message='An interactive answer did not match the question that was asked.',
    ),
    E.MANIFEST_PARSE_ERROR: ErrorInfo(
        code=E.MANIFEST_PARSE_ERROR,
        message='A Cargo.toml could not be read or parsed, or lacks a [package] table.',
        hint='Run `cargo metadata` to see what cargo reports for the manifest.',
    ),
    E.MANIFEST_STRUCTURE_ERROR: ErrorInfo(
        code=E.MANIFEST_STRUCTURE_ERROR,
        message='A dependency entry in Cargo.toml is neither a string nor a table.',
        hint='Write the dependency as `name = "1.0"` or `name = { version = "1.0" }`.',
    ),
    E.GRAPH_CYCLE_DETECTED: ErrorInfo(
        code=E.GRAPH_CYCLE_DETECTED,
        message='Circular dependency detected between workspace crates.',
        hint='Break the cycle, or make one side a path-only dev-dependency.',
    ),
    E.VERSION_INVALID: ErrorInfo(
        code=E.VERSION_INVALID,
        message='A version string is not a valid semantic version.',
    ),
    E.VERSION_ALREADY_PUBLISHED: ErrorInfo(
        code=E.VERSION_ALREADY_PUBLISHED,
        message="The target crate's local version is not ahead of the published one.",
        hint="Run 'cargo-mono bump <crate>' first, or pass --allow-only-deps.",
    ),
    E.PUBLISH_FAILED: ErrorInfo(
        code=E.PUBLISH_FAILED,
        message='`cargo publish` could not be started or exited with a failure.',
        hint='Crates published before the failure stay published; fix and re-run.',
    ),
    E.COMMAND_FAILED: ErrorInfo(
        code=E.COMMAND_FAILED,
        message='A git or cargo helper command could not be run or exited with a failure.',
    ),
}


def explain(code: str) -> str | None:
    """Return a detailed explanation for an error code.

    Args:
        code: The error code string, e.g. ``"CM-GRAPH-CYCLE-DETECTED"``.

    Returns:
        A formatted explanation string, or ``None`` if the code is unknown.
    """
    try:
        error_code = ErrorCode(code)
    except ValueError:
        return None

    info = ERRORS.get(error_code)
    if info is None:
        return f'{code}: No detailed explanation available.'

    lines = [f'{code}: {info.message}']
    if info.hint:
        lines.append(f'  Hint: {info.hint}')
    return '\n'.join(lines)


def render_error(exc: CargoMonoError, *, file: TextIO | None = None) -> None:
    """Render an error in Rust-compiler style.

    Output format::

        error[CM-GRAPH-CYCLE-DETECTED]: circular dependency detected: a → b → a
          |
          = hint: Break the cycle, or make one side a path-only dev-dependency.

    Args:
        exc: The error to render.
        file: Output stream (defaults to ``sys.stderr``).
    """
    out = file or sys.stderr

    if out.isatty():
        console = Console(file=out, highlight=False)
        msg = rich_escape(exc.info.message)
        console.print(
            f'[bold red]error[/bold red][bold red]\\[{exc.code.value}][/bold red][bold]: {msg}[/bold]',
        )
        if exc.hint:
            hint = rich_escape(exc.hint)
            console.print('  [dim]|[/dim]')
            console.print(f'  [dim]=[/dim] [cyan]hint[/cyan]: {hint}')
        console.print()
    else:
        print(f'error[{exc.code.value}]: {exc.info.message}', file=out)  # noqa: T201 - CLI output
        if exc.hint:
            print('  |', file=out)  # noqa: T201 - CLI output
            print(f'  = hint: {exc.hint}', file=out)  # noqa: T201 - CLI output
        print(file=out)  # noqa: T201 - CLI output


__all__ = [
    'E',
    'ERRORS',
    'CargoMonoError',
    'ErrorCode',
    'ErrorInfo',
    'explain',
    'render_error',
]
