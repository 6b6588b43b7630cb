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

"""Interactive questions asked during ``bump --interactive``.

The resolver only needs two kinds of question: a yes/no confirmation and
a pick-any-of-these list. Both are blocking calls; async callers offload
them with ``asyncio.to_thread``.

Answers are checked against the question that was asked, since a
:class:`Prompter` may be any object (a scripted one in tests, a remote
one in a wrapper). A yes/no answer that is not a ``bool``, or a selection
that is not a list of offered choices, raises ``PROMPT_PROTOCOL_ERROR``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from cargo_mono.errors import CargoMonoError, E


@runtime_checkable
class Prompter(Protocol):
    """Blocking request/response boundary to the operator."""

    def confirm(self, message: str) -> bool:
        """Ask a yes/no question."""
        ...

    def select(self, message: str, choices: list[str]) -> list[str]:
        """Ask the operator to pick any number of ``choices``."""
        ...


def validate_confirm(message: str, answer: object) -> bool:
    """Return ``answer`` if it is a yes/no answer.

    Raises:
        CargoMonoError: If ``answer`` is not a ``bool``.
    """
    if not isinstance(answer, bool):
        raise CargoMonoError(
            code=E.PROMPT_PROTOCOL_ERROR,
            message=f'Expected a yes/no answer to {message!r}, got {type(answer).__name__}: {answer!r}',
        )
    return answer


def validate_selection(message: str, choices: list[str], answer: object) -> list[str]:
    """Return ``answer`` if it is a list of offered choices.

    Raises:
        CargoMonoError: If ``answer`` is not a list of strings drawn from
            ``choices``.
    """
    if not isinstance(answer, list) or not all(isinstance(item, str) for item in answer):
        raise CargoMonoError(
            code=E.PROMPT_PROTOCOL_ERROR,
            message=f'Expected a list of choices for {message!r}, got {type(answer).__name__}: {answer!r}',
        )
    unknown = [item for item in answer if item not in choices]
    if unknown:
        raise CargoMonoError(
            code=E.PROMPT_PROTOCOL_ERROR,
            message=f'Answer to {message!r} names choices that were not offered: {unknown}',
        )
    return answer


def parse_indices(text: str, count: int) -> list[int] | None:
    """Parse ``"1, 3"`` into zero-based indices below ``count``.

    Returns ``None`` if any token is not a number in ``1..count``. An
    empty string selects nothing.
    """
    indices: list[int] = []
    for token in text.replace(',', ' ').split():
        if not token.isdigit():
            return None
        index = int(token) - 1
        if not 0 <= index < count:
            return None
        if index not in indices:
            indices.append(index)
    return indices


class RichPrompter:
    """Terminal :class:`Prompter` built on :mod:`rich.prompt`.

    Questions are written to stderr so the bump plan on stdout stays
    pipeable.
    """

    def __init__(self, console: Console | None = None) -> None:
        """Initialize with an optional console (defaults to stderr)."""
        self._console = console or Console(stderr=True)

    def confirm(self, message: str) -> bool:
        """Ask a yes/no question, defaulting to no."""
        return Confirm.ask(message, console=self._console, default=False)

    def select(self, message: str, choices: list[str]) -> list[str]:
        """Show numbered ``choices`` and read a comma-separated selection."""
        if not choices:
            return []
        table = Table(show_header=False, box=None, pad_edge=False)
        for number, choice in enumerate(choices, start=1):
            table.add_row(f'[cyan]{number}[/cyan]', choice)
        self._console.print(message)
        self._console.print(table)

        while True:
            raw = Prompt.ask(
                'Numbers to select (comma-separated, empty for none)',
                console=self._console,
                default='',
                show_default=False,
            )
            indices = parse_indices(raw, len(choices))
            if indices is not None:
                return [choices[i] for i in indices]
            self._console.print(f'[red]Enter numbers between 1 and {len(choices)}.[/red]')


__all__ = [
    'Prompter',
    'RichPrompter',
    'parse_indices',
    'validate_confirm',
    'validate_selection',
]
