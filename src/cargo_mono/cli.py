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

"""CLI entry point for cargo-mono.

Constructs backend instances and injects them into the bump and publish
workflows.

Subcommands::

    cargo-mono bump       Bump crates and everything that has to move with them
    cargo-mono publish    Publish crates to crates.io in dependency order
    cargo-mono explain    Explain an error code

Usage::

    # Breaking change in core, commit the result:
    cargo-mono bump core --breaking --git

    # Several crates at once:
    cargo-mono bump core,macros --with-dependants

    # Publish app and whatever it needs:
    cargo-mono publish app

    # Publish everything that is newer than crates.io:
    cargo-mono publish

    # Explain an error:
    cargo-mono explain CM-GRAPH-CYCLE-DETECTED
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.console import Console
from rich_argparse import RichHelpFormatter

from cargo_mono import __version__
from cargo_mono.backends.cargo import CargoPublisher
from cargo_mono.backends.registry import CratesIoIndex
from cargo_mono.bump import BumpOptions, bump_workspace, plan_table
from cargo_mono.config import CargoMonoConfig, load_config
from cargo_mono.errors import CargoMonoError, explain, render_error
from cargo_mono.graph import ALL_TARGETS
from cargo_mono.logging import configure_logging, get_logger
from cargo_mono.prompt import RichPrompter
from cargo_mono.publisher import PublishConfig, publish_workspace
from cargo_mono.workspace import Workspace, load_workspace

logger = get_logger(__name__)


def _split_crates(values: list[str]) -> list[str]:
    """Flatten ``['a,b', 'c']`` into ``['a', 'b', 'c']``, keeping order."""
    names: list[str] = []
    for value in values:
        for name in value.split(','):
            name = name.strip()
            if name and name not in names:
                names.append(name)
    return names


async def _load(args: argparse.Namespace) -> tuple[Workspace, CargoMonoConfig]:
    workspace = await load_workspace()
    config_path = Path(args.config) if args.config else None
    config = load_config(workspace.root, path=config_path)
    return workspace, config


def _registry(config: CargoMonoConfig) -> CratesIoIndex:
    return CratesIoIndex(
        base_url=config.registry_url,
        pool_size=config.http_pool_size,
        timeout=config.http_timeout,
    )


async def _cmd_bump(args: argparse.Namespace) -> int:
    """Handle the ``bump`` subcommand."""
    workspace, config = await _load(args)
    targets = _split_crates(args.crates)
    if not targets:
        print('No crate names given.', file=sys.stderr)  # noqa: T201 - CLI output
        return 2

    allow_not_found = config.allow_not_found if args.allow_not_found is None else args.allow_not_found
    options = BumpOptions(
        breaking=args.breaking,
        with_dependants=args.with_dependants,
        interactive=args.interactive,
        allow_not_found=allow_not_found,
        git=args.git,
        dry_run=args.dry_run,
        wildcard_unpublishable=config.wildcard_unpublishable,
        commit_message=config.commit_message,
    )
    result = await bump_workspace(
        workspace,
        targets,
        registry=_registry(config),
        options=options,
        prompter=RichPrompter() if args.interactive else None,
    )

    console = Console()
    if not result.versions:
        console.print('Nothing to bump.')
        return 0
    console.print(plan_table(workspace, result.versions))
    if args.dry_run:
        console.print('[dim]Dry run: no manifest was changed.[/dim]')
    else:
        console.print(f'Rewrote {len(result.changed)} manifest(s).')
    if result.committed:
        console.print(f'Committed: {config.commit_message}')
    return 0


async def _cmd_publish(args: argparse.Namespace) -> int:
    """Handle the ``publish`` subcommand."""
    workspace, config = await _load(args)
    allow_not_found = config.allow_not_found if args.allow_not_found is None else args.allow_not_found
    publish_config = PublishConfig(
        target=args.crate,
        allow_only_deps=args.allow_only_deps,
        no_verify=args.no_verify,
        dry_run=args.dry_run,
        delay=config.publish_delay,
        allow_not_found=allow_not_found,
        wildcard_unpublishable=config.wildcard_unpublishable,
    )
    result = await publish_workspace(
        workspace.packages,
        registry=_registry(config),
        publisher=CargoPublisher(),
        config=publish_config,
    )
    Console().print(f'Publish finished: {result.summary()}')
    return 0


def _cmd_explain(args: argparse.Namespace) -> int:
    """Handle the ``explain`` subcommand."""
    result = explain(args.code)
    if result is None:
        print(f'Unknown error code: {args.code}')  # noqa: T201 - CLI output
        return 1
    print(result)  # noqa: T201 - CLI output
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser.

    Returns:
        Configured :class:`argparse.ArgumentParser`.
    """
    RichHelpFormatter.styles['argparse.groups'] = 'bold yellow'
    parser = argparse.ArgumentParser(
        prog='cargo-mono',
        description='Version bumping and ordered publishing for Cargo workspaces.',
        formatter_class=RichHelpFormatter,
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}',
    )
    parser.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Show debug logs.',
    )
    parser.add_argument(
        '--quiet',
        '-q',
        action='store_true',
        help='Only show warnings and errors.',
    )
    parser.add_argument(
        '--json-log',
        action='store_true',
        help='Emit logs as JSON lines.',
    )
    parser.add_argument(
        '--config',
        metavar='PATH',
        default=None,
        help='Path to cargo-mono.toml (default: at the workspace root).',
    )

    subparsers = parser.add_subparsers(dest='command')

    bump_parser = subparsers.add_parser(
        'bump',
        help='Bump crates and everything that has to move with them.',
        formatter_class=RichHelpFormatter,
    )
    bump_parser.add_argument(
        'crates',
        nargs='+',
        metavar='CRATES',
        help='Crates that changed, comma-separated or repeated.',
    )
    bump_parser.add_argument(
        '--breaking',
        action='store_true',
        help='The change is breaking: bump dependants too.',
    )
    bump_parser.add_argument(
        '--with-dependants',
        action='store_true',
        help='Bump dependants even for non-breaking changes.',
    )
    bump_parser.add_argument(
        '--interactive',
        '-i',
        action='store_true',
        help='Ask per crate whether the change is breaking.',
    )
    bump_parser.add_argument(
        '--git',
        action='store_true',
        help='Commit the rewritten manifests and Cargo.lock.',
    )
    bump_parser.add_argument(
        '--allow-not-found',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Treat crates missing from the registry as 0.0.0 (default: from config).',
    )
    bump_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show the new versions without writing anything.',
    )

    publish_parser = subparsers.add_parser(
        'publish',
        help='Publish crates to crates.io in dependency order.',
        formatter_class=RichHelpFormatter,
    )
    publish_parser.add_argument(
        'crate',
        nargs='?',
        default=ALL_TARGETS,
        metavar='CRATE',
        help='Crate to publish, along with its dependencies and dependants (default: all).',
    )
    publish_parser.add_argument(
        '--allow-only-deps',
        action='store_true',
        help='Publish the dependencies even if CRATE itself is already published.',
    )
    publish_parser.add_argument(
        '--no-verify',
        action='store_true',
        help='Pass --no-verify to cargo publish.',
    )
    publish_parser.add_argument(
        '--allow-not-found',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Treat crates missing from the registry as 0.0.0 (default: from config).',
    )
    publish_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Log the cargo commands without running them.',
    )

    explain_parser = subparsers.add_parser(
        'explain',
        help='Explain an error code.',
    )
    explain_parser.add_argument(
        'code',
        help='Error code (e.g. CM-GRAPH-CYCLE-DETECTED).',
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet, json_log=args.json_log)

    try:
        command = args.command
        if command == 'bump':
            return asyncio.run(_cmd_bump(args))
        if command == 'publish':
            return asyncio.run(_cmd_publish(args))
        if command == 'explain':
            return _cmd_explain(args)

        parser.print_help()  # noqa: T201 - CLI output
        print(  # noqa: T201 - CLI output
            f'\n{parser.prog}: error: please provide a command',
            file=sys.stderr,
        )
        return 2

    except CargoMonoError as exc:
        render_error(exc)
        return 1
    except KeyboardInterrupt:
        logger.info('interrupted')
        return 130


def _main() -> None:
    """Wrapper for pyproject.toml [project.scripts] entry point."""
    sys.exit(main())


__all__ = [
    'build_parser',
    'main',
]
