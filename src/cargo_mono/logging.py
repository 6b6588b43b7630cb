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

"""Structured logging for cargo-mono.

Events go to stderr through `structlog <https://www.structlog.org/>`_,
either colored for a terminal or as JSON lines with ``--json-log``.
``cargo publish`` diagnostics are streamed to stderr as well, so stdout
only ever carries the bump plan.

httpx logs one INFO line per registry request. Its loggers stay at
WARNING unless ``--verbose`` is given.

Usage::

    from cargo_mono.logging import configure_logging, get_logger

    configure_logging(verbose=True)
    log = get_logger('cargo_mono.publisher')
    log.info('publish_started', crate='foo', version='0.2.0')
"""

from __future__ import annotations

import logging
import sys

import structlog

#: Third-party loggers that are only useful when debugging.
CHATTY_LOGGERS = ('httpx', 'httpcore')


def _level(*, verbose: bool, quiet: bool) -> int:
    if quiet:
        return logging.WARNING
    if verbose:
        return logging.DEBUG
    return logging.INFO


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    json_log: bool = False,
) -> None:
    """Route structlog through the standard library root logger.

    ``quiet`` wins over ``verbose``. Safe to call more than once; each
    call replaces the previous configuration.
    """
    level = _level(verbose=verbose, quiet=quiet)
    logging.basicConfig(
        format='%(message)s',
        stream=sys.stderr,
        level=level,
        force=True,
    )
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose and not quiet else logging.WARNING)

    if json_log:
        timestamper = structlog.processors.TimeStamper(fmt='iso', utc=True)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        timestamper = structlog.processors.TimeStamper(fmt='%H:%M:%S', utc=False)
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            timestamper,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


def get_logger(name: str = 'cargo_mono') -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger named ``name``."""
    return structlog.get_logger(name)


__all__ = [
    'CHATTY_LOGGERS',
    'configure_logging',
    'get_logger',
]
