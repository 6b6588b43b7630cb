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

"""Semantic version policy for crate bumps.

Cargo treats the left-most non-zero component as the compatibility axis,
so a breaking change in a ``0.x`` crate moves the minor component while
the same change in a ``1.x`` crate moves the major component::

    previous   breaking   result
    ─────────  ─────────  ───────
    0.1.4      yes        0.2.0
    0.1.4      no         0.1.5
    1.3.2      yes        2.0.0
    1.3.2      no         1.3.3

Pre-release and build metadata never survive a bump; the result is always
a plain release strictly greater than its input.
"""

from __future__ import annotations

import semver

from cargo_mono.errors import CargoMonoError, E

#: Baseline used for crates that have never been published.
ZERO_VERSION = semver.Version(0, 0, 0)


def parse_version(text: str) -> semver.Version:
    """Parse a Cargo version string into a :class:`semver.Version`.

    Raises:
        CargoMonoError: If ``text`` is not a valid semantic version.
    """
    try:
        return semver.Version.parse(text.strip())
    except (TypeError, ValueError) as exc:
        raise CargoMonoError(
            code=E.VERSION_INVALID,
            message=f'Invalid version {text!r}: {exc}',
        ) from exc


def bump(previous: semver.Version, breaking: bool) -> semver.Version:
    """Return the version that follows ``previous``.

    Args:
        previous: The currently published version.
        breaking: Whether the change breaks compatibility.

    Returns:
        The bumped version, always greater than ``previous``.
    """
    if breaking:
        if previous.major == 0:
            return previous.bump_minor()
        return previous.bump_major()
    return previous.bump_patch()


__all__ = [
    'ZERO_VERSION',
    'bump',
    'parse_version',
]
