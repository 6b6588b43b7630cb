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

"""Registry protocol for cargo-mono.

The :class:`Registry` protocol is the one question cargo-mono asks a
package registry: which versions of this crate exist? The production
implementation is
:class:`~cargo_mono.backends.registry.crates_io.CratesIoIndex`.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cargo_mono.backends.registry.crates_io import CratesIoIndex as CratesIoIndex

__all__ = [
    'CratesIoIndex',
    'Registry',
]


@runtime_checkable
class Registry(Protocol):
    """Protocol for registry version queries."""

    async def list_versions(self, package_name: str) -> list[str]:
        """Return all published version strings of a crate.

        Args:
            package_name: Crate name on the registry.

        Returns:
            The version strings in registry order. An empty list means
            the crate has never been published.

        Raises:
            CargoMonoError: If the registry cannot be queried or answers
                with something unreadable.
        """
        ...
