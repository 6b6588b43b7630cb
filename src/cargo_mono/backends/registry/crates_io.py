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

"""crates.io sparse index backend.

The :class:`CratesIoIndex` implements the
:class:`~cargo_mono.backends.registry.Registry` protocol by reading the
`sparse index <https://doc.rust-lang.org/cargo/reference/registry-index.html>`_
that cargo itself uses. Each crate has one file whose lines are JSON
descriptors of a single published version::

    {"name":"serde","vers":"1.0.200","deps":[...],"cksum":"...","yanked":false}

File layout (name lowercased)::

    a          → 1/a
    ab         → 2/ab
    abc        → 3/a/abc
    serde      → se/rd/serde

A 404 means the crate was never published. Yanked versions are kept: the
number is taken on the registry even though new builds will not pick it.
"""

from __future__ import annotations

import json

import httpx

from cargo_mono.errors import CargoMonoError, E
from cargo_mono.logging import get_logger
from cargo_mono.net import DEFAULT_POOL_SIZE, DEFAULT_TIMEOUT, http_client

log = get_logger('cargo_mono.backends.registry.crates_io')


def index_path(crate_name: str) -> str:
    """Return the sparse-index path of ``crate_name``, without a leading slash."""
    name = crate_name.lower()
    if not name:
        raise ValueError('crate name must not be empty')
    if len(name) == 1:
        return f'1/{name}'
    if len(name) == 2:
        return f'2/{name}'
    if len(name) == 3:
        return f'3/{name[0]}/{name}'
    return f'{name[0:2]}/{name[2:4]}/{name}'


def parse_index_file(crate_name: str, body: str) -> list[str]:
    """Extract the ``vers`` field of every line of an index file.

    Raises:
        CargoMonoError: If a non-empty line is not a JSON object with a
            string ``vers`` field.
    """
    versions: list[str] = []
    for lineno, line in enumerate(body.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
            vers = entry['vers']
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            raise CargoMonoError(
                code=E.REGISTRY_LOOKUP_FAILED,
                message=f"Malformed index entry for '{crate_name}' on line {lineno}: {exc!r}",
            ) from exc
        if not isinstance(vers, str):
            raise CargoMonoError(
                code=E.REGISTRY_LOOKUP_FAILED,
                message=f"Malformed index entry for '{crate_name}' on line {lineno}: vers is {vers!r}",
            )
        versions.append(vers)
    return versions


class CratesIoIndex:
    """crates.io :class:`~cargo_mono.backends.registry.Registry` implementation.

    Results are cached per instance, so a crate looked up by both the
    resolver and the scheduler in one run is fetched once.

    Args:
        base_url: Root of the sparse index.
        pool_size: HTTP connection pool size.
        timeout: HTTP request timeout in seconds.
    """

    #: Root of the production crates.io sparse index.
    DEFAULT_BASE_URL: str = 'https://index.crates.io'

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        pool_size: int = DEFAULT_POOL_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize with the index root, pool size, and timeout."""
        self._base_url = base_url.rstrip('/')
        self._pool_size = pool_size
        self._timeout = timeout
        self._cache: dict[str, list[str]] = {}

    def url_for(self, crate_name: str) -> str:
        """Return the index file URL of ``crate_name``."""
        return f'{self._base_url}/{index_path(crate_name)}'

    async def list_versions(self, package_name: str) -> list[str]:
        """Return every published version of ``package_name``.

        Returns:
            Version strings in index order (oldest first). An empty list
            means the crate is not on the registry.

        Raises:
            CargoMonoError: On transport errors, unexpected HTTP statuses,
                or malformed index lines.
        """
        cached = self._cache.get(package_name)
        if cached is not None:
            return list(cached)

        url = self.url_for(package_name)
        try:
            async with http_client(pool_size=self._pool_size, timeout=self._timeout) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            raise CargoMonoError(
                code=E.REGISTRY_LOOKUP_FAILED,
                message=f"Request for '{package_name}' to {url} failed: {exc!r}",
            ) from exc

        if response.status_code == 404:
            log.debug('crate_not_in_index', crate=package_name, url=url)
            versions: list[str] = []
        elif response.status_code == 200:
            versions = parse_index_file(package_name, response.text)
            log.debug('crate_index_fetched', crate=package_name, versions=len(versions))
        else:
            raise CargoMonoError(
                code=E.REGISTRY_LOOKUP_FAILED,
                message=f"Index returned HTTP {response.status_code} for '{package_name}' ({url})",
            )

        self._cache[package_name] = versions
        return list(versions)


__all__ = [
    'CratesIoIndex',
    'index_path',
    'parse_index_file',
]
