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

"""Shared test fakes for cargo-mono.

Provides reusable fake implementations of the Registry, Prompter, and
Publisher protocols, plus a small package builder, so that individual
test modules don't need to duplicate boilerplate classes.

Usage::

    from tests._fakes import FakePrompter, FakePublisher, FakeRegistry, pkg

    registry = FakeRegistry({'core': ['0.1.0']})
    core = pkg('core', '0.1.0')
"""

from tests._fakes._prompt import FakePrompter as FakePrompter
from tests._fakes._publisher import FakePublisher as FakePublisher
from tests._fakes._registry import FakeRegistry as FakeRegistry, lookup_error as lookup_error
from tests._fakes._workspace import dep as dep, pkg as pkg

__all__ = [
    'FakePrompter',
    'FakePublisher',
    'FakeRegistry',
    'dep',
    'lookup_error',
    'pkg',
]
