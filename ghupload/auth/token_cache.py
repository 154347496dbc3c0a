# Copyright 2025 Roger Cibrian
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

"""Persistent storage for the API token.

The token lives in the user-global git config under a single key, so it is
shared by every checkout on the machine. It is read once per run and written
only after a fresh, non-ephemeral token has been minted.
"""

from __future__ import annotations

from typing import Protocol

from ghupload.vcs import git_config_get, git_config_set_global

DEFAULT_TOKEN_CACHE_KEY = "github.upload-script-token"


class TokenCache(Protocol):
    """Protocol for token cache implementations."""

    def load(self) -> str | None:
        """Return the cached token, or None if there is none."""
        ...

    def store(self, token: str) -> None:
        """Persist a token, replacing any previous one."""
        ...


class GitConfigTokenCache:
    """Token cache backed by ``git config --global``.

    Example:
        ```python
        cache = GitConfigTokenCache()
        token = cache.load()
        if token is None:
            cache.store(new_token)
        ```
    """

    def __init__(self, key: str = DEFAULT_TOKEN_CACHE_KEY) -> None:
        self.key = key

    def load(self) -> str | None:
        return git_config_get(self.key, global_only=True)

    def store(self, token: str) -> None:
        git_config_set_global(self.key, token)
