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

"""Thin wrappers around ``git config`` for ghupload.

Two things come from git: the cached API token (a user-global config key)
and the default target repository (parsed from ``remote.origin.url``).

Example:
    ```python
    from ghupload.vcs import git_config_get, repository_from_remote_url

    url = git_config_get("remote.origin.url")
    repo = repository_from_remote_url(url)  # 'acme/tools'
    ```
"""

from __future__ import annotations

import re
import subprocess

from ghupload.exceptions import ConfigError

# git@github.com:owner/name.git, ssh://git@github.com/owner/name.git,
# https://github.com/owner/name(.git)
_REMOTE_PATTERNS = (
    re.compile(r"^git@github\.com:(?P<repo>[^/]+/[^/]+?)(?:\.git)?/?$"),
    re.compile(
        r"^(?:https?|ssh|git)://(?:[^@/]+@)?github\.com(?::\d+)?/"
        r"(?P<repo>[^/]+/[^/]+?)(?:\.git)?/?$"
    ),
)


def _run_git(args: list[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        ["git", *args],
        capture_output=True,
        text=True,
        check=False,
        timeout=30,
    )


def git_config_get(key: str, *, global_only: bool = False) -> str | None:
    """Read a git config value.

    Args:
        key: Config key (e.g., "remote.origin.url").
        global_only: Read only from the user-global config.

    Returns:
        The stripped value, or None when the key is unset, git is not
            installed, or the command fails.
    """
    args = ["config"]
    if global_only:
        args.append("--global")
    args += ["--get", key]

    try:
        result = _run_git(args)
    except (OSError, subprocess.TimeoutExpired):
        return None

    if result.returncode != 0:
        return None

    value = result.stdout.strip()
    return value or None


def git_config_set_global(key: str, value: str) -> None:
    """Write a value to the user-global git config.

    Raises:
        ConfigError: If git is missing or the write fails.
    """
    try:
        result = _run_git(["config", "--global", key, value])
    except (OSError, subprocess.TimeoutExpired) as err:
        raise ConfigError(f"Could not run git to store {key}: {err}") from err

    if result.returncode != 0:
        error_msg = f"git config --global {key} failed (exit code {result.returncode})"
        if result.stderr:
            error_msg += f"\n{result.stderr.strip()}"
        raise ConfigError(error_msg)


def repository_from_remote_url(url: str) -> str | None:
    """Extract "owner/name" from a GitHub remote URL.

    Example:
        ```python
        repository_from_remote_url("git@github.com:acme/tools.git")  # 'acme/tools'
        repository_from_remote_url("https://github.com/acme/tools")  # 'acme/tools'
        repository_from_remote_url("https://gitlab.com/acme/tools")  # None
        ```
    """
    url = url.strip()
    for pattern in _REMOTE_PATTERNS:
        match = pattern.match(url)
        if match:
            return match.group("repo")
    return None


def default_repository() -> str | None:
    """Repository of the current checkout's ``origin`` remote, if any."""
    url = git_config_get("remote.origin.url")
    if not url:
        return None
    return repository_from_remote_url(url)
