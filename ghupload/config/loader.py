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

"""Configuration loading and merging for ghupload.

Configuration Layers (last wins):

1. **Built-in defaults** (DEFAULTS below)
2. **YAML file** - ``--config PATH`` or the ``GHUPLOAD_CONFIG`` environment
   variable. A flat mapping using the same keys as UploadConfig.
3. **Environment** - ``GHUPLOAD_*`` variables, with a ``.env`` file in the
   working directory loaded first via python-dotenv.

Command-line flags are applied on top by the CLI, not here.

Example YAML:
    ```yaml
    api_url: https://github.example.com/api/v3
    timeout: 60
    description: "Nightly build"
    ```

Environment Variables:

- GHUPLOAD_CONFIG: Path to the YAML file
- GHUPLOAD_API_URL: Base URL of the hosting API
- GHUPLOAD_TOKEN_CACHE_KEY: git config key holding the cached token
- GHUPLOAD_TIMEOUT: Per-request timeout in seconds
- GHUPLOAD_SKIP_TLS_VERIFICATION: 1/true/yes/on to disable TLS checks

Error Handling:

- ConfigError: Missing file, YAML parse errors, non-mapping documents,
  unknown keys or values of the wrong type
- All errors are chained with "from err" for better debugging
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
import os
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv
import yaml

from ghupload.exceptions import ConfigError
from ghupload.logging import get_global_logger

ENV_PREFIX = "GHUPLOAD_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class UploadConfig:
    """Effective settings for one run.

    Attributes:
        api_url: Base URL of the hosting API, without trailing slash.
        token_cache_key: git config key holding the cached token.
        token_note: Label attached to newly minted tokens.
        timeout: Per-request timeout in seconds (None for no timeout).
        skip_tls_verification: Disable TLS certificate verification.
        description: Default description for uploaded files.
    """

    api_url: str = "https://api.github.com"
    token_cache_key: str = "github.upload-script-token"
    token_note: str = "github-upload"
    timeout: float | None = None
    skip_tls_verification: bool = False
    description: str = ""

    def downloads_url(self, repository: str) -> str:
        return f"{self.api_url}/repos/{repository}/downloads"


DEFAULTS: dict[str, Any] = {f.name: f.default for f in fields(UploadConfig)}


# -------------------------------
# Value coercion
# -------------------------------


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _as_timeout(key: str, value: Any) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number of seconds, got {value!r}")
    try:
        timeout = float(value)
    except (TypeError, ValueError) as err:
        raise ConfigError(
            f"{key} must be a number of seconds, got {value!r}"
        ) from err
    if timeout <= 0:
        raise ConfigError(f"{key} must be positive, got {value!r}")
    return timeout


def _as_str(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string, got {value!r}")
    return value


def _coerce(raw: dict[str, Any]) -> UploadConfig:
    api_url = _as_str("api_url", raw["api_url"]).rstrip("/")
    if not api_url:
        raise ConfigError("api_url cannot be empty")

    return UploadConfig(
        api_url=api_url,
        token_cache_key=_as_str("token_cache_key", raw["token_cache_key"]),
        token_note=_as_str("token_note", raw["token_note"]),
        timeout=_as_timeout("timeout", raw["timeout"]),
        skip_tls_verification=_as_bool(
            "skip_tls_verification", raw["skip_tls_verification"]
        ),
        description=_as_str("description", raw["description"]),
    )


# -------------------------------
# Layers
# -------------------------------


def _load_yaml_file(p: Path) -> dict[str, Any]:
    """
    Load a YAML config file and return its mapping.

    Raises:
      ConfigError - when the file is missing, unparsable or not a mapping
    """
    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    except OSError as err:
        raise ConfigError(f"Could not read config file {p}: {err}") from err

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {p}")

    unknown = sorted(set(data) - set(DEFAULTS))
    if unknown:
        raise ConfigError(
            f"Unknown config key(s) in {p}: {', '.join(map(str, unknown))}"
        )
    return data


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for key in ("api_url", "token_cache_key", "timeout", "skip_tls_verification"):
        env_key = f"{ENV_PREFIX}{key.upper()}"
        if env_key in env:
            overrides[key] = env[env_key]
    return overrides


# -------------------------------
# Public API
# -------------------------------


def load_effective_config(
    config_path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> UploadConfig:
    """Build the effective configuration.

    Args:
        config_path: YAML file to load. Falls back to GHUPLOAD_CONFIG.
        env: Environment mapping. When None, ``.env`` is loaded with
            python-dotenv and os.environ is used.

    Returns:
        The merged, validated configuration.

    Raises:
        ConfigError: If the YAML file or any value is invalid.

    Example:
        ```python
        config = load_effective_config(Path("ghupload.yaml"))
        print(config.api_url)
        ```
    """
    logger = get_global_logger()

    if env is None:
        load_dotenv(find_dotenv(usecwd=True))
        env = os.environ

    merged = dict(DEFAULTS)

    if config_path is None and env.get(f"{ENV_PREFIX}CONFIG"):
        config_path = Path(env[f"{ENV_PREFIX}CONFIG"])

    if config_path is not None:
        logger.verbose("CONFIG", f"Loading config file: {config_path}")
        merged.update(_load_yaml_file(Path(config_path)))

    overrides = _env_overrides(env)
    for key in overrides:
        logger.verbose("CONFIG", f"Override from environment: {key}")
    merged.update(overrides)

    config = _coerce(merged)
    logger.debug("CONFIG", f"API URL: {config.api_url}")
    logger.debug("CONFIG", f"Token cache key: {config.token_cache_key}")
    return config
