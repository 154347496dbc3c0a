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

"""Configuration loading for ghupload.

Settings are layered: built-in defaults, then an optional YAML file, then
``GHUPLOAD_*`` environment variables (``.env`` supported). The result is an
immutable UploadConfig that is passed explicitly to every component.

Public API:

- load_effective_config: Build the effective UploadConfig
- UploadConfig: Frozen settings dataclass

Example:
    Basic usage:

        from ghupload.config import load_effective_config

        config = load_effective_config()
        print(config.api_url)  # "https://api.github.com"

"""

from .loader import UploadConfig, load_effective_config

__all__ = ["UploadConfig", "load_effective_config"]
