"""
Pytest configuration and shared fixtures for ghupload tests.

This module provides reusable fixtures and test utilities used across
the test suite.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from ghupload.config import UploadConfig
from ghupload.io import HttpTransport
from ghupload.logging import SilentLogger, set_global_logger

API = "https://api.github.com"
S3_URL = "https://github.s3.amazonaws.com/"


class FakeTokenCache:
    """In-memory token cache that records writes."""

    def __init__(self, token: str | None = None) -> None:
        self.token = token
        self.loads = 0
        self.stored: list[str] = []

    def load(self) -> str | None:
        self.loads += 1
        return self.token

    def store(self, token: str) -> None:
        self.stored.append(token)
        self.token = token


class FakePrompter:
    """Prompter that answers from fixed values and counts prompts."""

    def __init__(self, username: str = "octocat", password: str = "hunter2") -> None:
        self.username = username
        self.password = password
        self.prompts: list[str] = []

    def prompt_username(self) -> str:
        self.prompts.append("username")
        return self.username

    def prompt_password(self) -> str:
        self.prompts.append("password")
        return self.password


@pytest.fixture(autouse=True)
def silent_global_logger():
    """Keep the global logger silent between tests."""
    set_global_logger(SilentLogger())
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def config() -> UploadConfig:
    """Provide the default configuration."""
    return UploadConfig()


@pytest.fixture
def transport() -> HttpTransport:
    """Provide a transport (requests are intercepted by requests_mock)."""
    with HttpTransport() as t:
        yield t


@pytest.fixture
def make_token_cache():
    """
    Factory fixture for in-memory token caches.

    Usage:
        cache = make_token_cache("cached-token")
    """
    return FakeTokenCache


@pytest.fixture
def token_cache() -> FakeTokenCache:
    """Provide an empty in-memory token cache."""
    return FakeTokenCache()


@pytest.fixture
def prompter() -> FakePrompter:
    """Provide a prompter with fixed credentials."""
    return FakePrompter()


@pytest.fixture
def create_file(tmp_test_dir: Path):
    """
    Factory fixture for creating files to upload.

    Usage:
        path = create_file("report.pdf", b"%PDF-1.4 ...")
    """

    def _create(filename: str, content: bytes) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _create


@pytest.fixture
def registration_response() -> dict[str, Any]:
    """
    Provide a successful registration response body.

    Mirrors the fields the downloads API returns on 201 Created.
    """
    return {
        "url": f"{API}/repos/acme/tools/downloads/42",
        "id": 42,
        "name": "report.pdf",
        "description": "",
        "size": 1024,
        "content_type": "application/pdf",
        "s3_url": S3_URL,
        "path": "downloads/acme/tools/report.pdf",
        "acl": "public-read",
        "accesskeyid": "AKIAEXAMPLE",
        "policy": "eyJleHBpcmF0aW9uIjoiMjAxMi0wMS0wMVQwMDowMDowMC4wWiJ9",
        "signature": "c2lnbmF0dXJl",
        "mime_type": "application/pdf",
        "redirect": False,
    }
