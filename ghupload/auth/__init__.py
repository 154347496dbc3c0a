"""Authentication for ghupload.

Public API:

- Credentials: Token override, username/password and flags
- TokenManager: Resolves the token for a run (override, cache or mint)
- TokenState: States of the resolution state machine
- CredentialPrompter / ConsolePrompter: Interactive credential input
- TokenCache / GitConfigTokenCache: Persistent token storage

"""

from .token_cache import DEFAULT_TOKEN_CACHE_KEY, GitConfigTokenCache, TokenCache
from .token_manager import (
    ConsolePrompter,
    CredentialPrompter,
    Credentials,
    TokenManager,
    TokenState,
)

__all__ = [
    "DEFAULT_TOKEN_CACHE_KEY",
    "GitConfigTokenCache",
    "TokenCache",
    "ConsolePrompter",
    "CredentialPrompter",
    "Credentials",
    "TokenManager",
    "TokenState",
]
