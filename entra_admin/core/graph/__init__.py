"""Microsoft Graph client library for Entra ID user administration.

Architecture:
- client.py: token provider (client credentials) and HTTP client
- users.py: user lifecycle operations (list, delete, restore)
- exceptions.py: typed exceptions for error handling

Usage:
    from entra_admin.core.graph import GraphClient, UserService

    client = GraphClient.from_settings(load_settings())
    UserService(client).list_users()
"""
from .client import (
    BearerTokenProvider,
    ClientCredentialsTokenProvider,
    GraphClient,
    DEFAULT_AUTHORITY,
    DEFAULT_GRAPH_ROOT,
    DEFAULT_SCOPE,
    REQUEST_TIMEOUT,
)
from .exceptions import (
    GraphError,
    GraphAPIError,
    GraphConfigurationError,
    UserNotFoundError,
    DuplicateUserError,
)
from .users import (
    DirectoryUser,
    UserService,
    LOCAL_ACCOUNT,
    DELETED_USERS_PATH,
)

__all__ = [
    # Client
    "BearerTokenProvider",
    "ClientCredentialsTokenProvider",
    "GraphClient",
    "DEFAULT_AUTHORITY",
    "DEFAULT_GRAPH_ROOT",
    "DEFAULT_SCOPE",
    "REQUEST_TIMEOUT",

    # Exceptions
    "GraphError",
    "GraphAPIError",
    "GraphConfigurationError",
    "UserNotFoundError",
    "DuplicateUserError",

    # Users
    "DirectoryUser",
    "UserService",
    "LOCAL_ACCOUNT",
    "DELETED_USERS_PATH",
]
