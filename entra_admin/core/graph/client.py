"""Low-level HTTP client for the Microsoft Graph API.

Handles client-credential authentication, token caching and HTTP operations.
"""
from __future__ import annotations
from typing import Optional, Dict, Protocol

import requests

from .exceptions import GraphAPIError, GraphConfigurationError

DEFAULT_AUTHORITY = "https://login.microsoftonline.com"
DEFAULT_SCOPE = "https://graph.microsoft.com/.default"
DEFAULT_GRAPH_ROOT = "https://graph.microsoft.com/v1.0"
REQUEST_TIMEOUT = 30


class BearerTokenProvider(Protocol):
    """Anything that can acquire and cache a bearer credential."""

    def get_token(self) -> str:
        ...

    def reset_token(self) -> None:
        ...


class ClientCredentialsTokenProvider:
    """Acquire a Graph access token with the OAuth2 client credentials grant.

    The token is cached for the lifetime of the provider; there is no expiry
    tracking, call reset_token() to force a new exchange.

    Usage:
        provider = ClientCredentialsTokenProvider(tenant_id, client_id, secret)
        token = provider.get_token()
    """

    def __init__(
        self,
        tenant_id: Optional[str],
        client_id: Optional[str],
        client_secret: Optional[str],
        authority: str = DEFAULT_AUTHORITY,
        scope: str = DEFAULT_SCOPE,
        timeout: float = REQUEST_TIMEOUT,
    ):
        """Initialize the provider.

        Args:
            tenant_id: Entra ID tenant (directory) id
            client_id: App registration client id
            client_secret: App registration client secret
            authority: Token authority base URL
            scope: Scope requested for the token
            timeout: HTTP timeout in seconds

        Raises:
            GraphConfigurationError: If any credential is missing
        """
        if not tenant_id or not client_id or not client_secret:
            raise GraphConfigurationError("Missing required Microsoft Graph environment variables.")
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.authority = authority.rstrip("/")
        self.scope = scope
        self.timeout = timeout
        self._token: Optional[str] = None

    @property
    def token_url(self) -> str:
        return f"{self.authority}/{self.tenant_id}/oauth2/v2.0/token"

    def get_token(self) -> str:
        """Return the cached token, exchanging client credentials on first use.

        Raises:
            GraphAPIError: If the token endpoint does not answer 200
        """
        if self._token:
            return self._token

        data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scope": self.scope,
        }
        url = self.token_url
        resp = requests.post(
            url,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=self.timeout,
        )
        if resp.status_code != 200:
            raise GraphAPIError(resp.status_code, resp.text, url)
        self._token = resp.json()["access_token"]
        return self._token

    def reset_token(self) -> None:
        """Drop the cached token so the next call re-authenticates."""
        self._token = None


class GraphClient:
    """HTTP client for Microsoft Graph with bearer authentication.

    Features:
    - Token resolved through a BearerTokenProvider
    - Centralized error handling

    Usage:
        client = GraphClient(ClientCredentialsTokenProvider(tenant, cid, secret))
        response = client.get("/users", params={"$top": 999})
    """

    def __init__(
        self,
        token_provider: BearerTokenProvider,
        graph_root: str = DEFAULT_GRAPH_ROOT,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.token_provider = token_provider
        self.graph_root = graph_root.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls, cfg) -> "GraphClient":
        """Build a client and its token provider from an AppConfig.

        Raises:
            GraphConfigurationError: Naming every missing credential
        """
        if cfg.missing_graph_settings:
            raise GraphConfigurationError(
                "Missing required Microsoft Graph environment variables: "
                + ", ".join(cfg.missing_graph_settings)
            )
        provider = ClientCredentialsTokenProvider(
            cfg.tenant_id,
            cfg.client_id,
            cfg.client_secret,
            authority=cfg.graph_authority,
            scope=cfg.graph_scope,
            timeout=cfg.request_timeout,
        )
        return cls(provider, graph_root=cfg.graph_root, timeout=cfg.request_timeout)

    def ensure_token(self) -> str:
        """Resolve the bearer token up front; failures propagate to the caller."""
        return self.token_provider.get_token()

    def reset_token(self) -> None:
        self.token_provider.reset_token()

    def _headers(self, extra: Optional[Dict] = None) -> Dict[str, str]:
        headers = dict(extra or {})
        headers["Authorization"] = f"Bearer {self.token_provider.get_token()}"
        return headers

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with bearer authentication.

        Args:
            path: API endpoint path (e.g., "/users")
            params: Query parameters ($filter, $select, $top)
            **kwargs: Additional arguments for requests.get

        Returns:
            Response object

        Raises:
            GraphAPIError: On HTTP error
        """
        url = f"{self.graph_root}{path}"
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.get(url, params=params, headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp)
        return resp

    def post(self, path: str, json: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute POST request with bearer authentication.

        Raises:
            GraphAPIError: On HTTP error
        """
        url = f"{self.graph_root}{path}"
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.post(url, json=json, headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp)
        return resp

    def delete(self, path: str, **kwargs) -> requests.Response:
        """Execute DELETE request with bearer authentication.

        Raises:
            GraphAPIError: On HTTP error
        """
        url = f"{self.graph_root}{path}"
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.delete(url, headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp)
        return resp

    def _handle_error(self, resp: requests.Response) -> None:
        """Raise GraphAPIError when the response status indicates failure."""
        if resp.status_code >= 400:
            raise GraphAPIError(resp.status_code, resp.text, resp.url)
