"""Microsoft Graph specific exceptions for error handling."""


class GraphError(Exception):
    """Base exception for all Microsoft Graph operations."""
    pass


class GraphAPIError(GraphError):
    """HTTP error from Microsoft Graph or the token authority.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class GraphConfigurationError(GraphError):
    """Tenant id, client id or client secret is missing."""
    pass


class UserNotFoundError(GraphError):
    """Directory lookup returned no matching user."""
    pass


class DuplicateUserError(GraphError):
    """An active user already owns the mail of a deleted user being restored."""
    pass
