"""Typed exception hierarchy for provider errors.

Provides structured exceptions for differentiated error handling
(auth errors vs transient network errors vs data issues).
"""


class ProviderError(Exception):
    """Base exception for all provider-related errors.

    Carries the provider name so callers can identify which provider failed.
    """

    def __init__(self, message: str, provider_name: str = ""):
        self.provider_name = provider_name
        super().__init__(message)

    @property
    def retriable(self) -> bool:
        return False


class ProviderAuthError(ProviderError):
    """Credentials missing, expired, or invalid (HTTP 401/403).

    Raised only after the client's single token refresh also failed, so
    the user has to re-link the connection.
    """

    pass


class ProviderConnectionError(ProviderError):
    """Network failures such as timeouts or refused connections.

    Retriable by default.
    """

    def __init__(self, message: str, provider_name: str = "", retriable: bool = True):
        self._retriable = retriable
        super().__init__(message, provider_name)

    @property
    def retriable(self) -> bool:
        return self._retriable


class ProviderAPIError(ProviderError):
    """Non-2xx responses from the provider API.

    ``error_code`` and ``provider_message`` come from the provider's error
    body (Yodlee: ``errorCode`` / ``errorMessage``) when present.
    """

    def __init__(
        self,
        message: str,
        provider_name: str = "",
        status_code: int | None = None,
        error_code: str | None = None,
        provider_message: str | None = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        self.provider_message = provider_message
        super().__init__(message, provider_name)

    @property
    def retriable(self) -> bool:
        """429 (rate limit) and 5xx errors are generally retriable."""
        if self.status_code is None:
            return False
        return self.status_code == 429 or self.status_code >= 500


class ProviderDataError(ProviderError):
    """Malformed or unparseable response from the provider."""

    pass
