"""Yodlee aggregator API client.

This module implements the AggregatorProvider protocol for the Yodlee
v1.1 REST API.

Authentication is two-step. The client credentials (client id + secret)
are exchanged at ``POST /auth/token`` for an access token scoped to a
login name. Data calls for a user use a token derived from that user's
session token (the Yodlee login name handed over by the linking flow);
institution lookups use a client-level token derived from the configured
admin login name. Tokens are cached per login name until they expire.
"""

import logging
import time
from datetime import date
from functools import lru_cache
from typing import Any

import httpx

from config import settings
from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
)
from integrations.provider_protocol import RawAccount, RawInstitution, RawTransaction

logger = logging.getLogger(__name__)

_AUTH_STATUS_CODES = (401, 403)

# Refresh a cached token this many seconds before Yodlee says it expires
_TOKEN_EXPIRY_MARGIN = 60.0
_DEFAULT_TOKEN_TTL = 1800.0


class YodleeClient:
    """Wrapper around the Yodlee REST API.

    Every data call derives (or reuses) an access token first. If the call
    is rejected with 401/403 the cached token is dropped, a fresh one is
    derived and the call is retried exactly once; a second rejection
    raises :class:`ProviderAuthError`.
    """

    PROVIDER_NAME = "yodlee"

    def __init__(
        self,
        client_id: str | None = None,
        secret: str | None = None,
        base_url: str | None = None,
        admin_login_name: str | None = None,
        api_version: str | None = None,
        timeout: float | None = None,
        http_client: httpx.Client | None = None,
    ):
        """Initialize the client with credentials.

        Args:
            client_id: Yodlee client id (defaults to settings).
            secret: Yodlee client secret (defaults to settings).
            base_url: API base URL (defaults to settings).
            admin_login_name: Login name used for client-level calls.
            api_version: Value of the ``Api-Version`` header.
            timeout: HTTP timeout in seconds.
            http_client: Pre-built ``httpx.Client`` (tests inject one with
                a ``MockTransport``). Must already carry the base URL.
        """
        self._client_id = client_id or settings.YODLEE_CLIENT_ID
        self._secret = secret or settings.YODLEE_SECRET
        self._base_url = base_url or settings.YODLEE_BASE_URL
        self._admin_login_name = admin_login_name or settings.YODLEE_ADMIN_LOGIN_NAME
        self._api_version = api_version or settings.YODLEE_API_VERSION
        self._timeout = timeout if timeout is not None else settings.YODLEE_TIMEOUT
        self._http_client = http_client
        # login name -> (access token, monotonic expiry)
        self._tokens: dict[str, tuple[str, float]] = {}

    @property
    def provider_name(self) -> str:
        """Return the provider name for database storage."""
        return self.PROVIDER_NAME

    def is_configured(self) -> bool:
        """Check if the client credentials are configured."""
        return bool(self._client_id) and bool(self._secret) and bool(self._base_url)

    def _check_credentials(self) -> None:
        if not self.is_configured():
            raise ProviderAuthError(
                "Yodlee credentials not configured. Set YODLEE_CLIENT_ID and "
                "YODLEE_SECRET (environment or keychain).",
                provider_name=self.PROVIDER_NAME,
            )

    def _http(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(base_url=self._base_url, timeout=self._timeout)
        return self._http_client

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def generate_access_token(self, login_name: str | None = None) -> tuple[str, float]:
        """Exchange the client credentials for an access token.

        Args:
            login_name: Yodlee login name the token is scoped to. ``None``
                requests a bare client credential token.

        Returns:
            Tuple of (access token, lifetime in seconds).

        Raises:
            ProviderAuthError: If Yodlee rejects the credentials.
            ProviderAPIError: For any other non-2xx response.
            ProviderDataError: If the response carries no token.
        """
        self._check_credentials()
        headers = {"Api-Version": self._api_version}
        if login_name:
            headers["loginName"] = login_name

        response = self._request(
            "POST",
            "/auth/token",
            headers=headers,
            data={"clientId": self._client_id, "secret": self._secret},
        )
        if response.status_code in _AUTH_STATUS_CODES:
            error_code, _ = self._error_details(response)
            raise ProviderAuthError(
                f"Yodlee token request rejected (HTTP {response.status_code}"
                f"{', ' + error_code if error_code else ''})",
                provider_name=self.PROVIDER_NAME,
            )
        body = self._handle_response(response)

        token_data = body.get("token") or {}
        access_token = token_data.get("accessToken")
        if not access_token:
            raise ProviderDataError(
                "Yodlee token response did not include an access token",
                provider_name=self.PROVIDER_NAME,
            )
        try:
            ttl = float(token_data.get("expiresIn") or _DEFAULT_TOKEN_TTL)
        except (TypeError, ValueError):
            ttl = _DEFAULT_TOKEN_TTL
        return access_token, ttl

    def _token_for(self, login_name: str, refresh: bool = False) -> str:
        cached = self._tokens.get(login_name)
        if cached and not refresh and cached[1] > time.monotonic():
            return cached[0]

        access_token, ttl = self.generate_access_token(login_name)
        expires_at = time.monotonic() + max(ttl - _TOKEN_EXPIRY_MARGIN, 0.0)
        self._tokens[login_name] = (access_token, expires_at)
        return access_token

    def invalidate_token(self, login_name: str) -> None:
        """Drop a cached token so the next call derives a new one."""
        self._tokens.pop(login_name, None)

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return self._http().request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise ProviderConnectionError(
                f"Yodlee connection failed: {type(exc).__name__}",
                provider_name=self.PROVIDER_NAME,
            ) from exc

    @staticmethod
    def _error_details(response: httpx.Response) -> tuple[str | None, str | None]:
        try:
            body = response.json()
        except ValueError:
            return None, None
        if not isinstance(body, dict):
            return None, None
        error_code = body.get("errorCode")
        return (str(error_code) if error_code else None), body.get("errorMessage")

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        if not response.is_success:
            error_code, message = self._error_details(response)
            detail = message or f"HTTP {response.status_code}"
            if error_code:
                detail = f"{detail} ({error_code})"
            logger.warning(
                "Yodlee API error on %s %s: %s",
                response.request.method, response.request.url.path, detail,
            )
            raise ProviderAPIError(
                f"Yodlee API error: {detail}",
                provider_name=self.PROVIDER_NAME,
                status_code=response.status_code,
                error_code=error_code,
                provider_message=message,
            )

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderDataError(
                f"Yodlee returned a non-JSON body for {response.request.url.path}",
                provider_name=self.PROVIDER_NAME,
            ) from exc
        if not isinstance(body, dict):
            raise ProviderDataError(
                f"Yodlee returned an unexpected body for {response.request.url.path}",
                provider_name=self.PROVIDER_NAME,
            )
        return body

    def _get(self, path: str, login_name: str, params: dict | None = None) -> dict[str, Any]:
        """GET with the single auth-refresh retry."""
        for attempt in range(2):
            token = self._token_for(login_name, refresh=attempt > 0)
            response = self._request(
                "GET",
                path,
                params=params,
                headers={
                    "Api-Version": self._api_version,
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
            )
            if response.status_code not in _AUTH_STATUS_CODES:
                return self._handle_response(response)

            self.invalidate_token(login_name)
            if attempt == 0:
                logger.info(
                    "Yodlee rejected token on %s (HTTP %d); refreshing once",
                    path, response.status_code,
                )

        error_code, _ = self._error_details(response)
        raise ProviderAuthError(
            f"Yodlee authorization failed after token refresh (HTTP {response.status_code}"
            f"{', ' + error_code if error_code else ''})",
            provider_name=self.PROVIDER_NAME,
        )

    @staticmethod
    def _collection(body: dict[str, Any], key: str) -> list[dict[str, Any]]:
        items = body.get(key)
        if items is None:
            return []
        if isinstance(items, dict):
            return [items]
        return [item for item in items if isinstance(item, dict)]

    # ------------------------------------------------------------------
    # AggregatorProvider protocol
    # ------------------------------------------------------------------

    def fetch_accounts(self, session_token: str) -> list[RawAccount]:
        """Fetch all accounts for a user session.

        Returns:
            Raw account documents, in the order Yodlee returns them.
        """
        body = self._get("/accounts", session_token)
        accounts = self._collection(body, "account")
        logger.info("Yodlee: fetched %d accounts", len(accounts))
        return accounts

    def fetch_transactions(
        self, session_token: str, from_date: date, to_date: date
    ) -> list[RawTransaction]:
        """Fetch transactions for every account in the session's window."""
        params = {"fromDate": from_date.isoformat(), "toDate": to_date.isoformat()}
        body = self._get("/transactions", session_token, params=params)
        transactions = self._collection(body, "transaction")
        logger.info(
            "Yodlee: fetched %d transactions (%s to %s)",
            len(transactions), from_date, to_date,
        )
        return transactions

    def fetch_institution(self, institution_id: str) -> RawInstitution | None:
        """Fetch institution (Yodlee "provider") details with a client-level token."""
        if not self._admin_login_name:
            raise ProviderAuthError(
                "YODLEE_ADMIN_LOGIN_NAME is required for institution lookups",
                provider_name=self.PROVIDER_NAME,
            )
        body = self._get(f"/providers/{institution_id}", self._admin_login_name)
        providers = self._collection(body, "provider")
        return providers[0] if providers else None

    def fetch_transaction_categories(self, session_token: str) -> list[dict[str, Any]]:
        """Fetch Yodlee's transaction category taxonomy.

        Used to build or audit a category map file for ``CATEGORY_MAP_PATH``.
        """
        body = self._get("/transactions/categories", session_token)
        return self._collection(body, "transactionCategory")


@lru_cache
def get_yodlee_client() -> YodleeClient:
    """Get the process-wide Yodlee client (cached).

    Sharing one client keeps its connection pool and per-login token cache
    across syncs instead of re-authenticating on every request.
    """
    return YodleeClient()


def close_yodlee_client() -> None:
    """Close the shared client if one was created."""
    if get_yodlee_client.cache_info().currsize:
        get_yodlee_client().close()
        get_yodlee_client.cache_clear()
