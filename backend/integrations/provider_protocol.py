"""Provider protocol for the account aggregator.

The sync engine depends on this interface rather than a concrete client,
so the orchestrator receives a provider instance at construction and tests
can pass an in-memory fake.

Payloads are passed through as plain dicts: the raw account document is
stored verbatim on ``ExternalAccountSnapshot.raw_payload`` and every
derived field is read from it later.
"""

from datetime import date
from typing import Any, Protocol

RawAccount = dict[str, Any]
RawTransaction = dict[str, Any]
RawInstitution = dict[str, Any]


class AggregatorProvider(Protocol):
    """Interface every aggregator client must implement."""

    @property
    def provider_name(self) -> str:
        """Short provider name stored on imported rows (e.g. "yodlee")."""
        ...

    def fetch_accounts(self, session_token: str) -> list[RawAccount]:
        """Return every account visible to the user session."""
        ...

    def fetch_transactions(
        self, session_token: str, from_date: date, to_date: date
    ) -> list[RawTransaction]:
        """Return transactions across the whole connection for the window.

        The result is not filtered per account; callers match each record's
        ``accountId`` themselves.
        """
        ...

    def fetch_institution(self, institution_id: str) -> RawInstitution | None:
        """Return institution details, or None when unknown."""
        ...
