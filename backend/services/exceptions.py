"""Exceptions raised by the sync engine itself (not by providers)."""


class SyncError(Exception):
    """Base exception for sync-engine errors."""

    pass


class ConnectionNotFoundError(SyncError):
    """The caller referenced a connection id that does not exist.

    Not retriable: the reference itself is invalid.
    """

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id} not found")
