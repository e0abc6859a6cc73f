"""Pydantic request/response schemas."""

from .sync import SyncRunResponse, WebhookAcceptedResponse

__all__ = ["SyncRunResponse", "WebhookAcceptedResponse"]
