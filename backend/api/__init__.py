"""API route handlers."""
from . import sync, webhooks

__all__ = ["sync", "webhooks"]
