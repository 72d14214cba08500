"""Dependency injection for the mock server."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mock_server.store import CheckoutStore

# Set by main.py when the app is created
_store = None


def set_store(store: "CheckoutStore") -> None:
    """Set the global checkout store instance."""
    global _store
    _store = store


def get_store() -> "CheckoutStore":
    """Get the global checkout store instance."""
    if _store is None:
        raise RuntimeError("Checkout store not initialized")
    return _store
