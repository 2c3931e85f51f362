"""Opaque record keys."""

import uuid


def generate_key() -> str:
    """Return a new globally unique key (32 hex chars)."""
    return uuid.uuid4().hex
