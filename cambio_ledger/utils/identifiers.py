"""Identifier helpers."""

import uuid


def new_id() -> str:
    """Return a new random identifier as a string."""
    return str(uuid.uuid4())


__all__ = ["new_id"]
