"""Exception types raised during setup.

Both are fatal: they surface while opening resources or validating a
configuration and are never retried.
"""

from __future__ import annotations


class ResourceError(RuntimeError):
    """A stored table resource is missing or structurally inconsistent."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Resource '{name}': {reason}")
        self.name = name
        self.reason = reason


class ConfigurationError(ValueError):
    """An invalid combination of configuration options."""
