"""Domain error taxonomy.

Empty selection results are represented as ``None``, never raised.
"""

from __future__ import annotations


class TubekioskError(Exception):
    """Base class for all tubekiosk errors."""


class ConfigurationError(TubekioskError):
    """Raised when the selection configuration cannot be used (no channels)."""


class ProviderError(TubekioskError):
    """Raised when a candidate provider cannot deliver a channel's videos."""


class SourceNotFoundError(ProviderError):
    """The provider works but does not know this channel (deleted or mistyped id).

    Says nothing about the provider's health, so it never trips the breaker.
    """


class PersistenceError(TubekioskError):
    """Raised when a JSON document cannot be written."""


class SelectionUnavailableError(TubekioskError):
    """Raised by the player client when the server fails or is unreachable."""


class PlayerFault(TubekioskError):
    """Raised when the embedded player rejects a command."""
