"""Exception types raised by VaultSort."""


class VaultSortError(Exception):
    """Base class for all VaultSort errors."""


class ConfigurationError(VaultSortError):
    """Missing or invalid credential or setting. Fatal to the request."""


class TransportError(VaultSortError):
    """Network failure, timeout or non-success status from a remote service."""


class ParseError(VaultSortError):
    """The judgment reply could not be decoded into a recommendation."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class ScoringError(VaultSortError):
    """Similarity could not be computed, e.g. on a dimension mismatch."""


class ValidationError(VaultSortError):
    """The caller supplied an empty or malformed folder profile list."""
