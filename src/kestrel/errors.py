"""Kestrel exception hierarchy.

Shared across the scanner, renderer, wire codec, generator and server so
every module raises and catches the same types.
"""


class KestrelError(Exception):
    """Base for all kestrel-specific errors."""


class ConfigurationError(KestrelError):
    """Raised when configuration is invalid.

    Typically raised by ``KestrelConfig.validate()`` at startup.
    """


class ScanError(KestrelError):
    """Raised when the app directory cannot be scanned.

    Fatal: a build or server cannot start without a route tree.
    """


class FlightDecodeError(KestrelError):
    """Raised when a chunk stream is corrupt.

    Covers malformed lines, invalid JSON payloads, duplicate ids, a missing
    root chunk and references to chunks that do not precede the referrer.
    No partial recovery is attempted.
    """


class FlightRenderError(KestrelError):
    """Raised by a decoder configured to re-throw ``E`` chunks."""

    def __init__(self, message: str, digest: str | None = None) -> None:
        super().__init__(message)
        self.digest = digest


class GenerationError(KestrelError):
    """Raised when a single route cannot be generated.

    Caught per route by the static generator; never aborts a build.
    """


class ComponentError(KestrelError):
    """Raised when a route module cannot be rendered.

    For example a ``page.py`` without a callable ``default``, or a route
    without a page.
    """
