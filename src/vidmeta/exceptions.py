"""Error taxonomy for vidmeta.

Every error raised by the engine derives from VidmetaError and carries an
ErrorKind, so the orchestrator can report failures uniformly without
matching on concrete classes.
"""

from enum import Enum


class ErrorKind(Enum):
    """Categories of failure surfaced to the user."""

    CONFIG = "ConfigError"
    IO = "IOError"
    FORMAT = "FormatError"
    MATCH = "MatchError"
    DATE_PARSE = "DateParseError"
    OVERWRITE_CANCELED = "OverwriteCanceled"
    OPERATION_CANCELED = "OperationCanceled"
    HASH_MISMATCH = "HashMismatch"
    MUXER = "MuxerError"


class VidmetaError(Exception):
    """Base class for all vidmeta errors."""

    kind: ErrorKind = ErrorKind.IO

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(VidmetaError):
    """Malformed operation DSL, invalid batch pair, or bad configuration."""

    kind = ErrorKind.CONFIG

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class MetaIOError(VidmetaError):
    """Sidecar read/write, directory scan, or rename/move failure."""

    kind = ErrorKind.IO


class SidecarLockError(MetaIOError):
    """Sidecar is held by another record."""


class FormatError(VidmetaError):
    """Sidecar is structurally invalid."""

    kind = ErrorKind.FORMAT


class MatchError(VidmetaError):
    """No sidecar could be paired with any video in a batch pair."""

    kind = ErrorKind.MATCH


class DateParseError(VidmetaError):
    """Date string cannot be resolved to valid components."""

    kind = ErrorKind.DATE_PARSE


class OverwriteCanceled(VidmetaError):
    """User declined to overwrite a field (non-fatal, per field)."""

    kind = ErrorKind.OVERWRITE_CANCELED


class OperationCanceled(VidmetaError):
    """The batch was canceled; terminates the current record."""

    kind = ErrorKind.OPERATION_CANCELED


class HashMismatchError(VidmetaError):
    """Cross-device copy verification failed."""

    kind = ErrorKind.HASH_MISMATCH


class MuxerError(VidmetaError):
    """External muxer returned non-zero or could not be run."""

    kind = ErrorKind.MUXER
