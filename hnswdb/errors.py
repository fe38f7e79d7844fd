"""
Exception types raised by hnswdb.

Every recoverable failure the store can report derives from HNSWDBError so
callers (the CLI in particular) can catch one type and report the kind by
class name. Dimension and parameter errors also subclass ValueError, and a
missing store file also subclasses FileNotFoundError, so generic handlers
keep working.
"""

from typing import Iterable


class HNSWDBError(Exception):
    """Base class for all hnswdb errors."""


class DimensionMismatch(HNSWDBError, ValueError):
    """A vector's length disagrees with the store's fixed dimensionality."""

    def __init__(self, expected: int | None, actual: int, what: str = "Vector") -> None:
        self.expected = expected
        self.actual = actual
        if expected is None:
            message = f"{what} must be a non-empty 1-D sequence, got {actual} value(s)"
        else:
            message = f"{what} dimension {actual} doesn't match store dimension {expected}"
        super().__init__(message)


class EmptyQuery(HNSWDBError, ValueError):
    """A query or listing parameter is out of range (e.g. k < 1)."""


class InvalidVector(HNSWDBError, ValueError):
    """A vector holds NaN or infinite components."""


class NotFound(HNSWDBError, FileNotFoundError):
    """The persisted store file does not exist."""


class Corrupt(HNSWDBError):
    """A persisted store could not be parsed or fails structural validation."""


class VersionMismatch(HNSWDBError):
    """A persisted store declares a format version this build cannot read."""

    def __init__(self, found: object, supported: Iterable[int]) -> None:
        self.found = found
        self.supported = tuple(sorted(supported))
        super().__init__(
            f"Unsupported store format version {found!r} "
            f"(supported: {', '.join(str(v) for v in self.supported)})"
        )
