"""
Errors raised by the derivation pipeline.
"""

from typing import List, Optional


class RespgenError(Exception):
    """Base exception for pipeline failures."""

    pass


class ConfigurationError(RespgenError):
    """
    One or more configuration rules are violated.

    Raised before any file I/O; carries one message per violated rule.
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"{len(self.errors)} configuration error(s)")


class DiscoveryEmpty(RespgenError):
    """No source files were found."""

    pass


class CacheCorruption(RespgenError):
    """The cache file (or one entry in it) cannot be decoded."""

    pass


class CacheLocked(RespgenError):
    """Another run owns the cache file."""

    pass


class TranscodeFailure(RespgenError):
    """The transcoder could not produce an output."""

    def __init__(self, message: str, source_path: Optional[str] = None):
        self.source_path = source_path
        super().__init__(message)


class UnsupportedFormat(TranscodeFailure):
    """The transcoder cannot encode the requested format."""

    pass


class PersistenceFailure(RespgenError):
    """A cache or info file could not be written."""

    pass


class DownloadError(RespgenError):
    """A remote source could not be fetched."""

    pass
