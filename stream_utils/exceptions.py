"""
Custom exceptions for stream utilities.
"""


class StreamUtilsError(Exception):
    """Base exception for stream utility errors."""
    pass


class InvalidFormat(StreamUtilsError, ValueError):
    """Malformed or unsupported locator/destination descriptor."""

    def __init__(self, message: str, descriptor=None):
        super().__init__(message)
        self.descriptor = descriptor


class TransportError(StreamUtilsError):
    """Backend read/write failure."""

    def __init__(self, message: str, locator: str = None):
        super().__init__(message)
        self.locator = locator


class JsonParseError(StreamUtilsError, ValueError):
    """Malformed JSON body."""

    def __init__(self, message: str, locator: str = None):
        super().__init__(message)
        self.locator = locator


class FetchError(TransportError):
    """Transport failure while resolving a remote resource."""

    def __init__(self, message: str, locator: str = None, key: str = None):
        super().__init__(message, locator=locator)
        self.key = key
