"""Typed exception hierarchy. Every error plumb can raise."""


class PlumbError(Exception):
    """Base exception for all plumb errors."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class ResolutionError(PlumbError, ValueError):
    """Plugin key or version could not be turned into a concrete coordinate.

    Also a ``ValueError``: callers treat an unresolvable install request as a
    bad argument.
    """
    def __init__(self, message: str, key: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.key = key


class FetchError(PlumbError):
    """Remote repository returned a non-success response or was unreachable."""
    def __init__(self, message: str, url: str = "", status_code: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.url = url
        self.status_code = status_code


class IntegrityError(PlumbError):
    """Downloaded bytes do not match the trusted checksum."""
    def __init__(self, message: str, coordinate: str = "", expected: str = "", actual: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.coordinate = coordinate
        self.expected = expected
        self.actual = actual


class PluginNotFoundError(PlumbError):
    """No registry entry matches the requested key or plugin name."""
    def __init__(self, message: str, key_or_name: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.key_or_name = key_or_name


class PersistenceError(PlumbError):
    """Backing file is unreadable, corrupt, or could not be written."""
    def __init__(self, message: str, path: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.path = path


class DiagnosticsError(PlumbError):
    """Diagnostic bundle could not be assembled (mandatory export missing)."""
    pass
