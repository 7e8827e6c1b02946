"""Exception types raised by Sheaf."""


class SheafError(Exception):
    """Base class for Sheaf errors."""


class ParseError(SheafError):
    """A file could not be parsed into structured content."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}" if path else message)

    def with_path(self, path: str) -> "ParseError":
        """Return a copy of this error bound to a file path."""
        return ParseError(self.message, path=path)


class FormatError(SheafError):
    """Structured content could not be serialized in the requested format."""


class CacheIOError(SheafError):
    """Reading or writing the persistent cache failed."""


class ConfigError(SheafError):
    """The site configuration file is missing or invalid."""
