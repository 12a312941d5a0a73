"""Custom exceptions for the OUI table generator."""

from pathlib import Path


class OuiTableError(Exception):
    """Base exception for all ouitable errors."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class MalformedSourceUrlError(OuiTableError):
    """The registry source URL cannot be used for a request."""

    def __init__(self, url: str, details: str | None = None):
        super().__init__(f"Bad URL: {url}", details)
        self.url = url


class NetworkError(OuiTableError):
    """Connection, timeout, HTTP status or transfer failure while fetching."""

    def __init__(self, url: str, details: str | None = None):
        super().__init__(f"Unable to retrieve {url}", details)
        self.url = url


class CacheCorruptError(OuiTableError):
    """The on-disk cache artifact is structurally broken."""

    def __init__(self, path: Path, details: str | None = None):
        super().__init__(f"Bad cache file '{Path(path).absolute()}'", details)
        self.path = Path(path)


class NoDataAvailableError(OuiTableError):
    """No cache artifact exists after the refresh step."""

    def __init__(self, path: Path):
        super().__init__(f"No data available: {Path(path).absolute()}")
        self.path = Path(path)


class DirectoryCreationError(OuiTableError):
    """A required directory could not be created."""

    def __init__(self, path: Path, details: str | None = None):
        super().__init__(f"Unable to create directory '{Path(path).absolute()}'", details)
        self.path = Path(path)


class ArtifactPublishError(OuiTableError):
    """A completed temp file could not be renamed onto its final name."""

    def __init__(self, source: Path, target: Path, details: str | None = None):
        message = f"Unable to move {Path(source).absolute()} to {Path(target).absolute()}"
        super().__init__(message, details)
        self.source = Path(source)
        self.target = Path(target)


class ResourceWriteError(OuiTableError):
    """The binary table could not be written."""

    def __init__(self, path: Path, details: str | None = None):
        super().__init__(f"Error creating resource '{Path(path).absolute()}'", details)
        self.path = Path(path)


class TableEncodingError(OuiTableError):
    """A record cannot be encoded, or a table cannot be decoded."""

    pass
