"""Core module - configuration, exceptions, and utilities."""

from .config import Config, get_config, set_config
from .exceptions import (
    ArtifactPublishError,
    CacheCorruptError,
    DirectoryCreationError,
    MalformedSourceUrlError,
    NetworkError,
    NoDataAvailableError,
    OuiTableError,
    ResourceWriteError,
    TableEncodingError,
)
from .utils import atomic_write, ensure_directory, format_oui, publish

__all__ = [
    "Config",
    "get_config",
    "set_config",
    "OuiTableError",
    "MalformedSourceUrlError",
    "NetworkError",
    "CacheCorruptError",
    "NoDataAvailableError",
    "DirectoryCreationError",
    "ArtifactPublishError",
    "ResourceWriteError",
    "TableEncodingError",
    "atomic_write",
    "ensure_directory",
    "format_oui",
    "publish",
]
