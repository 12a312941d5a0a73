"""OUI Table - cached IEEE vendor registry and binary lookup table generator."""

__version__ = "0.1.0"
__author__ = "OUI Table Team"

__all__ = [
    "__version__",
    "__author__",
]
