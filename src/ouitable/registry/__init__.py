"""Registry module - OUI text parsing and binary table encoding."""

from .encoder import BinaryTable, decode_table, encode_table, iter_table
from .parser import RegistryRecord, iter_lines, parse_line, parse_registry

__all__ = [
    "RegistryRecord",
    "parse_line",
    "parse_registry",
    "iter_lines",
    "BinaryTable",
    "encode_table",
    "decode_table",
    "iter_table",
]
