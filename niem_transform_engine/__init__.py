"""Conversion engines for NIEM model formats.

Importing this package registers the bundled ``reference`` engine.
"""

from .engine_base import (
    ConversionEngine,
    EngineRegistry,
    ReadResult,
    SchemaParseError,
    SchemaVariant,
    get_engine,
)
from .reference import ReferenceEngine

__all__ = [
    "ConversionEngine",
    "EngineRegistry",
    "ReadResult",
    "ReferenceEngine",
    "SchemaParseError",
    "SchemaVariant",
    "get_engine",
]
