"""
Abstract conversion engine with a plugin registry.

The engine is the boundary between the transform pipeline and the code that
actually parses and serializes model formats. Engines register themselves by
name when their class is defined, so the orchestrator can pick one from
configuration without importing it directly.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Sequence, Type
import logging

from niem_transform_core import Model

logger = logging.getLogger(__name__)


class SchemaVariant(str, Enum):
    """XML Schema writer flavors."""
    LEGACY = "legacy"  # NIEM 3.0 - 5.2 layout
    SOURCE = "source"  # NIEM 6.0+ layout


class SchemaParseError(ValueError):
    """Raised by an engine when a schema set cannot be read into a model."""

    def __init__(self, messages: Sequence[str]):
        self.messages = list(messages)
        super().__init__(", ".join(self.messages))


@dataclass
class ReadResult:
    """Outcome of reading a canonical model: a model or a list of diagnostics."""

    model: Optional[Model]
    messages: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.model is not None


class EngineRegistry:
    """Registry for conversion engine plugins."""

    _engines: Dict[str, Type['ConversionEngine']] = {}

    @classmethod
    def register(cls, name: str, engine_class: Type['ConversionEngine']) -> None:
        """Register an engine class under ``name``.

        Args:
            name: The engine identifier (e.g., 'reference')
            engine_class: The engine class to register
        """
        cls._engines[name.lower()] = engine_class
        logger.debug(f"Registered conversion engine: {name}")

    @classmethod
    def get_engine(cls, name: str) -> Optional[Type['ConversionEngine']]:
        return cls._engines.get(name.lower())

    @classmethod
    def list_engines(cls) -> List[str]:
        return list(cls._engines.keys())


class ConversionEngine(ABC):
    """Capability interface of an external model conversion engine.

    Subclasses set ``ENGINE_NAME`` to register automatically and implement:
    - parse_schema(): XML Schema documents to model
    - read_canonical(): CMF stream to model (with diagnostics)
    - write_canonical() / write_ontology() / write_json_schema(): model to text
    - write_schema(): model to a directory of XML Schema documents
    """

    ENGINE_NAME: Optional[str] = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.ENGINE_NAME:
            EngineRegistry.register(cls.ENGINE_NAME, cls)

    @abstractmethod
    def parse_schema(self, paths: Sequence[Path]) -> Model:
        """Read XML Schema documents (and optional XML catalogs) into a model.

        Raises:
            SchemaParseError: If the schema set cannot be read
        """

    @abstractmethod
    def read_canonical(self, stream: BinaryIO) -> ReadResult:
        """Read a CMF document. Problems are reported, not raised."""

    @abstractmethod
    def write_canonical(self, model: Model) -> str:
        """Serialize the model as CMF text."""

    @abstractmethod
    def write_ontology(self, model: Model) -> str:
        """Serialize the model as an OWL ontology in Turtle."""

    @abstractmethod
    def write_schema(self, model: Model, output_dir: Path, variant: SchemaVariant) -> List[Path]:
        """Write one XML Schema document per namespace under ``output_dir``.

        Returns:
            Paths of the written documents
        """

    @abstractmethod
    def write_json_schema(self, model: Model) -> str:
        """Serialize the model as a JSON Schema document."""


def get_engine(name: str) -> Optional[ConversionEngine]:
    """Factory function returning an engine instance, or None if not registered."""
    engine_class = EngineRegistry.get_engine(name)
    if engine_class:
        return engine_class()
    return None
