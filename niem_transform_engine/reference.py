"""Reference conversion engine bundled with the transform pipeline.

Covers the NIEM-style subset the readers and writers in this package support:
global elements, named complex and simple types, element references in
sequences, substitution groups and documentation.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, List, Sequence

from niem_transform_core import Model

from .cmf import read_cmf, write_cmf
from .engine_base import ConversionEngine, ReadResult, SchemaVariant
from .json_schema import write_json_schema
from .owl_writer import write_owl
from .xsd_reader import read_xsd
from .xsd_writer import write_xsd


class ReferenceEngine(ConversionEngine):
    """Engine backed by the xmlschema and ElementTree readers and text writers."""

    ENGINE_NAME = "reference"

    def parse_schema(self, paths: Sequence[Path]) -> Model:
        return read_xsd(paths)

    def read_canonical(self, stream: BinaryIO) -> ReadResult:
        return read_cmf(stream)

    def write_canonical(self, model: Model) -> str:
        return write_cmf(model)

    def write_ontology(self, model: Model) -> str:
        return write_owl(model)

    def write_schema(self, model: Model, output_dir: Path, variant: SchemaVariant) -> List[Path]:
        return write_xsd(model, output_dir, variant)

    def write_json_schema(self, model: Model) -> str:
        return write_json_schema(model)
