"""Output generator: dispatches a model to the engine writer for a format."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Optional

import structlog

from niem_transform_core import Model
from niem_transform_core.uris import NIEM6_URI_BASE
from niem_transform_engine import ConversionEngine, SchemaVariant
from niem_transform_orchestrator.archive import zip_directory
from niem_transform_orchestrator.corrections import correct_cmf, correct_owl, correct_xsd_directory
from niem_transform_orchestrator.errors import InputRejectedError, InternalFailureError
from niem_transform_orchestrator.execution import run_with_timeout
from niem_transform_orchestrator.models import DestinationFormat, TransformSettings

logger = structlog.get_logger(__name__)


def select_schema_variant(model: Model) -> SchemaVariant:
    """Pick the NIEM 6 writer when any namespace lives under the NIEM 6 model URI."""
    for uri in model.namespaces:
        if NIEM6_URI_BASE in uri:
            return SchemaVariant.SOURCE
    return SchemaVariant.LEGACY


def check_document_paths(model: Model) -> None:
    """Reject schema document paths that would be written outside the output directory."""
    for path, document in sorted(model.schema_documents().items()):
        if not document.is_relative:
            raise InputRejectedError(f"Schema document path {path} is outside the output directory")


def generate_xsd_output(
    model: Model,
    base_name: str,
    engine: ConversionEngine,
    settings: Optional[TransformSettings] = None,
) -> bytes:
    """Write, correct and zip the model's schema documents.

    Returns:
        Zip archive with the documents under a ``base_name`` directory

    Raises:
        InputRejectedError: If a schema document path is absolute or climbs out with ``..``
    """
    settings = settings or TransformSettings()
    check_document_paths(model)
    variant = select_schema_variant(model)
    log = logger.bind(base_name=base_name, variant=variant.value)
    try:
        with tempfile.TemporaryDirectory(prefix="transform-generate-output-", dir=settings.scratch_dir) as scratch:
            output_dir = Path(scratch) / base_name
            output_dir.mkdir(parents=True)
            written = run_with_timeout(
                engine.write_schema, model, output_dir, variant,
                timeout=settings.engine_timeout, operation="write_schema",
            )
            log.info("xsd_written", file_count=len(written))
            correct_xsd_directory(output_dir, model, settings)
            return zip_directory(output_dir)
    except OSError as e:
        raise InternalFailureError(f"Failed to generate schema output: {str(e)}", operation="write_schema") from e


def generate_output(
    model: Model,
    destination_format: DestinationFormat,
    base_name: str,
    engine: ConversionEngine,
    settings: Optional[TransformSettings] = None,
) -> bytes:
    """Serialize a model to the destination format, corrected.

    Args:
        model: Canonical model
        destination_format: Output format
        base_name: Base name for multi-file outputs
        engine: Conversion engine supplying the writers
        settings: Transform settings

    Returns:
        Output bytes (UTF-8 text, or a zip archive for XSD)
    """
    settings = settings or TransformSettings()
    destination_format = DestinationFormat(destination_format)
    timeout = settings.engine_timeout

    if destination_format == DestinationFormat.XSD:
        return generate_xsd_output(model, base_name, engine, settings)

    if destination_format == DestinationFormat.CMF:
        text = run_with_timeout(engine.write_canonical, model, timeout=timeout, operation="write_canonical")
        text = correct_cmf(text, settings.cmf_uri)
    elif destination_format == DestinationFormat.OWL:
        text = run_with_timeout(engine.write_ontology, model, timeout=timeout, operation="write_ontology")
        text = correct_owl(text)
    else:
        text = run_with_timeout(engine.write_json_schema, model, timeout=timeout, operation="write_json_schema")

    logger.info("output_generated", destination_format=destination_format.value, size=len(text))
    return text.encode("utf-8")
