"""Input loader: stages uploaded files and reads them into a canonical model."""

from __future__ import annotations

import io
import tempfile
import zipfile
from pathlib import Path
from typing import List, Optional, Sequence

import structlog

from niem_transform_core import Model
from niem_transform_engine import ConversionEngine, SchemaParseError
from niem_transform_orchestrator.errors import (
    InputRejectedError,
    InternalFailureError,
    ParseFailureError,
    UnsupportedVersionError,
)
from niem_transform_orchestrator.execution import run_with_timeout
from niem_transform_orchestrator.formats import check_input_file_extension, get_file_extension
from niem_transform_orchestrator.models import SourceFormat, TransformSettings

logger = structlog.get_logger(__name__)

LOCAL_TERMINOLOGY_FILENAME = "localTerminology.xsd"
CATALOG_PREFIX = "xml-catalog"


def unzip_archive(archive: Path, destination: Path) -> List[Path]:
    """Expand a zip archive into ``destination``.

    Args:
        archive: Path to the zip file
        destination: Directory to extract into

    Returns:
        Paths of the extracted files

    Raises:
        InputRejectedError: If the file is not a zip archive or a member
            would be written outside ``destination``
    """
    root = destination.resolve()
    extracted: List[Path] = []
    try:
        with zipfile.ZipFile(archive) as zf:
            for member in zf.infolist():
                target = (root / member.filename).resolve()
                if target != root and root not in target.parents:
                    raise InputRejectedError(
                        f"Archive member {member.filename} escapes the extraction directory",
                        extension="zip",
                    )
                if member.is_dir():
                    continue
                zf.extract(member, root)
                extracted.append(target)
    except zipfile.BadZipFile as e:
        raise InputRejectedError(f"{archive.name} is not a valid zip archive: {e}", extension="zip") from e
    return extracted


def select_schema_files(files: Sequence[Path]) -> List[Path]:
    """Pick the schema documents and XML catalogs the engine should read."""
    selected = []
    for path in sorted(files):
        name = path.name
        if name.endswith(".xsd") and name != LOCAL_TERMINOLOGY_FILENAME:
            selected.append(path)
        elif name.startswith(CATALOG_PREFIX):
            selected.append(path)
    return selected


def _parse_schema(engine: ConversionEngine, paths: List[Path]) -> Model:
    try:
        return engine.parse_schema(paths)
    except SchemaParseError as e:
        raise ParseFailureError(e.messages) from e


def _read_canonical(engine: ConversionEngine, content: bytes) -> Model:
    result = engine.read_canonical(io.BytesIO(content))
    if not result.ok:
        raise ParseFailureError(result.messages or ["CMF document could not be read"])
    return result.model


def load_xsd(
    filename: str,
    content: bytes,
    engine: ConversionEngine,
    settings: TransformSettings,
) -> Model:
    """Stage an XSD file or a zipped schema set and parse it."""
    extension = get_file_extension(filename).lower()
    log = logger.bind(filename=filename)
    try:
        with tempfile.TemporaryDirectory(prefix="transform-load-input-", dir=settings.scratch_dir) as scratch:
            scratch_path = Path(scratch)
            staged = scratch_path / Path(filename).name
            staged.write_bytes(content)

            if extension == "zip":
                files = unzip_archive(staged, scratch_path / "expanded")
                paths = select_schema_files(files)
            else:
                paths = [staged]

            log.info("input_staged", file_count=len(paths), scratch_dir=scratch)
            return run_with_timeout(
                _parse_schema, engine, paths,
                timeout=settings.engine_timeout, operation="parse_schema",
            )
    except OSError as e:
        raise InternalFailureError(f"Failed to stage input: {str(e)}", operation="load_input") from e


def load_cmf(content: bytes, engine: ConversionEngine, settings: TransformSettings) -> Model:
    """Check the CMF version marker and read a CMF document."""
    text = content.decode("utf-8", errors="replace")
    if settings.cmf_uri not in text:
        raise UnsupportedVersionError(settings.cmf_version)
    return run_with_timeout(
        _read_canonical, engine, content,
        timeout=settings.engine_timeout, operation="read_canonical",
    )


def load_input(
    source_format: SourceFormat,
    filename: str,
    content: bytes,
    engine: ConversionEngine,
    settings: Optional[TransformSettings] = None,
) -> Model:
    """Load an uploaded file as a canonical model.

    Args:
        source_format: Declared format of the upload
        filename: Declared filename (its extension is validated)
        content: Raw file bytes
        engine: Conversion engine that parses the input
        settings: Transform settings

    Returns:
        The canonical model

    Raises:
        InputRejectedError: If the extension does not fit the source format
        UnsupportedVersionError: If a CMF file lacks the supported version marker
        ParseFailureError: If the engine reports diagnostics or returns a model
            whose cross references point outside it
        InternalFailureError: If staging or the engine fails unexpectedly
    """
    settings = settings or TransformSettings()
    source_format = SourceFormat(source_format)
    check_input_file_extension(source_format, get_file_extension(filename))

    if source_format == SourceFormat.XSD:
        model = load_xsd(filename, content, engine, settings)
    else:
        model = load_cmf(content, engine, settings)

    problems = model.check_references()
    if problems:
        raise ParseFailureError(problems)

    logger.info(
        "model_loaded",
        source_format=source_format.value,
        namespace_count=len(model.namespaces),
        component_count=len(model),
    )
    return model
