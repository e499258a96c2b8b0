"""Transform pipeline: load → generate → correct → package."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Union

import structlog
import yaml
from pydantic import ValidationError as PydanticValidationError

from niem_transform_engine import ConversionEngine, EngineRegistry, get_engine
from niem_transform_orchestrator.errors import (
    BadRequestError,
    EngineNotAvailableError,
    InputRejectedError,
    NiemTransformError,
    TransformConfigurationError,
)
from niem_transform_orchestrator.formats import (
    get_filename_base,
    get_output_filename,
    get_output_media_type,
)
from niem_transform_orchestrator.generator import generate_output
from niem_transform_orchestrator.loader import load_input
from niem_transform_orchestrator.models import (
    DestinationFormat,
    SourceFormat,
    TransformResult,
    TransformSettings,
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer() if sys.stderr.isatty() else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    cache_logger_on_first_use=False,
)

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_INTERNAL_FAILURE = 1
EXIT_BAD_REQUEST = 2


def load_settings(path: Path) -> TransformSettings:
    """Load and validate transform settings from YAML.

    Args:
        path: Path to settings file

    Returns:
        Validated TransformSettings

    Raises:
        TransformConfigurationError: If the file cannot be read or is invalid
    """
    logger.info("loading_settings", path=str(path))
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return TransformSettings.model_validate(data)
    except PydanticValidationError as e:
        errors = []
        for error in e.errors():
            loc = " -> ".join(str(part) for part in error["loc"])
            errors.append(f"{loc}: {error['msg']}")
        raise TransformConfigurationError(
            "Settings validation failed",
            config_path=str(path),
            errors=errors,
        ) from e
    except (OSError, yaml.YAMLError) as e:
        raise TransformConfigurationError(
            f"Failed to read settings: {str(e)}",
            config_path=str(path),
        ) from e


def resolve_engine(name: str) -> ConversionEngine:
    """Return an instance of the registered engine ``name``.

    Raises:
        EngineNotAvailableError: If no engine is registered under ``name``
    """
    engine = get_engine(name)
    if engine is None:
        raise EngineNotAvailableError(name, available=EngineRegistry.list_engines())
    return engine


def transform(
    source_format: Union[SourceFormat, str],
    destination_format: Union[DestinationFormat, str],
    filename: str,
    content: bytes,
    settings: Optional[TransformSettings] = None,
    engine: Optional[ConversionEngine] = None,
) -> TransformResult:
    """Transform a model file from one format to another.

    Args:
        source_format: Format of the input (xsd or cmf)
        destination_format: Format to produce (cmf, owl, xsd or json_schema)
        filename: Declared input filename; its base names the output
        content: Input file bytes
        settings: Transform settings (defaults apply when omitted)
        engine: Conversion engine (defaults to ``settings.engine``)

    Returns:
        TransformResult with the output bytes, media type and filename

    Raises:
        BadRequestError: For input the caller must fix
        InternalFailureError: For engine and filesystem failures
    """
    settings = settings or TransformSettings()
    try:
        source_format = SourceFormat(source_format)
    except ValueError as e:
        raise InputRejectedError(
            f"Transforming a model from {source_format} is not supported",
            source_format=str(source_format),
        ) from e
    try:
        destination_format = DestinationFormat(destination_format)
    except ValueError as e:
        raise InputRejectedError(f"Transforming a model to {destination_format} is not supported") from e

    engine = engine or resolve_engine(settings.engine)
    base_name = get_filename_base(Path(filename).name)

    structlog.contextvars.bind_contextvars(
        source_format=source_format.value,
        destination_format=destination_format.value,
        filename=filename,
    )
    try:
        logger.info("transform_starting", size=len(content))
        model = load_input(source_format, filename, content, engine, settings)
        output = generate_output(model, destination_format, base_name, engine, settings)
        result = TransformResult(
            content=output,
            media_type=get_output_media_type(destination_format),
            filename=get_output_filename(destination_format, base_name),
        )
        logger.info("transform_complete", output_filename=result.filename, size=len(output))
        return result
    except NiemTransformError as e:
        logger.error("transform_failed", **e.to_dict())
        raise
    finally:
        structlog.contextvars.unbind_contextvars("source_format", "destination_format", "filename")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="niem-transform",
        description="Transform NIEM models between XSD, CMF, OWL and JSON Schema",
    )
    parser.add_argument("input", nargs="?", help="Input file (.xsd, .zip, .cmf or .cmf.xml)")
    parser.add_argument(
        "--from", dest="source_format",
        choices=[f.value for f in SourceFormat],
        help="Format of the input file",
    )
    parser.add_argument(
        "--to", dest="destination_format",
        choices=[f.value for f in DestinationFormat],
        help="Format to produce",
    )
    parser.add_argument("-o", "--output", default=None, help="Output path (default: derived filename in the current directory)")
    parser.add_argument("--config", default=None, help="Settings YAML file")
    parser.add_argument(
        "--cmf-version",
        action="store_true",
        help="Print the supported CMF version and exit",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point.

    Returns:
        0 on success, 2 for errors in the caller's input, 1 for internal failures
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(Path(args.config)) if args.config else TransformSettings()
    except TransformConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_BAD_REQUEST

    if args.cmf_version:
        print(settings.cmf_version)
        return EXIT_OK

    if not (args.input and args.source_format and args.destination_format):
        parser.error("INPUT, --from and --to are required")

    input_path = Path(args.input)
    try:
        content = input_path.read_bytes()
    except OSError as e:
        print(f"error: cannot read {input_path}: {e.strerror}", file=sys.stderr)
        return EXIT_BAD_REQUEST

    try:
        result = transform(
            args.source_format,
            args.destination_format,
            input_path.name,
            content,
            settings=settings,
        )
    except BadRequestError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_BAD_REQUEST
    except NiemTransformError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_FAILURE

    output_path = Path(args.output) if args.output else Path.cwd() / result.filename
    try:
        output_path.write_bytes(result.content)
    except OSError as e:
        print(f"error: cannot write {output_path}: {e.strerror}", file=sys.stderr)
        return EXIT_INTERNAL_FAILURE
    logger.info("output_written", path=str(output_path), media_type=result.media_type)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
