"""Format matrix: legal input extensions and output naming per format."""

from __future__ import annotations

from typing import Dict, FrozenSet, Union

from niem_transform_orchestrator.errors import InputRejectedError
from niem_transform_orchestrator.models import DestinationFormat, SourceFormat

CMF_XML_EXTENSION = "cmf.xml"

ALLOWED_EXTENSIONS: Dict[SourceFormat, FrozenSet[str]] = {
    SourceFormat.XSD: frozenset({"xsd", "zip"}),
    SourceFormat.CMF: frozenset({"cmf", CMF_XML_EXTENSION}),
}

OUTPUT_SUFFIXES: Dict[DestinationFormat, str] = {
    DestinationFormat.CMF: ".cmf.xml",
    DestinationFormat.OWL: ".owl.ttl",
    DestinationFormat.XSD: ".zip",
    DestinationFormat.JSON_SCHEMA: ".schema.json",
}

MEDIA_TYPES: Dict[DestinationFormat, str] = {
    DestinationFormat.CMF: "application/xml",
    DestinationFormat.OWL: "text/plain",
    DestinationFormat.XSD: "application/zip",
    DestinationFormat.JSON_SCHEMA: "application/json",
}


def get_file_extension(filename: str) -> str:
    """Return the extension of ``filename`` without the leading dot.

    ``cmf.xml`` is treated as a single extension; otherwise the last suffix is
    used. Returns an empty string when the name has no suffix.
    """
    if filename.lower().endswith("." + CMF_XML_EXTENSION):
        return CMF_XML_EXTENSION
    stem, dot, extension = filename.rpartition(".")
    if not dot or not stem:
        return ""
    return extension


def get_filename_base(filename: str) -> str:
    """Return ``filename`` without the extension reported by :func:`get_file_extension`."""
    extension = get_file_extension(filename)
    if not extension:
        return filename
    return filename[: -(len(extension) + 1)]


def check_input_file_extension(source_format: Union[SourceFormat, str], extension: str) -> None:
    """Validate an input extension against the source format.

    Raises:
        InputRejectedError: If the extension is not allowed for the format
    """
    source_format = SourceFormat(source_format)
    if extension.lower() not in ALLOWED_EXTENSIONS[source_format]:
        raise InputRejectedError(
            f"A file with extension .{extension} is not a valid input for transforming "
            f"a model from {source_format.value}",
            extension=extension,
            source_format=source_format.value,
        )


def get_output_filename(destination_format: Union[DestinationFormat, str], base_name: str) -> str:
    return base_name + OUTPUT_SUFFIXES[DestinationFormat(destination_format)]


def get_output_media_type(destination_format: Union[DestinationFormat, str]) -> str:
    return MEDIA_TYPES[DestinationFormat(destination_format)]
