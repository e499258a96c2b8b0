"""Post-processing corrections for engine output.

Every correction is a text-to-text function that only patches text matching
a known defect signature and leaves anything else unmodified. Running a
correction over its own output is a no-op.
"""

from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

import structlog

from niem_transform_core import Model, SchemaDocument
from niem_transform_core.uris import (
    CMF_URI,
    CONFORMANCE_TARGETS_URI,
    EXTENSION_SCHEMA_TARGET,
    REFERENCE_SCHEMA_TARGET,
)
from niem_transform_orchestrator.element_names import (
    dependency_namespaces,
    reconstruct_element_names,
)
from niem_transform_orchestrator.models import TransformSettings

logger = structlog.get_logger(__name__)

XSD_GENERATOR_MARKER = "ct:conformanceTargets"
ATTRIBUTE_INDENT = " " * 11
DEFAULT_LANGUAGE = "en-US"


# ============================================================================
# CMF
# ============================================================================

_CMF_PREFIX_INDENT = re.compile(r"^[ ]{3,}(?=xmlns:)", re.MULTILINE)
_CMF_ROOT_TRAILING_SPACE = re.compile(r"<Model[ \t]+\n")
_CMF_ROOT_SPACE_BEFORE_CLOSE = re.compile(r"(<Model\b[^>]*?)[ \t]+>")


def correct_cmf(text: str, cmf_uri: str = CMF_URI) -> str:
    """Repair the root element of a generated CMF document.

    - An early ``>`` after the default namespace declaration, when more
      namespace declarations follow, is removed.
    - Over-indented namespace declarations are indented by two spaces.
    - Trailing whitespace after ``<Model`` or before its closing bracket is removed.

    One repair can expose another, so they are repeated until the text is
    stable. Every repair shortens the text.
    """
    early_close = re.compile(r'(xmlns="' + re.escape(cmf_uri) + r'")>\n(?=[ \t]*xmlns:)')
    while True:
        corrected = early_close.sub(r"\1\n", text)
        corrected = _CMF_PREFIX_INDENT.sub("  ", corrected)
        corrected = _CMF_ROOT_TRAILING_SPACE.sub("<Model\n", corrected)
        corrected = _CMF_ROOT_SPACE_BEFORE_CLOSE.sub(r"\1>", corrected)
        if corrected == text:
            return corrected
        text = corrected


# ============================================================================
# OWL
# ============================================================================

_LINE_ENDING = re.compile(r"\r\n?")
_BLANK_LINE_RUN = re.compile(r"\n{3,}")
_IRI = re.compile(r"<[^<>\s]*>")
_HASH_RUN = re.compile(r"#{2,}")


def correct_owl(text: str) -> str:
    """Normalize line endings, collapse blank-line runs and doubled ``#`` in IRIs."""
    text = _LINE_ENDING.sub("\n", text)
    text = _BLANK_LINE_RUN.sub("\n\n", text)
    return _IRI.sub(lambda m: _HASH_RUN.sub("#", m.group(0)), text)


# ============================================================================
# XSD
# ============================================================================

_SCHEMA_EARLY_CLOSE = re.compile(r'<xs:schema>(?=\s+[\w:.-]+=")')
_IMPORT_EARLY_CLOSE = re.compile(r'<xs:import>(?=\s+[\w:.-]+=")')
_ELEMENT_EARLY_CLOSE = re.compile(r'<xs:element>(\s*)(?=[\w:.-]+=")')
_IMPORT_WITHOUT_NAMESPACE = re.compile(
    r'(?P<indent>[ \t]*)<xs:import\s+schemaLocation="(?P<location>[^"]*)"\s*/>'
)
_SCHEMA_START_LINE = re.compile(r"<xs:schema[ \t]*\n")
_SCHEMA_START = re.compile(r"<xs:schema(?=[\s>])")
_BARE_LANG = re.compile(r"(?<=\s)lang=")


def add_prefix_declaration(text: str, prefix: str, uri: str) -> str:
    """Declare ``prefix`` on the root ``xs:schema`` element if it is not declared.

    The declaration goes on its own line directly after ``<xs:schema`` when
    the root start tag spans lines, otherwise right after the tag name.
    """
    if f"xmlns:{prefix}=" in text:
        return text
    declaration = f'xmlns:{prefix}="{uri}"'
    if _SCHEMA_START_LINE.search(text):
        return _SCHEMA_START_LINE.sub(
            lambda m: f"<xs:schema\n{ATTRIBUTE_INDENT}{declaration}\n", text, count=1
        )
    return _SCHEMA_START.sub(f"<xs:schema {declaration}", text, count=1)


def find_schema_document(model: Model, location: str) -> Optional[SchemaDocument]:
    """Look up the schema document an import location points at.

    An exact filename match wins; otherwise the first document, in path order,
    whose path contains the filename.
    """
    filename = location.rsplit("/", 1)[-1]
    if not filename:
        return None
    documents = sorted(model.schema_documents().items())
    for _, document in documents:
        if document.filename == filename:
            return document
    for path, document in documents:
        if filename in path:
            return document
    return None


def fix_imports(text: str, model: Model) -> str:
    """Add the missing ``namespace`` attribute to imports that only carry a location."""

    def attach_namespace(match: "re.Match[str]") -> str:
        location = match.group("location")
        document = find_schema_document(model, location)
        if document is None:
            logger.debug("import_namespace_unresolved", schema_location=location)
            return match.group(0)
        return (
            f'{match.group("indent")}<xs:import namespace="{document.target_namespace}" '
            f'schemaLocation="{location}"/>'
        )

    return _IMPORT_WITHOUT_NAMESPACE.sub(attach_namespace, text)


def correct_xsd(text: str, model: Model, first_match_on_ambiguity: bool = False) -> str:
    """Repair a generated XML Schema document.

    Documents without the ``ct:conformanceTargets`` marker were not produced
    by the engine's writer and are returned unchanged.

    Args:
        text: Schema document text
        model: Model the document was generated from
        first_match_on_ambiguity: Tie-break policy for element-name reconstruction

    Returns:
        The corrected text
    """
    if XSD_GENERATOR_MARKER not in text:
        return text

    text = _SCHEMA_EARLY_CLOSE.sub("<xs:schema", text)
    text = _IMPORT_EARLY_CLOSE.sub("<xs:import", text)
    text = fix_imports(text, model)
    text = _ELEMENT_EARLY_CLOSE.sub(lambda m: "<xs:element" + (m.group(1) or " "), text)

    text, matched = reconstruct_element_names(text, model, first_match_on_ambiguity)
    for prop in matched:
        for namespace in dependency_namespaces(prop):
            text = add_prefix_declaration(text, namespace.prefix, namespace.uri)

    text = add_prefix_declaration(text, "ct", CONFORMANCE_TARGETS_URI)
    text = _BARE_LANG.sub("xml:lang=", text)
    if "xml:lang" not in text:
        text = _SCHEMA_START.sub(
            f'<xs:schema\n{ATTRIBUTE_INDENT}xml:lang="{DEFAULT_LANGUAGE}"', text, count=1
        )
    text = text.replace("/" + REFERENCE_SCHEMA_TARGET, "/" + EXTENSION_SCHEMA_TARGET)
    return text


def correct_xsd_file(path: Path, model: Model, first_match_on_ambiguity: bool = False) -> bool:
    """Correct one schema document in place.

    Returns:
        True if the file changed
    """
    original = path.read_text(encoding="utf-8")
    corrected = correct_xsd(original, model, first_match_on_ambiguity)
    if corrected == original:
        return False
    path.write_text(corrected, encoding="utf-8")
    return True


def correct_xsd_directory(
    directory: Path,
    model: Model,
    settings: Optional[TransformSettings] = None,
) -> List[Path]:
    """Correct every ``*.xsd`` file under ``directory``.

    Files are independent, so they are corrected concurrently when
    ``settings.parallel_corrections`` is set.

    Returns:
        Paths of the files that changed
    """
    settings = settings or TransformSettings()
    paths = sorted(directory.rglob("*.xsd"))
    log = logger.bind(directory=str(directory), file_count=len(paths))

    def correct(path: Path) -> bool:
        return correct_xsd_file(path, model, settings.first_match_on_ambiguity)

    if settings.parallel_corrections and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=settings.max_workers) as executor:
            changed = list(executor.map(correct, paths))
    else:
        changed = [correct(path) for path in paths]

    corrected = [path for path, did_change in zip(paths, changed) if did_change]
    log.info("xsd_corrected", corrected_count=len(corrected))
    return corrected
