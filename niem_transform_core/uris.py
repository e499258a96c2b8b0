"""Well-known namespace URIs shared by the engine and the orchestrator."""

from __future__ import annotations

XSD_URI = "http://www.w3.org/2001/XMLSchema"

# Common Model Format (CMF) 0.8
CMF_VERSION = "0.8"
CMF_URI = "https://docs.oasis-open.org/niemopen/ns/specification/cmf/0.8/"
STRUCTURES_URI = "https://docs.oasis-open.org/niemopen/ns/model/structures/6.0/"

# Conformance targets attribute namespace (same URI across NIEM 3.0 - 6.0)
CONFORMANCE_TARGETS_URI = "http://release.niem.gov/niem/conformanceTargets/3.0/"

# NDR rule sets claimed by generated schema documents
NDR6_URI = "https://docs.oasis-open.org/niemopen/ns/specification/NDR/6.0/"
LEGACY_NDR5_URI = "http://reference.niem.gov/niem/specification/naming-and-design-rules/5.0/"

REFERENCE_SCHEMA_TARGET = "#ReferenceSchemaDocument"
EXTENSION_SCHEMA_TARGET = "#ExtensionSchemaDocument"

# NIEM 6.0 moved the model namespaces under this base URI
NIEM6_URI_BASE = "https://docs.oasis-open.org/niemopen/ns/model"

__all__ = [
    "XSD_URI",
    "CMF_VERSION",
    "CMF_URI",
    "STRUCTURES_URI",
    "CONFORMANCE_TARGETS_URI",
    "NDR6_URI",
    "LEGACY_NDR5_URI",
    "REFERENCE_SCHEMA_TARGET",
    "EXTENSION_SCHEMA_TARGET",
    "NIEM6_URI_BASE",
]
