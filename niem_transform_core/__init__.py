"""Canonical model structures for the NIEM transform pipeline."""

from .model import (
    ClassType,
    Component,
    ContentStyle,
    Datatype,
    Model,
    ModelError,
    Namespace,
    NamespaceKind,
    Property,
    PropertyAssociation,
    SchemaDocument,
)
from .uris import CMF_URI, CMF_VERSION, NIEM6_URI_BASE, XSD_URI

__all__ = [
    "ClassType",
    "Component",
    "ContentStyle",
    "Datatype",
    "Model",
    "ModelError",
    "Namespace",
    "NamespaceKind",
    "Property",
    "PropertyAssociation",
    "SchemaDocument",
    "CMF_URI",
    "CMF_VERSION",
    "NIEM6_URI_BASE",
    "XSD_URI",
]
