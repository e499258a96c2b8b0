"""Model to XML Schema writers.

Two writer variants exist because NIEM reorganized its namespaces in 6.0:
``LegacySchemaWriter`` produces the NIEM 3.0 - 5.2 layout and
``SourceSchemaWriter`` the NIEM 6.0+ layout. Both write one schema document
per non built-in namespace, at the namespace's schema document path.
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import Dict, List, Optional, Type
from xml.sax.saxutils import escape

from niem_transform_core import (
    ClassType,
    Component,
    ContentStyle,
    Datatype,
    Model,
    Namespace,
    Property,
)
from niem_transform_core.uris import (
    CONFORMANCE_TARGETS_URI,
    LEGACY_NDR5_URI,
    NDR6_URI,
    REFERENCE_SCHEMA_TARGET,
    XSD_URI,
)

from .engine_base import SchemaVariant

logger = logging.getLogger(__name__)

ATTRIBUTE_INDENT = " " * 11
IMPORT_INDENT = " " * 3


def _attr(value: str) -> str:
    return '"' + escape(value, {'"': "&quot;"}) + '"'


def document_path(namespace: Namespace) -> str:
    """Relative path of the schema document written for ``namespace``."""
    if namespace.document is not None and namespace.document.file_path:
        return namespace.document.file_path
    return f"{namespace.prefix}.xsd"


class SchemaWriter:
    """Base XML Schema writer; subclasses pick the NDR rule set they claim."""

    variant: SchemaVariant
    ndr_uri: str

    def __init__(self, model: Model):
        self.model = model

    @property
    def conformance_target(self) -> str:
        return self.ndr_uri + REFERENCE_SCHEMA_TARGET

    def write(self, output_dir: Path) -> List[Path]:
        """Write one document per namespace under ``output_dir``.

        Raises:
            ValueError: If a document path resolves outside ``output_dir``
        """
        root = output_dir.resolve()
        written: List[Path] = []
        for namespace in sorted(self.model.namespace_list(), key=lambda ns: ns.prefix):
            if namespace.is_builtin:
                continue
            path = output_dir / document_path(namespace)
            if root not in path.resolve().parents:
                raise ValueError(f"Schema document path {document_path(namespace)} is outside {output_dir}")
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.document(namespace), encoding="utf-8")
            written.append(path)
        logger.info(f"Wrote {len(written)} {self.variant.value} schema documents to {output_dir}")
        return written

    # Document

    def document(self, namespace: Namespace) -> str:
        components = sorted(self.model.components_in(namespace), key=lambda c: c.name)
        dependencies = self._dependencies(namespace, components)

        lines = ['<?xml version="1.0" encoding="UTF-8"?>', "<xs:schema"]
        attributes = [f"xmlns:ct={_attr(CONFORMANCE_TARGETS_URI)}"]
        declared = {namespace.prefix: namespace.uri, "xs": XSD_URI}
        declared.update({dep.prefix: dep.uri for dep in dependencies})
        attributes += [f"xmlns:{prefix}={_attr(uri)}" for prefix, uri in sorted(declared.items())]
        attributes.append(f"targetNamespace={_attr(namespace.uri)}")
        if namespace.document is not None and namespace.document.version:
            attributes.append(f"version={_attr(namespace.document.version)}")
        attributes.append(f"ct:conformanceTargets={_attr(self.conformance_target)}")
        lines += [ATTRIBUTE_INDENT + attribute for attribute in attributes]
        lines[-1] += ">"

        self._annotation(lines, 1, namespace.definition)

        here = posixpath.dirname(document_path(namespace)) or "."
        for dependency in dependencies:
            location = posixpath.relpath(document_path(dependency), here)
            lines.append(
                f"{IMPORT_INDENT}<xs:import namespace={_attr(dependency.uri)} "
                f"schemaLocation={_attr(location)}/>"
            )

        for component in components:
            if isinstance(component, ClassType):
                self._complex_type(lines, component)
        for component in components:
            if isinstance(component, Datatype):
                self._simple_type(lines, component)
        for component in components:
            if isinstance(component, Property):
                self._element(lines, component)

        lines.append("</xs:schema>")
        return "\n".join(lines) + "\n"

    def _dependencies(self, namespace: Namespace, components: List[Component]) -> List[Namespace]:
        found: Dict[str, Namespace] = {}

        def add(target: Optional[Component]) -> None:
            if target is None:
                return
            ns = target.namespace
            if ns is not namespace and not ns.is_builtin:
                found[ns.prefix] = ns

        for component in components:
            if isinstance(component, Property):
                add(component.class_type)
                add(component.datatype)
                add(component.sub_property_of)
            elif isinstance(component, ClassType):
                add(component.base)
                add(component.value_datatype)
                for association in component.properties:
                    add(association.property)
            elif isinstance(component, Datatype):
                add(component.base)
        return [found[prefix] for prefix in sorted(found)]

    # Components

    @staticmethod
    def _qname(component: Component) -> str:
        if component.namespace.is_builtin:
            return f"xs:{component.name}"
        return component.qname

    def _annotation(self, lines: List[str], depth: int, definition: Optional[str]) -> None:
        if not definition:
            return
        pad = "  " * depth
        lines.append(f"{pad}<xs:annotation>")
        lines.append(f"{pad}  <xs:documentation>{escape(definition)}</xs:documentation>")
        lines.append(f"{pad}</xs:annotation>")

    def _sequence(self, lines: List[str], depth: int, class_type: ClassType) -> None:
        pad = "  " * depth
        if not class_type.properties:
            lines.append(f"{pad}<xs:sequence/>")
            return
        lines.append(f"{pad}<xs:sequence>")
        for association in class_type.properties:
            occurs = ""
            if association.min_occurs != 1:
                occurs += f' minOccurs="{association.min_occurs}"'
            if association.max_occurs != 1:
                max_occurs = "unbounded" if association.max_occurs is None else str(association.max_occurs)
                occurs += f' maxOccurs="{max_occurs}"'
            lines.append(f'{pad}  <xs:element ref="{self._qname(association.property)}"{occurs}/>')
        lines.append(f"{pad}</xs:sequence>")

    def _complex_type(self, lines: List[str], class_type: ClassType) -> None:
        lines.append(f"  <xs:complexType name={_attr(class_type.name)}>")
        self._annotation(lines, 2, class_type.definition)
        if class_type.content_style == ContentStyle.VALUE:
            base = class_type.base or class_type.value_datatype
            base_qname = self._qname(base) if base is not None else "xs:string"
            lines.append("    <xs:simpleContent>")
            lines.append(f'      <xs:extension base="{base_qname}"/>')
            lines.append("    </xs:simpleContent>")
        elif class_type.base is not None:
            lines.append("    <xs:complexContent>")
            lines.append(f'      <xs:extension base="{self._qname(class_type.base)}">')
            self._sequence(lines, 4, class_type)
            lines.append("      </xs:extension>")
            lines.append("    </xs:complexContent>")
        else:
            self._sequence(lines, 2, class_type)
        lines.append("  </xs:complexType>")

    def _simple_type(self, lines: List[str], datatype: Datatype) -> None:
        base_qname = self._qname(datatype.base) if datatype.base is not None else "xs:string"
        lines.append(f"  <xs:simpleType name={_attr(datatype.name)}>")
        self._annotation(lines, 2, datatype.definition)
        lines.append(f'    <xs:restriction base="{base_qname}"/>')
        lines.append("  </xs:simpleType>")

    def _element(self, lines: List[str], prop: Property) -> None:
        attributes = f"name={_attr(prop.name)}"
        if prop.sub_property_of is not None:
            attributes += f' substitutionGroup="{self._qname(prop.sub_property_of)}"'
        if prop.type_component is not None:
            attributes += f' type="{self._qname(prop.type_component)}"'
        if prop.is_abstract:
            attributes += ' abstract="true"'

        if not prop.definition:
            lines.append(f"  <xs:element {attributes}/>")
            return
        lines.append(f"  <xs:element {attributes}>")
        self._annotation(lines, 2, prop.definition)
        lines.append("  </xs:element>")


class LegacySchemaWriter(SchemaWriter):
    """NIEM 3.0 - 5.2 schema writer."""

    variant = SchemaVariant.LEGACY
    ndr_uri = LEGACY_NDR5_URI


class SourceSchemaWriter(SchemaWriter):
    """NIEM 6.0+ schema writer."""

    variant = SchemaVariant.SOURCE
    ndr_uri = NDR6_URI


WRITERS: Dict[SchemaVariant, Type[SchemaWriter]] = {
    SchemaVariant.LEGACY: LegacySchemaWriter,
    SchemaVariant.SOURCE: SourceSchemaWriter,
}


def write_xsd(model: Model, output_dir: Path, variant: SchemaVariant) -> List[Path]:
    """Write the model as XML Schema documents using the requested writer variant."""
    return WRITERS[variant](model).write(output_dir)
