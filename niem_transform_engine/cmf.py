"""Common Model Format (CMF 0.8) reader and canonical writer.

The writer is canonical: namespaces are sorted by prefix, components are
grouped by kind and sorted by qualified name, and every document uses the same
indentation and XML declaration. Reading a canonical document and writing it
again reproduces the same text.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import BinaryIO, Dict, List, Optional, Tuple
from xml.sax.saxutils import escape, quoteattr

from niem_transform_core import (
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
from niem_transform_core.uris import CMF_URI, STRUCTURES_URI

from .engine_base import ReadResult

logger = logging.getLogger(__name__)

INDENT = "  "
UNBOUNDED = "unbounded"

_KIND_ORDER = {ClassType: 0, Datatype: 1, Property: 2}


STRUCTURES_ID = f"{{{STRUCTURES_URI}}}id"
STRUCTURES_REF = f"{{{STRUCTURES_URI}}}ref"


# ============================================================================
# Writer
# ============================================================================

class CmfWriter:
    """Serializes a model as canonical CMF text."""

    def __init__(self, model: Model):
        self.model = model
        self.lines: List[str] = []

    def write(self) -> str:
        self.lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<Model xmlns="{CMF_URI}"',
            f'{INDENT}xmlns:structures="{STRUCTURES_URI}">',
        ]
        for namespace in sorted(self.model.namespace_list(), key=lambda ns: ns.prefix):
            self._write_namespace(namespace)

        components = sorted(
            self.model.components,
            key=lambda c: (_KIND_ORDER[type(c)], c.namespace.prefix, c.name),
        )
        for component in components:
            if isinstance(component, ClassType):
                self._write_class(component)
            elif isinstance(component, Datatype):
                self._write_datatype(component)
            elif isinstance(component, Property):
                self._write_property(component)

        self.lines.append("</Model>")
        return "\n".join(self.lines) + "\n"

    def _open(self, depth: int, tag: str, identifier: str) -> None:
        self.lines.append(f"{INDENT * depth}<{tag} structures:id={quoteattr(identifier)}>")

    def _close(self, depth: int, tag: str) -> None:
        self.lines.append(f"{INDENT * depth}</{tag}>")

    def _text(self, depth: int, tag: str, value: Optional[str]) -> None:
        if value:
            self.lines.append(f"{INDENT * depth}<{tag}>{escape(value)}</{tag}>")

    def _ref(self, depth: int, tag: str, target: Optional[Component]) -> None:
        if target is not None:
            self.lines.append(
                f"{INDENT * depth}<{tag} structures:ref={quoteattr(target.identifier)}/>"
            )

    def _write_namespace(self, namespace: Namespace) -> None:
        self._open(1, "Namespace", namespace.prefix)
        self._text(2, "NamespaceURI", namespace.uri)
        self._text(2, "NamespacePrefixText", namespace.prefix)
        self._text(2, "DefinitionText", namespace.definition)
        self._text(2, "NamespaceKindCode", namespace.kind.value)
        document = namespace.document
        if document is not None:
            self._text(2, "DocumentFilePathText", document.file_path)
            self._text(2, "ConformanceTargetURIList", document.conformance_targets)
            self._text(2, "NamespaceVersionText", document.version)
        self._close(1, "Namespace")

    def _write_common(self, component: Component) -> None:
        self._text(2, "Name", component.name)
        self.lines.append(
            f"{INDENT * 2}<Namespace structures:ref={quoteattr(component.namespace.prefix)}/>"
        )
        self._text(2, "DefinitionText", component.definition)

    def _write_class(self, class_type: ClassType) -> None:
        self._open(1, "Class", class_type.identifier)
        self._write_common(class_type)
        self._ref(2, "SubClassOf", class_type.base)
        self._text(2, "ContentStyleCode", class_type.content_style.value)
        self._ref(2, "Datatype", class_type.value_datatype)
        for association in class_type.properties:
            prop = association.property
            tag = "DataProperty" if prop.datatype is not None else "ObjectProperty"
            self.lines.append(f"{INDENT * 2}<ChildPropertyAssociation>")
            self._ref(3, tag, prop)
            self._text(3, "MinOccursQuantity", str(association.min_occurs))
            max_occurs = UNBOUNDED if association.max_occurs is None else str(association.max_occurs)
            self._text(3, "MaxOccursQuantity", max_occurs)
            self.lines.append(f"{INDENT * 2}</ChildPropertyAssociation>")
        self._close(1, "Class")

    def _write_datatype(self, datatype: Datatype) -> None:
        self._open(1, "Datatype", datatype.identifier)
        self._write_common(datatype)
        self._ref(2, "RestrictionBase", datatype.base)
        self._close(1, "Datatype")

    def _write_property(self, prop: Property) -> None:
        tag = "DataProperty" if prop.datatype is not None else "ObjectProperty"
        self._open(1, tag, prop.identifier)
        self._write_common(prop)
        self._ref(2, "SubPropertyOf", prop.sub_property_of)
        if prop.is_abstract:
            self._text(2, "AbstractIndicator", "true")
        self._ref(2, "Class", prop.class_type)
        self._ref(2, "Datatype", prop.datatype)
        self._close(1, tag)


def write_cmf(model: Model) -> str:
    """Serialize ``model`` as canonical CMF text."""
    return CmfWriter(model).write()


# ============================================================================
# Reader
# ============================================================================

class CmfReader:
    """Reads CMF 0.8 documents, collecting problems as messages.

    Element names are resolved in the namespace of the root ``Model``
    element, so the reader follows whichever CMF namespace URI the caller
    accepted.
    """

    def __init__(self) -> None:
        self.messages: List[str] = []
        self.uri = CMF_URI

    def _tag(self, local: str) -> str:
        return f"{{{self.uri}}}{local}"

    def read(self, stream: BinaryIO) -> ReadResult:
        self.messages = []
        try:
            root = ET.fromstring(stream.read())
        except ET.ParseError as e:
            return ReadResult(None, [f"CMF document is not well-formed XML: {e}"])

        uri, _, local = root.tag[1:].partition("}")
        if not root.tag.startswith("{") or local != "Model":
            return ReadResult(None, [f"Root element {root.tag} is not a CMF Model"])
        self.uri = uri

        model = Model()
        namespaces: Dict[str, Namespace] = {}
        for element in root.findall(self._tag("Namespace")):
            namespace = self._read_namespace(element)
            if namespace is None:
                continue
            try:
                model.add_namespace(namespace)
            except ModelError as e:
                self.messages.append(str(e))
                continue
            namespaces[element.get(STRUCTURES_ID) or namespace.prefix] = namespace

        # First pass creates every component so references can point forward
        pending: List[Tuple[ET.Element, Component]] = []
        index: Dict[str, Component] = {}
        for element in root:
            factory = {
                self._tag("Class"): ClassType,
                self._tag("Datatype"): Datatype,
                self._tag("ObjectProperty"): Property,
                self._tag("DataProperty"): Property,
            }.get(element.tag)
            if factory is None:
                continue
            identifier = element.get(STRUCTURES_ID)
            name = element.findtext(self._tag("Name"))
            ns_element = element.find(self._tag("Namespace"))
            ns_ref = ns_element.get(STRUCTURES_REF) if ns_element is not None else None
            namespace = namespaces.get(ns_ref or "")
            if not identifier or not name or namespace is None:
                self.messages.append(
                    f"Component {identifier or name or '(unnamed)'} is missing a name or namespace"
                )
                continue
            component = factory(name=name, namespace=namespace,
                                definition=element.findtext(self._tag("DefinitionText")))
            try:
                model.add_component(component)
            except ModelError as e:
                self.messages.append(str(e))
                continue
            index[identifier] = component
            pending.append((element, component))

        for element, component in pending:
            if isinstance(component, ClassType):
                self._resolve_class(element, component, index)
            elif isinstance(component, Datatype):
                component.base = self._resolve(element, "RestrictionBase", index, Datatype, component)
            elif isinstance(component, Property):
                self._resolve_property(element, component, index)

        if self.messages:
            return ReadResult(None, list(self.messages))
        logger.info(f"Read CMF model with {len(model)} components")
        return ReadResult(model)

    def _read_namespace(self, element: ET.Element) -> Optional[Namespace]:
        uri = element.findtext(self._tag("NamespaceURI"))
        prefix = element.findtext(self._tag("NamespacePrefixText")) or element.get(STRUCTURES_ID)
        if not uri or not prefix:
            self.messages.append("Namespace is missing a URI or prefix")
            return None

        kind_text = element.findtext(self._tag("NamespaceKindCode")) or NamespaceKind.EXTENSION.value
        try:
            kind = NamespaceKind(kind_text)
        except ValueError:
            self.messages.append(f"Namespace {prefix} has unknown kind {kind_text}")
            return None

        document = None
        file_path = element.findtext(self._tag("DocumentFilePathText"))
        if file_path:
            document = SchemaDocument(
                file_path=file_path,
                target_namespace=uri,
                conformance_targets=element.findtext(self._tag("ConformanceTargetURIList")),
                version=element.findtext(self._tag("NamespaceVersionText")),
            )
            if not document.is_relative:
                self.messages.append(f"Namespace {prefix} has a schema document path outside the model: {file_path}")
                return None
        return Namespace(
            prefix=prefix,
            uri=uri,
            kind=kind,
            definition=element.findtext(self._tag("DefinitionText")),
            document=document,
        )

    def _resolve(self, element, tag, index, expected, owner):
        child = element.find(self._tag(tag))
        if child is None:
            return None
        ref = child.get(STRUCTURES_REF)
        target = index.get(ref or "")
        if not isinstance(target, expected):
            self.messages.append(f"{owner.qname}: {tag} reference {ref} does not resolve")
            return None
        return target

    def _resolve_class(self, element: ET.Element, class_type: ClassType, index) -> None:
        class_type.base = self._resolve(element, "SubClassOf", index, ClassType, class_type)
        class_type.value_datatype = self._resolve(element, "Datatype", index, Datatype, class_type)
        style = element.findtext(self._tag("ContentStyleCode"))
        if style:
            try:
                class_type.content_style = ContentStyle(style)
            except ValueError:
                self.messages.append(f"{class_type.qname}: unknown content style {style}")

        for association in element.findall(self._tag("ChildPropertyAssociation")):
            prop = (self._resolve(association, "ObjectProperty", index, Property, class_type)
                    or self._resolve(association, "DataProperty", index, Property, class_type))
            if prop is None:
                continue
            min_text = association.findtext(self._tag("MinOccursQuantity")) or "1"
            max_text = association.findtext(self._tag("MaxOccursQuantity")) or "1"
            try:
                class_type.properties.append(PropertyAssociation(
                    property=prop,
                    min_occurs=int(min_text),
                    max_occurs=None if max_text == UNBOUNDED else int(max_text),
                ))
            except ValueError:
                self.messages.append(f"{class_type.qname}: invalid occurrence bounds for {prop.qname}")

    def _resolve_property(self, element: ET.Element, prop: Property, index) -> None:
        prop.sub_property_of = self._resolve(element, "SubPropertyOf", index, Property, prop)
        prop.class_type = self._resolve(element, "Class", index, ClassType, prop)
        prop.datatype = self._resolve(element, "Datatype", index, Datatype, prop)
        prop.is_abstract = element.findtext(self._tag("AbstractIndicator")) == "true"


def read_cmf(stream: BinaryIO) -> ReadResult:
    """Read a CMF document from a binary stream."""
    return CmfReader().read(stream)
