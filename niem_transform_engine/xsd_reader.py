"""XML Schema reader building a canonical model from NIEM-style schema sets.

Each schema document is loaded with xmlschema and contributes one namespace.
Named complex types become class types, named simple types become datatypes
and global element declarations become properties. References (``type``,
``base``, ``substitutionGroup`` and ``ref``) arrive from xmlschema as expanded
names and are matched against the model by namespace URI and local name, so a
schema set can be read in any order.
"""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import xmlschema

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
from niem_transform_core.uris import CONFORMANCE_TARGETS_URI, XSD_URI

from .engine_base import SchemaParseError

logger = logging.getLogger(__name__)

XS = f"{{{XSD_URI}}}"
XSD_ANY_TYPE = f"{XS}anyType"
CATALOG_NS = "{urn:oasis:names:tc:entity:xmlns:xml:catalog}"
CONFORMANCE_TARGETS_ATTR = f"{{{CONFORMANCE_TARGETS_URI}}}conformanceTargets"
CATALOG_PREFIX = "xml-catalog"


@dataclass
class LoadedDocument:
    """A schema document loaded by xmlschema, with the components read from it."""

    path: Path
    schema: xmlschema.XMLSchema
    namespace: Optional[Namespace] = None
    shells: List[Tuple[ET.Element, Any, Component]] = field(default_factory=list)


def split_expanded_name(name: str) -> Tuple[str, str]:
    """Split ``{uri}Local`` into ``(uri, Local)``; unqualified names have an empty URI."""
    if name.startswith("{") and "}" in name:
        uri, local = name[1:].split("}", 1)
        return uri, local
    return "", name


def documentation_of(element: ET.Element) -> Optional[str]:
    """Text of the first ``xs:annotation/xs:documentation`` child, if any."""
    text = element.findtext(f"{XS}annotation/{XS}documentation")
    if text is None:
        return None
    return text.strip() or None


def namespace_kind_for(uri: str) -> NamespaceKind:
    if "niem-core" in uri:
        return NamespaceKind.CORE
    if "/domains/" in uri:
        return NamespaceKind.DOMAIN
    return NamespaceKind.EXTENSION


class XsdReader:
    """Reads a set of XML Schema documents (and XML catalogs) into a model."""

    def __init__(self) -> None:
        self.messages: List[str] = []
        self.model = Model()

    def read(self, paths: Sequence[Path]) -> Model:
        """Read schema documents into a new model.

        Args:
            paths: XML Schema files, optionally mixed with ``xml-catalog*`` files

        Returns:
            The populated model

        Raises:
            SchemaParseError: If any document cannot be read
        """
        self.messages = []
        self.model = Model()

        paths = [Path(p) for p in paths]
        catalogs = [p for p in paths if p.name.startswith(CATALOG_PREFIX)]
        schema_paths = [p for p in paths if p not in catalogs]
        if not schema_paths:
            raise SchemaParseError(["No XML Schema documents were provided"])

        base_dir = self._base_dir(schema_paths, catalogs)
        documents = [doc for doc in (self._load(p) for p in schema_paths) if doc is not None]

        for document in documents:
            self._register_namespace(document, base_dir)
        for document in documents:
            self._create_components(document)
        for document in documents:
            for element, xsd_component, component in document.shells:
                self._resolve_component(document, element, xsd_component, component)

        self._check_catalogs(catalogs)

        if self.messages:
            raise SchemaParseError(self.messages)
        logger.info(f"Read {len(documents)} schema documents with {len(self.model)} components")
        return self.model

    # Loading

    def _base_dir(self, schema_paths: List[Path], catalogs: List[Path]) -> Path:
        if catalogs:
            return min(catalogs, key=lambda p: len(p.parts)).parent
        parents = [str(p.resolve().parent) for p in schema_paths]
        return Path(os.path.commonpath(parents))

    def _load(self, path: Path) -> Optional[LoadedDocument]:
        # xmlschema reports syntax problems through several exception types;
        # a plain parse first gives one message for every malformed document
        try:
            root = ET.parse(str(path)).getroot()
        except ET.ParseError as e:
            self.messages.append(f"{path.name}: not well-formed XML ({e})")
            return None
        if root.tag != f"{XS}schema":
            self.messages.append(f"{path.name}: root element is not xs:schema")
            return None

        try:
            schema = xmlschema.XMLSchema(
                str(path),
                base_url=str(path.parent),
                validation="lax",
                allow="local",
            )
        except (xmlschema.XMLSchemaException, OSError) as e:
            self.messages.append(f"{path.name}: {e}")
            return None

        for error in schema.all_errors:
            logger.warning(f"{path.name}: {error.message}")
        return LoadedDocument(path=path, schema=schema)

    def _register_namespace(self, document: LoadedDocument, base_dir: Path) -> None:
        schema = document.schema
        uri = schema.target_namespace
        if not uri:
            self.messages.append(f"{document.path.name}: schema has no targetNamespace")
            return

        prefix = next(
            (p for p, u in schema.namespaces.items() if u == uri and p),
            f"ns{len(self.model.namespaces)}",
        )
        try:
            relative = document.path.resolve().relative_to(base_dir.resolve()).as_posix()
        except ValueError:
            relative = document.path.name

        root = schema.root
        namespace = Namespace(
            prefix=prefix,
            uri=uri,
            kind=namespace_kind_for(uri),
            definition=documentation_of(root),
            document=SchemaDocument(
                file_path=relative,
                target_namespace=uri,
                conformance_targets=root.get(CONFORMANCE_TARGETS_ATTR),
                version=root.get("version"),
            ),
        )
        try:
            document.namespace = self.model.add_namespace(namespace)
        except ModelError as e:
            self.messages.append(f"{document.path.name}: {e}")

    def _create_components(self, document: LoadedDocument) -> None:
        namespace = document.namespace
        if namespace is None:
            return

        schema = document.schema
        # Walk the document rather than the global maps to keep declaration order
        for element in schema.root:
            name = element.get("name")
            if not name:
                continue
            definition = documentation_of(element)
            if element.tag == f"{XS}complexType":
                xsd_component = schema.types.get(name)
                component: Component = ClassType(name=name, namespace=namespace, definition=definition)
            elif element.tag == f"{XS}simpleType":
                xsd_component = schema.types.get(name)
                component = Datatype(name=name, namespace=namespace, definition=definition)
            elif element.tag == f"{XS}element":
                xsd_component = schema.elements.get(name)
                component = Property(name=name, namespace=namespace, definition=definition)
            else:
                continue
            try:
                self.model.add_component(component)
            except ModelError as e:
                self.messages.append(f"{document.path.name}: {e}")
                continue
            if xsd_component is not None:
                document.shells.append((element, xsd_component, component))

    # Resolution

    def _lookup(self, document: LoadedDocument, name: Optional[str]) -> Optional[Component]:
        """Find the model component for an expanded name from xmlschema."""
        if not name or name == XSD_ANY_TYPE:
            return None
        uri, local = split_expanded_name(name)
        if uri == XSD_URI:
            xs_prefix = next((p for p, u in document.schema.namespaces.items() if u == XSD_URI and p), "xs")
            try:
                self.model.builtin_namespace(xs_prefix)
            except ModelError as e:
                self.messages.append(f"{document.path.name}: {e}")
                return None
            return self.model.builtin_datatype(local)

        component = self.model.get(uri, local)
        if component is None:
            logger.warning(f"{document.path.name}: reference {name} does not resolve in the schema set")
        return component

    def _resolve_component(
        self,
        document: LoadedDocument,
        element: ET.Element,
        xsd_component: Any,
        component: Component,
    ) -> None:
        if isinstance(component, Property):
            self._resolve_property(document, xsd_component, component)
        elif isinstance(component, ClassType):
            self._resolve_class(document, element, xsd_component, component)
        elif isinstance(component, Datatype):
            base_type = getattr(xsd_component, "base_type", None)
            if base_type is not None:
                base = self._lookup(document, base_type.name)
                component.base = base if isinstance(base, Datatype) else None

    def _resolve_property(self, document: LoadedDocument, xsd_element: Any, prop: Property) -> None:
        prop.is_abstract = bool(xsd_element.abstract)
        if xsd_element.type is not None:
            target = self._lookup(document, xsd_element.type.name)
            if isinstance(target, ClassType):
                prop.class_type = target
            elif isinstance(target, Datatype):
                prop.datatype = target

        group_name = xsd_element.substitution_group
        if group_name:
            head = self._lookup(document, group_name)
            if isinstance(head, Property):
                prop.sub_property_of = head
            elif head is not None:
                self.messages.append(
                    f"{document.path.name}: substitution group {head.qname} of {prop.qname} is not an element"
                )

    def _resolve_class(
        self,
        document: LoadedDocument,
        element: ET.Element,
        xsd_type: Any,
        class_type: ClassType,
    ) -> None:
        base_type = xsd_type.base_type
        base = self._lookup(document, base_type.name) if base_type is not None else None

        if xsd_type.has_simple_content():
            class_type.content_style = ContentStyle.VALUE
            if isinstance(base, ClassType):
                class_type.base = base
            elif isinstance(base, Datatype):
                class_type.value_datatype = base
            return
        if isinstance(base, ClassType):
            class_type.base = base

        # An extension's content model includes its base's particles; keep
        # only the ones declared inside this type
        own = {id(e) for e in element.iter(f"{XS}element")}
        for particle in xsd_type.content.iter_elements():
            if id(getattr(particle, "elem", None)) not in own:
                continue
            if particle.elem.get("ref") is None:
                logger.warning(
                    f"{document.path.name}: local element {particle.local_name} in "
                    f"{class_type.qname} is not supported; skipped"
                )
                continue
            target = self._lookup(document, particle.name)
            if not isinstance(target, Property):
                continue
            class_type.properties.append(PropertyAssociation(
                property=target,
                min_occurs=particle.min_occurs,
                max_occurs=particle.max_occurs,
            ))

    # Catalogs

    def _check_catalogs(self, catalogs: List[Path]) -> None:
        for catalog in catalogs:
            try:
                root = ET.parse(str(catalog)).getroot()
            except ET.ParseError as e:
                self.messages.append(f"{catalog.name}: not well-formed XML ({e})")
                continue
            entries = root.findall(f".//{CATALOG_NS}uri")
            for entry in entries:
                uri = entry.get("name")
                if uri and self.model.namespace(uri) is None:
                    logger.warning(f"{catalog.name}: namespace {uri} has no schema document in the input")
            logger.info(f"Read XML catalog {catalog.name} with {len(entries)} entries")


def read_xsd(paths: Sequence[Path]) -> Model:
    """Read XML Schema documents into a canonical model."""
    return XsdReader().read(paths)
