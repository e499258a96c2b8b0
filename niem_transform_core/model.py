"""Canonical in-memory model shared by every format in the transform pipeline.

A :class:`Model` maps namespace URIs to :class:`Namespace` records and holds a
collection of components (properties, class types and datatypes) uniquely keyed
by ``(namespace URI, local name)``. Readers build a model, writers consume it;
the orchestrator only reads and queries it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Dict, Iterator, List, Optional, Tuple, Type, TypeVar

from .uris import XSD_URI


class ModelError(ValueError):
    """Raised when a component or namespace would break model invariants."""


class NamespaceKind(str, Enum):
    """Role a namespace plays in a NIEM model."""
    BUILTIN = "BUILTIN"
    CORE = "CORE"
    DOMAIN = "DOMAIN"
    EXTENSION = "EXTENSION"
    OTHERNIEM = "OTHERNIEM"
    EXTERNAL = "EXTERNAL"


class ContentStyle(str, Enum):
    """Content category of a class type."""
    OBJECT = "object"
    VALUE = "value"


@dataclass
class SchemaDocument:
    """Descriptor of the schema document that declares a namespace."""

    file_path: str
    target_namespace: str
    conformance_targets: Optional[str] = None
    version: Optional[str] = None

    @property
    def filename(self) -> str:
        return self.file_path.rsplit("/", 1)[-1]

    @property
    def is_relative(self) -> bool:
        """True when ``file_path`` stays inside the directory it is written under."""
        path = PurePosixPath(self.file_path.replace("\\", "/"))
        return bool(self.file_path) and not path.is_absolute() and ".." not in path.parts


@dataclass(eq=False)
class Namespace:
    """A namespace with its preferred prefix."""

    prefix: str
    uri: str
    kind: NamespaceKind = NamespaceKind.EXTENSION
    definition: Optional[str] = None
    document: Optional[SchemaDocument] = None

    @property
    def is_builtin(self) -> bool:
        return self.kind == NamespaceKind.BUILTIN


@dataclass(eq=False)
class Component:
    """A named, namespace-qualified model element."""

    name: str
    namespace: Namespace
    definition: Optional[str] = None

    @property
    def qname(self) -> str:
        return f"{self.namespace.prefix}:{self.name}"

    @property
    def identifier(self) -> str:
        """Cross reference identifier used by CMF (``prefix.Name``)."""
        return f"{self.namespace.prefix}.{self.name}"

    @property
    def key(self) -> Tuple[str, str]:
        return (self.namespace.uri, self.name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.qname})"


@dataclass(eq=False, repr=False)
class Datatype(Component):
    """Simple value type. Built-in XML Schema types live in the ``xs`` namespace."""

    base: Optional["Datatype"] = None


@dataclass(eq=False, repr=False)
class ClassType(Component):
    """Named structure with an optional base type and a content category."""

    base: Optional["ClassType"] = None
    content_style: ContentStyle = ContentStyle.OBJECT
    value_datatype: Optional[Datatype] = None
    properties: List["PropertyAssociation"] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class Property(Component):
    """Named concept typed by a class type or a datatype."""

    class_type: Optional[ClassType] = None
    datatype: Optional[Datatype] = None
    sub_property_of: Optional["Property"] = None
    is_abstract: bool = False

    @property
    def type_component(self) -> Optional[Component]:
        return self.class_type or self.datatype


@dataclass(eq=False)
class PropertyAssociation:
    """Occurrence of a property inside a class type (``None`` max means unbounded)."""

    property: Property
    min_occurs: int = 1
    max_occurs: Optional[int] = 1


C = TypeVar("C", bound=Component)


class Model:
    """Namespaces and components of one information model."""

    def __init__(self) -> None:
        self._namespaces: Dict[str, Namespace] = {}
        self._components: Dict[Tuple[str, str], Component] = {}

    # Namespaces

    def add_namespace(self, namespace: Namespace) -> Namespace:
        """Register a namespace.

        Args:
            namespace: Namespace to register

        Returns:
            The registered namespace

        Raises:
            ModelError: If the URI or the prefix is already bound to another namespace
        """
        if namespace.uri in self._namespaces:
            raise ModelError(f"Namespace {namespace.uri} is already defined")
        existing = self.namespace_by_prefix(namespace.prefix)
        if existing is not None:
            raise ModelError(
                f"Prefix {namespace.prefix} is already bound to {existing.uri}"
            )
        self._namespaces[namespace.uri] = namespace
        return namespace

    def namespace(self, uri: str) -> Optional[Namespace]:
        return self._namespaces.get(uri)

    def namespace_by_prefix(self, prefix: str) -> Optional[Namespace]:
        for namespace in self._namespaces.values():
            if namespace.prefix == prefix:
                return namespace
        return None

    @property
    def namespaces(self) -> Dict[str, Namespace]:
        """Mapping of namespace URI to namespace, in registration order."""
        return dict(self._namespaces)

    def namespace_list(self) -> List[Namespace]:
        return list(self._namespaces.values())

    def builtin_namespace(self, prefix: str = "xs") -> Namespace:
        """Return the XML Schema namespace, registering it on first use."""
        namespace = self.namespace(XSD_URI)
        if namespace is None:
            namespace = self.add_namespace(
                Namespace(prefix=prefix, uri=XSD_URI, kind=NamespaceKind.BUILTIN)
            )
        return namespace

    # Components

    def add_component(self, component: C) -> C:
        """Add a component to the model.

        Raises:
            ModelError: If the namespace is not registered or the key is taken
        """
        if self._namespaces.get(component.namespace.uri) is not component.namespace:
            raise ModelError(
                f"Namespace of {component.qname} is not registered in this model"
            )
        if component.key in self._components:
            raise ModelError(f"Component {component.qname} is already defined")
        self._components[component.key] = component
        return component

    def get(self, namespace_uri: str, name: str) -> Optional[Component]:
        return self._components.get((namespace_uri, name))

    def get_by_qname(self, qname: str) -> Optional[Component]:
        prefix, _, name = qname.rpartition(":")
        namespace = self.namespace_by_prefix(prefix)
        if namespace is None:
            return None
        return self.get(namespace.uri, name)

    def builtin_datatype(self, name: str) -> Datatype:
        """Return the ``xs`` datatype ``name``, creating it if needed."""
        namespace = self.builtin_namespace()
        existing = self.get(namespace.uri, name)
        if isinstance(existing, Datatype):
            return existing
        return self.add_component(Datatype(name=name, namespace=namespace))

    @property
    def components(self) -> List[Component]:
        return list(self._components.values())

    def _of_kind(self, kind: Type[C]) -> List[C]:
        return [c for c in self._components.values() if isinstance(c, kind)]

    def properties(self) -> List[Property]:
        return self._of_kind(Property)

    def class_types(self) -> List[ClassType]:
        return self._of_kind(ClassType)

    def datatypes(self) -> List[Datatype]:
        return self._of_kind(Datatype)

    def components_in(self, namespace: Namespace) -> Iterator[Component]:
        return (c for c in self._components.values() if c.namespace is namespace)

    def __len__(self) -> int:
        return len(self._components)

    # Derived views

    def schema_documents(self) -> Dict[str, SchemaDocument]:
        """Schema document registry keyed by file path."""
        return {
            ns.document.file_path: ns.document
            for ns in self._namespaces.values()
            if ns.document is not None
        }

    def check_references(self) -> List[str]:
        """List cross references that do not resolve within this model."""
        problems: List[str] = []

        def check(owner: Component, label: str, target: Optional[Component]) -> None:
            if target is not None and self._components.get(target.key) is not target:
                problems.append(f"{owner.qname}: {label} {target.qname} is not in the model")

        for component in self._components.values():
            if isinstance(component, Property):
                check(component, "type", component.class_type)
                check(component, "datatype", component.datatype)
                check(component, "substitution group", component.sub_property_of)
            elif isinstance(component, ClassType):
                check(component, "base", component.base)
                check(component, "datatype", component.value_datatype)
                for association in component.properties:
                    check(component, "property", association.property)
            elif isinstance(component, Datatype):
                check(component, "base", component.base)
        return problems
