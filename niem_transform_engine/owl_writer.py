"""Model to OWL ontology writer (Turtle via rdflib)."""

from __future__ import annotations

import logging
from typing import Optional

from rdflib import OWL, RDF, RDFS, XSD, Graph, Literal, URIRef
from rdflib import Namespace as RdfNamespace

from niem_transform_core import ClassType, Component, Datatype, Model, Property

logger = logging.getLogger(__name__)


class OwlWriter:
    """Builds an rdflib graph for a model.

    Each namespace becomes an ``owl:Ontology``; class types, properties and
    non built-in datatypes become OWL classes, properties and RDFS datatypes in
    their namespace.
    """

    def __init__(self, model: Model):
        self.model = model
        self.graph = Graph()
        self.graph.bind("rdf", RDF)
        self.graph.bind("rdfs", RDFS)
        self.graph.bind("owl", OWL)
        self.graph.bind("xsd", XSD)

    def build(self) -> Graph:
        for namespace in self.model.namespace_list():
            if namespace.is_builtin:
                continue
            self.graph.bind(namespace.prefix, RdfNamespace(self._base(namespace.uri)))
            ontology = URIRef(namespace.uri)
            self.graph.add((ontology, RDF.type, OWL.Ontology))
            if namespace.definition:
                self.graph.add((ontology, RDFS.comment, Literal(namespace.definition)))

        for component in self.model.components:
            if component.namespace.is_builtin:
                continue
            if isinstance(component, ClassType):
                self._add_class(component)
            elif isinstance(component, Property):
                self._add_property(component)
            elif isinstance(component, Datatype):
                self._add_datatype(component)

        logger.info(f"Built OWL graph with {len(self.graph)} triples")
        return self.graph

    def write(self) -> str:
        return self.build().serialize(format="turtle")

    @staticmethod
    def _base(uri: str) -> str:
        if uri.endswith(("/", "#")):
            return uri
        return uri + "#"

    def _iri(self, component: Optional[Component]) -> Optional[URIRef]:
        if component is None:
            return None
        if component.namespace.is_builtin:
            return XSD[component.name]
        return URIRef(self._base(component.namespace.uri) + component.name)

    def _describe(self, subject: URIRef, component: Component) -> None:
        self.graph.add((subject, RDFS.label, Literal(component.name)))
        self.graph.add((subject, RDFS.isDefinedBy, URIRef(component.namespace.uri)))
        if component.definition:
            self.graph.add((subject, RDFS.comment, Literal(component.definition)))

    def _add_class(self, class_type: ClassType) -> None:
        subject = self._iri(class_type)
        self.graph.add((subject, RDF.type, OWL.Class))
        self._describe(subject, class_type)
        if class_type.base is not None:
            self.graph.add((subject, RDFS.subClassOf, self._iri(class_type.base)))
        for association in class_type.properties:
            self.graph.add((self._iri(association.property), RDFS.domain, subject))

    def _add_property(self, prop: Property) -> None:
        subject = self._iri(prop)
        kind = OWL.DatatypeProperty if prop.datatype is not None else OWL.ObjectProperty
        self.graph.add((subject, RDF.type, kind))
        self._describe(subject, prop)
        range_iri = self._iri(prop.type_component)
        if range_iri is not None:
            self.graph.add((subject, RDFS.range, range_iri))
        if prop.sub_property_of is not None:
            self.graph.add((subject, RDFS.subPropertyOf, self._iri(prop.sub_property_of)))

    def _add_datatype(self, datatype: Datatype) -> None:
        subject = self._iri(datatype)
        self.graph.add((subject, RDF.type, RDFS.Datatype))
        self._describe(subject, datatype)
        if datatype.base is not None:
            self.graph.add((subject, OWL.equivalentClass, self._iri(datatype.base)))


def write_owl(model: Model) -> str:
    """Serialize ``model`` as an OWL ontology in Turtle."""
    return OwlWriter(model).write()
