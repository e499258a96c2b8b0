"""
Unit tests for the XML Schema, OWL and JSON Schema writers.

Tests cover:
- Schema document layout and variant-specific conformance targets
- Imports between namespaces
- OWL classes and properties in the generated Turtle
- JSON Schema properties and definitions
"""

import json

import pytest
from rdflib import OWL, RDF, RDFS, XSD, Graph, URIRef

from niem_transform_engine import SchemaVariant
from niem_transform_engine.json_schema import write_json_schema
from niem_transform_engine.owl_writer import write_owl
from niem_transform_engine.xsd_reader import read_xsd
from niem_transform_engine.xsd_writer import (
    LegacySchemaWriter,
    SourceSchemaWriter,
    document_path,
    write_xsd,
)

EX = "http://example.com/ex/1.0/"
NC6 = "https://docs.oasis-open.org/niemopen/ns/model/niem-core/6.0/"


class TestSchemaWriter:
    """Test XML Schema output."""

    @pytest.mark.unit
    def test_one_document_per_namespace(self, niem6_model, temp_dir):
        written = write_xsd(niem6_model, temp_dir, SchemaVariant.SOURCE)

        assert sorted(p.relative_to(temp_dir).as_posix() for p in written) == [
            "ex.xsd",
            "niem/niem-core.xsd",
        ]

    @pytest.mark.unit
    def test_root_attributes_one_per_line(self, ex_model):
        lines = LegacySchemaWriter(ex_model).document(ex_model.namespace_by_prefix("ex")).splitlines()

        assert lines[1] == "<xs:schema"
        assert lines[2] == '           xmlns:ct="http://release.niem.gov/niem/conformanceTargets/3.0/"'
        assert lines[3] == '           xmlns:ex="http://example.com/ex/1.0/"'
        assert lines[4] == '           xmlns:xs="http://www.w3.org/2001/XMLSchema"'
        assert lines[5] == '           targetNamespace="http://example.com/ex/1.0/"'
        assert lines[6] == '           version="1"'
        assert lines[7].endswith('#ReferenceSchemaDocument">')

    @pytest.mark.unit
    @pytest.mark.parametrize("writer,ndr", [
        (LegacySchemaWriter, "http://reference.niem.gov/niem/specification/naming-and-design-rules/5.0/"),
        (SourceSchemaWriter, "https://docs.oasis-open.org/niemopen/ns/specification/NDR/6.0/"),
    ])
    def test_variant_conformance_target(self, ex_model, writer, ndr):
        text = writer(ex_model).document(ex_model.namespace_by_prefix("ex"))
        assert f'ct:conformanceTargets="{ndr}#ReferenceSchemaDocument">' in text

    @pytest.mark.unit
    def test_import_uses_relative_location(self, niem6_model):
        text = SourceSchemaWriter(niem6_model).document(niem6_model.namespace_by_prefix("ex"))
        assert f'   <xs:import namespace="{NC6}" schemaLocation="niem/niem-core.xsd"/>' in text

    @pytest.mark.unit
    def test_import_from_subdirectory(self, niem6_model):
        # Move ex.xsd into a sibling directory of niem/
        niem6_model.namespace_by_prefix("ex").document.file_path = "extension/ex.xsd"
        text = SourceSchemaWriter(niem6_model).document(niem6_model.namespace_by_prefix("ex"))
        assert 'schemaLocation="../niem/niem-core.xsd"' in text

    @pytest.mark.unit
    def test_element_declarations(self, ex_model):
        text = LegacySchemaWriter(ex_model).document(ex_model.namespace_by_prefix("ex"))

        assert '  <xs:element name="Person" substitutionGroup="ex:EntityAbstract" type="ex:PersonType">' in text
        assert '  <xs:element name="EntityAbstract" abstract="true">' in text
        assert '      <xs:element ref="ex:PersonName" minOccurs="0" maxOccurs="unbounded"/>' in text

    @pytest.mark.unit
    def test_written_schema_reads_back(self, ex_model, temp_dir):
        paths = write_xsd(ex_model, temp_dir, SchemaVariant.LEGACY)
        model = read_xsd(paths)

        person = model.get_by_qname("ex:Person")
        assert person.class_type.qname == "ex:PersonType"
        assert person.sub_property_of.qname == "ex:EntityAbstract"
        assert person.definition == "A human being."

    @pytest.mark.unit
    def test_document_path_default(self, ex_model):
        namespace = ex_model.namespace_by_prefix("ex")
        namespace.document = None
        assert document_path(namespace) == "ex.xsd"

    @pytest.mark.unit
    @pytest.mark.parametrize("escape", ["../evil.xsd", "absolute"])
    def test_document_outside_output_dir_refused(self, niem6_model, temp_dir, escape):
        outside = temp_dir / "evil.xsd"
        output_dir = temp_dir / "out"
        output_dir.mkdir()
        file_path = str(outside) if escape == "absolute" else escape
        niem6_model.namespace_by_prefix("ex").document.file_path = file_path

        with pytest.raises(ValueError, match="is outside"):
            write_xsd(niem6_model, output_dir, SchemaVariant.SOURCE)
        assert not outside.exists()


class TestOwlWriter:
    """Test Turtle output."""

    @pytest.fixture
    def graph(self, ex_model) -> Graph:
        graph = Graph()
        graph.parse(data=write_owl(ex_model), format="turtle")
        return graph

    @pytest.mark.unit
    def test_ontology_per_namespace(self, graph):
        assert (URIRef("http://example.com/ex/1.0/"), RDF.type, OWL.Ontology) in graph

    @pytest.mark.unit
    def test_class_and_properties(self, graph):
        assert (URIRef(EX + "PersonType"), RDF.type, OWL.Class) in graph
        assert (URIRef(EX + "Person"), RDF.type, OWL.ObjectProperty) in graph
        assert (URIRef(EX + "PersonName"), RDF.type, OWL.DatatypeProperty) in graph

    @pytest.mark.unit
    def test_relations(self, graph):
        assert (URIRef(EX + "Person"), RDFS.range, URIRef(EX + "PersonType")) in graph
        assert (URIRef(EX + "Person"), RDFS.subPropertyOf, URIRef(EX + "EntityAbstract")) in graph
        assert (URIRef(EX + "PersonName"), RDFS.range, XSD.string) in graph
        assert (URIRef(EX + "PersonName"), RDFS.domain, URIRef(EX + "PersonType")) in graph

    @pytest.mark.unit
    def test_definitions_as_comments(self, graph):
        comments = {str(o) for o in graph.objects(URIRef(EX + "Person"), RDFS.comment)}
        assert comments == {"A human being."}

    @pytest.mark.unit
    def test_no_builtin_declarations(self, graph):
        assert (XSD.string, RDF.type, RDFS.Datatype) not in graph


class TestJsonSchemaWriter:
    """Test JSON Schema output."""

    @pytest.fixture
    def document(self, ex_model):
        return json.loads(write_json_schema(ex_model))

    @pytest.mark.unit
    def test_draft_07(self, document):
        assert document["$schema"] == "http://json-schema.org/draft-07/schema#"

    @pytest.mark.unit
    def test_properties_keyed_by_qname(self, document):
        assert set(document["properties"]) == {"ex:EntityAbstract", "ex:Person", "ex:PersonName"}
        assert document["properties"]["ex:Person"] == {
            "description": "A human being.",
            "$ref": "#/definitions/ex:PersonType",
        }
        assert document["properties"]["ex:PersonName"]["type"] == "string"

    @pytest.mark.unit
    def test_definitions(self, document):
        person_type = document["definitions"]["ex:PersonType"]
        assert person_type["type"] == "object"
        assert person_type["properties"]["ex:PersonName"] == {
            "type": "array",
            "items": {"$ref": "#/properties/ex:PersonName"},
        }
        assert "required" not in person_type
        assert "xs:string" not in document["definitions"]

    @pytest.mark.unit
    def test_output_format(self, ex_model):
        text = write_json_schema(ex_model)
        assert text.endswith("}\n")
        assert text.startswith('{\n  "$schema"')
