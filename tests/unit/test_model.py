"""
Unit tests for the canonical model.

Tests cover:
- Namespace registration and prefix/URI uniqueness
- Component keys and qualified names
- Built-in XML Schema datatypes
- Schema document registry and reference checks
"""

import pytest

from niem_transform_core import (
    ClassType,
    Datatype,
    Model,
    ModelError,
    Namespace,
    NamespaceKind,
    Property,
    SchemaDocument,
)
from niem_transform_core.uris import XSD_URI


@pytest.fixture
def model_with_ns():
    model = Model()
    ns = model.add_namespace(Namespace(prefix="ex", uri="http://example.com/ex/"))
    return model, ns


class TestNamespaces:
    """Test namespace registration."""

    @pytest.mark.unit
    def test_duplicate_uri_rejected(self, model_with_ns):
        model, _ = model_with_ns
        with pytest.raises(ModelError):
            model.add_namespace(Namespace(prefix="other", uri="http://example.com/ex/"))

    @pytest.mark.unit
    def test_duplicate_prefix_rejected(self, model_with_ns):
        model, _ = model_with_ns
        with pytest.raises(ModelError, match="already bound"):
            model.add_namespace(Namespace(prefix="ex", uri="http://example.com/other/"))

    @pytest.mark.unit
    def test_lookup_by_prefix(self, model_with_ns):
        model, ns = model_with_ns
        assert model.namespace_by_prefix("ex") is ns
        assert model.namespace_by_prefix("nope") is None

    @pytest.mark.unit
    def test_builtin_namespace_registered_once(self):
        model = Model()
        first = model.builtin_namespace()
        second = model.builtin_namespace("xsd")

        assert first is second
        assert first.prefix == "xs"
        assert first.uri == XSD_URI
        assert first.kind == NamespaceKind.BUILTIN
        assert first.is_builtin


class TestComponents:
    """Test component keys and lookups."""

    @pytest.mark.unit
    def test_qname_and_identifier(self, model_with_ns):
        model, ns = model_with_ns
        prop = model.add_component(Property(name="PersonName", namespace=ns))

        assert prop.qname == "ex:PersonName"
        assert prop.identifier == "ex.PersonName"
        assert prop.key == ("http://example.com/ex/", "PersonName")
        assert repr(prop) == "Property(ex:PersonName)"

    @pytest.mark.unit
    def test_duplicate_key_rejected(self, model_with_ns):
        model, ns = model_with_ns
        model.add_component(Property(name="Thing", namespace=ns))
        with pytest.raises(ModelError, match="already defined"):
            model.add_component(ClassType(name="Thing", namespace=ns))

    @pytest.mark.unit
    def test_unregistered_namespace_rejected(self):
        model = Model()
        stray = Namespace(prefix="ex", uri="http://example.com/ex/")
        with pytest.raises(ModelError, match="not registered"):
            model.add_component(Property(name="Thing", namespace=stray))

    @pytest.mark.unit
    def test_get_by_qname(self, model_with_ns):
        model, ns = model_with_ns
        class_type = model.add_component(ClassType(name="PersonType", namespace=ns))

        assert model.get_by_qname("ex:PersonType") is class_type
        assert model.get_by_qname("ex:Missing") is None
        assert model.get_by_qname("zz:PersonType") is None

    @pytest.mark.unit
    def test_builtin_datatype_reused(self):
        model = Model()
        first = model.builtin_datatype("string")
        assert model.builtin_datatype("string") is first
        assert isinstance(first, Datatype)
        assert first.qname == "xs:string"

    @pytest.mark.unit
    def test_kind_views(self, model_with_ns):
        model, ns = model_with_ns
        prop = model.add_component(Property(name="A", namespace=ns))
        class_type = model.add_component(ClassType(name="BType", namespace=ns))
        datatype = model.builtin_datatype("token")

        assert model.properties() == [prop]
        assert model.class_types() == [class_type]
        assert model.datatypes() == [datatype]
        assert len(model) == 3
        assert list(model.components_in(ns)) == [prop, class_type]

    @pytest.mark.unit
    def test_type_component_prefers_class(self, model_with_ns):
        model, ns = model_with_ns
        class_type = ClassType(name="PersonType", namespace=ns)
        assert Property(name="P", namespace=ns, class_type=class_type).type_component is class_type
        assert Property(name="Q", namespace=ns).type_component is None


class TestDerivedViews:
    """Test the schema document registry and reference checks."""

    @pytest.mark.unit
    def test_schema_documents_keyed_by_path(self):
        model = Model()
        document = SchemaDocument(file_path="niem/niem-core.xsd", target_namespace="urn:nc")
        model.add_namespace(Namespace(prefix="nc", uri="urn:nc", document=document))
        model.add_namespace(Namespace(prefix="ex", uri="urn:ex"))

        assert model.schema_documents() == {"niem/niem-core.xsd": document}
        assert document.filename == "niem-core.xsd"

    @pytest.mark.unit
    @pytest.mark.parametrize("file_path,relative", [
        ("ex.xsd", True),
        ("niem/niem-core.xsd", True),
        ("./ex.xsd", True),
        ("", False),
        ("/tmp/outside/evil.xsd", False),
        ("../evil.xsd", False),
        ("niem/../../evil.xsd", False),
        ("..\\evil.xsd", False),
    ])
    def test_is_relative(self, file_path, relative):
        assert SchemaDocument(file_path=file_path, target_namespace="urn:ex").is_relative is relative

    @pytest.mark.unit
    def test_check_references_reports_foreign_targets(self, model_with_ns):
        model, ns = model_with_ns
        foreign = ClassType(name="ForeignType", namespace=ns)
        model.add_component(Property(name="P", namespace=ns, class_type=foreign))

        problems = model.check_references()

        assert problems == ["ex:P: type ex:ForeignType is not in the model"]

    @pytest.mark.unit
    def test_check_references_clean_model(self, ex_model):
        assert ex_model.check_references() == []
