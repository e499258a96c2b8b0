"""
Unit tests for unnamed element reconstruction.

Tests cover:
- Matching on substitution group, type and definition
- Built-in type aliases
- Unmatched and ambiguous declarations
- Prefix declarations for the matched property's dependencies
"""

import pytest

from niem_transform_core import Property
from niem_transform_orchestrator.corrections import correct_xsd
from niem_transform_orchestrator.element_names import (
    MatchCandidate,
    dependency_namespaces,
    find_matching_properties,
    reconstruct_element_names,
)

UNNAMED_PERSON = (
    '  <xs:element substitutionGroup="ex:EntityAbstract" type="ex:PersonType">\n'
    "    <xs:annotation>\n"
    "      <xs:documentation>A human being.</xs:documentation>\n"
    "    </xs:annotation>\n"
    "  </xs:element>\n"
)


def unnamed_element(type_qname: str, definition: str, group: str = None, nillable: bool = False) -> str:
    attributes = ' nillable="true"' if nillable else ""
    if group:
        attributes += f' substitutionGroup="{group}"'
    return (
        f'  <xs:element{attributes} type="{type_qname}">\n'
        "    <xs:annotation>\n"
        f"      <xs:documentation>{definition}</xs:documentation>\n"
        "    </xs:annotation>\n"
        "  </xs:element>\n"
    )


class TestFindMatchingProperties:
    """Test property lookup by (group, type, definition)."""

    @pytest.mark.unit
    def test_full_triple(self, ex_model):
        candidate = MatchCandidate("ex:EntityAbstract", "ex:PersonType", "A human being.")
        assert [p.qname for p in find_matching_properties(ex_model, candidate)] == ["ex:Person"]

    @pytest.mark.unit
    def test_group_must_agree(self, ex_model):
        candidate = MatchCandidate(None, "ex:PersonType", "A human being.")
        assert find_matching_properties(ex_model, candidate) == []

    @pytest.mark.unit
    def test_builtin_alias(self, ex_model):
        candidate = MatchCandidate(None, "xsd:string", "A name of a person.")
        assert [p.qname for p in find_matching_properties(ex_model, candidate)] == ["ex:PersonName"]

    @pytest.mark.unit
    def test_alias_requires_builtin_prefix(self, ex_model):
        candidate = MatchCandidate(None, "ex:string", "A name of a person.")
        assert find_matching_properties(ex_model, candidate) == []


class TestReconstructElementNames:
    """Test name insertion into schema text."""

    @pytest.mark.unit
    def test_single_match_named(self, ex_model):
        text, matched = reconstruct_element_names(UNNAMED_PERSON, ex_model)

        assert text.startswith(
            '  <xs:element name="Person" substitutionGroup="ex:EntityAbstract" type="ex:PersonType">\n'
        )
        assert [p.qname for p in matched] == ["ex:Person"]

    @pytest.mark.unit
    def test_nillable_kept(self, ex_model):
        source = unnamed_element("xs:string", "A name of a person.", nillable=True)
        text, _ = reconstruct_element_names(source, ex_model)
        assert '<xs:element name="PersonName" nillable="true" type="xs:string">' in text

    @pytest.mark.unit
    def test_escaped_definition(self, ex_model):
        ex_model.get_by_qname("ex:PersonName").definition = "A name & alias of a person."
        source = unnamed_element("xs:string", "A name &amp; alias of a person.")
        text, matched = reconstruct_element_names(source, ex_model)
        assert len(matched) == 1
        assert 'name="PersonName"' in text

    @pytest.mark.unit
    @pytest.mark.parametrize("documentation", [" A name of a person.", "A name of a person.\n      "])
    def test_definition_compared_exactly(self, ex_model, documentation):
        source = unnamed_element("xs:string", documentation)
        text, matched = reconstruct_element_names(source, ex_model)
        assert text == source
        assert matched == []

    @pytest.mark.unit
    def test_no_match_unmodified(self, ex_model):
        source = unnamed_element("ex:PersonType", "Something else entirely.")
        text, matched = reconstruct_element_names(source, ex_model)
        assert text == source
        assert matched == []

    @pytest.mark.unit
    def test_named_element_ignored(self, ex_model):
        source = UNNAMED_PERSON.replace("<xs:element ", '<xs:element name="Person" ')
        assert reconstruct_element_names(source, ex_model) == (source, [])

    @pytest.mark.unit
    def test_ambiguous_match_unmodified(self, ex_model):
        ns = ex_model.namespace_by_prefix("ex")
        ex_model.add_component(Property(
            name="HumanName", namespace=ns,
            definition="A name of a person.", datatype=ex_model.builtin_datatype("string"),
        ))
        source = unnamed_element("xs:string", "A name of a person.")

        text, matched = reconstruct_element_names(source, ex_model)

        assert text == source
        assert matched == []

    @pytest.mark.unit
    def test_ambiguous_first_match(self, ex_model):
        ns = ex_model.namespace_by_prefix("ex")
        ex_model.add_component(Property(
            name="HumanName", namespace=ns,
            definition="A name of a person.", datatype=ex_model.builtin_datatype("string"),
        ))
        source = unnamed_element("xs:string", "A name of a person.")

        text, matched = reconstruct_element_names(source, ex_model, first_match_on_ambiguity=True)

        assert 'name="PersonName"' in text
        assert [p.qname for p in matched] == ["ex:PersonName"]


class TestDependencyPrefixes:
    """Test prefix declarations added for reconstructed elements."""

    @pytest.mark.unit
    def test_dependency_namespaces(self, niem6_model):
        subject = niem6_model.get_by_qname("ex:Subject")
        assert [ns.prefix for ns in dependency_namespaces(subject)] == ["nc"]

    @pytest.mark.unit
    def test_prefix_declared_after_reconstruction(self, niem6_model):
        # The writer dropped both the name and the nc declaration
        source = (
            "<xs:schema\n"
            '           xmlns:ex="http://example.com/ex/1.0/"\n'
            '           ct:conformanceTargets="urn:ndr/#ReferenceSchemaDocument">\n'
            + unnamed_element("nc:PersonType", "A person who is the subject of a report.")
            + "</xs:schema>\n"
        )

        corrected = correct_xsd(source, niem6_model)

        assert '<xs:element name="Subject" type="nc:PersonType">' in corrected
        assert 'xmlns:nc="https://docs.oasis-open.org/niemopen/ns/model/niem-core/6.0/"' in corrected

    @pytest.mark.unit
    def test_existing_declarations_not_duplicated(self, niem6_model):
        namespace = niem6_model.namespace_by_prefix("nc")
        source = (
            "<xs:schema\n"
            f'           xmlns:nc="{namespace.uri}"\n'
            '           ct:conformanceTargets="urn:ndr/#ReferenceSchemaDocument">\n'
            + unnamed_element("nc:PersonType", "A person who is the subject of a report.")
            + "</xs:schema>\n"
        )

        corrected = correct_xsd(source, niem6_model)

        assert corrected.count("xmlns:nc=") == 1
