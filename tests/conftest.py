"""
Pytest configuration and shared fixtures for niem-transform tests.

This module provides fixtures for:
- Temporary directories
- Sample models (single namespace and NIEM 6 multi-namespace)
- Sample XML Schema and CMF documents
- A reference engine instance and default settings
"""

from pathlib import Path

import pytest

from niem_transform_core import (
    ClassType,
    Model,
    Namespace,
    NamespaceKind,
    Property,
    PropertyAssociation,
    SchemaDocument,
)
from niem_transform_core.uris import CONFORMANCE_TARGETS_URI
from niem_transform_engine import ReferenceEngine
from niem_transform_engine.cmf import write_cmf
from niem_transform_orchestrator.models import TransformSettings

EX_URI = "http://example.com/ex/1.0/"
NC6_URI = "https://docs.oasis-open.org/niemopen/ns/model/niem-core/6.0/"
EX_CONFORMANCE = "https://docs.oasis-open.org/niemopen/ns/specification/NDR/6.0/#ExtensionSchemaDocument"


# ============================================================================
# Path and Directory Fixtures
# ============================================================================

@pytest.fixture
def temp_dir(tmp_path):
    """Provide a temporary directory for test artifacts."""
    return tmp_path


# ============================================================================
# Engine and Settings Fixtures
# ============================================================================

@pytest.fixture
def engine() -> ReferenceEngine:
    """Provide the bundled reference engine."""
    return ReferenceEngine()


@pytest.fixture
def settings(temp_dir) -> TransformSettings:
    """Provide settings with scratch directories under the test's temp dir."""
    scratch = temp_dir / "scratch"
    scratch.mkdir()
    return TransformSettings(scratch_dir=scratch, engine_timeout=30)


# ============================================================================
# Sample Model Fixtures
# ============================================================================

def build_ex_model() -> Model:
    """Model equivalent to ``ex_xsd_content`` as read by the reference engine."""
    model = Model()
    ex = model.add_namespace(Namespace(
        prefix="ex",
        uri=EX_URI,
        kind=NamespaceKind.EXTENSION,
        definition="Example extension schema.",
        document=SchemaDocument(
            file_path="ex.xsd",
            target_namespace=EX_URI,
            conformance_targets=EX_CONFORMANCE,
            version="1",
        ),
    ))
    string = model.builtin_datatype("string")

    person_name = model.add_component(Property(
        name="PersonName", namespace=ex,
        definition="A name of a person.", datatype=string,
    ))
    person_type = model.add_component(ClassType(
        name="PersonType", namespace=ex,
        definition="A data type for a human being.",
        properties=[PropertyAssociation(person_name, min_occurs=0, max_occurs=None)],
    ))
    entity = model.add_component(Property(
        name="EntityAbstract", namespace=ex,
        definition="A data concept for a person or organization.", is_abstract=True,
    ))
    model.add_component(Property(
        name="Person", namespace=ex,
        definition="A human being.", class_type=person_type, sub_property_of=entity,
    ))
    return model


def build_niem6_model() -> Model:
    """Two-namespace NIEM 6 model: NIEM Core plus an extension that uses it."""
    model = Model()
    nc = model.add_namespace(Namespace(
        prefix="nc",
        uri=NC6_URI,
        kind=NamespaceKind.CORE,
        definition="NIEM Core.",
        document=SchemaDocument(file_path="niem/niem-core.xsd", target_namespace=NC6_URI, version="6.0"),
    ))
    ex = model.add_namespace(Namespace(
        prefix="ex",
        uri=EX_URI,
        kind=NamespaceKind.EXTENSION,
        definition="Example extension.",
        document=SchemaDocument(file_path="ex.xsd", target_namespace=EX_URI, version="1"),
    ))
    string = model.builtin_datatype("string")

    person_name = model.add_component(Property(
        name="PersonName", namespace=nc, definition="A name of a person.", datatype=string,
    ))
    person_type = model.add_component(ClassType(
        name="PersonType", namespace=nc,
        definition="A data type for a human being.",
        properties=[PropertyAssociation(person_name, min_occurs=0, max_occurs=None)],
    ))
    model.add_component(Property(
        name="Subject", namespace=ex,
        definition="A person who is the subject of a report.", class_type=person_type,
    ))
    return model


@pytest.fixture
def ex_model() -> Model:
    return build_ex_model()


@pytest.fixture
def niem6_model() -> Model:
    return build_niem6_model()


# ============================================================================
# Sample Document Fixtures
# ============================================================================

@pytest.fixture
def ex_xsd_content() -> str:
    """Single-namespace NIEM-style schema document."""
    return f'''<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           xmlns:ct="{CONFORMANCE_TARGETS_URI}"
           xmlns:ex="{EX_URI}"
           targetNamespace="{EX_URI}"
           version="1"
           ct:conformanceTargets="{EX_CONFORMANCE}">
  <xs:annotation>
    <xs:documentation>Example extension schema.</xs:documentation>
  </xs:annotation>
  <xs:complexType name="PersonType">
    <xs:annotation>
      <xs:documentation>A data type for a human being.</xs:documentation>
    </xs:annotation>
    <xs:sequence>
      <xs:element ref="ex:PersonName" minOccurs="0" maxOccurs="unbounded"/>
    </xs:sequence>
  </xs:complexType>
  <xs:element name="Person" type="ex:PersonType" substitutionGroup="ex:EntityAbstract">
    <xs:annotation>
      <xs:documentation>A human being.</xs:documentation>
    </xs:annotation>
  </xs:element>
  <xs:element name="EntityAbstract" abstract="true">
    <xs:annotation>
      <xs:documentation>A data concept for a person or organization.</xs:documentation>
    </xs:annotation>
  </xs:element>
  <xs:element name="PersonName" type="xs:string">
    <xs:annotation>
      <xs:documentation>A name of a person.</xs:documentation>
    </xs:annotation>
  </xs:element>
</xs:schema>
'''


@pytest.fixture
def ex_xsd_file(temp_dir, ex_xsd_content) -> Path:
    path = temp_dir / "ex.xsd"
    path.write_text(ex_xsd_content)
    return path


@pytest.fixture
def ex_cmf_content(ex_model) -> str:
    """Canonical CMF serialization of ``ex_model``."""
    return write_cmf(ex_model)


# ============================================================================
# Pytest Configuration Hooks
# ============================================================================

def pytest_configure(config):
    """Register the markers applied in pytest_collection_modifyitems."""
    for marker in ("unit", "integration", "xsd", "cmf", "owl", "property"):
        config.addinivalue_line("markers", f"{marker}: auto-applied {marker} marker")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Auto-mark tests based on path
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Auto-mark based on test name
        nodeid = item.nodeid.lower()
        if "xsd" in nodeid:
            item.add_marker(pytest.mark.xsd)
        if "cmf" in nodeid:
            item.add_marker(pytest.mark.cmf)
        if "owl" in nodeid:
            item.add_marker(pytest.mark.owl)
        if "property" in nodeid or "hypothesis" in nodeid:
            item.add_marker(pytest.mark.property)
