"""Model to JSON Schema (draft-07) writer."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from niem_transform_core import ClassType, Component, ContentStyle, Datatype, Model, Property

logger = logging.getLogger(__name__)

DRAFT_07 = "http://json-schema.org/draft-07/schema#"

# XML Schema built-ins with a closer JSON type than "string"
BUILTIN_JSON_TYPES = {
    "boolean": "boolean",
    "decimal": "number",
    "double": "number",
    "float": "number",
    "integer": "integer",
    "int": "integer",
    "long": "integer",
    "short": "integer",
    "nonNegativeInteger": "integer",
    "positiveInteger": "integer",
}


def _ref(component: Component) -> Dict[str, Any]:
    if component.namespace.is_builtin:
        return {"type": BUILTIN_JSON_TYPES.get(component.name, "string")}
    return {"$ref": f"#/definitions/{component.qname}"}


def _describe(schema: Dict[str, Any], component: Component) -> Dict[str, Any]:
    if component.definition:
        schema["description"] = component.definition
    return schema


def _property_schema(prop: Property) -> Dict[str, Any]:
    schema: Dict[str, Any] = {}
    _describe(schema, prop)
    target = prop.type_component
    if target is not None:
        schema.update(_ref(target))
    elif prop.sub_property_of is not None:
        schema.update(_ref(prop.sub_property_of))
    return schema


def _class_schema(class_type: ClassType) -> Dict[str, Any]:
    schema: Dict[str, Any] = {}
    _describe(schema, class_type)
    if class_type.content_style == ContentStyle.VALUE:
        value = class_type.value_datatype or class_type.base
        schema["type"] = "object"
        schema["properties"] = {"rdf:value": _ref(value) if value is not None else {"type": "string"}}
        return schema

    properties: Dict[str, Any] = {}
    required = []
    for association in class_type.properties:
        item = {"$ref": f"#/properties/{association.property.qname}"}
        if association.max_occurs is None or association.max_occurs > 1:
            array: Dict[str, Any] = {"type": "array", "items": item}
            if association.min_occurs:
                array["minItems"] = association.min_occurs
            if association.max_occurs is not None:
                array["maxItems"] = association.max_occurs
            properties[association.property.qname] = array
        else:
            properties[association.property.qname] = item
        if association.min_occurs:
            required.append(association.property.qname)

    object_schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        object_schema["required"] = required
    if class_type.base is not None:
        schema["allOf"] = [_ref(class_type.base), object_schema]
    else:
        schema.update(object_schema)
    return schema


def _datatype_schema(datatype: Datatype) -> Dict[str, Any]:
    schema: Dict[str, Any] = {}
    _describe(schema, datatype)
    if datatype.base is not None:
        schema.update(_ref(datatype.base))
    else:
        schema["type"] = "string"
    return schema


def write_json_schema(model: Model) -> str:
    """Serialize ``model`` as a draft-07 JSON Schema document."""
    properties = {
        prop.qname: _property_schema(prop)
        for prop in sorted(model.properties(), key=lambda p: p.qname)
    }
    definitions: Dict[str, Any] = {}
    for component in sorted(model.class_types() + model.datatypes(), key=lambda c: c.qname):
        if component.namespace.is_builtin:
            continue
        if isinstance(component, ClassType):
            definitions[component.qname] = _class_schema(component)
        else:
            definitions[component.qname] = _datatype_schema(component)

    document = {
        "$schema": DRAFT_07,
        "$id": "schema.json",
        "@context": {
            ns.prefix: ns.uri + ("" if ns.uri.endswith(("/", "#")) else "#")
            for ns in sorted(model.namespace_list(), key=lambda ns: ns.prefix)
        },
        "type": "object",
        "properties": properties,
        "definitions": definitions,
    }
    logger.info(f"Wrote JSON Schema with {len(properties)} properties and {len(definitions)} definitions")
    return json.dumps(document, indent=2) + "\n"
