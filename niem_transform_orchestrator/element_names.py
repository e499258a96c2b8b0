"""Reconstruction of element names the XSD writer left out.

The writer sometimes emits a global ``xs:element`` carrying only an optional
``nillable``, an optional ``substitutionGroup``, a ``type`` and its
documentation. The (substitution group, type, definition) triple is matched
against the model's properties to recover the missing ``name``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple
from xml.sax.saxutils import unescape

import structlog

from niem_transform_core import Model, Namespace, Property

logger = structlog.get_logger(__name__)

UNNAMED_ELEMENT_PATTERN = re.compile(
    r'<xs:element'
    r'(?:\s+nillable="[^"]*")?'
    r'(?:\s+substitutionGroup="(?P<group>[^"]*)")?'
    r'\s+type="(?P<type>[^"]*)">'
    r'\s*<xs:annotation>'
    r'\s*<xs:documentation>(?P<definition>[^<]*)</xs:documentation'
)


@dataclass(frozen=True)
class MatchCandidate:
    """Key identifying the property an unnamed element was generated from."""

    substitution_group: Optional[str]
    type_qname: Optional[str]
    definition: Optional[str]


def _empty_to_none(value: Optional[str]) -> Optional[str]:
    return value or None


def _equal_or_none(a: Optional[str], b: Optional[str]) -> bool:
    """Equal when both are absent or both are present and identical."""
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    return a == b


def _split_qname(qname: str) -> Tuple[str, str]:
    prefix, _, local = qname.rpartition(":")
    return prefix, local


def _is_schema_builtin(qname: str) -> bool:
    # Covers xs, xsd and proxy prefixes such as niem-xs
    return "xs" in _split_qname(qname)[0]


def candidate_from_match(match: "re.Match[str]") -> MatchCandidate:
    return MatchCandidate(
        substitution_group=_empty_to_none(match.group("group")),
        type_qname=_empty_to_none(match.group("type")),
        definition=_empty_to_none(unescape(match.group("definition"))),
    )


def _type_matches(prop: Property, type_qname: Optional[str]) -> bool:
    target = prop.type_component
    if _equal_or_none(target.qname if target is not None else None, type_qname):
        return True

    # The writer may substitute one alias of a built-in type for another
    if prop.datatype is None or type_qname is None:
        return False
    return (
        prop.datatype.name == _split_qname(type_qname)[1]
        and _is_schema_builtin(prop.datatype.qname)
        and _is_schema_builtin(type_qname)
    )


def find_matching_properties(model: Model, candidate: MatchCandidate) -> List[Property]:
    """Return the properties whose (group, type, definition) triple equals the candidate.

    Properties are returned in model iteration order.
    """
    matches = []
    for prop in model.properties():
        group = prop.sub_property_of.qname if prop.sub_property_of is not None else None
        if not _equal_or_none(group, candidate.substitution_group):
            continue
        if not _equal_or_none(_empty_to_none(prop.definition), candidate.definition):
            continue
        if _type_matches(prop, candidate.type_qname):
            matches.append(prop)
    return matches


def dependency_namespaces(prop: Property) -> List[Namespace]:
    """Namespaces a named element declaration for ``prop`` refers to."""
    namespaces = []
    for component in (prop.class_type, prop.datatype, prop.sub_property_of):
        if component is not None:
            namespaces.append(component.namespace)
    return namespaces


def reconstruct_element_names(
    text: str,
    model: Model,
    first_match_on_ambiguity: bool = False,
) -> Tuple[str, List[Property]]:
    """Insert ``name`` attributes into unnamed element declarations.

    Elements with no matching property are left unmodified. Elements with more
    than one matching property are left unmodified unless
    ``first_match_on_ambiguity`` is set, in which case the first property in
    model order is used.

    Args:
        text: Schema document text
        model: Model the document was generated from
        first_match_on_ambiguity: Tie-break policy for ambiguous matches

    Returns:
        The corrected text and the properties that were matched
    """
    matched: List[Property] = []

    def rename(match: "re.Match[str]") -> str:
        candidate = candidate_from_match(match)
        properties = find_matching_properties(model, candidate)
        if not properties:
            logger.debug("element_name_unmatched", type=candidate.type_qname,
                         substitution_group=candidate.substitution_group)
            return match.group(0)
        if len(properties) > 1:
            logger.warning(
                "element_name_ambiguous",
                type=candidate.type_qname,
                substitution_group=candidate.substitution_group,
                candidates=[p.qname for p in properties],
                first_match=first_match_on_ambiguity,
            )
            if not first_match_on_ambiguity:
                return match.group(0)

        prop = properties[0]
        matched.append(prop)
        return f'<xs:element name="{prop.name}"' + match.group(0)[len("<xs:element"):]

    return UNNAMED_ELEMENT_PATTERN.sub(rename, text), matched
