"""Parsing of FHIR JSON and XML content into resource dicts.

Both encodings produce the same shape: the JSON representation of the resource,
with ``resourceType`` at the top level. XML carries no cardinality information,
so an element that occurs once stays a scalar and repeats become lists.
"""

from __future__ import annotations

import json
from enum import StrEnum
from pathlib import Path
from xml.etree.ElementTree import Element, ParseError, tostring

import defusedxml.ElementTree as DefusedET
from defusedxml import DefusedXmlException

from fhirgate.errors import ResourceLoadError, ResourceParseError

FHIR_NS = "http://hl7.org/fhir"
XHTML_NS = "http://www.w3.org/1999/xhtml"


class ContentType(StrEnum):
    """Supported resource encodings."""

    JSON = "json"
    XML = "xml"

    @classmethod
    def from_path(cls, path: Path) -> ContentType:
        """Determine the encoding from a file extension.

        Raises:
            ResourceLoadError: If the extension is not .json or .xml
        """
        suffix = path.suffix.lower().lstrip(".")
        try:
            return cls(suffix)
        except ValueError:
            raise ResourceLoadError(
                path, f"Unsupported file format: {path.name}. Only .json and .xml are supported."
            ) from None

    @classmethod
    def supports(cls, path: Path) -> bool:
        return path.suffix.lower().lstrip(".") in {c.value for c in cls}


def parse_resource(content: str, content_type: ContentType) -> dict[str, object]:
    """Parse resource content in the declared encoding.

    Args:
        content: Raw document text
        content_type: Declared encoding

    Returns:
        Resource as a JSON-shaped dict

    Raises:
        ResourceParseError: If content is empty or does not conform to the encoding
    """
    if not content or not content.strip():
        raise ResourceParseError(content_type, "Resource content cannot be empty")

    if content_type == ContentType.JSON:
        return _parse_json(content)
    return _parse_xml(content)


def _parse_json(content: str) -> dict[str, object]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ResourceParseError(ContentType.JSON, f"Failed to parse JSON resource: {e}") from e

    if not isinstance(data, dict):
        raise ResourceParseError(ContentType.JSON, "Failed to parse JSON resource: not an object")
    if not isinstance(data.get("resourceType"), str) or not data["resourceType"]:
        raise ResourceParseError(
            ContentType.JSON, "Failed to parse JSON resource: missing resourceType"
        )
    return data


def _local_name(tag: str) -> tuple[str | None, str]:
    if tag.startswith("{"):
        ns, _, name = tag[1:].partition("}")
        return ns, name
    return None, tag


def _convert_element(element: Element) -> object:
    """Convert one FHIR XML element to its JSON equivalent."""
    children = list(element)
    value = element.get("value")

    if not children:
        if value is not None:
            return value
        return {k: v for k, v in element.attrib.items()}

    node: dict[str, object] = {}
    if value is not None:
        node["value"] = value
    if "url" in element.attrib:
        node["url"] = element.attrib["url"]

    for child in children:
        ns, name = _local_name(child.tag)
        if ns == XHTML_NS:
            node[name] = tostring(child, encoding="unicode")
            continue

        if name in ("resource", "contained") and len(child) == 0:
            raise ResourceParseError(
                ContentType.XML, f"Failed to parse XML resource: <{name}> holds no resource"
            )
        if name == "resource" or _is_contained(name, child):
            converted: object = _convert_resource(child[0])
        else:
            converted = _convert_element(child)

        existing = node.get(name)
        if existing is None:
            node[name] = converted
        elif isinstance(existing, list):
            existing.append(converted)
        else:
            node[name] = [existing, converted]

    return node


def _is_contained(name: str, element: Element) -> bool:
    return name == "contained" and len(element) == 1


def _convert_resource(element: Element) -> dict[str, object]:
    _, resource_type = _local_name(element.tag)
    body = _convert_element(element)
    resource: dict[str, object] = {"resourceType": resource_type}
    if isinstance(body, dict):
        resource.update(body)
    return resource


def _parse_xml(content: str) -> dict[str, object]:
    try:
        root = DefusedET.fromstring(content)
    except (ParseError, DefusedXmlException) as e:
        raise ResourceParseError(ContentType.XML, f"Failed to parse XML resource: {e}") from e

    ns, _ = _local_name(root.tag)
    if ns != FHIR_NS:
        raise ResourceParseError(
            ContentType.XML, f"Failed to parse XML resource: root is not in the {FHIR_NS} namespace"
        )
    return _convert_resource(root)


def read_resource_file(path: Path) -> tuple[str, ContentType]:
    """Read a resource file and determine its encoding.

    Raises:
        ResourceLoadError: If the file is missing, unreadable or unsupported
    """
    content_type = ContentType.from_path(path)
    if not path.is_file():
        raise ResourceLoadError(path, f"Resource file not found: {path}")
    try:
        return path.read_text(encoding="utf-8"), content_type
    except (OSError, UnicodeDecodeError) as e:
        raise ResourceLoadError(path, f"Error reading file {path}: {e}") from e
