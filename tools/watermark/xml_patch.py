"""Text-level patches for the three OpenXML parts a background bind touches.

Writes work on the serialized XML directly (first-occurrence literal insertion) rather
than re-serializing a parsed tree, so prefixes, whitespace and attribute order written by
the producing application survive byte-for-byte outside the patched spot. Lookups parse.
"""

from __future__ import annotations

import re
from xml.etree import ElementTree as ET
from xml.sax.saxutils import escape


NS_REL = "http://schemas.openxmlformats.org/package/2006/relationships"
NS_CT = "http://schemas.openxmlformats.org/package/2006/content-types"
NS_R = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
REL_TYPE_IMAGE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/image"

WORKSHEET_CLOSE = "</worksheet>"
TYPES_CLOSE = "</Types>"

_WORKSHEET_OPEN_RE = re.compile(r"<worksheet\b[^>]*>")
_PICTURE_RE = re.compile(r"<picture\b[^>]*?(?:/>|>.*?</picture>)", re.DOTALL)


def qn(ns: str, tag: str) -> str:
    return f"{{{ns}}}{tag}"


def xml_attr(value: str) -> str:
    return escape(value, {'"': "&quot;"})


def image_relationships_xml(target: str, *, rel_id: str = "rId1") -> str:
    """A relationships document holding exactly one image relationship."""

    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<Relationships xmlns="{NS_REL}">\n'
        f'<Relationship Id="{xml_attr(rel_id)}" Type="{REL_TYPE_IMAGE}" Target="{xml_attr(target)}"/>\n'
        "</Relationships>"
    )


def insert_before(xml: str, closing_tag: str, fragment: str) -> str:
    """Insert `fragment` right before the first `closing_tag`; no-op if the tag is absent."""

    idx = xml.find(closing_tag)
    if idx < 0:
        return xml
    return xml[:idx] + fragment + xml[idx:]


def _ensure_r_namespace(xml: str) -> str:
    m = _WORKSHEET_OPEN_RE.search(xml)
    if m is None:
        return xml
    start_tag = m.group(0)
    if "xmlns:r=" in start_tag or start_tag.endswith("/>"):
        return xml
    patched = start_tag[:-1] + f' xmlns:r="{NS_R}">'
    return xml[: m.start()] + patched + xml[m.end() :]


def set_sheet_picture(sheet_xml: str, *, rel_id: str = "rId1") -> str:
    """Point the worksheet's background `<picture>` at `rel_id`.

    An existing `<picture/>` is replaced so a sheet never carries two backgrounds.
    Worksheets without a literal `</worksheet>` (e.g. `<worksheet/>`) are returned unchanged.
    """

    element = f'<picture r:id="{xml_attr(rel_id)}"/>'
    if _PICTURE_RE.search(sheet_xml):
        patched = _PICTURE_RE.sub(lambda _m: element, sheet_xml, count=1)
    else:
        patched = insert_before(sheet_xml, WORKSHEET_CLOSE, element)
    if patched == sheet_xml:
        return sheet_xml
    return _ensure_r_namespace(patched)


def declared_default_content_type(content_types_xml: str | bytes, extension: str) -> str | None:
    """Return the ContentType of the `<Default>` declaring `extension`, if any.

    Extension and ContentType are read from the same element; OPC compares extensions
    case-insensitively. Raises `ET.ParseError` for malformed XML.
    """

    if isinstance(content_types_xml, str):
        content_types_xml = content_types_xml.encode("utf-8")
    root = ET.fromstring(content_types_xml)
    want = extension.casefold()
    for el in root.findall(qn(NS_CT, "Default")):
        ext = el.attrib.get("Extension")
        if ext is not None and ext.casefold() == want:
            return el.attrib.get("ContentType", "")
    return None


def add_default_content_type(content_types_xml: str, extension: str, content_type: str) -> str:
    element = f'<Default Extension="{xml_attr(extension)}" ContentType="{xml_attr(content_type)}"/>'
    return insert_before(content_types_xml, TYPES_CLOSE, element)
