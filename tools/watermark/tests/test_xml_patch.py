from __future__ import annotations

import unittest
from xml.etree import ElementTree as ET

from tools.watermark.xml_patch import (
    NS_REL,
    REL_TYPE_IMAGE,
    add_default_content_type,
    declared_default_content_type,
    image_relationships_xml,
    insert_before,
    set_sheet_picture,
)


class InsertBeforeTests(unittest.TestCase):
    def test_inserts_before_first_occurrence_only(self) -> None:
        self.assertEqual(insert_before("<a></b></b>", "</b>", "<x/>"), "<a><x/></b></b>")

    def test_missing_tag_is_a_noop(self) -> None:
        self.assertEqual(insert_before("<a/>", "</b>", "<x/>"), "<a/>")


class RelationshipsTests(unittest.TestCase):
    def test_single_image_relationship(self) -> None:
        xml = image_relationships_xml("../media/bgimage1a.png")
        root = ET.fromstring(xml.encode("utf-8"))
        self.assertEqual(root.tag, f"{{{NS_REL}}}Relationships")
        rels = list(root)
        self.assertEqual(len(rels), 1)
        self.assertEqual(rels[0].attrib["Id"], "rId1")
        self.assertEqual(rels[0].attrib["Type"], REL_TYPE_IMAGE)
        self.assertEqual(rels[0].attrib["Target"], "../media/bgimage1a.png")

    def test_target_is_attribute_escaped(self) -> None:
        xml = image_relationships_xml('../media/a&b".png')
        root = ET.fromstring(xml.encode("utf-8"))
        self.assertEqual(list(root)[0].attrib["Target"], '../media/a&b".png')


class SheetPictureTests(unittest.TestCase):
    def test_replaces_existing_picture(self) -> None:
        xml = '<worksheet xmlns:r="urn:r"><sheetData/><picture r:id="rId9"/></worksheet>'
        self.assertEqual(
            set_sheet_picture(xml),
            '<worksheet xmlns:r="urn:r"><sheetData/><picture r:id="rId1"/></worksheet>',
        )

    def test_replaces_existing_picture_with_closing_tag(self) -> None:
        xml = '<worksheet xmlns:r="urn:r"><picture r:id="rId5"></picture><tableParts count="0"/></worksheet>'
        out = set_sheet_picture(xml)
        self.assertEqual(
            out, '<worksheet xmlns:r="urn:r"><picture r:id="rId1"/><tableParts count="0"/></worksheet>'
        )
        self.assertEqual(out.count("<picture"), 1)

    def test_prefixed_root_without_literal_close_tag_is_unchanged(self) -> None:
        xml = '<x:worksheet xmlns:x="urn:x"><x:sheetData/></x:worksheet>'
        self.assertEqual(set_sheet_picture(xml), xml)


class ContentTypesTests(unittest.TestCase):
    CT = (
        '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
        '<Default Extension="xml" ContentType="application/xml"/>'
        "<Default ContentType='image/jpeg' Extension='JPEG'/>"
        '<Override PartName="/xl/media/Extension=png.bin" ContentType="image/png"/>'
        "</Types>"
    )

    def test_lookup_pairs_attributes_on_one_element(self) -> None:
        # Both substrings appear in the document but not on a single <Default>.
        self.assertIsNone(declared_default_content_type(self.CT, "png"))

    def test_lookup_ignores_commented_out_defaults(self) -> None:
        xml = self.CT.replace(
            "</Types>", '<!-- <Default Extension="png" ContentType="image/png"/> --></Types>'
        )
        self.assertIsNone(declared_default_content_type(xml, "png"))

    def test_lookup_is_case_insensitive_and_handles_single_quotes(self) -> None:
        self.assertEqual(declared_default_content_type(self.CT, "jpeg"), "image/jpeg")
        self.assertEqual(declared_default_content_type(self.CT, "XML"), "application/xml")

    def test_add_default_goes_before_closing_types(self) -> None:
        out = add_default_content_type(self.CT, "png", "image/png")
        self.assertTrue(out.endswith('<Default Extension="png" ContentType="image/png"/></Types>'))
        self.assertEqual(declared_default_content_type(out, "png"), "image/png")


if __name__ == "__main__":
    unittest.main()
