from __future__ import annotations

import posixpath
import time
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from xml.etree import ElementTree as ET

from .package import Package
from .xml_patch import (
    add_default_content_type,
    declared_default_content_type,
    image_relationships_xml,
    set_sheet_picture,
)


RELS_PATH = "xl/worksheets/_rels/sheet{}.xml.rels"
SHEET_PATH = "xl/worksheets/sheet{}.xml"
MEDIA_PATH = "xl/media/bgimage{}.{}"
CONTENT_TYPES_PATH = "[Content_Types].xml"

BACKGROUND_REL_ID = "rId1"


class ValidationError(ValueError):
    pass


@dataclass(frozen=True)
class ImageRegistration:
    image_id: int
    extension: str  # as given in the source file name
    unique_name: str

    @property
    def part_name(self) -> str:
        return MEDIA_PATH.format(self.unique_name, self.extension.lower())

    @property
    def rel_target(self) -> str:
        # Resolved against xl/worksheets/, the directory of the source part.
        return "../media/" + posixpath.basename(self.part_name)


class PackageEditor:
    """Attach background-image watermarks to worksheets of an xlsx package.

    Usage::

        with PackageEditor("book.xlsx") as editor:
            image_id = editor.add_image("logo.png")
            editor.select_sheet(1).bind_background(image_id)

    Edits are held in memory and written back to the package path on `close()`.
    Binding rewrites three parts in order (sheet relationships, worksheet, content
    types) and is not transactional: if a later step fails, earlier parts stay edited.

    Known limitation: the sheet's relationships part is replaced, so any other
    relationships that sheet had (hyperlinks, drawings, comments) are dropped.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._package: Package | None = None
        self._closed = False
        self._next_id = 1
        self._images: dict[int, ImageRegistration] = {}
        self.sheet = 1
        if path:
            self.open(path)

    def __enter__(self) -> "PackageEditor":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._package is not None

    @property
    def images(self) -> dict[int, ImageRegistration]:
        return dict(self._images)

    def open(self, path: str | Path) -> "PackageEditor":
        if self._package is not None:
            raise ValidationError(f"Package is already open: {self._package.path}")
        if self._closed:
            raise ValidationError("Editor was closed; create a new PackageEditor")
        self._package = Package.open(path)
        return self

    def _require_package(self) -> Package:
        if self._package is None:
            raise ValidationError("Package is not open")
        return self._package

    def _unique_name(self, package: Package) -> str:
        stamp = time.time_ns()
        while True:
            name = f"{stamp:x}"
            prefix = MEDIA_PATH.format(name, "")
            if not any(n.startswith(prefix) for n in package.names()):
                return name
            stamp += 1

    def add_image(self, path: str | Path) -> int:
        """Copy an image into `xl/media/` and return its image id (1, 2, 3, ...)."""

        package = self._require_package()
        path = Path(path)
        extension = path.suffix[1:]
        if not extension:
            raise ValidationError(f"Image file has no extension: {path}")
        try:
            data = path.read_bytes()
        except OSError as e:
            raise OSError(f"Unable to add image: {path}") from e

        image_id = self._next_id
        registration = ImageRegistration(
            image_id=image_id, extension=extension, unique_name=self._unique_name(package)
        )
        package.write(registration.part_name, data)
        self._images[image_id] = registration
        self._next_id += 1
        return image_id

    def select_sheet(self, num: int = 1) -> "PackageEditor":
        self._require_package()
        self.sheet = num
        return self

    def bind_background(self, image_id: int) -> None:
        """Set image `image_id` as the background of the selected sheet."""

        package = self._require_package()
        registration = self._images.get(image_id)
        if registration is None:
            raise ValidationError(f"Invalid image number: {image_id}")
        extension = registration.extension.lower()

        package.write(
            RELS_PATH.format(self.sheet),
            image_relationships_xml(registration.rel_target, rel_id=BACKGROUND_REL_ID).encode("utf-8"),
        )

        sheet_path = SHEET_PATH.format(self.sheet)
        sheet_xml = package.read(sheet_path)
        if sheet_xml is None:
            raise OSError(f"Unable to get sheet content: {sheet_path}")
        patched = set_sheet_picture(sheet_xml.decode("utf-8"), rel_id=BACKGROUND_REL_ID)
        package.write(sheet_path, patched.encode("utf-8"))

        content_types = package.read(CONTENT_TYPES_PATH)
        if content_types is None:
            raise OSError(f"Unable to get content types: {CONTENT_TYPES_PATH}")
        try:
            declared = declared_default_content_type(content_types, extension)
        except ET.ParseError as e:
            raise OSError(f"Unable to parse content types: {CONTENT_TYPES_PATH}") from e
        ct_xml = content_types.decode("utf-8")
        if declared is None:
            ct_xml = add_default_content_type(ct_xml, extension, f"image/{extension}")
        package.write(CONTENT_TYPES_PATH, ct_xml.encode("utf-8"))

    def close(self) -> None:
        """Flush edits to disk and release the package. Safe to call more than once."""

        package = self._package
        if package is None:
            return
        self._package = None
        self._closed = True
        package.close()
