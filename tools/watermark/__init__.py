"""Background-image watermarking for xlsx packages.

Edits are made at the OpenXML part level: an image is copied into `xl/media/`, wired to a
worksheet through its relationships part, referenced from the worksheet via `<picture>`,
and its extension is declared in `[Content_Types].xml`.
"""

from .editor import ImageRegistration, PackageEditor, ValidationError

__all__ = ["ImageRegistration", "PackageEditor", "ValidationError"]
