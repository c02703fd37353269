#!/usr/bin/env python3

from __future__ import annotations

import argparse
from pathlib import Path

from .editor import PackageEditor


def watermark_workbook(workbook: Path, image: Path, *, sheets: list[int]) -> int:
    """Bind `image` as the background of each sheet in `sheets`; returns the image id."""

    with PackageEditor(workbook) as editor:
        image_id = editor.add_image(image)
        for sheet in sheets:
            editor.select_sheet(sheet).bind_background(image_id)
    return image_id


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Set an image as the background watermark of worksheets in an XLSX (edited in place)."
    )
    parser.add_argument("--input", type=Path, required=True, help="Workbook (.xlsx or .xlsm).")
    parser.add_argument("--image", type=Path, required=True)
    parser.add_argument(
        "--sheet",
        type=int,
        action="append",
        default=[],
        help="1-based worksheet number. Can be repeated (default: 1).",
    )
    args = parser.parse_args()

    sheets: list[int] = args.sheet or [1]
    if any(s < 1 for s in sheets):
        print("--sheet must be >= 1")
        return 1

    try:
        image_id = watermark_workbook(args.input, args.image, sheets=sheets)
    except (OSError, ValueError) as e:
        print(f"Watermarking failed: {e}")
        return 1

    print(f"Bound image {image_id} to sheet(s) {', '.join(str(s) for s in sheets)} of {args.input.name}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
