from __future__ import annotations

import io
import time
import zipfile
import zlib
from pathlib import Path

from .util import write_bytes_atomic


def _copy_info(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
    # Fresh header: offsets, sizes and flag bits from the source archive must not leak into the rewrite.
    out = zipfile.ZipInfo(info.filename, date_time=info.date_time)
    out.compress_type = info.compress_type
    out.create_system = info.create_system
    out.external_attr = info.external_attr
    return out


class Package:
    """An OpenXML zip package held in memory for part-level edits.

    Zip archives cannot rewrite an entry in place, so parts are loaded up front and the
    whole archive is re-emitted on `flush()`. Untouched parts keep their original bytes,
    order and zip metadata.
    """

    def __init__(self, path: Path, parts: dict[str, bytes], infos: dict[str, zipfile.ZipInfo]) -> None:
        self.path = path
        self._parts = parts
        self._infos = infos
        self._dirty = False
        self.closed = False

    @classmethod
    def open(cls, path: str | Path) -> "Package":
        path = Path(path)
        parts: dict[str, bytes] = {}
        infos: dict[str, zipfile.ZipInfo] = {}
        try:
            data = path.read_bytes()
            with zipfile.ZipFile(io.BytesIO(data), "r") as z:
                for info in z.infolist():
                    if info.is_dir():
                        continue
                    parts[info.filename] = z.read(info)
                    infos[info.filename] = _copy_info(info)
        except (
            OSError,
            EOFError,
            zipfile.BadZipFile,
            zipfile.LargeZipFile,
            zlib.error,
            # Unsupported compression method / encrypted entry.
            NotImplementedError,
            RuntimeError,
        ) as e:
            raise OSError(f"Unable to open the file: {path}") from e

        return cls(path, parts, infos)

    def _check_open(self) -> None:
        if self.closed:
            raise OSError(f"Package is closed: {self.path}")

    def names(self) -> list[str]:
        self._check_open()
        return list(self._parts)

    def __contains__(self, name: str) -> bool:
        return name in self._parts

    def read(self, name: str) -> bytes | None:
        """Return the part's bytes, or None when the package has no such part."""

        self._check_open()
        return self._parts.get(name)

    def write(self, name: str, data: bytes) -> None:
        """Overwrite-or-insert a part."""

        self._check_open()
        if name not in self._infos:
            info = zipfile.ZipInfo(name, date_time=time.localtime()[:6])
            info.compress_type = zipfile.ZIP_DEFLATED
            self._infos[name] = info
        self._parts[name] = data
        self._dirty = True

    def to_bytes(self) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as z:
            for name, data in self._parts.items():
                z.writestr(self._infos[name], data)
        return buf.getvalue()

    def flush(self) -> None:
        self._check_open()
        if not self._dirty:
            return
        try:
            write_bytes_atomic(self.path, self.to_bytes())
        except OSError as e:
            raise OSError(f"Unable to write the file: {self.path}") from e
        self._dirty = False

    def close(self) -> None:
        if self.closed:
            return
        try:
            self.flush()
        finally:
            self.closed = True
            self._parts = {}
            self._infos = {}
