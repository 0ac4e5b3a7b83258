"""
Thin container codec over the standard library ``zipfile`` module.

Everything here is synchronous; readers and writers push these calls onto an
executor so the event loop only ever waits on whole entry reads/writes.
"""
from __future__ import annotations

import io
import os
import time
import zipfile
from typing import BinaryIO, Dict, List, Optional, Union

from .constants import (
    COMMENT_ENCODING,
    DEFAULT_COMPRESSION,
    ENTRY_UNIX_MODE,
    MAX_COMMENT_BYTES,
)
from .errors import InvalidArgumentError
from .ioutil import DEFAULT_FILE_OPS, FileOps


Source = Union[str, "os.PathLike[str]", bytes, bytearray, memoryview]

_ZIP_UNIX_SYSTEM = 3


def _decode_comment(raw: bytes) -> str:
    return raw.decode(COMMENT_ENCODING, errors="replace")


class ContainerHandle:
    """Read access to one opened archive."""

    def __init__(self, zf: zipfile.ZipFile, fh: BinaryIO):
        self._zf = zf
        self._fh = fh
        self.comment = _decode_comment(zf.comment)

    @classmethod
    def open(cls, source: Source, *, file_ops: FileOps = DEFAULT_FILE_OPS) -> "ContainerHandle":
        if isinstance(source, (bytes, bytearray, memoryview)):
            fh: BinaryIO = io.BytesIO(bytes(source))
        elif isinstance(source, (str, os.PathLike)):
            fh = file_ops.open_read(os.fspath(source))
        else:
            raise InvalidArgumentError("Archive source must be a path or a bytes-like object")
        try:
            zf = zipfile.ZipFile(fh, "r")
        except (zipfile.BadZipFile, OSError, ValueError):
            # close the handle we opened before propagating
            fh.close()
            raise
        return cls(zf, fh)

    def keys(self) -> List[str]:
        # Append-only writers may repeat a name; the last copy wins on read
        return [name for name in dict.fromkeys(self._zf.namelist()) if not name.endswith("/")]

    def has(self, key: str) -> bool:
        try:
            self._zf.getinfo(key)
        except KeyError:
            return False
        return True

    def get(self, key: str) -> bytes:
        """Decode a single entry. Raises KeyError when absent."""
        return self._zf.read(key)

    def read_all(self) -> Dict[str, bytes]:
        return {key: self._zf.read(key) for key in self.keys()}

    def close(self) -> None:
        try:
            self._zf.close()
        finally:
            self._fh.close()


class ContainerWriter:
    """Streaming archive writer; entries hit the sink as they are appended."""

    def __init__(self, sink: BinaryIO, *, owns_sink: bool = False):
        self._sink = sink
        self._owns_sink = owns_sink
        self._zf = zipfile.ZipFile(sink, "w")
        self._comment = b""

    def append_entry(
        self,
        key: str,
        data: bytes,
        *,
        timestamp: Optional[float] = None,
        compression: int = DEFAULT_COMPRESSION,
        compresslevel: Optional[int] = None,
        unix_mode: int = ENTRY_UNIX_MODE,
    ) -> None:
        info = zipfile.ZipInfo(key, date_time=time.localtime(timestamp)[:6])
        info.create_system = _ZIP_UNIX_SYSTEM
        info.compress_type = compression
        info.external_attr = (unix_mode & 0xFFFF) << 16
        self._zf.writestr(info, data, compress_type=compression, compresslevel=compresslevel)

    def set_comment(self, comment: str) -> None:
        raw = comment.encode(COMMENT_ENCODING)
        if len(raw) > MAX_COMMENT_BYTES:
            raise InvalidArgumentError(f"Archive comment exceeds {MAX_COMMENT_BYTES} bytes")
        self._comment = raw

    def finish(self) -> None:
        """Write the central directory and trailer, then flush the sink."""
        self._zf.comment = self._comment
        self._zf.close()
        self._sink.flush()
        if self._owns_sink:
            self._sink.close()
