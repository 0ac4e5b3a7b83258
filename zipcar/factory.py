"""
Create-modes for ``ZipDatastore``.

Each mode pairs a Reader with a Writer:

- ``from_buffer``: eager in-memory reader, no writes
- ``from_file``: streaming file reader, no writes
- ``to_stream``: append-only writer onto a sink, no reads
- ``read_write_file``: cached reader plus deferred writer that rewrites the
  whole file on close

``create_batch`` writes a complete archive in one pass without going through
a datastore.
"""
from __future__ import annotations

import logging
import os
from typing import AsyncIterable, BinaryIO, Iterable, Optional, Sequence, Tuple, Union

from multiformats import CID

from .constants import DEFAULT_COMPRESSION
from .datastore import ZipDatastore
from .errors import InvalidArgumentError, InvalidKeyError, InvalidValueError
from .ioutil import DEFAULT_FILE_OPS, FileOps, run_blocking
from .keys import cid_to_key, is_cid
from .reader import CachingReader, EagerReader, NullReader, Reader, StreamingReader
from .roots import roots_to_comment
from .writer import DeferredWriter, NullWriter, StreamWriter


logger = logging.getLogger(__name__)

PathType = Union[str, "os.PathLike[str]"]
Block = Tuple[CID, bytes]


async def from_buffer(data: Union[bytes, bytearray, memoryview]) -> ZipDatastore:
    """Read-only datastore over an in-memory archive."""
    reader = await EagerReader.create(data)
    return ZipDatastore(reader, NullWriter())


async def from_file(path: PathType, *, file_ops: FileOps = DEFAULT_FILE_OPS) -> ZipDatastore:
    """Read-only datastore streaming entries from an archive on disk."""
    reader = StreamingReader(path, file_ops=file_ops)
    await reader.open()
    return ZipDatastore(reader, NullWriter())


async def to_stream(
    sink: BinaryIO,
    *,
    compression: int = DEFAULT_COMPRESSION,
    compresslevel: Optional[int] = None,
) -> ZipDatastore:
    """Write-only datastore appending entries to ``sink`` as they are put.

    ``delete()`` is not supported. The sink is flushed, not closed, when the
    datastore is closed.
    """
    writer = StreamWriter(sink, compression=compression, compresslevel=compresslevel)
    return ZipDatastore(NullReader(), writer)


async def read_write_file(
    path: PathType,
    *,
    file_ops: FileOps = DEFAULT_FILE_OPS,
    compression: int = DEFAULT_COMPRESSION,
    compresslevel: Optional[int] = None,
) -> ZipDatastore:
    """
    Read/write datastore over an archive on disk, which need not exist yet.

    Reads come from the existing archive; writes and deletes are held in
    memory. On ``close()`` every remaining entry is loaded and the file is
    rewritten from scratch, so memory use grows with the archive size.
    """
    path = os.fspath(path)
    inner: Reader
    streaming = StreamingReader(path, file_ops=file_ops)
    try:
        await streaming.open()
        inner = streaming
    except FileNotFoundError:
        logger.debug("%s does not exist, starting empty", path)
        inner = NullReader()
    reader = CachingReader(inner)

    async def create_writer() -> StreamWriter:
        # deferred until close()
        sink = await run_blocking(file_ops.open_write, path)
        return StreamWriter(sink, owns_sink=True, compression=compression, compresslevel=compresslevel)

    return ZipDatastore(reader, DeferredWriter(reader, create_writer))


async def _iter_blocks(blocks: Union[Iterable[Block], AsyncIterable[Block]]):
    if hasattr(blocks, "__aiter__"):
        async for block in blocks:
            yield block
    else:
        for block in blocks:
            yield block


async def create_batch(
    roots: Union[CID, Sequence[CID]],
    blocks: Union[Iterable[Block], AsyncIterable[Block]],
    output: Union[PathType, BinaryIO],
    *,
    file_ops: FileOps = DEFAULT_FILE_OPS,
    compression: int = DEFAULT_COMPRESSION,
    compresslevel: Optional[int] = None,
) -> int:
    """Write ``blocks`` (``(cid, bytes)`` pairs) and ``roots`` as a new archive.

    ``output`` is a path or a writable binary stream. Returns the number of
    blocks written.
    """
    comment = roots_to_comment(roots)
    if isinstance(output, (str, os.PathLike)):
        sink = await run_blocking(file_ops.open_write, os.fspath(output))
        owns_sink = True
    elif hasattr(output, "write"):
        sink = output
        owns_sink = False
    else:
        raise InvalidArgumentError("Must provide an output stream or a filename")

    writer = StreamWriter(sink, owns_sink=owns_sink, compression=compression, compresslevel=compresslevel)
    writer.set_comment(comment)
    count = 0
    try:
        async for block in _iter_blocks(blocks):
            try:
                cid, data = block
            except (TypeError, ValueError) as exc:
                raise InvalidArgumentError("blocks must yield (CID, bytes) pairs") from exc
            if not is_cid(cid):
                raise InvalidKeyError("create_batch() block keys must be CIDs")
            if not isinstance(data, (bytes, bytearray, memoryview)):
                raise InvalidValueError("create_batch() block values must be bytes-like")
            await writer.put(cid_to_key(cid), bytes(data))
            count += 1
    finally:
        await writer.close()
    logger.debug("wrote batch of %d blocks", count)
    return count
