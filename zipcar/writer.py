from __future__ import annotations

import abc
import asyncio
import logging
import time
from typing import Awaitable, BinaryIO, Callable, Optional, Sequence, Union

from multiformats import CID

from .constants import DEFAULT_COMPRESSION, ENTRY_UNIX_MODE
from .container import ContainerWriter
from .errors import AlreadyClosedError, UnsupportedOperationError
from .ioutil import run_blocking
from .overlay import TOMBSTONE, Present
from .reader import CachingReader
from .roots import roots_to_comment


logger = logging.getLogger(__name__)

Roots = Union[CID, Sequence[CID]]


class Writer(abc.ABC):
    """Mutation access to an archive. Each instance closes exactly once."""

    @abc.abstractmethod
    async def put(self, key: str, value: bytes) -> None:
        ...

    @abc.abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abc.abstractmethod
    async def set_roots(self, roots: Roots) -> None:
        ...

    async def close(self) -> None:
        return None


class NullWriter(Writer):
    """Writer for read-only modes; every mutation is refused."""

    async def put(self, key: str, value: bytes) -> None:
        raise UnsupportedOperationError("put() is not supported by a read-only archive")

    async def delete(self, key: str) -> None:
        raise UnsupportedOperationError("delete() is not supported by a read-only archive")

    async def set_roots(self, roots: Roots) -> None:
        raise UnsupportedOperationError("set_roots() is not supported by a read-only archive")


class StreamWriter(Writer):
    """Append-only writer; each ``put`` is serialized to the sink immediately.

    Nothing is deduplicated or buffered except the roots, which go into the
    archive comment when the writer is closed.
    """

    def __init__(
        self,
        sink: BinaryIO,
        *,
        owns_sink: bool = False,
        compression: int = DEFAULT_COMPRESSION,
        compresslevel: Optional[int] = None,
        unix_mode: int = ENTRY_UNIX_MODE,
    ):
        self._container = ContainerWriter(sink, owns_sink=owns_sink)
        self.compression = compression
        self.compresslevel = compresslevel
        self.unix_mode = unix_mode
        self.comment = ""
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self, method: str) -> None:
        if self._closed:
            raise AlreadyClosedError(f"{method}() called after close()")

    async def put(self, key: str, value: bytes) -> None:
        self._check_open("put")
        await run_blocking(
            self._container.append_entry,
            key,
            bytes(value),
            timestamp=time.time(),
            compression=self.compression,
            compresslevel=self.compresslevel,
            unix_mode=self.unix_mode,
        )

    async def delete(self, key: str) -> None:
        raise UnsupportedOperationError("delete() is not supported by an append-only writer")

    async def set_roots(self, roots: Roots) -> None:
        self._check_open("set_roots")
        self.comment = roots_to_comment(roots)

    def set_comment(self, comment: str) -> None:
        self._check_open("set_comment")
        self.comment = comment

    def _finish(self) -> None:
        self._container.set_comment(self.comment or "")
        self._container.finish()

    async def close(self) -> None:
        if self._closed:
            raise AlreadyClosedError("close() already called")
        self._closed = True
        await run_blocking(self._finish)


WriterFactory = Callable[[], Awaitable[StreamWriter]]


class DeferredWriter(Writer):
    """Read-modify-write over a CachingReader.

    Mutations land in the reader's cache overlay, so they are visible to reads
    in the same session. Nothing touches the destination until ``close()``,
    which rewrites the whole archive through a writer obtained from
    ``create_writer``; archives cannot be patched in place.
    """

    def __init__(self, reader: CachingReader, create_writer: WriterFactory):
        self._reader = reader
        self._create_writer = create_writer
        # The original archive must stay readable until close() has primed
        # the cache, so this writer alone decides when the reader is released.
        self._release_reader = reader.surrender_close()
        self._closed = False

    def _check_open(self, method: str) -> None:
        if self._closed:
            raise AlreadyClosedError(f"{method}() called after close()")

    async def put(self, key: str, value: bytes) -> None:
        self._check_open("put")
        # First write wins: an existing block is never replaced
        if await self._reader.has(key):
            logger.debug("put() ignored for existing key %s", key)
            return
        self._reader.cache[key] = Present(bytes(value))

    async def delete(self, key: str) -> None:
        self._check_open("delete")
        self._reader.cache[key] = TOMBSTONE

    async def set_roots(self, roots: Roots) -> None:
        self._check_open("set_roots")
        self._reader.set_comment(roots_to_comment(roots))

    async def _prime(self) -> None:
        """Pull every not-yet-cached entry into the overlay."""
        keys = await self._reader.keys()
        missing = [key for key in keys if key not in self._reader.cache]
        if missing:
            await asyncio.gather(*(self._reader.get(key) for key in missing))
        logger.debug("primed %d of %d entries", len(missing), len(keys))

    async def close(self) -> None:
        """
        Rewrites the destination from the cache overlay.

        1.  Primes the overlay with every entry of the original archive.
        2.  Releases the original archive.
        3.  Opens a new writer on the (truncated) destination.
        4.  Writes every cached value that is not a tombstone.
        5.  Carries the roots over.
        6.  Closes the new writer.

        Not atomic: a failure after step 3 can leave a truncated archive.
        """
        if self._closed:
            raise AlreadyClosedError("close() already called")
        self._closed = True
        await self._prime()
        comment = await self._reader.get_comment()
        await self._release_reader()
        writer = await self._create_writer()
        written = 0
        for key, cached in list(self._reader.cache.items()):
            if isinstance(cached, Present):
                await writer.put(key, cached.value)
                written += 1
        writer.set_comment(comment)
        await writer.close()
        logger.debug("rewrote archive with %d entries", written)
