from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, List, Mapping, Sequence, Union

from multiformats import CID

from .errors import AlreadyClosedError, InvalidValueError, UnimplementedError
from .keys import to_key
from .query import Query, QueryEntry, build_query, run_query
from .reader import Reader
from .writer import Writer


logger = logging.getLogger(__name__)

Key = Union[CID, str]


class ZipDatastore:
    """
    Block store over a ZIP archive, using CIDs as entry names and raw block
    bytes as entry contents.

    A datastore pairs one Reader with one Writer; which operations are
    available depends on the create-mode (see ``zipcar.factory``). Keys may be
    given as ``CID`` objects or CID strings and are canonicalized before use;
    anything else raises ``InvalidKeyError``.

    Use as an async context manager to close automatically::

        async with await read_write_file("blocks.zcar") as ds:
            await ds.put(cid, data)
    """

    def __init__(self, reader: Reader, writer: Writer):
        self._reader = reader
        self._writer = writer
        self._closed = False

    async def __aenter__(self) -> "ZipDatastore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self._closed:
            await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self, method: str) -> None:
        if self._closed:
            raise AlreadyClosedError(f"{method}() called after close()")

    async def open(self) -> None:
        """Open the underlying archive now instead of on first access.

        Does nothing when the create-mode has already opened it.
        """
        self._check_open("open")
        await self._reader.ensure_open()

    async def get(self, key: Key) -> bytes:
        """Retrieve a block. Raises ``NotFoundError`` if it is absent."""
        self._check_open("get")
        return await self._reader.get(to_key(key, "get"))

    async def has(self, key: Key) -> bool:
        self._check_open("has")
        return await self._reader.has(to_key(key, "has"))

    async def put(self, key: Key, value: bytes) -> None:
        """
        Store a block.

        Depending on the create-mode the entry is either appended to the
        archive right away or held in memory until ``close()``. A key that is
        already present keeps its original value.
        """
        self._check_open("put")
        key = to_key(key, "put")
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise InvalidValueError("put() can only receive bytes-like values")
        await self._writer.put(key, bytes(value))

    async def delete(self, key: Key) -> None:
        """Delete a block; deleting an absent key silently does nothing."""
        self._check_open("delete")
        await self._writer.delete(to_key(key, "delete"))

    async def set_roots(self, roots: Union[CID, Sequence[CID]]) -> None:
        """Set the archive roots; they are written to the ZIP comment on ``close()``."""
        self._check_open("set_roots")
        await self._writer.set_roots(roots)

    async def get_roots(self) -> List[CID]:
        self._check_open("get_roots")
        return await self._reader.get_roots()

    async def close(self) -> None:
        """
        Close the archive, releasing resources and writing its new contents
        when the create-mode supports writes.
        """
        if self._closed:
            raise AlreadyClosedError("close() already called")
        self._closed = True
        results = await asyncio.gather(self._reader.close(), self._writer.close(), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        logger.debug("datastore closed")

    async def batch(self) -> None:
        raise UnimplementedError("batch() is not implemented")

    def query(self, options: Union[None, Query, Mapping[str, Any]] = None) -> AsyncIterator[QueryEntry]:
        """
        Iterate the entries of the archive with ``async for``.

        Each element is a ``QueryEntry`` with the canonical ``key`` and the
        block ``value``. Pass ``{"keys_only": True}`` to skip loading values;
        ``{"filters": [...]}`` drops entries for which any predicate is falsy.
        """
        self._check_open("query")
        return run_query(self._reader, build_query(options))
