from __future__ import annotations

import abc
import asyncio
import logging
import os
from typing import Awaitable, Callable, Dict, List, Optional, Union

from multiformats import CID

from .container import ContainerHandle
from .errors import (
    AlreadyClosedError,
    AlreadyOpenError,
    InvalidArgumentError,
    NotFoundError,
)
from .ioutil import DEFAULT_FILE_OPS, FileOps, run_blocking
from .overlay import CacheOverlay, Present, Tombstone
from .roots import comment_to_roots


logger = logging.getLogger(__name__)


class Reader(abc.ABC):
    """Read access to an archive, addressed by canonical keys."""

    @abc.abstractmethod
    async def get(self, key: str) -> bytes:
        """Return the bytes stored under ``key``.

        Raises:
            NotFoundError: if the key is absent.
        """

    @abc.abstractmethod
    async def has(self, key: str) -> bool:
        ...

    @abc.abstractmethod
    async def keys(self) -> List[str]:
        """Keys in archive enumeration order (not sorted)."""

    @abc.abstractmethod
    async def get_comment(self) -> str:
        """Raw archive comment, the serialized root set."""

    async def get_roots(self) -> List[CID]:
        return comment_to_roots(await self.get_comment())

    async def open(self) -> None:
        return None

    async def ensure_open(self) -> None:
        """Like ``open()``, but a reader that is already open is left as is."""
        return None

    async def close(self) -> None:
        return None


class NullReader(Reader):
    """Reader with no data: write-only modes and brand-new archives."""

    async def get(self, key: str) -> bytes:
        raise NotFoundError(key)

    async def has(self, key: str) -> bool:
        return False

    async def keys(self) -> List[str]:
        return []

    async def get_comment(self) -> str:
        return ""


class EagerReader(Reader):
    """Buffer-backed reader; the whole archive is decoded up front."""

    def __init__(self, entries: Dict[str, bytes], comment: str = ""):
        self._entries = entries
        self._comment = comment

    @classmethod
    async def create(cls, data: Union[bytes, bytearray, memoryview]) -> "EagerReader":
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise InvalidArgumentError("from_buffer() requires a bytes-like archive")

        def _load():
            handle = ContainerHandle.open(data)
            try:
                return handle.read_all(), handle.comment
            finally:
                handle.close()

        entries, comment = await run_blocking(_load)
        logger.debug("decoded %d entries from buffer", len(entries))
        return cls(entries, comment)

    async def get(self, key: str) -> bytes:
        try:
            return self._entries[key]
        except KeyError:
            raise NotFoundError(key) from None

    async def has(self, key: str) -> bool:
        return key in self._entries

    async def keys(self) -> List[str]:
        return list(self._entries)

    async def get_comment(self) -> str:
        return self._comment


class StreamingReader(Reader):
    """File-backed reader; entries are decoded on demand, one per ``get``.

    The archive is opened once, either explicitly with ``open()`` or on first
    access, and stays open until ``close()``.
    """

    def __init__(self, path: Union[str, "os.PathLike[str]"], *, file_ops: FileOps = DEFAULT_FILE_OPS):
        self.path = os.fspath(path)
        self._file_ops = file_ops
        self._handle: Optional[ContainerHandle] = None
        self._opening: Optional[asyncio.Future] = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    async def open(self) -> None:
        if self._handle is not None or self._opening is not None:
            raise AlreadyOpenError(f"Archive is already open: {self.path}")
        if self._closed:
            raise AlreadyClosedError(f"Archive already closed: {self.path}")
        self._opening = asyncio.ensure_future(
            run_blocking(ContainerHandle.open, self.path, file_ops=self._file_ops)
        )
        try:
            self._handle = await self._opening
        finally:
            self._opening = None
        logger.debug("opened %s", self.path)

    async def ensure_open(self) -> None:
        await self._ensure_open()

    async def _ensure_open(self) -> ContainerHandle:
        if self._handle is None:
            if self._opening is not None:
                await self._opening
            else:
                await self.open()
        assert self._handle is not None
        return self._handle

    async def get(self, key: str) -> bytes:
        handle = await self._ensure_open()
        if not handle.has(key):
            raise NotFoundError(key)
        return await run_blocking(handle.get, key)

    async def has(self, key: str) -> bool:
        handle = await self._ensure_open()
        return handle.has(key)

    async def keys(self) -> List[str]:
        handle = await self._ensure_open()
        return handle.keys()

    async def get_comment(self) -> str:
        handle = await self._ensure_open()
        return handle.comment

    async def close(self) -> None:
        if self._closed:
            raise AlreadyClosedError(f"close() already called: {self.path}")
        self._closed = True
        handle, self._handle = self._handle, None
        if handle is not None:
            await run_blocking(handle.close)
            logger.debug("closed %s", self.path)


class CachingReader(Reader):
    """Decorates a reader with a cache overlay of values and tombstones.

    ``keys()`` reports what the wrapped reader knows about minus tombstoned
    keys; entries that exist only in the overlay are not listed until they are
    written out.
    """

    def __init__(self, reader: Reader):
        self._reader = reader
        self.cache: CacheOverlay = {}
        self._comment: Optional[str] = None
        self._close_surrendered = False

    def set_comment(self, comment: str) -> None:
        self._comment = comment

    def surrender_close(self) -> Callable[[], Awaitable[None]]:
        """Hand the wrapped reader's release over to a single custodian.

        Afterwards ``close()`` on this reader does nothing; only the returned
        callable releases the wrapped reader.
        """
        if self._close_surrendered:
            raise AlreadyClosedError("Reader close has already been handed over")
        self._close_surrendered = True
        return self._reader.close

    async def open(self) -> None:
        await self._reader.open()

    async def ensure_open(self) -> None:
        await self._reader.ensure_open()

    async def get(self, key: str) -> bytes:
        cached = self.cache.get(key)
        if cached is None:
            value = await self._reader.get(key)
            # a delete/put may have landed while the read was in flight
            cached = self.cache.setdefault(key, Present(value))
        if isinstance(cached, Tombstone):
            raise NotFoundError(key)
        return cached.value

    async def has(self, key: str) -> bool:
        cached = self.cache.get(key)
        if cached is not None:
            return isinstance(cached, Present)
        return await self._reader.has(key)

    async def keys(self) -> List[str]:
        return [key for key in await self._reader.keys() if not isinstance(self.cache.get(key), Tombstone)]

    async def get_comment(self) -> str:
        if self._comment is not None:
            return self._comment
        return await self._reader.get_comment()

    async def close(self) -> None:
        if self._close_surrendered:
            return
        await self._reader.close()
