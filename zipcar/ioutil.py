from __future__ import annotations

import asyncio
import functools
from dataclasses import dataclass
from typing import BinaryIO, Callable, TypeVar


T = TypeVar("T")


def _open_read(path: str) -> BinaryIO:
    return open(path, "rb")


def _open_write(path: str) -> BinaryIO:
    # Truncates an existing archive; see DeferredWriter.close()
    return open(path, "wb")


@dataclass(frozen=True)
class FileOps:
    """Filesystem primitives handed to readers and writers.

    Tests and embedders can swap these for in-memory or instrumented
    implementations instead of patching the ``open`` builtin.
    """
    open_read: Callable[[str], BinaryIO] = _open_read
    open_write: Callable[[str], BinaryIO] = _open_write


DEFAULT_FILE_OPS = FileOps()


async def run_blocking(fn: Callable[..., T], *args, **kwargs) -> T:
    """Run a blocking archive call on the default executor."""
    loop = asyncio.get_running_loop()
    if kwargs:
        fn = functools.partial(fn, **kwargs)
    return await loop.run_in_executor(None, fn, *args)
