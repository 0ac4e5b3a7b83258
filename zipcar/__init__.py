"""
zipcar: content-addressed block storage in plain ZIP archives.

Features:

- Blocks are ZIP entries named by their CID (base58btc for v0, base32 for v1).
- Root CIDs live in the ZIP comment, one per line.
- Four create-modes built from one Reader and one Writer each: in-memory
  read-only, streaming file read-only, append-only stream write, and
  read-modify-write of a file that is rewritten on close.
- Read-your-writes and deletes inside a read/write session via a cache
  overlay with tombstones.

All datastore operations are coroutines. See zipcar.factory for the
create-modes and zipcar.datastore for the operations.
"""

__version__ = "0.1"

from .datastore import ZipDatastore
from .factory import create_batch, from_buffer, from_file, read_write_file, to_stream
from .query import Query, QueryEntry

__all__ = [
    "ZipDatastore",
    "Query",
    "QueryEntry",
    "create_batch",
    "from_buffer",
    "from_file",
    "read_write_file",
    "to_stream",
]
