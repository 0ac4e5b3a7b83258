"""Shared blocks and checks for the zipcar test modules.

Blocks are ``(cid, bytes)`` pairs:

- raw: ``aaaa bbbb cccc zzzz`` as CIDv1 raw blocks
- pb: three CIDv0 dag-pb nodes, each linking a raw block and the previous node
- cbor: three small CIDv1 dag-cbor maps

The "unmodified" data set holds every block except raw ``zzzz`` with roots
``[cbor[2]]``. The "modified" set drops the middle raw, pb and cbor blocks,
adds ``zzzz`` and has roots ``[cbor[1]]``.
"""
from __future__ import annotations

import io
import zipfile
from typing import Dict, List, Optional, Tuple

from multiformats import CID, varint

from zipcar.errors import NotFoundError
from zipcar.keys import cid_for, cid_to_key


Block = Tuple[CID, bytes]


def _pb_field(tag: int, payload: bytes) -> bytes:
    return bytes([tag]) + varint.encode(len(payload)) + payload


def encode_pb_node(links: List[Tuple[str, int, CID]], data: Optional[bytes] = None) -> bytes:
    """Minimal dag-pb encoder: links first, then data, per the canonical form."""
    out = b""
    for name, tsize, cid in links:
        link = _pb_field(0x0A, bytes(cid)) + _pb_field(0x12, name.encode("utf-8")) + b"\x18" + varint.encode(tsize)
        out += _pb_field(0x12, link)
    if data is not None:
        out += _pb_field(0x0A, data)
    return out


def _cbor_head(major: int, value: int) -> bytes:
    if value < 24:
        return bytes([(major << 5) | value])
    return bytes([(major << 5) | 24, value])


def _cbor_text(text: str) -> bytes:
    raw = text.encode("utf-8")
    return _cbor_head(3, len(raw)) + raw


def _cbor_int(value: int) -> bytes:
    if value >= 0:
        return _cbor_head(0, value)
    return _cbor_head(1, -1 - value)


def encode_cbor_struct(name: str, value: int, flag: bool) -> bytes:
    # dag-cbor map keys sorted by length, then bytewise: flag, name, value
    return (
        _cbor_head(5, 3)
        + _cbor_text("flag") + (b"\xf5" if flag else b"\xf4")
        + _cbor_text("name") + _cbor_text(name)
        + _cbor_text("value") + _cbor_int(value)
    )


def make_data() -> Dict[str, List[Block]]:
    raw: List[Block] = []
    for text in ("aaaa", "bbbb", "cccc", "zzzz"):
        data = text.encode("ascii")
        raw.append((cid_for(data, "raw"), data))

    pb: List[Block] = []
    node1 = encode_pb_node([("cat", len(raw[0][1]), raw[0][0])])
    pb.append((cid_for(node1, "dag-pb", version=0), node1))
    node2 = encode_pb_node([("dog", len(raw[1][1]), raw[1][0]), ("first", len(node1), pb[0][0])])
    pb.append((cid_for(node2, "dag-pb", version=0), node2))
    node3 = encode_pb_node([("bear", len(raw[2][1]), raw[2][0]), ("second", len(node2), pb[1][0])])
    pb.append((cid_for(node3, "dag-pb", version=0), node3))

    cbor: List[Block] = []
    for args in (("foo", 100, False), ("bar", -100, False), ("baz", 0, True)):
        data = encode_cbor_struct(*args)
        cbor.append((cid_for(data, "dag-cbor"), data))

    return {"raw": raw, "pb": pb, "cbor": cbor}


def initial_blocks(data: Dict[str, List[Block]]) -> List[Block]:
    """Everything but raw zzzz."""
    return data["raw"][:3] + data["pb"] + data["cbor"]


def unrelated_cid() -> CID:
    return cid_for(b"not stored anywhere")


def build_archive_bytes(blocks: List[Block], roots: List[CID]) -> bytes:
    """Build a zipcar archive with plain ``zipfile``, independent of zipcar's writer."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for cid, block in blocks:
            zf.writestr(cid_to_key(cid), block)
        zf.comment = "\n".join(cid_to_key(r) for r in roots).encode("utf-8")
    return buf.getvalue()


def _expected(data: Dict[str, List[Block]], modified: bool):
    present: List[Block] = []
    absent: List[Block] = []
    for group in ("raw", "pb", "cbor"):
        blocks = data[group][:3]
        for i, block in enumerate(blocks):
            (absent if modified and i == 1 else present).append(block)
    (present if modified else absent).append(data["raw"][3])
    return present, absent


async def verify_has(test, ds, data, modified: bool = False) -> None:
    present, absent = _expected(data, modified)
    for cid, _ in present:
        test.assertTrue(await ds.has(cid), f"has({cid})")
        test.assertTrue(await ds.has(str(cid)), f"has('{cid}')")
    for cid, _ in absent:
        test.assertFalse(await ds.has(cid), f"not has({cid})")
    test.assertFalse(await ds.has(unrelated_cid()))


async def verify_blocks(test, ds, data, modified: bool = False) -> None:
    present, absent = _expected(data, modified)
    for cid, block in present:
        test.assertEqual(block, bytes(await ds.get(cid)))
    for cid, _ in absent:
        with test.assertRaises(NotFoundError):
            await ds.get(cid)


async def verify_roots(test, ds, data, modified: bool = False) -> None:
    expected = data["cbor"][1][0] if modified else data["cbor"][2][0]
    test.assertEqual([expected], await ds.get_roots())
