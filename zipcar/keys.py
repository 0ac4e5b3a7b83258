from __future__ import annotations

from typing import Any, Union

from multiformats import CID, multihash

from .constants import DEFAULT_CODEC, DEFAULT_HASH, KEY_BASE_V0, KEY_BASE_V1
from .errors import InvalidKeyError


# CID.decode raises ValueError/KeyError for malformed or unknown encodings,
# TypeError when handed something that is not str/bytes, IndexError on an
# empty multibase payload.
PARSE_ERRORS = (ValueError, KeyError, TypeError, IndexError)


def is_cid(value: Any) -> bool:
    return isinstance(value, CID)


def parse_cid(text: str) -> CID:
    return CID.decode(text)


def cid_to_key(cid: CID) -> str:
    """Canonical entry name for a CID.

    CIDv0 has no multibase prefix and is always base58btc; everything newer
    is written as base32 so that keys are case-insensitive on disk.
    """
    if cid.version == 0:
        return cid.encode()
    return cid.encode(KEY_BASE_V1)


def to_key(key: Union[CID, str], method: str = "key") -> str:
    if not is_cid(key):
        if not isinstance(key, str):
            raise InvalidKeyError(f"{method}() only accepts CIDs or CID strings")
        try:
            key = parse_cid(key)
        except PARSE_ERRORS as exc:
            raise InvalidKeyError(f"{method}() only accepts CIDs or CID strings") from exc
    return cid_to_key(key)


def cid_for(data: bytes, codec: str = DEFAULT_CODEC, version: int = 1) -> CID:
    """Compute the sha2-256 CID addressing ``data``.

    Version 0 is only valid for dag-pb blocks.
    """
    digest = multihash.digest(data, DEFAULT_HASH)
    if version == 0:
        return CID(KEY_BASE_V0, 0, codec, digest)
    return CID(KEY_BASE_V1, 1, codec, digest)
