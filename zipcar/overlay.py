from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Union


@dataclass(frozen=True)
class Present:
    value: bytes


@dataclass(frozen=True)
class Tombstone:
    """Logically deleted; hides the backing archive until the next rewrite."""


TOMBSTONE = Tombstone()

CacheValue = Union[Present, Tombstone]

# canonical key -> cached state; a missing key means "not cached"
CacheOverlay = Dict[str, CacheValue]
