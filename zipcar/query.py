from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Mapping, Optional, Sequence, Union

from .errors import InvalidArgumentError
from .reader import Reader


@dataclass(frozen=True)
class QueryEntry:
    key: str
    value: Optional[bytes] = None


Filter = Callable[[QueryEntry], Any]


@dataclass(frozen=True)
class Query:
    keys_only: bool = False
    filters: Sequence[Filter] = field(default_factory=tuple)


_OPTION_NAMES = frozenset(("keys_only", "filters"))


def build_query(options: Union[None, Query, Mapping[str, Any]]) -> Query:
    """Normalize ``query()`` options; ``None`` selects everything."""
    if options is None:
        return Query()
    if isinstance(options, Query):
        return options
    if not isinstance(options, Mapping):
        raise InvalidArgumentError("query argument must be a mapping, supply {} to match all")
    unknown = set(options) - _OPTION_NAMES
    if unknown:
        raise InvalidArgumentError(f"Unsupported query option(s): {', '.join(sorted(unknown))}")
    filters = options.get("filters") or ()
    if not isinstance(filters, Sequence) or not all(callable(f) for f in filters):
        raise InvalidArgumentError("query filters must be a list of callables")
    return Query(keys_only=bool(options.get("keys_only", False)), filters=tuple(filters))


async def _accepts(entry: QueryEntry, filters: Sequence[Filter]) -> bool:
    for predicate in filters:
        verdict = predicate(entry)
        if inspect.isawaitable(verdict):
            verdict = await verdict
        if not verdict:
            return False
    return True


async def run_query(reader: Reader, query: Query) -> AsyncIterator[QueryEntry]:
    """Lazily walk the reader's keys, in its enumeration order.

    With ``keys_only`` no value is ever fetched.
    """
    for key in await reader.keys():
        if query.keys_only:
            entry = QueryEntry(key)
        else:
            entry = QueryEntry(key, await reader.get(key))
        if await _accepts(entry, query.filters):
            yield entry
