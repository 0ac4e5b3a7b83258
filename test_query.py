from __future__ import annotations

import unittest

from zipcar import Query, QueryEntry, from_buffer
from zipcar.errors import InvalidArgumentError
from zipcar.keys import cid_to_key
from zipcar.query import build_query, run_query
from zipcar.reader import EagerReader

from fixture_data import build_archive_bytes, initial_blocks, make_data


class _CountingReader(EagerReader):
    gets = 0

    async def get(self, key):
        self.gets += 1
        return await super().get(key)


class QueryTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.data = make_data()
        self.blocks = initial_blocks(self.data)
        self.archive = build_archive_bytes(self.blocks, [self.data["cbor"][2][0]])
        self.expected = {cid_to_key(cid): block for cid, block in self.blocks}

    async def test_all_entries(self):
        async with await from_buffer(self.archive) as ds:
            entries = [entry async for entry in ds.query()]
        self.assertEqual(len(self.blocks), len(entries))
        self.assertEqual(self.expected, {e.key: e.value for e in entries})

    async def test_empty_options(self):
        async with await from_buffer(self.archive) as ds:
            entries = [entry async for entry in ds.query({})]
        self.assertEqual(self.expected, {e.key: e.value for e in entries})

    async def test_keys_only_never_fetches(self):
        base = await EagerReader.create(self.archive)
        reader = _CountingReader(dict(self.expected), await base.get_comment())
        entries = [e async for e in run_query(reader, build_query({"keys_only": True}))]
        self.assertEqual(0, reader.gets)
        self.assertEqual(set(self.expected), {e.key for e in entries})
        self.assertTrue(all(e.value is None for e in entries))

    async def test_filter(self):
        async with await from_buffer(self.archive) as ds:
            entries = [e async for e in ds.query({"filters": [lambda e: e.key.startswith("bafyrei")]})]
        expected = {cid_to_key(cid) for cid, _ in self.data["cbor"]}
        self.assertEqual(expected, {e.key for e in entries})

    async def test_filters_left_to_right(self):
        seen = []

        def first(entry):
            seen.append(("first", entry.key))
            return entry.key.startswith("Qm")

        def second(entry):
            seen.append(("second", entry.key))
            return True

        async with await from_buffer(self.archive) as ds:
            entries = [e async for e in ds.query({"keys_only": True, "filters": [first, second]})]
        self.assertEqual(3, len(entries))
        self.assertEqual(len(self.blocks), sum(1 for name, _ in seen if name == "first"))
        self.assertEqual(3, sum(1 for name, _ in seen if name == "second"))

    async def test_async_filter(self):
        async def raw_only(entry: QueryEntry) -> bool:
            return entry.key.startswith("bafkrei")

        async with await from_buffer(self.archive) as ds:
            entries = [e async for e in ds.query(Query(filters=(raw_only,)))]
        self.assertEqual({cid_to_key(cid) for cid, _ in self.data["raw"][:3]}, {e.key for e in entries})
        self.assertTrue(all(e.value for e in entries))

    async def test_bad_options(self):
        async with await from_buffer(self.archive) as ds:
            for bad in ("keys_only", 1, ["filters"]):
                with self.assertRaises(InvalidArgumentError):
                    ds.query(bad)
            with self.assertRaises(InvalidArgumentError):
                ds.query({"limit": 1})
            with self.assertRaises(InvalidArgumentError):
                ds.query({"filters": ["not callable"]})


if __name__ == "__main__":
    unittest.main()
