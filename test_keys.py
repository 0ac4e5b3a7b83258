from __future__ import annotations

import unittest

from multiformats import CID

from zipcar.errors import InvalidArgumentError, InvalidKeyError
from zipcar.keys import cid_for, cid_to_key, to_key
from zipcar.roots import comment_to_roots, roots_to_comment

from fixture_data import make_data


class KeyCodecTests(unittest.TestCase):
    def setUp(self):
        self.data = make_data()

    def test_v1_keys_are_base32(self):
        cid, _ = self.data["raw"][0]
        key = to_key(cid)
        self.assertTrue(key.startswith("bafkrei"), key)
        self.assertEqual(key, cid_to_key(CID.decode(key)))

    def test_v0_keys_are_base58btc(self):
        cid, _ = self.data["pb"][0]
        self.assertEqual(0, cid.version)
        key = to_key(cid)
        self.assertTrue(key.startswith("Qm"), key)

    def test_other_bases_canonicalize(self):
        cid, _ = self.data["cbor"][0]
        as_b58 = cid.encode("base58btc")
        self.assertNotEqual(as_b58, to_key(cid))
        self.assertEqual(to_key(cid), to_key(as_b58))

    def test_distinct_cids_distinct_keys(self):
        keys = {to_key(cid) for group in self.data.values() for cid, _ in group}
        self.assertEqual(10, len(keys))

    def test_invalid_keys(self):
        for bad in ("blip", "", 42, None, b"\x01\x02", ["bafy"]):
            with self.assertRaises(InvalidKeyError):
                to_key(bad, "get")
        with self.assertRaises(TypeError):
            to_key("blip")

    def test_error_names_method(self):
        with self.assertRaises(InvalidKeyError) as cm:
            to_key("blip", "has")
        self.assertIn("has()", str(cm.exception))

    def test_cid_for_is_deterministic(self):
        self.assertEqual(cid_for(b"aaaa"), cid_for(b"aaaa"))
        self.assertNotEqual(cid_for(b"aaaa"), cid_for(b"aaab"))
        self.assertEqual("dag-cbor", cid_for(b"x", "dag-cbor").codec.name)


class RootCodecTests(unittest.TestCase):
    def setUp(self):
        self.data = make_data()
        self.a = self.data["cbor"][0][0]
        self.b = self.data["pb"][2][0]

    def test_single_root(self):
        comment = roots_to_comment(self.a)
        self.assertEqual(cid_to_key(self.a), comment)
        self.assertEqual([self.a], comment_to_roots(comment))

    def test_ordered_roots(self):
        comment = roots_to_comment([self.b, self.a])
        self.assertEqual(2, len(comment.split("\n")))
        self.assertEqual([self.b, self.a], comment_to_roots(comment))

    def test_empty(self):
        self.assertEqual("", roots_to_comment([]))
        self.assertEqual([], comment_to_roots(""))
        self.assertEqual([], comment_to_roots(None))

    def test_lenient_parse(self):
        comment = "\n".join(["garbage", cid_to_key(self.a), "", "also not a cid", cid_to_key(self.b)])
        self.assertEqual([self.a, self.b], comment_to_roots(comment))

    def test_bad_roots(self):
        for bad in ("blip", ["blip"], [self.a, False], 7, None):
            with self.assertRaises(InvalidArgumentError):
                roots_to_comment(bad)


if __name__ == "__main__":
    unittest.main()
