from __future__ import annotations

import os
import subprocess
import sys
import tempfile
import unittest
import zipfile
from pathlib import Path

from zipcar.keys import cid_for

from fixture_data import build_archive_bytes, initial_blocks, make_data


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, binary: bool = False):
        cmd = [sys.executable, "-m", "zipcar.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=not binary,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.workspace = Path(tmp.name)
        self.archive = self.workspace / "blocks.zcar"
        self.data = make_data()

    def _write_inputs(self, *contents: bytes):
        paths = []
        for i, content in enumerate(contents):
            path = self.workspace / f"input{i}.bin"
            path.write_bytes(content)
            paths.append(str(path))
        return paths

    def test_put_ls_get(self):
        inputs = self._write_inputs(b"aaaa", b"bbbb")
        put = self.run_cli(["put", str(self.archive)] + inputs)
        cids = put.stdout.split()
        self.assertEqual([str(cid_for(b"aaaa")), str(cid_for(b"bbbb"))], cids)

        ls = self.run_cli(["ls", str(self.archive)])
        self.assertEqual(sorted(cids), sorted(ls.stdout.split()))

        ls_values = self.run_cli(["ls", str(self.archive), "--values"])
        for line in ls_values.stdout.splitlines():
            self.assertTrue(line.endswith("\t4"), line)

        got = self.run_cli(["get", str(self.archive), cids[0]], binary=True)
        self.assertEqual(b"aaaa", got.stdout)

        out = self.workspace / "out.bin"
        self.run_cli(["get", str(self.archive), cids[1], "--output", str(out)])
        self.assertEqual(b"bbbb", out.read_bytes())

    def test_put_is_idempotent(self):
        inputs = self._write_inputs(b"aaaa")
        self.run_cli(["put", str(self.archive)] + inputs)
        self.run_cli(["put", str(self.archive)] + inputs)
        ls = self.run_cli(["ls", str(self.archive)])
        self.assertEqual(1, len(ls.stdout.split()))

    def test_put_stored(self):
        inputs = self._write_inputs(b"aaaa" * 100)
        self.run_cli(["put", str(self.archive), "--compression", "store"] + inputs)
        with zipfile.ZipFile(self.archive) as zf:
            self.assertEqual([zipfile.ZIP_STORED], [info.compress_type for info in zf.infolist()])

    def test_put_codec(self):
        inputs = self._write_inputs(b"\xa0")
        put = self.run_cli(["put", str(self.archive), "--codec", "dag-cbor"] + inputs)
        self.assertTrue(put.stdout.strip().startswith("bafyrei"), put.stdout)

    def test_roots(self):
        self.archive.write_bytes(build_archive_bytes(initial_blocks(self.data), [self.data["cbor"][2][0]]))
        roots = self.run_cli(["roots", str(self.archive)])
        self.assertEqual([str(self.data["cbor"][2][0])], roots.stdout.split())

        a, b = self.data["raw"][0][0], self.data["pb"][0][0]
        self.run_cli(["set-roots", str(self.archive), str(a), str(b)])
        roots = self.run_cli(["roots", str(self.archive)])
        self.assertEqual([str(a), str(b)], roots.stdout.split())

        self.run_cli(["set-roots", str(self.archive)])
        roots = self.run_cli(["roots", str(self.archive)])
        self.assertEqual("", roots.stdout)

    def test_rm(self):
        self.archive.write_bytes(build_archive_bytes(initial_blocks(self.data), []))
        gone = str(self.data["pb"][1][0])
        absent = str(self.data["raw"][3][0])
        proc = self.run_cli(["rm", str(self.archive), gone, absent])
        self.assertIn(absent, proc.stderr)
        ls = self.run_cli(["ls", str(self.archive)])
        self.assertNotIn(gone, ls.stdout.split())
        self.assertEqual(len(initial_blocks(self.data)) - 1, len(ls.stdout.split()))

    def test_errors(self):
        self.archive.write_bytes(build_archive_bytes(initial_blocks(self.data), []))
        missing = self.run_cli(["get", str(self.archive), str(self.data["raw"][3][0])], expect=1)
        self.assertIn("not found", missing.stderr)

        bad_key = self.run_cli(["get", str(self.archive), "blip"], expect=2)
        self.assertIn("Error:", bad_key.stderr)

        no_file = self.run_cli(["ls", str(self.workspace / "missing.zcar")], expect=2)
        self.assertIn("Error:", no_file.stderr)

        junk = self.workspace / "junk.zcar"
        junk.write_bytes(b"not a zip")
        bad_zip = self.run_cli(["ls", str(junk)], expect=2)
        self.assertIn("not a zipcar archive", bad_zip.stderr)

        bad_root = self.run_cli(["set-roots", str(self.archive), "blip"], expect=2)
        self.assertIn("Not a CID", bad_root.stderr)


if __name__ == "__main__":
    unittest.main()
