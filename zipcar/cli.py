from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import zipfile
from pathlib import Path
from typing import List, Optional

from zipcar.constants import COMPRESSION_METHODS, DEFAULT_CODEC
from zipcar.errors import NotFoundError, ZipcarError
from zipcar.factory import from_file, read_write_file
from zipcar.keys import PARSE_ERRORS, cid_for, parse_cid


def cmd_ls(archive: str, *, values: bool = False) -> int:
    """List the block keys of an archive.

    Args:
        archive: Path to a .zcar file.
        values: Also load each block and print its size.
    """

    async def _run() -> int:
        count = 0
        async with await from_file(archive) as ds:
            async for entry in ds.query({"keys_only": not values}):
                if values:
                    print(f"{entry.key}\t{len(entry.value or b'')}")
                else:
                    print(entry.key)
                count += 1
        return count

    return asyncio.run(_run())


def cmd_roots(archive: str) -> List[str]:
    async def _run() -> List[str]:
        async with await from_file(archive) as ds:
            return [str(root) for root in await ds.get_roots()]

    roots = asyncio.run(_run())
    for root in roots:
        print(root)
    return roots


def cmd_get(archive: str, cid: str, *, output: Optional[str] = None) -> int:
    """Write one block to ``output`` (stdout when omitted)."""

    async def _run() -> bytes:
        async with await from_file(archive) as ds:
            return await ds.get(cid)

    data = asyncio.run(_run())
    if output:
        Path(output).write_bytes(data)
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
    return len(data)


def cmd_put(archive: str, inputs: List[str], *, codec: str = DEFAULT_CODEC, compression: str = "deflate") -> List[str]:
    """Store files as blocks, creating the archive if needed.

    Each file becomes one CIDv1 sha2-256 block; the CIDs are printed in
    input order.
    """

    async def _run() -> List[str]:
        added: List[str] = []
        async with await read_write_file(archive, compression=COMPRESSION_METHODS[compression]) as ds:
            for name in inputs:
                data = Path(name).read_bytes()
                cid = cid_for(data, codec=codec)
                await ds.put(cid, data)
                added.append(str(cid))
        return added

    added = asyncio.run(_run())
    for cid in added:
        print(cid)
    return added


def cmd_rm(archive: str, cids: List[str], *, compression: str = "deflate") -> int:
    async def _run() -> int:
        removed = 0
        async with await read_write_file(archive, compression=COMPRESSION_METHODS[compression]) as ds:
            for cid in cids:
                if not await ds.has(cid):
                    print(f"Warning: {cid} not in archive", file=sys.stderr)
                    continue
                await ds.delete(cid)
                removed += 1
        return removed

    return asyncio.run(_run())


def cmd_set_roots(archive: str, cids: List[str], *, compression: str = "deflate") -> None:
    roots = []
    for text in cids:
        try:
            roots.append(parse_cid(text))
        except PARSE_ERRORS as exc:
            raise ValueError(f"Not a CID: {text}") from exc

    async def _run() -> None:
        async with await read_write_file(archive, compression=COMPRESSION_METHODS[compression]) as ds:
            await ds.set_roots(roots)

    asyncio.run(_run())


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="zipcar",
        description="Content-addressed block archives in ZIP format",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_ls = sub.add_parser("ls", help="List block keys")
    ap_ls.add_argument("archive", help="Archive path")
    ap_ls.add_argument("--values", action="store_true", help="Load blocks and print their sizes")

    ap_roots = sub.add_parser("roots", help="Print root CIDs")
    ap_roots.add_argument("archive", help="Archive path")

    ap_get = sub.add_parser("get", help="Write a block to stdout or a file")
    ap_get.add_argument("archive", help="Archive path")
    ap_get.add_argument("cid", help="Block CID")
    ap_get.add_argument("--output", "-o", help="Output file (default: stdout)")

    ap_put = sub.add_parser("put", help="Store files as blocks (archive is created if missing)")
    ap_put.add_argument("archive", help="Archive path")
    ap_put.add_argument("inputs", nargs="+", help="Input files")
    ap_put.add_argument("--codec", default=DEFAULT_CODEC, help=f"Multicodec for the new CIDs (default: {DEFAULT_CODEC})")

    ap_rm = sub.add_parser("rm", help="Delete blocks")
    ap_rm.add_argument("archive", help="Archive path")
    ap_rm.add_argument("cids", nargs="+", help="Block CIDs")

    ap_set_roots = sub.add_parser("set-roots", help="Replace the archive roots")
    ap_set_roots.add_argument("archive", help="Archive path")
    ap_set_roots.add_argument("cids", nargs="*", help="Root CIDs (none clears the roots)")

    for rw in (ap_put, ap_rm, ap_set_roots):
        rw.add_argument(
            "--compression",
            choices=sorted(COMPRESSION_METHODS),
            default="deflate",
            help="Entry compression for the rewritten archive (default: deflate)",
        )

    args = ap.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        if args.cmd == "ls":
            cmd_ls(args.archive, values=args.values)
        elif args.cmd == "roots":
            cmd_roots(args.archive)
        elif args.cmd == "get":
            cmd_get(args.archive, args.cid, output=args.output)
        elif args.cmd == "put":
            cmd_put(args.archive, args.inputs, codec=args.codec, compression=args.compression)
        elif args.cmd == "rm":
            cmd_rm(args.archive, args.cids, compression=args.compression)
        elif args.cmd == "set-roots":
            cmd_set_roots(args.archive, args.cids, compression=args.compression)
        else:
            raise RuntimeError("Unknown command")
    except NotFoundError as e:
        print(f"Error: block not found: {e}", file=sys.stderr)
        sys.exit(1)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except zipfile.BadZipFile as e:
        print(f"Error: not a zipcar archive: {e}", file=sys.stderr)
        sys.exit(2)
    except (ZipcarError, OSError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
