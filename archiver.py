"""
Huffman archiver command line

How to run:
  python archiver.py encode notes.txt notes.huf --text
  python archiver.py decode notes.huf notes.out
  python archiver.py inspect notes.txt --text
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Dict, List, Optional

from codec import CodecConfig, decode, encode
from errors import HuffmanError
from huffman import (
    BYTES,
    TEXT,
    average_code_length,
    build_code_model,
    entropy,
    read_symbols,
)
from log_utils import setup_logging

logger = logging.getLogger(__name__)


def display_symbol(symbol) -> str:
    if isinstance(symbol, int):
        return f"{symbol:#04x}"
    return repr(symbol)


def print_table(table: Dict) -> None:
    for k, v in table.items():
        if isinstance(v, float):
            print(f"{display_symbol(k)} \t {v:.10f}")
        else:
            print(f"{display_symbol(k)} \t {v}")


def cmd_encode(args: argparse.Namespace) -> int:
    config = CodecConfig(alphabet=TEXT if args.text else BYTES, pack_flush_bytes=args.flush_bytes)
    ratio = encode(args.source, args.archive, config)
    print(f"Compression ratio: K = {ratio:.4f}")
    print(f"Input size:   {os.path.getsize(args.source)} bytes")
    print(f"Archive size: {os.path.getsize(args.archive)} bytes")
    return 0


def cmd_decode(args: argparse.Namespace) -> int:
    config = CodecConfig(read_chunk_size=args.read_chunk, write_buffer_size=args.write_buffer)
    symbols = decode(args.archive, args.output, config)
    print(f"Decoded {symbols} symbols")
    print(f"Output size: {os.path.getsize(args.output)} bytes")
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    alphabet = TEXT if args.text else BYTES
    # same counts-built tree the encoder writes into the archive
    model = build_code_model(read_symbols(args.source, alphabet))
    table = model.probabilities
    print("Symbol probabilities:")
    print_table(table)
    print(f"\nSymbols in input: {model.total}")
    print(f"Distinct symbols: {len(table)}")
    if not table:
        return 0

    codes = model.codes
    print("\nCode table:")
    print_table(codes)
    print(f"\nEntropy: {entropy(table):.4f} bits/symbol")
    print(f"Average code length: {average_code_length(codes, table):.4f} bits/symbol")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="huffman-archiver", description="Static Huffman file compression")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    ap.add_argument("--log_dir", type=str, default=None, help="Also write a run log into this directory")
    sub = ap.add_subparsers(dest="command", required=True)

    enc = sub.add_parser("encode", help="Compress a file")
    enc.add_argument("source")
    enc.add_argument("archive")
    enc.add_argument("--text", action="store_true", help="Treat input as UTF-8 characters instead of bytes")
    enc.add_argument("--flush-bytes", type=int, default=4096, help="Bytes buffered before packed bits are written")
    enc.set_defaults(func=cmd_encode)

    dec = sub.add_parser("decode", help="Restore a compressed file")
    dec.add_argument("archive")
    dec.add_argument("output")
    dec.add_argument("--read-chunk", type=int, default=8192, help="Archive bytes read per step")
    dec.add_argument("--write-buffer", type=int, default=8192, help="Decoded symbols held before a write")
    dec.set_defaults(func=cmd_decode)

    ins = sub.add_parser("inspect", help="Print probability and code tables")
    ins.add_argument("source")
    ins.add_argument("--text", action="store_true", help="Treat input as UTF-8 characters instead of bytes")
    ins.set_defaults(func=cmd_inspect)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(__name__, log_dir=args.log_dir, level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        return args.func(args)
    except (HuffmanError, OSError, ValueError) as e:
        logger.debug("command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
