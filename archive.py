"""
Archive header

    alphabet tag (1 byte) | symbol count (varint) | tree bits

The tag is b"H" for the bytes alphabet and b"T" for text. The symbol
count uses 7 bits per byte, low group first, high bit set on every byte
but the last. Tree bits are written pre-order: '0' opens an internal
node (left subtree, then right subtree), '1' is a leaf followed by its
symbol, one byte for the bytes alphabet or the UTF-8 encoding of the
character for text. The tree is zero padded to a byte boundary and is
absent when the symbol count is 0. The packed bitstream follows and
runs to end of file.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Iterator, NamedTuple

from bitio import BYTE_BITS, BitPacker, BitReader
from errors import ArchiveFormatError
from huffman import BYTES, TEXT, HuffmanNode, HuffmanTree

logger = logging.getLogger(__name__)

ALPHABET_TAGS = {BYTES: b"H", TEXT: b"T"}
ALPHABET_BY_TAG = {tag: name for name, tag in ALPHABET_TAGS.items()}

# a 64-bit symbol count cannot produce a deeper Huffman tree (Fibonacci bound)
MAX_TREE_DEPTH = 128
MAX_VARINT_BYTES = 10


class ArchiveHeader(NamedTuple):
    alphabet: str
    symbol_count: int
    tree: HuffmanTree
    size: int # bytes occupied by the header


def encode_varint(n: int) -> bytes:
    if n < 0:
        raise ValueError("varint must be non-negative")
    out = bytearray()
    while True:
        low = n & 0x7F
        n >>= 7
        if n:
            out.append(low | 0x80)
        else:
            out.append(low)
            return bytes(out)


def read_varint(source: BinaryIO) -> int:
    value = 0
    for i in range(MAX_VARINT_BYTES):
        raw = source.read(1)
        if not raw:
            raise ArchiveFormatError("archive ended inside the symbol count")
        value |= (raw[0] & 0x7F) << (7 * i)
        if not raw[0] & 0x80:
            return value
    raise ArchiveFormatError("symbol count is too long")


def _leaf_bits(symbol, alphabet: str) -> str:
    if alphabet == BYTES:
        return BYTE_BITS[symbol]
    return "".join(BYTE_BITS[b] for b in symbol.encode("utf-8"))


def tree_to_bits(tree: HuffmanTree, alphabet: str) -> Iterator[str]:
    def visit(node: HuffmanNode) -> Iterator[str]:
        if node.is_leaf:
            yield "1" + _leaf_bits(node.symbol, alphabet)
        else:
            yield "0"
            yield from visit(node.left)
            yield from visit(node.right)

    if tree.root is not None:
        yield from visit(tree.root)


def write_header(sink: BinaryIO, tree: HuffmanTree, alphabet: str, symbol_count: int) -> int:
    """Writes the header and returns its size in bytes."""
    if alphabet not in ALPHABET_TAGS:
        raise ValueError(f"unknown alphabet {alphabet!r}")
    fixed = ALPHABET_TAGS[alphabet] + encode_varint(symbol_count)
    sink.write(fixed)
    size = len(fixed)
    if symbol_count:
        packer = BitPacker(sink)
        for bits in tree_to_bits(tree, alphabet):
            packer.write(bits)
        packer.flush()
        size += packer.bytes_written
    logger.debug("wrote %d byte header (%s alphabet, %d symbols)", size, alphabet, symbol_count)
    return size


def _utf8_length(lead: int) -> int:
    if lead < 0x80:
        return 1
    if lead >> 5 == 0b110:
        return 2
    if lead >> 4 == 0b1110:
        return 3
    if lead >> 3 == 0b11110:
        return 4
    raise ArchiveFormatError(f"invalid UTF-8 lead byte {lead:#04x} in tree")


def _read_symbol(reader: BitReader, alphabet: str):
    lead = reader.read_bits(8)
    if alphabet == BYTES:
        return lead
    raw = bytes([lead] + [reader.read_bits(8) for _ in range(_utf8_length(lead) - 1)])
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as err:
        raise ArchiveFormatError(f"invalid character {raw!r} in tree") from err


def _read_node(reader: BitReader, alphabet: str, depth: int) -> HuffmanNode:
    if depth > MAX_TREE_DEPTH:
        raise ArchiveFormatError("tree is deeper than any Huffman tree can be")
    if reader.read_bit():
        return HuffmanNode(_read_symbol(reader, alphabet))
    left = _read_node(reader, alphabet, depth + 1)
    right = _read_node(reader, alphabet, depth + 1)
    return HuffmanNode(None, 0, 0, left, right)


def read_header(source: BinaryIO) -> ArchiveHeader:
    tag = source.read(1)
    if not tag:
        raise ArchiveFormatError("archive is empty")
    if tag not in ALPHABET_BY_TAG:
        raise ArchiveFormatError(f"not a Huffman archive (tag {tag!r})")
    alphabet = ALPHABET_BY_TAG[tag]
    symbol_count = read_varint(source)
    size = 1 + len(encode_varint(symbol_count))

    if symbol_count == 0:
        return ArchiveHeader(alphabet, 0, HuffmanTree(None), size)

    reader = BitReader(source)
    try:
        root = _read_node(reader, alphabet, 0)
    except EOFError as err:
        raise ArchiveFormatError("archive ended inside the tree") from err
    reader.align()
    size += reader.bytes_read
    logger.debug("read %d byte header (%s alphabet, %d symbols)", size, alphabet, symbol_count)
    return ArchiveHeader(alphabet, symbol_count, HuffmanTree(root), size)
