from __future__ import annotations

import heapq
import logging
import math
from enum import Enum
from pathlib import Path
from typing import Dict, Hashable, Iterable, Iterator, List, NamedTuple, Optional, Tuple, Union

from errors import SourceNotFound, SymbolNotInTree

logger = logging.getLogger(__name__)

Symbol = Hashable # int 0..255 for the bytes alphabet, 1-char str for text

BYTES = "bytes"
TEXT = "text"
ALPHABETS = (BYTES, TEXT)


class HuffmanNode: # Node for Huffman tree
    def __init__(self, symbol=None, weight=0, order=0, left=None, right=None):
        self.symbol = symbol    # leaf symbol, None for internal nodes
        self.weight = weight    # count or probability of everything below this node
        self.order = order      # tie-break for equal weights
        self.left = left
        self.right = right
        # composite label: every symbol reachable beneath this node
        if left is None and right is None:
            self.symbols = frozenset([symbol])
        else:
            self.symbols = left.symbols | right.symbols

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __lt__(self, other):
        # allows heapq to maintain the min-heap property, first-come wins on ties
        return (self.weight, self.order) < (other.weight, other.order)

    def __repr__(self):
        if self.is_leaf:
            return f"HuffmanNode(symbol={self.symbol!r}, weight={self.weight})"
        return f"HuffmanNode(symbols={len(self.symbols)}, weight={self.weight})"


class HuffmanTree:
    def __init__(self, root: Optional[HuffmanNode]):
        self.root = root

    @property
    def symbols(self) -> frozenset:
        return self.root.symbols if self.root is not None else frozenset()

    @property
    def is_empty(self) -> bool:
        return self.root is None

    @property
    def is_single_leaf(self) -> bool:
        return self.root is not None and self.root.is_leaf

    def depth(self) -> int:
        def depth_helper(node):
            if node is None or node.is_leaf:
                return 0
            return 1 + max(depth_helper(node.left), depth_helper(node.right))
        return depth_helper(self.root)

    def leaves(self) -> Iterator[HuffmanNode]: # left-to-right leaf order
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            if node.is_leaf:
                yield node
            else:
                stack.append(node.right)
                stack.append(node.left)


# Reading symbols

def read_symbols(path: Union[str, Path], alphabet: str = BYTES, chunk_size: int = 64 * 1024) -> Iterator[Symbol]:
    """
    Yields the symbols of a file one at a time, reading it in chunks.
    Raises SourceNotFound on the first pull if the file is missing.
    """
    if alphabet not in ALPHABETS:
        raise ValueError(f"unknown alphabet {alphabet!r}, expected one of {ALPHABETS}")
    try:
        if alphabet == BYTES:
            f = open(path, "rb")
        else:
            # newline="" keeps \r\n intact so the round trip is exact
            f = open(path, "r", encoding="utf-8", newline="")
    except FileNotFoundError as err:
        raise SourceNotFound(path) from err

    with f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            yield from chunk


# FrequencyModel

def count_symbols(symbols: Iterable[Symbol]) -> Tuple[Dict[Symbol, int], int]:
    """Single pass over the input. Keys keep first-occurrence order."""
    counts: Dict[Symbol, int] = {}
    total = 0
    for s in symbols:
        counts[s] = counts.get(s, 0) + 1
        total += 1
    return counts, total


def to_probabilities(counts: Dict[Symbol, int], total: int) -> Dict[Symbol, float]:
    return {s: c / total for s, c in counts.items()}


def build_frequency_table(symbols: Iterable[Symbol]) -> Tuple[Dict[Symbol, float], int]:
    counts, total = count_symbols(symbols)
    return to_probabilities(counts, total), total


def entropy(frequency_table: Dict[Symbol, float]) -> float: # bits per symbol
    return -sum(p * math.log2(p) for p in frequency_table.values() if p > 0)


# HuffmanTree construction

def build_huffman_tree(frequency_table: Dict[Symbol, float]) -> HuffmanTree:
    """
    Greedy merge of the two lightest entries until one remains.
    Weights may be probabilities or raw counts. Float sums can break
    ties differently from exact counts, so the encoder always uses counts
    (see build_code_model). The entry popped first becomes the left child.
    """
    priority_queue = [
        HuffmanNode(symbol, weight, order)
        for order, (symbol, weight) in enumerate(frequency_table.items())
    ]
    heapq.heapify(priority_queue)
    next_order = len(priority_queue)

    while len(priority_queue) > 1:
        left = heapq.heappop(priority_queue)
        right = heapq.heappop(priority_queue)
        merged_node = HuffmanNode(None, left.weight + right.weight, next_order, left, right)
        next_order += 1
        heapq.heappush(priority_queue, merged_node)

    tree = HuffmanTree(priority_queue[0] if priority_queue else None)
    logger.debug("built Huffman tree: %d leaves, depth %d", len(tree.symbols), tree.depth())
    return tree


# CodeTable derivation

def derive_code_table(tree: HuffmanTree, symbols: Iterable[Symbol]) -> Dict[Symbol, str]:
    """
    Walks from the root for each symbol, '0' when the left child's label
    holds it, '1' otherwise. A single-leaf tree yields the empty code.
    """
    codes: Dict[Symbol, str] = {}
    for symbol in symbols:
        node = tree.root
        if node is None or symbol not in node.symbols:
            raise SymbolNotInTree(symbol)
        bits: List[str] = []
        while not node.is_leaf:
            if symbol in node.left.symbols:
                bits.append("0")
                node = node.left
            else:
                bits.append("1")
                node = node.right
        codes[symbol] = "".join(bits)
    return codes


class CodeModel(NamedTuple):
    counts: Dict[Symbol, int]
    total: int
    tree: HuffmanTree
    codes: Dict[Symbol, str]

    @property
    def probabilities(self) -> Dict[Symbol, float]:
        return to_probabilities(self.counts, self.total)


def build_code_model(symbols: Iterable[Symbol]) -> CodeModel:
    """Counts, tree and code table exactly as the encoder writes them."""
    counts, total = count_symbols(symbols)
    tree = build_huffman_tree(counts)
    return CodeModel(counts, total, tree, derive_code_table(tree, counts.keys()))


def average_code_length(codes: Dict[Symbol, str], frequency_table: Dict[Symbol, float]) -> float:
    return sum(len(codes[s]) * p for s, p in frequency_table.items())


# Decoding one symbol

class WalkStatus(Enum):
    DECODED = "decoded"
    NEED_MORE_BITS = "need_more_bits"
    INVALID = "invalid"


class WalkResult(NamedTuple):
    status: WalkStatus
    symbol: Optional[Symbol] = None
    consumed: int = 0


NEED_MORE_BITS = WalkResult(WalkStatus.NEED_MORE_BITS)
INVALID = WalkResult(WalkStatus.INVALID)


def walk(root: HuffmanNode, bits: str, start: int = 0) -> WalkResult:
    """Decode a single symbol from bits[start:] without consuming anything on failure."""
    node = root
    pos = start
    while not node.is_leaf:
        if pos >= len(bits):
            return NEED_MORE_BITS
        bit = bits[pos]
        if bit == "0":
            node = node.left
        elif bit == "1":
            node = node.right
        else:
            return INVALID
        pos += 1
        if node is None:
            return INVALID
    return WalkResult(WalkStatus.DECODED, node.symbol, pos - start)
