from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from archive import ArchiveHeader, read_header, write_header
from bitio import bytes_to_bits, pack
from errors import ArchiveFormatError, IncompletePartialSymbol, SourceNotFound, SymbolNotInTree
from huffman import (
    ALPHABETS,
    BYTES,
    TEXT,
    Symbol,
    WalkStatus,
    build_code_model,
    read_symbols,
    walk,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class CodecConfig:
    alphabet: str = BYTES
    pack_flush_bytes: int = 4096     # BitPacker threshold
    read_chunk_size: int = 8192      # decoder input chunk, in bytes
    write_buffer_size: int = 8192    # decoded symbols held before a write
    source_chunk_size: int = 64 * 1024

    def __post_init__(self):
        if self.alphabet not in ALPHABETS:
            raise ValueError(f"alphabet must be one of {ALPHABETS}, got {self.alphabet!r}")
        for name in ("pack_flush_bytes", "read_chunk_size", "write_buffer_size", "source_chunk_size"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be positive")


# Encoder

def _lookup_codes(symbols: Iterable[Symbol], codes: Dict[Symbol, str]) -> Iterator[str]:
    for s in symbols:
        try:
            yield codes[s]
        except KeyError:
            raise SymbolNotInTree(s) from None


def _encode_passes(
    open_symbols: Callable[[], Iterator[Symbol]],
    sink: BinaryIO,
    alphabet: str,
    flush_bytes: int,
) -> Tuple[int, int]:
    """
    First pass builds the model, second pass emits codes.
    Returns (header_bytes, packed_bytes).
    """
    model = build_code_model(open_symbols())

    header_size = write_header(sink, model.tree, alphabet, model.total)
    if model.total == 0 or model.tree.is_single_leaf:
        # nothing to pack, the header already holds the symbol and its count
        return header_size, 0

    packed_size, pad_bits = pack(_lookup_codes(open_symbols(), model.codes), sink, flush_bytes)
    logger.debug("packed %d symbols into %d bytes (%d pad bits)", model.total, packed_size, pad_bits)
    return header_size, packed_size


def encode(source_path: PathLike, archive_path: PathLike, config: Optional[CodecConfig] = None) -> float:
    """
    Compresses `source_path` into `archive_path`.
    Returns the compression ratio: original size / archive size.
    """
    config = config or CodecConfig()
    source = Path(source_path)
    if not source.exists():
        raise SourceNotFound(source)

    def open_symbols():
        return read_symbols(source, config.alphabet, config.source_chunk_size)

    with open(archive_path, "wb") as sink:
        header_size, packed_size = _encode_passes(open_symbols, sink, config.alphabet, config.pack_flush_bytes)

    original_size = os.path.getsize(source)
    archive_size = os.path.getsize(archive_path)
    ratio = compression_ratio(original_size, archive_size)
    logger.info(
        "encoded %s -> %s: %d -> %d bytes (header %d), ratio %.4f",
        source, archive_path, original_size, archive_size, header_size, ratio,
    )
    return ratio


# Decoder

class DecoderState(Enum):
    READING_TREE = "reading_tree"
    STREAMING_BITS = "streaming_bits"
    DONE = "done"


class Decoder:
    """
    Rebuilds the original symbols from an archive.

    READING_TREE parses the header, STREAMING_BITS expands input chunks
    into bits and walks the tree from the root once per symbol, DONE is
    reached when the stored symbol count has been produced. Bits left
    after the last symbol are the padding of the final byte and are dropped.
    """

    def __init__(self, source: BinaryIO, sink: BinaryIO, read_chunk_size: int = 8192, write_buffer_size: int = 8192):
        self.source = source
        self.sink = sink
        self.read_chunk_size = read_chunk_size
        self.write_buffer_size = write_buffer_size
        self.state = DecoderState.READING_TREE
        self.header: Optional[ArchiveHeader] = None
        self.decoded = 0
        self.bytes_written = 0
        self._out: List[Symbol] = []

    def run(self) -> int:
        """Decodes everything and returns the number of symbols produced."""
        self._read_tree()
        try:
            self._stream_bits()
        except IncompletePartialSymbol as exc:
            logger.debug("dropped %d padding bits at end of stream", exc.pending_bits)
        finally:
            self._flush()
        self.state = DecoderState.DONE
        return self.decoded

    def _read_tree(self) -> None:
        self.header = read_header(self.source)
        self.state = DecoderState.STREAMING_BITS

    def _emit(self, symbol: Symbol) -> None:
        self._out.append(symbol)
        self.decoded += 1
        if len(self._out) >= self.write_buffer_size:
            self._flush()

    def _flush(self) -> None:
        if not self._out:
            return
        if self.header.alphabet == TEXT:
            data = "".join(self._out).encode("utf-8")
        else:
            data = bytes(self._out)
        self.sink.write(data)
        self.bytes_written += len(data)
        self._out = []

    def _stream_bits(self) -> None:
        count = self.header.symbol_count
        root = self.header.tree.root

        if self.header.tree.is_single_leaf:
            for _ in range(count):
                self._emit(root.symbol)
            return

        bits = ""
        while self.decoded < count:
            chunk = self.source.read(self.read_chunk_size)
            if not chunk:
                break
            bits += bytes_to_bits(chunk)

            pos = 0
            while pos < len(bits) and self.decoded < count:
                result = walk(root, bits, pos)
                if result.status is WalkStatus.DECODED:
                    self._emit(result.symbol)
                    pos += result.consumed
                elif result.status is WalkStatus.NEED_MORE_BITS:
                    break
                else:
                    raise ArchiveFormatError(f"bitstream leaves the tree at bit {pos}")
            bits = bits[pos:]

        if self.decoded < count:
            raise ArchiveFormatError(f"archive ended after {self.decoded} of {count} symbols")
        if bits:
            raise IncompletePartialSymbol(len(bits))


def decode(archive_path: PathLike, output_path: PathLike, config: Optional[CodecConfig] = None) -> int:
    """Decompresses `archive_path` into `output_path`. Returns the symbol count."""
    config = config or CodecConfig()
    if not Path(archive_path).exists():
        raise SourceNotFound(archive_path)

    with open(archive_path, "rb") as source, open(output_path, "wb") as sink:
        decoder = Decoder(source, sink, config.read_chunk_size, config.write_buffer_size)
        decoded = decoder.run()

    logger.info("decoded %s -> %s: %d symbols, %d bytes", archive_path, output_path, decoded, decoder.bytes_written)
    return decoded


# In-memory helpers

def compress(data: Union[bytes, str], config: Optional[CodecConfig] = None) -> bytes:
    """Encodes a bytes object (bytes alphabet) or a str (text alphabet)."""
    config = config or CodecConfig()
    alphabet = TEXT if isinstance(data, str) else BYTES
    sink = io.BytesIO()
    _encode_passes(lambda: iter(data), sink, alphabet, config.pack_flush_bytes)
    return sink.getvalue()


def decompress(blob: bytes, config: Optional[CodecConfig] = None) -> Union[bytes, str]:
    """Inverse of compress(); text archives come back as str."""
    config = config or CodecConfig()
    sink = io.BytesIO()
    decoder = Decoder(io.BytesIO(blob), sink, config.read_chunk_size, config.write_buffer_size)
    decoder.run()
    if decoder.header.alphabet == TEXT:
        return sink.getvalue().decode("utf-8")
    return sink.getvalue()


def compression_ratio(original_size: int, archive_size: int) -> float:
    return original_size / archive_size if archive_size else 0.0
