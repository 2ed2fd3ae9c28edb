from __future__ import annotations

from typing import BinaryIO, Iterable, List, Tuple

# '0'/'1' spelling of every byte value, most significant bit first
BYTE_BITS = [format(i, "08b") for i in range(256)]


def bits_to_bytes(bits: str) -> bytes:
    """Converts a bit string whose length is a multiple of 8."""
    if not bits:
        return b""
    return int(bits, 2).to_bytes(len(bits) // 8, "big")


def bytes_to_bits(data: bytes) -> str:
    return "".join(BYTE_BITS[b] for b in data)


class BitPacker:
    """
    Accumulates code strings and writes them to `sink` as whole bytes.
    Once more than `flush_bytes` bytes worth of bits are pending, every
    complete byte is written out and only the remainder stays buffered.
    """

    def __init__(self, sink: BinaryIO, flush_bytes: int = 4096):
        if flush_bytes < 1:
            raise ValueError("flush_bytes must be positive")
        self.sink = sink
        self.flush_bits = flush_bytes * 8
        self.bytes_written = 0
        self._chunks: List[str] = []
        self._pending = 0

    @property
    def pending_bits(self) -> int:
        return self._pending

    def write(self, code: str) -> None:
        self._chunks.append(code)
        self._pending += len(code)
        if self._pending > self.flush_bits:
            self._emit_whole_bytes()

    def _emit_whole_bytes(self) -> None:
        bits = "".join(self._chunks)
        whole = len(bits) - len(bits) % 8
        if whole:
            self.sink.write(bits_to_bytes(bits[:whole]))
            self.bytes_written += whole // 8
        rest = bits[whole:]
        self._chunks = [rest] if rest else []
        self._pending = len(rest)

    def flush(self) -> int:
        """Writes everything left, zero padding the last byte. Returns the pad bit count."""
        self._emit_whole_bytes()
        pad_bits = 0
        if self._pending:
            pad_bits = 8 - self._pending
            self.sink.write(bits_to_bytes(self._chunks[0] + "0" * pad_bits))
            self.bytes_written += 1
            self._chunks = []
            self._pending = 0
        return pad_bits


def pack(codes: Iterable[str], sink: BinaryIO, flush_bytes: int = 4096) -> Tuple[int, int]:
    """
    Packs a lazy sequence of codes into `sink`.
    Returns (bytes_written, pad_bits).
    """
    packer = BitPacker(sink, flush_bytes)
    for code in codes:
        packer.write(code)
    pad_bits = packer.flush()
    return packer.bytes_written, pad_bits


class BitReader:
    """Reads single bits, most significant first, pulling one byte at a time from `source`."""

    def __init__(self, source: BinaryIO):
        self.source = source
        self._byte = 0
        self._mask = 0  # 0 means the current byte is used up
        self.bytes_read = 0

    def read_bit(self) -> int:
        if self._mask == 0:
            raw = self.source.read(1)
            if not raw:
                raise EOFError("bit stream ended")
            self._byte = raw[0]
            self.bytes_read += 1
            self._mask = 0x80
        bit = 1 if self._byte & self._mask else 0
        self._mask >>= 1
        return bit

    def read_bits(self, count: int) -> int:
        value = 0
        for _ in range(count):
            value = (value << 1) | self.read_bit()
        return value

    def align(self) -> None: # drop the rest of the current byte
        self._mask = 0
