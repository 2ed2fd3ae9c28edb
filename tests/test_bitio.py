import io

import pytest

from bitio import BitPacker, BitReader, bits_to_bytes, bytes_to_bits, pack


def test_bits_to_bytes():
    assert bits_to_bytes("0100000101000010") == b"AB"
    assert bits_to_bytes("") == b""


def test_bytes_to_bits_msb_first():
    assert bytes_to_bits(b"\x80\x01") == "1000000000000001"


class TestBitPacker:

    def test_final_flush_pads_with_zeros(self):
        sink = io.BytesIO()
        packer = BitPacker(sink)
        packer.write("101")
        assert sink.getvalue() == b""
        assert packer.flush() == 5
        assert sink.getvalue() == b"\xa0"
        assert packer.bytes_written == 1

    def test_emits_whole_bytes_past_threshold(self):
        sink = io.BytesIO()
        packer = BitPacker(sink, flush_bytes=1)
        packer.write("1111")
        packer.write("1111")
        # exactly at the threshold, nothing written yet
        assert sink.getvalue() == b""
        packer.write("1")
        assert sink.getvalue() == b"\xff"
        assert packer.pending_bits == 1
        assert packer.flush() == 7
        assert sink.getvalue() == b"\xff\x80"

    def test_byte_aligned_input_needs_no_padding(self):
        sink = io.BytesIO()
        assert pack(["0100", "0001"], sink) == (1, 0)
        assert sink.getvalue() == b"A"

    def test_pack_lazy_codes(self):
        sink = io.BytesIO()
        codes = (c for c in ["10", "10", "11", "11", "11", "0", "0", "0", "0"])
        assert pack(codes, sink, flush_bytes=1) == (2, 2)
        assert sink.getvalue() == b"\xaf\xc0"

    def test_nothing_written_for_no_bits(self):
        sink = io.BytesIO()
        assert pack([], sink) == (0, 0)
        assert pack(["", ""], sink) == (0, 0)
        assert sink.getvalue() == b""

    def test_rejects_non_positive_threshold(self):
        with pytest.raises(ValueError):
            BitPacker(io.BytesIO(), flush_bytes=0)


class TestBitReader:

    def test_reads_bits_in_order(self):
        reader = BitReader(io.BytesIO(b"\xa5\x0f"))
        assert [reader.read_bit() for _ in range(4)] == [1, 0, 1, 0]
        assert reader.read_bits(4) == 0b0101
        assert reader.read_bits(8) == 0x0F
        assert reader.bytes_read == 2

    def test_align_skips_rest_of_byte(self):
        source = io.BytesIO(b"\x80\x41\x42")
        reader = BitReader(source)
        assert reader.read_bit() == 1
        reader.align()
        assert reader.read_bits(8) == 0x41
        assert source.read() == b"\x42"

    def test_end_of_stream(self):
        reader = BitReader(io.BytesIO(b""))
        with pytest.raises(EOFError):
            reader.read_bit()
