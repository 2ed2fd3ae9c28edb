import io
import random

import pytest

from archive import read_header
from codec import compress
from errors import SourceNotFound, SymbolNotInTree
from huffman import (
    BYTES,
    TEXT,
    WalkStatus,
    average_code_length,
    build_code_model,
    build_frequency_table,
    build_huffman_tree,
    count_symbols,
    derive_code_table,
    entropy,
    read_symbols,
    walk,
)

ENGLISH = "the quick brown fox jumps over the lazy dog, then naps in the sun."


def random_bytes(seed, alphabet, size):
    rng = random.Random(seed)
    return bytes(rng.randrange(0, alphabet) for _ in range(size))


def is_prefix_free(codes):
    values = list(codes.values())
    for i, a in enumerate(values):
        for j, b in enumerate(values):
            if i != j and b.startswith(a):
                return False
    return True


class TestFrequencyModel:

    def test_scenario_probabilities(self):
        table, total = build_frequency_table("aabbbcccc")
        assert total == 9
        assert table == pytest.approx({"a": 2 / 9, "b": 3 / 9, "c": 4 / 9})

    @pytest.mark.parametrize("data", [b"aabbbcccc", bytes(range(256)) * 3, ENGLISH])
    def test_probabilities_sum_to_one(self, data):
        table, _ = build_frequency_table(data)
        assert abs(sum(table.values()) - 1.0) < 1e-9

    def test_empty_input(self):
        table, total = build_frequency_table(b"")
        assert table == {}
        assert total == 0

    def test_counts_keep_first_occurrence_order(self):
        counts, total = count_symbols(b"cabcab")
        assert list(counts) == [ord("c"), ord("a"), ord("b")]
        assert total == 6

    def test_entropy_uniform(self):
        table, _ = build_frequency_table("abcd")
        assert entropy(table) == pytest.approx(2.0)


class TestReadSymbols:

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceNotFound):
            list(read_symbols(tmp_path / "nope.txt"))

    def test_source_not_found_is_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list(read_symbols(tmp_path / "nope.txt"))

    def test_bytes_in_small_chunks(self, tmp_path):
        path = tmp_path / "in.bin"
        path.write_bytes(b"\x00\xffabc")
        assert list(read_symbols(path, BYTES, chunk_size=2)) == [0, 255, 97, 98, 99]

    def test_text_keeps_line_endings(self, tmp_path):
        path = tmp_path / "in.txt"
        path.write_bytes("a\r\nü\n".encode("utf-8"))
        assert "".join(read_symbols(path, TEXT)) == "a\r\nü\n"

    def test_unknown_alphabet(self, tmp_path):
        with pytest.raises(ValueError):
            list(read_symbols(tmp_path / "x", "words"))


class TestHuffmanTree:

    def test_scenario_merge_order(self):
        table, _ = build_frequency_table("aabbbcccc")
        tree = build_huffman_tree(table)
        # {a, b} merge first, then join c
        assert tree.root.left.is_leaf and tree.root.left.symbol == "c"
        assert tree.root.right.symbols == frozenset("ab")
        assert tree.root.right.left.symbol == "a"
        assert tree.root.right.right.symbol == "b"
        assert tree.depth() == 2

    def test_internal_nodes_have_two_children(self):
        table, _ = build_frequency_table(ENGLISH)
        tree = build_huffman_tree(table)
        stack = [tree.root]
        while stack:
            node = stack.pop()
            if not node.is_leaf:
                assert node.left is not None and node.right is not None
                assert node.symbols == node.left.symbols | node.right.symbols
                stack += [node.left, node.right]
        assert len(list(tree.leaves())) == len(table)

    def test_single_symbol_is_single_leaf(self):
        tree = build_huffman_tree({"x": 1.0})
        assert tree.is_single_leaf
        assert tree.depth() == 0

    def test_empty_table(self):
        tree = build_huffman_tree({})
        assert tree.is_empty
        assert tree.symbols == frozenset()

    def test_equal_weights_break_ties_by_insertion(self):
        tree = build_huffman_tree({"x": 1, "y": 1})
        assert tree.root.left.symbol == "x"
        assert tree.root.right.symbol == "y"

    def test_builds_from_raw_counts(self):
        counts, _ = count_symbols("aabbbcccc")
        tree = build_huffman_tree(counts)
        assert tree.root.weight == 9
        assert derive_code_table(tree, counts) == {"c": "0", "a": "10", "b": "11"}


class TestCodeTable:

    def test_scenario_codes(self):
        table, _ = build_frequency_table("aabbbcccc")
        codes = derive_code_table(build_huffman_tree(table), table.keys())
        assert codes == {"c": "0", "a": "10", "b": "11"}

    @pytest.mark.parametrize("data", [
        ENGLISH,
        bytes(range(256)),
        random_bytes(7, 40, 5000),
    ])
    def test_prefix_free(self, data):
        table, _ = build_frequency_table(data)
        codes = derive_code_table(build_huffman_tree(table), table.keys())
        assert len(codes) == len(table)
        assert all(codes.values())
        assert is_prefix_free(codes)

    def test_random_alphabet_gives_many_codes(self):
        data = random_bytes(7, 40, 5000)
        table, _ = build_frequency_table(data)
        codes = derive_code_table(build_huffman_tree(table), table.keys())
        assert len(codes) == 40
        # 40 leaves cannot all fit in 5 levels
        assert max(len(c) for c in codes.values()) >= 6

    @pytest.mark.parametrize("data", [b"abbbbcccccdddd", b"aabbbcccc", ENGLISH.encode()])
    def test_code_model_matches_archive_tree(self, data):
        model = build_code_model(data)
        tree = read_header(io.BytesIO(compress(data))).tree
        assert model.codes == derive_code_table(tree, model.counts)
        assert model.total == len(data)
        assert sum(model.probabilities.values()) == pytest.approx(1.0)

    def test_code_length_within_one_bit_of_entropy(self):
        table, _ = build_frequency_table(ENGLISH)
        codes = derive_code_table(build_huffman_tree(table), table.keys())
        h = entropy(table)
        assert h <= average_code_length(codes, table) < h + 1

    def test_single_leaf_gets_empty_code(self):
        tree = build_huffman_tree({"x": 1.0})
        assert derive_code_table(tree, ["x"]) == {"x": ""}

    def test_unknown_symbol(self):
        table, _ = build_frequency_table("aabbbcccc")
        tree = build_huffman_tree(table)
        with pytest.raises(SymbolNotInTree):
            derive_code_table(tree, ["z"])

    def test_unknown_symbol_on_empty_tree(self):
        with pytest.raises(KeyError):
            derive_code_table(build_huffman_tree({}), ["a"])


class TestWalk:

    @pytest.fixture
    def root(self):
        table, _ = build_frequency_table("aabbbcccc")
        return build_huffman_tree(table).root

    def test_decodes_one_symbol(self, root):
        result = walk(root, "1011")
        assert result.status is WalkStatus.DECODED
        assert result.symbol == "a"
        assert result.consumed == 2

    def test_walk_from_offset(self, root):
        result = walk(root, "1011", 2)
        assert (result.symbol, result.consumed) == ("b", 2)

    def test_needs_more_bits(self, root):
        assert walk(root, "1").status is WalkStatus.NEED_MORE_BITS
        assert walk(root, "10", 2).status is WalkStatus.NEED_MORE_BITS

    def test_invalid_bit(self, root):
        assert walk(root, "x").status is WalkStatus.INVALID
