class HuffmanError(Exception): # base class for every archiver failure
    pass


class SourceNotFound(HuffmanError, FileNotFoundError):
    def __init__(self, path):
        super().__init__(f"input file does not exist: {path}")
        self.filename = str(path)


class SymbolNotInTree(HuffmanError, KeyError):
    def __init__(self, symbol):
        super().__init__(symbol)
        self.symbol = symbol

    def __str__(self):
        return f"symbol {self.symbol!r} is not a leaf of the Huffman tree"


class IncompletePartialSymbol(HuffmanError):
    """Raised when the bitstream ends in the middle of a code.

    The decoder expects this for the zero padding of the last byte and
    drops those bits, so it never reaches the caller.
    """

    def __init__(self, pending_bits: int):
        super().__init__(f"{pending_bits} trailing bits do not form a complete code")
        self.pending_bits = pending_bits


class ArchiveFormatError(HuffmanError, ValueError):
    pass
