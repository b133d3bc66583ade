import io
from typing import BinaryIO, TextIO, Iterator
from meshproc.errors import TokenError

class TokenStream:
    """Whitespace-delimited tokens read lazily, line by line, from a byte or text stream.

    Byte lines are decoded as latin-1 so that stray non-ASCII header text never
    fails to decode. The stream is left positioned wherever the last line read ended.
    """

    def __init__(self, f: BinaryIO | TextIO) -> None:
        self.f = f
        self.line_number = 0
        self.pending: Iterator[str] = iter(())

    def __iter__(self) -> Iterator[str]:
        while (token := self.next()) is not None:
            yield token

    def read_line(self) -> str | None:
        line = self.f.readline()
        if not line:
            return None
        if isinstance(line, bytes):
            line = line.decode('latin-1')
        self.line_number += 1
        return line

    def next(self) -> str | None:
        while True:
            if (token := next(self.pending, None)) is not None:
                return token
            line = self.read_line()
            if line is None:
                return None
            self.pending = iter(line.split())

    def skip_line(self) -> str:
        """Drop the tokens left on the current line and return them joined back together."""
        rest = ' '.join(self.pending)
        self.pending = iter(())
        return rest

    def expect(self, what: str) -> str:
        token = self.next()
        if token is None:
            raise TokenError(f"Unexpected end of stream at line {self.line_number}, expected {what}")
        return token

    def expect_keyword(self, keyword: str) -> None:
        token = self.expect(f"'{keyword}'")
        if token != keyword:
            raise TokenError(f"Expected '{keyword}' at line {self.line_number}, found '{token}'")

    def read_float(self, what: str) -> float:
        return parse_float(self.expect(what), what, self.line_number)

    def read_count(self, what: str) -> int:
        return parse_count(self.expect(what), what, self.line_number)


# Numeric tokens

def parse_float(token: str, what: str, line_number: int) -> float:
    try:
        return float(token)
    except ValueError as e:
        raise TokenError(f"Invalid number for {what} at line {line_number}: '{token}'") from e

def parse_count(token: str, what: str, line_number: int) -> int:
    value = parse_float(token, what, line_number)
    if not value.is_integer() or value < 0:
        raise TokenError(f"Invalid count for {what} at line {line_number}: '{token}'")
    return int(value)


# Stream helpers

def measure_size(f: BinaryIO | TextIO) -> int:
    original_pos = f.tell()
    size = f.seek(0, io.SEEK_END)
    f.seek(original_pos)
    return size
