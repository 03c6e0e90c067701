# -*- coding: utf-8 -*-

from typing import Optional

__all__ = ('LineCursor',)

LINE_TERMINATORS = ('\r', '\n')
BLANK_CHARS = (' ', '\t')

class LineCursor:
    """\
    A position over some immutable text, used by the .osu reader.

    The text may be an entire file, or a single line (stream mode);
    either way, the cursor only ever looks at the line it is on.

    End of input counts as a line terminator, as does '\\r', '\\n'
    (and '\\r\\n', which is consumed as a single terminator).
    """
    __slots__ = ('data', 'pos', 'line_num', '_exhausted')

    def __init__(self, data: str, pos: int = 0, line_num: int = 1) -> None:
        self.data = data # readonly
        self.pos = pos
        self.line_num = line_num

        # position at which the last undelimited
        # field was read by `split_next_field()`.
        self._exhausted = -1

    def __repr__(self) -> str:
        return f'<LineCursor line={self.line_num} pos={self.pos}>'

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    @property
    def at_line_end(self) -> bool:
        return self.at_end or self.data[self.pos] in LINE_TERMINATORS

    @property
    def exhausted(self) -> bool:
        """Whether the last field on the line has been split off."""
        return self._exhausted == self.pos

    def peek(self) -> str:
        return self.data[self.pos] if self.pos < len(self.data) else ''

    def take(self) -> str:
        """Return the current char & advance; '' at end of line."""
        if self.at_line_end:
            return ''

        c = self.data[self.pos]
        self.pos += 1
        return c

    def expect(self, c: str) -> bool:
        """Advance past `c` if it's the current char."""
        if self.pos < len(self.data) and self.data[self.pos] == c:
            self.pos += 1
            return True

        return False

    def line_end(self) -> int:
        """Return the position of the current line's terminator."""
        end = self.pos
        while end < len(self.data) and self.data[end] not in LINE_TERMINATORS:
            end += 1

        return end

    def current_line(self) -> str:
        return self.data[self.pos:self.line_end()]

    def advance_to_next_line(self, require_non_blank: bool = False) -> bool:
        """\
        Move to the first char of the next line (or end of input).

        With `require_non_blank`, anything but blanks before
        the terminator is refused, and the cursor is left on it.
        """
        while self.pos < len(self.data):
            c = self.data[self.pos]

            if c in LINE_TERMINATORS:
                self.pos += 1
                if c == '\r':
                    self.expect('\n')

                self.line_num += 1
                return True

            if require_non_blank and c not in BLANK_CHARS:
                return False

            self.pos += 1

        return True

    def trim_trailing_blank(self) -> int:
        """Return the position just past the line's last non-blank char."""
        end = self.pos
        it = self.pos
        while it < len(self.data) and self.data[it] not in LINE_TERMINATORS:
            if self.data[it] not in BLANK_CHARS:
                end = it + 1
            it += 1

        return end

    def is_blank_line(self) -> bool:
        return self.trim_trailing_blank() == self.pos

    def check_prefix(self, prefix: str) -> bool:
        """Advance past `prefix` if the text continues with it."""
        if self.data.startswith(prefix, self.pos):
            self.pos += len(prefix)
            return True

        return False

    def read_value(self) -> str:
        """\
        Return the rest of the line without trailing blanks,
        leaving the cursor on the line's terminator.
        """
        start = self.pos
        end = self.trim_trailing_blank()
        self.pos = self.line_end()
        return self.data[start:end]

    def split_next_field(
        self, delimiter: str, quoted: bool = False,
        end: Optional[int] = None
    ) -> Optional[tuple[int, int]]:
        """\
        Split the next `delimiter`-separated field off the line.

        Returns the field's (start, end) & advances past the delimiter,
        or returns None once the last field has already been taken.
        `end` may narrow the search down to a part of the line.

        With `quoted`, a field beginning with '"' runs until the
        closing quote, regardless of any delimiters within it; the
        quotes are kept as part of the field.
        """
        if self.exhausted:
            return

        bound = self.line_end() if end is None else end
        start = self.pos

        if quoted and self.peek() == '"':
            closing = self.data.find('"', start + 1, bound)
            if closing == -1:
                return

            field_end = closing + 1
            if field_end != bound and self.data[field_end] != delimiter:
                # junk after the closing quote
                return
        else:
            field_end = self.data.find(delimiter, start, bound)
            if field_end == -1:
                field_end = bound

        if field_end < bound:
            # skip the delimiter
            self.pos = field_end + 1
        else:
            self.pos = field_end
            self._exhausted = field_end

        return start, field_end

    def read_field(
        self, delimiter: str = ',',
        quoted: bool = False
    ) -> Optional[str]:
        """Like `split_next_field()`, but return the field's text."""
        if (bounds := self.split_next_field(delimiter, quoted)) is None:
            return

        return self.data[bounds[0]:bounds[1]]

    def read_int(self) -> Optional[int]:
        """Read an optionally signed integer, up to the first non-digit."""
        start = it = self.pos
        if it < len(self.data) and self.data[it] in ('-', '+'):
            it += 1

        digits_start = it
        while it < len(self.data) and '0' <= self.data[it] <= '9':
            it += 1

        if it == digits_start:
            # no digits
            return

        self.pos = it
        return int(self.data[start:it])
