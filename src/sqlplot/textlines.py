"""Line buffer for documents processed line by line."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import IO, Iterable, Iterator

logger = logging.getLogger(__name__)

BLANKS = " \t"


def split_lines(text: str) -> list[str]:
    """Split text into lines the way a line reader would.

    A trailing newline does not produce an empty last line.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


@dataclass
class CommentBlock:
    """A logical command assembled from one or more comment lines."""

    text: str
    start: int
    indent: int
    margin: str


class TextLines:
    """Ordered, randomly indexable and mutable sequence of text lines."""

    def __init__(self, lines: Iterable[str] | None = None, comment_char: str = "%") -> None:
        self._lines: list[str] = list(lines) if lines is not None else []
        self.comment_char = comment_char

    @classmethod
    def from_text(cls, text: str, comment_char: str = "%") -> TextLines:
        """Create a buffer from a complete document string."""
        return cls(split_lines(text), comment_char)

    def __len__(self) -> int:
        return len(self._lines)

    def __getitem__(self, index: int) -> str:
        return self._lines[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self._lines)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TextLines):
            return self._lines == other._lines
        if isinstance(other, list):
            return self._lines == other
        return NotImplemented

    def copy(self) -> TextLines:
        """Return an independent copy of this buffer."""
        return TextLines(self._lines, self.comment_char)

    @property
    def lines(self) -> list[str]:
        """Return a copy of the lines."""
        return list(self._lines)

    def text(self) -> str:
        """Return the document as a string, each line newline-terminated."""
        return "".join(line + "\n" for line in self._lines)

    # -- stream I/O --

    def read_stream(self, stream: IO[str]) -> None:
        """Replace the buffer contents with all lines read from stream."""
        self._lines = split_lines(stream.read())

    def write_stream(self, stream: IO[str]) -> None:
        """Write all lines to stream."""
        for line in self._lines:
            stream.write(line)
            stream.write("\n")

    # -- mutation --

    def replace(
        self,
        begin: int,
        end: int,
        content: str | Iterable[str],
        indent: str = "",
        desc: str = "",
    ) -> int:
        """Replace lines [begin, end) with content, prefixing each new line with indent.

        Returns the change in line count. Callers must re-derive any line
        index at or after `end` from this delta.
        """
        if not 0 <= begin <= end <= len(self._lines):
            raise IndexError(f"Invalid line span [{begin},{end}) for {len(self._lines)} lines")

        new_lines = split_lines(content) if isinstance(content, str) else list(content)
        if indent:
            new_lines = [indent + line for line in new_lines]

        if begin == end:
            logger.debug("Inserting %s at line %d", desc, begin)
        else:
            logger.debug("Replace lines [%d,%d) with %s", begin, end, desc)

        self._lines[begin:end] = new_lines
        return len(new_lines) - (end - begin)

    # -- comment scanning --

    def comment_indent(self, line: int | str, rep: int = 1) -> int:
        """Return the column of the comment marker, or -1 if line is no comment.

        With rep > 1 the marker must appear rep times in a row.
        """
        text = self._lines[line] if isinstance(line, int) else line
        i = 0
        while i < len(text) and text[i] in BLANKS:
            i += 1
        if text[i:i + rep] != self.comment_char * rep:
            return -1
        return i

    def scan_for_comment(self, start: int, prefix: str) -> int:
        """Find the next comment line from start and check its prefix.

        Returns the line index if the first comment line found begins with
        prefix (after trimming), otherwise -1.
        """
        ln = start
        while ln < len(self._lines) and self.comment_indent(ln) < 0:
            ln += 1

        if ln >= len(self._lines):
            return -1

        comment = self._lines[ln][self.comment_indent(ln) + 1:].strip(BLANKS)
        return ln if comment.startswith(prefix) else -1

    def collect_comment(self, start: int) -> tuple[CommentBlock | None, int]:
        """Collect the aligned comment block beginning at line start.

        Returns (block, consumed) where consumed is at least one. A doubled
        comment marker on the first line starts a multi-line command: the
        following lines are absorbed while they carry the doubled marker at
        the same indentation.
        """
        indent = self.comment_indent(start)
        if indent < 0:
            return None, 1

        line = self._lines[start]
        cmd = line[indent + 1:]
        consumed = 1

        if cmd.startswith(self.comment_char):
            cmd = cmd[1:]
            ln = start + 1
            while ln < len(self._lines) and self.comment_indent(ln, rep=2) == indent:
                cmd += self._lines[ln][indent + 2:]
                ln += 1
            consumed = ln - start

        block = CommentBlock(
            text=cmd.strip(BLANKS),
            start=start,
            indent=indent,
            margin=line[:indent],
        )
        return block, consumed
