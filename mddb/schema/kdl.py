"""Reader for the KDL subset used by schema files.

Supported: nodes with string or bare-identifier names, positional arguments,
``key=value`` properties, ``{ ... }`` children, ``;`` and newline
terminators, ``\\`` line continuations, ``//`` and ``/* */`` comments,
``/-`` slash-dash comments, quoted and raw strings (``r"..."``, ``#"..."#``),
integers, decimals and the keywords ``#true``, ``#false``, ``#null`` (the bare
``true``/``false``/``null`` spellings are accepted too). Type annotations
``(ann)`` are read and ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from ..errors import SchemaParseError

_INT = re.compile(r"[+-]?[0-9][0-9_]*")
_HEX = re.compile(r"[+-]?0x[0-9a-fA-F_]+")
_FLOAT = re.compile(r"[+-]?[0-9][0-9_]*(\.[0-9][0-9_]*)?([eE][+-]?[0-9]+)?")

_NON_IDENT = set('\\/(){}<>;[]=,"#') | set(" \t\r\n")

_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "/": "/",
    "b": "\b",
    "f": "\f",
    "s": " ",
}

_KEYWORDS = {"true": True, "false": False, "null": None}


@dataclass
class KdlNode:
    name: str
    args: list[Any] = field(default_factory=list)
    props: dict[str, Any] = field(default_factory=dict)
    children: list["KdlNode"] = field(default_factory=list)
    line: int = 0
    column: int = 0

    def arg(self, index: int = 0) -> Any:
        return self.args[index] if index < len(self.args) else None


class _Reader:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.line = 1
        self.column = 1

    # Low-level cursor

    def peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.text[i] if i < len(self.text) else ""

    def startswith(self, s: str) -> bool:
        return self.text.startswith(s, self.pos)

    def advance(self, n: int = 1) -> str:
        chunk = self.text[self.pos:self.pos + n]
        for ch in chunk:
            if ch == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        self.pos += len(chunk)
        return chunk

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def error(self, message: str, line: int | None = None, column: int | None = None) -> SchemaParseError:
        return SchemaParseError(message, line or self.line, column or self.column)

    # Trivia

    def skip_block_comment(self) -> None:
        line, column = self.line, self.column
        self.advance(2)
        depth = 1
        while depth:
            if self.at_end():
                raise self.error("unterminated block comment", line, column)
            if self.startswith("/*"):
                self.advance(2)
                depth += 1
            elif self.startswith("*/"):
                self.advance(2)
                depth -= 1
            else:
                self.advance()

    def skip_line_comment(self) -> None:
        while not self.at_end() and self.peek() != "\n":
            self.advance()

    def skip_inline_space(self) -> None:
        """Skip spaces, block comments and line continuations, but not newlines."""
        while not self.at_end():
            ch = self.peek()
            if ch in " \t":
                self.advance()
            elif self.startswith("/*"):
                self.skip_block_comment()
            elif ch == "\\":
                self.advance()
                self.skip_inline_space()
                if self.startswith("//"):
                    self.skip_line_comment()
                if self.peek() == "\r":
                    self.advance()
                if self.peek() != "\n":
                    raise self.error("expected newline after line continuation")
                self.advance()
            else:
                return

    def skip_node_space(self) -> None:
        """Skip everything that may separate nodes, including terminators."""
        while not self.at_end():
            ch = self.peek()
            if ch in " \t\r\n;":
                self.advance()
            elif self.startswith("//"):
                self.skip_line_comment()
            elif self.startswith("/*"):
                self.skip_block_comment()
            else:
                return

    # Tokens

    def read_string(self) -> str:
        line, column = self.line, self.column
        self.advance()  # opening quote
        out: list[str] = []
        while True:
            if self.at_end():
                raise self.error("unterminated string", line, column)
            ch = self.advance()
            if ch == '"':
                return "".join(out)
            if ch != "\\":
                out.append(ch)
                continue
            esc = self.advance()
            if esc in _ESCAPES:
                out.append(_ESCAPES[esc])
            elif esc == "u":
                if self.peek() != "{":
                    raise self.error("invalid unicode escape")
                self.advance()
                digits = ""
                while self.peek() and self.peek() != "}":
                    digits += self.advance()
                self.advance()
                try:
                    out.append(chr(int(digits, 16)))
                except ValueError:
                    raise self.error(f"invalid unicode escape: \\u{{{digits}}}") from None
            elif esc in " \t\r\n":
                # escaped whitespace is discarded
                while self.peek() and self.peek() in " \t\r\n":
                    self.advance()
            else:
                raise self.error(f"invalid escape sequence: \\{esc}")

    def read_raw_string(self) -> str:
        line, column = self.line, self.column
        if self.peek() == "r":
            self.advance()
        hashes = 0
        while self.peek() == "#":
            self.advance()
            hashes += 1
        if self.peek() != '"':
            raise self.error("expected '\"' in raw string", line, column)
        self.advance()
        closing = '"' + "#" * hashes
        end = self.text.find(closing, self.pos)
        if end == -1:
            raise self.error("unterminated raw string", line, column)
        value = self.text[self.pos:end]
        self.advance(end - self.pos + len(closing))
        return value

    def is_raw_string_start(self) -> bool:
        if self.peek() == "r" and self.peek(1) in ('"', "#"):
            i = 1
            while self.peek(i) == "#":
                i += 1
            return self.peek(i) == '"'
        if self.peek() == "#":
            i = 0
            while self.peek(i) == "#":
                i += 1
            return self.peek(i) == '"'
        return False

    def read_bare(self) -> str:
        start = self.pos
        while not self.at_end() and self.peek() not in _NON_IDENT:
            self.advance()
        return self.text[start:self.pos]

    def read_string_like(self) -> str | None:
        """A name: quoted string, raw string or bare identifier (None if none here)."""
        if self.peek() == '"':
            return self.read_string()
        if self.is_raw_string_start():
            return self.read_raw_string()
        word = self.read_bare()
        return word or None

    def read_value(self) -> Any:
        line, column = self.line, self.column
        if self.peek() == "(":
            self.skip_annotation()
        if self.peek() == '"':
            return self.read_string()
        if self.is_raw_string_start():
            return self.read_raw_string()
        if self.peek() == "#":
            self.advance()
            word = self.read_bare()
            if word in _KEYWORDS:
                return _KEYWORDS[word]
            if word in ("inf", "-inf", "nan"):
                return float(word)
            raise self.error(f"unknown keyword: #{word}", line, column)
        word = self.read_bare()
        if not word:
            raise self.error(f"unexpected character {self.peek()!r}", line, column)
        return self.classify(word, line, column)

    def classify(self, word: str, line: int, column: int) -> Any:
        if word in _KEYWORDS:
            return _KEYWORDS[word]
        if _HEX.fullmatch(word):
            return int(word.replace("_", ""), 16)
        if _INT.fullmatch(word):
            return int(word.replace("_", ""))
        if _FLOAT.fullmatch(word):
            return float(word.replace("_", ""))
        if word[0].isdigit() or (word[0] in "+-" and word[1:2].isdigit()):
            raise self.error(f"invalid number: {word}", line, column)
        return word

    def skip_annotation(self) -> None:
        line, column = self.line, self.column
        end = self.text.find(")", self.pos)
        if end == -1:
            raise self.error("unterminated type annotation", line, column)
        self.advance(end - self.pos + 1)

    # Grammar

    def parse_nodes(self, nested: bool) -> list[KdlNode]:
        nodes: list[KdlNode] = []
        open_line, open_column = self.line, self.column
        while True:
            self.skip_node_space()
            if self.at_end():
                if nested:
                    raise self.error("unclosed '{'", open_line, open_column)
                return nodes
            if self.peek() == "}":
                if not nested:
                    raise self.error("unexpected '}'")
                self.advance()
                return nodes
            if self.startswith("/-"):
                self.advance(2)
                self.skip_inline_space()
                self.parse_node()
                continue
            nodes.append(self.parse_node())

    def parse_node(self) -> KdlNode:
        if self.peek() == "(":
            self.skip_annotation()
        line, column = self.line, self.column
        name = self.read_string_like()
        if name is None:
            raise self.error(f"expected node name, found {self.peek()!r}")
        node = KdlNode(name=name, line=line, column=column)

        while True:
            self.skip_inline_space()
            ch = self.peek()
            if ch == "" or ch == "\n" or ch == ";" or ch == "\r":
                return node
            if self.startswith("//"):
                self.skip_line_comment()
                return node
            if ch == "}":
                return node
            if ch == "{":
                self.advance()
                node.children.extend(self.parse_nodes(nested=True))
                continue
            discard = False
            if self.startswith("/-"):
                self.advance(2)
                self.skip_inline_space()
                discard = True
                if self.peek() == "{":
                    self.advance()
                    self.parse_nodes(nested=True)
                    continue
            self.parse_entry(node, discard)

    def parse_entry(self, node: KdlNode, discard: bool) -> None:
        line, column = self.line, self.column
        if self.peek() == "(":
            self.skip_annotation()
        if self.peek() == '"' or self.is_raw_string_start():
            key_or_value: Any = self.read_string_like()
            is_quoted = True
        else:
            key_or_value = None
            is_quoted = False

        if is_quoted:
            if self.peek() == "=":
                self.advance()
                value = self.read_value()
                if not discard:
                    node.props[key_or_value] = value
            elif not discard:
                node.args.append(key_or_value)
            return

        if self.peek() == "#":
            value = self.read_value()
            if not discard:
                node.args.append(value)
            return

        word = self.read_bare()
        if not word:
            raise self.error(f"unexpected character {self.peek()!r}", line, column)
        if self.peek() == "=":
            self.advance()
            value = self.read_value()
            if not discard:
                node.props[word] = value
            return
        value = self.classify(word, line, column)
        if not discard:
            node.args.append(value)


def parse_kdl(text: str) -> list[KdlNode]:
    """Parse a KDL document into its top-level nodes."""
    if text.startswith("\ufeff"):
        text = text[1:]
    return _Reader(text).parse_nodes(nested=False)
