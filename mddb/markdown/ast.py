"""Markdown AST helpers built on markdown-it-py.

The syntax tree is only used to *locate* things: headings, tables, lists,
fences and links. Every region is reported as a ``[start, end)`` offset pair
into the original body so that callers can splice text in place instead of
re-rendering.

markdown-it reports block positions as 0-based ``[first_line, end_line)``
pairs in ``node.map``; offsets are derived by counting newlines in the body.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Iterator

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from .table import Table

DIAGRAM_LANGUAGES = ("mermaid", "d2", "plantuml", "graphviz", "dot")


@lru_cache(maxsize=1)
def _parser() -> MarkdownIt:
    return MarkdownIt("commonmark").enable("table")


def parse(body: str) -> SyntaxTreeNode:
    """Parse a Markdown body into a syntax tree (root node)."""
    return SyntaxTreeNode(_parser().parse(body))


def iter_nodes(root: SyntaxTreeNode, node_type: str) -> Iterator[SyntaxTreeNode]:
    """Depth-first, document-order walk yielding nodes of one type."""
    for node in root.walk():
        if node.type == node_type:
            yield node


def line_start_offset(body: str, line: int) -> int:
    """Offset of the first character of 0-based ``line``; ``len(body)`` past the end."""
    offset = 0
    for _ in range(line):
        nl = body.find("\n", offset)
        if nl == -1:
            return len(body)
        offset = nl + 1
    return offset


def inline_text(node: SyntaxTreeNode) -> str:
    """Plain-text rendering of a node's inline content.

    Text and code spans are taken verbatim, soft and hard breaks become a
    single space, and emphasis or link wrappers contribute their children.
    """
    parts: list[str] = []
    for child in node.walk(include_self=False):
        if child.type in ("text", "code_inline"):
            parts.append(child.content)
        elif child.type in ("softbreak", "hardbreak"):
            parts.append(" ")
    return "".join(parts)


# Headings


def find_headings(root: SyntaxTreeNode, level: int | None = None) -> list[SyntaxTreeNode]:
    return [
        node
        for node in iter_nodes(root, "heading")
        if level is None or heading_level(node) == level
    ]


def find_heading_by_text(root: SyntaxTreeNode, text: str) -> SyntaxTreeNode | None:
    """First heading whose plain text matches ``text`` (trimmed, case-insensitive)."""
    wanted = text.strip().lower()
    for node in iter_nodes(root, "heading"):
        if inline_text(node).strip().lower() == wanted:
            return node
    return None


def heading_level(node: SyntaxTreeNode) -> int:
    return int(node.tag[1])


def heading_text(node: SyntaxTreeNode) -> str:
    return inline_text(node).strip()


def section_byte_range(heading: SyntaxTreeNode, body: str) -> tuple[int, int]:
    """[start, end) of the section opened by ``heading``.

    The section runs to the next sibling heading of the same or a higher
    rank, or to the end of the body.
    """
    start = line_start_offset(body, heading.map[0])
    level = heading_level(heading)
    end = len(body)
    sibling = heading.next_sibling
    while sibling is not None:
        if sibling.type == "heading" and heading_level(sibling) <= level:
            end = line_start_offset(body, sibling.map[0])
            break
        sibling = sibling.next_sibling
    return start, end


def section_content_byte_range(heading: SyntaxTreeNode, body: str) -> tuple[int, int]:
    """Like :func:`section_byte_range` but starting after the heading line."""
    start, end = section_byte_range(heading, body)
    nl = body.find("\n", start, end)
    content_start = nl + 1 if nl != -1 else end
    return content_start, end


# Tables


def find_tables(root: SyntaxTreeNode) -> list[SyntaxTreeNode]:
    return list(iter_nodes(root, "table"))


def table_byte_range(table: SyntaxTreeNode, body: str) -> tuple[int, int]:
    """[start, end) covering every table line, including the last newline."""
    first, last = table.map
    return line_start_offset(body, first), line_start_offset(body, last)


def parse_table_node(table: SyntaxTreeNode) -> Table:
    headers: list[str] = []
    rows: list[list[str]] = []
    for row in iter_nodes(table, "tr"):
        cells = [inline_text(cell).strip() for cell in row.children]
        if row.parent is not None and row.parent.type == "thead" and not headers:
            headers = cells
        else:
            rows.append(cells)
    return Table(headers, rows)


def parse_tables(text: str) -> list[Table]:
    return [parse_table_node(t) for t in find_tables(parse(text))]


# Other blocks


def count_paragraphs(root: SyntaxTreeNode) -> int:
    return sum(1 for _ in iter_nodes(root, "paragraph"))


def find_lists(root: SyntaxTreeNode) -> list[SyntaxTreeNode]:
    return [
        node
        for node in root.walk()
        if node.type in ("bullet_list", "ordered_list")
    ]


def list_item_count(node: SyntaxTreeNode) -> int:
    return sum(1 for child in node.children if child.type == "list_item")


def find_code_blocks(root: SyntaxTreeNode) -> list[tuple[str, str]]:
    """(info language, content) for every fenced or indented code block."""
    blocks = []
    for node in root.walk():
        if node.type == "fence":
            lang = node.info.strip().split(maxsplit=1)[0] if node.info.strip() else ""
            blocks.append((lang, node.content))
        elif node.type == "code_block":
            blocks.append(("", node.content))
    return blocks


def has_diagram(root: SyntaxTreeNode, language: str | None = None) -> bool:
    for lang, _ in find_code_blocks(root):
        lang = lang.lower()
        if language is not None:
            if lang == language:
                return True
        elif lang in DIAGRAM_LANGUAGES:
            return True
    return False


def block_texts(root: SyntaxTreeNode) -> list[str]:
    """Plain text of each top-level block, skipping blocks that render empty."""
    texts = []
    for node in root.children:
        if node.type in ("fence", "code_block"):
            text = node.content.rstrip("\n")
        elif node.type == "html_block":
            text = node.content.strip()
        else:
            text = _block_text(node)
        if text:
            texts.append(text)
    return texts


def _block_text(node: SyntaxTreeNode) -> str:
    if node.type == "inline":
        return inline_text(node)
    if node.type == "table":
        table = parse_table_node(node)
        return "\n".join(" | ".join(r) for r in [table.headers, *table.rows])
    pieces = [_block_text(child) for child in node.children]
    if node.type in ("bullet_list", "ordered_list", "blockquote", "list_item"):
        return "\n".join(p for p in pieces if p)
    return "".join(pieces)


# Links


def extract_links(body: str) -> list[str]:
    """URLs of every inline link in ``body``, in document order."""
    return [
        node.attrs.get("href", "")
        for node in iter_nodes(parse(body), "link")
        if node.attrs.get("href")
    ]
