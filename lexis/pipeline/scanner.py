"""Hardcoded string detection over TSX/TypeScript syntax trees."""

import html
import re
from fnmatch import fnmatch
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Optional

import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Node, Parser

from lexis.models.schemas import StringHit, StringHitType

TRANSLATION_FUNCTION = "t"
ALLOWED_ATTRIBUTES = frozenset({"alt", "placeholder", "title", "aria-label"})
NUMERIC_ONLY = re.compile(r"^[0-9\s]+$")
JSX_TEXT_NODES = frozenset({"jsx_text", "html_character_reference"})
JSX_CONTAINERS = frozenset({"jsx_element", "jsx_fragment"})

SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


@lru_cache(maxsize=None)
def _parser_for(grammar: str) -> Parser:
    if grammar == "typescript":
        language = Language(tstypescript.language_typescript())
    else:
        language = Language(tstypescript.language_tsx())
    return Parser(language)


def grammar_for(path: Path) -> str:
    """``.ts`` uses the TypeScript grammar; everything else is parsed as TSX."""
    return "typescript" if path.suffix == ".ts" else "tsx"


def is_translatable(value: str) -> bool:
    return bool(value) and len(value) > 1 and not NUMERIC_ONLY.match(value)


def decode_escape(sequence: str) -> str:
    """Decode one JavaScript escape sequence (``\\n``, ``\\u00e9``, ``\\u{1F600}``...)."""
    body = sequence[1:]
    if not body or body[0] in "\r\n\u2028\u2029":
        return ""  # line continuation
    if body[0] == "u":
        digits = body[2:-1] if body.startswith("u{") else body[1:]
        return chr(int(digits, 16))
    if body[0] == "x":
        return chr(int(body[1:], 16))
    return SIMPLE_ESCAPES.get(body[0], body[0]) if len(body) == 1 else body


def string_value(node: Node) -> str:
    """Cooked value of a ``string`` node."""
    parts = []
    for child in node.named_children:
        text = child.text.decode("utf-8")
        if child.type == "escape_sequence":
            parts.append(decode_escape(text))
        elif child.type == "html_character_reference":
            parts.append(html.unescape(text))
        else:
            parts.append(text)
    return "".join(parts)


def _is_translation_call(node: Node) -> bool:
    if node.type != "call_expression":
        return False
    callee = node.child_by_field_name("function")
    return (
        callee is not None
        and callee.type == "identifier"
        and callee.text.decode("utf-8") == TRANSLATION_FUNCTION
    )


def _attribute_name(node: Node) -> Optional[str]:
    name_node = node.named_children[0] if node.named_children else None
    if name_node is None or name_node.type == "jsx_namespace_name":
        return None
    return name_node.text.decode("utf-8")


class StringHitVisitor:
    """
    Depth-first visitor collecting translatable literals.

    Maintains an explicit ancestor stack instead of parent pointers, plus a count
    of enclosing ``t(...)`` calls so nested literals are skipped at any depth.
    """

    def __init__(self, source: bytes) -> None:
        self.source = source
        self.hits: List[StringHit] = []
        self.ancestors: List[Node] = []
        self.translation_calls = 0

    def visit(self, root: Node) -> List[StringHit]:
        stack: list[tuple[Node, bool]] = [(root, False)]
        while stack:
            node, exiting = stack.pop()
            if exiting:
                self.ancestors.pop()
                if _is_translation_call(node):
                    self.translation_calls -= 1
                continue

            if self.translation_calls == 0:
                self._collect(node)

            if _is_translation_call(node):
                self.translation_calls += 1
            self.ancestors.append(node)
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children))
        return self.hits

    @property
    def parent(self) -> Optional[Node]:
        return self.ancestors[-1] if self.ancestors else None

    def _collect(self, node: Node) -> None:
        if node.type in JSX_TEXT_NODES:
            if self.parent is not None and self.parent.type in JSX_CONTAINERS:
                self._visit_jsx_text(node)
        elif node.type == "jsx_attribute":
            self._visit_attribute(node)
        elif node.type == "string" and self._is_plain_literal():
            self._add(string_value(node), node, StringHitType.STRING_LITERAL)

    def _visit_jsx_text(self, node: Node) -> None:
        """Report a run of text and entity fragments as one decoded value."""
        previous = node.prev_sibling
        if previous is not None and previous.type in JSX_TEXT_NODES:
            return  # reported with the first fragment of the run

        last = node
        while last.next_sibling is not None and last.next_sibling.type in JSX_TEXT_NODES:
            last = last.next_sibling

        raw = self.source[node.start_byte : last.end_byte].decode("utf-8")
        self._add(html.unescape(raw), node, StringHitType.JSX_TEXT)

    def _column(self, node: Node) -> int:
        line_start = self.source.rfind(b"\n", 0, node.start_byte) + 1
        return len(self.source[line_start : node.start_byte].decode("utf-8"))

    def _visit_attribute(self, node: Node) -> None:
        name = _attribute_name(node)
        if name not in ALLOWED_ATTRIBUTES:
            return
        value = node.named_children[-1]
        if value.type != "string":
            return
        self._add(string_value(value), value, StringHitType.JSX_ATTRIBUTE, attribute_name=name)

    def _is_plain_literal(self) -> bool:
        parent = self.parent
        if parent is None:
            return True
        # attribute values are handled by the allow-list; module specifiers and
        # directives ('use client') are not user-facing
        if parent.type in {
            "jsx_attribute",
            "import_statement",
            "export_statement",
            "expression_statement",
            "literal_type",
        }:
            return False
        return True

    def _add(
        self,
        raw: str,
        node: Node,
        hit_type: StringHitType,
        attribute_name: Optional[str] = None,
    ) -> None:
        value = raw.strip()
        if not is_translatable(value):
            return
        self.hits.append(
            StringHit(
                value=value,
                line=node.start_point[0] + 1,
                column=self._column(node),
                type=hit_type,
                attribute_name=attribute_name,
            )
        )


def scan_source(code: str, grammar: str = "tsx") -> Optional[List[StringHit]]:
    """
    Collect string hits from one source file.

    Returns:
        Hits in document order, or None when the source does not parse cleanly
    """
    source = code.encode("utf-8")
    tree = _parser_for(grammar).parse(source)
    if tree.root_node.has_error:
        return None
    return StringHitVisitor(source).visit(tree.root_node)


def collect_source_files(
    repo_dir: Path, source_dirs: Iterable[str], patterns: Iterable[str]
) -> List[Path]:
    """Files under ``source_dirs`` whose name matches any glob in ``patterns``."""
    patterns = list(patterns)
    files: List[Path] = []
    for source_dir in source_dirs:
        root = repo_dir / source_dir
        if not root.is_dir():
            continue
        for path in sorted(root.rglob("*")):
            if path.is_file() and any(fnmatch(path.name, pattern) for pattern in patterns):
                files.append(path)
    return files
