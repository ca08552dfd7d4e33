"""Typed view over a tree-sitter TypeScript parse.

Each parse is flattened once into a ``NodeArena``: every named node gets a
stable integer id, a ``NodeKind`` tag from a closed set, character offsets
and a (line, column) start. Visitors receive a node together with an
immutable ``VisitContext`` holding its ancestor chain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import tree_sitter_typescript
from tree_sitter import Language, Parser, Tree

from .offsets import ByteToChar, line_offsets, locate_with_offsets

TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())
TSX = Language(tree_sitter_typescript.language_tsx())


class ParseFailure(Exception):
    pass


class NodeKind(Enum):
    STRING = "string"
    TEMPLATE = "template"
    TEMPLATE_SUBSTITUTION = "template_substitution"
    CALL = "call"
    NEW = "new"
    MEMBER = "member"
    SUBSCRIPT = "subscript"
    IDENTIFIER = "identifier"
    PROPERTY = "property"
    THIS = "this"
    DECORATOR = "decorator"
    OBJECT = "object"
    PAIR = "pair"
    ARGUMENTS = "arguments"
    IMPORT = "import"
    IMPORT_STATEMENT = "import_statement"
    EXPORT_STATEMENT = "export_statement"
    SPECIFIER = "specifier"
    IF = "if"
    FOR = "for"
    WHILE = "while"
    DO = "do"
    SWITCH = "switch"
    TERNARY = "ternary"
    THROW = "throw"
    TYPE = "type"
    OTHER = "other"


KIND_BY_TYPE: dict[str, NodeKind] = {
    "string": NodeKind.STRING,
    "template_string": NodeKind.TEMPLATE,
    "template_substitution": NodeKind.TEMPLATE_SUBSTITUTION,
    "call_expression": NodeKind.CALL,
    "new_expression": NodeKind.NEW,
    "member_expression": NodeKind.MEMBER,
    "subscript_expression": NodeKind.SUBSCRIPT,
    "identifier": NodeKind.IDENTIFIER,
    "property_identifier": NodeKind.PROPERTY,
    "private_property_identifier": NodeKind.PROPERTY,
    "this": NodeKind.THIS,
    "decorator": NodeKind.DECORATOR,
    "object": NodeKind.OBJECT,
    "pair": NodeKind.PAIR,
    "arguments": NodeKind.ARGUMENTS,
    "import": NodeKind.IMPORT,
    "import_statement": NodeKind.IMPORT_STATEMENT,
    "export_statement": NodeKind.EXPORT_STATEMENT,
    "import_specifier": NodeKind.SPECIFIER,
    "export_specifier": NodeKind.SPECIFIER,
    "if_statement": NodeKind.IF,
    "for_statement": NodeKind.FOR,
    "while_statement": NodeKind.WHILE,
    "do_statement": NodeKind.DO,
    "switch_statement": NodeKind.SWITCH,
    "ternary_expression": NodeKind.TERNARY,
    "throw_statement": NodeKind.THROW,
    "type_annotation": NodeKind.TYPE,
    "literal_type": NodeKind.TYPE,
    "property_signature": NodeKind.TYPE,
    "interface_declaration": NodeKind.TYPE,
    "type_alias_declaration": NodeKind.TYPE,
    "type_arguments": NodeKind.TYPE,
}

# Field holding the tested expression of each control-flow construct.
CONDITION_FIELDS: dict[NodeKind, tuple[str, ...]] = {
    NodeKind.IF: ("condition",),
    NodeKind.FOR: ("initializer", "condition", "increment"),
    NodeKind.WHILE: ("condition",),
    NodeKind.DO: ("condition",),
    NodeKind.SWITCH: ("value",),
    NodeKind.TERNARY: ("condition",),
}


@dataclass(eq=False)
class SyntaxNode:
    id: int
    kind: NodeKind
    type: str
    start: int
    end: int
    line: int
    column: int
    parent: int | None
    children: list[int] = field(default_factory=list)
    fields: dict[str, int] = field(default_factory=dict)


class NodeArena:
    """All named nodes of one parsed file, addressed by integer id."""

    def __init__(self, source: str, tree: Tree) -> None:
        self.source = source
        self.nodes: list[SyntaxNode] = []
        self._to_char = ByteToChar(source)
        self._offsets = line_offsets(source)
        self._build(tree)

    def _add(self, ts_node, parent: int | None, field_name: str | None) -> int:
        start = self._to_char(ts_node.start_byte)
        end = self._to_char(ts_node.end_byte)
        line, column = locate_with_offsets(self._offsets, start)
        node = SyntaxNode(
            id=len(self.nodes),
            kind=KIND_BY_TYPE.get(ts_node.type, NodeKind.OTHER),
            type=ts_node.type,
            start=start,
            end=end,
            line=line,
            column=column,
            parent=parent,
        )
        self.nodes.append(node)
        if parent is not None:
            owner = self.nodes[parent]
            owner.children.append(node.id)
            if field_name and field_name not in owner.fields:
                owner.fields[field_name] = node.id
        return node.id

    def _build(self, tree: Tree) -> None:
        cursor = tree.walk()
        parents: list[int] = []
        while True:
            ts_node = cursor.node
            if ts_node.is_named:
                node_id = self._add(
                    ts_node, parents[-1] if parents else None, cursor.field_name
                )
                if cursor.goto_first_child():
                    parents.append(node_id)
                    continue
            while not cursor.goto_next_sibling():
                if not cursor.goto_parent():
                    return
                parents.pop()

    @property
    def root(self) -> SyntaxNode:
        return self.nodes[0]

    def __getitem__(self, node_id: int) -> SyntaxNode:
        return self.nodes[node_id]

    def text(self, node: SyntaxNode) -> str:
        return self.source[node.start : node.end]

    def field(self, node: SyntaxNode, name: str) -> SyntaxNode | None:
        child = node.fields.get(name)
        return self.nodes[child] if child is not None else None

    def children(self, node: SyntaxNode, kind: NodeKind | None = None) -> list[SyntaxNode]:
        out = [self.nodes[c] for c in node.children]
        if kind is not None:
            out = [c for c in out if c.kind is kind]
        return out

    def parent(self, node: SyntaxNode) -> SyntaxNode | None:
        return self.nodes[node.parent] if node.parent is not None else None

    def ancestors(self, node: SyntaxNode) -> tuple[SyntaxNode, ...]:
        chain: list[SyntaxNode] = []
        current = self.parent(node)
        while current is not None:
            chain.append(current)
            current = self.parent(current)
        chain.reverse()
        return tuple(chain)


@dataclass(frozen=True)
class VisitContext:
    """Ancestor chain of the node being visited, outermost first."""

    arena: NodeArena
    ancestors: tuple[SyntaxNode, ...]

    @property
    def parent(self) -> SyntaxNode | None:
        return self.ancestors[-1] if self.ancestors else None

    def nearest(self, *kinds: NodeKind) -> SyntaxNode | None:
        for node in reversed(self.ancestors):
            if node.kind in kinds:
                return node
        return None

    def child_on_path(self, ancestor: SyntaxNode, node: SyntaxNode) -> SyntaxNode:
        """The direct child of ``ancestor`` that contains ``node``."""
        chain = (*self.ancestors, node)
        idx = next(i for i, item in enumerate(chain) if item is ancestor)
        return chain[idx + 1]

    def within_field(self, ancestor: SyntaxNode, names: tuple[str, ...], node: SyntaxNode) -> bool:
        on_path = self.child_on_path(ancestor, node).id
        return any(ancestor.fields.get(name) == on_path for name in names)


def language_for(path_suffix: str) -> Language:
    return TSX if path_suffix.lower() in {".tsx", ".jsx"} else TYPESCRIPT


def parse_source(source: str, suffix: str = ".ts") -> NodeArena:
    parser = Parser(language_for(suffix))
    tree = parser.parse(source.encode("utf-8"))
    if tree.root_node.has_error:
        raise ParseFailure("syntax error")
    return NodeArena(source, tree)


def walk(arena: NodeArena):
    """Yield ``(node, context)`` for every node in document order."""
    stack: list[tuple[SyntaxNode, tuple[SyntaxNode, ...]]] = [(arena.root, ())]
    while stack:
        node, ancestors = stack.pop()
        yield node, VisitContext(arena, ancestors)
        inner = (*ancestors, node)
        for child in reversed(node.children):
            stack.append((arena[child], inner))


JS_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


def unescape_js(body: str) -> str:
    out: list[str] = []
    i = 0
    n = len(body)
    while i < n:
        ch = body[i]
        if ch != "\\" or i + 1 >= n:
            out.append(ch)
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in JS_ESCAPES:
            out.append(JS_ESCAPES[nxt])
            i += 2
        elif nxt == "x" and len(body[i + 2 : i + 4]) == 2 and _is_hex(body[i + 2 : i + 4]):
            out.append(chr(int(body[i + 2 : i + 4], 16)))
            i += 4
        elif nxt == "u" and body[i + 2 : i + 3] == "{":
            close = body.find("}", i + 3)
            if close > 0 and _is_hex(body[i + 3 : close]):
                out.append(chr(int(body[i + 3 : close], 16)))
                i = close + 1
            else:
                out.append(nxt)
                i += 2
        elif nxt == "u" and _is_hex(body[i + 2 : i + 6]) and len(body[i + 2 : i + 6]) == 4:
            out.append(chr(int(body[i + 2 : i + 6], 16)))
            i += 6
        elif nxt == "\r" and body[i + 2 : i + 3] == "\n":
            i += 3
        elif nxt == "\n":
            i += 2
        else:
            out.append(nxt)
            i += 2
    return "".join(out)


def _is_hex(text: str) -> bool:
    return bool(text) and all(c in "0123456789abcdefABCDEF" for c in text)


def string_value(arena: NodeArena, node: SyntaxNode) -> str:
    """Cooked value of a ``string`` node or a substitution-free template."""
    raw = arena.text(node)
    return unescape_js(raw[1:-1])


def template_static_text(arena: NodeArena, node: SyntaxNode) -> str:
    """Concatenated static chunks of a template literal, substitutions dropped."""
    raw = arena.text(node)
    pieces: list[str] = []
    cursor = node.start + 1
    for child in arena.children(node, NodeKind.TEMPLATE_SUBSTITUTION):
        pieces.append(raw[cursor - node.start : child.start - node.start])
        cursor = child.end
    pieces.append(raw[cursor - node.start : len(raw) - 1])
    return unescape_js("".join(pieces))
