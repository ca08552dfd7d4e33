"""Regex scanner for markup templates.

Finds text nodes, allow-listed attribute values and string literals inside
``{{ ... }}`` interpolations. Positions are reported against the untouched
buffer and, for inline templates, shifted into host-file coordinates.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from .heuristics import is_markup_user_facing
from .models import FoundString
from .offsets import adjust_location, line_offsets, locate_with_offsets

STYLE_SCRIPT_RE = re.compile(
    r"(<(style|script)\b[^>]*>)([\s\S]*?)(</\2>)", re.IGNORECASE
)
TEXT_NODE_RE = re.compile(r">((?:(?!<).)+)<", re.DOTALL)
INTERPOLATION_SPLIT_RE = re.compile(r"\{\{[\s\S]*?\}\}")
ATTRIBUTE_RE = re.compile(
    r"([a-zA-Z_:][-a-zA-Z0-9_:.]*)\s*=\s*(\"([^\"]*)\"|'([^']*)')", re.DOTALL
)
INTERPOLATION_RE = re.compile(r"\{\{([^}]+)\}\}", re.DOTALL)
EXPR_STRING_RE = re.compile(r"""(['"])(?:\\.|(?!\1)[^\\])*\1""", re.DOTALL)
TRANSLATE_PIPE_RE = re.compile(r"\|\s*translate")
PIPE_ARGUMENT_BEFORE_RE = re.compile(r"\|\s*\w+\s*:\s*$")
PIPE_NAME_BEFORE_RE = re.compile(r"\|\s*$")
DIGITS_ONLY_RE = re.compile(r"^[\d\s]+$")
LEADING_WS_RE = re.compile(r"^\s*")

ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)


@dataclass(frozen=True)
class MarkupOrigin:
    """Host-file coordinates of the first character of a markup buffer."""

    line: int = 1
    column: int = 0


def mask_style_and_script(markup: str) -> str:
    """Blank out ``<style>``/``<script>`` bodies, keeping newlines and length."""

    def repl(match: re.Match[str]) -> str:
        body = re.sub(r"[^\n]", " ", match.group(3))
        return match.group(1) + body + match.group(4)

    return STYLE_SCRIPT_RE.sub(repl, markup)


def decode_entities(text: str) -> str:
    for entity, char in ENTITIES:
        text = text.replace(entity, char)
    return text


def split_static_segments(content: str) -> list[tuple[str, int]]:
    """Split text-node content on ``{{...}}`` and return (segment, offset) pairs."""
    if "{{" not in content:
        return [(content, 0)]
    parts: list[tuple[str, int]] = []
    last = 0
    for match in INTERPOLATION_SPLIT_RE.finditer(content):
        if match.start() > last:
            parts.append((content[last : match.start()], last))
        last = match.end()
    if last < len(content):
        parts.append((content[last:], last))
    return parts


class _Locator:
    def __init__(self, markup: str, origin: MarkupOrigin) -> None:
        self.offsets = line_offsets(markup)
        self.origin = origin

    def __call__(self, index: int) -> tuple[int, int]:
        line, col = locate_with_offsets(self.offsets, index)
        return adjust_location(line, col, self.origin.line, self.origin.column)


def extract_from_markup(
    markup: str,
    file_abs: str,
    file_rel: str,
    min_length: int,
    attribute_names: frozenset[str] | set[str] | list[str],
    origin: MarkupOrigin = MarkupOrigin(),
) -> list[FoundString]:
    found: list[FoundString] = []
    attrs = {name.lower() for name in attribute_names}
    masked = mask_style_and_script(markup)
    position = _Locator(markup, origin)

    def add(index: int, text: str, raw: str, kind) -> None:
        line, col = position(index)
        found.append(
            FoundString(
                file_abs=file_abs,
                file_rel=file_rel,
                line=line,
                column=col,
                text=text,
                raw_text=raw,
                kind=kind,
            )
        )

    for match in TEXT_NODE_RE.finditer(masked):
        raw_content = match.group(1)
        for segment, seg_offset in split_static_segments(raw_content):
            text = decode_entities(segment).strip()
            if not is_markup_user_facing(text, min_length):
                continue
            leading = len(LEADING_WS_RE.match(segment).group(0))
            add(match.start(1) + seg_offset + leading, text, segment.strip(), "text-node")

    for match in ATTRIBUTE_RE.finditer(masked):
        if match.group(1).lower() not in attrs:
            continue
        raw_value = match.group(3) if match.group(3) is not None else match.group(4)
        value = decode_entities(raw_value).strip()
        if not is_markup_user_facing(value, min_length):
            continue
        leading = len(LEADING_WS_RE.match(raw_value).group(0))
        add(match.start(2) + 1 + leading, value, raw_value.strip(), "attribute-value")

    for match in INTERPOLATION_RE.finditer(masked):
        expr = match.group(1)
        if TRANSLATE_PIPE_RE.search(expr):
            continue
        for literal in EXPR_STRING_RE.finditer(expr):
            quoted = literal.group(0)
            text = re.sub(r"\\(['\"])", r"\1", quoted[1:-1])
            if len(text) < min_length or DIGITS_ONLY_RE.match(text):
                continue
            before = expr[: literal.start()]
            # date:'short', currency:'USD' and the like
            if PIPE_ARGUMENT_BEFORE_RE.search(before):
                continue
            if PIPE_NAME_BEFORE_RE.search(before):
                continue
            add(match.start(1) + literal.start(), text, quoted, "interpolation-expression")

    return found


def extract_from_html_file(
    path: Path,
    file_rel: str,
    min_length: int,
    attribute_names: frozenset[str] | set[str] | list[str],
) -> list[FoundString]:
    markup = path.read_text(encoding="utf-8")
    return extract_from_markup(markup, str(path), file_rel, min_length, attribute_names)
