"""Undo key references: find translate-pipe/call syntax and restore the literal text.

Only the base locale files are needed. A match becomes a ``ReversalMatch``
carrying the exact span found during the scan; applying it checks the span is
still present before substituting.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from .locale_store import flatten_tree, normalize_locale_tree, read_locale_file
from .models import LocaleFileError
from .offsets import abs_pos, line_offsets, locate_with_offsets
from .scaffolding import cleanup_translate_imports
from .scan import should_exclude

logger = logging.getLogger(__name__)

ReferenceKind = Literal["interpolation", "bound_attr", "interp_attr", "directive", "ts_call"]

SOURCE_SUFFIXES = {".ts", ".tsx", ".js", ".jsx", ".html"}


@dataclass(frozen=True)
class ReversePattern:
    regex: re.Pattern[str]
    kind: ReferenceKind
    key_group: int
    attr_group: int | None = None


REVERSE_PATTERNS: tuple[ReversePattern, ...] = (
    # [attr]="'KEY' | translate"
    ReversePattern(
        re.compile(
            r"""\[([a-zA-Z0-9-]+)\]\s*=\s*(['"])\s*(['"])([^'"`]+)\3\s*\|\s*translate(?:\s*:\s*(?:(?!\2).)+)?\s*\2""",
            re.DOTALL,
        ),
        "bound_attr",
        4,
        1,
    ),
    # attr="{{ 'KEY' | translate }}"
    ReversePattern(
        re.compile(
            r"""\b([a-zA-Z0-9-]+)\s*=\s*(['"])\s*\{\{\s*(['"])([^'"`]+)\3\s*\|\s*translate(?:\s*:\s*[^}]+)?\s*\}\}\s*\2""",
            re.DOTALL,
        ),
        "interp_attr",
        4,
        1,
    ),
    # {{ 'KEY' | translate }}
    ReversePattern(
        re.compile(
            r"""\{\{\s*['"`]([\s\S]*?)['"`]\s*\|\s*translate(?:\s*:\s*[^}]+)?\s*\}\}"""
        ),
        "interpolation",
        1,
    ),
    # [translate]="'KEY'"
    ReversePattern(
        re.compile(r"""\[translate\]\s*=\s*(['"])\s*(['"])([^'"`]+)\2\s*\1""", re.DOTALL),
        "directive",
        3,
    ),
    # translate="KEY"
    ReversePattern(
        re.compile(r"""\btranslate\s*=\s*(['"])([^'"`]+)\1""", re.DOTALL),
        "directive",
        2,
    ),
    ReversePattern(
        re.compile(r"""\bi18n\s*\(\s*['"`]([^'"`]+)['"`]\s*\)""", re.DOTALL),
        "ts_call",
        1,
    ),
    ReversePattern(
        re.compile(r"""\{\{\s*['"`]([^'"`]+)['"`]\s*\|\s*i18n(?:Pipe)?\s*\}\}""", re.DOTALL),
        "interpolation",
        1,
    ),
    # this.translate.instant('KEY'), translateService.get('KEY')
    ReversePattern(
        re.compile(
            r"""(?:\bthis\.\w+|\b\w*[tT]ranslate\w*)\.(?:instant|get)\s*\(\s*(['"])([^'"]+)\1\s*\)""",
            re.DOTALL,
        ),
        "ts_call",
        2,
    ),
    # ('KEY' | translate)
    ReversePattern(
        re.compile(r"""\(\s*['"`]([^'"`]+)['"`]\s*\|\s*translate\s*\)""", re.DOTALL),
        "ts_call",
        1,
    ),
)


@dataclass(frozen=True)
class ReversalMatch:
    file_abs: str
    file_rel: str
    line: int
    column: int
    start: int
    text: str
    key: str
    replacement: str


@dataclass
class ReverseResult:
    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"success": self.success, "failed": self.failed, "errors": list(self.errors)}


@dataclass(frozen=True)
class Selection:
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    @classmethod
    def parse(cls, raw: str) -> Selection:
        """``L1:C1-L2:C2`` with 1-based lines and columns."""
        match = re.fullmatch(r"\s*(\d+):(\d+)\s*-\s*(\d+):(\d+)\s*", raw)
        if not match:
            raise ValueError(f"Invalid selection, expected L1:C1-L2:C2: {raw}")
        return cls(*(int(g) for g in match.groups()))

    def contains(self, line: int, column: int) -> bool:
        after_start = line > self.start_line or (
            line == self.start_line and column >= self.start_col
        )
        before_end = line < self.end_line or (line == self.end_line and column <= self.end_col)
        return after_start and before_end


def load_key_values(output_root: Path, base_code: str) -> dict[str, str]:
    """``key -> value`` from every ``<base_code>.json`` under ``output_root``; blanks skipped."""
    values: dict[str, str] = {}
    if not output_root.is_dir():
        return values
    for path in sorted(output_root.rglob(f"{base_code}.json")):
        try:
            tree = normalize_locale_tree(read_locale_file(path))
        except LocaleFileError as exc:
            logger.warning("%s", exc)
            continue
        for key, value in flatten_tree(tree).items():
            if value.strip():
                values[key] = value
    return values


def replacement_text(pattern: ReversePattern, match: re.Match[str], value: str) -> str:
    if pattern.kind in ("bound_attr", "interp_attr"):
        return f'{match.group(pattern.attr_group)}="{value}"'
    if pattern.kind == "ts_call":
        return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"
    return value


def find_matches_in_text(
    content: str,
    key_values: dict[str, str],
    file_abs: str,
    file_rel: str,
) -> list[ReversalMatch]:
    spans: list[tuple[int, int, ReversePattern, re.Match[str]]] = []
    for priority, pattern in enumerate(REVERSE_PATTERNS):
        for match in pattern.regex.finditer(content):
            key = match.group(pattern.key_group)
            if key in key_values:
                spans.append((match.start(), -priority, pattern, match))

    # longest match wins where patterns overlap; earlier patterns break ties
    spans.sort(key=lambda s: (s[0], -(s[3].end() - s[3].start()), -s[1]))
    offsets = line_offsets(content)
    matches: list[ReversalMatch] = []
    covered_to = -1
    for start, _, pattern, match in spans:
        if start < covered_to:
            continue
        covered_to = match.end()
        key = match.group(pattern.key_group)
        line, col = locate_with_offsets(offsets, start)
        matches.append(
            ReversalMatch(
                file_abs=file_abs,
                file_rel=file_rel,
                line=line,
                column=col + 1,
                start=start,
                text=match.group(0),
                key=key,
                replacement=replacement_text(pattern, match, key_values[key]),
            )
        )
    return matches


def collect_source_files(target: Path, ignore_globs: list[str], base: Path) -> list[Path]:
    if target.is_file():
        return [target]
    files: list[Path] = []
    for path in sorted(target.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in SOURCE_SUFFIXES:
            continue
        rel = path.relative_to(base) if path.is_relative_to(base) else path.relative_to(target)
        if should_exclude(rel, ignore_globs):
            continue
        files.append(path)
    return files


def find_matches(
    target: Path,
    key_values: dict[str, str],
    *,
    src_dir: Path,
    ignore_globs: list[str] | None = None,
    errors: list[str] | None = None,
) -> list[ReversalMatch]:
    matches: list[ReversalMatch] = []
    for path in collect_source_files(target, ignore_globs or [], src_dir):
        rel = path.relative_to(src_dir).as_posix() if path.is_relative_to(src_dir) else path.name
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("could not read %s: %s", path, exc)
            if errors is not None:
                errors.append(f"{rel}: {exc}")
            continue
        found = find_matches_in_text(content, key_values, str(path), rel)
        if found:
            logger.debug("%s: %d matches", rel, len(found))
        matches.extend(found)
    return matches


def apply_reversals(matches: list[ReversalMatch], *, dry_run: bool = False) -> ReverseResult:
    result = ReverseResult()
    by_file: dict[str, list[ReversalMatch]] = {}
    for match in matches:
        by_file.setdefault(match.file_abs, []).append(match)

    # templates first so component cleanup sees their restored markup
    ordered = sorted(
        by_file.items(), key=lambda item: Path(item[0]).suffix.lower() in {".ts", ".tsx"}
    )
    for file_abs, file_matches in ordered:
        path = Path(file_abs)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            result.errors.append(f"Error processing {path.name}: {exc}")
            continue

        applied = 0
        for match in sorted(file_matches, key=lambda m: (m.line, m.column), reverse=True):
            at = abs_pos(line_offsets(content), match.line, match.column - 1)
            if at >= 0 and content[at : at + len(match.text)] == match.text:
                content = content[:at] + match.replacement + content[at + len(match.text) :]
            elif match.text in content:
                content = content.replace(match.text, match.replacement, 1)
            else:
                result.failed += 1
                result.errors.append(f'"{match.text}" not found in {path.name}')
                logger.warning("%s:%d: reference no longer present", match.file_rel, match.line)
                continue
            applied += 1
            result.success += 1

        if applied == 0:
            continue
        content, _ = cleanup_translate_imports(content, path)
        if not dry_run:
            path.write_text(content, encoding="utf-8")
        logger.info("%s: %d references restored", path.name, applied)
    return result


def reverse_translate(
    target: Path,
    *,
    src_dir: Path,
    output_root: Path,
    base_code: str,
    ignore_globs: list[str] | None = None,
    selection: Selection | None = None,
    dry_run: bool = False,
) -> ReverseResult:
    """Reverse one file, a folder, or a selection within one file."""
    key_values = load_key_values(output_root, base_code)
    if not key_values:
        return ReverseResult(errors=[f"No translations found in {output_root}"])

    if selection is not None and not target.is_file():
        return ReverseResult(errors=[f"Selection scope needs a file: {target}"])

    errors: list[str] = []
    matches = find_matches(
        target,
        key_values,
        src_dir=src_dir,
        ignore_globs=[] if target.is_file() else ignore_globs,
        errors=errors,
    )
    if selection is not None:
        matches = [m for m in matches if selection.contains(m.line, m.column)]

    result = apply_reversals(matches, dry_run=dry_run)
    result.errors[:0] = errors
    return result
