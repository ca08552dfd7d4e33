"""Offset-validated in-place replacement of extracted strings with key references."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .models import BootstrapStyle, FoundString, KeyMapByFile
from .offsets import abs_pos, line_offsets
from .scaffolding import add_translate_pipe, add_translate_service

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = {".html", ".htm", ".ts", ".tsx", ".js", ".jsx", ".mjs"}
TS_SUFFIXES = {".ts", ".tsx"}


@dataclass(frozen=True)
class Replacement:
    start: int
    end: int
    text: str


@dataclass
class RewriteResult:
    files_updated: int = 0
    strings_replaced: int = 0
    failed: int = 0
    updated_files: list[Path] = field(default_factory=list)
    scaffolded_files: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def reference_for(item: FoundString, key: str, suffix: str) -> str:
    if item.kind == "interpolation-expression":
        return f"('{key}' | translate)"
    if item.is_markup:
        return f"{{{{ '{key}' | translate }}}}"
    if suffix in TS_SUFFIXES:
        return f"this.translate.instant('{key}')"
    return f"translateService.instant('{key}')"


def find_string_literal_end(content: str, start: int, quote: str) -> int:
    i = start + 1
    while i < len(content):
        ch = content[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i
        i += 1
    return -1


def build_replacement(
    content: str,
    offsets: list[int],
    item: FoundString,
    text: str,
) -> Replacement | None:
    """Span to replace for ``item``; None when the file no longer matches."""
    start = abs_pos(offsets, item.line, item.column)
    if start < 0 or start > len(content):
        return None

    if item.raw_text:
        end = start + len(item.raw_text)
        if content[start:end] == item.raw_text:
            return Replacement(start, end, text)
        logger.warning(
            "offset mismatch at %s:%d:%d, expected %r, found %r",
            item.file_rel,
            item.line,
            item.column,
            item.raw_text,
            content[start:end],
        )
        return None

    if item.is_markup:
        end = start + len(item.text)
        if item.kind == "text-node" and content[start:end] == item.text:
            return Replacement(start, end, text)
        return None

    quote = content[start : start + 1]
    if quote not in ("'", '"', "`"):
        return None
    end = find_string_literal_end(content, start, quote)
    if end < 0:
        return None
    return Replacement(start, end + 1, text)


def apply_replacements(content: str, replacements: list[Replacement]) -> tuple[str, int]:
    """Apply right-to-left; a span reaching into an applied one is skipped."""
    ordered = sorted(replacements, key=lambda r: r.start, reverse=True)
    out = content
    applied = 0
    last_start = len(content) + 1
    for rep in ordered:
        if rep.end > last_start:
            continue
        out = out[: rep.start] + rep.text + out[rep.end :]
        last_start = rep.start
        applied += 1
    return out, applied


def rewrite_file(
    path: Path,
    items: list[FoundString],
    key_map: dict[str, str],
    result: RewriteResult,
    *,
    dry_run: bool = False,
) -> tuple[bool, bool]:
    """Rewrite one file; returns ``(had_markup, had_script)`` replacements."""
    suffix = path.suffix.lower()
    content = path.read_text(encoding="utf-8")
    offsets = line_offsets(content)
    replacements: list[Replacement] = []
    had_markup = had_script = False

    for item in items:
        if item.is_already_translated:
            continue
        key = key_map.get(item.text)
        if not key:
            result.errors.append(f"{item.file_rel}:{item.line}: no key for {item.text!r}")
            result.failed += 1
            continue
        rep = build_replacement(content, offsets, item, reference_for(item, key, suffix))
        if rep is None:
            result.errors.append(
                f"{item.file_rel}:{item.line}:{item.column}: source changed, skipped {item.text!r}"
            )
            result.failed += 1
            continue
        replacements.append(rep)
        if item.is_markup:
            had_markup = True
        else:
            had_script = True

    if not replacements:
        return False, False

    patched, applied = apply_replacements(content, replacements)
    if applied < len(replacements):
        result.failed += len(replacements) - applied
        logger.warning(
            "%s: skipped %d overlapping replacements", path, len(replacements) - applied
        )
    if applied == 0:
        return False, False

    if not dry_run:
        path.write_text(patched, encoding="utf-8")
    result.files_updated += 1
    result.strings_replaced += applied
    result.updated_files.append(path)
    logger.debug("%s: %d replacements", path, applied)
    return had_markup, had_script


def _scaffold(path: Path, result: RewriteResult, patch) -> None:
    try:
        code = path.read_text(encoding="utf-8")
    except OSError as exc:
        result.errors.append(f"{path}: {exc}")
        return
    patched, changed = patch(code)
    if changed:
        path.write_text(patched, encoding="utf-8")
        result.scaffolded_files.append(path)


def replace_extracted_strings(
    found: list[FoundString],
    key_map_by_file: KeyMapByFile,
    *,
    bootstrap_style: BootstrapStyle = "standalone",
    scaffold: bool = True,
    dry_run: bool = False,
) -> RewriteResult:
    result = RewriteResult()
    by_file: dict[str, list[FoundString]] = {}
    for item in found:
        by_file.setdefault(item.file_abs, []).append(item)

    pipe_targets: list[Path] = []
    service_targets: list[Path] = []
    for file_abs, items in by_file.items():
        key_map = key_map_by_file.get(file_abs)
        if not key_map:
            continue
        path = Path(file_abs)
        suffix = path.suffix.lower()
        if suffix not in SUPPORTED_SUFFIXES:
            continue
        try:
            had_markup, had_script = rewrite_file(path, items, key_map, result, dry_run=dry_run)
        except (OSError, UnicodeDecodeError) as exc:
            result.errors.append(f"{items[0].file_rel}: {exc}")
            continue

        if suffix in (".html", ".htm") and had_markup:
            component = path.with_suffix(".ts")
            if component.is_file():
                pipe_targets.append(component)
        elif suffix in TS_SUFFIXES:
            if had_markup:
                pipe_targets.append(path)
            if had_script:
                service_targets.append(path)

    if scaffold and not dry_run:
        standalone = bootstrap_style == "standalone"
        for path in dict.fromkeys(pipe_targets):
            _scaffold(path, result, lambda code: add_translate_pipe(code, standalone=standalone))
        for path in dict.fromkeys(service_targets):
            _scaffold(path, result, lambda code: add_translate_service(code, bootstrap_style))

    logger.info(
        "rewrite: %d files updated, %d strings replaced",
        result.files_updated,
        result.strings_replaced,
    )
    return result
