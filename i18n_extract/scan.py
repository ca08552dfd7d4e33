from __future__ import annotations

import fnmatch
from pathlib import Path, PurePath

SCAN_EXTENSIONS = {".ts", ".js", ".html"}
ALWAYS_SKIP_GLOBS = ("**/main.ts", "**/index.html", "**/translate/**")


def matches_glob(rel_posix: str, pattern: str) -> bool:
    # "**/x" must also match "x" at the top level
    return fnmatch.fnmatch(rel_posix, pattern) or fnmatch.fnmatch("/" + rel_posix, pattern)


def should_exclude(rel: PurePath, globs: list[str] | tuple[str, ...]) -> bool:
    rel_posix = rel.as_posix()
    if any(part.startswith(".") for part in rel.parts):
        return True
    return any(matches_glob(rel_posix, pattern) for pattern in globs)


def collect_files(
    src_dir: Path,
    ignore_globs: list[str],
    skip_globs: list[str] | None = None,
    extensions: set[str] = SCAN_EXTENSIONS,
) -> list[Path]:
    globs = [*ignore_globs, *(skip_globs or []), *ALWAYS_SKIP_GLOBS]
    files: list[Path] = []
    for path in src_dir.rglob("*"):
        if not path.is_file():
            continue
        if path.suffix.lower() not in extensions:
            continue
        if should_exclude(path.relative_to(src_dir), globs):
            continue
        files.append(path)
    files.sort()
    return files


def rel_from(root: Path, path: Path) -> str:
    return path.relative_to(root).as_posix()
