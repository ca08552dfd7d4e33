from __future__ import annotations

import re
from pathlib import PurePosixPath

SLUG_MAX_LENGTH = 60
NON_ALNUM_RE = re.compile(r"[^A-Z0-9]+")
QUOTES_RE = re.compile(r"[\"'`]")


def slugify_text(text: str) -> str:
    """Upper-case, underscore-delimited slug of ``text``; ``TEXT`` when nothing survives."""
    slug = QUOTES_RE.sub("", text.upper())
    slug = NON_ALNUM_RE.sub("_", slug).strip("_")
    slug = slug[:SLUG_MAX_LENGTH]
    return slug or "TEXT"


def _prefix_segment(segment: str) -> str:
    cleaned = NON_ALNUM_RE.sub("_", segment.upper()).strip("_")
    return cleaned or "SEG"


def path_prefix(file_rel: str) -> str:
    """Dotted key namespace for a source path relative to the source root.

    ``app/app/home/home.component.ts`` becomes ``APP.HOME.HOME_COMPONENT``:
    the extension is dropped and runs of identical segments collapse.
    """
    posix = PurePosixPath(file_rel.replace("\\", "/"))
    parts = [p for p in posix.with_suffix("").parts if p not in ("", ".", "/")]
    segments: list[str] = []
    for part in parts:
        seg = _prefix_segment(part)
        if segments and segments[-1] == seg:
            continue
        segments.append(seg)
    return ".".join(segments)


def make_key(text: str, used: set[str], prefix: str = "") -> str:
    """Assign a key for ``text`` that is not in ``used`` and register it."""
    slug = slugify_text(text)
    base = f"{prefix}.{slug}" if prefix else slug
    key = base
    n = 2
    while key in used:
        key = f"{base}_{n}"
        n += 1
    used.add(key)
    return key
