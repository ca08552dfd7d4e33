"""Locale JSON trees on disk.

A locale tree is a nested JSON object whose leaves are strings; ``""`` marks
an untranslated entry. The base locale's tree owns the key set. Target trees
are rebuilt from it on every run so they never carry keys the base lacks.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .keygen import make_key, path_prefix
from .models import FoundString, KeyMapByFile, LocaleFileError, UpdateMode

logger = logging.getLogger(__name__)

MANIFEST_NAME = "translate-manifest.json"


def read_locale_file(path: Path) -> dict:
    if not path.is_file():
        return {}
    raw = path.read_text(encoding="utf-8").strip()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LocaleFileError(f"Invalid JSON in locale file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise LocaleFileError(f"Locale file must be a JSON object: {path}")
    return data


def dump_json(data: object) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2) + "\n"


def write_json(path: Path, data: object) -> bool:
    """Write ``data`` unless the file already holds exactly that content."""
    text = dump_json(data)
    if path.is_file() and path.read_text(encoding="utf-8") == text:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return True


def _leaf(value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None or isinstance(value, list):
        return ""
    return str(value)


def normalize_locale_tree(data: dict) -> dict:
    """Re-nest dotted keys and coerce every leaf to a string."""
    out: dict = {}
    for key, value in data.items():
        if not isinstance(key, str) or not key:
            continue
        if isinstance(value, dict):
            nested = normalize_locale_tree(value)
            if "." in key:
                for sub_key, sub_value in flatten_tree(nested).items():
                    set_nested(out, f"{key}.{sub_key}", sub_value, overwrite=False)
                continue
            existing = out.get(key)
            if isinstance(existing, dict):
                for sub_key, sub_value in flatten_tree(nested).items():
                    set_nested(existing, sub_key, sub_value, overwrite=False)
            else:
                out[key] = nested
        else:
            set_nested(out, key, _leaf(value), overwrite=False)
    return out


def set_nested(tree: dict, key: str, value: str, *, overwrite: bool = True) -> bool:
    """Place ``value`` at dotted ``key``; False when the path is blocked.

    A path is blocked when an intermediate segment is a string leaf, or when
    the target itself is an object.
    """
    parts = [p for p in key.split(".") if p]
    if not parts:
        return False
    node = tree
    for part in parts[:-1]:
        current = node.get(part)
        if current is None:
            current = node[part] = {}
        if not isinstance(current, dict):
            return False
        node = current
    leaf = parts[-1]
    if isinstance(node.get(leaf), dict):
        return False
    if leaf in node and not overwrite:
        return True
    node[leaf] = value
    return True


def get_nested(tree: dict, key: str) -> object | None:
    node: object = tree
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def flatten_tree(node: object, prefix: str = "") -> dict[str, str]:
    leaves: dict[str, str] = {}
    if isinstance(node, dict):
        for k, v in node.items():
            if not isinstance(k, str) or not k:
                continue
            next_prefix = f"{prefix}.{k}" if prefix else k
            leaves.update(flatten_tree(v, next_prefix))
    elif isinstance(node, str) and prefix:
        leaves[prefix] = node
    return leaves


def prune_keys(tree: dict, keys: Iterable[str]) -> int:
    """Delete ``keys`` from ``tree``, collapsing parents left empty."""
    removed = 0
    for key in keys:
        parts = [p for p in key.split(".") if p]
        if not parts:
            continue
        trail: list[tuple[dict, str]] = []
        node = tree
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                break
            trail.append((node, part))
            node = child
        else:
            if parts[-1] not in node:
                continue
            del node[parts[-1]]
            removed += 1
            for owner, part in reversed(trail):
                if owner[part]:
                    break
                del owner[part]
    return removed


def merge_target(existing: dict, base: dict) -> dict:
    """Target tree shaped like ``base``, keeping non-blank strings of ``existing``."""
    out: dict = {}
    for key in flatten_tree(base):
        value = get_nested(existing, key)
        set_nested(out, key, value if isinstance(value, str) and value else "")
    return out


@dataclass
class GenerationResult:
    base_files: list[Path] = field(default_factory=list)
    target_files: dict[str, list[Path]] = field(default_factory=dict)
    written: list[Path] = field(default_factory=list)
    strings_added: int = 0
    keys_removed: int = 0
    key_map_by_file: KeyMapByFile = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


class _BaseTree:
    """Base tree plus the value/key indexes seeded from what is already on disk."""

    def __init__(self, tree: dict) -> None:
        self.tree = tree
        leaves = flatten_tree(tree)
        self.used: set[str] = set(leaves)
        self.value_to_key: dict[str, str] = {}
        for key, value in leaves.items():
            if value:
                self.value_to_key.setdefault(value, key)

    def assign(self, item: FoundString, result: GenerationResult) -> str | None:
        if item.is_already_translated:
            if get_nested(self.tree, item.text) is None:
                if set_nested(self.tree, item.text, ""):
                    self.used.add(item.text)
                    result.strings_added += 1
                else:
                    result.errors.append(
                        f"{item.file_rel}:{item.line}: key {item.text} collides with an existing entry"
                    )
            return None

        key = self.value_to_key.get(item.text)
        if key is not None:
            return key
        key = make_key(item.text, self.used, path_prefix(item.file_rel))
        if not set_nested(self.tree, key, item.text):
            result.errors.append(
                f"{item.file_rel}:{item.line}: key {key} collides with an existing entry"
            )
            return None
        self.value_to_key[item.text] = key
        result.strings_added += 1
        return key


def _locale_dir(output_root: Path, file_rel: str) -> Path:
    return output_root / Path(file_rel).with_suffix("")


def _persist(path: Path, data: dict, result: GenerationResult, dry_run: bool) -> None:
    if dry_run:
        return
    if write_json(path, data):
        result.written.append(path)
        logger.debug("wrote %s", path)


def _generate_group(
    locale_dir: Path,
    items: list[FoundString],
    *,
    base_code: str,
    target_codes: list[str],
    update_mode: UpdateMode,
    remove_keys: Iterable[str],
    dry_run: bool,
    result: GenerationResult,
) -> None:
    base_path = locale_dir / f"{base_code}.json"
    try:
        existing = {} if update_mode == "recreate" else normalize_locale_tree(
            read_locale_file(base_path)
        )
    except LocaleFileError as exc:
        result.errors.append(str(exc))
        return

    base = _BaseTree(existing)
    for item in items:
        key = base.assign(item, result)
        if key is not None:
            result.key_map_by_file.setdefault(item.file_abs, {})[item.text] = key

    removed = prune_keys(base.tree, remove_keys)
    if removed:
        result.keys_removed += removed
        dropped = set(remove_keys)
        for file_abs in {item.file_abs for item in items}:
            mapping = result.key_map_by_file.get(file_abs, {})
            for text in [t for t, k in mapping.items() if k in dropped]:
                del mapping[text]
    _persist(base_path, base.tree, result, dry_run)
    result.base_files.append(base_path)

    for code in target_codes:
        if code == base_code:
            continue
        target_path = locale_dir / f"{code}.json"
        if update_mode == "merge":
            try:
                current = normalize_locale_tree(read_locale_file(target_path))
            except LocaleFileError as exc:
                result.errors.append(str(exc))
                continue
        else:
            current = {}
        _persist(target_path, merge_target(current, base.tree), result, dry_run)
        result.target_files.setdefault(code, []).append(target_path)


def generate_locales(
    found: list[FoundString],
    output_root: Path,
    *,
    base_code: str,
    target_codes: list[str],
    update_mode: UpdateMode = "merge",
    single_file: bool = True,
    remove_keys: Iterable[str] = (),
    dry_run: bool = False,
) -> GenerationResult:
    """Merge accepted candidates into the locale trees under ``output_root``.

    Returns the per-file key map the rewriter needs along with the list of
    files that belong to each locale.
    """
    result = GenerationResult()
    remove_keys = list(remove_keys)
    options = dict(
        base_code=base_code,
        target_codes=target_codes,
        update_mode=update_mode,
        remove_keys=remove_keys,
        dry_run=dry_run,
        result=result,
    )
    if single_file:
        _generate_group(output_root, found, **options)
    else:
        groups: dict[str, list[FoundString]] = {}
        rel_by_file: dict[str, str] = {}
        for item in found:
            groups.setdefault(item.file_abs, []).append(item)
            rel_by_file[item.file_abs] = item.file_rel
        for file_abs, items in groups.items():
            _generate_group(_locale_dir(output_root, rel_by_file[file_abs]), items, **options)

    logger.info(
        "locale generation: %d strings added, %d keys removed, %d files written",
        result.strings_added,
        result.keys_removed,
        len(result.written),
    )
    return result


def prune_locale_files(
    output_root: Path,
    keys: Iterable[str],
    *,
    dry_run: bool = False,
) -> tuple[int, list[str]]:
    """Remove ``keys`` from every ``*.json`` locale file under ``output_root``.

    Returns the number of removed entries and one error per unreadable file.
    """
    keys = list(keys)
    removed = 0
    errors: list[str] = []
    for path in sorted(output_root.rglob("*.json")):
        if path.name == MANIFEST_NAME:
            continue
        try:
            data = read_locale_file(path)
        except LocaleFileError as exc:
            logger.warning("skipping %s while pruning: %s", path, exc)
            errors.append(str(exc))
            continue
        count = prune_keys(data, keys)
        if count and not dry_run:
            write_json(path, data)
        removed += count
    return removed, errors


def build_manifest(
    output_root: Path,
    locale_codes: Iterable[str],
    produced: Iterable[Path] = (),
) -> dict:
    """``{"locales": {code: [relative file, ...]}}`` for every requested code."""
    locales: dict[str, list[str]] = {}
    produced = [Path(p) for p in produced]
    for code in locale_codes:
        files: set[str] = set()
        for path in produced:
            if path.name == f"{code}.json":
                files.add(path.relative_to(output_root).as_posix())
        if output_root.is_dir():
            for path in output_root.rglob(f"{code}.json"):
                if path.name.lower() in (MANIFEST_NAME, "readme.md"):
                    continue
                files.add(path.relative_to(output_root).as_posix())
        locales[code] = sorted(files)
    return {"locales": locales}


def write_manifest(output_root: Path, manifest: dict) -> Path:
    path = output_root / MANIFEST_NAME
    write_json(path, manifest)
    return path


def resolve_manifest_files(manifest: dict, requested: str) -> list[str]:
    """Files for ``requested``, falling back from ``en-US`` to ``en`` and back."""
    locales = manifest.get("locales") or {}
    if locales.get(requested):
        return list(locales[requested])
    main = requested.split("-")[0].lower()
    if locales.get(main):
        return list(locales[main])
    for code, files in locales.items():
        if code.split("-")[0].lower() == main and files:
            return list(files)
    return []
