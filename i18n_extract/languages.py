"""Languages file: the list of ``LanguageEntry`` records for a project."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path

from babel import Locale, UnknownLocaleError

from .locale_store import write_json
from .models import ConfigError, LanguageEntry, MissingDefaultLocaleError

logger = logging.getLogger(__name__)

FLAG_URL = "https://flagcdn.com/w40/{cc}.png"

DEFAULT_LANGUAGES: tuple[LanguageEntry, ...] = (
    LanguageEntry("en-US", rank=1, default=True),
    LanguageEntry("pt-BR", rank=2),
    LanguageEntry("pt-PT", rank=3, active=False),
    LanguageEntry("es-ES", rank=4),
    LanguageEntry("fr-FR", rank=5),
    LanguageEntry("it-IT", rank=6),
    LanguageEntry("zh-CN", rank=7, english_name="Chinese (Simplified, China)"),
)


def split_locale(code: str) -> tuple[str, str | None]:
    parts = code.replace("_", "-").split("-")
    language = parts[0].lower()
    region = next((p.upper() for p in parts[1:] if len(p) == 2 and p.isalpha()), None)
    return language, region


def main_language_code(code: str) -> str:
    return code.split("-")[0].lower()


def _parse_locale(code: str) -> Locale | None:
    try:
        return Locale.parse(code.replace("_", "-"), sep="-")
    except (ValueError, UnknownLocaleError):
        logger.debug("no locale data for %s", code)
        return None


def english_name(code: str) -> str:
    locale = _parse_locale(code)
    if locale is None:
        return code
    return locale.get_display_name("en") or code


def native_name(code: str) -> str:
    locale = _parse_locale(code)
    if locale is None:
        return code
    return locale.get_display_name() or code


def flag_url(code: str) -> str | None:
    _, region = split_locale(code)
    if region is None:
        return None
    return FLAG_URL.format(cc=region.lower())


def normalize_languages(entries: list[LanguageEntry]) -> list[LanguageEntry]:
    """Fill missing display fields and sort by rank (unranked last)."""
    out: list[LanguageEntry] = []
    for entry in entries:
        if not entry.code:
            continue
        if entry.english_name is None:
            entry.english_name = english_name(entry.code)
        if entry.native_name is None:
            entry.native_name = native_name(entry.code)
        if entry.flag is None:
            entry.flag = flag_url(entry.code)
        out.append(entry)
    out.sort(key=lambda e: e.rank if e.rank is not None else 9999)
    return out


def default_language_code(entries: list[LanguageEntry]) -> str:
    defaults = [entry.code for entry in entries if entry.default]
    if not defaults:
        raise MissingDefaultLocaleError("No language is marked as default in the languages file")
    if len(defaults) > 1:
        logger.warning(
            "%d languages are marked as default (%s); using %s",
            len(defaults),
            ", ".join(defaults),
            defaults[0],
        )
    return defaults[0]


def load_languages(path: Path) -> list[LanguageEntry]:
    if not path.is_file():
        return []
    raw = path.read_text(encoding="utf-8").strip()
    if not raw:
        return []
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid languages file {path}: {exc}") from exc
    if not isinstance(payload, list):
        raise ConfigError(f"Languages file must be a JSON array: {path}")
    return [
        LanguageEntry.from_json(item)
        for item in payload
        if isinstance(item, dict) and isinstance(item.get("code"), str) and item["code"]
    ]


def ensure_languages(path: Path, *, dry_run: bool = False) -> list[LanguageEntry]:
    """Load the languages file, seeding the default set when it is absent or empty."""
    entries = load_languages(path)
    if not entries:
        logger.info("seeding languages file %s", path)
        entries = [replace(e) for e in DEFAULT_LANGUAGES]
    entries = normalize_languages(entries)
    default_language_code(entries)
    if not dry_run:
        write_json(path, [e.to_json() for e in entries])
    return entries


def locale_codes(
    entries: list[LanguageEntry],
    *,
    only_main: bool = False,
    active_only: bool = False,
) -> tuple[str, list[str]]:
    """Base code and the ordered, de-duplicated target codes."""
    base = default_language_code(entries)
    targets: list[str] = []
    for entry in entries:
        if entry.default or (active_only and not entry.active):
            continue
        targets.append(entry.code)

    if only_main:
        base = main_language_code(base)
        targets = [main_language_code(c) for c in targets]

    seen = {base}
    unique: list[str] = []
    for code in targets:
        if code not in seen:
            seen.add(code)
            unique.append(code)
    return base, unique
