"""Extraction run: classify every file, then generate locales, then rewrite.

The three phases run strictly in that order. Classification is the only
parallel step; it shares no state between files.
"""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .classifier import extract_from_file
from .config import Config
from .heuristics import ClassifierPolicy
from .languages import ensure_languages, locale_codes
from .locale_store import build_manifest, generate_locales, prune_locale_files, write_manifest
from .models import ExtractionResult, FoundString, RestrictedString
from .rewriter import replace_extracted_strings
from .scan import collect_files, rel_from
from .translate import TranslatorConfig, run_command_translation

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    files_scanned: int = 0
    found: list[FoundString] = field(default_factory=list)
    restricted: list[RestrictedString] = field(default_factory=list)
    strings_added: int = 0
    strings_replaced: int = 0
    files_updated: int = 0
    keys_removed: int = 0
    translated: int = 0
    failed: int = 0
    manifest: Path | None = None
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "filesScanned": self.files_scanned,
            "found": len(self.found),
            "restricted": [
                {
                    "file": r.file_rel,
                    "line": r.line,
                    "column": r.column,
                    "text": r.text,
                    "reason": r.reason,
                    "callContext": r.call_context,
                }
                for r in self.restricted
            ],
            "stringsAdded": self.strings_added,
            "stringsReplaced": self.strings_replaced,
            "filesUpdated": self.files_updated,
            "keysRemoved": self.keys_removed,
            "translated": self.translated,
            "failed": self.failed,
            "errors": list(self.errors),
        }


def classify_files(
    src_dir: Path,
    files: list[Path],
    policy: ClassifierPolicy,
    concurrency: int = 8,
) -> ExtractionResult:
    """Classify ``files`` in parallel; results keep the order of ``files``."""
    merged = ExtractionResult()
    with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, concurrency)) as executor:
        results = executor.map(
            lambda path: extract_from_file(path, rel_from(src_dir, path), policy), files
        )
        for result in results:
            merged.found.extend(result.found)
            merged.restricted.extend(result.restricted)
            merged.errors.extend(result.errors)
    return merged


def translator_config(config: Config) -> TranslatorConfig:
    return TranslatorConfig(
        command=config.translator_command,
        args_template=list(config.translator_args_template),
        delay_ms=config.translator_delay,
        concurrency=config.translator_concurrency,
        include_default_language=config.auto_translate_default_language,
    )


def run_extract(
    root: Path,
    config: Config,
    *,
    dry_run: bool = False,
    replace: bool = True,
    remove_keys: list[str] | None = None,
    translate: bool = False,
    concurrency: int = 8,
) -> RunSummary:
    """Full extraction run over ``root``.

    Raises ``MissingDefaultLocaleError`` before anything is written when the
    languages file has no default entry.
    """
    summary = RunSummary()
    src_dir = root / config.src_dir
    output_root = root / config.output_root

    languages = ensure_languages(root / config.languages_json_path, dry_run=dry_run)
    base_code, target_codes = locale_codes(
        languages,
        only_main=config.only_main_languages,
        active_only=config.only_generate_active_langs,
    )

    files = collect_files(src_dir, config.ignore_globs, config.skip_globs) if src_dir.is_dir() else []
    summary.files_scanned = len(files)
    extraction = classify_files(src_dir, files, config.classifier_policy(), concurrency)
    summary.found = extraction.found
    summary.restricted = extraction.restricted
    summary.errors.extend(extraction.errors)
    logger.info(
        "classified %d files: %d found, %d restricted",
        len(files),
        len(extraction.found),
        len(extraction.restricted),
    )
    if dry_run:
        return summary

    generation = generate_locales(
        extraction.found,
        output_root,
        base_code=base_code,
        target_codes=target_codes,
        update_mode=config.update_mode,
        single_file=config.single_file_per_language,
        remove_keys=remove_keys or (),
    )
    summary.strings_added = generation.strings_added
    summary.errors.extend(generation.errors)
    summary.keys_removed = generation.keys_removed
    if remove_keys:
        pruned, prune_errors = prune_locale_files(output_root, remove_keys)
        summary.keys_removed += pruned
        summary.errors.extend(prune_errors)

    if replace:
        rewrite = replace_extracted_strings(
            extraction.found,
            generation.key_map_by_file,
            bootstrap_style=config.bootstrap_style,
        )
        summary.strings_replaced = rewrite.strings_replaced
        summary.files_updated = rewrite.files_updated
        summary.failed += rewrite.failed
        summary.errors.extend(rewrite.errors)

    produced = [*generation.base_files, *(p for ps in generation.target_files.values() for p in ps)]
    manifest = build_manifest(output_root, [base_code, *target_codes], produced)
    summary.manifest = write_manifest(output_root, manifest)

    if translate:
        settings = translator_config(config)
        if not settings.command:
            summary.errors.append("Translation requested but translatorCommand is not configured")
        else:
            jobs = [
                (base_file, base_file.with_name(f"{code}.json"), code)
                for base_file in generation.base_files
                for code in target_codes
            ]
            if settings.include_default_language:
                jobs.extend((b, b, base_code) for b in generation.base_files)
            outcome = run_command_translation(settings, jobs, base_code, cwd=root)
            summary.translated = outcome.filled
            summary.failed += len(outcome.errors)
            summary.errors.extend(outcome.errors)

    return summary
