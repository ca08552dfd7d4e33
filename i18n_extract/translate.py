"""Machine-translation collaborator contract.

A translator turns the base locale file into a translated locale file. Its
output is merged into the target tree with the same rules as locale
generation: keys come from the base tree, existing non-blank values win.
"""

from __future__ import annotations

import concurrent.futures
import logging
import subprocess
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .locale_store import (
    flatten_tree,
    get_nested,
    normalize_locale_tree,
    read_locale_file,
    set_nested,
    write_json,
)
from .models import LocaleFileError

logger = logging.getLogger(__name__)


class TranslatorError(RuntimeError):
    pass


@dataclass(frozen=True)
class TranslatorConfig:
    command: str | None = None
    args_template: list[str] = field(default_factory=list)
    delay_ms: int = 500
    concurrency: int = 4
    include_default_language: bool = False


class Translator(Protocol):
    def translate(self, input_file: Path, target_code: str, source_code: str) -> Path:
        """Return the path of a locale JSON file translated into ``target_code``."""
        ...


class CommandTranslator:
    """Runs an external command; its argument template may use ``{baseFile}``,
    ``{outDir}``, ``{baseLocale}`` and ``{targetLocale}``."""

    def __init__(self, config: TranslatorConfig, out_dir: Path, cwd: Path | None = None) -> None:
        if not config.command:
            raise TranslatorError("No translator command configured")
        self.config = config
        self.out_dir = out_dir
        self.cwd = cwd

    def build_args(
        self, input_file: Path, target_code: str, source_code: str, out_dir: Path
    ) -> list[str]:
        values = {
            "{baseFile}": str(input_file),
            "{outDir}": str(out_dir),
            "{baseLocale}": source_code,
            "{targetLocale}": target_code,
        }
        args: list[str] = []
        for item in self.config.args_template:
            for token, value in values.items():
                item = item.replace(token, value)
            args.append(item)
        return [self.config.command, *args]

    def translate(self, input_file: Path, target_code: str, source_code: str) -> Path:
        # one directory per call, jobs for the same locale may run concurrently
        out_dir = Path(tempfile.mkdtemp(prefix=f"{target_code}-", dir=self.out_dir))
        cmd = self.build_args(input_file, target_code, source_code, out_dir)
        logger.debug("running %s", " ".join(cmd))
        proc = subprocess.run(cmd, cwd=self.cwd, capture_output=True, text=True, check=False)
        if proc.returncode != 0:
            raise TranslatorError(
                f"{self.config.command} exited with {proc.returncode}: {proc.stderr.strip()[:500]}"
            )
        output = out_dir / f"{target_code}.json"
        if not output.is_file():
            raise TranslatorError(f"Translator produced no file for {target_code}: {output}")
        return output


def merge_translated_tree(target: dict, translated: dict, base: dict) -> tuple[dict, int]:
    """Fill blank target entries from ``translated``; returns the tree and the fill count."""
    out: dict = {}
    filled = 0
    for key in flatten_tree(base):
        current = get_nested(target, key)
        if isinstance(current, str) and current:
            set_nested(out, key, current)
            continue
        incoming = get_nested(translated, key)
        if isinstance(incoming, str) and incoming:
            set_nested(out, key, incoming)
            filled += 1
        else:
            set_nested(out, key, "")
    return out, filled


@dataclass
class TranslationResult:
    filled: int = 0
    files: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _translate_one(
    translator: Translator,
    base_file: Path,
    target_file: Path,
    target_code: str,
    base_code: str,
) -> tuple[Path, int]:
    base = normalize_locale_tree(read_locale_file(base_file))
    produced = translator.translate(base_file, target_code, base_code)
    translated = normalize_locale_tree(read_locale_file(produced))
    current = normalize_locale_tree(read_locale_file(target_file))
    merged, filled = merge_translated_tree(current, translated, base)
    write_json(target_file, merged)
    return target_file, filled


def translate_targets(
    translator: Translator,
    jobs: list[tuple[Path, Path, str]],
    base_code: str,
    config: TranslatorConfig,
) -> TranslationResult:
    """Run ``(base_file, target_file, target_code)`` jobs, ``config.concurrency`` at a time.

    Submissions are spaced by ``config.delay_ms``.
    """
    result = TranslationResult()
    workers = max(1, config.concurrency)
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
        futures: dict[concurrent.futures.Future, tuple[Path, str]] = {}
        for idx, (base_file, target_file, code) in enumerate(jobs):
            if idx and config.delay_ms:
                time.sleep(config.delay_ms / 1000)
            future = pool.submit(_translate_one, translator, base_file, target_file, code, base_code)
            futures[future] = (target_file, code)
        for future in concurrent.futures.as_completed(futures):
            target_file, code = futures[future]
            try:
                path, filled = future.result()
            except (TranslatorError, LocaleFileError, OSError) as exc:
                result.errors.append(f"{target_file.name} ({code}): {exc}")
                continue
            result.files.append(path)
            result.filled += filled
            logger.info("translated %s: %d entries filled", path, filled)
    return result


def run_command_translation(
    config: TranslatorConfig,
    jobs: list[tuple[Path, Path, str]],
    base_code: str,
    cwd: Path | None = None,
) -> TranslationResult:
    with tempfile.TemporaryDirectory(prefix="i18n-translate-") as tmp:
        translator = CommandTranslator(config, Path(tmp), cwd=cwd)
        return translate_targets(translator, jobs, base_code, config)
