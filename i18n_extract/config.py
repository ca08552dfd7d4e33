"""Project configuration read from ``i18n-extract.json``."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import get_args

from .heuristics import ClassifierPolicy, compile_regex_list
from .models import AggressiveMode, BootstrapStyle, ConfigError, UpdateMode

DEFAULT_CONFIG_NAME = "i18n-extract.json"


@dataclass(frozen=True)
class Config:
    src_dir: str = "src"
    output_root: str = "src/assets/i18n"
    languages_json_path: str = "src/assets/i18n-languages.json"
    min_string_length: int = 2
    ignore_globs: list[str] = field(
        default_factory=lambda: [
            "**/*.test.*",
            "**/*.spec.*",
            "**/node_modules/**",
            "**/dist/**",
            "**/build/**",
            "**/.next/**",
        ]
    )
    skip_globs: list[str] = field(default_factory=list)
    html_attribute_names: list[str] = field(
        default_factory=lambda: ["title", "alt", "placeholder", "aria-label", "aria-placeholder"]
    )
    update_mode: UpdateMode = "merge"
    aggressive_mode: AggressiveMode = "moderate"
    aggressive_mode_allow_call_regex: list[str] = field(
        default_factory=lambda: [r"^alert\s*\(", r"^confirm\s*\(", r"^prompt\s*\("]
    )
    aggressive_mode_allow_context_regex: list[str] = field(
        default_factory=lambda: [
            r"^window\.alert\(arg#1\)$",
            r"^window\.confirm\(arg#1\)$",
            r"^window\.prompt\(arg#1\)$",
        ]
    )
    only_main_languages: bool = False
    only_generate_active_langs: bool = False
    single_file_per_language: bool = True
    bootstrap_style: BootstrapStyle = "standalone"
    translator_command: str | None = None
    translator_args_template: list[str] = field(
        default_factory=lambda: [
            "--input",
            "{baseFile}",
            "--outDir",
            "{outDir}",
            "--from",
            "{baseLocale}",
            "--to",
            "{targetLocale}",
        ]
    )
    translator_delay: int = 500
    translator_concurrency: int = 4
    auto_translate_default_language: bool = False

    def classifier_policy(self) -> ClassifierPolicy:
        return ClassifierPolicy(
            min_length=self.min_string_length,
            aggressive_mode=self.aggressive_mode,
            allow_call_regex=compile_regex_list(self.aggressive_mode_allow_call_regex),
            allow_context_regex=compile_regex_list(self.aggressive_mode_allow_context_regex),
            attribute_names=frozenset(self.html_attribute_names),
        )


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


CAMEL_TO_FIELD = {_camel(f.name): f.name for f in fields(Config)}
LEGACY_KEYS = {"agressiveMode": "aggressive_mode"}

CHOICES: dict[str, tuple[str, ...]] = {
    "update_mode": get_args(UpdateMode),
    "aggressive_mode": get_args(AggressiveMode),
    "bootstrap_style": get_args(BootstrapStyle),
}


def _check(name: str, value: object, default: object) -> object:
    if name in CHOICES:
        if value not in CHOICES[name]:
            raise ConfigError(f"{_camel(name)} must be one of {', '.join(CHOICES[name])}: {value!r}")
        return value
    if name == "translator_command":
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"translatorCommand must be a string: {value!r}")
        return value
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"{_camel(name)} must be a boolean: {value!r}")
    elif isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{_camel(name)} must be an integer: {value!r}")
        if value < 0:
            raise ConfigError(f"{_camel(name)} must be >= 0: {value!r}")
    elif isinstance(default, str):
        if not isinstance(value, str) or not value:
            raise ConfigError(f"{_camel(name)} must be a non-empty string: {value!r}")
    elif isinstance(default, list):
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"{_camel(name)} must be a list of strings: {value!r}")
        return list(value)
    return value


def config_from_mapping(payload: dict) -> Config:
    if not isinstance(payload, dict):
        raise ConfigError("Configuration must be a JSON object")
    base = Config()
    updates: dict[str, object] = {}
    for raw_key, value in payload.items():
        name = CAMEL_TO_FIELD.get(raw_key)
        if name is None and raw_key in LEGACY_KEYS and "aggressiveMode" not in payload:
            name = LEGACY_KEYS[raw_key]
        if name is None:
            continue
        updates[name] = _check(name, value, getattr(base, name))
    return replace(base, **updates)


def load_config(root: Path, config_path: Path | None = None) -> Config:
    path = config_path or root / DEFAULT_CONFIG_NAME
    if not path.is_file():
        if config_path is not None:
            raise ConfigError(f"Config file not found: {path}")
        return Config()
    try:
        payload = json.loads(path.read_text(encoding="utf-8") or "{}")
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    return config_from_mapping(payload)
