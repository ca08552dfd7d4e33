import json
from pathlib import Path

import pytest

from conftest import read_json, write_json

from i18n_extract.translate import (
    CommandTranslator,
    TranslatorConfig,
    TranslatorError,
    merge_translated_tree,
    translate_targets,
)

FAST = TranslatorConfig(command="mt", delay_ms=0, concurrency=2)


class FakeTranslator:
    def __init__(self, out_dir: Path, outputs: dict[str, dict]) -> None:
        self.out_dir = out_dir
        self.outputs = outputs
        self.calls: list[tuple[str, str]] = []

    def translate(self, input_file: Path, target_code: str, source_code: str) -> Path:
        self.calls.append((target_code, source_code))
        if target_code not in self.outputs:
            raise TranslatorError(f"unsupported locale {target_code}")
        path = self.out_dir / f"{target_code}.json"
        path.write_text(json.dumps(self.outputs[target_code]), encoding="utf-8")
        return path


def test_merge_translated_tree_keeps_existing_values():
    base = {"A": {"B": "Hello", "C": "Bye"}}
    target = {"A": {"B": "Oi", "C": ""}}
    translated = {"A": {"B": "Olá", "C": "Tchau", "EXTRA": "x"}}
    merged, filled = merge_translated_tree(target, translated, base)
    assert merged == {"A": {"B": "Oi", "C": "Tchau"}}
    assert filled == 1


def test_translate_targets_merges_into_target_files(tmp_path):
    base_file = write_json(tmp_path / "en.json", {"A": {"B": "Hello", "C": "Bye"}})
    pt_file = write_json(tmp_path / "pt.json", {"A": {"B": "Oi", "C": ""}})
    de_file = write_json(tmp_path / "de.json", {"A": {"B": "", "C": ""}})
    work = tmp_path / "work"
    work.mkdir()
    translator = FakeTranslator(
        work,
        {"pt": {"A": {"B": "Olá", "C": "Tchau"}}, "de": {"A.B": "Hallo", "A": {"C": "Tschüss"}}},
    )

    result = translate_targets(
        translator, [(base_file, pt_file, "pt"), (base_file, de_file, "de")], "en", FAST
    )
    assert result.errors == []
    assert result.filled == 3
    assert sorted(result.files) == sorted([pt_file, de_file])
    assert read_json(pt_file) == {"A": {"B": "Oi", "C": "Tchau"}}
    assert read_json(de_file) == {"A": {"B": "Hallo", "C": "Tschüss"}}
    assert sorted(translator.calls) == [("de", "en"), ("pt", "en")]


def test_translator_failures_are_collected(tmp_path):
    base_file = write_json(tmp_path / "en.json", {"A": "Hello"})
    fr_file = write_json(tmp_path / "fr.json", {"A": ""})
    translator = FakeTranslator(tmp_path, {})
    result = translate_targets(translator, [(base_file, fr_file, "fr")], "en", FAST)
    assert result.filled == 0
    assert result.errors == ["fr.json (fr): unsupported locale fr"]
    assert read_json(fr_file) == {"A": ""}


def test_command_translator_argument_template(tmp_path):
    config = TranslatorConfig(
        command="mt",
        args_template=["--input", "{baseFile}", "--outDir", "{outDir}", "--from", "{baseLocale}", "--to", "{targetLocale}"],
    )
    translator = CommandTranslator(config, tmp_path)
    args = translator.build_args(Path("en.json"), "pt-BR", "en-US", Path("out"))
    assert args == ["mt", "--input", "en.json", "--outDir", "out", "--from", "en-US", "--to", "pt-BR"]


def test_command_translator_requires_a_command(tmp_path):
    with pytest.raises(TranslatorError):
        CommandTranslator(TranslatorConfig(), tmp_path)
