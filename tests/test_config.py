import pytest

from conftest import write, write_json

from i18n_extract.config import Config, config_from_mapping, load_config
from i18n_extract.models import ConfigError


def test_defaults_when_no_file(tmp_path):
    config = load_config(tmp_path)
    assert config == Config()
    assert config.src_dir == "src"
    assert config.output_root == "src/assets/i18n"
    assert config.single_file_per_language is True
    assert config.translator_delay == 500


def test_camel_case_keys_are_mapped(tmp_path):
    write_json(
        tmp_path / "i18n-extract.json",
        {
            "srcDir": "client/src",
            "minStringLength": 3,
            "updateMode": "overwrite",
            "onlyMainLanguages": True,
            "htmlAttributeNames": ["title"],
            "translatorCommand": "mt",
            "unknownOption": 42,
        },
    )
    config = load_config(tmp_path)
    assert config.src_dir == "client/src"
    assert config.min_string_length == 3
    assert config.update_mode == "overwrite"
    assert config.only_main_languages is True
    assert config.html_attribute_names == ["title"]
    assert config.translator_command == "mt"


def test_legacy_misspelled_key():
    assert config_from_mapping({"agressiveMode": "high"}).aggressive_mode == "high"
    both = config_from_mapping({"agressiveMode": "high", "aggressiveMode": "low"})
    assert both.aggressive_mode == "low"


@pytest.mark.parametrize(
    "payload",
    [
        {"updateMode": "replace"},
        {"minStringLength": "3"},
        {"onlyMainLanguages": "yes"},
        {"ignoreGlobs": "**/*.spec.ts"},
        {"srcDir": ""},
        {"translatorConcurrency": -1},
    ],
)
def test_wrong_types_raise(payload):
    with pytest.raises(ConfigError):
        config_from_mapping(payload)


def test_explicit_missing_file_and_bad_json(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path, tmp_path / "nope.json")
    bad = write(tmp_path / "bad.json", "{")
    with pytest.raises(ConfigError):
        load_config(tmp_path, bad)


def test_classifier_policy_from_config():
    config = config_from_mapping(
        {
            "minStringLength": 4,
            "aggressiveMode": "low",
            "aggressiveModeAllowCallRegex": ["/^notify\\(/i", "[broken"],
        }
    )
    policy = config.classifier_policy()
    assert policy.min_length == 4
    assert policy.aggressive_mode == "low"
    assert len(policy.allow_call_regex) == 1
    assert policy.allow_call_regex[0].search("NOTIFY('x')")
    assert len(policy.allow_context_regex) == 3
