import pytest

from conftest import read_json, write, write_json

from i18n_extract.languages import (
    default_language_code,
    english_name,
    ensure_languages,
    flag_url,
    load_languages,
    locale_codes,
    native_name,
    normalize_languages,
)
from i18n_extract.models import ConfigError, LanguageEntry, MissingDefaultLocaleError


def test_seeds_default_languages(tmp_path):
    path = tmp_path / "assets" / "i18n-languages.json"
    entries = ensure_languages(path)
    assert [e.code for e in entries] == ["en-US", "pt-BR", "pt-PT", "es-ES", "fr-FR", "it-IT", "zh-CN"]
    assert default_language_code(entries) == "en-US"

    saved = read_json(path)
    assert saved[0] == {
        "rank": 1,
        "code": "en-US",
        "englishName": "English (United States)",
        "nativeName": "English (United States)",
        "flag": "https://flagcdn.com/w40/us.png",
        "default": True,
        "active": True,
    }
    assert saved[2]["active"] is False
    assert saved[6]["englishName"] == "Chinese (Simplified, China)"


def test_seeding_does_not_share_state(tmp_path):
    first = ensure_languages(tmp_path / "a.json")
    first[0].english_name = "changed"
    second = ensure_languages(tmp_path / "b.json")
    assert second[0].english_name == "English (United States)"


def test_missing_default_is_fatal_and_leaves_file_alone(tmp_path):
    path = write_json(tmp_path / "langs.json", [{"code": "fr-FR"}, {"code": "de-DE"}])
    before = path.read_text(encoding="utf-8")
    with pytest.raises(MissingDefaultLocaleError):
        ensure_languages(path)
    assert path.read_text(encoding="utf-8") == before


def test_invalid_languages_file(tmp_path):
    with pytest.raises(ConfigError):
        load_languages(write(tmp_path / "bad.json", "{not json"))
    with pytest.raises(ConfigError):
        load_languages(write_json(tmp_path / "obj.json", {"code": "en"}))
    assert load_languages(write_json(tmp_path / "skip.json", [{"code": ""}, "x", {"code": "en", "default": True}]))[0].code == "en"


def test_display_names_and_flags():
    assert english_name("pt-BR") == "Portuguese (Brazil)"
    assert native_name("pt-BR") == "português (Brasil)"
    assert english_name("de") == "German"
    assert english_name("xx-YY") == "xx-YY"
    assert native_name("not a locale") == "not a locale"
    assert flag_url("fr-FR") == "https://flagcdn.com/w40/fr.png"
    assert flag_url("fr") is None


def test_normalize_sorts_by_rank_unranked_last():
    entries = normalize_languages(
        [LanguageEntry("de-DE"), LanguageEntry("fr-FR", rank=2), LanguageEntry("en-US", rank=1, default=True)]
    )
    assert [e.code for e in entries] == ["en-US", "fr-FR", "de-DE"]
    assert entries[2].native_name == "Deutsch (Deutschland)"


def test_locale_codes_filters():
    entries = [
        LanguageEntry("en-US", default=True),
        LanguageEntry("en-GB"),
        LanguageEntry("pt-BR"),
        LanguageEntry("pt-PT", active=False),
    ]
    assert locale_codes(entries) == ("en-US", ["en-GB", "pt-BR", "pt-PT"])
    assert locale_codes(entries, active_only=True) == ("en-US", ["en-GB", "pt-BR"])
    assert locale_codes(entries, only_main=True) == ("en", ["pt"])


def test_display_names_cover_any_cldr_locale():
    assert english_name("sk-SK") == "Slovak (Slovakia)"
    assert native_name("sk_SK") == "slovenčina (Slovensko)"
    assert english_name("sw") == "Swahili"


def test_extra_defaults_are_reported(caplog):
    entries = [LanguageEntry("en-US", default=True), LanguageEntry("fr-FR", default=True)]
    with caplog.at_level("WARNING", logger="i18n_extract.languages"):
        assert default_language_code(entries) == "en-US"
    assert "2 languages are marked as default (en-US, fr-FR)" in caplog.text
