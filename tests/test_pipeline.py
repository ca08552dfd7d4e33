import pytest

from conftest import read_json, write, write_json

from i18n_extract.cli import main
from i18n_extract.config import load_config
from i18n_extract.locale_store import flatten_tree
from i18n_extract.models import MissingDefaultLocaleError
from i18n_extract.pipeline import run_extract

CONFIRM_KEY = "APP.HOME.HOME_COMPONENT.ARE_YOU_SURE_YOU_WANT_TO_DELETE_THIS_CONFIGURATION"
WELCOME_KEY = "APP.HOME.HOME_COMPONENT.WELCOME_TO_THE_DASHBOARD"

COMPONENT = (
    "import { Component } from '@angular/core';\n"
    "\n"
    "@Component({\n"
    "  selector: 'app-home',\n"
    "  templateUrl: './home.component.html',\n"
    "})\n"
    "export class HomeComponent {\n"
    "  remove(): boolean {\n"
    "    const ok = confirm('Are you sure you want to delete this configuration?');\n"
    '    console.log("debug info");\n'
    "    return ok;\n"
    "  }\n"
    "}\n"
)


@pytest.fixture
def project(tmp_path):
    write_json(tmp_path / "i18n-extract.json", {"minStringLength": 3})
    write(tmp_path / "src" / "app" / "home" / "home.component.ts", COMPONENT)
    write(tmp_path / "src" / "app" / "home" / "home.component.html", "<h1>Welcome to the dashboard</h1>\n")
    write(tmp_path / "src" / "app" / "home" / "home.component.spec.ts", "it('Does a thing well', () => {});\n")
    write(tmp_path / "src" / "main.ts", "bootstrap('Main entry point here');\n")
    return tmp_path


def test_full_run(project):
    summary = run_extract(project, load_config(project))
    assert summary.errors == []
    assert summary.files_scanned == 2
    assert sorted(f.text for f in summary.found) == [
        "Are you sure you want to delete this configuration?",
        "Welcome to the dashboard",
    ]
    assert summary.strings_added == 2
    assert summary.strings_replaced == 2
    assert summary.files_updated == 2

    i18n = project / "src" / "assets" / "i18n"
    assert flatten_tree(read_json(i18n / "en-US.json")) == {
        CONFIRM_KEY: "Are you sure you want to delete this configuration?",
        WELCOME_KEY: "Welcome to the dashboard",
    }
    assert flatten_tree(read_json(i18n / "pt-BR.json")) == {CONFIRM_KEY: "", WELCOME_KEY: ""}
    assert read_json(i18n / "translate-manifest.json")["locales"]["en-US"] == ["en-US.json"]
    assert (project / "src" / "assets" / "i18n-languages.json").is_file()

    ts = (project / "src" / "app" / "home" / "home.component.ts").read_text(encoding="utf-8")
    assert f"const ok = confirm(this.translate.instant('{CONFIRM_KEY}'));" in ts
    assert 'console.log("debug info");' in ts
    assert "private translate = inject(TranslateService);" in ts
    assert "imports: [TranslatePipe]," in ts
    html = (project / "src" / "app" / "home" / "home.component.html").read_text(encoding="utf-8")
    assert html == f"<h1>{{{{ '{WELCOME_KEY}' | translate }}}}</h1>\n"


def test_second_run_changes_nothing(project):
    config = load_config(project)
    run_extract(project, config)
    i18n = project / "src" / "assets" / "i18n"
    before = (i18n / "en-US.json").read_text(encoding="utf-8")

    summary = run_extract(project, config)
    assert summary.strings_added == 0
    assert summary.strings_replaced == 0
    assert (i18n / "en-US.json").read_text(encoding="utf-8") == before


def test_dry_run_writes_nothing(project):
    summary = run_extract(project, load_config(project), dry_run=True)
    assert len(summary.found) == 2
    assert not (project / "src" / "assets").exists()
    assert "confirm('Are you sure" in (project / "src" / "app" / "home" / "home.component.ts").read_text(
        encoding="utf-8"
    )


def test_no_replace_only_updates_locales(project):
    summary = run_extract(project, load_config(project), replace=False)
    assert summary.strings_added == 2
    assert summary.strings_replaced == 0
    assert "confirm('Are you sure" in (project / "src" / "app" / "home" / "home.component.ts").read_text(
        encoding="utf-8"
    )


def test_missing_default_locale_aborts_before_writing(project):
    write_json(project / "src" / "assets" / "i18n-languages.json", [{"code": "fr-FR"}])
    with pytest.raises(MissingDefaultLocaleError):
        run_extract(project, load_config(project))
    assert not (project / "src" / "assets" / "i18n").exists()


def test_only_main_active_languages(project):
    write_json(
        project / "src" / "assets" / "i18n-languages.json",
        [
            {"code": "en-US", "default": True},
            {"code": "pt-BR"},
            {"code": "pt-PT"},
            {"code": "de-DE", "active": False},
        ],
    )
    write_json(project / "i18n-extract.json", {"onlyMainLanguages": True, "onlyGenerateActiveLangs": True})
    run_extract(project, load_config(project), replace=False)
    i18n = project / "src" / "assets" / "i18n"
    assert sorted(p.name for p in i18n.iterdir()) == ["en.json", "pt.json", "translate-manifest.json"]


def test_translate_without_command_is_reported(project):
    summary = run_extract(project, load_config(project), replace=False, translate=True)
    assert summary.errors == ["Translation requested but translatorCommand is not configured"]


def test_cli_extract_and_report(project, capsys):
    report = project / "report.json"
    code = main(["extract", "--root", str(project), "--no-replace", "--report-json", str(report)])
    out = capsys.readouterr().out
    assert code == 0
    assert "Scanned files: 2" in out
    assert "Strings added: 2" in out
    payload = read_json(report)
    assert payload["stringsAdded"] == 2
    assert payload["errors"] == []


def test_cli_dry_run_and_overrides(project, capsys):
    write(
        project / "src" / "app" / "profile.ts",
        "export function saved() {\n  showMessage('Profile saved successfully');\n}\n",
    )
    code = main(["extract", "--root", str(project), "--dry-run", "--aggressive-mode", "low"])
    out = capsys.readouterr().out
    assert code == 0
    assert "Scanned files: 3" in out
    # confirm() stays allowed through the default call regex
    assert "Found strings: 2" in out
    assert "Restricted strings: 1" in out
    assert "Dry run only. No files were modified." in out


def test_cli_fatal_errors_exit_2(project, capsys):
    assert main(["extract", "--root", str(project), "--config", str(project / "missing.json")]) == 2
    assert "Error: Config file not found" in capsys.readouterr().out


def test_cli_languages_and_reverse(project, capsys):
    assert main(["languages", "--root", str(project)]) == 0
    out = capsys.readouterr().out
    assert "en-US\tEnglish (United States)\tEnglish (United States) [default]" in out

    assert main(["extract", "--root", str(project)]) == 0
    assert main(["reverse", "--root", str(project)]) == 0
    out = capsys.readouterr().out
    assert "Restored: 2" in out
    html = (project / "src" / "app" / "home" / "home.component.html").read_text(encoding="utf-8")
    assert html == "<h1>Welcome to the dashboard</h1>\n"


def test_unreadable_locale_json_does_not_stop_the_run(project):
    write_json(project / "src" / "assets" / "i18n" / "countries.json", [1, 2])
    summary = run_extract(project, load_config(project), remove_keys=["APP.A.OLD"])

    assert len(summary.errors) == 1
    assert "countries.json" in summary.errors[0]
    assert summary.strings_replaced == 2
    assert (project / "src" / "assets" / "i18n" / "translate-manifest.json").is_file()
