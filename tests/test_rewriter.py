from conftest import write

from i18n_extract.models import FoundString
from i18n_extract.rewriter import (
    Replacement,
    apply_replacements,
    build_replacement,
    reference_for,
    replace_extracted_strings,
)
from i18n_extract.offsets import line_offsets


def item(path, text, line, column, kind="string-literal", raw_text=None, **kwargs):
    return FoundString(
        file_abs=str(path),
        file_rel=path.name,
        line=line,
        column=column,
        text=text,
        kind=kind,
        raw_text=raw_text,
        **kwargs,
    )


def test_reference_syntax_per_kind(tmp_path):
    ts = item(tmp_path / "a.ts", "Hi there", 1, 0)
    assert reference_for(ts, "K", ".ts") == "this.translate.instant('K')"
    assert reference_for(ts, "K", ".js") == "translateService.instant('K')"
    node = item(tmp_path / "a.html", "Hi there", 1, 0, kind="text-node")
    assert reference_for(node, "K", ".html") == "{{ 'K' | translate }}"
    expr = item(tmp_path / "a.html", "Hi there", 1, 0, kind="interpolation-expression")
    assert reference_for(expr, "K", ".html") == "('K' | translate)"


def test_apply_replacements_skips_overlaps():
    content = "0123456789ABCDEF"
    out, applied = apply_replacements(
        content, [Replacement(0, 10, "x"), Replacement(5, 15, "y"), Replacement(15, 16, "z")]
    )
    assert applied == 2
    assert out == "01234yz"


def test_build_replacement_rejects_changed_source(tmp_path):
    content = "const a = 'Goodbye now';\n"
    stale = item(tmp_path / "a.ts", "Hello there", 1, 10, raw_text="'Hello there'")
    assert build_replacement(content, line_offsets(content), stale, "X") is None

    fresh = item(tmp_path / "a.ts", "Goodbye now", 1, 10, raw_text="'Goodbye now'")
    assert build_replacement(content, line_offsets(content), fresh, "X") == Replacement(10, 23, "X")


def test_build_replacement_without_raw_text_finds_literal_end(tmp_path):
    content = 'alert("Say \\"hi\\" now");\n'
    legacy = item(tmp_path / "a.ts", 'Say "hi" now', 1, 6)
    rep = build_replacement(content, line_offsets(content), legacy, "X")
    assert content[rep.start : rep.end] == '"Say \\"hi\\" now"'


def test_rewrites_markup_and_scaffolds_component(tmp_path):
    html = write(tmp_path / "home.component.html", "<h1>Welcome home</h1>\n<img alt=\"Company logo\">\n")
    component = write(
        tmp_path / "home.component.ts",
        "import { Component } from '@angular/core';\n\n"
        "@Component({\n  selector: 'app-home',\n  templateUrl: './home.component.html',\n})\n"
        "export class HomeComponent {}\n",
    )
    found = [
        item(html, "Welcome home", 1, 4, kind="text-node", raw_text="Welcome home"),
        item(html, "Company logo", 2, 10, kind="attribute-value", raw_text="Company logo"),
    ]
    keys = {str(html): {"Welcome home": "HOME.WELCOME_HOME", "Company logo": "HOME.COMPANY_LOGO"}}
    result = replace_extracted_strings(found, keys)

    assert result.strings_replaced == 2
    assert result.files_updated == 1
    assert result.failed == 0
    assert html.read_text(encoding="utf-8") == (
        "<h1>{{ 'HOME.WELCOME_HOME' | translate }}</h1>\n"
        "<img alt=\"{{ 'HOME.COMPANY_LOGO' | translate }}\">\n"
    )
    patched = component.read_text(encoding="utf-8")
    assert "import { TranslatePipe } from '@ngx-translate/core';" in patched
    assert "imports: [TranslatePipe]," in patched
    assert result.scaffolded_files == [component]


def test_rewrites_script_literal_and_injects_service(tmp_path):
    code = (
        "import { Component } from '@angular/core';\n\n"
        "export class ConfigComponent {\n"
        "  remove() {\n"
        "    return confirm('Delete this item?');\n"
        "  }\n"
        "}\n"
    )
    path = write(tmp_path / "config.component.ts", code)
    column = code.split("\n")[4].index("'Delete")
    found = [item(path, "Delete this item?", 5, column, raw_text="'Delete this item?'")]
    result = replace_extracted_strings(found, {str(path): {"Delete this item?": "CONFIG.DELETE_THIS_ITEM"}})

    patched = path.read_text(encoding="utf-8")
    assert "return confirm(this.translate.instant('CONFIG.DELETE_THIS_ITEM'));" in patched
    assert "import { Component, inject } from '@angular/core';" in patched
    assert "import { TranslateService } from '@ngx-translate/core';" in patched
    assert "private translate = inject(TranslateService);" in patched
    assert result.strings_replaced == 1


def test_mismatch_and_missing_key_are_counted_as_failed(tmp_path):
    path = write(tmp_path / "page.html", "<p>Changed text</p>\n<p>Other text</p>\n")
    found = [
        item(path, "Original text", 1, 3, kind="text-node", raw_text="Original text"),
        item(path, "Other text", 2, 3, kind="text-node", raw_text="Other text"),
        item(path, "Unmapped text", 2, 3, kind="text-node", raw_text="Unmapped text"),
    ]
    keys = {str(path): {"Original text": "A.ORIGINAL", "Other text": "A.OTHER"}}
    result = replace_extracted_strings(found, keys, scaffold=False)

    assert result.failed == 2
    assert result.strings_replaced == 1
    assert len(result.errors) == 2
    assert path.read_text(encoding="utf-8") == "<p>Changed text</p>\n<p>{{ 'A.OTHER' | translate }}</p>\n"


def test_already_translated_items_are_left_alone(tmp_path):
    code = "const t = this.translate.instant('HOME.TITLE');\n"
    path = write(tmp_path / "x.ts", code)
    found = [item(path, "HOME.TITLE", 1, 33, raw_text="'HOME.TITLE'", is_already_translated=True)]
    result = replace_extracted_strings(found, {str(path): {"HOME.TITLE": "HOME.TITLE"}})
    assert result.strings_replaced == 0
    assert path.read_text(encoding="utf-8") == code


def test_dry_run_leaves_files_untouched(tmp_path):
    path = write(tmp_path / "page.html", "<p>Some text</p>\n")
    found = [item(path, "Some text", 1, 3, kind="text-node", raw_text="Some text")]
    result = replace_extracted_strings(found, {str(path): {"Some text": "A.SOME_TEXT"}}, dry_run=True)
    assert result.strings_replaced == 1
    assert path.read_text(encoding="utf-8") == "<p>Some text</p>\n"
