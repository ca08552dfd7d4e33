"""Import and dependency-injection patching for component files.

All helpers take source text and return ``(patched, changed)``.
"""

from __future__ import annotations

import re
from pathlib import Path

from .models import BootstrapStyle

TRANSLATE_MODULE = "@ngx-translate/core"
ANGULAR_CORE = "@angular/core"

IMPORT_LINE_RE = re.compile(r"^import\s[^;]*?from\s*['\"][^'\"]+['\"];?[ \t]*$", re.MULTILINE)
COMPONENT_DECORATOR_RE = re.compile(r"@Component\s*\(\s*\{")
IMPORTS_ARRAY_RE = re.compile(r"\bimports\s*:\s*\[")
CLASS_OPEN_RE = re.compile(r"\bclass\s+\w+[^{]*\{")
CONSTRUCTOR_RE = re.compile(r"\bconstructor\s*\(([^)]*)\)")
INJECT_FIELD_RE = re.compile(r"\btranslate\s*=\s*inject\s*\(\s*TranslateService\s*\)")
CTOR_TRANSLATE_RE = re.compile(r"\bconstructor\s*\([^)]*\btranslate\s*:\s*TranslateService\b")
STATIC_FACTORY_RE = re.compile(r"\bTranslateModule\s*\.\s*for(?:Root|Child)\b")
PIPE_USAGE_RE = re.compile(r"\|\s*translate\b")
TEMPLATE_URL_RE = re.compile(r"\btemplateUrl\s*:\s*(['\"`])([^'\"`]+)\1")


def _named_import_re(module: str) -> re.Pattern[str]:
    return re.compile(
        r"import\s*\{\s*([^}]*)\}\s*from\s*(['\"])" + re.escape(module) + r"\2;?"
    )


def ensure_named_import(code: str, name: str, module: str = TRANSLATE_MODULE) -> tuple[str, bool]:
    match = _named_import_re(module).search(code)
    if match:
        names = [n.strip() for n in match.group(1).split(",") if n.strip()]
        if name in names:
            return code, False
        names.append(name)
        new_import = f"import {{ {', '.join(names)} }} from {match.group(2)}{module}{match.group(2)};"
        return code[: match.start()] + new_import + code[match.end() :], True

    new_line = f"import {{ {name} }} from '{module}';"
    import_matches = list(IMPORT_LINE_RE.finditer(code))
    if import_matches:
        insert_at = import_matches[-1].end()
        return code[:insert_at] + "\n" + new_line + code[insert_at:], True
    return new_line + "\n" + code, True


def remove_named_import(code: str, name: str, module: str = TRANSLATE_MODULE) -> tuple[str, bool]:
    match = _named_import_re(module).search(code)
    if not match:
        return code, False
    names = [n.strip() for n in match.group(1).split(",") if n.strip()]
    if name not in names:
        return code, False
    kept = [n for n in names if n != name]
    if kept:
        new_import = f"import {{ {', '.join(kept)} }} from {match.group(2)}{module}{match.group(2)};"
    else:
        new_import = ""
    patched = code[: match.start()] + new_import + code[match.end() :]
    patched = re.sub(r"\n{3,}", "\n\n", patched)
    return patched, True


def _matching_close(code: str, open_idx: int, open_ch: str, close_ch: str) -> int:
    depth = 0
    quote: str | None = None
    i = open_idx
    while i < len(code):
        ch = code[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "'\"`":
            quote = ch
        elif ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def ensure_component_imports_entry(code: str, name: str) -> tuple[str, bool]:
    """Add ``name`` to the standalone component's ``imports: [...]`` array."""
    decorator = COMPONENT_DECORATOR_RE.search(code)
    if not decorator:
        return code, False
    meta_open = decorator.end() - 1
    meta_close = _matching_close(code, meta_open, "{", "}")
    if meta_close < 0:
        return code, False

    array = IMPORTS_ARRAY_RE.search(code, meta_open, meta_close)
    if array:
        array_open = array.end() - 1
        array_close = _matching_close(code, array_open, "[", "]")
        if array_close < 0:
            return code, False
        if re.search(rf"\b{re.escape(name)}\b", code[array_open:array_close]):
            return code, False
        body = code[array_open + 1 : array_close]
        insert = f"{name}, " if body.strip() else name
        return code[: array_open + 1] + insert + code[array_open + 1 :], True

    insert = f"\n  imports: [{name}],"
    return code[: meta_open + 1] + insert + code[meta_open + 1 :], True


def add_translate_pipe(code: str, *, standalone: bool) -> tuple[str, bool]:
    patched, changed = ensure_named_import(code, "TranslatePipe")
    if standalone:
        patched, in_array = ensure_component_imports_entry(patched, "TranslatePipe")
        changed = changed or in_array
    return patched, changed


def add_translate_service(code: str, style: BootstrapStyle) -> tuple[str, bool]:
    """Make ``this.translate`` available inside the first class of ``code``."""
    patched, changed = ensure_named_import(code, "TranslateService")
    if INJECT_FIELD_RE.search(patched) or CTOR_TRANSLATE_RE.search(patched):
        return patched, changed

    if style == "standalone":
        class_open = CLASS_OPEN_RE.search(patched)
        if not class_open:
            return patched, changed
        patched, _ = ensure_named_import(patched, "inject", ANGULAR_CORE)
        class_open = CLASS_OPEN_RE.search(patched)
        at = class_open.end()
        field = "\n  private translate = inject(TranslateService);\n"
        return patched[:at] + field + patched[at:], True

    ctor = CONSTRUCTOR_RE.search(patched)
    if ctor:
        params = ctor.group(1)
        param = "private translate: TranslateService"
        insert = f"{param}, " if params.strip() else param
        at = ctor.start(1)
        return patched[:at] + insert + patched[at:], True
    class_open = CLASS_OPEN_RE.search(patched)
    if not class_open:
        return patched, changed
    at = class_open.end()
    block = "\n  constructor(private translate: TranslateService) {}\n"
    return patched[:at] + block + patched[at:], True


def external_template_uses_pipe(code: str, path: Path) -> bool:
    match = TEMPLATE_URL_RE.search(code)
    if not match:
        return False
    template = path.parent / match.group(2)
    try:
        markup = template.read_text(encoding="utf-8")
    except OSError:
        return False
    return PIPE_USAGE_RE.search(markup) is not None


def cleanup_translate_imports(code: str, path: Path) -> tuple[str, bool]:
    """Drop ``TranslateModule``/``TranslatePipe`` from component imports after a reversal.

    Files that call ``TranslateModule.forRoot``/``forChild`` or still use the
    translate pipe, inline or in their ``templateUrl`` file, are left alone.
    """
    if path.suffix.lower() not in {".ts", ".tsx"}:
        return code, False
    if STATIC_FACTORY_RE.search(code) or PIPE_USAGE_RE.search(code):
        return code, False
    if external_template_uses_pipe(code, path):
        return code, False

    patched = code
    for name in ("TranslateModule", "TranslatePipe"):
        token = rf"\b{name}\b(?!\s*\.)"
        patched = re.sub(rf"{token}\s*,\s*", "", patched)
        patched = re.sub(rf",\s*{token}", "", patched)
        patched = re.sub(rf"(\bimports\s*:\s*\[\s*){token}(\s*\])", r"\1\2", patched)
        body_without_imports = _named_import_re(TRANSLATE_MODULE).sub("", patched)
        if not re.search(rf"\b{name}\b", body_without_imports):
            patched, _ = remove_named_import(patched, name)
    return patched, patched != code
