from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path

from .config import load_config
from .languages import ensure_languages, load_languages, locale_codes, normalize_languages
from .models import ConfigError, MissingDefaultLocaleError
from .pipeline import run_extract
from .reverse import Selection, reverse_translate

MAX_PRINTED_ERRORS = 20


def print_errors(errors: list[str], title: str = "First errors:") -> None:
    if not errors:
        return
    print(title)
    for err in errors[:MAX_PRINTED_ERRORS]:
        print(f"- {err}")
    if len(errors) > MAX_PRINTED_ERRORS:
        print(f"... and {len(errors) - MAX_PRINTED_ERRORS} more")


def cmd_extract(args: argparse.Namespace) -> int:
    root = args.root.resolve()
    config = load_config(root, args.config)
    overrides = {}
    if args.update_mode:
        overrides["update_mode"] = args.update_mode
    if args.aggressive_mode:
        overrides["aggressive_mode"] = args.aggressive_mode
    if overrides:
        config = replace(config, **overrides)

    summary = run_extract(
        root,
        config,
        dry_run=args.dry_run,
        replace=not args.no_replace,
        remove_keys=args.remove_key,
        translate=args.translate,
        concurrency=args.concurrency,
    )

    print(f"Scanned files: {summary.files_scanned}")
    print(f"Found strings: {len(summary.found)}")
    print(f"Restricted strings: {len(summary.restricted)}")
    if args.dry_run:
        print("Dry run only. No files were modified.")
    else:
        print(f"Strings added: {summary.strings_added}")
        print(f"Strings replaced: {summary.strings_replaced}")
        print(f"Files updated: {summary.files_updated}")
        if summary.keys_removed:
            print(f"Keys removed: {summary.keys_removed}")
        if args.translate:
            print(f"Translated entries: {summary.translated}")
        print(f"Failed: {summary.failed}")
        if summary.manifest is not None:
            print(f"Manifest: {summary.manifest}")
    print(f"Errors: {len(summary.errors)}")
    print_errors(summary.errors)

    if args.report_json:
        report_path = args.report_json.resolve()
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(
            json.dumps(summary.as_dict(), ensure_ascii=False, indent=2) + "\n",
            encoding="utf-8",
        )
        print(f"Report: {report_path}")

    return 1 if summary.errors else 0


def cmd_reverse(args: argparse.Namespace) -> int:
    root = args.root.resolve()
    config = load_config(root, args.config)
    languages = normalize_languages(load_languages(root / config.languages_json_path))
    base_code, _ = locale_codes(languages, only_main=config.only_main_languages)

    src_dir = root / config.src_dir
    target = (root / args.path).resolve() if args.path else src_dir
    if not target.exists():
        raise ConfigError(f"Path not found: {target}")
    selection = Selection.parse(args.selection) if args.selection else None

    result = reverse_translate(
        target,
        src_dir=src_dir,
        output_root=root / config.output_root,
        base_code=base_code,
        ignore_globs=config.ignore_globs,
        selection=selection,
        dry_run=args.dry_run,
    )
    print(f"Restored: {result.success}")
    print(f"Failed: {result.failed}")
    print_errors(result.errors, "Errors:")
    return 1 if result.errors else 0


def cmd_languages(args: argparse.Namespace) -> int:
    root = args.root.resolve()
    config = load_config(root, args.config)
    path = root / config.languages_json_path
    entries = ensure_languages(path)
    for entry in entries:
        marks = []
        if entry.default:
            marks.append("default")
        if not entry.active:
            marks.append("inactive")
        suffix = f" [{', '.join(marks)}]" if marks else ""
        print(f"{entry.code}\t{entry.english_name}\t{entry.native_name}{suffix}")
    print(f"Languages file: {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="i18n-extract",
        description="Extract user-facing strings from Angular sources into locale JSON files.",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--root", type=Path, default=Path("."), help="Project root path.")
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Config JSON path (default: <root>/i18n-extract.json).",
    )
    common.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)

    extract = sub.add_parser("extract", parents=[common], help="Run the extraction pipeline.")
    extract.add_argument(
        "--dry-run",
        action="store_true",
        help="Classify and report only. No files are written.",
    )
    extract.add_argument(
        "--no-replace",
        action="store_true",
        help="Update locale files but leave the sources untouched.",
    )
    extract.add_argument(
        "--remove-key",
        action="append",
        default=[],
        metavar="KEY",
        help="Remove a key from every locale file (repeatable).",
    )
    extract.add_argument("--update-mode", choices=["merge", "overwrite", "recreate"])
    extract.add_argument("--aggressive-mode", choices=["low", "moderate", "high"])
    extract.add_argument(
        "--translate",
        action="store_true",
        help="Run the configured translator command on the base locale files.",
    )
    extract.add_argument("--concurrency", type=int, default=8)
    extract.add_argument("--report-json", type=Path, default=None, help="Optional report output path.")
    extract.set_defaults(func=cmd_extract)

    reverse = sub.add_parser(
        "reverse", parents=[common], help="Restore literal text from key references."
    )
    reverse.add_argument("--path", default=None, help="File or folder (default: srcDir).")
    reverse.add_argument("--selection", default=None, metavar="L1:C1-L2:C2")
    reverse.add_argument("--dry-run", action="store_true")
    reverse.set_defaults(func=cmd_reverse)

    languages = sub.add_parser(
        "languages", parents=[common], help="Seed and normalize the languages file."
    )
    languages.set_defaults(func=cmd_languages)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if getattr(args, "concurrency", 1) <= 0:
        parser.error("--concurrency must be > 0")
    try:
        return args.func(args)
    except (ConfigError, MissingDefaultLocaleError, ValueError) as exc:
        print(f"Error: {exc}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
