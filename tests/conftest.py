from __future__ import annotations

import json
from pathlib import Path

import pytest

from i18n_extract.heuristics import ClassifierPolicy


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def write_json(path: Path, data: object) -> Path:
    return write(path, json.dumps(data, ensure_ascii=False, indent=2) + "\n")


def read_json(path: Path) -> object:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def policy() -> ClassifierPolicy:
    return ClassifierPolicy(min_length=3)
