from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

CandidateKind = Literal[
    "text-node",
    "attribute-value",
    "interpolation-expression",
    "string-literal",
    "template-literal",
]
MARKUP_KINDS = frozenset({"text-node", "attribute-value", "interpolation-expression"})
SCRIPT_KINDS = frozenset({"string-literal", "template-literal"})

UpdateMode = Literal["merge", "overwrite", "recreate"]
AggressiveMode = Literal["low", "moderate", "high"]
BootstrapStyle = Literal["standalone", "module"]

# file_abs -> {text -> key}
KeyMapByFile = dict[str, dict[str, str]]


@dataclass(frozen=True)
class FoundString:
    file_abs: str
    file_rel: str
    line: int
    column: int
    text: str
    kind: CandidateKind
    raw_text: str | None = None
    is_already_translated: bool = False

    @property
    def is_markup(self) -> bool:
        return self.kind in MARKUP_KINDS


@dataclass(frozen=True)
class RestrictedString:
    file_abs: str
    file_rel: str
    line: int
    column: int
    text: str
    kind: CandidateKind
    reason: str
    call_context: str | None = None


@dataclass(frozen=True)
class ExtractionResult:
    found: list[FoundString] = field(default_factory=list)
    restricted: list[RestrictedString] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class LanguageEntry:
    code: str
    english_name: str | None = None
    native_name: str | None = None
    flag: str | None = None
    rank: int | None = None
    default: bool = False
    active: bool = True

    @classmethod
    def from_json(cls, raw: dict) -> LanguageEntry:
        rank = raw.get("rank")
        return cls(
            code=str(raw["code"]),
            english_name=raw.get("englishName"),
            native_name=raw.get("nativeName"),
            flag=raw.get("flag"),
            rank=rank if isinstance(rank, int) else None,
            default=raw.get("default") is True,
            active=raw.get("active", True) is not False,
        )

    def to_json(self) -> dict:
        payload: dict[str, object] = {}
        if self.rank is not None:
            payload["rank"] = self.rank
        payload["code"] = self.code
        if self.english_name is not None:
            payload["englishName"] = self.english_name
        if self.native_name is not None:
            payload["nativeName"] = self.native_name
        if self.flag is not None:
            payload["flag"] = self.flag
        payload["default"] = self.default
        payload["active"] = self.active
        return payload


class ConfigError(ValueError):
    pass


class LocaleFileError(ValueError):
    pass


class MissingDefaultLocaleError(RuntimeError):
    pass
