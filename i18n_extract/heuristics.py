"""Heuristic policy for deciding whether a piece of text is user-facing.

Every keyword list and shape pattern the classifier consults lives in
``ClassifierPolicy`` so that it can be audited, overridden and tested in
isolation. The module-level functions are pure and take the policy (or the
pieces of it they need) as arguments.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field

from .models import AggressiveMode

DIGITS_ONLY_RE = re.compile(r"^[\d\s]+$")
URL_OR_PATH_RE = re.compile(r"^(?:https?://|/|#)")
INTERPOLATION_RE = re.compile(r"\{\{[\s\S]*?\}\}|\$\{[\s\S]*?\}")
CONSTANT_LIKE_RE = re.compile(r"^[A-Z0-9_.-]{8,}$")
HEX_LIKE_RE = re.compile(r"^[a-f0-9]{8,}$", re.IGNORECASE)
MODULE_SPECIFIER_RE = re.compile(r"^(?:@|\.{1,2}/)")
BARE_MODULE_PATH_RE = re.compile(r"^[A-Za-z0-9._-]+/[A-Za-z0-9._-]+$")

CONTROL_FLOW_BLOCK_RE = re.compile(
    r"@(?:if|for|switch|case|else|empty|defer|loading|error|placeholder)\s*\(",
    re.IGNORECASE,
)
BRACE_THEN_BLOCK_RE = re.compile(r"^\s*\}\s*[@{]")
BRACKETS_ONLY_RE = re.compile(r"^[{}()\[\]\s@]+$")
ESCAPED_QUOTE_RE = re.compile(r'\\"')
ATTRIBUTE_FRAGMENT_RE = re.compile(
    r"=[\"']|[\"']\s*(?:class|id|type|name|placeholder|title|alt|aria|data)\s*=",
    re.IGNORECASE,
)
CLASS_LIST_RE = re.compile(r"^[a-z0-9-]+(?:\s+[a-z0-9-]+)*$", re.IGNORECASE)
ESCAPE_SEQUENCE_RE = re.compile(r"\\[nt\"'`<>\\]")
PROPERTY_ACCESS_RE = re.compile(r"\?\.|\)\s*\?\.|\(\s*\)|store\.|\w+\(\.")

TECHNICAL_IDENTIFIER_PATTERNS: tuple[tuple[str, str], ...] = (
    ("snake_case", r"^[a-z]+(?:_[a-z0-9]+)+$"),
    ("camelCase", r"^[a-z]+(?:[A-Z][a-z0-9]*)+$"),
    ("PascalCase", r"^[A-Z][a-z0-9]+(?:[A-Z][a-z0-9]*)+$"),
    ("kebab-case", r"^[a-z0-9]+(?:-[a-z0-9]+)+$"),
    ("dot.notation", r"^[A-Za-z0-9]+(?:\.[A-Za-z0-9]+)+$"),
)


@dataclass(frozen=True)
class ClassifierPolicy:
    min_length: int = 2
    aggressive_mode: AggressiveMode = "moderate"
    allow_call_regex: tuple[re.Pattern[str], ...] = ()
    allow_context_regex: tuple[re.Pattern[str], ...] = ()
    attribute_names: frozenset[str] = frozenset(
        {"title", "alt", "placeholder", "aria-label", "aria-placeholder"}
    )

    component_decorators: frozenset[str] = frozenset({"Component"})
    ignored_decorators: frozenset[str] = frozenset(
        {
            "Component",
            "Directive",
            "Pipe",
            "NgModule",
            "Injectable",
            "Input",
            "Output",
            "HostBinding",
            "HostListener",
            "ViewChild",
            "ViewChildren",
            "ContentChild",
            "ContentChildren",
        }
    )
    translate_methods: frozenset[str] = frozenset({"instant", "get", "stream"})
    translate_object_re: re.Pattern[str] = re.compile(r"translate", re.IGNORECASE)
    module_loader_names: frozenset[str] = frozenset({"require", "import"})

    message_functions: frozenset[str] = frozenset(
        {
            "alert",
            "confirm",
            "prompt",
            "signal",
            "Error",
            "TypeError",
            "RangeError",
            "ReferenceError",
            "SyntaxError",
            "URIError",
            "EvalError",
        }
    )
    dialog_globals: frozenset[str] = frozenset({"alert", "confirm", "prompt"})
    developer_log_methods: frozenset[str] = frozenset({"log", "debug", "trace"})
    console_objects: frozenset[str] = frozenset({"console"})
    message_methods: frozenset[str] = frozenset(
        {
            "toast",
            "snackbar",
            "notification",
            "message",
            "showMessage",
            "showError",
            "showWarning",
            "showInfo",
            "showSuccess",
            "openSnackBar",
            "open",
            "error",
            "success",
            "warning",
            "info",
            "set",
            "setText",
            "setMessage",
            "setError",
            "add",
            "push",
            "show",
            "display",
            "present",
            "alert",
            "notify",
            "emit",
            "throwError",
            "reject",
            "fail",
            "setContent",
            "setTitle",
            "setDescription",
            "signal",
        }
    )
    message_services: frozenset[str] = frozenset(
        {
            "toastr",
            "snackBar",
            "messageService",
            "notificationService",
            "toast",
            "dialog",
            "modal",
            "alert",
            "notification",
            "message",
        }
    )
    this_member_re: re.Pattern[str] = re.compile(
        r"^(?:error|message|notification|alert|toast|status|feedback|result|response)s?$",
        re.IGNORECASE,
    )
    message_object_re: re.Pattern[str] = re.compile(
        r"^(?:error|message|notification|alert|toast|status|feedback)s?$",
        re.IGNORECASE,
    )
    error_constructor_re: re.Pattern[str] = re.compile(r"Error$")
    message_properties: frozenset[str] = frozenset(
        {
            "title",
            "message",
            "text",
            "label",
            "placeholder",
            "tooltip",
            "description",
            "errorMessage",
            "successMessage",
            "warningMessage",
            "infoMessage",
            "header",
            "content",
            "body",
            "subject",
            "detail",
            "summary",
            "error",
            "warning",
            "info",
            "success",
            "alert",
            "notification",
            "feedback",
            "status",
            "statusText",
        }
    )
    technical_identifiers: tuple[tuple[str, re.Pattern[str]], ...] = field(
        default_factory=lambda: tuple(
            (name, re.compile(pattern)) for name, pattern in TECHNICAL_IDENTIFIER_PATTERNS
        )
    )
    single_word_min_length: int = 10


@dataclass(frozen=True)
class CallContext:
    """Where a literal sits when it is an argument of a call."""

    callee: str
    arg_index: int
    call_source: str

    @property
    def context(self) -> str:
        return f"{self.callee}(arg#{self.arg_index + 1})"


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    reason: str


def compile_regex_list(patterns: list[str] | tuple[str, ...]) -> tuple[re.Pattern[str], ...]:
    """Compile user-supplied patterns, accepting the ``/body/flags`` form.

    Invalid or empty entries are dropped.
    """
    flag_map = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "u": 0, "g": 0, "y": 0}
    compiled: list[re.Pattern[str]] = []
    for raw in patterns or ():
        if not isinstance(raw, str):
            continue
        pattern = raw.strip()
        if not pattern:
            continue
        flags = 0
        slash = re.match(r"^/(.*)/([gimsuy]*)$", pattern)
        if slash:
            pattern = slash.group(1)
            for letter in slash.group(2):
                flags |= flag_map[letter]
        try:
            compiled.append(re.compile(pattern, flags))
        except re.error:
            continue
    return tuple(compiled)


def matches_any(patterns: tuple[re.Pattern[str], ...], value: str) -> bool:
    if not value:
        return False
    return any(p.search(value) for p in patterns)


def is_punctuation_or_symbol_only(text: str) -> bool:
    return all(
        ch.isspace() or unicodedata.category(ch)[0] in {"P", "S"} for ch in text
    )


def _common_rejections(text: str, min_length: int) -> bool:
    if len(text) < min_length:
        return True
    if DIGITS_ONLY_RE.match(text):
        return True
    if is_punctuation_or_symbol_only(text):
        return True
    if URL_OR_PATH_RE.match(text):
        return True
    if INTERPOLATION_RE.search(text):
        return True
    return False


def is_probably_user_facing(text: str, min_length: int) -> bool:
    """Content filter for source-code literals."""
    t = (text or "").strip()
    if _common_rejections(t, min_length):
        return False
    if CONSTANT_LIKE_RE.match(t):
        return False
    if HEX_LIKE_RE.match(t):
        return False
    return True


def is_markup_user_facing(text: str, min_length: int) -> bool:
    """Content filter for markup text nodes and attribute values."""
    t = (text or "").strip()
    if _common_rejections(t, min_length):
        return False
    if CONTROL_FLOW_BLOCK_RE.search(t):
        return False
    if BRACE_THEN_BLOCK_RE.match(t):
        return False
    if BRACKETS_ONLY_RE.match(t):
        return False
    if ESCAPED_QUOTE_RE.search(t):
        return False
    if ATTRIBUTE_FRAGMENT_RE.search(t):
        return False
    if CLASS_LIST_RE.match(t) and "-" in t:
        return False
    if ESCAPE_SEQUENCE_RE.search(t):
        return False
    if PROPERTY_ACCESS_RE.search(t):
        return False
    return True


def looks_like_module_specifier(text: str) -> bool:
    t = (text or "").strip()
    if not t:
        return False
    return bool(MODULE_SPECIFIER_RE.match(t) or BARE_MODULE_PATH_RE.match(t))


def is_high_confidence(text: str) -> bool:
    """Sentence-like shape: spaced text starting upper-case, or terminal punctuation."""
    if re.search(r"\s", text) and re.match(r"^[A-Z]", text):
        return True
    return bool(re.search(r"[.!?]$", text))


def technical_identifier_shape(text: str, policy: ClassifierPolicy) -> str | None:
    for name, pattern in policy.technical_identifiers:
        if pattern.match(text):
            return name
    return None


def evaluate_aggressive_mode(
    text: str,
    call: CallContext | None,
    policy: ClassifierPolicy,
) -> PolicyDecision:
    """Permissiveness verdict for a literal passed as a call argument."""
    if call is None:
        return PolicyDecision(True, "not-a-function-parameter")

    if matches_any(policy.allow_context_regex, call.context) or matches_any(
        policy.allow_call_regex, call.call_source
    ):
        return PolicyDecision(
            True, "allowed-by-regex-override (priority over aggressiveMode)"
        )

    mode = policy.aggressive_mode
    if mode == "high":
        return PolicyDecision(True, "allowed-by-high-mode")
    if mode == "low":
        return PolicyDecision(
            False,
            "restricted by aggressiveMode=low (strings inside function parameters are blocked)",
        )

    normalized = (text or "").strip()
    words = normalized.split()
    if len(words) > 1:
        return PolicyDecision(True, "allowed-by-moderate-mode-multi-word")

    shape = technical_identifier_shape(normalized, policy)
    if shape:
        return PolicyDecision(
            False, f"restricted by aggressiveMode=moderate (technical identifier format: {shape})"
        )

    if len(words) == 1 and len(words[0]) > policy.single_word_min_length:
        return PolicyDecision(
            True,
            f"allowed-by-moderate-mode-single-word-length>{policy.single_word_min_length}",
        )

    return PolicyDecision(
        False,
        "restricted by aggressiveMode=moderate (requires multi-word or single-word "
        f"> {policy.single_word_min_length} chars in function parameters)",
    )
