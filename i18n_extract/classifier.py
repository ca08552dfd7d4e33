"""Candidate classifier for TypeScript/JavaScript component sources.

Two passes run over one ``NodeArena``:

1. decorators recognised as component declarations hand their inline
   ``template`` to the markup scanner, and the template literal's node id is
   recorded as consumed;
2. every remaining string/template literal goes through the visitor table
   below and is accepted, restricted (rejected by the permissiveness tier,
   kept for reporting) or silently dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from .heuristics import (
    CallContext,
    ClassifierPolicy,
    evaluate_aggressive_mode,
    is_high_confidence,
    is_probably_user_facing,
    looks_like_module_specifier,
)
from .markup import MarkupOrigin, extract_from_html_file, extract_from_markup
from .models import CandidateKind, ExtractionResult, FoundString, RestrictedString
from .syntax import (
    CONDITION_FIELDS,
    NodeArena,
    NodeKind,
    ParseFailure,
    SyntaxNode,
    VisitContext,
    parse_source,
    string_value,
    template_static_text,
    walk,
)

logger = logging.getLogger(__name__)

SCRIPT_SUFFIXES = {".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"}
MARKUP_SUFFIXES = {".html", ".htm"}


class ScriptClassifier:
    def __init__(
        self,
        arena: NodeArena,
        file_abs: str,
        file_rel: str,
        policy: ClassifierPolicy,
    ) -> None:
        self.arena = arena
        self.file_abs = file_abs
        self.file_rel = file_rel
        self.policy = policy
        self.consumed: set[int] = set()
        self.found: list[FoundString] = []
        self.restricted: list[RestrictedString] = []
        self.handlers: dict[NodeKind, Callable[[SyntaxNode, VisitContext], None]] = {
            NodeKind.CALL: self.visit_call,
            NodeKind.STRING: self.visit_string,
            NodeKind.TEMPLATE: self.visit_template,
        }

    def run(self) -> ExtractionResult:
        for node, ctx in walk(self.arena):
            if node.kind is NodeKind.DECORATOR:
                self.visit_decorator(node, ctx)
        for node, ctx in walk(self.arena):
            handler = self.handlers.get(node.kind)
            if handler is not None:
                handler(node, ctx)
        return ExtractionResult(found=self.found, restricted=self.restricted)

    # pass 1

    def decorator_name(self, node: SyntaxNode) -> str | None:
        for child in self.arena.children(node):
            target = child
            if target.kind is NodeKind.CALL:
                target = self.arena.field(target, "function")
            if target is None:
                return None
            if target.kind is NodeKind.IDENTIFIER:
                return self.arena.text(target)
            if target.kind is NodeKind.MEMBER:
                prop = self.arena.field(target, "property")
                return self.arena.text(prop) if prop is not None else None
        return None

    def visit_decorator(self, node: SyntaxNode, ctx: VisitContext) -> None:
        if self.decorator_name(node) not in self.policy.component_decorators:
            return
        call = next(iter(self.arena.children(node, NodeKind.CALL)), None)
        if call is None:
            return
        args = self.arena.field(call, "arguments")
        if args is None:
            return
        meta = next(iter(self.arena.children(args, NodeKind.OBJECT)), None)
        if meta is None:
            return
        for pair in self.arena.children(meta, NodeKind.PAIR):
            if self.pair_key(pair) != "template":
                continue
            value = self.arena.field(pair, "value")
            if value is None or value.kind not in (NodeKind.STRING, NodeKind.TEMPLATE):
                continue
            self.consumed.add(value.id)
            markup = self.arena.source[value.start + 1 : value.end - 1]
            self.found.extend(
                extract_from_markup(
                    markup,
                    self.file_abs,
                    self.file_rel,
                    self.policy.min_length,
                    self.policy.attribute_names,
                    origin=MarkupOrigin(value.line, value.column + 1),
                )
            )

    # pass 2

    def visit_call(self, node: SyntaxNode, ctx: VisitContext) -> None:
        """Record ``x.translate.instant('KEY')`` style calls as already translated."""
        callee = self.arena.field(node, "function")
        if callee is None or callee.kind is not NodeKind.MEMBER:
            return
        prop = self.arena.field(callee, "property")
        if prop is None or self.arena.text(prop) not in self.policy.translate_methods:
            return
        owner = self.arena.field(callee, "object")
        owner_name = self.member_tail(owner)
        if not owner_name or not self.policy.translate_object_re.search(owner_name):
            return
        args = self.arena.field(node, "arguments")
        if args is None:
            return
        first = next(iter(self.arena.children(args)), None)
        if first is None or first.kind is not NodeKind.STRING:
            return
        key = string_value(self.arena, first)
        if not key:
            return
        self.consumed.add(first.id)
        self.found.append(
            FoundString(
                file_abs=self.file_abs,
                file_rel=self.file_rel,
                line=first.line,
                column=first.column,
                text=key,
                raw_text=self.arena.text(first),
                kind="string-literal",
                is_already_translated=True,
            )
        )

    def visit_string(self, node: SyntaxNode, ctx: VisitContext) -> None:
        self.classify_literal(node, ctx, "string-literal", string_value(self.arena, node))

    def visit_template(self, node: SyntaxNode, ctx: VisitContext) -> None:
        if self.arena.children(node, NodeKind.TEMPLATE_SUBSTITUTION):
            return
        self.classify_literal(
            node, ctx, "template-literal", template_static_text(self.arena, node)
        )

    def classify_literal(
        self,
        node: SyntaxNode,
        ctx: VisitContext,
        kind: CandidateKind,
        value: str,
    ) -> None:
        if node.id in self.consumed:
            return
        if self.in_ignored_context(node, ctx):
            return
        if self.in_control_flow_condition(node, ctx):
            return

        text = value.strip()
        call = self.call_context(node, ctx)
        decision = evaluate_aggressive_mode(text, call, self.policy)
        ignore_min_length = self.policy.aggressive_mode == "high" and call is not None
        min_length = 1 if ignore_min_length else self.policy.min_length
        if not is_probably_user_facing(text, min_length):
            return

        if call is not None and not decision.allowed:
            self.restricted.append(
                RestrictedString(
                    file_abs=self.file_abs,
                    file_rel=self.file_rel,
                    line=node.line,
                    column=node.column,
                    text=text,
                    kind=kind,
                    reason=decision.reason,
                    call_context=call.context,
                )
            )
            return

        accepted = (
            self.in_message_context(node, ctx)
            or is_high_confidence(text)
            or (call is not None and decision.allowed)
        )
        if not accepted or looks_like_module_specifier(text):
            return
        self.found.append(
            FoundString(
                file_abs=self.file_abs,
                file_rel=self.file_rel,
                line=node.line,
                column=node.column,
                text=text,
                raw_text=self.arena.text(node),
                kind=kind,
            )
        )

    # context predicates

    def pair_key(self, pair: SyntaxNode) -> str | None:
        key = self.arena.field(pair, "key")
        if key is None:
            return None
        if key.kind is NodeKind.STRING:
            return string_value(self.arena, key)
        return self.arena.text(key)

    def member_tail(self, node: SyntaxNode | None) -> str | None:
        if node is None:
            return None
        if node.kind is NodeKind.IDENTIFIER:
            return self.arena.text(node)
        if node.kind is NodeKind.MEMBER:
            prop = self.arena.field(node, "property")
            return self.arena.text(prop) if prop is not None else None
        return None

    def callee_name(self, node: SyntaxNode | None) -> str:
        if node is None:
            return "<unknown>"
        if node.kind in (NodeKind.IDENTIFIER, NodeKind.THIS):
            return self.arena.text(node)
        if node.kind is NodeKind.MEMBER:
            prop = self.arena.field(node, "property")
            owner = self.callee_name(self.arena.field(node, "object"))
            return f"{owner}.{self.arena.text(prop) if prop is not None else '<unknown>'}"
        if node.kind is NodeKind.CALL:
            return self.callee_name(self.arena.field(node, "function"))
        return "<unknown>"

    def is_console_call(self, call: SyntaxNode) -> bool:
        callee = self.arena.field(call, "function")
        if callee is None or callee.kind is not NodeKind.MEMBER:
            return False
        owner = self.arena.field(callee, "object")
        return (
            owner is not None
            and owner.kind is NodeKind.IDENTIFIER
            and self.arena.text(owner) in self.policy.console_objects
        )

    def is_module_load(self, call: SyntaxNode) -> bool:
        callee = self.arena.field(call, "function")
        if callee is None:
            return False
        if callee.kind is NodeKind.IMPORT:
            return True
        return (
            callee.kind is NodeKind.IDENTIFIER
            and self.arena.text(callee) in self.policy.module_loader_names
        )

    def in_ignored_context(self, node: SyntaxNode, ctx: VisitContext) -> bool:
        parent = ctx.parent
        if parent is not None:
            if parent.kind is NodeKind.PAIR and parent.fields.get("key") == node.id:
                return True
            if parent.kind is NodeKind.SUBSCRIPT and parent.fields.get("index") == node.id:
                return True
            if parent.kind is NodeKind.EXPORT_STATEMENT and parent.fields.get("source") == node.id:
                return True

        for ancestor in ctx.ancestors:
            kind = ancestor.kind
            if kind in (NodeKind.IMPORT_STATEMENT, NodeKind.SPECIFIER, NodeKind.TYPE):
                return True
            if kind is NodeKind.DECORATOR:
                if self.decorator_name(ancestor) in self.policy.ignored_decorators:
                    return True
            elif kind is NodeKind.CALL:
                if self.is_console_call(ancestor) or self.is_module_load(ancestor):
                    return True
        return False

    def in_control_flow_condition(self, node: SyntaxNode, ctx: VisitContext) -> bool:
        for ancestor in ctx.ancestors:
            names = CONDITION_FIELDS.get(ancestor.kind)
            if names and ctx.within_field(ancestor, names, node):
                return True
        return False

    def call_context(self, node: SyntaxNode, ctx: VisitContext) -> CallContext | None:
        """Argument position of ``node`` within its nearest enclosing call.

        ``new`` expressions are not calls here; the literal may sit anywhere
        inside the argument expression.
        """
        call = ctx.nearest(NodeKind.CALL)
        if call is None:
            return None
        args = ctx.child_on_path(call, node)
        if args.kind is not NodeKind.ARGUMENTS:
            return None
        argument = ctx.child_on_path(args, node)
        siblings = [c.id for c in self.arena.children(args) if c.type != "comment"]
        if argument.id not in siblings:
            return None
        return CallContext(
            callee=self.callee_name(self.arena.field(call, "function")),
            arg_index=siblings.index(argument.id),
            call_source=self.arena.text(call),
        )

    def call_is_message(self, call: SyntaxNode) -> bool | None:
        """True/False when the call settles the question, None to keep looking."""
        policy = self.policy
        callee = self.arena.field(call, "function")
        if callee is None:
            return None
        if callee.kind is NodeKind.IDENTIFIER:
            return True if self.arena.text(callee) in policy.message_functions else None
        if callee.kind is not NodeKind.MEMBER:
            return None

        owner = self.arena.field(callee, "object")
        prop_node = self.arena.field(callee, "property")
        prop = self.arena.text(prop_node) if prop_node is not None else ""
        owner_text = self.arena.text(owner) if owner is not None else ""
        owner_is_ident = owner is not None and owner.kind is NodeKind.IDENTIFIER

        if owner_is_ident and owner_text in policy.console_objects:
            return False
        if prop in policy.developer_log_methods:
            return False
        if owner_is_ident and owner_text == "window" and prop in policy.dialog_globals:
            return True
        if prop in policy.message_methods:
            return True
        if owner is not None and owner.kind is NodeKind.MEMBER:
            inner = self.member_tail(owner) or ""
            if inner in policy.message_services:
                return True
            base = self.arena.field(owner, "object")
            if base is not None and base.kind is NodeKind.THIS and policy.this_member_re.match(inner):
                return True
        if owner_is_ident and (
            owner_text in policy.message_services or policy.message_object_re.match(owner_text)
        ):
            return True
        return None

    def in_message_context(self, node: SyntaxNode, ctx: VisitContext) -> bool:
        call = ctx.nearest(NodeKind.CALL)
        if call is not None:
            verdict = self.call_is_message(call)
            if verdict is not None:
                return verdict

        if ctx.nearest(NodeKind.THROW) is not None:
            return True
        new_expr = ctx.nearest(NodeKind.NEW)
        if new_expr is not None:
            ctor = self.arena.field(new_expr, "constructor")
            if ctor is not None and self.policy.error_constructor_re.search(self.arena.text(ctor)):
                return True
        if ctx.nearest(NodeKind.DECORATOR) is not None:
            return True
        pair = ctx.nearest(NodeKind.PAIR)
        if pair is not None and self.pair_key(pair) in self.policy.message_properties:
            return True
        return False


def extract_from_script(
    code: str,
    file_abs: str,
    file_rel: str,
    policy: ClassifierPolicy,
    suffix: str = ".ts",
) -> ExtractionResult:
    try:
        arena = parse_source(code, suffix)
    except ParseFailure as exc:
        logger.debug("parse failure in %s: %s", file_rel, exc)
        return ExtractionResult(errors=[f"{file_rel}: {exc}"])
    return ScriptClassifier(arena, file_abs, file_rel, policy).run()


def extract_from_script_file(path: Path, file_rel: str, policy: ClassifierPolicy) -> ExtractionResult:
    code = path.read_text(encoding="utf-8")
    return extract_from_script(code, str(path), file_rel, policy, suffix=path.suffix)


def extract_from_file(path: Path, file_rel: str, policy: ClassifierPolicy) -> ExtractionResult:
    """Classify one scanned file; read errors are reported, not raised."""
    suffix = path.suffix.lower()
    try:
        if suffix in MARKUP_SUFFIXES:
            found = extract_from_html_file(
                path, file_rel, policy.min_length, policy.attribute_names
            )
            return ExtractionResult(found=found)
        if suffix in SCRIPT_SUFFIXES:
            return extract_from_script_file(path, file_rel, policy)
    except (OSError, UnicodeDecodeError) as exc:
        return ExtractionResult(errors=[f"{file_rel}: {exc}"])
    return ExtractionResult()
