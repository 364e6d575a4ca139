"""
The Markup evaluator: walks a tag tree against a context.
"""
import os
import re
import sys
from typing import Any, Dict, List, Mapping, Optional, Sequence

from markup.markup_datatypes import (
    Kind, kind_of, Literal, PipeCall, Tag, Template, PathNotFound, PipeError
)
from markup.markup_parser import compile_template
from markup.markup_printer import Printer
from markup.markup_resolver import PathResolver, ScopeStack

PLACEHOLDER = "???"

# `{{if x}}` means `{{if x|notempty}}`
IMPLICIT_IF_PIPES = (PipeCall("notempty"),)

_COMPACT_RE = re.compile(r">\s+<")


class Evaluator:
    """Renders templates against a scope stack.

    An Evaluator holds the lookup tables for one render call (pipes,
    includes, globals, usually ChainMaps layering call-local entries over
    the shared registries) plus the diagnostics gathered while rendering.
    """

    def __init__(self, pipes: Mapping[str, Any], includes: Optional[Mapping[str, Any]] = None,
                 globals_: Optional[Mapping[str, Any]] = None, delimiter: str = ">", compact: bool = False):
        self.pipes = pipes
        self.includes = includes if includes is not None else {}
        self.path_resolver = PathResolver(globals_)
        self.printer = Printer(delimiter)
        self.delimiter = delimiter
        self.compact = compact
        # One dict per tag that rendered the placeholder
        self.unresolved: List[Dict[str, Any]] = []
        self._include_stack: List[str] = []

    def _dbg(self, *parts):
        if os.environ.get("MARKUP_DEBUG"):
            try:
                print("[DBG]", *parts, file=sys.stderr)
            except Exception:
                pass

    def _miss(self, tag: Tag, reason: str, detail: str):
        loc = tag.loc or {}
        entry = {'tag': loc.get('text') or tag.to_str_repr(), 'line': loc.get('line'),
                 'col': loc.get('col'), 'reason': reason, 'detail': detail}
        self.unresolved.append(entry)
        self._dbg(f"{reason}: {entry['tag']} ({detail})")

    # ---------------------------------------------------------------
    # Entry points
    # ---------------------------------------------------------------

    def render(self, template: Template, context: Any = None) -> str:
        scopes = ScopeStack(context if context is not None else {})
        out = self.render_nodes(template.nodes, scopes)
        if self.compact:
            out = _COMPACT_RE.sub("><", out)
        return out

    def render_nodes(self, nodes: Sequence[Any], scopes: ScopeStack) -> str:
        return "".join(self._render_node(node, scopes) for node in nodes)

    def _render_node(self, node: Any, scopes: ScopeStack) -> str:
        match node:
            case Literal():
                return node.text
            case Tag(kind=Tag.IF):
                return self._render_if(node, scopes)
            case Tag(kind=Tag.SECTION):
                return self._render_section(node, scopes)
            case Tag():
                return self._render_leaf(node, scopes)
        raise TypeError(f"Unexpected node in tag tree: {node!r}")

    # ---------------------------------------------------------------
    # Chain execution
    # ---------------------------------------------------------------

    def apply_pipes(self, pipes: Sequence[PipeCall], value: Any) -> Any:
        """Runs the chain left to right; any failure fails the whole chain."""
        for call in pipes:
            fn = self.pipes.get(call.name)
            if fn is None:
                raise PipeError(call.name, "unknown pipe")
            try:
                value = fn(value, *call.args)
            except PipeError:
                raise
            except Exception as e:
                raise PipeError(call.name, f"{type(e).__name__}: {e}") from e
        return value

    # ---------------------------------------------------------------
    # Lookup
    # ---------------------------------------------------------------

    def lookup(self, subject: str, scopes: ScopeStack) -> Any:
        """Resolves a tag subject; single names may name an include."""
        if subject in self.includes:
            return self._render_include(subject, scopes)
        return self.path_resolver.resolve(subject, scopes)

    def _render_include(self, name: str, scopes: ScopeStack) -> str:
        if name in self._include_stack:
            self._dbg(f"include cycle: {' -> '.join(self._include_stack + [name])}")
            raise PathNotFound(name)
        source = self.includes[name]
        if callable(source):
            source = source()
        template = compile_template(source, self.delimiter)
        self._include_stack.append(name)
        try:
            return self.render_nodes(template.nodes, scopes)
        finally:
            self._include_stack.pop()

    # ---------------------------------------------------------------
    # Tags
    # ---------------------------------------------------------------

    def _render_leaf(self, tag: Tag, scopes: ScopeStack) -> str:
        try:
            value = self.lookup(tag.subject, scopes)
        except PathNotFound as e:
            self._miss(tag, "path-not-found", e.key)
            return PLACEHOLDER
        try:
            value = self.apply_pipes(tag.pipes, value)
        except PipeError as e:
            self._miss(tag, "pipe-error", str(e))
            return PLACEHOLDER
        return self.printer.to_text(value)

    def _render_section(self, tag: Tag, scopes: ScopeStack) -> str:
        try:
            value = self.apply_pipes(tag.pipes, self.lookup(tag.subject, scopes))
        except (PathNotFound, PipeError) as e:
            self._dbg(f"section {tag.subject!r} skipped: {e}")
            return ""

        match kind_of(value):
            case Kind.SEQUENCE:
                size = len(value)
                parts = []
                for index, item in enumerate(value):
                    with scopes.pushed(item, index, size):
                        parts.append(self.render_nodes(tag.body, scopes))
                return "".join(parts)
            case Kind.NULL:
                return ""
            case Kind.BOOL | Kind.STRING if not value:
                return ""
        with scopes.pushed(value):
            return self.render_nodes(tag.body, scopes)

    def _render_if(self, tag: Tag, scopes: ScopeStack) -> str:
        pipes = tag.pipes or IMPLICIT_IF_PIPES
        try:
            result = self.apply_pipes(pipes, self.lookup(tag.subject, scopes))
        except (PathNotFound, PipeError) as e:
            self._dbg(f"if {tag.subject!r} is false: {e}")
            result = None
        branch = tag.else_body if result is None or result is False else tag.body
        return self.render_nodes(branch, scopes)
