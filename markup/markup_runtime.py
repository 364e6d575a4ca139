"""
Public entry points: `Mark.up`, `render`, and TemplateRunner.
"""
from collections import ChainMap
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from markup.markup_datatypes import Template, ParseError, ConfigurationError
from markup.markup_interpreter import Evaluator
from markup.markup_parser import compile_template
from markup.markup_pipes import builtin_pipes
from markup.markup_registry import (
    PipeRegistry, IncludeRegistry, GlobalRegistry, validate_entries
)

OPTION_KEYS = frozenset({"pipes", "includes", "globals", "delimiter", "compact"})

Token = Dict[str, Any]


@dataclass
class RenderResult:
    """The structured result of a render."""
    status: Literal['success', 'error']
    value: Optional[str] = None
    error_message: Optional[str] = None
    error_token: Optional[Token] = None
    unresolved: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_token and 'line' in self.error_token and not msg.startswith("Error on line "):
            line = self.error_token.get('line')
            col = self.error_token.get('col')
            col_info = f", col {col}" if col is not None else ""
            return f"Error on line {line}{col_info}: {msg}"
        return msg


class TemplateRunner:
    """Compiles and renders templates against a set of registries.

    The registries default to the process-wide ones on `Mark`; pass your
    own to get an isolated engine.
    """

    def __init__(self, pipes: Optional[PipeRegistry] = None, includes: Optional[IncludeRegistry] = None,
                 globals_: Optional[GlobalRegistry] = None):
        self.pipes = pipes if pipes is not None else Mark.pipes
        self.includes = includes if includes is not None else Mark.includes
        self.globals = globals_ if globals_ is not None else Mark.globals

    # ---------------------------------------------------------------
    # Options
    # ---------------------------------------------------------------

    def _evaluator(self, options: Mapping[str, Any]) -> Evaluator:
        unknown = set(options) - OPTION_KEYS
        if unknown:
            raise ConfigurationError(f"Unknown render option(s): {', '.join(sorted(unknown))}")
        delimiter = options.get("delimiter") or ">"
        if not isinstance(delimiter, str) or delimiter.strip() != delimiter or any(c in delimiter for c in "|{}\\"):
            raise ConfigurationError(f"Invalid argument delimiter: {delimiter!r}")
        # Call-local entries shadow the shared tables without touching them
        pipes = ChainMap(validate_entries(self.pipes, options.get("pipes"), "pipes"), self.pipes)
        includes = ChainMap(validate_entries(self.includes, options.get("includes"), "includes"), self.includes)
        globals_ = ChainMap(validate_entries(self.globals, options.get("globals"), "globals"), self.globals)
        return Evaluator(pipes, includes, globals_, delimiter=delimiter, compact=bool(options.get("compact")))

    # ---------------------------------------------------------------
    # Rendering
    # ---------------------------------------------------------------

    def compile(self, template: Union[str, Template], delimiter: str = ">") -> Template:
        if isinstance(template, Template):
            return template
        return compile_template(template, delimiter)

    def render(self, template: Union[str, Template], context: Any = None, **options) -> str:
        """Renders and returns the output text. Raises ParseError for a broken template."""
        evaluator = self._evaluator(options)
        return evaluator.render(self.compile(template, evaluator.delimiter), context)

    def handle_template(self, template: Union[str, Template], context: Any = None, **options) -> RenderResult:
        """Renders without raising for template errors; diagnostics go on the result."""
        evaluator = self._evaluator(options)
        source = template.source if isinstance(template, Template) else template
        try:
            compiled = self.compile(template, evaluator.delimiter)
            value = evaluator.render(compiled, context)
        except ParseError as e:
            token = {'line': e.line, 'col': e.col, 'text': e.text} if e.line is not None else None
            return RenderResult('error', error_message=self._format_parse_error(e, source),
                                error_token=token, unresolved=list(evaluator.unresolved))
        return RenderResult('success', value=value, unresolved=list(evaluator.unresolved))

    # ---------------------------------------------------------------
    # Error formatting
    # ---------------------------------------------------------------

    def _format_parse_error(self, e: ParseError, source: str) -> str:
        if e.line is not None and e.col is not None:
            context = self._source_context(source, e.line, e.col)
            return f"ParseError: {e.message} (line {e.line}, col {e.col})\n{context}"
        return f"ParseError: {e.message}"

    def _source_context(self, source: str, line: int, col: Optional[int], radius: int = 2) -> str:
        lines = source.splitlines()
        if not line or line < 1 or line > len(lines):
            return ""
        start = max(1, line - radius)
        end = min(len(lines), line + radius)
        width = len(str(end))
        out = []
        for i in range(start, end + 1):
            prefix = ">" if i == line else " "
            out.append(f"{prefix} {str(i).rjust(width)} | {lines[i - 1]}")
            if i == line and col is not None:
                caret = " " * max(col - 1, 0)
                out.append(f"  {' ' * width} | {caret}^")
        return "\n".join(out)


class Mark:
    """The process-wide engine: shared registries plus `Mark.up`.

    Registration is expected to happen before concurrent rendering starts;
    call `Mark.pipes.freeze()` (and friends) to enforce that.
    """

    pipes = PipeRegistry(builtin_pipes())
    includes = IncludeRegistry()
    globals = GlobalRegistry()

    @classmethod
    def up(cls, template: Union[str, Template], context: Any = None, options: Optional[Mapping[str, Any]] = None) -> str:
        runner = TemplateRunner(cls.pipes, cls.includes, cls.globals)
        return runner.render(template, context, **dict(options or {}))


def render(template: Union[str, Template], context: Any = None, **options) -> str:
    """Renders `template` against `context` using the shared registries."""
    return Mark.up(template, context, options)
