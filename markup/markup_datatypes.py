"""
Defines the core data types for the Markup template engine.

This module provides the value-kind tagging used by every stage of the
engine, the node types that make up a compiled tag tree, and the
exception hierarchy shared by the parser, resolver and evaluator.
"""

import collections.abc
import datetime
import enum
import numbers
from typing import Any, Dict, Optional, Tuple


# =================================================================
# Errors
# =================================================================

class MarkupError(Exception):
    """Base class for all exceptions raised by the engine."""


class ParseError(MarkupError):
    """A structurally broken template (unterminated tag, unmatched close tag, ...)."""
    def __init__(self, message: str, line: Optional[int] = None, col: Optional[int] = None, text: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.col = col
        self.text = text

    def __str__(self) -> str:
        if self.line is not None and self.col is not None:
            return f"{self.message} (line {self.line}, col {self.col})"
        return self.message


class PathNotFound(MarkupError):
    """Raised when a path does not resolve against the current scope."""
    def __init__(self, key: str):
        super().__init__(key)
        self.key = key


class PipeError(MarkupError):
    """Raised when a pipe cannot be dispatched or fails while running."""
    def __init__(self, name: str, detail: str):
        super().__init__(f"{name}: {detail}")
        self.name = name
        self.detail = detail


class ConfigurationError(MarkupError):
    """Raised for invalid registrations or render options."""


# =================================================================
# Value kinds
# =================================================================

class Kind(enum.Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    DATE = "date"
    OBJECT = "object"


def kind_of(value: Any) -> Kind:
    """Returns the variant tag of a context value.

    Context data is plain Python data; the engine never wraps it. Every
    resolver and pipe decision is made on the returned Kind.
    """
    if value is None:
        return Kind.NULL
    # bool before numbers: bool is an int subclass
    if isinstance(value, bool):
        return Kind.BOOL
    if isinstance(value, numbers.Real):
        return Kind.NUMBER
    if isinstance(value, str):
        return Kind.STRING
    if isinstance(value, datetime.date):
        return Kind.DATE
    if isinstance(value, collections.abc.Mapping):
        return Kind.MAPPING
    if isinstance(value, collections.abc.Sequence) and not isinstance(value, (bytes, bytearray)):
        return Kind.SEQUENCE
    return Kind.OBJECT


def markup_method(func):
    """A decorator to explicitly mark methods as callable from the `call` pipe."""
    func._is_markup_method = True
    return func


# =================================================================
# Tag tree
# =================================================================

Loc = Dict[str, Any]


class Literal:
    """Verbatim template text between tags."""
    def __init__(self, text: str):
        self.text = text

    def __repr__(self) -> str:
        return f"Literal({self.text!r})"

    def __eq__(self, other):
        return isinstance(other, Literal) and self.text == other.text

    def __hash__(self):
        return hash(self.text)


class PipeCall:
    """One `name>arg>arg` entry of a tag's pipe chain."""
    def __init__(self, name: str, args: Tuple[str, ...] = ()):
        self.name = name
        self.args = tuple(args)

    def __repr__(self) -> str:
        return f"PipeCall({self.name!r}, {self.args!r})"

    def __eq__(self, other):
        return isinstance(other, PipeCall) and self.name == other.name and self.args == other.args

    def __hash__(self):
        return hash((self.name, self.args))


class Tag:
    """A compiled tag.

    kind is one of:
      - 'leaf': interpolate the subject,
      - 'section': push the subject (once, or per element) and render body,
      - 'if': render body or else_body depending on the piped subject.
    """
    LEAF = "leaf"
    SECTION = "section"
    IF = "if"

    def __init__(self, kind: str, subject: str, pipes: Tuple[PipeCall, ...] = (),
                 body: Tuple[Any, ...] = (), else_body: Tuple[Any, ...] = (),
                 loc: Optional[Loc] = None):
        self.kind = kind
        self.subject = subject
        self.pipes = tuple(pipes)
        self.body = tuple(body)
        self.else_body = tuple(else_body)
        self.loc = loc
        self._str_repr: Optional[str] = None

    def to_str_repr(self) -> str:
        from markup.markup_printer import Printer
        if self._str_repr is None:
            self._str_repr = Printer().pformat(self)
        return self._str_repr

    def __repr__(self) -> str:
        return f"<Tag {self.kind} {self.to_str_repr()!r}>"

    def __eq__(self, other):
        if not isinstance(other, Tag):
            return NotImplemented
        return self.to_str_repr() == other.to_str_repr()

    def __hash__(self):
        return hash(self.to_str_repr())


class Template:
    """A parsed template: the source text plus its immutable tag tree."""
    def __init__(self, source: str, nodes: Tuple[Any, ...], delimiter: str = ">"):
        self.source = source
        self.nodes = tuple(nodes)
        self.delimiter = delimiter

    def __repr__(self) -> str:
        return f"<Template nodes={len(self.nodes)} delimiter={self.delimiter!r}>"
