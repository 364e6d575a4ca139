"""
Formats Markup values as output text and tag trees as template source.
"""
import math
import re

from markup.markup_datatypes import Kind, kind_of, Literal, PipeCall, Tag, Template

OPAQUE = "[object Object]"
_EXPONENT_PAD_RE = re.compile(r"e([+-])0+(?=\d)")


class Printer:
    """Stringifies context values and pretty-prints compiled templates."""

    def __init__(self, delimiter=">"):
        self.delimiter = delimiter
        self._handlers = self._create_handlers()

    # ---------------------------------------------------------------
    # Values
    # ---------------------------------------------------------------

    def to_text(self, value) -> str:
        """Public entry point: the output form of a value."""
        return self._handlers[kind_of(value)](value)

    def _create_handlers(self):
        return {
            Kind.NULL: lambda v: "",
            Kind.BOOL: lambda v: "true" if v else "false",
            Kind.NUMBER: self._format_number,
            Kind.STRING: str,
            Kind.SEQUENCE: lambda v: "".join(self.to_text(x) for x in v),
            Kind.MAPPING: lambda v: OPAQUE,
            Kind.DATE: lambda v: v.isoformat(),
            Kind.OBJECT: lambda v: OPAQUE,
        }

    def _format_number(self, n) -> str:
        if isinstance(n, int):
            return str(n)
        f = float(n)
        if math.isnan(f):
            return "NaN"
        if math.isinf(f):
            return "Infinity" if f > 0 else "-Infinity"
        if f.is_integer() and abs(f) < 1e21:
            return str(int(f))
        # 1e-07 -> 1e-7
        return _EXPONENT_PAD_RE.sub(r"e\1", repr(f))

    # ---------------------------------------------------------------
    # Tag trees
    # ---------------------------------------------------------------

    def pformat(self, obj) -> str:
        """Formats a Template, node, node sequence or PipeCall as template source."""
        match obj:
            case Template():
                return self._pformat_nodes(obj.nodes)
            case Literal():
                return obj.text
            case PipeCall():
                return self._pformat_pipe(obj)
            case Tag():
                return self._pformat_tag(obj)
            case list() | tuple():
                return self._pformat_nodes(obj)
        return repr(obj)

    def _pformat_nodes(self, nodes) -> str:
        return "".join(self.pformat(n) for n in nodes)

    def _pformat_pipe(self, call: PipeCall) -> str:
        escaped = [a.replace(self.delimiter, "\\" + self.delimiter).replace("|", "\\|") for a in call.args]
        return self.delimiter.join([call.name] + escaped)

    def _pformat_head(self, tag: Tag) -> str:
        parts = [tag.subject] + [self._pformat_pipe(p) for p in tag.pipes]
        return "|".join(parts)

    def _pformat_tag(self, tag: Tag) -> str:
        head = self._pformat_head(tag)
        if tag.kind == Tag.IF:
            out = "{{if " + head + "}}" + self._pformat_nodes(tag.body)
            if tag.else_body:
                out += "{{else}}" + self._pformat_nodes(tag.else_body)
            return out + "{{/if}}"
        if tag.kind == Tag.SECTION:
            return "{{" + head + "}}" + self._pformat_nodes(tag.body) + "{{/" + tag.subject + "}}"
        return "{{" + head + "}}"
