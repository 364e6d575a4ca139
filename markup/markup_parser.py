"""
Compiles template source into a tag tree.

Tokenizing is a single left-to-right scan for `{{` / `}}`. Each tag body is
classified (path, if, else, close) and split into subject and pipe chain;
the tree builder then pairs block tags with their close tags.
"""
import functools
import re
from typing import Any, List, Optional, Tuple

from markup.markup_datatypes import Literal, PipeCall, Tag, Template, ParseError

OPEN = "{{"
CLOSE = "}}"
PIPE = "|"
ESCAPE = "\\"

# A dotted path (`name.first`, `brothers.0`) or one of `.`, `#`, `##`
_SUBJECT_RE = re.compile(r"^(?:\.|##?|[^\s.{}|\\]+(?:\.[^\s.{}|\\]+)*)$")
_IF_RE = re.compile(r"^if(?:\s+(.*))?$", re.DOTALL)


class _Token:
    """A raw tag or text run produced by the scanner."""
    def __init__(self, kind: str, pos: int, text: str, raw: str = ""):
        self.kind = kind          # 'text' | 'path' | 'if' | 'else' | 'close'
        self.pos = pos
        self.text = text          # literal text, or the tag body
        self.raw = raw            # the full `{{...}}` for tags
        self.subject: str = ""
        self.pipes: Tuple[PipeCall, ...] = ()
        self.selfy = False
        self.loc = None

    def __repr__(self):
        return f"_Token({self.kind!r}, {self.text!r})"


def _split_unescaped(text: str, sep: str) -> List[str]:
    """Splits on `sep` except where it is preceded by a backslash. Escapes are kept."""
    parts = []
    buf = []
    i = 0
    n = len(text)
    while i < n:
        if text.startswith(ESCAPE, i) and i + 1 < n:
            buf.append(text[i:i + 2])
            i += 2
            continue
        if text.startswith(sep, i):
            parts.append("".join(buf))
            buf = []
            i += len(sep)
            continue
        buf.append(text[i])
        i += 1
    parts.append("".join(buf))
    return parts


def _unescape(text: str, delimiter: str) -> str:
    return text.replace(ESCAPE + delimiter, delimiter).replace(ESCAPE + PIPE, PIPE)


class TemplateParser:
    """Turns template text into a Template (a tuple of Literal / Tag nodes)."""

    def __init__(self, delimiter: str = ">"):
        if not delimiter:
            raise ValueError("Argument delimiter cannot be empty.")
        self.delimiter = delimiter

    def parse(self, source: str) -> Template:
        self._source = source
        tokens = self._tokenize(source)
        nodes, _ = self._build(tokens, 0, len(tokens))
        return Template(source, tuple(nodes), self.delimiter)

    # ---------------------------------------------------------------
    # Scanning
    # ---------------------------------------------------------------

    def _line_col(self, pos: int) -> Tuple[int, int]:
        line = self._source.count("\n", 0, pos) + 1
        col = pos - (self._source.rfind("\n", 0, pos) + 1) + 1
        return line, col

    def _error(self, message: str, pos: int, text: Optional[str] = None) -> ParseError:
        line, col = self._line_col(pos)
        return ParseError(message, line, col, text)

    def _tokenize(self, source: str) -> List[_Token]:
        tokens: List[_Token] = []
        i = 0
        while True:
            start = source.find(OPEN, i)
            if start < 0:
                if i < len(source):
                    tokens.append(_Token("text", i, source[i:]))
                break
            if start > i:
                tokens.append(_Token("text", i, source[i:start]))
            end = source.find(CLOSE, start + len(OPEN))
            if end < 0:
                raise self._error("Unterminated tag: missing '}}'.", start, source[start:start + 20])
            raw = source[start:end + len(CLOSE)]
            tokens.append(self._classify(source[start + len(OPEN):end], start, raw))
            i = end + len(CLOSE)
        return tokens

    def _classify(self, body: str, pos: int, raw: str) -> _Token:
        stripped = body.strip()
        if not stripped:
            raise self._error("Empty tag.", pos, raw)

        line, col = self._line_col(pos)
        loc = {'line': line, 'col': col, 'text': raw}

        if stripped.startswith("/"):
            tok = _Token("close", pos, stripped[1:].strip(), raw)
            if not tok.text:
                raise self._error("Close tag without a name.", pos, raw)
            tok.loc = loc
            return tok

        if stripped == "else":
            tok = _Token("else", pos, stripped, raw)
            tok.loc = loc
            return tok

        selfy = False
        if stripped.endswith("/"):
            # `{{name|join> * /}}` keeps the space before the slash as argument text
            selfy = True
            body = body.rstrip()[:-1]

        pieces = _split_unescaped(body, PIPE)
        head = pieces[0].strip()

        m = _IF_RE.match(head)
        if m:
            subject = (m.group(1) or "").strip()
            if not subject:
                raise self._error("'if' requires a subject.", pos, raw)
            tok = _Token("if", pos, body, raw)
        else:
            subject = head
            tok = _Token("path", pos, body, raw)

        if not _SUBJECT_RE.match(subject):
            raise self._error(f"Invalid tag subject {subject!r}.", pos, raw)

        tok.subject = subject
        tok.pipes = tuple(self._pipe_call(p, pos, raw) for p in pieces[1:])
        tok.selfy = selfy
        tok.loc = loc
        return tok

    def _pipe_call(self, text: str, pos: int, raw: str) -> PipeCall:
        parts = _split_unescaped(text, self.delimiter)
        name = parts[0].strip()
        if not name:
            raise self._error("Empty pipe name.", pos, raw)
        # Arguments are literal text; only the escapes are undone
        args = tuple(_unescape(a, self.delimiter) for a in parts[1:])
        return PipeCall(name, args)

    # ---------------------------------------------------------------
    # Tree building
    # ---------------------------------------------------------------

    def _opens(self, tok: _Token, name: str) -> bool:
        if name == "if":
            return tok.kind == "if"
        return tok.kind == "path" and not tok.selfy and tok.subject == name

    def _find_close(self, tokens: List[_Token], opener: int, end: int, name: str) -> Optional[int]:
        """Index of the close tag that ends `tokens[opener]`, or None.

        Same-named openers between the two raise the depth, so each close
        tag belongs to its nearest unmatched opener.
        """
        depth = 0
        for j in range(opener + 1, end):
            tok = tokens[j]
            if self._opens(tok, name):
                depth += 1
            elif tok.kind == "close" and tok.text == name:
                if depth == 0:
                    return j
                depth -= 1
        return None

    def _build(self, tokens: List[_Token], start: int, end: int, in_if: bool = False) -> Tuple[List[Any], Optional[List[Any]]]:
        nodes: List[Any] = []
        else_nodes: Optional[List[Any]] = None
        target = nodes
        i = start
        while i < end:
            tok = tokens[i]
            match tok.kind:
                case "text":
                    target.append(Literal(tok.text))
                    i += 1
                case "else":
                    if not in_if:
                        raise self._error("'else' outside of an 'if' block.", tok.pos, tok.raw)
                    if else_nodes is not None:
                        raise self._error("Duplicate 'else' in 'if' block.", tok.pos, tok.raw)
                    else_nodes = []
                    target = else_nodes
                    i += 1
                case "close":
                    raise self._error(f"Close tag '{tok.raw}' has no matching open tag.", tok.pos, tok.raw)
                case "if":
                    close = self._find_close(tokens, i, end, "if")
                    if close is None:
                        raise self._error("Unterminated 'if' block: missing '{{/if}}'.", tok.pos, tok.raw)
                    body, else_body = self._build(tokens, i + 1, close, in_if=True)
                    target.append(Tag(Tag.IF, tok.subject, tok.pipes, body, else_body or (), tok.loc))
                    i = close + 1
                case _:
                    close = None if tok.selfy else self._find_close(tokens, i, end, tok.subject)
                    if close is None:
                        target.append(Tag(Tag.LEAF, tok.subject, tok.pipes, loc=tok.loc))
                        i += 1
                    else:
                        body, _ = self._build(tokens, i + 1, close)
                        target.append(Tag(Tag.SECTION, tok.subject, tok.pipes, body, loc=tok.loc))
                        i = close + 1
        return nodes, else_nodes


@functools.lru_cache(maxsize=256)
def compile_template(source: str, delimiter: str = ">") -> Template:
    """Parses `source` once; identical sources share the same immutable tree."""
    return TemplateParser(delimiter).parse(source)
