"""
The built-in pipe catalog.

Every `_name` method of StdPipes becomes the pipe `name`. Pipes are called
as `pipe(value, *args)` with the raw argument strings of the tag.

Two families:
  - predicate pipes (@predicate) return their input unchanged on success
    and False on failure, so `{{n|more>3}}` shows n or `false`;
  - transform pipes always return a new value.
"""
import functools
import inspect
import math
import re
import sys
import urllib.parse
from typing import Any, Callable, Dict, Optional

from markup.markup_datatypes import Kind, kind_of
from markup.markup_dispatch import call_method
from markup.markup_printer import Printer

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_LEADING_NUMBER_RE = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)")
_MARKUP_TAG_RE = re.compile(r"</?[^>]+>", re.IGNORECASE)

# encodeURI's reserved and unescaped characters stay as they are
_URL_SAFE = ";,/?:@&=+$-_.!~*'()#"

_printer = Printer()


# ===================================================================
# Coercion helpers
# ===================================================================

def to_text(value: Any) -> str:
    return _printer.to_text(value)


def to_number(value: Any) -> Optional[float]:
    """The numeric reading of a value, or None when it has none."""
    match kind_of(value):
        case Kind.NUMBER:
            return value
        case Kind.STRING:
            s = value.strip()
            if _NUMBER_RE.match(s):
                return int(s) if re.fullmatch(r"[+-]?\d+", s) else float(s)
    return None


def measure(value: Any) -> Any:
    """Containers compare by their size."""
    if kind_of(value) in (Kind.SEQUENCE, Kind.MAPPING):
        return len(value)
    return value


def loose_compare(a: Any, b: Any) -> int:
    """Numeric comparison when both sides are numbers, otherwise lexical."""
    x, y = to_number(a), to_number(b)
    if x is not None and y is not None:
        return (x > y) - (x < y)
    sa, sb = to_text(a), to_text(b)
    return (sa > sb) - (sa < sb)


def loose_equals(a: Any, b: Any) -> bool:
    x, y = to_number(a), to_number(b)
    if x is not None and y is not None:
        return x == y
    return to_text(a) == to_text(b)


def is_empty(value: Any) -> bool:
    match kind_of(value):
        case Kind.NULL:
            return True
        case Kind.BOOL:
            return value is False
        case Kind.STRING:
            return not value.strip()
        case Kind.SEQUENCE | Kind.MAPPING:
            return len(value) == 0
    return False


def loose_truthy(value: Any) -> bool:
    match kind_of(value):
        case Kind.NULL:
            return False
        case Kind.BOOL:
            return value
        case Kind.NUMBER:
            return value != 0 and not math.isnan(value)
        case Kind.STRING:
            return value != ""
    return True


def int_arg(arg: str) -> int:
    return int(float(arg.strip()))


def _finite(n: Optional[float]) -> bool:
    return n is not None and math.isfinite(n)


def _whole(n: Optional[float]) -> bool:
    """NaN, infinities and fractions are neither even nor odd."""
    return _finite(n) and n == int(n)


def glob_match(text: str, pattern: str) -> bool:
    """Case-insensitive whole-string match where `*` matches any run of characters."""
    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.fullmatch(regex, text, re.IGNORECASE | re.DOTALL) is not None


def predicate(func: Callable) -> Callable:
    """Turns a boolean test into a pass-through pipe: input on success, False otherwise."""
    @functools.wraps(func)
    def wrapper(self, value, *args):
        if value is False:
            return False
        return value if func(self, value, *args) else False
    wrapper._is_predicate = True
    return wrapper


def _field(item: Any, key: str) -> Any:
    if kind_of(item) is Kind.MAPPING:
        return item.get(key)
    return getattr(item, key, None)


def _order(a: Any, b: Any) -> int:
    if a is None or b is None:
        return (a is not None) - (b is not None)
    return loose_compare(a, b)


# ===================================================================
# Catalog
# ===================================================================

class StdPipes:
    """Built-in pipes. Method `_foo` is exposed as pipe `foo`."""

    # --- predicates --------------------------------------------------

    @predicate
    def _more(self, value, arg):
        return loose_compare(measure(value), arg.strip()) > 0

    @predicate
    def _less(self, value, arg):
        return loose_compare(measure(value), arg.strip()) < 0

    @predicate
    def _ormore(self, value, arg):
        return loose_compare(measure(value), arg.strip()) >= 0

    @predicate
    def _orless(self, value, arg):
        return loose_compare(measure(value), arg.strip()) <= 0

    @predicate
    def _between(self, value, low, high):
        size = measure(value)
        return loose_compare(size, low.strip()) >= 0 and loose_compare(size, high.strip()) <= 0

    @predicate
    def _equals(self, value, arg):
        return loose_equals(value, arg.strip())

    @predicate
    def _notequals(self, value, arg):
        return not loose_equals(value, arg.strip())

    @predicate
    def _like(self, value, pattern):
        return glob_match(to_text(value), pattern.strip())

    @predicate
    def _notlike(self, value, pattern):
        return not glob_match(to_text(value), pattern.strip())

    @predicate
    def _even(self, value):
        n = to_number(value)
        return _whole(n) and int(n) % 2 == 0

    @predicate
    def _odd(self, value):
        n = to_number(value)
        return _whole(n) and int(n) % 2 == 1

    @predicate
    def _divisible(self, value, divisor):
        n, d = to_number(value), to_number(divisor)
        return _finite(n) and _finite(d) and d != 0 and math.fmod(n, d) == 0

    # --- truth and emptiness ----------------------------------------

    def _empty(self, value):
        return is_empty(value)

    def _notempty(self, value):
        return not is_empty(value)

    def _blank(self, value, default=""):
        if value is None or value is False or value == "":
            return default
        return value

    def _bool(self, value):
        return loose_truthy(value)

    def _falsy(self, value):
        return not loose_truthy(value)

    def _choose(self, value, if_true, if_false=""):
        return if_true if loose_truthy(value) else if_false

    def _toggle(self, value, values, results, default=""):
        keys = [v.strip() for v in values.split(",")]
        outs = [r.strip() for r in results.split(",")]
        text = to_text(value).strip()
        if text in keys and keys.index(text) < len(outs):
            return outs[keys.index(text)]
        return default

    # --- strings -----------------------------------------------------

    def _upcase(self, value):
        return to_text(value).upper()

    def _downcase(self, value):
        return to_text(value).lower()

    def _capcase(self, value):
        return re.sub(r"\b\w", lambda m: m.group(0).upper(), to_text(value))

    def _trim(self, value):
        return to_text(value).strip()

    def _pack(self, value):
        return re.sub(r"\s+", " ", to_text(value)).strip()

    def _chop(self, value, count):
        text, n = to_text(value), int_arg(count)
        return text[:n] + "..." if len(text) > n else text

    def _tease(self, value, count):
        words, n = to_text(value).split(), int_arg(count)
        return " ".join(words[:n]) + ("..." if len(words) > n else "")

    def _style(self, value, classes):
        return f'<span class="{classes.replace(",", " ")}">{to_text(value)}</span>'

    def _clean(self, value):
        return _MARKUP_TAG_RE.sub("", to_text(value))

    def _sub(self, value, old, new=""):
        return to_text(value).replace(old, new, 1)

    def _url(self, value):
        return urllib.parse.quote(to_text(value), safe=_URL_SAFE)

    def _split(self, value, sep=","):
        return to_text(value).split(sep)

    # --- numbers -----------------------------------------------------

    def _number(self, value):
        if kind_of(value) is Kind.NUMBER:
            return value
        cleaned = re.sub(r"[^\-\d.]", "", to_text(value))
        m = _LEADING_NUMBER_RE.match(cleaned)
        return float(m.group(0)) if m else math.nan

    def _round(self, value):
        n = to_number(value)
        if n is None:
            raise TypeError(f"cannot round {to_text(value)!r}")
        # half rounds up, as in Math.round
        return math.floor(n + 0.5)

    def _fix(self, value, digits):
        n = to_number(value)
        if n is None:
            raise TypeError(f"cannot format {to_text(value)!r}")
        return format(float(n), f".{int_arg(digits)}f")

    def _mod(self, value, divisor):
        n, d = to_number(value), to_number(divisor)
        if n is None or d is None:
            raise TypeError("mod needs numbers")
        return math.fmod(n, d)

    # --- sequences ---------------------------------------------------

    def _size(self, value):
        match kind_of(value):
            case Kind.SEQUENCE | Kind.MAPPING | Kind.STRING:
                return len(value)
            case Kind.NULL:
                return 0
        return len(to_text(value))

    def _length(self, value):
        return self._size(value)

    def _reverse(self, value):
        match kind_of(value):
            case Kind.SEQUENCE:
                return list(reversed(value))
        return to_text(value)[::-1]

    def _join(self, value, sep=","):
        if kind_of(value) is not Kind.SEQUENCE:
            raise TypeError("join needs a sequence")
        return sep.join(to_text(x) for x in value)

    def _slice(self, value, start, count=None):
        a = int_arg(start)
        b = None if count is None or not count.strip() else a + int_arg(count)
        sliced = value[a:b]
        return list(sliced) if kind_of(value) is Kind.SEQUENCE else sliced

    def _limit(self, value, count, start="0"):
        return self._slice(value, start, count)

    def _first(self, value):
        return value[0]

    def _last(self, value):
        return value[-1]

    def _sort(self, value, key=None):
        if kind_of(value) is not Kind.SEQUENCE:
            raise TypeError("sort needs a sequence")
        if key is None or not key.strip():
            return sorted(value, key=functools.cmp_to_key(_order))
        field = key.strip()
        return sorted(value, key=functools.cmp_to_key(lambda a, b: _order(_field(a, field), _field(b, field))))

    # --- dispatch and debugging -------------------------------------

    def _call(self, value, method, *args):
        return call_method(value, method, *args)

    def _log(self, value):
        print("[LOG]", to_text(value), file=sys.stderr)
        return value


def builtin_pipes() -> Dict[str, Callable]:
    """The catalog as {pipe name: callable}."""
    std = StdPipes()
    table = {}
    for name, member in inspect.getmembers(std):
        if name.startswith('_') and not name.startswith('__') and callable(member):
            table[name[1:]] = member
    return table
