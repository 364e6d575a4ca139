"""
Method dispatch for the `call` pipe.

`call>name>arg...` looks the method up in an explicit table keyed by the
value's Kind. Objects provide their own table through @markup_method;
mappings may carry callables as entries. Nothing else is reachable.
"""
import datetime
from typing import Any, Callable, Dict

from markup.markup_datatypes import Kind, kind_of, PipeError
from markup.markup_printer import Printer

_text = Printer().to_text


def _int(arg, default=0) -> int:
    if arg is None or str(arg).strip() == "":
        return default
    return int(float(str(arg).strip()))


def _to_precision(n, digits=None):
    if digits is None:
        return _number_to_string(n)
    return format(float(n), f"#.{_int(digits)}g")


def _number_to_string(n, base=None):
    if base is None or _int(base) == 10:
        return _text(n)
    radix = _int(base)
    if not 2 <= radix <= 36:
        raise ValueError(f"radix must be between 2 and 36, got {radix}")
    value = int(n)
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    sign = "-" if value < 0 else ""
    value = abs(value)
    out = ""
    while True:
        value, rem = divmod(value, radix)
        out = digits[rem] + out
        if value == 0:
            break
    return sign + out


def _substring(s, start, end=None):
    a = max(_int(start), 0)
    b = len(s) if end is None else max(_int(end), 0)
    if a > b:
        a, b = b, a
    return s[a:b]


def _index_of(container, item, start=None):
    if isinstance(container, str):
        return container.find(item, _int(start))
    for i, x in enumerate(container):
        if i >= _int(start) and _text(x) == item:
            return i
    return -1


def _day(d: datetime.date) -> int:
    # Sunday is 0
    return (d.weekday() + 1) % 7


NUMBER_METHODS: Dict[str, Callable] = {
    "toFixed": lambda n, digits=None: format(float(n), f".{_int(digits)}f"),
    "toPrecision": _to_precision,
    "toString": _number_to_string,
}

STRING_METHODS: Dict[str, Callable] = {
    "toLowerCase": lambda s: s.lower(),
    "toUpperCase": lambda s: s.upper(),
    "trim": lambda s: s.strip(),
    "trimStart": lambda s: s.lstrip(),
    "trimEnd": lambda s: s.rstrip(),
    "charAt": lambda s, i=None: s[_int(i)] if 0 <= _int(i) < len(s) else "",
    "indexOf": _index_of,
    "lastIndexOf": lambda s, sub: s.rfind(sub),
    "includes": lambda s, sub: sub in s,
    "startsWith": lambda s, prefix: s.startswith(prefix),
    "endsWith": lambda s, suffix: s.endswith(suffix),
    "substring": _substring,
    "replace": lambda s, old, new="": s.replace(old, new, 1),
    "split": lambda s, sep=None: s.split(sep) if sep else list(s),
    "repeat": lambda s, count: s * _int(count),
    "padStart": lambda s, width, fill=" ": s.rjust(_int(width), (fill or " ")[0]),
    "padEnd": lambda s, width, fill=" ": s.ljust(_int(width), (fill or " ")[0]),
    "toString": lambda s: s,
}

SEQUENCE_METHODS: Dict[str, Callable] = {
    "join": lambda seq, sep=",": sep.join(_text(x) for x in seq),
    "indexOf": _index_of,
    "includes": lambda seq, item: _index_of(seq, item) >= 0,
    "slice": lambda seq, start=None, end=None: list(seq[_int(start):None if end is None else _int(end)]),
    "toString": lambda seq: ",".join(_text(x) for x in seq),
}

DATE_METHODS: Dict[str, Callable] = {
    "getFullYear": lambda d: d.year,
    # zero-based month, as template authors expect from `getMonth`
    "getMonth": lambda d: d.month - 1,
    "getDate": lambda d: d.day,
    "getDay": _day,
    "getHours": lambda d: d.hour,
    "getMinutes": lambda d: d.minute,
    "getSeconds": lambda d: d.second,
    "getMilliseconds": lambda d: d.microsecond // 1000,
    "toISOString": lambda d: d.isoformat(),
    "toDateString": lambda d: d.strftime("%a %b %d %Y"),
}

BOOL_METHODS: Dict[str, Callable] = {
    "toString": lambda b: "true" if b else "false",
}

METHOD_TABLES: Dict[Kind, Dict[str, Callable]] = {
    Kind.NUMBER: NUMBER_METHODS,
    Kind.STRING: STRING_METHODS,
    Kind.SEQUENCE: SEQUENCE_METHODS,
    Kind.DATE: DATE_METHODS,
    Kind.BOOL: BOOL_METHODS,
}


def find_method(value: Any, name: str) -> Callable:
    """Returns a callable taking the string arguments, or raises PipeError."""
    kind = kind_of(value)
    if kind is Kind.OBJECT:
        method = getattr(value, name, None) if not name.startswith("_") else None
        if method is not None and callable(method) and getattr(method, "_is_markup_method", False):
            return method
    elif kind is Kind.MAPPING:
        entry = value.get(name)
        if callable(entry):
            return entry
    fn = METHOD_TABLES.get(kind, {}).get(name)
    if fn is None:
        raise PipeError("call", f"no method {name!r} on {kind.value}")
    return lambda *args: fn(value, *args)


def call_method(value: Any, name: str, *args: str) -> Any:
    return find_method(value, name.strip())(*args)
