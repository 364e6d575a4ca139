"""
Process-wide named tables: pipes, includes and globals.

Each registry is a read-only Mapping view over a table that is replaced,
never edited, on registration. Writers serialize on a lock; renders read
whichever table was current when they looked, so no lock is needed on the
read path.
"""
import collections.abc
import re
import threading
from typing import Any, Dict, Iterator, Mapping, Optional

from markup.markup_datatypes import ConfigurationError

_NAME_RE = re.compile(r"^[^\s|{}>\\/]+$")


class Registry(collections.abc.Mapping):
    """A named table with built-in defaults, explicit registration and freezing."""

    kind = "entry"

    def __init__(self, builtins: Optional[Mapping[str, Any]] = None):
        self._lock = threading.Lock()
        self._builtins: Dict[str, Any] = dict(builtins or {})
        self._table: Dict[str, Any] = dict(self._builtins)
        self._frozen = False

    # --- validation ---------------------------------------------------

    def validate(self, name: Any, value: Any):
        """Raises ConfigurationError when (name, value) cannot be registered."""
        if not isinstance(name, str) or not _NAME_RE.match(name):
            raise ConfigurationError(f"Invalid {self.kind} name: {name!r}")

    # --- mutation -----------------------------------------------------

    def register(self, name: str, value: Any, replace: bool = False):
        """Adds a named entry. Built-ins may be shadowed; custom entries only with replace=True."""
        self.validate(name, value)
        with self._lock:
            if self._frozen:
                raise ConfigurationError(f"Cannot register {self.kind} {name!r}: registry is frozen.")
            if not replace and name in self._table and self._table[name] is not self._builtins.get(name):
                raise ConfigurationError(f"Duplicate {self.kind} {name!r}; pass replace=True to overwrite.")
            table = dict(self._table)
            table[name] = value
            self._table = table
        return value

    def __setitem__(self, name: str, value: Any):
        self.register(name, value, replace=True)

    def unregister(self, name: str):
        """Removes a custom entry; a shadowed built-in becomes visible again."""
        with self._lock:
            if self._frozen:
                raise ConfigurationError(f"Cannot unregister {self.kind} {name!r}: registry is frozen.")
            if name not in self._table:
                raise KeyError(name)
            table = dict(self._table)
            if name in self._builtins:
                table[name] = self._builtins[name]
            else:
                del table[name]
            self._table = table

    def __delitem__(self, name: str):
        self.unregister(name)

    def reset(self):
        """Drops every custom entry and unfreezes."""
        with self._lock:
            self._table = dict(self._builtins)
            self._frozen = False

    def freeze(self):
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def is_builtin(self, name: str) -> bool:
        return name in self._builtins and self._table.get(name) is self._builtins[name]

    # --- Mapping view -------------------------------------------------

    def __getitem__(self, name: str) -> Any:
        return self._table[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} entries={len(self._table)} frozen={self._frozen}>"


class PipeRegistry(Registry):
    kind = "pipe"

    def validate(self, name, value):
        super().validate(name, value)
        if not callable(value):
            raise ConfigurationError(f"Pipe {name!r} must be callable, got {type(value).__name__}.")


class IncludeRegistry(Registry):
    """Named templates. A value is template text or a zero-argument callable returning it."""
    kind = "include"

    def validate(self, name, value):
        super().validate(name, value)
        if "." in name:
            raise ConfigurationError(f"Include name {name!r} cannot contain '.'.")
        if not (isinstance(value, str) or callable(value)):
            raise ConfigurationError(f"Include {name!r} must be a template string or a callable.")


class GlobalRegistry(Registry):
    """Values visible by name from every scope."""
    kind = "global"

    def validate(self, name, value):
        super().validate(name, value)
        if "." in name:
            raise ConfigurationError(f"Global name {name!r} cannot contain '.'.")


def validate_entries(registry: Registry, entries: Any, option: str) -> Dict[str, Any]:
    """Checks call-local entries against a registry's rules without registering them."""
    if entries is None:
        return {}
    if not isinstance(entries, collections.abc.Mapping):
        raise ConfigurationError(f"Option {option!r} must be a mapping.")
    for name, value in entries.items():
        registry.validate(name, value)
    return dict(entries)
