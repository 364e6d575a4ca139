"""
Scope handling for a single render: the scope stack, loop counters, and
dotted-path resolution against the innermost scope.
"""
import contextlib
from typing import Any, List, Mapping, Optional

from markup.markup_datatypes import Kind, kind_of, PathNotFound

SELF = "."
INDEX = "#"
COUNT = "##"


def _is_index(segment: str) -> bool:
    return segment.isascii() and segment.isdigit()


class Frame:
    """One pushed scope. `index` is set for frames pushed by array iteration."""
    __slots__ = ("value", "index", "size")

    def __init__(self, value: Any, index: Optional[int] = None, size: Optional[int] = None):
        self.value = value
        self.index = index
        self.size = size

    def __repr__(self):
        return f"Frame({self.value!r}, index={self.index!r})"


class ScopeStack:
    """The active scopes of a render, innermost last."""

    def __init__(self, root: Any):
        self.frames: List[Frame] = [Frame(root)]

    @property
    def top(self) -> Any:
        return self.frames[-1].value

    def push(self, value: Any, index: Optional[int] = None, size: Optional[int] = None):
        self.frames.append(Frame(value, index, size))

    def pop(self) -> Frame:
        if len(self.frames) == 1:
            raise IndexError("Cannot pop the root scope.")
        return self.frames.pop()

    @contextlib.contextmanager
    def pushed(self, value: Any, index: Optional[int] = None, size: Optional[int] = None):
        self.push(value, index, size)
        try:
            yield self
        finally:
            self.pop()

    def loop_frame(self) -> Optional[Frame]:
        """The nearest frame pushed by array iteration."""
        for frame in reversed(self.frames):
            if frame.index is not None:
                return frame
        return None

    def __len__(self):
        return len(self.frames)


class PathResolver:
    """Resolves tag subjects against a ScopeStack.

    Lookup never falls back to enclosing scopes: a dotted path is walked
    from the top-of-stack value only, and the first missing segment raises
    PathNotFound. A global is used for the first segment only when the top
    scope has no entry of that name.
    """

    def __init__(self, globals_: Optional[Mapping[str, Any]] = None):
        self.globals = globals_ if globals_ is not None else {}

    def resolve(self, subject: str, scopes: ScopeStack) -> Any:
        if subject == SELF:
            return scopes.top
        if subject in (INDEX, COUNT):
            frame = scopes.loop_frame()
            if frame is None:
                raise PathNotFound(subject)
            return frame.index if subject == INDEX else frame.index + 1

        head, *rest = subject.split(".")
        try:
            current = self.step(scopes.top, head)
        except PathNotFound:
            # Globals only fill names the top scope does not have
            if head not in self.globals:
                raise
            current = self.globals[head]
        for segment in rest:
            current = self.step(current, segment)
        return current

    def step(self, current: Any, segment: str) -> Any:
        """Reads one path segment from a value, or raises PathNotFound."""
        match kind_of(current):
            case Kind.MAPPING:
                if segment in current:
                    return current[segment]
                if _is_index(segment) and int(segment) in current:
                    return current[int(segment)]
            case Kind.SEQUENCE:
                if _is_index(segment):
                    idx = int(segment)
                    if idx < len(current):
                        return current[idx]
            case Kind.OBJECT | Kind.DATE:
                if not segment.startswith("_"):
                    try:
                        attr = getattr(current, segment)
                    except AttributeError:
                        raise PathNotFound(segment) from None
                    # Methods are reachable only through the `call` pipe
                    if not callable(attr):
                        return attr
        raise PathNotFound(segment)
