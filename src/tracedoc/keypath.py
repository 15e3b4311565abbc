"""
Key-path compiler.

Turns path strings such as "player.items.3" or "player.items[3].name" into
accessor functions that walk a Document. Digit-only segments and bracketed
indices become integer keys.

Grammar:
    path    := segment ( "." segment | "[" index "]" )*
    segment := one or more characters other than ".", "[" and "]"
    index   := one or more digits
"""
from collections.abc import Mapping
import logging
from typing import Any, Callable, Dict, List, Tuple, Union

from tracedoc.document import Document
from tracedoc.errors import KeyPathError

logger = logging.getLogger(__name__)

Segment = Union[str, int]
Accessor = Callable[[Any], Any]

_DELIMITERS = ".[]"


def _is_digits(text: str) -> bool:
    # str.isdigit() also accepts superscripts and other non-ASCII digits
    return text.isascii() and text.isdigit()


class _PathParser:
    """Recursive-descent parser over a single path string."""

    def __init__(self, path: str):
        self.path = path
        self.pos = 0

    def parse(self) -> Tuple[Segment, ...]:
        segments: List[Segment] = [self._segment()]
        self._rest(segments)
        return tuple(segments)

    def _rest(self, segments: List[Segment]) -> None:
        if self.pos == len(self.path):
            return
        char = self.path[self.pos]
        if char == ".":
            self.pos += 1
            segments.append(self._segment())
        elif char == "[":
            self.pos += 1
            segments.append(self._index())
        else:
            self._fail(f"unexpected {char!r}")
        self._rest(segments)

    def _segment(self) -> Segment:
        start = self.pos
        while self.pos < len(self.path) and self.path[self.pos] not in _DELIMITERS:
            self.pos += 1
        text = self.path[start:self.pos]
        if not text:
            self._fail("empty segment")
        return int(text) if _is_digits(text) else text

    def _index(self) -> int:
        start = self.pos
        while self.pos < len(self.path) and _is_digits(self.path[self.pos]):
            self.pos += 1
        digits = self.path[start:self.pos]
        if not digits:
            self._fail("expected digits inside []")
        if self.pos == len(self.path) or self.path[self.pos] != "]":
            self._fail("unclosed [")
        self.pos += 1
        return int(digits)

    def _fail(self, reason: str):
        raise KeyPathError(f"Invalid path {self.path!r} at position {self.pos}: {reason}")


def parse_path(path: str) -> Tuple[Segment, ...]:
    """Split a path string into document keys.

    >>> parse_path("a.b[3].c")
    ('a', 'b', 3, 'c')
    """
    if not isinstance(path, str):
        raise KeyPathError(f"Path must be a string, got {type(path).__name__}")
    if not path:
        raise KeyPathError("Path must not be empty")
    return _PathParser(path).parse()


def canonical_path(path: str) -> str:
    """Normalize a path to the dotted form used for diff keys.

    >>> canonical_path("items[2].name")
    'items.2.name'
    """
    return ".".join(str(segment) for segment in parse_path(path))


def _step(value: Any, segment: Segment) -> Any:
    if isinstance(value, (Document, Mapping)):
        return value.get(segment)
    # Staged sequence not yet promoted to a Document (1-based like Document.length())
    if isinstance(value, (list, tuple)) and isinstance(segment, int) and 1 <= segment <= len(value):
        return value[segment - 1]
    return None


def make_accessor(segments: Tuple[Segment, ...]) -> Accessor:
    """Build a function returning the value at segments, or None if any step is missing."""
    def accessor(doc):
        value = doc
        for segment in segments:
            value = _step(value, segment)
            if value is None:
                return None
        return value

    accessor.segments = segments
    return accessor


class KeyPathCompiler:
    """Cache of compiled accessors keyed by path string.

    Owned by a ChangeSet; identical path strings share one accessor for the
    lifetime of the compiler.
    """

    def __init__(self):
        self._accessors: Dict[str, Accessor] = {}

    def compile(self, path: str) -> Accessor:
        accessor = self._accessors.get(path)
        if accessor is None:
            accessor = make_accessor(parse_path(path))
            self._accessors[path] = accessor
            logger.debug(f"Compiled key path {path!r} → {accessor.segments}")
        return accessor

    def resolve(self, doc: Any, path: str) -> Any:
        return self.compile(path)(doc)

    @property
    def paths(self) -> List[str]:
        return list(self._accessors)

    def __contains__(self, path: str) -> bool:
        return path in self._accessors

    def __len__(self) -> int:
        return len(self._accessors)
