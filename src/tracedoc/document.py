"""
Document: a nested key/value structure that records every write since the
last commit.

Reads go through the staging area first and fall back to committed state.
Writes only ever land in the staging area; committed state changes during
commit() (see tracedoc.commit).

Storage layout:
- _committed: key → value as of the last commit
- _staged: key → pending value (or _DELETED). Its keys are the dirty set,
  kept in insertion order.
"""
from collections.abc import Mapping
import logging
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from tracedoc.errors import InvalidKeyError

logger = logging.getLogger(__name__)

Key = Union[str, int]


class _NullType:
    """Singleton reported in diffs for keys deleted during a commit.

    Distinct from None, which in a diff would be indistinguishable from a key
    that was never set. Compare with `is`.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "NULL"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_NullType, ())


NULL = _NullType()

# Staged marker for a pending delete. Never leaves this package.
_DELETED = object()
_MISSING = object()


def is_structured(value: Any) -> bool:
    """True for plain values that commit() promotes to a nested Document."""
    return isinstance(value, (Mapping, list, tuple))


def structured_items(value: Any):
    """Iterate (key, value) pairs of a structured value.

    Sequences map to integer keys starting at 1, matching Document.length().
    """
    if isinstance(value, (Mapping, Document)):
        return value.items()
    return enumerate(value, 1)


def check_key(key: Any) -> None:
    """Raise InvalidKeyError unless key is a str or a non-negative int."""
    if isinstance(key, bool) or not isinstance(key, (str, int)):
        raise InvalidKeyError(f"Document keys must be str or int, got {type(key).__name__}: {key!r}")
    if isinstance(key, int) and key < 0:
        raise InvalidKeyError(f"Integer document keys must be non-negative, got {key}")


def _check_structured_keys(value: Any) -> None:
    if isinstance(value, Mapping):
        for key, item in value.items():
            check_key(key)
            if is_structured(item):
                _check_structured_keys(item)
    else:
        for item in value:
            if is_structured(item):
                _check_structured_keys(item)


class Document:
    """
    Change-tracking key/value document.

    Values are scalars or nested Documents. Assigning a mapping, list or tuple
    stages it as-is; the next commit() promotes it to a nested Document that
    keeps its identity across later assignments.

    Writing None (or NULL) deletes the key on the next commit. The diff then
    reports the key as NULL.

    Flags:
    - ignored: commit() does nothing
    - opaque: when nested, the parent diff only records True at this
      document's path instead of its individual fields

    Not thread-safe (all access expected from one thread).
    """

    def __init__(self, initial: Optional[Any] = None):
        self._committed: Dict[Key, Any] = {}
        self._staged: Dict[Key, Any] = {}
        self._ignore = False
        self._opaque = False
        # Contiguous length as of the last length() call; lowered on deletes
        self._length_hint: Optional[int] = None

        if initial is not None:
            if not (is_structured(initial) or isinstance(initial, Document)):
                raise TypeError(f"Document initial value must be a mapping or sequence, got {type(initial).__name__}")
            for key, value in structured_items(initial):
                self.set(key, value)
            # Initial values become the baseline, not a change
            self.commit()

    # === Read / write ===

    def get(self, key: Key, default: Any = None) -> Any:
        """Return the staged value if key was written this cycle, else the committed one."""
        if key in self._staged:
            value = self._staged[key]
            return default if value is _DELETED else value
        return self._committed.get(key, default)

    def set(self, key: Key, value: Any) -> None:
        """Stage value for key. None or NULL stages a delete."""
        check_key(key)
        if value is None or value is NULL:
            if key not in self._committed and key not in self._staged:
                # Nothing to delete
                return
            self._staged[key] = _DELETED
            if isinstance(key, int) and self._length_hint is not None and 0 < key <= self._length_hint:
                self._length_hint = key - 1
            return
        if is_structured(value):
            _check_structured_keys(value)
        self._staged[key] = value

    def __getitem__(self, key: Key) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def __setitem__(self, key: Key, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: Key) -> None:
        self.set(key, None)

    def __contains__(self, key: Key) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    # === Iteration ===

    def items(self) -> Iterator[Tuple[Key, Any]]:
        """Yield (key, value) for every visible key, each exactly once.

        Committed keys come first (staged overrides applied, staged deletes
        skipped), then keys that only exist in the staging area. Mutating the
        document while iterating is undefined.
        """
        staged = self._staged
        committed = self._committed
        for key, value in committed.items():
            if key in staged:
                value = staged[key]
                if value is _DELETED:
                    continue
            yield key, value
        for key, value in staged.items():
            if value is _DELETED or key in committed:
                continue
            yield key, value

    def keys(self) -> Iterator[Key]:
        for key, _ in self.items():
            yield key

    def values(self) -> Iterator[Any]:
        for _, value in self.items():
            yield value

    def __iter__(self) -> Iterator[Key]:
        return self.keys()

    # === Array length ===

    def length(self) -> int:
        """Return n such that integer keys 1..n all hold values and n + 1 does not."""
        idx = self._length_hint or 0
        # Stale hint: search backward, then forward for appended indices
        while idx > 0 and self.get(idx) is None:
            idx -= 1
        while self.get(idx + 1) is not None:
            idx += 1
        self._length_hint = idx
        return idx

    # === Flags ===

    @property
    def ignored(self) -> bool:
        return self._ignore

    @property
    def opaque(self) -> bool:
        return self._opaque

    @property
    def dirty(self) -> bool:
        """True if any key was written since the last commit."""
        return bool(self._staged)

    def set_ignore(self, enable: bool = True) -> None:
        """Suspend (or resume) tracking: commit() is a no-op while ignored."""
        self._ignore = bool(enable)
        logger.debug(f"Tracking {'suspended' if self._ignore else 'resumed'} for document {id(self):#x}")

    def set_opaque(self, enable: bool = True) -> None:
        self._opaque = bool(enable)

    # === Commit ===

    def commit(self, sink=None):
        """Reconcile staged writes. See tracedoc.commit.commit()."""
        from tracedoc.commit import commit
        return commit(self, sink)

    def to_dict(self) -> Dict[Key, Any]:
        """Plain dict of visible values with nested Documents expanded."""
        return {
            key: value.to_dict() if isinstance(value, Document) else value
            for key, value in self.items()
        }

    def __repr__(self):
        flags = []
        if self._ignore:
            flags.append("ignored")
        if self._opaque:
            flags.append("opaque")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        return f"Document({self.to_dict()!r}){suffix}"


def create(initial: Optional[Any] = None) -> Document:
    """Create a Document. Initial values are committed immediately."""
    return Document(initial)


def iterate(doc: Document) -> Iterator[Tuple[Key, Any]]:
    return doc.items()


def length(doc: Document) -> int:
    return doc.length()


def set_ignore(doc: Document, enable: bool) -> None:
    doc.set_ignore(enable)


def set_opaque(doc: Document, enable: bool) -> None:
    doc.set_opaque(enable)
