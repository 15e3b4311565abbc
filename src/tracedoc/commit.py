"""
Commit/diff engine.

commit() folds a Document's staged writes into its committed state and
reports what changed as a flat Diff keyed by dotted path:

    doc = create({"hp": 10, "pos": {"x": 1, "y": 2}})
    doc["hp"] = 7
    doc["pos"]["x"] = 5
    commit(doc, Diff())  # → {"hp": 7, "pos.x": 5}

Two passes per document:
1. Dirty keys, in write order.
2. Every nested Document in committed state, whether or not its key was
   written. A nested document held by reference can change without the
   parent ever seeing a write.
"""
from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Iterator, Optional, Union

from tracedoc.document import (
    NULL,
    Document,
    _DELETED,
    _MISSING,
    is_structured,
    structured_items,
)

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Diff:
    """Flat result of a commit: dotted path → new value.

    Deleted keys map to NULL. Opaque nested documents map to True.
    count is the number of changes recorded, which can exceed len() when the
    same Diff is reused across commits.
    """
    changes: Dict[str, Any] = field(default_factory=dict)
    count: int = 0

    def record(self, path: str, value: Any) -> None:
        self.changes[path] = value
        self.count += 1

    def __contains__(self, path: str) -> bool:
        return path in self.changes

    def __getitem__(self, path: str) -> Any:
        return self.changes[path]

    def get(self, path: str, default: Any = None) -> Any:
        return self.changes.get(path, default)

    def items(self):
        return self.changes.items()

    def keys(self):
        return self.changes.keys()

    def values(self):
        return self.changes.values()

    def __iter__(self) -> Iterator[str]:
        return iter(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def __eq__(self, other):
        if isinstance(other, Diff):
            return self.changes == other.changes
        if isinstance(other, dict):
            return self.changes == other
        return NotImplemented

    def __repr__(self):
        return f"Diff({self.changes!r}, count={self.count})"


def _same_value(old: Any, new: Any) -> bool:
    """Scalar equality that keeps True/1 and 1/1.0 apart."""
    return old is new or (type(old) is type(new) and old == new)


def _merge_structured(doc: Document, key, value) -> Document:
    """Write a plain structured value into the nested Document at key.

    The nested Document is created on first assignment and updated
    field-by-field afterwards, so its identity survives reassignment.
    """
    committed = doc._committed
    target = committed.get(key)
    if not isinstance(target, Document):
        target = Document()
        committed[key] = target
        for sub_key, sub_value in structured_items(value):
            target.set(sub_key, sub_value)
        return target

    incoming = dict(structured_items(value))
    for sub_key in list(target.keys()):
        if incoming.get(sub_key) is None:
            target.set(sub_key, None)
    for sub_key, sub_value in incoming.items():
        if sub_value is None:
            continue
        if not _same_value(target.get(sub_key), sub_value):
            target.set(sub_key, sub_value)
    return target


def _commit_staged(doc: Document, sink: Optional[Diff], prefix: str) -> bool:
    committed = doc._committed
    pending = list(doc._staged.items())
    doc._staged.clear()

    changed = False
    for key, value in pending:
        if value is _DELETED:
            if key not in committed:
                continue
            del committed[key]
            value = NULL
        elif is_structured(value):
            # Field changes surface from the nested walk, not here
            _merge_structured(doc, key, value)
            continue
        elif isinstance(value, Document):
            if committed.get(key) is value:
                continue
            # The slot entry already covers the incoming document; its own
            # pending writes become its baseline instead of key.* entries
            commit(value)
            committed[key] = value
        else:
            old = committed.get(key, _MISSING)
            if old is not _MISSING and _same_value(old, value):
                continue
            committed[key] = value

        changed = True
        if sink is not None:
            sink.record(f"{prefix}{key}", value)
    return changed


def _commit_nested(doc: Document, sink: Optional[Diff], prefix: str) -> bool:
    changed = False
    for key, value in list(doc._committed.items()):
        if not isinstance(value, Document):
            continue
        path = f"{prefix}{key}"
        if value.opaque:
            if commit(value):
                changed = True
                if sink is not None:
                    sink.record(path, True)
        elif sink is not None:
            before = sink.count
            commit(value, sink, path + ".")
            if sink.count != before:
                changed = True
        elif commit(value):
            changed = True
    return changed


def commit(doc: Document, sink: Optional[Diff] = None, prefix: str = "") -> Union[Diff, bool]:
    """Reconcile doc's staged writes into committed state.

    Args:
        doc: Document to reconcile (nested documents are reconciled too)
        sink: Diff to record changes into. If None, no paths are recorded.
        prefix: Path prefix for recorded keys (used for nested documents)

    Returns:
        sink if one was given, otherwise True if anything changed.
    """
    if doc.ignored:
        return sink if sink is not None else False

    changed = _commit_staged(doc, sink, prefix)
    # Nested walk always runs; a changed flag must not short-circuit it
    changed = _commit_nested(doc, sink, prefix) or changed

    if changed and not prefix:
        if sink is not None:
            logger.debug(f"Committed document: {sink.count} change(s)")
        else:
            logger.debug("Committed document with changes")
    return sink if sink is not None else changed
