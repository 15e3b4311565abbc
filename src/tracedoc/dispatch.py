"""
Dispatch engine: runs ChangeSet callbacks against a commit diff.

mapchange() commits a document and calls the watchers and mappings whose
paths appear in the diff. mapupdate() calls tagged entries unconditionally
with live values (initial population, periodic refresh).

Callback values never include NULL: deleted paths are passed as None.
"""
import logging
from typing import Any, Callable, Iterable, List, Optional

from tracedoc.changeset import ChangeSet, ChangeSetEntry
from tracedoc.commit import Diff, commit
from tracedoc.config import get_config
from tracedoc.document import NULL, Document

logger = logging.getLogger(__name__)


def _invoke(callback: Callable[..., Any], doc: Document, args: List[Any], paths) -> None:
    try:
        callback(doc, *args)
    except Exception as e:
        if get_config().callback_errors == "raise":
            raise
        logger.warning(f"Error in changeset callback {callback!r} for {paths}: {e}")


def _fire_watchers(doc: Document, callbacks: Iterable[Callable[..., Any]], value: Any, path: str) -> None:
    if value is NULL:
        value = None
    for callback in callbacks:
        _invoke(callback, doc, [value], path)


def _resolve_args(doc: Document, changeset: ChangeSet, entry: ChangeSetEntry, diff: Diff) -> List[Any]:
    """Diff value when the path changed, live read otherwise."""
    args = []
    for path in entry.paths:
        if path in diff:
            value = diff[path]
            args.append(None if value is NULL else value)
        else:
            args.append(changeset.resolve(doc, path))
    return args


def mapchange(doc: Document, changeset: ChangeSet, sink: Optional[Diff] = None) -> Diff:
    """Commit doc and dispatch the resulting diff to changeset callbacks.

    Args:
        doc: Document to commit
        changeset: Registry built by build_changeset()
        sink: Diff to commit into (a new one if None)

    Returns:
        The diff, for further inspection by the caller.
    """
    diff = commit(doc, sink if sink is not None else Diff())
    if diff.count == 0:
        return diff

    if get_config().log_diffs:
        logger.debug(f"Dispatching diff: {diff!r}")

    watching = changeset.watching
    if diff.count > len(watching):
        # More changes than watched paths: probe the diff per watched path
        for path, callbacks in watching.items():
            if path in diff:
                _fire_watchers(doc, callbacks, diff[path], path)
    else:
        for path, value in diff.items():
            callbacks = watching.get(path)
            if callbacks:
                _fire_watchers(doc, callbacks, value, path)

    fired = 0
    for entry in changeset.mappings:
        # At most one call per mapping, however many of its paths changed
        if any(path in diff for path in entry.paths):
            _invoke(entry.callback, doc, _resolve_args(doc, changeset, entry, diff), entry.paths)
            fired += 1
    logger.debug(f"mapchange: {diff.count} change(s), {fired} mapping(s) fired")
    return diff


def mapupdate(doc: Document, changeset: ChangeSet, tag: Optional[str] = None) -> int:
    """Call every entry registered under tag (all entries if tag is None) with live values.

    Does not commit doc.

    Returns:
        Number of callbacks invoked.
    """
    entries = changeset.entries if tag is None else changeset.tags.get(tag, [])
    for entry in entries:
        args = [changeset.resolve(doc, path) for path in entry.paths]
        _invoke(entry.callback, doc, args, entry.paths)
    logger.debug(f"mapupdate: tag={tag!r}, {len(entries)} callback(s)")
    return len(entries)
