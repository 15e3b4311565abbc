"""
ChangeSet registry: a declarative table of callbacks bound to document paths.

Entries:
    (callback, path)                 watcher, callback(doc, value)
    (callback, path1, path2, ...)    mapping, callback(doc, value1, value2, ...)
    (tag, callback, path, ...)       either form, grouped under tag for mapupdate()

Example:
    changeset = build_changeset([
        (on_hp, "hp"),
        ("hud", draw_health_bar, "hp", "max_hp"),
    ])

A ChangeSet is built once and reused for every commit cycle.
"""
import dataclasses
from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, List, Sequence, Tuple

from tracedoc.errors import ChangeSetError, KeyPathError
from tracedoc.keypath import KeyPathCompiler, canonical_path

logger = logging.getLogger(__name__)

UNTAGGED = ""


@dataclass(frozen=True)
class ChangeSetEntry:
    """One registered callback and the paths it depends on."""
    callback: Callable[..., Any]
    paths: Tuple[str, ...]
    tag: str = UNTAGGED

    @property
    def is_watcher(self) -> bool:
        return len(self.paths) == 1


class ChangeSet:
    """Indexes built from a list of changeset entries.

    Attributes:
        watching: path → callbacks, in registration order
        mappings: multi-path entries, in registration order
        tags: tag → entries (watchers and mappings) for mapupdate()
        entries: every entry, in registration order
        compiler: compiled accessor for every distinct path
    """

    def __init__(self):
        self.watching: Dict[str, List[Callable[..., Any]]] = {}
        self.mappings: List[ChangeSetEntry] = []
        self.tags: Dict[str, List[ChangeSetEntry]] = {}
        self.entries: List[ChangeSetEntry] = []
        self.compiler = KeyPathCompiler()

    def add(self, entry: ChangeSetEntry) -> ChangeSetEntry:
        """Register entry under its canonical dotted paths and return the stored entry.

        "items[2]" and "items.02" are stored as "items.2", the form commit()
        writes into diffs.
        """
        try:
            paths = tuple(canonical_path(path) for path in entry.paths)
        except KeyPathError as e:
            raise ChangeSetError(f"Invalid path in changeset entry: {e}") from e
        for path in paths:
            self.compiler.compile(path)
        if paths != entry.paths:
            entry = dataclasses.replace(entry, paths=paths)

        self.entries.append(entry)
        self.tags.setdefault(entry.tag, []).append(entry)
        if entry.is_watcher:
            self.watching.setdefault(entry.paths[0], []).append(entry.callback)
        else:
            self.mappings.append(entry)
        return entry

    def resolve(self, doc: Any, path: str) -> Any:
        """Read path live from doc (None if it does not resolve)."""
        return self.compiler.resolve(doc, path)

    @property
    def paths(self) -> List[str]:
        return self.compiler.paths

    @property
    def watching_count(self) -> int:
        """Number of distinct watched paths."""
        return len(self.watching)

    def __repr__(self):
        return (f"ChangeSet(watching={self.watching_count}, mappings={len(self.mappings)}, "
                f"tags={list(self.tags)})")


def _parse_entry(raw: Any, index: int) -> ChangeSetEntry:
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise ChangeSetError(f"Entry #{index} must be a list or tuple, got {type(raw).__name__}")

    items = list(raw)
    tag = UNTAGGED
    if items and isinstance(items[0], str):
        tag = items.pop(0)

    if not items or not callable(items[0]):
        raise ChangeSetError(f"Entry #{index} has no callback: {raw!r}")
    callback, paths = items[0], items[1:]

    if not paths:
        raise ChangeSetError(f"Entry #{index} has no path: {raw!r}")
    for path in paths:
        if not isinstance(path, str) or not path:
            raise ChangeSetError(f"Entry #{index} has a non-string or empty path: {path!r}")

    return ChangeSetEntry(callback=callback, paths=tuple(paths), tag=tag)


def build_changeset(entries: Sequence[Any]) -> ChangeSet:
    """Validate entries and build a ChangeSet.

    Raises:
        ChangeSetError: an entry is malformed (checked here, not at dispatch)
    """
    changeset = ChangeSet()
    for index, raw in enumerate(entries):
        changeset.add(_parse_entry(raw, index))
    logger.debug(f"Built {changeset!r} from {len(changeset.entries)} entries")
    return changeset
