"""
Change-tracking documents with diff-driven callbacks.

A Document records every write since its last commit. commit() reconciles
the writes and returns a flat, dot-path-keyed diff. A ChangeSet binds
callbacks to paths, and mapchange() runs the ones whose paths changed.

Quick Start:
    >>> from tracedoc import create, build_changeset, mapchange, mapupdate
    >>>
    >>> doc = create({"hp": 10, "max_hp": 10, "pos": {"x": 0, "y": 0}})
    >>> changeset = build_changeset([
    ...     (lambda doc, hp: print("hp", hp), "hp"),
    ...     ("hud", lambda doc, hp, max_hp: print(f"{hp}/{max_hp}"), "hp", "max_hp"),
    ... ])
    >>> mapupdate(doc, changeset, "hud")   # initial population, returns call count
    10/10
    1
    >>> doc["hp"] = 7
    >>> doc["pos"]["x"] = 3
    >>> mapchange(doc, changeset)
    hp 7
    7/10
    Diff({'hp': 7, 'pos.x': 3}, count=2)

Modules:
    - document: Document, NULL sentinel, staging and read-through
    - commit: commit() and the Diff it produces
    - keypath: path string parser and cached accessors
    - changeset: build_changeset() and the ChangeSet registry
    - dispatch: mapchange() and mapupdate()
    - config: framework configuration (callback error policy, diff logging)
    - errors: error taxonomy
"""

# Document
from tracedoc.document import (
    NULL,
    Document,
    create,
    iterate,
    length,
    set_ignore,
    set_opaque,
)

# Commit
from tracedoc.commit import Diff, commit

# Key paths
from tracedoc.keypath import KeyPathCompiler, canonical_path, parse_path

# Change sets
from tracedoc.changeset import ChangeSet, ChangeSetEntry, build_changeset

# Dispatch
from tracedoc.dispatch import mapchange, mapupdate

# Configuration
from tracedoc.config import (
    TraceDocConfig,
    get_config,
    set_config,
    config_context,
)

# Errors
from tracedoc.errors import (
    TraceDocError,
    ChangeSetError,
    KeyPathError,
    InvalidKeyError,
    ConfigError,
)

__all__ = [
    # Document
    'NULL',
    'Document',
    'create',
    'iterate',
    'length',
    'set_ignore',
    'set_opaque',
    # Commit
    'Diff',
    'commit',
    # Key paths
    'KeyPathCompiler',
    'parse_path',
    'canonical_path',
    # Change sets
    'ChangeSet',
    'ChangeSetEntry',
    'build_changeset',
    # Dispatch
    'mapchange',
    'mapupdate',
    # Configuration
    'TraceDocConfig',
    'get_config',
    'set_config',
    'config_context',
    # Errors
    'TraceDocError',
    'ChangeSetError',
    'KeyPathError',
    'InvalidKeyError',
    'ConfigError',
]

__version__ = '1.0.0'
__description__ = 'Change-tracking documents with diff-driven callbacks'
