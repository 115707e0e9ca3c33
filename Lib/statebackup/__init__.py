"""# statebackup

Selective backup and diff-based undo for tree-shaped application state.

An application describes, per slice of its state, how to reduce that slice to
a storable value and how to turn such a value back into a slice. These
SliceTransform objects are arranged in a schema that mirrors the shape of the
state. createBackup() walks the state along the schema and returns a backup
value holding only the chosen data; loadBackup() merges a backup value back
onto a base state, leaving everything the schema doesn't mention alone.

    >>> schema = {
    ...     "doc": {
    ...         "title": identity,
    ...         "words": SliceTransform(save=" ".join, load=str.split),
    ...     },
    ... }
    >>> state = {"doc": {"title": "Notes", "words": ["a", "b"]}, "hover": 3}
    >>> backup = createBackup(state, schema)
    >>> backup
    {'doc': {'title': 'Notes', 'words': 'a b'}}
    >>> loadBackup({"hover": None}, schema, backup)
    {'hover': None, 'doc': {'title': 'Notes', 'words': ['a', 'b']}}

On top of this sits an undo history that stores only the differences between
successive backup values. It can be driven through a reducer wrapper, or
through an UndoManager object:

    >>> um = UndoManager(schema, state)
    >>> um.commit({"doc": {"title": "Notes!", "words": ["a", "b"]}, "hover": 3},
    ...           title="rename")
    >>> um.undo()
    >>> um.state["doc"]["title"]
    'Notes'
    >>> um.redo()
    >>> um.state["doc"]["title"]
    'Notes!'

The history is a plain value (UndoableState) that is passed in and returned
out of every operation; nothing is kept in module-level state.
"""

from .backup import (
    CyclicSchemaError,
    Leaf,
    Node,
    SchemaMismatchError,
    SliceTransform,
    StateBackupError,
    createBackup,
    identity,
    loadBackup,
    makeSchema,
)
from .diff import applyDiff, computeDiff, invertDiff, iterChanges
from .history import (
    HistoryEntry,
    UndoableState,
    UndoManager,
    iterateUndoHistory,
    makeUndoableState,
)
from .reducer import createUndoableReducer

__all__ = [
    "CyclicSchemaError",
    "HistoryEntry",
    "Leaf",
    "Node",
    "SchemaMismatchError",
    "SliceTransform",
    "StateBackupError",
    "UndoManager",
    "UndoableState",
    "applyDiff",
    "computeDiff",
    "createBackup",
    "createUndoableReducer",
    "identity",
    "invertDiff",
    "iterChanges",
    "iterateUndoHistory",
    "loadBackup",
    "makeSchema",
    "makeUndoableState",
]

try:
    from ._version import version as __version__
except ImportError:
    __version__ = "<unknown>"
