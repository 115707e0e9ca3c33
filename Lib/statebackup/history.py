from dataclasses import dataclass, field, replace
import logging
from types import MappingProxyType
import typing

from .backup import createBackup, loadBackup, makeSchema
from .diff import applyDiff, computeDiff, invertDiff, isEmptyDiff


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:

    """A HistoryEntry holds the diff from one committed snapshot to the next,
    plus the info dict that was passed to commit(). The info dict can for
    example be used for an undo/redo menu item title.
    """

    diff: typing.Any
    info: typing.Mapping = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "info", MappingProxyType(dict(self.info)))


@dataclass(frozen=True)
class UndoableState:

    """An UndoableState bundles the live application state with its undo
    history:

    - state: the live state
    - present: the backup value of the last committed state
    - history: HistoryEntry tuple, oldest first, leading up to `present`
    - future: HistoryEntry tuple of undone steps, most recently undone first
    - limit: the maximum length of `history`, or None for no limit

    Only diffs are stored, never full snapshots other than `present`. The
    transition functions (commit(), undo(), redo(), clearHistory()) return
    new UndoableState objects and leave their argument alone, so several
    independent undoable states can exist side by side.
    """

    state: typing.Any
    present: typing.Any
    history: tuple = ()
    future: tuple = ()
    limit: typing.Optional[int] = None


def makeUndoableState(state, schema, limit=None, onMismatch="raise"):
    """Start tracking undo history for `state`. The initial history and
    future are empty.

        >>> from statebackup.backup import identity
        >>> undoState = makeUndoableState({"count": 0, "ui": "x"}, {"count": identity})
        >>> undoState.present
        {'count': 0}
    """
    if limit is not None and limit < 1:
        raise ValueError(f"history limit must be at least 1, not {limit!r}")
    present = createBackup(state, schema, onMismatch=onMismatch)
    return UndoableState(state, present, (), (), limit)


def commit(undoState, newState, schema, onMismatch="raise", **info):
    """Record the transition to `newState`. If the backup value of `newState`
    differs from `present`, a HistoryEntry is appended to the history and the
    future is discarded. Keyword arguments form the entry's info dict.

    If nothing changed as far as the schema is concerned, the history is left
    untouched, but the returned UndoableState does carry `newState` as its
    live state.
    """
    schema = makeSchema(schema)
    snapshot = createBackup(newState, schema, onMismatch=onMismatch)
    diff = computeDiff(undoState.present, snapshot, schema)
    if isEmptyDiff(diff):
        if newState is undoState.state:
            return undoState
        return replace(undoState, state=newState)
    history = undoState.history + (HistoryEntry(diff, info),)
    limit = undoState.limit
    if limit is not None and len(history) > limit:
        numEvicted = len(history) - limit
        logger.debug("history limit %d reached, dropping %d oldest entries", limit, numEvicted)
        history = history[numEvicted:]
    if undoState.future:
        logger.debug("discarding %d redo entries", len(undoState.future))
    logger.debug("committed %r, history length %d", info, len(history))
    return UndoableState(newState, snapshot, history, (), limit)


def undo(undoState, schema, onMismatch="raise"):
    """Step back to the previous committed snapshot and restore it into the
    live state. The undone entry moves to the front of the future.

    Undo with an empty history does nothing and returns `undoState` itself.
    """
    if not undoState.history:
        logger.debug("nothing to undo")
        return undoState
    entry = undoState.history[-1]
    previous = applyDiff(undoState.present, invertDiff(entry.diff))
    logger.debug("undoing %r", dict(entry.info))
    state = loadBackup(undoState.state, schema, previous, onMismatch=onMismatch)
    return UndoableState(state, previous, undoState.history[:-1],
                         (entry,) + undoState.future, undoState.limit)


def redo(undoState, schema, onMismatch="raise"):
    """Reapply the most recently undone step and restore the resulting
    snapshot into the live state.

    Redo with an empty future does nothing and returns `undoState` itself.
    """
    if not undoState.future:
        logger.debug("nothing to redo")
        return undoState
    entry = undoState.future[0]
    following = applyDiff(undoState.present, entry.diff)
    logger.debug("redoing %r", dict(entry.info))
    state = loadBackup(undoState.state, schema, following, onMismatch=onMismatch)
    return UndoableState(state, following, undoState.history + (entry,),
                         undoState.future[1:], undoState.limit)


def clearHistory(undoState, schema, onMismatch="raise"):
    """Forget all history and future, and take the live state as the new
    starting point.
    """
    present = createBackup(undoState.state, schema, onMismatch=onMismatch)
    return UndoableState(undoState.state, present, (), (), undoState.limit)


def canUndo(undoState):
    return bool(undoState.history)


def canRedo(undoState):
    return bool(undoState.future)


def undoInfo(undoState):
    """Return the info dict of the step undo() would undo, or None if the
    history is empty.
    """
    if undoState.history:
        return undoState.history[-1].info
    else:
        return None  # empty history


def redoInfo(undoState):
    """Return the info dict of the step redo() would redo, or None if the
    future is empty.
    """
    if undoState.future:
        return undoState.future[0].info
    else:
        return None  # empty future


def initialSnapshot(undoState):
    """Return the oldest snapshot that can still be reached by undoing, by
    unwinding the history from `present`.
    """
    snapshot = undoState.present
    for entry in reversed(undoState.history):
        snapshot = applyDiff(snapshot, invertDiff(entry.diff))
    return snapshot


class UndoHistory:

    """A read-only view on the history of an UndoableState. Iterating yields
    the snapshot that followed each recorded step, oldest first; the last one
    equals `present`. Snapshots are reconstructed while iterating, one at a
    time. The view can be iterated more than once.
    """

    def __init__(self, undoState):
        self._undoState = undoState

    def __len__(self):
        return len(self._undoState.history)

    def __iter__(self):
        snapshot = initialSnapshot(self._undoState)
        for entry in self._undoState.history:
            snapshot = applyDiff(snapshot, entry.diff)
            yield snapshot

    def initialSnapshot(self):
        return initialSnapshot(self._undoState)


def iterateUndoHistory(undoState):
    return UndoHistory(undoState)


class UndoManager:

    """An UndoManager owns a single UndoableState, for applications that
    prefer to keep their undo history in an object rather than thread it
    through their own state.

        >>> from statebackup.backup import identity
        >>> um = UndoManager({"text": identity}, {"text": "", "selection": None})
        >>> um.commit({"text": "Hello", "selection": None}, title="type")
        >>> um.commit({"text": "Hello world", "selection": (5, 11)}, title="type")
        >>> um.undo()
        >>> um.state
        {'text': 'Hello', 'selection': (5, 11)}

    Fields outside the schema (here: "selection") are not touched by undo and
    redo.

        >>> um.redo()
        >>> um.state["text"]
        'Hello world'
        >>> dict(um.undoInfo())
        {'title': 'type'}

    Undo and redo quietly do nothing when there's nothing to undo or redo.

    UndoManager() has an optional argument called `changeMonitor`, which should
    be a callable taking one positional argument. It will be called with the
    diff that was applied to the snapshot, for every commit that changed
    something and for every undo or redo.
    """

    def __init__(self, schema, state, limit=None, onMismatch="raise", changeMonitor=None):
        self.schema = makeSchema(schema)
        self._onMismatch = onMismatch
        self._changeMonitor = changeMonitor
        self.undoState = makeUndoableState(state, self.schema, limit=limit, onMismatch=onMismatch)

    @property
    def state(self):
        return self.undoState.state

    def commit(self, newState, **info):
        previousHistory = self.undoState.history
        self.undoState = commit(self.undoState, newState, self.schema,
                                onMismatch=self._onMismatch, **info)
        if self.undoState.history is not previousHistory:
            self._notify(self.undoState.history[-1].diff)

    def undo(self):
        if not self.undoState.history:
            return
        entry = self.undoState.history[-1]
        self.undoState = undo(self.undoState, self.schema, onMismatch=self._onMismatch)
        self._notify(invertDiff(entry.diff))

    def redo(self):
        if not self.undoState.future:
            return
        entry = self.undoState.future[0]
        self.undoState = redo(self.undoState, self.schema, onMismatch=self._onMismatch)
        self._notify(entry.diff)

    def clearHistory(self):
        self.undoState = clearHistory(self.undoState, self.schema, onMismatch=self._onMismatch)

    def canUndo(self):
        return canUndo(self.undoState)

    def canRedo(self):
        return canRedo(self.undoState)

    def undoInfo(self):
        return undoInfo(self.undoState)

    def redoInfo(self):
        return redoInfo(self.undoState)

    def iterateHistory(self):
        return iterateUndoHistory(self.undoState)

    def _notify(self, diff):
        if self._changeMonitor is not None:
            self._changeMonitor(diff)
