from collections.abc import Mapping
from dataclasses import replace
import logging

from .backup import makeSchema
from .history import clearHistory, commit, makeUndoableState, redo, undo


logger = logging.getLogger(__name__)


def actionType(action):
    """Return the type tag of an action, which is either a mapping with a
    "type" key or an object with a `type` attribute.
    """
    if isinstance(action, Mapping):
        return action.get("type")
    return getattr(action, "type", None)


def isUndoableAction(action):
    """The default undoable predicate: an action is undoable when it carries
    a true "undoable" key or attribute.
    """
    if isinstance(action, Mapping):
        return bool(action.get("undoable", False))
    return bool(getattr(action, "undoable", False))


def createUndoableReducer(baseReducer, schema, isUndoable=None, undoType="UNDO",
                          redoType="REDO", clearHistoryType="CLEAR_HISTORY",
                          initType="@@statebackup/INIT", limit=None, onMismatch="raise"):
    """Wrap `baseReducer`, a function taking (state, action) and returning the
    new state, into a reducer that works on UndoableState objects:

        >>> from statebackup.backup import identity
        >>> def counter(state, action):
        ...     state = state or {"count": 0}
        ...     if action["type"] == "increment":
        ...         return {"count": state["count"] + 1}
        ...     return state
        >>> reducer = createUndoableReducer(counter, {"count": identity})
        >>> s = reducer(None, {"type": "init"})
        >>> s = reducer(s, {"type": "increment", "undoable": True})
        >>> s.state
        {'count': 1}
        >>> reducer(s, {"type": "UNDO"}).state
        {'count': 0}

    Actions for which `isUndoable(action)` is true are committed to the undo
    history after the base reducer has run. By default that is any action
    with a true "undoable" key or attribute. Other actions only update the
    live state.

    Actions of type `undoType`, `redoType` and `clearHistoryType` are handled
    by the wrapper and never passed to `baseReducer`.

    When the wrapped reducer is called with None as its state, it asks
    `baseReducer` for the initial state and starts tracking from there, with
    the given history `limit`. If that first action is itself an undo, redo or
    clear-history action, `baseReducer` gets an action of type `initType`
    instead, and the empty history makes the undo or redo a no-op.
    """
    schema = makeSchema(schema)
    if isUndoable is None:
        isUndoable = isUndoableAction

    def undoableReducer(undoState, action):
        tag = actionType(action)
        reserved = tag in (undoType, redoType, clearHistoryType)
        if undoState is None:
            # reserved actions are not forwarded, not even to set up the state
            initialState = baseReducer(None, {"type": initType} if reserved else action)
            return makeUndoableState(initialState, schema, limit=limit, onMismatch=onMismatch)
        if tag == undoType:
            return undo(undoState, schema, onMismatch=onMismatch)
        if tag == redoType:
            return redo(undoState, schema, onMismatch=onMismatch)
        if tag == clearHistoryType:
            logger.debug("clearing undo history")
            return clearHistory(undoState, schema, onMismatch=onMismatch)
        newState = baseReducer(undoState.state, action)
        if isUndoable(action):
            return commit(undoState, newState, schema, onMismatch=onMismatch, type=tag)
        if newState is undoState.state:
            return undoState
        return replace(undoState, state=newState)

    return undoableReducer
