from dataclasses import dataclass
import pytest
from statebackup.backup import SchemaMismatchError, identity
from statebackup.history import UndoableState, iterateUndoHistory
from statebackup.reducer import actionType, createUndoableReducer, isUndoableAction


def todoReducer(state, action):
    if state is None:
        state = {"todos": (), "filter": "all"}
    kind = actionType(action)
    if kind == "add":
        return {**state, "todos": state["todos"] + (action["text"],)}
    if kind == "setFilter":
        return {**state, "filter": action["filter"]}
    return state


todoSchema = {"todos": identity}


def _add(text):
    return {"type": "add", "text": text, "undoable": True}


@dataclass
class _Action:

    type: str
    undoable: bool = False


class TestActions:

    def test_actionType(self):
        assert actionType({"type": "add"}) == "add"
        assert actionType(_Action("add")) == "add"
        assert actionType({}) is None
        assert actionType(object()) is None

    def test_isUndoableAction(self):
        assert isUndoableAction({"type": "add", "undoable": True})
        assert not isUndoableAction({"type": "add"})
        assert isUndoableAction(_Action("add", undoable=True))
        assert not isUndoableAction(_Action("add"))


class TestUndoableReducer:

    def test_initialize(self):
        reducer = createUndoableReducer(todoReducer, todoSchema)
        undoState = reducer(None, {"type": "@@init"})
        assert isinstance(undoState, UndoableState)
        assert undoState.state == {"todos": (), "filter": "all"}
        assert undoState.present == {"todos": ()}
        assert undoState.history == ()

    def test_undo_redo(self):
        reducer = createUndoableReducer(todoReducer, todoSchema)
        s = reducer(None, {"type": "@@init"})
        s = reducer(s, _add("milk"))
        s = reducer(s, _add("eggs"))
        assert s.state["todos"] == ("milk", "eggs")
        assert [entry.info for entry in s.history] == [{"type": "add"}, {"type": "add"}]
        s = reducer(s, {"type": "UNDO"})
        assert s.state["todos"] == ("milk",)
        s = reducer(s, {"type": "UNDO"})
        assert s.state["todos"] == ()
        s = reducer(s, {"type": "REDO"})
        s = reducer(s, {"type": "REDO"})
        assert s.state["todos"] == ("milk", "eggs")

    def test_reserved_actions_are_not_forwarded(self):
        seen = []

        def recordingReducer(state, action):
            seen.append(actionType(action))
            return todoReducer(state, action)

        reducer = createUndoableReducer(recordingReducer, todoSchema)
        s = reducer(None, {"type": "@@init"})
        s = reducer(s, _add("x"))
        s = reducer(s, {"type": "UNDO"})
        s = reducer(s, {"type": "REDO"})
        s = reducer(s, {"type": "CLEAR_HISTORY"})
        assert seen == ["@@init", "add"]

    def test_non_undoable_actions(self):
        reducer = createUndoableReducer(todoReducer, todoSchema)
        s = reducer(None, {"type": "@@init"})
        s = reducer(s, _add("milk"))
        s = reducer(s, {"type": "setFilter", "filter": "done"})
        assert len(s.history) == 1
        assert s.state["filter"] == "done"
        s = reducer(s, {"type": "UNDO"})
        assert s.state == {"todos": (), "filter": "done"}

    def test_non_undoable_action_on_tracked_slice(self):
        reducer = createUndoableReducer(todoReducer, todoSchema)
        s = reducer(None, {"type": "@@init"})
        s = reducer(s, {"type": "add", "text": "quiet"})
        assert s.history == ()
        assert s.present == {"todos": ()}
        assert s.state["todos"] == ("quiet",)

    def test_unknown_action_returns_same_state(self):
        reducer = createUndoableReducer(todoReducer, todoSchema)
        s = reducer(None, {"type": "@@init"})
        assert reducer(s, {"type": "unknown"}) is s

    def test_noop_undo_redo(self):
        reducer = createUndoableReducer(todoReducer, todoSchema)
        s = reducer(None, {"type": "@@init"})
        assert reducer(s, {"type": "UNDO"}) is s
        assert reducer(s, {"type": "REDO"}) is s

    def test_new_action_discards_future(self):
        reducer = createUndoableReducer(todoReducer, todoSchema)
        s = reducer(None, {"type": "@@init"})
        s = reducer(s, _add("a"))
        s = reducer(s, _add("b"))
        s = reducer(s, {"type": "UNDO"})
        s = reducer(s, _add("c"))
        assert s.future == ()
        assert reducer(s, {"type": "REDO"}) is s
        assert s.state["todos"] == ("a", "c")

    def test_clear_history(self):
        reducer = createUndoableReducer(todoReducer, todoSchema)
        s = reducer(None, {"type": "@@init"})
        s = reducer(s, _add("a"))
        s = reducer(s, {"type": "CLEAR_HISTORY"})
        assert s.history == ()
        assert s.present == {"todos": ("a",)}

    def test_custom_options(self):
        reducer = createUndoableReducer(
            todoReducer, todoSchema,
            isUndoable=lambda action: actionType(action) == "add",
            undoType="app/undo", redoType="app/redo", limit=2,
        )
        s = reducer(None, {"type": "@@init"})
        for text in "abc":
            s = reducer(s, {"type": "add", "text": text})
        assert len(s.history) == 2
        assert s.limit == 2
        s = reducer(s, {"type": "app/undo"})
        s = reducer(s, {"type": "app/undo"})
        s = reducer(s, {"type": "app/undo"})
        assert s.state["todos"] == ("a",)
        s = reducer(s, {"type": "app/redo"})
        assert s.state["todos"] == ("a", "b")
        assert [snapshot["todos"] for snapshot in iterateUndoHistory(s)] == [("a", "b")]

    def test_object_actions(self):
        def reducer_(state, action):
            state = state or {"n": 0}
            if action.type == "inc":
                return {"n": state["n"] + 1}
            return state

        reducer = createUndoableReducer(reducer_, {"n": identity})
        s = reducer(None, _Action("init"))
        s = reducer(s, _Action("inc", undoable=True))
        s = reducer(s, _Action("UNDO"))
        assert s.state == {"n": 0}

    def test_mismatch_policy(self):
        def badReducer(state, action):
            return {"nested": None}

        with pytest.raises(SchemaMismatchError):
            createUndoableReducer(badReducer, {"nested": {"x": identity}})(None, {"type": "init"})
        reducer = createUndoableReducer(badReducer, {"nested": {"x": identity}}, onMismatch="empty")
        s = reducer(None, {"type": "init"})
        assert s.present == {"nested": {"x": None}}

    @pytest.mark.parametrize("tag", ["UNDO", "REDO", "CLEAR_HISTORY"])
    def test_reserved_action_as_first_action(self, tag):
        seen = []

        def recordingReducer(state, action):
            seen.append(actionType(action))
            return todoReducer(state, action)

        reducer = createUndoableReducer(recordingReducer, todoSchema, initType="app/init")
        s = reducer(None, {"type": tag})
        assert seen == ["app/init"]
        assert s.state == {"todos": (), "filter": "all"}
        assert s.history == () and s.future == ()
