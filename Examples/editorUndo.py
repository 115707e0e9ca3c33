from dataclasses import dataclass, field, replace
import json
from statebackup import SliceTransform, UndoManager, createBackup, identity, loadBackup


@dataclass
class Shape:

    kind: str
    x: float
    y: float


@dataclass
class Canvas:

    shapes: list = field(default_factory=list)
    zoom: float = 1.0


@dataclass
class EditorState:

    canvas: Canvas = field(default_factory=Canvas)
    title: str = "untitled"
    selection: tuple = ()


shapesTransform = SliceTransform(
    save=lambda shapes: [[s.kind, s.x, s.y] for s in shapes],
    load=lambda stored: [Shape(*item) for item in stored],
)

schema = {
    "canvas": {
        "shapes": shapesTransform,
    },
    "title": identity,
}


def addShape(state, shape):
    canvas = replace(state.canvas, shapes=state.canvas.shapes + [shape])
    return replace(state, canvas=canvas, selection=(len(canvas.shapes) - 1,))


if __name__ == "__main__":
    changes = []
    um = UndoManager(schema, EditorState(), changeMonitor=changes.append)

    um.commit(addShape(um.state, Shape("rect", 10, 10)), title="add rectangle")
    um.commit(addShape(um.state, Shape("oval", 50, 20)), title="add oval")
    um.commit(replace(um.state, title="Drawing"), title="rename")
    assert len(changes) == 3

    # zoom isn't part of the schema, so it doesn't make an undo step
    um.commit(replace(um.state, canvas=replace(um.state.canvas, zoom=2.0)))
    assert len(um.undoState.history) == 3

    um.undo()
    assert um.state.title == "untitled"
    um.undo()
    assert [s.kind for s in um.state.canvas.shapes] == ["rect"]
    assert um.state.canvas.zoom == 2.0
    assert um.redoInfo() == {"title": "add oval"}
    um.redo()
    um.redo()
    assert um.state.title == "Drawing"
    assert len(um.state.canvas.shapes) == 2

    titles = [snapshot["title"] for snapshot in um.iterateHistory()]
    assert titles == ["untitled", "untitled", "Drawing"]

    # A backup value is plain data, and survives a trip through JSON
    stored = json.dumps(createBackup(um.state, schema))
    restored = loadBackup(EditorState(), schema, json.loads(stored))
    assert restored.canvas.shapes == um.state.canvas.shapes
    assert restored.title == "Drawing"
    assert restored.selection == ()
