from collections.abc import Mapping
from dataclasses import dataclass, fields, is_dataclass, replace
from functools import singledispatch
import copy
import typing


class StateBackupError(Exception):
    pass


class SchemaMismatchError(StateBackupError):

    def __init__(self, path, value):
        super().__init__(f"expected a state object at {path!r}, found {type(value).__name__}")
        self.path = path
        self.value = value


class CyclicSchemaError(StateBackupError):

    def __init__(self, path):
        super().__init__(f"backup schema refers back to itself at {path!r}")
        self.path = path


MISMATCH_POLICIES = ("raise", "empty")


# Schema classes

@dataclass(frozen=True)
class SliceTransform:

    """A SliceTransform converts one slice of the state into a storable value
    and back:

        >>> t = SliceTransform(save=lambda s: s["keep"], load=lambda v: {"keep": v})
        >>> t.save({"keep": 1, "other": 2})
        1
        >>> t.load(1)
        {'keep': 1}

    For every reachable slice `x`, `load(save(x))` should be equivalent to `x`.
    This is the responsibility of the author of the transform; it is not
    verified.
    """

    save: typing.Callable
    load: typing.Callable


identity = SliceTransform(save=lambda value: value, load=lambda value: value)


@dataclass(frozen=True)
class Leaf:

    transform: SliceTransform


@dataclass(frozen=True)
class Node:

    children: Mapping  # field name -> Leaf or Node

    def __iter__(self):
        return iter(self.children.items())


def makeSchema(layout):
    """Turn a schema layout into a tree of Leaf and Node objects.
    The layout is a (nested) mapping whose leaves are SliceTransform objects:

        >>> schema = makeSchema({"doc": {"title": identity}, "cursor": identity})
        >>> type(schema).__name__
        'Node'
        >>> sorted(schema.children)
        ['cursor', 'doc']

    Leaf and Node objects are passed through unchanged, so it is safe to call
    this on an already normalized schema.
    """
    return _makeSchema(layout, (), set())


def _makeSchema(layout, path, active):
    if isinstance(layout, (Leaf, Node)):
        return layout
    if isinstance(layout, SliceTransform):
        return Leaf(layout)
    if not isinstance(layout, Mapping):
        raise TypeError(f"can't make a schema node from {type(layout).__name__} at {path!r}")
    if id(layout) in active:
        raise CyclicSchemaError(path)
    active.add(id(layout))
    try:
        children = {key: _makeSchema(child, path + (key,), active) for key, child in layout.items()}
    finally:
        active.discard(id(layout))
    return Node(children)


#
# Generic state access functions. A state object is either a Mapping or an
# object that stores its fields as attributes. The update function never
# modifies its argument, it returns an updated copy.
#

@singledispatch
def isContainer(obj):
    if isinstance(obj, type):
        return False
    return is_dataclass(obj) or hasattr(obj, "__dict__")


@isContainer.register(Mapping)
def _isContainer_mapping(obj):
    return True


def _isContainer_atomic(obj):
    return False


for _atomicType in (int, float, complex, str, bytes, tuple, list, set, frozenset, type(None)):
    isContainer.register(_atomicType, _isContainer_atomic)


@singledispatch
def hasField(obj, name):
    return hasattr(obj, name)


@hasField.register(Mapping)
def _hasField_mapping(obj, name):
    return name in obj


@singledispatch
def getField(obj, name, default=None):
    return getattr(obj, name, default)


@getField.register(Mapping)
def _getField_mapping(obj, name, default=None):
    return obj.get(name, default)


@singledispatch
def updateFields(obj, updates):
    if not updates:
        return obj
    if is_dataclass(obj):
        initFields = {f.name for f in fields(obj) if f.init}
        if initFields.issuperset(updates):
            return replace(obj, **updates)
    obj = copy.copy(obj)
    for name, value in updates.items():
        setattr(obj, name, value)
    return obj


@updateFields.register(Mapping)
def _updateFields_mapping(obj, updates):
    if not updates:
        return obj
    result = dict(obj)
    result.update(updates)
    return result


# Backup engine

def createBackup(state, schema, onMismatch="raise"):
    """Return the backup value for `state`: a tree of dicts with the same
    shape as `schema`, holding at each leaf what the leaf's save step returned.

        >>> schema = {"slice": SliceTransform(save=lambda s: s["keep"],
        ...                                   load=lambda v: {"keep": v, "extra": 0})}
        >>> createBackup({"slice": {"keep": "A", "extra": 9}, "other": 1}, schema)
        {'slice': 'A'}

    Fields of `state` that are not in the schema are left out. A field that
    the schema names but the state lacks is read as None.

    When an internal schema node meets a value that is not a state object,
    `onMismatch` decides: "raise" raises SchemaMismatchError, "empty"
    continues as if the value were an empty mapping.
    """
    _checkPolicy(onMismatch)
    return _createBackup(state, makeSchema(schema), (), onMismatch, set())


def _createBackup(state, node, path, onMismatch, active):
    if isinstance(node, Leaf):
        return node.transform.save(state)
    if not isContainer(state):
        if onMismatch == "raise":
            raise SchemaMismatchError(path, state)
        state = {}
    _enter(node, path, active)
    try:
        return {
            key: _createBackup(getField(state, key), child, path + (key,), onMismatch, active)
            for key, child in node
        }
    finally:
        active.discard(id(node))


def loadBackup(baseState, schema, backupValue, onMismatch="raise"):
    """Return a copy of `baseState` with the data from `backupValue` merged
    in. Leaf values are passed through the leaf's load step.

        >>> schema = {"slice": SliceTransform(save=lambda s: s["keep"],
        ...                                   load=lambda v: {"keep": v, "extra": 0})}
        >>> loadBackup({"other": 1}, schema, {"slice": "A"})
        {'other': 1, 'slice': {'keep': 'A', 'extra': 0}}

    Fields of `baseState` the schema doesn't name are carried over unchanged,
    as are fields for which `backupValue` holds no data. `baseState` itself is
    never modified. A missing (or None) sub-state under an internal schema
    node is built up from an empty dict.

    A non-mapping value in `backupValue` at an internal schema node, or a
    base sub-state that is not a state object, is handled according to
    `onMismatch`: "raise" raises SchemaMismatchError, "empty" leaves that part
    of the base state alone or starts it out empty, respectively.
    """
    _checkPolicy(onMismatch)
    return _loadBackup(baseState, makeSchema(schema), backupValue, (), onMismatch, set())


def _loadBackup(baseState, node, backupValue, path, onMismatch, active):
    if isinstance(node, Leaf):
        return node.transform.load(backupValue)
    if not isinstance(backupValue, Mapping):
        if onMismatch == "raise":
            raise SchemaMismatchError(path, backupValue)
        return baseState
    if baseState is None:
        baseState = {}
    elif not isContainer(baseState):
        if onMismatch == "raise":
            raise SchemaMismatchError(path, baseState)
        baseState = {}
    _enter(node, path, active)
    try:
        updates = {}
        for key, child in node:
            if key not in backupValue:
                continue
            updates[key] = _loadBackup(getField(baseState, key), child, backupValue[key],
                                       path + (key,), onMismatch, active)
    finally:
        active.discard(id(node))
    return updateFields(baseState, updates)


def _enter(node, path, active):
    # Node objects are immutable, but their children mapping may still have
    # been wired up to contain the node itself.
    if id(node) in active:
        raise CyclicSchemaError(path)
    active.add(id(node))


def _checkPolicy(onMismatch):
    if onMismatch not in MISMATCH_POLICIES:
        raise ValueError(f"onMismatch must be one of {MISMATCH_POLICIES}, not {onMismatch!r}")
