from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
import math
import typing

from .backup import Leaf, makeSchema


class _Sentinel:

    def __init__(self, name):
        self._name = name

    def __repr__(self):
        return self._name

    def __reduce__(self):
        return self._name


MISSING = _Sentinel("MISSING")      # a key that's absent from one side of a diff
UNCHANGED = _Sentinel("UNCHANGED")  # the diff between two equal values


# Diff classes

@dataclass(frozen=True)
class Replace:

    """The diff for a leaf position (or a position that exists on one side
    only) that holds a different value in the target than in the base.

    The old value is kept as well, so a Replace can be inverted without
    access to the base it was computed from. Either value may be MISSING.
    """

    new: typing.Any
    old: typing.Any


@dataclass(frozen=True)
class Branch:

    """The diff for an internal schema position. Only the keys whose values
    differ are present.
    """

    children: Mapping  # key -> Replace or Branch

    def __post_init__(self):
        object.__setattr__(self, "children", MappingProxyType(dict(self.children)))

    def __iter__(self):
        return iter(self.children.items())


@dataclass(frozen=True)
class Change:

    """A single leaf change, as produced by iterChanges():

    - op: one of "add", "replace" or "remove"
    - path: a tuple of keys leading from the root of the backup value to the
      changed position
    - value: the new value, or None when removing
    """

    op: str
    path: tuple
    value: typing.Any


def computeDiff(a, b, schema):
    """Return the diff that turns backup value `a` into backup value `b`.
    Both must have been created with the same schema, which is also needed
    here to tell internal positions from leaves: leaf values are compared as
    a whole, even if they are containers themselves.

        >>> from statebackup.backup import identity
        >>> schema = {"a": identity, "b": {"c": identity, "d": identity}}
        >>> d = computeDiff({"a": 1, "b": {"c": [2], "d": 3}},
        ...                 {"a": 1, "b": {"c": [2, 4], "d": 3}}, schema)
        >>> list(iterChanges(d))
        [Change(op='replace', path=('b', 'c'), value=[2, 4])]
        >>> computeDiff({"a": 1}, {"a": 1}, {"a": identity})
        UNCHANGED
    """
    return _computeDiff(a, b, makeSchema(schema))


def _computeDiff(a, b, node):
    if a is b:
        return UNCHANGED
    if isinstance(node, Leaf) or not (isinstance(a, Mapping) and isinstance(b, Mapping)):
        return UNCHANGED if _leafEqual(a, b) else Replace(b, a)
    children = {}
    for key, child in node:
        oldValue = a.get(key, MISSING)
        newValue = b.get(key, MISSING)
        if oldValue is MISSING or newValue is MISSING:
            if oldValue is not newValue:
                children[key] = Replace(newValue, oldValue)
            continue
        childDiff = _computeDiff(oldValue, newValue, child)
        if childDiff is not UNCHANGED:
            children[key] = childDiff
    if not children:
        return UNCHANGED
    return Branch(children)


def _leafEqual(a, b):
    # Leaf values are opaque: their __eq__ may return something that has no
    # truth value (array-likes), in which case the leaf counts as changed.
    if a is b:
        return True
    if isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b):
        return True
    try:
        return bool(a == b)
    except (TypeError, ValueError):
        return False


def applyDiff(base, diff):
    """Return the backup value that results from applying `diff` to `base`.
    `base` is not modified; the parts of it that the diff doesn't touch are
    shared with the result.

    For any a, b of the same schema, applyDiff(a, computeDiff(a, b, schema))
    equals b.
    """
    if diff is UNCHANGED:
        return base
    if isinstance(diff, Replace):
        return diff.new
    if base is MISSING or base is None:
        base = {}
    result = dict(base)
    for key, childDiff in diff:
        if isinstance(childDiff, Replace) and childDiff.new is MISSING:
            result.pop(key, None)
        else:
            result[key] = applyDiff(base.get(key, MISSING), childDiff)
    return result


def invertDiff(diff):
    """Return the diff that undoes `diff`: if applyDiff(a, diff) gives b,
    applyDiff(b, invertDiff(diff)) gives a.
    """
    if diff is UNCHANGED:
        return UNCHANGED
    if isinstance(diff, Replace):
        return Replace(diff.old, diff.new)
    return Branch({key: invertDiff(childDiff) for key, childDiff in diff})


def isEmptyDiff(diff):
    return diff is UNCHANGED


def iterChanges(diff, path=()):
    """Iterate over the leaf changes in `diff` as Change objects, in schema
    order.
    """
    if diff is UNCHANGED:
        return
    if isinstance(diff, Replace):
        if diff.old is MISSING:
            yield Change("add", path, diff.new)
        elif diff.new is MISSING:
            yield Change("remove", path, None)
        else:
            yield Change("replace", path, diff.new)
        return
    for key, childDiff in diff:
        yield from iterChanges(childDiff, path + (key,))


def diffSize(diff):
    """Return the number of changed leaf positions in `diff`."""
    return sum(1 for _ in iterChanges(diff))
