"""Object store, requests and results shared by the reconcilers."""

import copy
import itertools
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta


class NotFoundError(LookupError):
    """The requested object does not exist."""

    def __init__(self, kind, key):
        super().__init__(f'{kind} "{key}" not found')
        self.kind = kind
        self.key = key


@dataclass(frozen=True)
class ObjectKey:
    """Identifies an object by name and, for namespaced kinds, namespace."""

    name: str
    namespace: str = ""

    def __str__(self):
        return f"{self.namespace}/{self.name}" if self.namespace else self.name


@dataclass(frozen=True)
class ReconcileRequest:
    """Names the object a reconciler should bring up to date."""

    name: str
    namespace: str = ""

    @property
    def key(self):
        return ObjectKey(self.name, self.namespace)

    def __str__(self):
        return str(self.key)


@dataclass(frozen=True)
class ReconcileResult:
    """Tells whether and when a request should be processed again."""

    requeue: bool = False
    requeue_after: timedelta = timedelta(0)


def merge_patch(original, modified):
    """Return the JSON merge patch that turns original into modified."""
    if not isinstance(original, Mapping) or not isinstance(modified, Mapping):
        return copy.deepcopy(modified)
    patch = {key: None for key in original if key not in modified}
    for key, value in modified.items():
        old = original.get(key)
        if key in original and isinstance(old, Mapping) and isinstance(value, Mapping):
            nested = merge_patch(old, value)
            if nested:
                patch[key] = nested
        elif key not in original or type(old) is not type(value) or old != value:
            patch[key] = copy.deepcopy(value)
    return patch


def _apply_merge_patch(target, patch):
    if not isinstance(patch, Mapping):
        return copy.deepcopy(patch)
    result = dict(target) if isinstance(target, Mapping) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = _apply_merge_patch(result.get(key), value)
    return result


class InMemoryClient:
    """A store of cluster objects, addressed by kind, namespace and name."""

    def __init__(self):
        self._objects = {}
        self._versions = itertools.count(1)

    @staticmethod
    def _slot(kind, obj):
        meta = obj.get("metadata") or {}
        if not meta.get("name"):
            raise ValueError("object has no metadata.name")
        return kind, meta.get("namespace") or "", meta["name"]

    def _store(self, slot, obj):
        obj.setdefault("metadata", {})["resourceVersion"] = str(next(self._versions))
        self._objects[slot] = obj
        return copy.deepcopy(obj)

    def get(self, kind, key):
        """Return a copy of the stored object; a plain string is a cluster-scoped name."""
        key = ObjectKey(key) if isinstance(key, str) else key
        try:
            return copy.deepcopy(self._objects[(kind, key.namespace, key.name)])
        except KeyError:
            raise NotFoundError(kind, key) from None

    def list(self, kind, namespace=None):
        """Return copies of all objects of kind, optionally in one namespace, by name."""
        found = sorted(
            (name, obj)
            for (obj_kind, obj_ns, name), obj in self._objects.items()
            if obj_kind == kind and namespace in (None, obj_ns)
        )
        return [copy.deepcopy(obj) for _, obj in found]

    def create(self, kind, obj):
        """Store a new object; raises ValueError if it already exists."""
        slot = self._slot(kind, obj)
        if slot in self._objects:
            raise ValueError(f'{kind} "{ObjectKey(slot[2], slot[1])}" already exists')
        return self._store(slot, copy.deepcopy(dict(obj)))

    def patch(self, kind, obj, original):
        """Apply the merge patch from original to obj onto the stored object."""
        slot = self._slot(kind, obj)
        if slot not in self._objects:
            raise NotFoundError(kind, ObjectKey(slot[2], slot[1]))
        return self._store(slot, _apply_merge_patch(self._objects[slot], merge_patch(original, obj)))