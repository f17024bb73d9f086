import collections
import copy
import dataclasses
import datetime
import logging
import uuid

import anyio

from ..exceptions import AlreadyExists, ApiObjectNotFound, VersionConflict, WatchExpired
from ..resources import is_being_deleted
from .base import ObjectList, ResourceStore


log = logging.getLogger(__name__)


ALL_NAMESPACES = (None, '*')


@dataclasses.dataclass
class _Change:
    revision: int
    type: str
    resource: type
    obj: object


def _key(resource, name, namespace):
    return (resource, namespace, name)


def _matches(obj, namespace, labels):
    if namespace not in ALL_NAMESPACES and obj.metadata.namespace != namespace:
        return False
    if labels:
        obj_labels = obj.metadata.labels or {}
        return all(obj_labels.get(k) == v for k, v in labels.items())
    return True


def _now():
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)


class MemoryStore(ResourceStore):
    """A resource store that keeps all objects in memory.

    It behaves like the kubernetes api server where it matters to a
    controller: every write bumps a global resourceVersion, updates are
    optimistic, deleting an object with finalizers only marks it, and
    watches replay the changes after a given resourceVersion.

    Only the last `history_limit` changes are kept. A watch starting from
    an older resourceVersion raises WatchExpired and has to list again.
    """

    def __init__(self, history_limit=1000):
        self._objects = {}
        self._revision = 0
        self._history = collections.deque(maxlen=history_limit)
        # Newest revision which is no longer in the history.
        self._compacted = 0
        self._changed = anyio.Condition()

    def __repr__(self):
        return f'<MemoryStore objects: {len(self._objects)} revision: {self._revision}>'

    @property
    def revision(self):
        return self._revision

    async def _record(self, change_type, obj):
        self._revision += 1
        obj.metadata.resourceVersion = str(self._revision)
        if len(self._history) == self._history.maxlen:
            self._compacted = self._history[0].revision
        self._history.append(
            _Change(self._revision, change_type, type(obj), copy.deepcopy(obj))
        )
        log.debug('%s %r', change_type, obj)
        async with self._changed:
            self._changed.notify_all()

    async def get(self, resource, name, namespace=None):
        try:
            return copy.deepcopy(self._objects[_key(resource, name, namespace)])
        except KeyError:
            raise ApiObjectNotFound(resource, name, namespace=namespace) from None

    async def list(self, resource, namespace=None, labels=None):
        items = [
            copy.deepcopy(obj)
            for (obj_resource, _, _), obj in self._objects.items()
            if obj_resource is resource and _matches(obj, namespace, labels)
        ]
        items.sort(key=lambda obj: (obj.metadata.namespace or '', obj.metadata.name))
        return ObjectList(items, resource_version=str(self._revision))

    async def create(self, obj):
        key = _key(type(obj), obj.metadata.name, obj.metadata.namespace)
        if key in self._objects:
            raise AlreadyExists(obj)
        stored = copy.deepcopy(obj)
        stored.metadata.uid = str(uuid.uuid4())
        stored.metadata.creationTimestamp = _now()
        stored.metadata.deletionTimestamp = None
        stored.metadata.generation = 1
        self._objects[key] = stored
        await self._record('ADDED', stored)
        return copy.deepcopy(stored)

    async def update(self, obj):
        key = _key(type(obj), obj.metadata.name, obj.metadata.namespace)
        try:
            current = self._objects[key]
        except KeyError:
            raise ApiObjectNotFound(
                type(obj), obj.metadata.name, namespace=obj.metadata.namespace
            ) from None
        if obj.metadata.resourceVersion != current.metadata.resourceVersion:
            raise VersionConflict(
                obj,
                expected=obj.metadata.resourceVersion,
                actual=current.metadata.resourceVersion,
            )
        stored = copy.deepcopy(obj)
        # Fields owned by the store can not be changed by clients.
        stored.metadata.uid = current.metadata.uid
        stored.metadata.creationTimestamp = current.metadata.creationTimestamp
        stored.metadata.deletionTimestamp = current.metadata.deletionTimestamp
        stored.metadata.generation = current.metadata.generation
        if getattr(stored, 'spec', None) != getattr(current, 'spec', None):
            stored.metadata.generation += 1

        if is_being_deleted(stored) and not stored.metadata.finalizers:
            # The last finalizer is gone, reclaim the object.
            del self._objects[key]
            await self._record('DELETED', stored)
        else:
            self._objects[key] = stored
            await self._record('MODIFIED', stored)
        return copy.deepcopy(stored)

    async def delete(self, resource, name, namespace=None):
        key = _key(resource, name, namespace)
        try:
            current = self._objects[key]
        except KeyError:
            raise ApiObjectNotFound(resource, name, namespace=namespace) from None
        if current.metadata.finalizers:
            if not is_being_deleted(current):
                current.metadata.deletionTimestamp = _now()
                await self._record('MODIFIED', current)
        else:
            del self._objects[key]
            await self._record('DELETED', current)

    def _changes_since(self, position):
        if position < self._compacted:
            raise WatchExpired(str(position))
        changes = []
        for change in reversed(self._history):
            if change.revision <= position:
                break
            changes.append(change)
        changes.reverse()
        return changes

    async def watch(self, resource, namespace=None, resource_version=None):
        if resource_version is None:
            position = self._revision
        else:
            position = int(resource_version)
        while True:
            async with self._changed:
                while self._revision <= position:
                    await self._changed.wait()
            changes = self._changes_since(position)
            position = self._revision
            for change in changes:
                if change.resource is resource and _matches(change.obj, namespace, None):
                    yield change.type, copy.deepcopy(change.obj)
