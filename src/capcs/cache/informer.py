import dataclasses
import logging
import random
import typing

import anyio
import lightkube

from ..exceptions import ObjectNotFound, StoreUnavailable, WatchExpired
from ..resources import is_same_version
from ..tasks import Task
from .events import CreateEvent, DeleteEvent, UpdateEvent
from .index import Indexer


log = logging.getLogger(__name__)


def _default_resync():
    # 10 hours + 0..9 Minutes, so informers do not relist in lockstep.
    return 10 * 60 * 60 + 60 * random.randint(0, 9)


@dataclasses.dataclass(eq=False)
class Informer(Task):
    """Lists and watches one resource of a resource store.

    Keeps a local copy of all objects in `cache` and turns every observed
    change into a typed event which is sent to all registered streams.
    """

    store: object
    resource: type
    namespace: str = None
    cache: Indexer = dataclasses.field(default_factory=Indexer)
    resync_after: typing.Optional[float] = dataclasses.field(default_factory=_default_resync)
    retry_delay: float = 5
    timeout: float = 60
    resource_version: str = None

    def __post_init__(self):
        super().__init__()
        self._streams = {}

    def __repr__(self):
        _out = [f'{self.resource.apiVersion}/{self.resource.kind}']
        if self.namespace is not None:
            _out.append(self.namespace)
        if self.resource_version:
            _out.append(self.resource_version)
        _s = ' '.join(_out)
        return f'<Informer {_s}>'

    def add_stream(self, stream, key=None):
        if key is None:
            key = stream
        self._streams[key] = stream

    def remove_stream(self, stream=None, key=None):
        if key is None:
            key = stream
        self._streams.pop(key, None)

    def purge_streams(self):
        for stream in self._streams.values():
            stream.close()
        self._streams.clear()

    def add_indexers(self, indexers):
        self.cache.add_indexers(indexers)

    def get_index(self, index_name):
        return self.cache.get_index(index_name, resource=self.resource)

    async def _stream_send(self, key, event):
        stream = self._streams.get(key)
        if stream is None:
            return
        try:
            await stream.send(event)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            log.debug('%s: dropping closed stream %r', self, key)
            self.remove_stream(key=key)

    def _dispatch(self, event):
        """Send the event to all our streams without blocking the watch."""
        # Iterate over a copy, the dict may change while we're sending.
        for key, stream in list(self._streams.items()):
            try:
                stream.send_nowait(event)
            except anyio.WouldBlock:
                # Bounded stream is full, deliver in the background.
                self._task_group.start_soon(self._stream_send, key, event)
            except (anyio.ClosedResourceError, anyio.BrokenResourceError):
                log.debug('%s: dropping closed stream %r', self, key)
                self.remove_stream(key=key)

    def _add_or_update(self, obj):
        old = self.cache.put(obj)
        if old is None:
            self._dispatch(CreateEvent(obj))
        elif not is_same_version(obj, old):
            self._dispatch(UpdateEvent(old, obj))

    def _delete(self, obj):
        old = self.cache.pop(obj)
        # Deleted before we have seen it, the watch still tells us about it.
        self._dispatch(DeleteEvent(old if old is not None else obj))

    def _process_event(self, event_type, obj):
        match event_type:
            case 'ADDED' | 'MODIFIED':
                self._add_or_update(obj)
            case 'DELETED':
                self._delete(obj)
            case _:
                log.warning('%s: ignoring unknown event type %s', self, event_type)

    async def _list(self):
        log.debug('start listing %s', self)
        with anyio.fail_after(self.timeout):
            objects = await self.store.list(self.resource, namespace=self.namespace)
        listed = set()
        for obj in objects:
            listed.add(self.cache.key_func(obj))
            self._add_or_update(obj)
        # Objects which vanished while we were not watching.
        for obj in self.cache.list():
            if self.cache.key_func(obj) not in listed:
                self._delete(obj)
        self.resource_version = objects.resource_version
        log.debug('done listing %s', self)

    async def _watch(self):
        log.debug('start watching %s', self)
        async for event_type, obj in self.store.watch(
            self.resource,
            namespace=self.namespace,
            resource_version=self.resource_version,
        ):
            self._process_event(event_type, obj)
            self.resource_version = obj.metadata.resourceVersion

    async def _listwatch(self):
        while True:
            try:
                await self._list()

                # Our cache is synced.
                self._started.set()

                if self.resync_after is None:
                    await self._watch()
                else:
                    with anyio.move_on_after(self.resync_after):
                        await self._watch()
                    log.debug('resyncing %s', self)

            except WatchExpired as e:
                log.info('%s: %s, relisting', self, e)
                self.resource_version = None

            except (StoreUnavailable, TimeoutError) as e:
                log.error('%s: list/watch failed, retrying in %ss: %s', self, self.retry_delay, e)
                await anyio.sleep(self.retry_delay)

            except (ObjectNotFound, lightkube.ApiError) as e:
                # Missing CRD or RBAC not yet in place.
                log.error('%s: list/watch rejected, retrying in %ss: %r', self, self.retry_delay, e)
                await anyio.sleep(self.retry_delay)

    async def __call__(self):
        log.debug('starting %s', self)

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg

                try:
                    tg.start_soon(self._listwatch)

                    await self
                    log.info('started %s', self)

                    # Wait until told otherwise.
                    await anyio.sleep_forever()

                except anyio.get_cancelled_exc_class():
                    log.debug('canceled %s', self)
                    raise

                finally:
                    log.debug('stopping %s', self)
                    self.purge_streams()

        finally:
            log.info('stopped %s', self)
