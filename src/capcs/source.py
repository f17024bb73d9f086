import dataclasses
import logging
import math
import typing

import anyio

from .tasks import Task
from .invocation import invoke


__all__ = [
    'EventSource',
]

log = logging.getLogger(__name__)


@dataclasses.dataclass(eq=False)
class EventSource(Task):
    """Turns the events of one informer into requests on a workqueue.

    Events are dropped unless all predicates return True. The handler
    maps an event to an iterable of requests.
    """

    queue: object
    resource: type
    handler: typing.Callable
    kwargs: dict = dataclasses.field(default_factory=dict)
    predicates: typing.List[typing.Callable] = dataclasses.field(default_factory=list)

    def __post_init__(self):
        Task.__init__(self)
        self.tx, self.rx = anyio.create_memory_object_stream(math.inf)

    def __repr__(self):
        handler = getattr(self.handler, '__name__', self.handler)
        return f'<{self.__class__.__name__} {self.resource.apiVersion}/{self.resource.kind} {handler}>'

    @property
    def stream(self):
        """A new send stream for an informer to deliver events to this source."""
        return self.tx.clone()

    async def accepts(self, event):
        for predicate in self.predicates:
            if not await invoke(predicate, event):
                log.debug('predicate %s prevented event: %r', predicate.__name__, event)
                return False
        return True

    async def requests_for(self, event):
        if not await self.accepts(event):
            return []
        try:
            requests = await invoke(self.handler, event, **self.kwargs)
            return list(requests or [])
        except Exception:
            log.exception('failed to map %r to requests', event)
            raise

    async def event_stream_handler(self):
        async with self.rx:
            async for event in self.rx:
                log.debug('received event: %r', event)
                for request in await self.requests_for(event):
                    await self.queue.add(request)

    async def __call__(self, task_status=anyio.TASK_STATUS_IGNORED):
        log.debug('starting %s', self)

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg

                try:
                    tg.start_soon(self.event_stream_handler)

                    log.debug('started %s', self)
                    # Inform any awaiters that we are ready.
                    self._mark_started(task_status)

                    # Wait until told otherwise.
                    await anyio.sleep_forever()

                except anyio.get_cancelled_exc_class():
                    log.debug('canceled %s', self)
                    raise

        finally:
            self.tx.close()
            log.debug('stopped %s', self)
