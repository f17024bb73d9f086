import anyio

from ..tasks import Task
from .limiters import default_rate_limiter


class Workqueue(Task):
    """Queue of items waiting to be processed.

    - An item is never processed by two workers at the same time. An item
      added while being processed is marked dirty and queued again once
      `done` is called.
    - An item queued multiple times before it is picked up is only
      processed once.
    - Items can be added after a delay or rate limited.
    """

    def __init__(self, rate_limiter=None):
        super().__init__()
        self._rate_limiter = rate_limiter or default_rate_limiter()
        self._buffer = []
        # Python dicts keep insertion order, the queue is FIFO.
        self._queue = {}
        # item -> deadline of the earliest pending delayed add.
        self._delayed = {}
        self._processing = set()
        self._dirty = set()
        self._condition = anyio.Condition()

    def __len__(self):
        return len(self._queue)

    def __repr__(self):
        queued = len(self)
        delayed = len(self._delayed)
        dirty = len(self._dirty)
        processing = len(self._processing)
        out = f'queued: {queued}, delayed: {delayed}, dirty: {dirty}, processing: {processing}'
        if not self.is_running:
            out = f'{out}, buffered: {len(self._buffer)}'
        return f'<Workqueue {out}>'

    def is_processing(self, item):
        return item in self._processing

    async def _add(self, item):
        async with self._condition:
            if item in self._dirty:
                # Already waiting to be processed.
                return
            self._dirty.add(item)
            if item not in self._processing:
                self._queue[item] = None
                self._condition.notify()

    async def add(self, item):
        """Mark the item as needing processing."""
        if self.is_running:
            await self._add(item)
        else:
            # Items added before the queue was started are added on startup.
            self._buffer.append(item)

    async def get(self):
        """Block until an item can be processed and return it."""
        async with self._condition:
            while not self._queue:
                await self._condition.wait()
            item = next(iter(self._queue))
            del self._queue[item]
            self._dirty.discard(item)
            self._processing.add(item)
            return item

    async def done(self, item):
        """Mark the item as processed.

        If it was added again while being processed, it is queued again.
        """
        async with self._condition:
            self._processing.discard(item)
            if item in self._dirty:
                self._queue[item] = None
                self._condition.notify()

    async def _add_after(self, item, deadline):
        await anyio.sleep_until(deadline)
        if self._delayed.get(item) != deadline:
            # Superseded by an earlier add_after.
            return
        del self._delayed[item]
        await self.add(item)

    async def add_after(self, item, delay):
        """Add the item once the delay has passed.

        If the item is already waiting for an earlier point in time the
        later add is dropped.
        """
        if delay <= 0:
            await self.add(item)
            return
        deadline = anyio.current_time() + delay
        current = self._delayed.get(item)
        if current is not None and current <= deadline:
            return
        self._delayed[item] = deadline
        self._task_group.start_soon(self._add_after, item, deadline)

    async def add_rate_limited(self, item):
        await self.add_after(item, self._rate_limiter.when(item))

    async def forget(self, item):
        self._rate_limiter.forget(item)

    async def num_requeues(self, item):
        return self._rate_limiter.retries(item)

    async def __call__(self, task_status=anyio.TASK_STATUS_IGNORED):
        async with anyio.create_task_group() as tg:
            self._task_group = tg

            self._mark_started(task_status)

            while self._buffer:
                await self._add(self._buffer.pop(0))

            await anyio.sleep_forever()
