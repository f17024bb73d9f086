import logging
import typing

import anyio
from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus

from ..tasks import Task
from ..workqueue import Workqueue
from ..source import EventSource
from ..exceptions import (
    FatalError,
    ObjectNotFound,
    PermanentError,
)

from .result import Done, Failed, RequeueAfter


log = logging.getLogger(__name__)


class ReconcilerLoggerAdapter(logging.LoggerAdapter):
    """Prefixes the log message with reconcilers number"""

    def process(self, msg, kwargs):
        reconciler = 'reconciler[%i]' % self.extra['num']
        return '%s: %s' % (reconciler, msg), kwargs


class Controller(Task):
    """Runs a reconcile function for requests of one resource.

    Event sources feed requests into the workqueue, `concurrent_reconciles`
    workers take them out and call `reconcile(request)`. The workqueue
    ensures a request is never reconciled by two workers at once.

    `reconcile` returns Done, RequeueAfter or Failed. The exceptions of
    the error taxonomy are handled as well:

    - ObjectNotFound: forget the request
    - PermanentError: log and forget the request
    - FatalError: stop the controller
    - any other exception: requeue rate limited
    """

    def __init__(
        self,
        resource,
        reconcile: typing.Callable,
        name=None,
        concurrent_reconciles=1,
        reconcile_timeout=None,
        rate_limiter=None,
    ):
        super().__init__()
        self.resource = resource
        self.reconcile = reconcile
        self.name = name
        self.concurrent_reconciles = concurrent_reconciles
        self.reconcile_timeout = reconcile_timeout
        self.queue = Workqueue(rate_limiter=rate_limiter)
        self._event_sources = []

    def __repr__(self):
        if self.name is not None:
            return f'<{self.__class__.__name__} {self.name} {self.resource.apiVersion}/{self.resource.kind}>'
        else:
            return f'<{self.__class__.__name__} {self.resource.apiVersion}/{self.resource.kind}>'

    @property
    def event_sources(self):
        return self._event_sources

    def watch(self, informer, handler, predicates=None, **kwargs):
        """Enqueue the requests `handler` maps the informer's events to.

        Only events accepted by all predicates are mapped.
        """
        source = EventSource(
            self.queue,
            informer.resource,
            handler,
            kwargs,
            predicates=list(predicates or []),
        )
        informer.add_stream(source.stream, key=source)
        self._event_sources.append(source)
        return source

    async def _handle_result(self, logger, request, result):
        match result:
            case None | Done():
                # Success! Forget about this request.
                await self.queue.forget(request)
            case RequeueAfter(after=after, reason=reason):
                logger.info('requeuing %r after %ss: %s', request, after, reason)
                await self.queue.forget(request)
                await self.queue.add_after(request, after)
            case Failed(error=error):
                await self._handle_error(logger, request, error)
            case _:
                raise TypeError(f'reconcile returned an unknown result: {result!r}')

    async def _handle_error(self, logger, request, error):
        match error:
            case FatalError():
                logger.critical('giving up on %r: %r', request, error)
                raise error
            case ObjectNotFound():
                # If the object is gone, there's no point to requeue the
                # request. So we give up and forget about it.
                logger.debug('%r', error)
                await self.queue.forget(request)
            case PermanentError():
                # The reconcile function signaled to us that it can not handle
                # this request so we give up and forget about it.
                logger.error('%r: %r', request, error)
                await self.queue.forget(request)
            case _:
                logger.error('reconciling %r failed: %r', request, error, exc_info=error)
                await self.queue.add_rate_limited(request)
                request.retries = await self.queue.num_requeues(request)

    async def _reconcile(self, request):
        if self.reconcile_timeout is None:
            return await self.reconcile(request)
        with anyio.fail_after(self.reconcile_timeout):
            return await self.reconcile(request)

    async def _reconciler(self, num):
        logger = ReconcilerLoggerAdapter(log, {'num': num})
        logger.debug('started')
        while True:
            request = await self.queue.get()
            logger.debug('processing %r', request)
            try:
                try:
                    result = await self._reconcile(request)
                except FatalError:
                    raise
                except Exception as e:
                    result = Failed(e)
                await self._handle_result(logger, request, result)
            finally:
                # In any case, mark this request as done.
                logger.debug('done processing %r', request)
                with anyio.CancelScope(shield=True):
                    await self.queue.done(request)

    async def _run_reconcilers(self):
        async with anyio.create_task_group() as tg:
            for num in range(self.concurrent_reconciles):
                tg.start_soon(self._reconciler, num)

    def stop(self):
        log.debug('stop %r', self)
        super().stop()
        self.reset_task()

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        log.debug('starting %s', self)

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg

                try:
                    await tg.start(self.queue)

                    for source in self._event_sources:
                        await tg.start(source)

                    log.info('started %s', self)
                    # Inform any awaiters that we are ready.
                    self._mark_started(task_status)

                    tg.start_soon(self._run_reconcilers)

                    # Wait until told otherwise.
                    await anyio.sleep_forever()

                except anyio.get_cancelled_exc_class():
                    log.debug('canceled %s', self)
                    raise

        finally:
            log.info('stopped %s', self)
