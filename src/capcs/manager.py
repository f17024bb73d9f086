import functools
import logging
import signal

import anyio
import uvloop
from anyio import TASK_STATUS_IGNORED, CancelScope, open_signal_receiver
from anyio.abc import TaskStatus

from . import exceptions
from .cache import Informer
from .config import Settings


log = logging.getLogger(__name__)


async def signal_handler(scope: CancelScope):
    with open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for signum in signals:
            if signum == signal.SIGINT:
                log.info('Ctrl+C pressed!')
            else:
                log.info('Terminated!')

            scope.cancel()
            return


class Manager:
    """Runs controllers together with the informers they watch.

    Informers are shared: all controllers asking for the same resource
    get the same informer.
    """

    def __init__(self, store, settings=None, debug=False):
        self.store = store
        self.settings = settings if settings is not None else Settings()
        self.debug = debug
        self._informers = {}
        self._controllers = []
        self._task_group = None

    def __repr__(self):
        resources = sorted(
            f'{resource.apiVersion}/{resource.kind}' for resource in self._informers
        )
        namespace = self.settings.namespace or '*'
        return f'<Manager {self.store!r} namespace: {namespace} resources: {resources}>'

    @property
    def informers(self):
        return list(self._informers.values())

    @property
    def controllers(self):
        return list(self._controllers)

    def informer(self, resource):
        """Return the informer for the given resource, creating it if needed."""
        informer = self._informers.get(resource)
        if informer is None:
            informer = Informer(
                self.store,
                resource,
                namespace=self.settings.namespace,
                resync_after=self.settings.resync_after,
                retry_delay=self.settings.watch_retry_delay,
            )
            self._informers[resource] = informer
        return informer

    def add_controller(self, controller):
        self._controllers.append(controller)

    def stop(self):
        log.debug('stop %r', self)
        if self._task_group:
            self._task_group.cancel_scope.cancel()

    async def _start(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        tg = self._task_group
        # Controllers first, so their event sources see the initial listing.
        for controller in self._controllers:
            await tg.start(controller)
        for informer in self._informers.values():
            tg.start_soon(informer)
        for informer in self._informers.values():
            await informer
        log.info('started %s', self)
        task_status.started()

    async def __call__(
        self,
        setup=None,
        setup_signal_handler=False,
        task_status: TaskStatus[None] = TASK_STATUS_IGNORED,
    ):
        """Run until cancelled.

        `setup` is called with the manager before anything is started,
        it adds the controllers and their watches.
        """
        if setup is not None:
            setup(self)
        log.debug('startup %s', self)

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg
                if setup_signal_handler:
                    tg.start_soon(signal_handler, tg.cancel_scope)

                await tg.start(self._start)
                task_status.started()
        except* exceptions.FatalError as eg:
            if self.debug:
                raise
            error_messages = [str(error) for error in exceptions.iterate_errors(eg)]
            raise exceptions.FatalError(' '.join(error_messages)) from eg
        finally:
            log.info('stopped %s', self)

    def run(self, setup=None):
        anyio.run(
            functools.partial(self, setup=setup, setup_signal_handler=True),
            backend_options={'loop_factory': uvloop.new_event_loop},
        )
