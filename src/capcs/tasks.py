import anyio
from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus


class Task:
    """Base of the long running parts of a controller.

    A task runs its own task group until it is cancelled. It can be
    started with `TaskGroup.start()` or awaited independent of a
    TaskGroup, which blocks until it signaled that it has started.
    """

    def __init__(self):
        self._task_group = None
        self._started = anyio.Event()

    def reset_task(self):
        # anyio events can not be re-used, so a restart needs a new one.
        self._started = anyio.Event()

    @property
    def is_running(self):
        return self._started.is_set()

    def __await__(self):
        return self._started.wait().__await__()

    def _mark_started(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        self._started.set()
        task_status.started()

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        raise NotImplementedError()

    def stop(self):
        if self._task_group is not None:
            self._task_group.cancel_scope.cancel()
