"""Building blocks of a reconciliation: working state, step results and the step runner.

A step is an async function `step(store, state)` returning Continue,
Requeue or Stop. Steps must be idempotent, a requeued pipeline runs again
from its first step.
"""

import dataclasses
import logging
import typing

from .config import Settings
from .controller import Failed, Request
from .exceptions import FatalError
from .resources import CLUSTER_NAME_LABEL, Cluster, get_owner_reference
from .resources import cluster as capi


log = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Continue:
    """Proceed with the next step."""


@dataclasses.dataclass(frozen=True)
class Requeue:
    """Stop here and run the whole pipeline again later."""

    reason: str
    after: typing.Optional[float] = None


@dataclasses.dataclass(frozen=True)
class Stop:
    """Stop here, there is nothing to do until the next change."""

    reason: str


StepResult = typing.Union[Continue, Requeue, Stop, Failed]

CONTINUE = Continue()


class RequestLoggerAdapter(logging.LoggerAdapter):
    """Prefixes the log message with the object being reconciled."""

    def process(self, msg, kwargs):
        request = self.extra['request']
        return '%s %s: %s' % (request.kind, request.key, msg), kwargs


@dataclasses.dataclass
class ReconciliationState:
    """Working state of one reconciliation, handed to every step."""

    request: Request
    settings: Settings = dataclasses.field(default_factory=Settings)
    # The CloudStackCluster being reconciled, mutated by the steps.
    subject: object = None
    # The subject as it was read, to detect what needs to be written back.
    original: object = None
    # The owning Cluster API cluster.
    cluster: Cluster = None
    failure_domains: list = dataclasses.field(default_factory=list)
    log: logging.LoggerAdapter = None

    def __post_init__(self):
        if self.log is None:
            self.log = RequestLoggerAdapter(log, {'request': self.request})

    @property
    def namespace(self):
        return self.subject.metadata.namespace

    @property
    def cluster_name(self):
        """Name of the owning cluster, None until its owner reference is set."""
        if self.cluster is not None:
            return self.cluster.metadata.name
        ref = get_owner_reference(self.subject, capi.GROUP, Cluster.kind)
        if ref is not None:
            return ref.name
        return (self.subject.metadata.labels or {}).get(CLUSTER_NAME_LABEL)


Step = typing.Callable[[object, ReconciliationState], typing.Awaitable[StepResult]]


async def run_steps(store, state, steps: typing.Iterable[Step]) -> StepResult:
    """Run the steps in order until one of them does not continue.

    Exceptions raised by a step end the run with Failed, only fatal
    errors propagate.
    """
    for step in steps:
        name = step.__name__
        state.log.debug('running %s', name)
        try:
            result = await step(store, state)
        except FatalError:
            raise
        except Exception as e:
            state.log.debug('%s failed: %r', name, e)
            return Failed(e)
        match result:
            case Continue():
                continue
            case Requeue(reason=reason) | Stop(reason=reason):
                state.log.info('%s: %s', name, reason)
                return result
            case _:
                raise TypeError(f'step {name} returned an unknown result: {result!r}')
    return CONTINUE
