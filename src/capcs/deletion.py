from .dependents import fetch_all
from .exceptions import InvariantViolation, ObjectNotFound
from .pipeline import CONTINUE, Requeue
from .resources import remove_finalizer


def release_finalizer(state):
    """Remove our finalizer, allowing the store to reclaim the subject."""
    if state.failure_domains:
        names = ', '.join(fd.metadata.name for fd in state.failure_domains)
        raise InvariantViolation(
            f'refusing to remove finalizer while failure domains exist: {names}'
        )
    return remove_finalizer(state.subject, state.settings.finalizer)


async def reconcile_delete(store, state):
    """Delete all failure domains, then remove the finalizer.

    The finalizer is only removed by a run which lists no failure domains
    at all, so no failure domain outlives its cluster.
    """
    state.log.info('Deleting CloudStackCluster.')
    state.failure_domains = await fetch_all(store, state)
    if state.failure_domains:
        for fd in state.failure_domains:
            try:
                await store.delete(type(fd), fd.metadata.name, namespace=fd.metadata.namespace)
            except ObjectNotFound:
                state.log.debug('failure domain %s already gone', fd.metadata.name)
        return Requeue('Child FailureDomains still present, requeueing.')
    if release_finalizer(state):
        state.log.info('removed finalizer %s', state.settings.finalizer)
    return CONTINUE
