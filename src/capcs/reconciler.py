"""The CloudStackCluster reconciler.

A reconciliation loads the CloudStackCluster, selects the normal or the
deleting mode depending on its deletion timestamp, runs the steps of that
mode and writes the status and finalizers back in one update.
"""

import copy
import functools
import logging

from .config import Settings
from .controller import (
    Controller,
    Done,
    Failed,
    RequeueAfter,
    requests_from_event_for_object,
    requests_from_event_for_owner,
)
from .deletion import reconcile_delete
from .dependents import (
    create_failure_domains,
    get_failure_domains,
    remove_undeclared_failure_domains,
    verify_failure_domains,
)
from .exceptions import Error, ObjectNotFound
from .pipeline import CONTINUE, ReconciliationState, Requeue, Stop, run_steps
from .predicates import (
    OWNER_CLUSTER_INDEX,
    dependent_readiness_changed,
    index_by_owner_cluster,
    owner_unpaused,
    requests_for_owner_cluster,
    subject_changed,
)
from .resources import (
    Cluster,
    CloudStackCluster,
    CloudStackFailureDomain,
    add_finalizer,
    get_owner_reference,
    is_being_deleted,
    is_paused,
)
from .resources import cluster as capi
from .status import set_failure_domains_status_map
from .workqueue import default_rate_limiter


log = logging.getLogger(__name__)


async def get_owner_cluster(store, state):
    ref = get_owner_reference(state.subject, capi.GROUP, Cluster.kind)
    if ref is None:
        return Requeue('Cluster Controller has not yet set OwnerRef')
    try:
        state.cluster = await store.get(Cluster, ref.name, namespace=state.namespace)
    except ObjectNotFound:
        return Requeue(f'Cluster {state.namespace}/{ref.name} not found')
    return CONTINUE


async def check_if_paused(store, state):
    if is_paused(state.cluster, state.subject):
        return Stop('Cluster is paused')
    return CONTINUE


async def ensure_finalizer(store, state):
    """Store our finalizer before anything is created on behalf of the subject."""
    if add_finalizer(state.subject, state.settings.finalizer):
        state.subject = await store.update(state.subject)
        state.original = copy.deepcopy(state.subject)
        state.log.debug('added finalizer %s', state.settings.finalizer)
    return CONTINUE


async def set_ready(store, state):
    state.subject.status.ready = True
    return CONTINUE


NORMAL_STEPS = (
    get_owner_cluster,
    check_if_paused,
    set_failure_domains_status_map,
    ensure_finalizer,
    create_failure_domains,
    get_failure_domains,
    remove_undeclared_failure_domains,
    verify_failure_domains,
    set_ready,
)

DELETE_STEPS = (
    reconcile_delete,
)


def _needs_update(state):
    subject, original = state.subject, state.original
    return (
        (subject.metadata.finalizers or []) != (original.metadata.finalizers or [])
        or subject.status != original.status
    )


async def persist(store, state):
    """Write status and finalizers of the subject, if they changed."""
    if not _needs_update(state):
        return False
    state.subject = await store.update(state.subject)
    state.original = copy.deepcopy(state.subject)
    return True


async def reconcile(store, request, settings=None):
    """Reconcile the CloudStackCluster identified by request.

    Returns Done, RequeueAfter or Failed.
    """
    if settings is None:
        settings = Settings()
    try:
        subject = await store.get(request.resource, request.name, namespace=request.namespace)
    except ObjectNotFound:
        log.debug('%r: object is gone, nothing to do', request)
        return Done()
    except Error as e:
        return Failed(e)

    state = ReconciliationState(
        request,
        settings,
        subject=subject,
        original=copy.deepcopy(subject),
    )
    steps = DELETE_STEPS if is_being_deleted(subject) else NORMAL_STEPS
    result = await run_steps(store, state, steps)
    if isinstance(result, Failed):
        return result

    try:
        await persist(store, state)
    except ObjectNotFound:
        return Done()
    except Error as e:
        state.log.debug('writing status failed: %r', e)
        return Failed(e)

    match result:
        case Requeue(reason=reason, after=after):
            if after is None:
                after = settings.requeue_after
            return RequeueAfter(after, reason)
    return Done()


def setup_with_manager(manager):
    """Create the CloudStackCluster controller and its watches.

    Reconciles on spec changes of CloudStackClusters, on clusters being
    unpaused and on readiness changes of the failure domains.
    """
    settings = manager.settings
    controller = Controller(
        CloudStackCluster,
        functools.partial(reconcile, manager.store, settings=settings),
        name='cloudstackcluster',
        concurrent_reconciles=settings.concurrent_reconciles,
        reconcile_timeout=settings.reconcile_timeout,
        rate_limiter=default_rate_limiter(settings.backoff, settings.bucket),
    )

    subjects = manager.informer(CloudStackCluster)
    subjects.add_indexers({OWNER_CLUSTER_INDEX: index_by_owner_cluster})
    controller.watch(
        subjects,
        requests_from_event_for_object,
        predicates=[subject_changed],
    )

    controller.watch(
        manager.informer(Cluster),
        requests_for_owner_cluster,
        predicates=[owner_unpaused],
        index=subjects.get_index(OWNER_CLUSTER_INDEX),
    )

    controller.watch(
        manager.informer(CloudStackFailureDomain),
        requests_from_event_for_owner,
        predicates=[dependent_readiness_changed],
        owner=CloudStackCluster,
    )

    manager.add_controller(controller)
    return controller
