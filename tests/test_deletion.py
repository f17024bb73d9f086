import pytest

from capcs.config import Settings
from capcs.controller import Request
from capcs.deletion import reconcile_delete, release_finalizer
from capcs.exceptions import InvariantViolation
from capcs.pipeline import CONTINUE, ReconciliationState, Requeue
from capcs.resources import (
    CLUSTER_FINALIZER,
    CloudStackCluster,
    CloudStackFailureDomain,
    has_finalizer,
)
from capcs.store import MemoryStore

from conftest import make_cluster, make_failure_domain, make_subject


def make_state(subject, failure_domains=()):
    return ReconciliationState(
        Request(CloudStackCluster, subject.metadata.name, namespace=subject.metadata.namespace),
        Settings(),
        subject=subject,
        original=subject,
        failure_domains=list(failure_domains),
    )


def make_deleting_subject():
    subject = make_subject(owner=make_cluster())
    subject.metadata.finalizers.append(CLUSTER_FINALIZER)
    return subject


def test_release_finalizer():
    subject = make_deleting_subject()
    assert release_finalizer(make_state(subject))
    assert not has_finalizer(subject, CLUSTER_FINALIZER)
    assert not release_finalizer(make_state(subject))


def test_release_finalizer_with_failure_domains_is_a_violation():
    subject = make_deleting_subject()
    state = make_state(subject, [make_failure_domain('pool1-demo')])
    with pytest.raises(InvariantViolation):
        release_finalizer(state)
    assert has_finalizer(subject, CLUSTER_FINALIZER)


async def test_delete_requeues_while_failure_domains_exist(store):
    await store.create(make_failure_domain('pool1-demo'))
    await store.create(make_failure_domain('pool2-demo'))
    subject = make_deleting_subject()

    result = await reconcile_delete(store, make_state(subject))

    assert result == Requeue('Child FailureDomains still present, requeueing.')
    assert has_finalizer(subject, CLUSTER_FINALIZER)
    assert len(await store.list(CloudStackFailureDomain)) == 0


async def test_delete_releases_finalizer_when_no_failure_domains_remain(store):
    await store.create(make_failure_domain('pool1-other', cluster_name='other'))
    subject = make_deleting_subject()

    result = await reconcile_delete(store, make_state(subject))

    assert result is CONTINUE
    assert not has_finalizer(subject, CLUSTER_FINALIZER)


async def test_delete_failure_aborts_the_step():
    class BrokenStore(MemoryStore):
        async def delete(self, resource, name, namespace=None):
            raise RuntimeError('boom')

    broken = BrokenStore()
    await broken.create(make_failure_domain('pool1-demo'))
    subject = make_deleting_subject()

    with pytest.raises(RuntimeError):
        await reconcile_delete(broken, make_state(subject))
    assert has_finalizer(subject, CLUSTER_FINALIZER)
