import anyio
import pytest

from capcs.config import Settings
from capcs.manager import Manager
from capcs.reconciler import setup_with_manager
from capcs.resources import (
    CLUSTER_FINALIZER,
    Cluster,
    CloudStackCluster,
    CloudStackFailureDomain,
    has_finalizer,
)
from capcs.exceptions import ObjectNotFound

from conftest import make_cluster, make_subject, mark_ready


async def eventually(check, timeout=2):
    with anyio.fail_after(timeout):
        while True:
            try:
                if await check():
                    return
            except ObjectNotFound:
                pass
            await anyio.sleep(0.005)


@pytest.fixture
def settings():
    return Settings(requeue_after=0.02)


@pytest.fixture
async def manager(store, settings):
    manager = Manager(store, settings)
    async with anyio.create_task_group() as tg:
        await tg.start(manager, setup_with_manager)
        yield manager
        tg.cancel_scope.cancel()


async def failure_domain_names(store):
    return [fd.metadata.name for fd in await store.list(CloudStackFailureDomain)]


async def subject_ready(store):
    subject = await store.get(CloudStackCluster, 'demo-infra', namespace='default')
    return subject.status.ready


async def test_setup_wires_informers(store, settings):
    manager = Manager(store, settings)
    controller = setup_with_manager(manager)
    assert manager.controllers == [controller]
    assert {informer.resource for informer in manager.informers} == {
        CloudStackCluster,
        Cluster,
        CloudStackFailureDomain,
    }
    assert len(controller.event_sources) == 3


async def test_lifecycle(store, manager):
    cluster = await store.create(make_cluster())
    await store.create(make_subject(owner=cluster))

    async def created():
        return await failure_domain_names(store) == ['pool1-demo', 'pool2-demo']

    await eventually(created)
    assert not await subject_ready(store)

    # Readiness of the failure domains triggers the cluster.
    await mark_ready(store)
    await eventually(lambda: subject_ready(store))

    await store.delete(CloudStackCluster, 'demo-infra', namespace='default')

    async def deleted():
        try:
            await store.get(CloudStackCluster, 'demo-infra', namespace='default')
        except ObjectNotFound:
            return await failure_domain_names(store) == []
        return False

    await eventually(deleted)


async def test_unpausing_the_cluster_resumes_reconciliation(store, manager):
    cluster = await store.create(make_cluster(paused=True))
    await store.create(make_subject(owner=cluster))

    await anyio.sleep(0.1)
    assert await failure_domain_names(store) == []
    subject = await store.get(CloudStackCluster, 'demo-infra', namespace='default')
    assert not has_finalizer(subject, CLUSTER_FINALIZER)

    cluster = await store.get(Cluster, 'demo', namespace='default')
    cluster.spec.paused = False
    await store.update(cluster)

    async def created():
        return len(await failure_domain_names(store)) == 2

    await eventually(created)
