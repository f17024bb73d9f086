import inspect

import httpx
import pytest
from lightkube.core.exceptions import ApiError

from capcs.config import Settings
from capcs.resources import (
    CLUSTER_NAME_LABEL,
    Cluster,
    ClusterSpec,
    CloudStackCluster,
    CloudStackClusterSpec,
    CloudStackFailureDomain,
    CloudStackFailureDomainSpec,
    ObjectMeta,
    SecretReference,
    set_owner_reference,
)
from capcs.store import MemoryStore


# Make all coroutine tests in this directory and below run on anyio.
@pytest.hookimpl(hookwrapper=True)
def pytest_pycollect_makeitem(collector, name, obj):
    if collector.funcnamefilter(name) and inspect.iscoroutinefunction(obj):
        pytest.mark.anyio(obj)
    yield


@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture
async def store():
    return MemoryStore()


@pytest.fixture
def settings():
    return Settings()


def make_fd_spec(name):
    return CloudStackFailureDomainSpec(
        name=name,
        zone=f'zone-{name}',
        account='admin',
        domain='ROOT',
        acsEndpoint=SecretReference(name='acs-endpoint', namespace='default'),
    )


def make_cluster(name='demo', namespace='default', paused=False):
    return Cluster(
        metadata=ObjectMeta(name=name, namespace=namespace),
        spec=ClusterSpec(paused=paused),
    )


def make_subject(name='demo-infra', namespace='default', failure_domains=('pool1', 'pool2'), owner=None):
    subject = CloudStackCluster(
        metadata=ObjectMeta(name=name, namespace=namespace),
        spec=CloudStackClusterSpec(
            failureDomains=[make_fd_spec(fd) for fd in failure_domains],
        ),
    )
    if owner is not None:
        set_owner_reference(owner, subject)
    return subject


def make_failure_domain(name, cluster_name='demo', namespace='default', ready=False):
    fd = CloudStackFailureDomain(
        metadata=ObjectMeta(
            name=name,
            namespace=namespace,
            labels={CLUSTER_NAME_LABEL: cluster_name},
        ),
        spec=make_fd_spec(name),
    )
    fd.status.ready = ready
    return fd


@pytest.fixture
async def cluster(store):
    return await store.create(make_cluster())


@pytest.fixture
async def subject(store, cluster):
    return await store.create(make_subject(owner=cluster))


async def mark_ready(store, namespace='default', ready=True):
    """Play the failure domain controller: set all failure domains ready."""
    for fd in await store.list(CloudStackFailureDomain, namespace=namespace):
        if fd.status.ready != ready:
            fd.status.ready = ready
            await store.update(fd)


def api_error(code, reason):
    request = httpx.Request('GET', 'https://kubernetes.default/apis')
    response = httpx.Response(
        code,
        request=request,
        json={
            'apiVersion': 'v1',
            'kind': 'Status',
            'status': 'Failure',
            'code': code,
            'reason': reason,
            'message': f'{reason} ({code})',
            'metadata': {},
        },
    )
    return ApiError(request=request, response=response)
