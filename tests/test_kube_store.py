import httpx
import pytest
from lightkube.core.exceptions import ApiError

from capcs.exceptions import AlreadyExists, ObjectNotFound, StoreUnavailable, VersionConflict, WatchExpired
from capcs.resources import CloudStackCluster, CloudStackFailureDomain
from capcs.store import KubeStore

from conftest import api_error, make_failure_domain, make_subject


class FakeClient:
    """Stands in for a lightkube AsyncClient, raising the given error or recording calls."""

    namespace = 'default'

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def get(self, resource, name, namespace=None):
        self.calls.append(('get', resource, name, namespace))
        if self.error is not None:
            raise self.error
        return make_failure_domain(name)

    async def create(self, obj):
        self.calls.append(('create', obj))
        if self.error is not None:
            raise self.error
        return obj

    async def replace(self, obj):
        self.calls.append(('replace', obj))
        if self.error is not None:
            raise self.error
        return obj

    async def delete(self, resource, name, namespace=None):
        self.calls.append(('delete', resource, name, namespace))
        if self.error is not None:
            raise self.error


@pytest.mark.parametrize('error, expected', [
    pytest.param(api_error(404, 'NotFound'), ObjectNotFound, id='not-found'),
    pytest.param(api_error(503, 'ServiceUnavailable'), StoreUnavailable, id='unavailable'),
    pytest.param(api_error(410, 'Expired'), WatchExpired, id='expired'),
    pytest.param(httpx.ConnectError('connection refused'), StoreUnavailable, id='transport'),
])
async def test_get_errors_are_translated(error, expected):
    store = KubeStore(FakeClient(error))
    with pytest.raises(expected):
        await store.get(CloudStackFailureDomain, 'pool1-demo', namespace='default')


@pytest.mark.parametrize('reason, expected', [
    pytest.param('AlreadyExists', AlreadyExists, id='exists'),
    pytest.param('Conflict', VersionConflict, id='conflict'),
])
async def test_conflicts_are_translated(reason, expected):
    store = KubeStore(FakeClient(api_error(409, reason)))
    with pytest.raises(expected):
        await store.create(make_failure_domain('pool1-demo'))


async def test_unrelated_api_errors_propagate():
    store = KubeStore(FakeClient(api_error(403, 'Forbidden')))
    with pytest.raises(ApiError):
        await store.delete(CloudStackFailureDomain, 'pool1-demo', namespace='default')


async def test_get_passes_through():
    client = FakeClient()
    store = KubeStore(client)
    fd = await store.get(CloudStackFailureDomain, 'pool1-demo', namespace='default')
    assert fd.metadata.name == 'pool1-demo'
    assert client.calls == [('get', CloudStackFailureDomain, 'pool1-demo', 'default')]


async def test_update_unchanged_status_is_one_write():
    client = FakeClient()
    store = KubeStore(client)
    await store.update(make_subject())
    assert [call[0] for call in client.calls] == ['replace']


async def test_update_writes_changed_status_through_the_subresource():
    class StaleStatusClient(FakeClient):
        async def replace(self, obj):
            await super().replace(obj)
            if isinstance(obj, CloudStackCluster):
                # The main resource endpoint ignores the status.
                result = make_subject()
                result.metadata.resourceVersion = '2'
                return result
            obj.metadata.resourceVersion = '3'
            return obj

    client = StaleStatusClient()
    store = KubeStore(client)
    subject = make_subject()
    subject.status.ready = True

    result = await store.update(subject)

    assert [type(call[1]) for call in client.calls] == [CloudStackCluster, CloudStackCluster.Status]
    assert result.status.ready
    assert result.metadata.resourceVersion == '3'
