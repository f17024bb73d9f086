import contextlib
import logging

import httpx
import lightkube
from lightkube.core.exceptions import ApiError

from ..exceptions import (
    AlreadyExists,
    ApiObjectNotFound,
    StoreUnavailable,
    VersionConflict,
    WatchExpired,
)
from .base import ObjectList, ResourceStore


log = logging.getLogger(__name__)


def _all_namespaces(namespace):
    return '*' if namespace is None else namespace


@contextlib.contextmanager
def api_errors(resource, name=None, namespace=None, obj=None):
    """Translate lightkube and httpx errors into our error taxonomy."""
    try:
        yield
    except ApiError as e:
        code = e.status.code
        if code == 404:
            raise ApiObjectNotFound(resource, name, namespace=namespace) from e
        if code == 409 and obj is not None:
            if e.status.reason == 'AlreadyExists':
                raise AlreadyExists(obj) from e
            raise VersionConflict(obj, expected=obj.metadata.resourceVersion) from e
        if code == 410:
            raise WatchExpired(message=e.status.message) from e
        if code is not None and code >= 500:
            raise StoreUnavailable(
                message=f'{resource.apiVersion}/{resource.kind}: {e.status.message}',
                status_code=code,
            ) from e
        raise
    except httpx.HTTPStatusError as e:
        raise StoreUnavailable(
            http_method=e.request.method,
            url=e.request.url,
            status_code=e.response.status_code,
        ) from e
    except httpx.TransportError as e:
        raise StoreUnavailable(
            message=f'{resource.apiVersion}/{resource.kind}: {e!r}'
        ) from e


class KubeStore(ResourceStore):
    """Resource store backed by the kubernetes api server."""

    def __init__(self, api_client=None):
        if api_client is None:
            api_client = lightkube.AsyncClient()
        self.api_client = api_client

    def __repr__(self):
        return f'<KubeStore {self.api_client.namespace}>'

    async def get(self, resource, name, namespace=None):
        with api_errors(resource, name, namespace):
            return await self.api_client.get(resource, name, namespace=namespace)

    async def list(self, resource, namespace=None, labels=None):
        with api_errors(resource, namespace=namespace):
            resource_list = self.api_client.list(
                resource,
                namespace=_all_namespaces(namespace),
                labels=labels,
            )
            items = [obj async for obj in resource_list]
        return ObjectList(items, resource_version=resource_list.resourceVersion)

    async def _replace_status(self, obj, result):
        # The status subresource is ignored by the api server when
        # writing the main resource, so it is written on its own.
        if not hasattr(obj, 'Status'):
            return result
        if obj.status and obj.status != result.status:
            log.debug('writing status of %r', result)
            status_resource = obj.Status.from_dict(result.to_dict())
            status_resource.status = obj.status
            status_result = await self.api_client.replace(status_resource)
            result.status = status_result.status
            result.metadata.resourceVersion = status_result.metadata.resourceVersion
        return result

    async def create(self, obj):
        resource = type(obj)
        name, namespace = obj.metadata.name, obj.metadata.namespace
        with api_errors(resource, name, namespace, obj=obj):
            result = await self.api_client.create(obj)
            return await self._replace_status(obj, result)

    async def update(self, obj):
        resource = type(obj)
        name, namespace = obj.metadata.name, obj.metadata.namespace
        with api_errors(resource, name, namespace, obj=obj):
            result = await self.api_client.replace(obj)
            return await self._replace_status(obj, result)

    async def delete(self, resource, name, namespace=None):
        with api_errors(resource, name, namespace):
            await self.api_client.delete(resource, name, namespace=namespace)

    async def watch(self, resource, namespace=None, resource_version=None):
        with api_errors(resource, namespace=namespace):
            async for event, obj in self.api_client.watch(
                resource,
                namespace=_all_namespaces(namespace),
                resource_version=resource_version,
            ):
                yield event, obj
