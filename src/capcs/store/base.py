import typing


class ObjectList(list):
    """A list of objects and the store version it was read at.

    Watches started at `resource_version` do not miss any change made
    after the list was read.
    """

    def __init__(self, items=(), resource_version=None):
        super().__init__(items)
        self.resource_version = resource_version


class ResourceStore:
    """Interface: versioned object store with change notifications.

    All methods may raise StoreUnavailable on transport failures.
    """

    async def get(self, resource, name, namespace=None):
        """Return the object or raise ObjectNotFound."""
        raise NotImplementedError()

    async def list(self, resource, namespace=None, labels=None) -> ObjectList:
        """Return all objects of the given resource.

        `namespace` None or '*' lists all namespaces, `labels` is a dict of
        labels the objects must carry.
        """
        raise NotImplementedError()

    async def create(self, obj):
        """Create the object or raise AlreadyExists."""
        raise NotImplementedError()

    async def update(self, obj):
        """Replace the object including its status.

        Raises VersionConflict if the stored object no longer has the
        resourceVersion of `obj`, ObjectNotFound if it is gone.
        """
        raise NotImplementedError()

    async def delete(self, resource, name, namespace=None):
        """Request deletion or raise ObjectNotFound.

        Objects with finalizers are only marked for deletion.
        """
        raise NotImplementedError()

    def watch(
        self, resource, namespace=None, resource_version=None
    ) -> typing.AsyncIterator[typing.Tuple[str, object]]:
        """Yield ('ADDED'|'MODIFIED'|'DELETED', obj) for every change."""
        raise NotImplementedError()
