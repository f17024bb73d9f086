from ..exceptions import StoreKeyError


def meta_namespace_key_func(obj):
    """Return the 'namespace/name' key of an object, 'name' for cluster scoped ones."""
    try:
        name = obj.metadata.name
        namespace = getattr(obj.metadata, 'namespace', None)
    except AttributeError as e:
        raise StoreKeyError(obj) from e
    if namespace is not None:
        return f'{namespace}/{name}'
    return name


class Store:
    """The objects an informer has seen, keyed by `key_func`.

    Subclasses keep derived data up to date by overriding
    __setitem__ and __delitem__.
    """

    def __init__(self, key_func=None):
        self.key_func = key_func or meta_namespace_key_func
        self._items = {}

    def __repr__(self):
        return f'<{self.__class__.__name__} {list(self.keys())}>'

    def __len__(self):
        return len(self._items)

    def __contains__(self, obj):
        return self.key_func(obj) in self._items

    def __setitem__(self, key, obj):
        self._items[key] = obj

    def __getitem__(self, key):
        return self._items[key]

    def __delitem__(self, key):
        del self._items[key]

    def put(self, obj):
        """Store the object, return the version it replaced or None."""
        key = self.key_func(obj)
        old = self._items.get(key)
        self[key] = obj
        return old

    def pop(self, obj):
        """Remove the object, return the stored version or None."""
        key = self.key_func(obj)
        old = self._items.get(key)
        if old is not None:
            del self[key]
        return old

    def get(self, obj, default=None):
        return self._items.get(self.key_func(obj), default)

    def keys(self):
        return self._items.keys()

    def list(self):
        return list(self._items.values())

    def clear(self):
        for key in list(self._items):
            del self[key]
