from .store import Store


def index_by_namespace(obj):
    namespace = getattr(obj.metadata, 'namespace', None)
    return [namespace]


class IndexView:
    """Read-only view on one index of an Indexer."""

    def __init__(self, store, index_name, resource=None):
        self.store = store
        self.index_name = index_name
        self.resource = resource

    def __repr__(self):
        if self.resource:
            return f'<IndexView {self.resource.apiVersion}/{self.resource.kind} {self.index_name}>'
        else:
            return f'<IndexView {self.index_name}>'

    @property
    def _index(self):
        return self.store._indices[self.index_name]

    def __getitem__(self, key):
        return [self.store[k] for k in sorted(self._index[key])]

    def __contains__(self, key):
        return bool(self._index.get(key))

    def get(self, key, default=()):
        if key in self:
            return self[key]
        return list(default)

    def keys(self):
        return [key for key, keys in self._index.items() if keys]

    def items(self):
        return {key: self[key] for key in self.keys()}

    def values(self):
        return [self[key] for key in self.keys()]


class Indexer(Store):
    """A Store which maintains secondary indices computed by index functions.

    An index function returns the list of index values of an object.
    """

    def __init__(self, key_func=None, indexers=None):
        super().__init__(key_func=key_func)
        self._indexers = {}
        self._indices = {}
        self.add_indexers({'namespace': index_by_namespace})
        if indexers is not None:
            self.add_indexers(indexers)

    def __setitem__(self, key, obj):
        old = self._items.get(key, None)
        self._items[key] = obj
        self._update_indices(old, obj, key)

    def __delitem__(self, key):
        if key in self._items:
            obj = self._items.pop(key)
            self._update_indices(obj, None, key)

    def _update_single_index(self, name, old, new, key):
        index_func = self._indexers[name]
        old_values = index_func(old) if old is not None else []
        new_values = index_func(new) if new is not None else []
        # Most index functions return one unchanged value.
        if old_values == new_values:
            return
        index = self._indices.setdefault(name, {})
        for value in old_values:
            keys = index.get(value)
            if keys:
                keys.discard(key)
        for value in new_values:
            index.setdefault(value, set()).add(key)

    def _update_indices(self, old, new, key):
        for name in self._indexers:
            self._update_single_index(name, old, new, key)

    def add_indexers(self, indexers):
        conflicts = set(self._indexers).intersection(indexers)
        if conflicts:
            raise ValueError(f'indexer conflict: {sorted(conflicts)}')
        for name, index_func in indexers.items():
            self._indexers[name] = index_func
            # Ensure indices exist, even if store is empty.
            self._indices.setdefault(name, {})
        # Index the items we already have.
        for key, value in self._items.items():
            for name in indexers:
                self._update_single_index(name, None, value, key)

    def get_index(self, index_name, resource=None):
        """Return a read-only view on a index."""
        if index_name not in self._indexers:
            raise KeyError(f'no such index: {index_name}')
        return IndexView(self, index_name, resource=resource)
