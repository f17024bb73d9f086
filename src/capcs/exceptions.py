__all__ = [
    'AlreadyExists',
    'ApiObjectNotFound',
    'Error',
    'FatalError',
    'InvariantViolation',
    'ObjectError',
    'ObjectNotFound',
    'PermanentError',
    'StoreKeyError',
    'StoreUnavailable',
    'VersionConflict',
    'WatchExpired',
    'iterate_errors',
]


def iterate_errors(exc):
    """
    iterate over all non-exceptiongroup parts of an exception(group)
    """
    if isinstance(exc, BaseExceptionGroup):
        for e in exc.exceptions:
            yield from iterate_errors(e)
    else:
        yield exc


def _describe(api_version, kind, namespace, name):
    out = []
    if api_version is not None and kind is not None:
        out.append(f'{api_version}/{kind}')
    if namespace is not None:
        out.append(f'{namespace}/{name}')
    else:
        out.append(str(name))
    return ' '.join(out)


class FatalError(Exception):
    """A fatal error that we can not recover from."""


class InvariantViolation(FatalError):
    """A reconciliation invariant does not hold.

    This is never raised for conditions of the outside world, only for
    programming errors. The controller stops instead of retrying.
    """


class Error(Exception):
    """Base class for all custom Exceptions."""

    def __init__(self, message=None):
        self.message = message

    def __str__(self):
        return self.__repr__()

    def __repr__(self):
        return f'{self.__class__.__name__}: {self.message}'


class StoreUnavailable(Error):
    """The resource store could not be reached or answered with a server error.
    """
    def __init__(self, message=None, http_method=None, url=None, status_code=None):
        self.message = message
        self.http_method = http_method
        self.url = url
        self.status_code = status_code

    def __str__(self):
        if self.message:
            return self.message
        else:
            return '{0} to {1} failed with status: {2}'.format(
                self.http_method, self.url, self.status_code
            )


class ObjectError(Error):
    def __init__(self, obj, message=None):
        self.obj = obj
        self.message = message

    def __repr__(self):
        obj = self.obj
        metadata = getattr(obj, 'metadata', None)
        msg = _describe(
            getattr(obj, 'apiVersion', None),
            getattr(obj, 'kind', None),
            getattr(metadata, 'namespace', None),
            getattr(metadata, 'name', obj),
        )
        if self.message:
            msg = f'{msg}: {self.message}'
        return f'{self.__class__.__name__}: {msg}'


class ObjectNotFound(ObjectError):
    pass


class ApiObjectNotFound(ObjectNotFound):
    def __init__(self, resource, name, namespace=None):
        self.resource = resource
        self.name = name
        self.namespace = namespace
        self.message = None

    def __repr__(self):
        msg = _describe(
            getattr(self.resource, 'apiVersion', None),
            getattr(self.resource, 'kind', None),
            self.namespace,
            self.name,
        )
        return f'{self.__class__.__name__}: {msg}'


class AlreadyExists(ObjectError):
    pass


class VersionConflict(ObjectError):
    """Another writer updated the object since we read it."""

    def __init__(self, obj, expected=None, actual=None):
        super().__init__(obj, message=f'expected version {expected}, found {actual}')
        self.expected = expected
        self.actual = actual


class StoreKeyError(ObjectError):
    pass


class WatchExpired(Error):
    """The resourceVersion a watch should start from is no longer available.
    Watchers have to list again."""

    def __init__(self, resource_version=None, message=None):
        super().__init__(message or f'resourceVersion {resource_version} is too old')
        self.resource_version = resource_version


class PermanentError(Error):
    """Raised by a reconcile function when a non-recoverably error occurs."""
