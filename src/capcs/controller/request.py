import dataclasses
import itertools

from ..invocation import nonblocking


@dataclasses.dataclass(unsafe_hash=True)
class Request:
    """Identity of an object to reconcile.

    Two requests for the same object are equal, no matter how often
    they were retried.
    """

    resource: type
    name: str
    namespace: str = None
    retries: int = dataclasses.field(default=0, compare=False)

    @property
    def api_version(self) -> str:
        return self.resource.apiVersion

    @property
    def kind(self) -> str:
        return self.resource.kind

    @property
    def key(self) -> str:
        if self.namespace is not None:
            return f'{self.namespace}/{self.name}'
        return self.name

    def __repr__(self):
        return f'<Request {self.resource.apiVersion}/{self.resource.kind} {self.key} retries: {self.retries}>'


def request_for_object(obj):
    if obj is None:
        return
    yield Request(type(obj), obj.metadata.name, namespace=obj.metadata.namespace)


def request_for_owner(obj, owner=None):
    """Yield a request for the controlling owner of obj, if it is of the owner resource."""
    if obj is None:
        return
    for ref in obj.metadata.ownerReferences or []:
        if (
            ref.apiVersion == owner.apiVersion
            and ref.kind == owner.kind
            and ref.controller
        ):
            yield Request(owner, ref.name, namespace=obj.metadata.namespace)


@nonblocking
def requests_from_event_for_object(event):
    match type(event):
        case event.CreateEvent | event.DeleteEvent:
            return request_for_object(event.obj)
        case event.UpdateEvent:
            return itertools.chain(
                request_for_object(event.old),
                request_for_object(event.new),
            )


@nonblocking
def requests_from_event_for_owner(event, owner=None):
    match type(event):
        case event.CreateEvent | event.DeleteEvent:
            return request_for_owner(event.obj, owner=owner)
        case event.UpdateEvent:
            return itertools.chain(
                request_for_owner(event.old, owner=owner),
                request_for_owner(event.new, owner=owner),
            )
