"""Event filters and event to request mappings of the CloudStackCluster controller.

Predicates take an event and return True if it may trigger a reconciliation.
"""

import typing

from .controller import Request
from .invocation import nonblocking
from .resources import (
    CLUSTER_NAME_LABEL,
    Cluster,
    CloudStackCluster,
    get_owner_reference,
)
from .resources import cluster as capi


OWNER_CLUSTER_INDEX = 'by_owner_cluster'


class SubjectView(typing.NamedTuple):
    """The parts of a CloudStackCluster that hold desired state.

    resourceVersion, generation, finalizers, managedFields and the status
    are left out, they change with every write of the controller itself.
    """

    name: str
    namespace: str
    uid: str
    labels: dict
    annotations: dict
    owner_references: list
    deletion_timestamp: object
    spec: object


def subject_view(obj):
    metadata = obj.metadata
    return SubjectView(
        name=metadata.name,
        namespace=metadata.namespace,
        uid=metadata.uid,
        labels=metadata.labels or {},
        annotations=metadata.annotations or {},
        owner_references=metadata.ownerReferences or [],
        deletion_timestamp=metadata.deletionTimestamp,
        spec=obj.spec,
    )


@nonblocking
def subject_changed(event):
    match type(event):
        case event.CreateEvent | event.DeleteEvent:
            return True
        case event.UpdateEvent:
            return subject_view(event.old) != subject_view(event.new)
    return False


@nonblocking
def owner_unpaused(event):
    """Only the transition of a cluster from paused to unpaused is of interest."""
    match type(event):
        case event.UpdateEvent:
            return bool(event.old.spec.paused) and not event.new.spec.paused
    return False


@nonblocking
def dependent_readiness_changed(event):
    match type(event):
        case event.CreateEvent | event.DeleteEvent:
            return True
        case event.UpdateEvent:
            return (
                event.old.status.ready != event.new.status.ready
                or event.old.metadata.deletionTimestamp != event.new.metadata.deletionTimestamp
                or event.old.metadata.ownerReferences != event.new.metadata.ownerReferences
            )
    return False


def owner_cluster_name(obj):
    """Name of the cluster owning obj, from its owner reference or its label."""
    ref = get_owner_reference(obj, capi.GROUP, Cluster.kind)
    if ref is not None:
        return ref.name
    return (obj.metadata.labels or {}).get(CLUSTER_NAME_LABEL)


def index_by_owner_cluster(obj):
    cluster_name = owner_cluster_name(obj)
    if cluster_name is None:
        return []
    return [f'{obj.metadata.namespace}/{cluster_name}']


def _infrastructure_request(cluster):
    ref = cluster.spec.infrastructureRef
    if ref is None or ref.kind != CloudStackCluster.kind or not ref.name:
        return None
    return Request(
        CloudStackCluster,
        ref.name,
        namespace=ref.namespace or cluster.metadata.namespace,
    )


@nonblocking
def requests_for_owner_cluster(event, index=None):
    """Map an event of a Cluster to requests for all CloudStackClusters it owns.

    Subjects are found by the cluster's infrastructureRef and by `index`, an
    index of CloudStackClusters built with `index_by_owner_cluster`.
    """
    cluster = event.latest
    requests = []
    request = _infrastructure_request(cluster)
    if request is not None:
        requests.append(request)
    if index is not None:
        key = f'{cluster.metadata.namespace}/{cluster.metadata.name}'
        for obj in index.get(key):
            request = Request(type(obj), obj.metadata.name, namespace=obj.metadata.namespace)
            if request not in requests:
                requests.append(request)
    return requests
