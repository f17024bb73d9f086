from dataclasses import field

from lightkube.models.core_v1 import ObjectReference

from . import crd
from .resources import ObjectMeta


GROUP = 'cluster.x-k8s.io'
VERSION = 'v1beta1'

# Label carrying the name of the owning Cluster.
CLUSTER_NAME_LABEL = 'cluster.x-k8s.io/cluster-name'
# Annotation that pauses reconciliation of a single object.
PAUSED_ANNOTATION = 'cluster.x-k8s.io/paused'


@crd.model
class ClusterSpec:
    paused: bool = False
    infrastructureRef: ObjectReference = None


@crd.subresource
class ClusterStatus:
    phase: str = None
    infrastructureReady: bool = False


@crd.resource(group=GROUP, version=VERSION, scope='Namespaced')
class Cluster:
    """The Cluster API cluster owning an infrastructure cluster."""

    metadata: ObjectMeta
    spec: ClusterSpec = field(default_factory=ClusterSpec)
    status: ClusterStatus = field(default_factory=ClusterStatus)


def is_paused(cluster, obj=None):
    """Return True if the cluster, or the given object, is paused."""
    if cluster is not None and cluster.spec.paused:
        return True
    if obj is not None:
        return PAUSED_ANNOTATION in (obj.metadata.annotations or {})
    return False
