from . import crd

from .resources import (
    ObjectMeta,
    Resource,
    add_finalizer,
    api_group,
    get_owner_reference,
    has_finalizer,
    is_being_deleted,
    is_same_version,
    remove_finalizer,
    set_controller_reference,
    set_owner_reference,
)

from .cloudstack import (
    CLUSTER_FINALIZER,
    APIEndpoint,
    CloudStackCluster,
    CloudStackClusterSpec,
    CloudStackClusterStatus,
    CloudStackFailureDomain,
    CloudStackFailureDomainSpec,
    CloudStackFailureDomainStatus,
    FailureDomainDescriptor,
    SecretReference,
)

from .cluster import (
    CLUSTER_NAME_LABEL,
    PAUSED_ANNOTATION,
    Cluster,
    ClusterSpec,
    ClusterStatus,
    is_paused,
)

__all__ = [
    'APIEndpoint',
    'CLUSTER_FINALIZER',
    'CLUSTER_NAME_LABEL',
    'Cluster',
    'ClusterSpec',
    'ClusterStatus',
    'CloudStackCluster',
    'CloudStackClusterSpec',
    'CloudStackClusterStatus',
    'CloudStackFailureDomain',
    'CloudStackFailureDomainSpec',
    'CloudStackFailureDomainStatus',
    'FailureDomainDescriptor',
    'ObjectMeta',
    'PAUSED_ANNOTATION',
    'Resource',
    'SecretReference',
    'add_finalizer',
    'api_group',
    'crd',
    'get_owner_reference',
    'has_finalizer',
    'is_being_deleted',
    'is_paused',
    'is_same_version',
    'remove_finalizer',
    'set_controller_reference',
    'set_owner_reference',
]
