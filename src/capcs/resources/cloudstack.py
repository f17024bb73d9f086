from dataclasses import field
from typing import Dict, List

from . import crd
from .resources import ObjectMeta


GROUP = 'infrastructure.cluster.x-k8s.io'
VERSION = 'v1beta2'

CLUSTER_FINALIZER = 'cloudstackcluster.infrastructure.cluster.x-k8s.io'


@crd.model
class SecretReference:
    name: str
    namespace: str = None


@crd.model
class APIEndpoint:
    host: str = ''
    port: int = 0


@crd.model
class CloudStackFailureDomainSpec:
    """Where and with which credentials machines of one failure domain are placed."""

    # Unique within the cluster once suffixed with the cluster name.
    name: str
    zone: str = None
    account: str = None
    domain: str = None
    acsEndpoint: SecretReference = None


@crd.model
class FailureDomainDescriptor:
    """A failure domain as published to machine placement."""

    controlPlane: bool = False
    attributes: Dict[str, str] = field(default_factory=dict)


@crd.model
class CloudStackClusterSpec:
    failureDomains: List[CloudStackFailureDomainSpec] = field(default_factory=list)
    controlPlaneEndpoint: APIEndpoint = field(default_factory=APIEndpoint)


@crd.subresource
class CloudStackClusterStatus:
    ready: bool = False
    failureDomains: Dict[str, FailureDomainDescriptor] = field(default_factory=dict)


@crd.resource(group=GROUP, version=VERSION, scope='Namespaced')
class CloudStackCluster:
    """The infrastructure of one cluster: its failure domains and their readiness."""

    metadata: ObjectMeta
    spec: CloudStackClusterSpec = field(default_factory=CloudStackClusterSpec)
    status: CloudStackClusterStatus = field(default_factory=CloudStackClusterStatus)


@crd.subresource
class CloudStackFailureDomainStatus:
    ready: bool = False


@crd.resource(group=GROUP, version=VERSION, scope='Namespaced')
class CloudStackFailureDomain:
    """A single failure domain, reconciled independently of its cluster."""

    metadata: ObjectMeta
    spec: CloudStackFailureDomainSpec
    status: CloudStackFailureDomainStatus = field(
        default_factory=CloudStackFailureDomainStatus
    )
