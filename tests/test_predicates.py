import copy
import datetime

import pytest
from lightkube.models.core_v1 import ObjectReference

from capcs.cache import CreateEvent, DeleteEvent, Indexer, UpdateEvent
from capcs.controller import Request
from capcs.predicates import (
    OWNER_CLUSTER_INDEX,
    dependent_readiness_changed,
    index_by_owner_cluster,
    owner_unpaused,
    requests_for_owner_cluster,
    subject_changed,
)
from capcs.resources import (
    CLUSTER_FINALIZER,
    CLUSTER_NAME_LABEL,
    CloudStackCluster,
    FailureDomainDescriptor,
)

from conftest import make_cluster, make_failure_domain, make_fd_spec, make_subject


def updated(obj, change):
    new = copy.deepcopy(obj)
    change(new)
    return UpdateEvent(obj, new)


def _bump_version(obj):
    obj.metadata.resourceVersion = '2'
    obj.metadata.generation = 2


def _add_finalizer(obj):
    obj.metadata.finalizers.append(CLUSTER_FINALIZER)


def _write_status(obj):
    obj.status.ready = True
    obj.status.failureDomains = {'pool1-demo': FailureDomainDescriptor(controlPlane=True)}


def _add_managed_fields(obj):
    obj.metadata.managedFields.append({'manager': 'capcs'})


def _add_failure_domain(obj):
    obj.spec.failureDomains.append(make_fd_spec('pool3'))


def _change_zone(obj):
    obj.spec.failureDomains[0].zone = 'other-zone'


def _add_label(obj):
    obj.metadata.labels['team'] = 'infra'


def _set_deletion_timestamp(obj):
    obj.metadata.deletionTimestamp = datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)


@pytest.mark.parametrize('change', [
    pytest.param(_bump_version, id='version'),
    pytest.param(_add_finalizer, id='finalizers'),
    pytest.param(_write_status, id='status'),
    pytest.param(_add_managed_fields, id='managed-fields'),
])
def test_subject_bookkeeping_changes_are_ignored(change):
    subject = make_subject(owner=make_cluster())
    assert not subject_changed(updated(subject, change))


@pytest.mark.parametrize('change', [
    pytest.param(_add_failure_domain, id='new-failure-domain'),
    pytest.param(_change_zone, id='changed-failure-domain'),
    pytest.param(_add_label, id='labels'),
    pytest.param(_set_deletion_timestamp, id='deletion'),
])
def test_subject_desired_state_changes_trigger(change):
    subject = make_subject(owner=make_cluster())
    assert subject_changed(updated(subject, change))


@pytest.mark.parametrize('event_class', [CreateEvent, DeleteEvent])
def test_subject_create_and_delete_trigger(event_class):
    assert subject_changed(event_class(make_subject()))


@pytest.mark.parametrize('old, new, expected', [
    pytest.param(True, False, True, id='unpaused'),
    pytest.param(False, True, False, id='paused'),
    pytest.param(False, False, False, id='running'),
    pytest.param(True, True, False, id='still-paused'),
])
def test_owner_unpaused(old, new, expected):
    old_cluster = make_cluster(paused=old)
    new_cluster = make_cluster(paused=new)
    assert owner_unpaused(UpdateEvent(old_cluster, new_cluster)) is expected


@pytest.mark.parametrize('event_class', [CreateEvent, DeleteEvent])
def test_owner_create_and_delete_are_ignored(event_class):
    assert not owner_unpaused(event_class(make_cluster()))


def test_dependent_readiness_changed():
    fd = make_failure_domain('pool1-demo')

    def _ready(obj):
        obj.status.ready = True

    assert dependent_readiness_changed(updated(fd, _ready))
    assert dependent_readiness_changed(updated(fd, _set_deletion_timestamp))
    assert not dependent_readiness_changed(updated(fd, _bump_version))
    assert dependent_readiness_changed(CreateEvent(fd))


def test_index_by_owner_cluster():
    assert index_by_owner_cluster(make_subject(owner=make_cluster())) == ['default/demo']

    labelled = make_subject()
    labelled.metadata.labels[CLUSTER_NAME_LABEL] = 'other'
    assert index_by_owner_cluster(labelled) == ['default/other']

    assert index_by_owner_cluster(make_subject()) == []


@pytest.fixture
def subject_index():
    indexer = Indexer(indexers={OWNER_CLUSTER_INDEX: index_by_owner_cluster})
    cluster = make_cluster()
    indexer.put(make_subject(name='demo-infra', owner=cluster))
    indexer.put(make_subject(name='demo-infra-2', owner=cluster))
    indexer.put(make_subject(name='other-infra', owner=make_cluster(name='other')))
    return indexer.get_index(OWNER_CLUSTER_INDEX)


def test_requests_for_owner_cluster_from_index(subject_index):
    event = UpdateEvent(make_cluster(paused=True), make_cluster())
    requests = requests_for_owner_cluster(event, index=subject_index)
    assert requests == [
        Request(CloudStackCluster, 'demo-infra', namespace='default'),
        Request(CloudStackCluster, 'demo-infra-2', namespace='default'),
    ]


def test_requests_for_owner_cluster_from_infrastructure_ref(subject_index):
    cluster = make_cluster()
    cluster.spec.infrastructureRef = ObjectReference(
        apiVersion=CloudStackCluster.apiVersion,
        kind='CloudStackCluster',
        name='demo-infra',
    )
    event = UpdateEvent(make_cluster(paused=True), cluster)

    assert requests_for_owner_cluster(event) == [
        Request(CloudStackCluster, 'demo-infra', namespace='default'),
    ]
    # Requests found both ways are not duplicated.
    assert len(requests_for_owner_cluster(event, index=subject_index)) == 2


def test_requests_for_unknown_owner_cluster(subject_index):
    event = UpdateEvent(make_cluster(name='unknown', paused=True), make_cluster(name='unknown'))
    assert requests_for_owner_cluster(event, index=subject_index) == []
