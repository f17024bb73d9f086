import pytest

from capcs.cache import Indexer
from capcs.exceptions import StoreKeyError
from capcs.predicates import OWNER_CLUSTER_INDEX, index_by_owner_cluster
from capcs.resources import CLUSTER_NAME_LABEL

from conftest import make_subject


def labelled(name, cluster_name, resource_version='1'):
    subject = make_subject(name=name)
    subject.metadata.labels[CLUSTER_NAME_LABEL] = cluster_name
    subject.metadata.resourceVersion = resource_version
    return subject


@pytest.fixture
def indexer():
    return Indexer(indexers={OWNER_CLUSTER_INDEX: index_by_owner_cluster})


def test_put_returns_the_replaced_object(indexer):
    first = labelled('a', 'demo')
    assert indexer.put(first) is None
    assert indexer.put(labelled('a', 'demo', '2')) is first
    assert len(indexer) == 1


def test_index_follows_changes(indexer):
    indexer.put(labelled('a', 'demo'))
    indexer.put(labelled('b', 'demo'))
    index = indexer.get_index(OWNER_CLUSTER_INDEX)
    assert [obj.metadata.name for obj in index['default/demo']] == ['a', 'b']

    indexer.put(labelled('b', 'other', '2'))
    assert [obj.metadata.name for obj in index['default/demo']] == ['a']
    assert [obj.metadata.name for obj in index['default/other']] == ['b']

    indexer.pop(labelled('a', 'demo'))
    assert 'default/demo' not in index
    assert index.get('default/demo') == []
    assert index.keys() == ['default/other']


def test_namespace_index_is_always_present(indexer):
    indexer.put(labelled('a', 'demo'))
    assert [obj.metadata.name for obj in indexer.get_index('namespace')['default']] == ['a']


def test_indexers_added_later_index_existing_objects(indexer):
    indexer.put(labelled('a', 'demo'))
    indexer.add_indexers({'by_name': lambda obj: [obj.metadata.name]})
    assert 'a' in indexer.get_index('by_name')


def test_conflicting_and_unknown_indexers(indexer):
    with pytest.raises(ValueError):
        indexer.add_indexers({OWNER_CLUSTER_INDEX: index_by_owner_cluster})
    with pytest.raises(KeyError):
        indexer.get_index('unknown')


def test_objects_without_metadata_have_no_key(indexer):
    with pytest.raises(StoreKeyError):
        indexer.put(object())
