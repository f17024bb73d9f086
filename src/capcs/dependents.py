"""Failure domains of a CloudStackCluster: naming, creation, listing and readiness."""

import copy

from .exceptions import AlreadyExists, ObjectNotFound, PermanentError
from .pipeline import CONTINUE, Requeue
from .resources import (
    CLUSTER_NAME_LABEL,
    CloudStackFailureDomain,
    ObjectMeta,
    set_controller_reference,
)


def normalize_name(name, cluster_name):
    """Suffix the failure domain name with the cluster name, unless it already is."""
    suffix = f'-{cluster_name}'
    if name.endswith(suffix):
        return name
    return f'{name}{suffix}'


def normalize(specs, cluster_name):
    """Return copies of the failure domain specs with cluster unique names."""
    normalized = []
    seen = set()
    for spec in specs:
        spec = copy.deepcopy(spec)
        spec.name = normalize_name(spec.name, cluster_name)
        if spec.name in seen:
            raise PermanentError(f'duplicate failure domain name: {spec.name}')
        seen.add(spec.name)
        normalized.append(spec)
    return normalized


def build_failure_domain(subject, spec, cluster_name):
    """Return the failure domain object for an already normalized spec."""
    failure_domain = CloudStackFailureDomain(
        metadata=ObjectMeta(
            name=spec.name,
            namespace=subject.metadata.namespace,
            labels={CLUSTER_NAME_LABEL: cluster_name},
        ),
        spec=copy.deepcopy(spec),
    )
    set_controller_reference(subject, failure_domain)
    return failure_domain


async def ensure_exist(store, state, specs):
    """Issue a create for every failure domain, existing ones are left alone.

    Does not wait for the failure domains to become ready.
    """
    created = []
    for spec in specs:
        failure_domain = build_failure_domain(state.subject, spec, state.cluster_name)
        try:
            created.append(await store.create(failure_domain))
            state.log.info('created failure domain %s', spec.name)
        except AlreadyExists:
            state.log.debug('failure domain %s already exists', spec.name)
    return created


async def fetch_all(store, state):
    """Return all failure domains of the cluster, ordered by name."""
    if state.cluster_name is None:
        return []
    return list(
        await store.list(
            CloudStackFailureDomain,
            namespace=state.namespace,
            labels={CLUSTER_NAME_LABEL: state.cluster_name},
        )
    )


def verify_ready(expected, failure_domains):
    """Continue if all expected failure domains exist and are ready, requeue otherwise."""
    actual = len(failure_domains)
    if expected != actual:
        return Requeue(f'Expected {expected} FailureDomains, but found {actual}')
    for fd in failure_domains:
        if not fd.status.ready:
            return Requeue(
                f'FailureDomains {fd.metadata.namespace}/{fd.metadata.name} not ready, requeueing.'
            )
    return CONTINUE


async def create_failure_domains(store, state):
    specs = normalize(state.subject.spec.failureDomains, state.cluster_name)
    await ensure_exist(store, state, specs)
    return CONTINUE


async def get_failure_domains(store, state):
    state.failure_domains = await fetch_all(store, state)
    return CONTINUE


async def remove_undeclared_failure_domains(store, state):
    """Delete failure domains which were removed from the cluster spec."""
    declared = {
        spec.name
        for spec in normalize(state.subject.spec.failureDomains, state.cluster_name)
    }
    undeclared = [
        fd for fd in state.failure_domains if fd.metadata.name not in declared
    ]
    if not undeclared:
        return CONTINUE
    for fd in undeclared:
        if fd.metadata.deletionTimestamp is not None:
            continue
        state.log.info('deleting undeclared failure domain %s', fd.metadata.name)
        try:
            await store.delete(type(fd), fd.metadata.name, namespace=fd.metadata.namespace)
        except ObjectNotFound:
            state.log.debug('failure domain %s already gone', fd.metadata.name)
    state.subject.status.ready = False
    names = ', '.join(fd.metadata.name for fd in undeclared)
    return Requeue(f'Removing undeclared FailureDomains {names}, requeueing.')


async def verify_failure_domains(store, state):
    expected = len(state.subject.spec.failureDomains)
    result = verify_ready(expected, state.failure_domains)
    if isinstance(result, Requeue):
        # Ready must never outlive the failure domains it was based on.
        state.subject.status.ready = False
    return result
