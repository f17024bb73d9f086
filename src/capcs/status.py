from .dependents import normalize_name
from .pipeline import CONTINUE
from .resources import FailureDomainDescriptor


def failure_domains_status_map(specs, cluster_name):
    return {
        normalize_name(spec.name, cluster_name): FailureDomainDescriptor(controlPlane=True)
        for spec in specs
    }


async def set_failure_domains_status_map(store, state):
    """Publish the declared failure domains in the status for machine placement.

    The map is rebuilt from spec.failureDomains on every run, whatever the status held before.
    """
    state.subject.status.failureDomains = failure_domains_status_map(
        state.subject.spec.failureDomains,
        state.cluster_name,
    )
    return CONTINUE
