"""Settings of the controller, optionally loaded from a YAML file.

Example::

    namespace: capc-system
    requeue_after: 5
    concurrent_reconciles: 4
    reconcile_timeout: 60
    backoff:
      base_delay: 0.005
      max_delay: 1000
    bucket:
      capacity: 100
      rate: 10
"""

import dataclasses
import pathlib
import typing

import yaml

from .resources.cloudstack import CLUSTER_FINALIZER


@dataclasses.dataclass
class BackoffSettings:
    """Per request exponential backoff applied to failed reconciliations."""

    base_delay: float = 0.005  # 5 Milliseconds
    max_delay: float = 1000  # 1000 Seconds


@dataclasses.dataclass
class BucketSettings:
    """Overall rate limit of failed reconciliations, shared by all requests."""

    # Maximum number of tokens in the bucket.
    capacity: int = 100
    # Tokens added per second.
    rate: float = 10


@dataclasses.dataclass
class Settings:
    # Namespace to watch, None watches all namespaces.
    namespace: typing.Optional[str] = None
    finalizer: str = CLUSTER_FINALIZER
    # Delay for requeues which do not advise their own delay.
    requeue_after: float = 5
    concurrent_reconciles: int = 1
    # Upper bound for a single reconciliation, None disables it.
    reconcile_timeout: typing.Optional[float] = None
    # Relist interval of the informers, None disables resyncs.
    resync_after: typing.Optional[float] = 10 * 60 * 60
    # Delay between attempts to re-establish a failed list/watch.
    watch_retry_delay: float = 5
    backoff: BackoffSettings = dataclasses.field(default_factory=BackoffSettings)
    bucket: BucketSettings = dataclasses.field(default_factory=BucketSettings)

    def __post_init__(self):
        if self.requeue_after <= 0:
            raise ValueError(f'requeue_after must be positive, got {self.requeue_after}')
        if self.concurrent_reconciles < 1:
            raise ValueError(
                f'concurrent_reconciles must be at least 1, got {self.concurrent_reconciles}'
            )


def _build(cls, data, section):
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f'{section}: expected a mapping, got {type(data).__name__}')
    known = {field.name for field in dataclasses.fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f'{section}: unknown settings: {", ".join(sorted(unknown))}')
    return cls(**data)


def settings_from_dict(data: typing.Optional[dict]) -> Settings:
    data = dict(data or {})
    backoff = _build(BackoffSettings, data.pop('backoff', None), 'backoff')
    bucket = _build(BucketSettings, data.pop('bucket', None), 'bucket')
    settings = _build(Settings, data, 'settings')
    settings.backoff = backoff
    settings.bucket = bucket
    return settings


def load_settings(path: typing.Union[str, pathlib.Path]) -> Settings:
    """Load settings from the given YAML file."""
    path = pathlib.Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)
    return settings_from_dict(data)
