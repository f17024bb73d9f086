from .config import Settings, load_settings
from .controller import Controller, Done, Failed, Request, RequeueAfter
from .exceptions import (
    AlreadyExists,
    Error,
    FatalError,
    InvariantViolation,
    ObjectNotFound,
    PermanentError,
    StoreUnavailable,
    VersionConflict,
    WatchExpired,
)
from .manager import Manager
from .reconciler import reconcile, setup_with_manager
from .store import KubeStore, MemoryStore, ResourceStore

__all__ = [
    'AlreadyExists',
    'Controller',
    'Done',
    'Error',
    'Failed',
    'FatalError',
    'InvariantViolation',
    'KubeStore',
    'Manager',
    'MemoryStore',
    'ObjectNotFound',
    'PermanentError',
    'Request',
    'RequeueAfter',
    'ResourceStore',
    'Settings',
    'StoreUnavailable',
    'VersionConflict',
    'WatchExpired',
    'load_settings',
    'reconcile',
    'setup_with_manager',
]
