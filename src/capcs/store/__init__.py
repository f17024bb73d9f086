from .base import ObjectList, ResourceStore
from .memory import MemoryStore
from .kube import KubeStore

__all__ = [
    'KubeStore',
    'MemoryStore',
    'ObjectList',
    'ResourceStore',
]
