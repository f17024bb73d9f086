from .events import (
    CreateEvent,
    DeleteEvent,
    Event,
    EventType,
    UpdateEvent,
)
from .store import Store
from .index import Indexer, IndexView
from .informer import Informer

__all__ = [
    'CreateEvent',
    'DeleteEvent',
    'Event',
    'EventType',
    'IndexView',
    'Indexer',
    'Informer',
    'Store',
    'UpdateEvent',
]
