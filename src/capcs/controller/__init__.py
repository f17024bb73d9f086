from .request import (
    Request,
    request_for_object,
    request_for_owner,
    requests_from_event_for_object,
    requests_from_event_for_owner,
)

from .result import (
    Done,
    Failed,
    RequeueAfter,
    Result,
)

from .controller import (
    Controller,
)

__all__ = [
    'Controller',
    'Done',
    'Failed',
    'Request',
    'RequeueAfter',
    'Result',
    'request_for_object',
    'request_for_owner',
    'requests_from_event_for_object',
    'requests_from_event_for_owner',
]
