import dataclasses
import typing


@dataclasses.dataclass(frozen=True)
class Done:
    """The request is reconciled, nothing left to do until the next change."""


@dataclasses.dataclass(frozen=True)
class RequeueAfter:
    """Reconcile the request again after the given delay in seconds."""

    after: float
    reason: str = ''


@dataclasses.dataclass(frozen=True)
class Failed:
    """Reconciliation failed, retry with exponential backoff."""

    error: Exception


Result = typing.Union[Done, RequeueAfter, Failed]
