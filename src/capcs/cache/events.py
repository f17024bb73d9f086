import dataclasses
import enum
import typing


T = typing.TypeVar('T')


class EventType(enum.Enum):
    CREATED = 'created'
    UPDATED = 'updated'
    DELETED = 'deleted'


class Event:
    type: typing.ClassVar[EventType]

    def __init_subclass__(cls, **kwargs):
        """Make subclasses available in the class namespace.
        Allows to use patterns like the following without having
        to import all the event classes.

        ```
        match type(event):
            case event.CreateEvent:
                pass
            case event.UpdateEvent:
                pass
        ```
        """
        super().__init_subclass__(**kwargs)
        setattr(Event, cls.__name__, cls)

    @property
    def latest(self):
        """The most recent snapshot of the object carried by this event."""
        raise NotImplementedError()

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.latest!r}>'


@dataclasses.dataclass(frozen=True, repr=False)
class CreateEvent(Event, typing.Generic[T]):
    type: typing.ClassVar[EventType] = EventType.CREATED
    obj: T

    @property
    def latest(self) -> T:
        return self.obj


@dataclasses.dataclass(frozen=True, repr=False)
class UpdateEvent(Event, typing.Generic[T]):
    type: typing.ClassVar[EventType] = EventType.UPDATED
    old: T
    new: T

    @property
    def latest(self) -> T:
        return self.new

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.old!r} {self.new!r}>'


@dataclasses.dataclass(frozen=True, repr=False)
class DeleteEvent(Event, typing.Generic[T]):
    type: typing.ClassVar[EventType] = EventType.DELETED
    obj: T

    @property
    def latest(self) -> T:
        return self.obj
