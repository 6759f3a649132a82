"""Events delivered by the scheduler and decoding of raw terminal input."""

from dataclasses import dataclass
from typing import Union

from textual import events

from sysdash.errors import InputDecodeError
from sysdash.models import Snapshot


@dataclass(slots=True, frozen=True)
class Init:
    """First event of every scheduler session."""


@dataclass(slots=True, frozen=True)
class Quit:
    """Request to leave the application."""


@dataclass(slots=True, frozen=True)
class Error:
    """Raw input could not be read or decoded."""

    message: str = ""


@dataclass(slots=True, frozen=True)
class Closed:
    """The input source has been closed."""


@dataclass(slots=True, frozen=True)
class Tick:
    """Logic timer fired."""


@dataclass(slots=True, frozen=True)
class Render:
    """Frame timer fired."""


@dataclass(slots=True, frozen=True)
class FocusGained:
    """Terminal window gained focus."""


@dataclass(slots=True, frozen=True)
class FocusLost:
    """Terminal window lost focus."""


@dataclass(slots=True, frozen=True)
class Paste:
    """Bracketed paste."""

    text: str


@dataclass(slots=True, frozen=True)
class Key:
    """Key press."""

    key: str  # Textual key name, e.g. 'q', 'ctrl+c', 'up'
    character: str | None = None


@dataclass(slots=True, frozen=True)
class Mouse:
    """Mouse button, move or scroll."""

    kind: str  # Lower-cased Textual event name, e.g. 'mousedown'
    x: int
    y: int
    button: int = 0


@dataclass(slots=True, frozen=True)
class Resize:
    """Terminal size changed."""

    cols: int
    rows: int


@dataclass(slots=True, frozen=True)
class DataUpdate:
    """A collection cycle finished."""

    snapshot: Snapshot


Event = Union[
    Init,
    Quit,
    Error,
    Closed,
    Tick,
    Render,
    FocusGained,
    FocusLost,
    Paste,
    Key,
    Mouse,
    Resize,
    DataUpdate,
]


def decode_input(raw: events.Event) -> Event:
    """
    Turn a raw Textual input event into exactly one Event.

    Raises:
        InputDecodeError: If the raw event is not a supported input event.
    """
    if isinstance(raw, events.Key):
        return Key(key=raw.key, character=raw.character)
    if isinstance(raw, events.MouseEvent):
        return Mouse(
            kind=type(raw).__name__.lower(),
            x=int(raw.x),
            y=int(raw.y),
            button=raw.button or 0,
        )
    if isinstance(raw, events.Resize):
        return Resize(cols=raw.size.width, rows=raw.size.height)
    if isinstance(raw, events.Paste):
        return Paste(text=raw.text)
    if isinstance(raw, events.AppFocus):
        return FocusGained()
    if isinstance(raw, events.AppBlur):
        return FocusLost()
    raise InputDecodeError(f"Unsupported input event: {type(raw).__name__}")
