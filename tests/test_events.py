"""Tests for event decoding."""

import pytest
from textual import events
from textual.geometry import Size

from sysdash.errors import InputDecodeError
from sysdash.events import FocusGained, FocusLost, Key, Paste, Resize, decode_input


def test_decode_key():
    """Test key presses keep key name and character."""
    assert decode_input(events.Key("q", "q")) == Key(key="q", character="q")


def test_decode_key_without_character():
    """Test special keys have no character."""
    assert decode_input(events.Key("ctrl+c", None)) == Key(key="ctrl+c", character=None)


def test_decode_resize():
    """Test resize carries columns and rows."""
    raw = events.Resize(Size(120, 40), Size(120, 40))
    assert decode_input(raw) == Resize(cols=120, rows=40)


def test_decode_paste():
    """Test paste keeps the pasted text."""
    assert decode_input(events.Paste("hello world")) == Paste(text="hello world")


def test_decode_focus():
    """Test focus changes map to FocusGained and FocusLost."""
    assert decode_input(events.AppFocus()) == FocusGained()
    assert decode_input(events.AppBlur()) == FocusLost()


def test_decode_unsupported_event():
    """Test events that are not terminal input fail to decode."""
    with pytest.raises(InputDecodeError, match="Mount"):
        decode_input(events.Mount())
