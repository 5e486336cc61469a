"""
Unit tests for the event stream codec.
"""

import json

import pytest

from app.schemas.chat import StreamEvent
from app.shared.sse import (
    DATA_PREFIX,
    decode_line,
    done_event,
    encode_event,
    error_event,
    fragment_event,
)


class TestEncoding:
    """Test cases for writing events."""

    def test_fragment_event_format(self):
        """Test a fragment is one data line followed by a blank line."""
        assert fragment_event("Hi") == 'data: {"content": "Hi"}\n\n'

    def test_done_event_format(self):
        assert done_event() == 'data: {"done": true}\n\n'

    def test_error_event_format(self):
        assert error_event("Failed to send message") == 'data: {"error": "Failed to send message"}\n\n'

    def test_non_ascii_content_is_kept_verbatim(self):
        """Test unicode fragments are not escaped."""
        event = fragment_event("héllo 👋")
        assert "héllo 👋" in event
        assert json.loads(event[len(DATA_PREFIX) :])["content"] == "héllo 👋"

    def test_encode_stream_event_drops_unset_fields(self):
        assert encode_event(StreamEvent(done=True)) == done_event()

    def test_newlines_in_content_stay_on_one_line(self):
        """Test embedded newlines are JSON-escaped so the frame stays one line."""
        event = fragment_event("line one\nline two")
        assert event.count("\n") == 2
        assert decode_line(event.splitlines()[0]).content == "line one\nline two"


class TestDecoding:
    """Test cases for reading events back."""

    def test_decode_fragment(self):
        event = decode_line('data: {"content": " doing"}')
        assert event.is_fragment
        assert event.content == " doing"
        assert not event.is_done
        assert not event.is_error

    def test_decode_done(self):
        event = decode_line('data: {"done": true}')
        assert event.is_done
        assert not event.is_fragment

    def test_decode_error(self):
        event = decode_line('data: {"error": "Failed to send message"}')
        assert event.is_error
        assert event.error == "Failed to send message"

    def test_decode_strips_trailing_line_break(self):
        assert decode_line('data: {"content": "x"}\r\n').content == "x"

    def test_empty_content_is_still_a_fragment(self):
        assert decode_line('data: {"content": ""}').is_fragment

    @pytest.mark.parametrize("line", ["", ": keep-alive", "event: message", "id: 4", "data:{}"])
    def test_lines_without_payload_are_ignored(self, line):
        """Test non-data lines decode to nothing."""
        assert decode_line(line) is None

    @pytest.mark.parametrize("line", ["data: {not json", "data: [1, 2]", 'data: "text"', 'data: {"content": 5}'])
    def test_malformed_data_lines_raise_value_error(self, line):
        with pytest.raises(ValueError):
            decode_line(line)
