"""Line-oriented event stream codec.

Every event is written as one ``data: <JSON>`` line followed by a blank line.
Only ``data:`` lines carry payloads; anything else on the wire (blank
separators, comments, other field names) is ignored by the decoder.
"""

import json
from typing import Any

from app.schemas.chat import StreamEvent

DATA_PREFIX = "data: "
EVENT_STREAM_MEDIA_TYPE = "text/event-stream"

# Headers that keep proxies from buffering or caching the stream
STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(payload: StreamEvent | dict[str, Any]) -> str:
    if isinstance(payload, StreamEvent):
        payload = payload.model_dump(exclude_none=True)
    return f"{DATA_PREFIX}{json.dumps(payload, ensure_ascii=False)}\n\n"


def fragment_event(content: str) -> str:
    return encode_event({"content": content})


def done_event() -> str:
    return encode_event({"done": True})


def error_event(message: str) -> str:
    return encode_event({"error": message})


def decode_line(line: str) -> StreamEvent | None:
    """Decode one line of the stream.

    Returns ``None`` for lines that carry no event. Raises ``ValueError`` when a
    data line holds malformed JSON or an unexpected payload shape.
    """
    line = line.rstrip("\r\n")
    if not line.startswith(DATA_PREFIX):
        return None

    payload = json.loads(line[len(DATA_PREFIX):])
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected event payload: {payload!r}")
    return StreamEvent.model_validate(payload)
