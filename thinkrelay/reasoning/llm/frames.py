"""
Event-Stream Frame Decoding

Turns the raw byte stream of an upstream streaming response into
discrete Server-Sent Events frames, then into NormalizedChunk values.

Design decisions:
- Bytes are decoded incrementally, so a multi-byte character split
  across network chunks is never mangled
- Frames are separated by a blank line; anything after the last
  delimiter is carried over to the next chunk
- A "[DONE]" payload ends the sequence
- A frame that fails to parse is logged and skipped, never fatal
  (unless a consecutive-failure budget is configured)
"""

import codecs
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

from thinkrelay.core.exceptions import UpstreamParseError
from thinkrelay.core.types import NormalizedChunk
from thinkrelay.observability.logging import get_logger

logger = get_logger("thinkrelay.frames")

FRAME_DELIMITER = "\n\n"
DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class Frame:
    """One decoded event-stream frame."""

    data: str
    event: str | None = None

    @property
    def is_done(self) -> bool:
        return self.data.strip() == DONE_SENTINEL


# A frame parser maps a frame to a chunk. Returning None means the frame
# carries nothing of interest (pings, bookkeeping events). Raising
# ValueError/KeyError/TypeError/IndexError means the frame is malformed.
FrameParser = Callable[[Frame], NormalizedChunk | None]

_MALFORMED = (ValueError, KeyError, TypeError, IndexError)


def parse_frame(text: str) -> Frame | None:
    """
    Parse the text of one frame.

    Only `data:` and `event:` fields are kept; comment lines (leading
    ":") and unknown fields are ignored. Several `data:` lines are
    joined with newlines. Returns None when the frame has no data.
    """
    data_lines: list[str] = []
    event: str | None = None

    for line in text.strip().split("\n"):
        if not line or line.startswith(":"):
            continue

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if name == "data":
            data_lines.append(value)
        elif name == "event":
            event = value.strip()

    if not data_lines:
        return None

    return Frame(data="\n".join(data_lines), event=event)


class FrameDecoder:
    """
    Incremental frame splitter.

    Holds a carry-over buffer of text that does not yet form a complete
    frame. Feed it chunks in arrival order.
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received but not yet part of a complete frame."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[Frame]:
        """Append a chunk and return every frame it completes."""
        self._buffer = (self._buffer + self._utf8.decode(chunk)).replace("\r\n", "\n")

        frames: list[Frame] = []
        start = 0
        while True:
            end = self._buffer.find(FRAME_DELIMITER, start)
            if end == -1:
                break

            frame = parse_frame(self._buffer[start:end])
            start = end + len(FRAME_DELIMITER)

            if frame is not None:
                frames.append(frame)

        if start:
            self._buffer = self._buffer[start:]

        return frames

    def flush(self) -> list[Frame]:
        """Decode whatever is left once the connection has ended."""
        remainder = (self._buffer + self._utf8.decode(b"", final=True)).replace("\r\n", "\n")
        self._buffer = ""

        if not remainder.strip():
            return []

        frame = parse_frame(remainder)
        return [frame] if frame is not None else []


async def decode_frames(byte_stream: AsyncIterator[bytes]) -> AsyncIterator[Frame]:
    """
    Lazily decode frames from a byte stream.

    Stops at the "[DONE]" sentinel without yielding it.
    """
    decoder = FrameDecoder()

    async for chunk in byte_stream:
        for frame in decoder.feed(chunk):
            if frame.is_done:
                logger.debug("Received stream end marker")
                return
            yield frame

    for frame in decoder.flush():
        if frame.is_done:
            return
        yield frame


async def decode_chunks(
    byte_stream: AsyncIterator[bytes],
    parser: FrameParser,
    *,
    provider: str,
    max_consecutive_bad_frames: int | None = None,
) -> AsyncIterator[NormalizedChunk]:
    """
    Decode a byte stream straight into normalized chunks.

    Malformed frames are dropped with a warning. When
    `max_consecutive_bad_frames` is set, that many failures in a row
    abort the stream with UpstreamParseError.
    """
    bad_streak = 0

    async for frame in decode_frames(byte_stream):
        try:
            chunk = parser(frame)
        except _MALFORMED as e:
            bad_streak += 1
            logger.warning(
                "Dropped unparseable stream frame",
                provider=provider,
                event=frame.event,
                payload=frame.data[:200],
                reason=str(e),
            )
            if max_consecutive_bad_frames and bad_streak >= max_consecutive_bad_frames:
                raise UpstreamParseError(
                    f"{bad_streak} consecutive unparseable frames",
                    provider=provider,
                    context={"last_payload": frame.data[:200]},
                )
            continue

        bad_streak = 0
        if chunk is not None:
            yield chunk
