"""
Reasoning Extraction

Separates reasoning text from ordinary content in a reasoning model's
output. Two delivery mechanisms exist:

- a dedicated field (`reasoning_content`) carrying pure reasoning, and
- a `<think>...</think>` span embedded in ordinary content, whose
  markers may be split across stream increments at any byte.

ReasoningExtractor is an explicit state machine over a pending buffer
and an accumulator, so it can be exercised without any provider.
"""

from dataclasses import dataclass
from enum import Enum

THINK_START = "<think>"
THINK_END = "</think>"


class ExtractorPhase(str, Enum):
    """Where the extractor stands relative to the marker pair."""

    BEFORE = "before"  # no start marker seen yet
    INSIDE = "inside"  # start marker seen, waiting for the end marker
    CLOSED = "closed"  # one span consumed; later markers are plain text


@dataclass
class ExtractionStep:
    """
    What one increment produced.

    Attributes:
        reasoning: newly visible reasoning text, markers stripped
        residual: text that is not reasoning
        span: the completed span (trimmed) when this step closed it
    """

    reasoning: str = ""
    residual: str = ""
    span: str | None = None


def _partial_marker_length(text: str, marker: str) -> int:
    """Length of the longest suffix of `text` that is a proper prefix of `marker`."""
    for size in range(min(len(marker) - 1, len(text)), 0, -1):
        if text.endswith(marker[:size]):
            return size
    return 0


class ReasoningExtractor:
    """
    Incremental extractor for one reasoning stream.

    Feed content increments with ingest() and dedicated-field reasoning
    with ingest_field(); call finish() once the stream ends. Only the
    first complete marker pair is treated as reasoning.
    """

    def __init__(self, start_marker: str = THINK_START, end_marker: str = THINK_END):
        self.start_marker = start_marker
        self.end_marker = end_marker
        self.pending_buffer = ""
        self.reasoning_accumulator = ""
        self.phase = ExtractorPhase.BEFORE
        # How much of pending_buffer has already been released as reasoning
        self._released = 0

    @property
    def reasoning(self) -> str:
        return self.reasoning_accumulator

    def ingest_field(self, text: str) -> str:
        """Accept reasoning delivered in a dedicated field. Never marker-scanned."""
        self.reasoning_accumulator += text
        return text

    def ingest(self, delta: str) -> ExtractionStep:
        """Accept one content increment."""
        step = ExtractionStep()
        self.pending_buffer += delta

        if self.phase == ExtractorPhase.CLOSED:
            step.residual = self.pending_buffer
            self.pending_buffer = ""
            return step

        if self.phase == ExtractorPhase.BEFORE:
            index = self.pending_buffer.find(self.start_marker)
            if index == -1:
                held = _partial_marker_length(self.pending_buffer, self.start_marker)
                cut = len(self.pending_buffer) - held
                step.residual = self.pending_buffer[:cut]
                self.pending_buffer = self.pending_buffer[cut:]
                return step

            step.residual = self.pending_buffer[:index]
            self.pending_buffer = self.pending_buffer[index + len(self.start_marker) :]
            self.phase = ExtractorPhase.INSIDE
            self._released = 0

        index = self.pending_buffer.find(self.end_marker)
        if index == -1:
            held = _partial_marker_length(self.pending_buffer, self.end_marker)
            visible = len(self.pending_buffer) - held
            step.reasoning = self.pending_buffer[self._released : visible]
            self._released = visible
            return step

        step.reasoning = self.pending_buffer[self._released : index]
        step.residual += self.pending_buffer[index + len(self.end_marker) :]
        step.span = self._close(self.pending_buffer[:index])
        return step

    def finish(self) -> ExtractionStep:
        """
        Flush at end of stream.

        A held partial start marker turns out to be ordinary text. An
        unterminated span is still reasoning: a model cut off by its
        token limit has reasoned, it just never closed the tag.
        """
        step = ExtractionStep()

        if self.phase == ExtractorPhase.BEFORE:
            step.residual = self.pending_buffer
            self.pending_buffer = ""
        elif self.phase == ExtractorPhase.INSIDE:
            step.reasoning = self.pending_buffer[self._released :]
            step.span = self._close(self.pending_buffer)

        return step

    def _close(self, raw_span: str) -> str:
        span = raw_span.strip()
        self.reasoning_accumulator += span
        self.pending_buffer = ""
        self._released = 0
        self.phase = ExtractorPhase.CLOSED
        return span


def extract_think_content(content: str) -> tuple[str, str] | None:
    """
    One-shot extraction for a complete response body.

    Returns (reasoning, content without the span), both trimmed, or None
    when no complete marker pair is present.
    """
    start = content.find(THINK_START)
    if start == -1:
        return None

    end = content.find(THINK_END, start + len(THINK_START))
    if end == -1:
        return None

    reasoning = content[start + len(THINK_START) : end].strip()
    cleaned = (content[:start] + content[end + len(THINK_END) :]).strip()
    return reasoning, cleaned
