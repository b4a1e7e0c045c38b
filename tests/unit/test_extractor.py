"""
Unit Tests - Reasoning Extraction

Tests for the incremental <think> extractor.
"""

from thinkrelay.reasoning.extractor import (
    ExtractorPhase,
    ReasoningExtractor,
    extract_think_content,
)


def run(*deltas: str) -> tuple[str, str, str]:
    """Feed deltas, return (forwarded reasoning, residual, accumulated)."""
    extractor = ReasoningExtractor()
    reasoning, residual = "", ""
    for delta in deltas:
        step = extractor.ingest(delta)
        reasoning += step.reasoning
        residual += step.residual
    tail = extractor.finish()
    return reasoning + tail.reasoning, residual + tail.residual, extractor.reasoning


class TestReasoningExtractor:
    """Tests for ReasoningExtractor."""

    def test_start_marker_split_across_increments(self):
        reasoning, residual, accumulated = run("<thi", "nk>A</think>B")
        assert reasoning == "A"
        assert residual == "B"
        assert accumulated == "A"

    def test_no_markers_is_all_residual(self):
        reasoning, residual, accumulated = run("plain ", "answer")
        assert reasoning == ""
        assert residual == "plain answer"
        assert accumulated == ""

    def test_text_before_span_is_residual(self):
        _, residual, accumulated = run("pre<think>mid</think>post")
        assert residual == "prepost"
        assert accumulated == "mid"

    def test_accumulated_span_is_trimmed(self):
        _, _, accumulated = run("<think>\n  step one  \n</think>")
        assert accumulated == "step one"

    def test_only_first_span_is_reasoning(self):
        _, residual, accumulated = run("<think>a</think>x<think>b</think>")
        assert accumulated == "a"
        assert residual == "x<think>b</think>"

    def test_unterminated_span_is_reasoning(self):
        extractor = ReasoningExtractor()
        extractor.ingest("<think>cut off")
        tail = extractor.finish()

        assert tail.span == "cut off"
        assert extractor.reasoning == "cut off"
        assert extractor.phase == ExtractorPhase.CLOSED

    def test_held_partial_start_marker_released_at_finish(self):
        _, residual, _ = run("answer <thi")
        assert residual == "answer <thi"

    def test_partial_end_marker_is_not_forwarded(self):
        extractor = ReasoningExtractor()
        step = extractor.ingest("<think>abc</thi")
        assert step.reasoning == "abc"

        step = extractor.ingest("nk>")
        assert step.reasoning == ""
        assert step.span == "abc"

    def test_field_reasoning_accumulates(self):
        extractor = ReasoningExtractor()
        assert extractor.ingest_field("one ") == "one "
        extractor.ingest_field("two")
        assert extractor.reasoning == "one two"

    def test_lossless_for_every_split(self):
        """Splitting anywhere, inside markers included, changes nothing."""
        text = "intro<think>first step, then second</think>the answer"

        for cut in range(len(text) + 1):
            reasoning, residual, accumulated = run(text[:cut], text[cut:])
            assert reasoning == "first step, then second", cut
            assert residual == "introthe answer", cut
            assert accumulated == "first step, then second", cut

    def test_lossless_for_single_characters(self):
        text = "<think>abc</think>xyz"
        reasoning, residual, _ = run(*text)
        assert (reasoning, residual) == ("abc", "xyz")


class TestExtractThinkContent:
    """Tests for the one-shot helper."""

    def test_extracts_and_cleans(self):
        assert extract_think_content("<think> why </think> answer") == ("why", "answer")

    def test_missing_pair(self):
        assert extract_think_content("no tags") is None
        assert extract_think_content("<think>open only") is None
