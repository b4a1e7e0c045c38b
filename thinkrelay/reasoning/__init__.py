"""
Reasoning Module

Reasoning extraction and the provider adapters that feed it.
"""

from thinkrelay.reasoning.extractor import (
    ExtractionStep,
    ReasoningExtractor,
    extract_think_content,
)

__all__ = [
    "ExtractionStep",
    "ReasoningExtractor",
    "extract_think_content",
]
