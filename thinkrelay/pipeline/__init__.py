"""
Pipeline Module

The two-leg orchestration, response normalization and the
OpenAI-compatible request resolver.
"""

from thinkrelay.pipeline.orchestrator import EventSink, PipelineRoute, ReasoningPipeline

__all__ = [
    "EventSink",
    "PipelineRoute",
    "ReasoningPipeline",
]
