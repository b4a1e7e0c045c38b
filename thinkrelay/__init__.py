"""
thinkrelay: Two-Leg Reasoning Gateway

Composes a reasoning provider and a target provider into one response:
- Reasoning leg: a reasoning model analyses the conversation
- Target leg: a second model answers, conditioned on that analysis
- Streaming relay: both legs stitched into one ordered event stream
"""

__version__ = "0.1.0"
