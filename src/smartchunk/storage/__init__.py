"""
Persistence of chunk records.
"""

from .jsonl_sink import JsonlSink

__all__ = ["JsonlSink"]
