"""
Service layer orchestrators for the chunking pipeline.
"""

from .pipeline import ChunkPipeline, FileOutcome, PipelineCallbacks, PipelineState, RunSummary

__all__ = ["ChunkPipeline", "FileOutcome", "PipelineCallbacks", "PipelineState", "RunSummary"]
