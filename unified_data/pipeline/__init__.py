"""Batch orchestration."""

from .unified_pipeline import (
    PipelineOptions,
    PipelineResult,
    UnifiedPipeline,
    process_with_pipeline,
)

__all__ = ["PipelineOptions", "PipelineResult", "UnifiedPipeline", "process_with_pipeline"]
