"""Pipelines: sample ingestion, rollups and the updater service."""

from .rollup_pipeline import RollupPipeline, RollupPipelineConfig, RollupPipelineResult, create_rollup_pipeline
from .sample_pipeline import SampleRecorder
from .updater import MeterUpdater, create_updater

__all__ = [
    "MeterUpdater",
    "RollupPipeline",
    "RollupPipelineConfig",
    "RollupPipelineResult",
    "SampleRecorder",
    "create_rollup_pipeline",
    "create_updater",
]
