"""Request pipeline and background burst orchestration."""

from __future__ import annotations

from bookloom.orchestrator.burst import BurstOrchestrator, BurstReport, GenerationParams, build_burst_plan
from bookloom.orchestrator.pipeline import DocumentPipeline, GenerationResponse, build_pipeline
from bookloom.orchestrator.supervisor import BackgroundSupervisor, TaskState

__all__ = [
    "BackgroundSupervisor",
    "BurstOrchestrator",
    "BurstReport",
    "DocumentPipeline",
    "GenerationParams",
    "GenerationResponse",
    "TaskState",
    "build_burst_plan",
    "build_pipeline",
]
