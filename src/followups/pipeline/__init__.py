"""
Follow-up pipeline: detect -> score -> draft -> notify.
"""

from .options import PipelineOptions
from .detect import DetectionStage
from .score import ScoringStage, sort_by_urgency
from .draft import DraftingStage
from .notify import NotificationStage
from .orchestrator import FollowUpPipeline, build_pipeline

__all__ = [
    "PipelineOptions",
    "DetectionStage",
    "ScoringStage",
    "sort_by_urgency",
    "DraftingStage",
    "NotificationStage",
    "FollowUpPipeline",
    "build_pipeline",
]
