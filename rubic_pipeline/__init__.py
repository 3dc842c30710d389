# -*- coding: utf-8 -*-

from .collaborators import Collaborators
from .models import InputOptions, RubicConfig
from .pipeline import RubicPipeline, Stage, StageResult, rubic
from .report import write_focal_events

__author__ = """RUBIC developers"""

from rubic_pipeline._version import __version__

__all__ = [
    "__version__",
    "Collaborators",
    "InputOptions",
    "RubicConfig",
    "RubicPipeline",
    "Stage",
    "StageResult",
    "rubic",
    "write_focal_events",
]
