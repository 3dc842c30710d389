# -*- coding: utf-8 -*-
"""External collaborators of the pipeline and their baseline implementations

The pipeline only relies on the contracts (``typing.Protocol`` classes); any object with the
matching methods can be injected through ``Collaborators``.
"""

import attr

from .annotation import GeneAnnotationSource, TsvGeneAnnotationSource
from .estimator import BackgroundEstimator, ParameterSet, PoissonBackgroundEstimator
from .events import EventCaller, PoissonEventCaller
from .focal import (
    BenjaminiHochbergCombiner,
    CombinedFocalEvents,
    FocalMapper,
    OverlapFocalMapper,
    QValueCombiner,
)
from .segments import AggregatedSegments, BreakpointSegmentAggregator, SegmentAggregator

__author__ = "RUBIC developers"


@attr.s(auto_attribs=True, kw_only=True)
class Collaborators:
    """Bundle of the collaborators used by one ``RubicPipeline``"""

    estimator: BackgroundEstimator = attr.Factory(PoissonBackgroundEstimator)
    aggregator: SegmentAggregator = attr.Factory(BreakpointSegmentAggregator)
    event_caller: EventCaller = attr.Factory(PoissonEventCaller)
    focal_mapper: FocalMapper = attr.Factory(OverlapFocalMapper)
    q_combiner: QValueCombiner = attr.Factory(BenjaminiHochbergCombiner)
    #: Used when no gene table is available, ``None`` disables the fallback
    gene_source: GeneAnnotationSource | None = None


__all__ = [
    "AggregatedSegments",
    "BackgroundEstimator",
    "BenjaminiHochbergCombiner",
    "BreakpointSegmentAggregator",
    "Collaborators",
    "CombinedFocalEvents",
    "EventCaller",
    "FocalMapper",
    "GeneAnnotationSource",
    "OverlapFocalMapper",
    "ParameterSet",
    "PoissonBackgroundEstimator",
    "PoissonEventCaller",
    "QValueCombiner",
    "SegmentAggregator",
    "TsvGeneAnnotationSource",
]
