# -*- coding: utf-8 -*-
"""Aggregation of per-sample segments into cross-sample candidate segments"""

import logging
import typing

import attr
import numpy as np

from ..matrix import chromosome_bounds
from ..regions import GAIN, LOSS, Segment
from .estimator import break_counts

__author__ = "RUBIC developers"

logger = logging.getLogger(__name__)


@attr.s(auto_attribs=True, kw_only=True)
class AggregatedSegments:
    """Candidate segments of both directions with their normalization constants"""

    segments_p: list
    e_p: float
    segments_n: list
    e_n: float


class SegmentAggregator(typing.Protocol):
    def aggregate(
        self, cna_matrix, markers_agr, amp_level, del_level, params_p, params_n, fdr
    ) -> AggregatedSegments:
        """Return the candidate segments of both directions"""


class BreakpointSegmentAggregator:
    """Cut each chromosome at every marker where any sample breaks

    The pieces in which at least one sample is beyond the calling threshold become candidate
    segments.  The normalization constant is the number of boundaries tested, i.e. twice the
    number of candidates.
    """

    def _aggregate_one(self, cna_matrix, markers_agr, level, direction):
        left, right, state = break_counts(cna_matrix, markers_agr, level, direction)
        covered = state.any(axis=1)
        chromosomes = markers_agr["Chromosome"].astype(str).to_numpy()
        positions = markers_agr["Position"].to_numpy()
        segments = []
        for begin, end in chromosome_bounds(markers_agr):
            cuts = {begin, end}
            cuts.update((np.flatnonzero(left[begin:end]) + begin).tolist())
            cuts.update((np.flatnonzero(right[begin:end]) + begin + 1).tolist())
            cuts = sorted(c for c in cuts if begin <= c <= end)
            for a, b in zip(cuts[:-1], cuts[1:]):
                if not covered[a:b].any():
                    continue
                segments.append(
                    Segment(
                        chromosome=chromosomes[a],
                        loc_start=int(positions[a]),
                        loc_end=int(positions[b - 1]),
                        start_index=a,
                        end_index=b - 1,
                        direction=direction,
                        left_step=float(left[a]),
                        right_step=float(right[b - 1]),
                    )
                )
        return segments, float(2 * len(segments))

    def aggregate(self, cna_matrix, markers_agr, amp_level, del_level, params_p, params_n, fdr):
        segments_p, e_p = self._aggregate_one(cna_matrix, markers_agr, params_p.level, GAIN)
        segments_n, e_n = self._aggregate_one(cna_matrix, markers_agr, params_n.level, LOSS)
        logger.info(
            "Aggregated %d gain and %d loss candidate segments", len(segments_p), len(segments_n)
        )
        return AggregatedSegments(segments_p=segments_p, e_p=e_p, segments_n=segments_n, e_n=e_n)
