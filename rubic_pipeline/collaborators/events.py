# -*- coding: utf-8 -*-
"""Calling of recurrent events against the background model"""

import logging
import typing

import numpy as np
from scipy import stats

from ..regions import GAIN, Break, CalledEvent

__author__ = "RUBIC developers"

#: Smallest p-value represented, keeps -log10 values finite
MIN_PVALUE = 1e-300

logger = logging.getLogger(__name__)


class EventCaller(typing.Protocol):
    def call(
        self, cna_matrix, amp_level, del_level, segments, params, fdr, e, direction
    ) -> list[CalledEvent]:
        """Return the events called among ``segments`` in ``direction``"""


def to_log10(pvalues):
    """Return -log10 of ``pvalues``"""
    return -np.log10(np.clip(np.asarray(pvalues, dtype=np.float64), MIN_PVALUE, 1.0))


def from_log10(scores):
    """Return the p-values of -log10 ``scores``"""
    return np.power(10.0, -np.asarray(scores, dtype=np.float64))


def benjamini_hochberg(pvalues, m=None):
    """Return Benjamini-Hochberg adjusted ``pvalues``

    ``m`` is the number of hypotheses tested, defaults to the number of p-values.
    """
    pvalues = np.asarray(pvalues, dtype=np.float64)
    n = len(pvalues)
    if n == 0:
        return pvalues
    m = max(n, int(m or n))
    order = np.argsort(pvalues)
    ranked = pvalues[order] * m / np.arange(1, n + 1)
    ranked = np.minimum.accumulate(ranked[::-1])[::-1]
    result = np.empty(n, dtype=np.float64)
    result[order] = np.clip(ranked, 0.0, 1.0)
    return result


class PoissonEventCaller:
    """Test both boundaries of each candidate segment for recurrence

    The number of samples breaking at a boundary is compared to the Poisson background of
    the direction.  A segment is called when both boundaries pass the FDR after
    Benjamini-Hochberg adjustment over ``e`` hypotheses.
    """

    def call(self, cna_matrix, amp_level, del_level, segments, params, fdr, e, direction):
        if not segments:
            return []
        counts = np.array([[s.left_step, s.right_step] for s in segments], dtype=np.float64)
        if params.mu > 0:
            pvalues = stats.poisson.sf(counts - 1, params.mu)
        else:
            pvalues = np.where(counts > 0, MIN_PVALUE, 1.0)
        qvalues = benjamini_hochberg(pvalues.ravel(), m=e).reshape(pvalues.shape)
        called = []
        for segment, p, q in zip(segments, pvalues, qvalues):
            if max(q) > fdr:
                continue
            called.append(
                CalledEvent(
                    chromosome=segment.chromosome,
                    loc_start=segment.loc_start,
                    loc_end=segment.loc_end,
                    start_index=segment.start_index,
                    end_index=segment.end_index,
                    direction=direction,
                    l=Break(p=float(to_log10(p[0])), q=float(to_log10(q[0]))),
                    r=Break(p=float(to_log10(p[1])), q=float(to_log10(q[1]))),
                )
            )
        logger.info(
            "Called %d %s events out of %d segments",
            len(called),
            "gain" if direction == GAIN else "loss",
            len(segments),
        )
        return called
