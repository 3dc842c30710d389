# -*- coding: utf-8 -*-
"""Background model of breakpoint recurrence

The contract is ``BackgroundEstimator``.  The baseline ``PoissonBackgroundEstimator`` assumes
that, in the absence of driver events, the per-sample breakpoints of the thresholded copy
number profiles fall uniformly on the markers, so the number of samples breaking at a given
marker follows a Poisson distribution with the genome-wide mean.
"""

import logging
import typing

import attr
import numpy as np

from ..matrix import chromosome_bounds
from ..regions import GAIN, LOSS

__author__ = "RUBIC developers"

logger = logging.getLogger(__name__)


@attr.s(auto_attribs=True, frozen=True, kw_only=True)
class ParameterSet:
    """Background model parameters of one amplitude direction"""

    #: ``GAIN`` or ``LOSS``
    direction: int
    #: Calling threshold of the direction (``amp_level`` or ``del_level``)
    level: float
    #: Expected number of samples breaking at a marker
    mu: float
    #: Total number of breakpoints observed in the direction
    total_breaks: int
    #: Breakpoints per sample and base of the longest chromosome
    rate_per_base: float
    n_samples: int
    n_markers: int


class BackgroundEstimator(typing.Protocol):
    def estimate(
        self, cna_matrix, markers_agr, max_chrom_len, amp_level, del_level, fdr
    ) -> tuple[ParameterSet, ParameterSet]:
        """Return the gain and the loss ``ParameterSet``"""


def above_level(cna_matrix, level, direction):
    """Return boolean markers x samples matrix of cells beyond ``level`` in ``direction``"""
    return direction * cna_matrix >= direction * level


def break_counts(cna_matrix, markers_agr, level, direction):
    """Count, per marker, the samples with a left and a right breakpoint

    A sample has a left breakpoint at a marker if it is beyond ``level`` there but not at the
    previous marker of the chromosome, a right breakpoint if it is beyond ``level`` there but
    not at the next one.  Returns ``(left, right, state)``.
    """
    state = above_level(cna_matrix, level, direction)
    left = np.zeros(state.shape[0], dtype=np.int64)
    right = np.zeros(state.shape[0], dtype=np.int64)
    for begin, end in chromosome_bounds(markers_agr):
        block = state[begin:end]
        padded = np.zeros((block.shape[0] + 2, block.shape[1]), dtype=bool)
        padded[1:-1] = block
        left[begin:end] = (block & ~padded[:-2]).sum(axis=1)
        right[begin:end] = (block & ~padded[2:]).sum(axis=1)
    return left, right, state


class PoissonBackgroundEstimator:
    """Estimate the mean per-marker breakpoint count of each direction"""

    def _estimate_one(self, cna_matrix, markers_agr, max_chrom_len, level, direction):
        left, _, _ = break_counts(cna_matrix, markers_agr, level, direction)
        n_markers, n_samples = cna_matrix.shape
        total = int(left.sum())
        mu = total / n_markers if n_markers else 0.0
        rate = total / (n_samples * max_chrom_len) if n_samples and max_chrom_len else 0.0
        return ParameterSet(
            direction=direction,
            level=level,
            mu=mu,
            total_breaks=total,
            rate_per_base=rate,
            n_samples=n_samples,
            n_markers=n_markers,
        )

    def estimate(self, cna_matrix, markers_agr, max_chrom_len, amp_level, del_level, fdr):
        params_p = self._estimate_one(cna_matrix, markers_agr, max_chrom_len, amp_level, GAIN)
        params_n = self._estimate_one(cna_matrix, markers_agr, max_chrom_len, del_level, LOSS)
        logger.debug("Background gains: %s", params_p)
        logger.debug("Background losses: %s", params_n)
        return params_p, params_n
