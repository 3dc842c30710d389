# -*- coding: utf-8 -*-
"""Restriction of called events to focal events, gene mapping, and joint q-values"""

import logging
import typing

import attr
import numpy as np

from ..regions import FocalEvent
from .events import benjamini_hochberg, from_log10, to_log10

__author__ = "RUBIC developers"

logger = logging.getLogger(__name__)


@attr.s(auto_attribs=True, kw_only=True)
class CombinedFocalEvents:
    """Focal events of both directions with q-values from one shared distribution"""

    focal_p_events: list
    focal_n_events: list
    #: -log10 q-values of all boundaries, gains first, left before right
    q_all: np.ndarray


class FocalMapper(typing.Protocol):
    def map(self, markers_agr, events, focal_threshold, genes) -> list[FocalEvent]:
        """Return the focal events among ``events``, annotated with overlapping genes"""


class QValueCombiner(typing.Protocol):
    def combine(self, focal_p_events, focal_n_events) -> CombinedFocalEvents:
        """Return the events with q-values computed over both directions jointly"""


class OverlapFocalMapper:
    """Keep events shorter than the focal threshold and attach all overlapping genes

    Genes are attached in the order of the gene table (sorted by chromosome and start).
    """

    def map(self, markers_agr, events, focal_threshold, genes):
        chromosomes = genes["Chromosome"].astype(str).to_numpy()
        starts = genes["Start"].to_numpy()
        ends = genes["End"].to_numpy()
        symbols = genes["Name"].to_numpy()
        ids = genes["ID"].to_numpy()
        result = []
        for event in events:
            if event.length >= focal_threshold:
                continue
            hit = (chromosomes == event.chromosome) & (starts <= event.loc_end)
            hit &= ends >= event.loc_start
            result.append(
                FocalEvent(
                    **attr.asdict(event, recurse=False),
                    gene_symbols=[str(x) for x in symbols[hit]],
                    ensembl_ids=[str(x) for x in ids[hit]],
                )
            )
        logger.debug("%d of %d events are focal", len(result), len(events))
        return result


class BenjaminiHochbergCombiner:
    """Re-adjust the boundary p-values of gains and losses as one family of hypotheses"""

    def combine(self, focal_p_events, focal_n_events):
        events = list(focal_p_events) + list(focal_n_events)
        pvalues = from_log10([x for e in events for x in (e.l.p, e.r.p)])
        q_all = to_log10(benjamini_hochberg(pvalues))
        updated = [
            attr.evolve(
                event,
                l=attr.evolve(event.l, q=float(q_all[2 * i])),
                r=attr.evolve(event.r, q=float(q_all[2 * i + 1])),
            )
            for i, event in enumerate(events)
        ]
        n_p = len(focal_p_events)
        return CombinedFocalEvents(
            focal_p_events=updated[:n_p], focal_n_events=updated[n_p:], q_all=q_all
        )
