# -*- coding: utf-8 -*-
"""Genomic regions passed between the pipeline stages"""

import attr

__author__ = "RUBIC developers"

#: Direction flag of amplifications
GAIN = +1
#: Direction flag of deletions
LOSS = -1


@attr.s(auto_attribs=True, kw_only=True)
class Break:
    """Significance of one region boundary, as -log10 values"""

    #: -log10 p-value
    p: float
    #: -log10 q-value, ``None`` before FDR adjustment
    q: float | None = None


@attr.s(auto_attribs=True, kw_only=True)
class Region:
    """Genomic region with closed coordinates, spanning the marker rows
    ``start_index..end_index`` of the aggregated marker table"""

    chromosome: str
    loc_start: int
    loc_end: int
    start_index: int
    end_index: int
    direction: int = GAIN

    @property
    def length(self):
        """Return length of the footprint in bases"""
        return self.loc_end - self.loc_start + 1


@attr.s(auto_attribs=True, kw_only=True)
class Segment(Region):
    """Candidate recurrent segment with the aggregated step heights at its boundaries"""

    left_step: float = 0.0
    right_step: float = 0.0


@attr.s(auto_attribs=True, kw_only=True)
class CalledEvent(Region):
    """Recurrent event called against the background model"""

    l: Break = attr.Factory(lambda: Break(p=0.0))  # noqa: E741
    r: Break = attr.Factory(lambda: Break(p=0.0))
    percentile: float | None = None


@attr.s(auto_attribs=True, kw_only=True)
class FocalEvent(CalledEvent):
    """Focal event with the genes it overlaps, in the order they were attached"""

    gene_symbols: list = attr.Factory(list)
    ensembl_ids: list = attr.Factory(list)


def sort_regions_on_genome(regions, chromosome_order):
    """Return ``regions`` sorted by chromosome ordinal, then start and end"""
    return sorted(
        regions,
        key=lambda r: (chromosome_order.ordinal(r.chromosome), r.loc_start, r.loc_end),
    )
