# -*- coding: utf-8 -*-
"""Mapping of markers onto the segments of each sample

The result, the mapped location table, has one row per covered (sample, marker) pair and
carries the log ratio of the (possibly merged) segment owning the marker.  It is the
substrate of all numeric stages of the pipeline.
"""

import logging

import numpy as np
import pandas as pd

from .exceptions import InsufficientCoverageError
from .utils import is_missing, listify

__author__ = "RUBIC developers"

#: Columns of the mapped location table
MAP_LOC_COLUMNS = ("Sample", "Chromosome", "Position", "Name", "Segment", "LogRatio")

logger = logging.getLogger(__name__)


class SegmentGroup:
    """Run of adjacent input segments treated as a single segment"""

    def __init__(self, members, markers, log_ratio):
        #: Indices of the input segments forming this group, in genomic order
        self.members = list(members)
        #: Number of markers owned by the group
        self.markers = markers
        #: Marker-weighted mean log ratio
        self.log_ratio = log_ratio

    def merged(self, other):
        """Return a new group joining ``self`` with ``other``"""
        if self.members[0] < other.members[0]:
            members = self.members + other.members
        else:
            members = other.members + self.members
        markers = self.markers + other.markers
        log_ratio = (self.log_ratio * self.markers + other.log_ratio * other.markers) / markers
        return SegmentGroup(members, markers, log_ratio)

    def __repr__(self):
        return "SegmentGroup({!r}, {!r}, {!r})".format(self.members, self.markers, self.log_ratio)


def merge_small_segments(groups, min_seg_markers):
    """Merge groups with fewer than ``min_seg_markers`` markers into a neighbour

    ``groups`` are the segments of one chromosome of one sample in genomic order.  An
    under-sized group is merged forward, or backward when it is the last group of the
    chromosome.  This is repeated until all groups are large enough or one group is left.
    """
    groups = list(groups)
    while len(groups) > 1:
        small = next((i for i, g in enumerate(groups) if g.markers < min_seg_markers), None)
        if small is None:
            break
        other = small + 1 if small + 1 < len(groups) else small - 1
        lo, hi = min(small, other), max(small, other)
        groups[lo : hi + 1] = [groups[lo].merged(groups[hi])]
    return groups


def within_bounds(value, min_mean=None, max_mean=None):
    """Return whether ``value`` lies in ``[min_mean, max_mean]``, unset bounds are open"""
    if not is_missing(min_mean) and value < min_mean:
        return False
    if not is_missing(max_mean) and value > max_mean:
        return False
    return True


@listify
def _map_chromosome(sample, chrom, segs, positions, names, min_seg_markers, min_mean, max_mean):
    """Yield ``(positions, names, log_ratio)`` for each kept segment of one sample chromosome"""
    starts = segs["Start"].to_numpy()
    ends = segs["End"].to_numpy()
    idx = np.searchsorted(starts, positions, side="right") - 1
    covered = (idx >= 0) & (positions <= ends[np.clip(idx, 0, None)])
    owner = np.where(covered, idx, -1)
    counts = np.bincount(owner[covered], minlength=len(starts))
    log_ratios = segs["LogRatio"].to_numpy()

    groups = [
        SegmentGroup([i], int(counts[i]), float(log_ratios[i]))
        for i in range(len(starts))
        if counts[i] > 0
    ]
    merged = merge_small_segments(groups, min_seg_markers)
    if len(merged) < len(groups):
        logger.debug(
            "Sample %s chromosome %s: merged %d into %d segments",
            sample,
            chrom,
            len(groups),
            len(merged),
        )
    for group in merged:
        if not within_bounds(group.log_ratio, min_mean, max_mean):
            continue
        mask = np.isin(owner, group.members)
        yield positions[mask], names[mask], group.log_ratio


def map_locations(segments, markers, samples, min_seg_markers=1, min_mean=None, max_mean=None):
    """Build the mapped location table from normalized ``segments`` and ``markers``

    Markers outside of all segments of a sample are excluded for that sample, segments with
    fewer than ``min_seg_markers`` markers are merged with an adjacent segment and segments
    with a mean log ratio outside of ``[min_mean, max_mean]`` are dropped.
    """
    chrom_dtype = markers["Chromosome"].dtype
    by_chrom = {
        chrom: (group["Position"].to_numpy(), group["Name"].to_numpy())
        for chrom, group in markers.groupby("Chromosome", observed=True, sort=True)
    }
    frames = []
    segment_id = 0
    for sample in samples:
        sample_segs = segments[segments["Sample"] == sample]
        for chrom, segs in sample_segs.groupby("Chromosome", observed=True, sort=True):
            if chrom not in by_chrom:
                continue
            positions, names = by_chrom[chrom]
            segs = segs.sort_values("Start", kind="stable")
            for seg_positions, seg_names, log_ratio in _map_chromosome(
                sample, chrom, segs, positions, names, min_seg_markers, min_mean, max_mean
            ):
                frames.append(
                    pd.DataFrame(
                        {
                            "Sample": sample,
                            "Chromosome": pd.Categorical(
                                [chrom] * len(seg_positions), dtype=chrom_dtype
                            ),
                            "Position": seg_positions,
                            "Name": seg_names,
                            "Segment": segment_id,
                            "LogRatio": log_ratio,
                        }
                    )
                )
                segment_id += 1
    if not frames:
        result = pd.DataFrame({c: [] for c in MAP_LOC_COLUMNS})
        result["Chromosome"] = pd.Categorical([], dtype=chrom_dtype)
        return result
    result = pd.concat(frames, ignore_index=True)
    logger.info(
        "Mapped %d markers onto %d segments of %d samples",
        result[["Chromosome", "Position"]].drop_duplicates().shape[0],
        segment_id,
        len(samples),
    )
    return result


def ensure_min_probes(map_loc, markers, min_probes):
    """Raise ``InsufficientCoverageError`` if fewer than ``min_probes`` markers are mapped"""
    mapped = map_loc[["Chromosome", "Position"]].drop_duplicates().shape[0]
    if mapped < min_probes:
        raise InsufficientCoverageError(
            "Only {} of {} markers could be mapped onto segments, at least {} are required".format(
                mapped, len(markers), min_probes
            )
        )
    return map_loc
