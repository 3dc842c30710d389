# -*- coding: utf-8 -*-
"""Reductions of the mapped location table used by the numeric stages

Both the copy-number matrix and the aggregated marker table are pure functions of the mapped
location table.  The pipeline caches them but never persists them.
"""

import numpy as np
import pandas as pd

__author__ = "RUBIC developers"

#: Columns of the aggregated marker table
MARKERS_AGR_COLUMNS = ("Name", "Chromosome", "Position", "AbsPosition", "N")


def _marker_index(frame):
    """Return a ``MultiIndex`` of (chromosome ordinal, position) for the rows of ``frame``"""
    return pd.MultiIndex.from_arrays(
        [frame["Chromosome"].cat.codes.to_numpy(), frame["Position"].to_numpy()]
    )


def aggregate_markers(map_loc):
    """Reduce ``map_loc`` to one row per marker, in genomic order

    ``AbsPosition`` is the position on the concatenated genome (chromosomes are laid out
    in their ordinal order, each spanning up to its last marker) and ``N`` the number of
    samples covering the marker.
    """
    agr = (
        map_loc.groupby(["Chromosome", "Position"], observed=True, sort=True)
        .agg(Name=("Name", "first"), N=("Sample", "nunique"))
        .reset_index()
    )
    codes = agr["Chromosome"].cat.codes.to_numpy()
    spans = np.zeros(len(agr["Chromosome"].cat.categories), dtype=np.int64)
    if len(agr):
        np.maximum.at(spans, codes, agr["Position"].to_numpy())
    offsets = np.concatenate([[0], np.cumsum(spans)[:-1]])
    agr["AbsPosition"] = agr["Position"].to_numpy() + offsets[codes]
    agr["N"] = agr["N"].astype(np.int64)
    return agr.loc[:, list(MARKERS_AGR_COLUMNS)]


def extract_matrix(map_loc, samples):
    """Return the markers x samples copy-number matrix of ``map_loc``

    Rows follow the order of ``aggregate_markers()``, columns the order of ``samples``.
    Markers not covered in a sample are ``0.0``.
    """
    markers = _marker_index(map_loc).unique().sort_values()
    matrix = np.zeros((len(markers), len(samples)), dtype=np.float64)
    cols = pd.Index(samples).get_indexer(map_loc["Sample"])
    rows = markers.get_indexer(_marker_index(map_loc))
    keep = cols >= 0
    matrix[rows[keep], cols[keep]] = map_loc["LogRatio"].to_numpy()[keep]
    return matrix


def max_chrom_length(map_loc):
    """Return the largest span covered by markers on a single chromosome"""
    if len(map_loc) == 0:
        return 0
    spans = map_loc.groupby("Chromosome", observed=True)["Position"].agg(["min", "max"])
    return int((spans["max"] - spans["min"] + 1).max())


def chromosome_bounds(markers_agr):
    """Return list of ``(first_row, last_row + 1)`` per chromosome of ``markers_agr``"""
    codes = markers_agr["Chromosome"].cat.codes.to_numpy()
    if len(codes) == 0:
        return []
    breaks = np.flatnonzero(np.diff(codes)) + 1
    starts = np.concatenate([[0], breaks])
    ends = np.concatenate([breaks, [len(codes)]])
    return list(zip(starts.tolist(), ends.tolist()))
