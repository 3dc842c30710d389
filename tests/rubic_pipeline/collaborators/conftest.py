# -*- coding: utf-8 -*-
"""Fixtures for the tests of the baseline collaborators"""

import pytest

from rubic_pipeline.location import map_locations
from rubic_pipeline.matrix import aggregate_markers, extract_matrix, max_chrom_length


@pytest.fixture
def map_loc(normalized_inputs):
    """Return mapped location table of the synthetic data set"""
    return map_locations(
        normalized_inputs.segments, normalized_inputs.markers, normalized_inputs.samples
    )


@pytest.fixture
def cna_matrix(map_loc, normalized_inputs):
    """Return copy number matrix of the synthetic data set"""
    return extract_matrix(map_loc, normalized_inputs.samples)


@pytest.fixture
def markers_agr(map_loc):
    """Return aggregated marker table of the synthetic data set"""
    return aggregate_markers(map_loc)


@pytest.fixture
def max_chrom_len(map_loc):
    return max_chrom_length(map_loc)
