# -*- coding: utf-8 -*-
"""Shared fixtures for the ``rubic_pipeline`` tests

The synthetic data set has six samples on the chromosomes 1, 2, 10, and X with 20 markers
each.  Five samples carry a short gain on chromosome 2, four samples a short loss on
chromosome 10, and one sample a broad low-level gain of chromosome 1.
"""

from collections import namedtuple
from unittest.mock import MagicMock

import pandas as pd
from pyfakefs import fake_filesystem
import pytest

from rubic_pipeline.inputs import normalize_inputs
from rubic_pipeline.models import RubicConfig

#: Chromosomes of the synthetic data set, in genomic order
CHROMOSOMES = ("1", "2", "10", "X")

#: Samples of the synthetic data set
SAMPLES = ("S1", "S2", "S3", "S4", "S5", "S6")

#: Marker positions on every chromosome
POSITIONS = tuple(range(1000, 20001, 1000))


def make_segments():
    records = []
    for sample in SAMPLES:
        for chrom in CHROMOSOMES:
            if chrom == "2" and sample in SAMPLES[:5]:
                records += [
                    (sample, chrom, 1, 4999, 0.0),
                    (sample, chrom, 5000, 7000, 0.5),
                    (sample, chrom, 7001, 20000, 0.0),
                ]
            elif chrom == "10" and sample in SAMPLES[:4]:
                records += [
                    (sample, chrom, 1, 11999, 0.0),
                    (sample, chrom, 12000, 14000, -0.5),
                    (sample, chrom, 14001, 20000, 0.0),
                ]
            elif chrom == "1" and sample == "S6":
                records.append((sample, chrom, 1, 20000, 0.3))
            else:
                records.append((sample, chrom, 1, 20000, 0.0))
    return pd.DataFrame.from_records(
        records, columns=["Sample", "Chromosome", "Start", "End", "LogRatio"]
    )


def make_markers():
    records = [
        ("m{}_{}".format(chrom, pos), chrom, pos) for chrom in CHROMOSOMES for pos in POSITIONS
    ]
    return pd.DataFrame.from_records(records, columns=["Name", "Chromosome", "Position"])


def make_genes():
    return pd.DataFrame.from_records(
        [
            ("ENSG00000000001", "GENE_A", "2", 5500, 6500),
            ("ENSG00000000002", "GENE_B", "2", 15000, 16000),
            ("ENSG00000000003", "GENE_C", "10", 13000, 13500),
            ("ENSG00000000004", "GENE_D", "1", 100, 900),
            ("ENSG00000000005", "GENE_E", "Y", 100, 900),
        ],
        columns=["ID", "Name", "Chromosome", "Start", "End"],
    )


@pytest.fixture
def segments_table():
    """Return the segmented copy number table of the synthetic data set"""
    return make_segments()


@pytest.fixture
def markers_table():
    """Return the markers table of the synthetic data set"""
    return make_markers()


@pytest.fixture
def genes_table():
    """Return a gene table, including one gene on a chromosome without data"""
    return make_genes()


@pytest.fixture
def config():
    """Return configuration suitable for the small synthetic data set"""
    return RubicConfig(fdr=0.05, min_probes=10)


@pytest.fixture
def normalized_inputs(segments_table, markers_table, genes_table, config):
    """Return the normalized synthetic inputs"""
    return normalize_inputs(
        segments_table, markers_table, genes=genes_table, options=config.input
    )


@pytest.fixture
def input_files(tmp_path, segments_table, markers_table, genes_table):
    """Write the synthetic data set to TSV files, return ``namedtuple`` with their paths

    The segments file has the usual six columns, with the number of markers in the fifth.
    """
    klass = namedtuple("InputFiles", "seg_cna markers genes samples")
    seg_cna = segments_table.copy()
    seg_cna.insert(4, "Markers", 1)
    paths = klass(
        seg_cna=tmp_path / "seg.cna.tsv",
        markers=tmp_path / "markers.tsv",
        genes=tmp_path / "genes.tsv",
        samples=tmp_path / "samples.txt",
    )
    seg_cna.to_csv(paths.seg_cna, sep="\t", index=False)
    markers_table.to_csv(paths.markers, sep="\t", index=False)
    genes_table.to_csv(paths.genes, sep="\t", index=False)
    paths.samples.write_text("\n".join(SAMPLES) + "\n")
    return paths


@pytest.fixture
def fake_fs():
    """Return ``namedtuple`` with fake file system objects."""
    klass = namedtuple("FakeFsBundle", "fs os open inter_process_lock")
    fake_fs = fake_filesystem.FakeFilesystem()
    fake_os = fake_filesystem.FakeOsModule(fake_fs)
    fake_open = fake_filesystem.FakeFileOpen(fake_fs)
    fake_lock = MagicMock()
    return klass(fs=fake_fs, os=fake_os, open=fake_open, inter_process_lock=fake_lock)
