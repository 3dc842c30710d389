# -*- coding: utf-8 -*-
"""Normalization of the user-supplied input tables

Segments, markers and genes may each be given as a path to a file or as an in-memory table,
samples as a path or a list of sample identifiers.  The kind of input is decided once by
``as_source()``; everything downstream works on the canonical ``pandas.DataFrame`` schema
with ``Chromosome`` as an ordered categorical of one shared ``ChromosomeOrder``.
"""

import logging
import os
import warnings

import attr
import numpy as np
import pandas as pd

from .chromosomes import ChromosomeOrder
from .exceptions import EmptyInputError, MalformedInputError, SchemaError
from .exceptions import InsufficientSamplesError
from .models import InputOptions
from .warnings import SampleListWarning

__author__ = "RUBIC developers"

#: Required columns of the segmented copy number table
SEGMENT_COLUMNS = ("Sample", "Chromosome", "Start", "End", "LogRatio")
#: Required columns of the markers table
MARKER_COLUMNS = ("Name", "Chromosome", "Position")
#: Required columns of the gene locations table
GENE_COLUMNS = ("ID", "Name", "Chromosome", "Start", "End")

#: Column types after normalization, ``Chromosome`` is handled by ``ChromosomeOrder``
COLUMN_TYPES = {
    "Sample": str,
    "Name": str,
    "ID": str,
    "Start": np.int64,
    "End": np.int64,
    "Position": np.int64,
    "LogRatio": np.float64,
}

logger = logging.getLogger(__name__)


@attr.s(frozen=True, auto_attribs=True)
class FromPath:
    """Input to be read from the file at ``path``"""

    path: str


@attr.s(frozen=True, auto_attribs=True, eq=False)
class FromTable:
    """Input given as an in-memory table"""

    frame: pd.DataFrame


@attr.s(frozen=True, auto_attribs=True)
class FromList:
    """Input given as a sequence of values"""

    values: tuple = attr.ib(converter=tuple)


def as_source(value):
    """Dispatch ``value`` to one of ``FromPath``, ``FromTable``, or ``FromList``"""
    if isinstance(value, (FromPath, FromTable, FromList)):
        return value
    elif isinstance(value, (str, os.PathLike)):
        return FromPath(os.fspath(value))
    elif isinstance(value, pd.DataFrame):
        return FromTable(value)
    elif isinstance(value, dict):
        return FromTable(pd.DataFrame(value))
    elif isinstance(value, (list, tuple, set, pd.Series, pd.Index, np.ndarray)):
        return FromList(value)
    else:
        raise TypeError("Cannot use {} as input".format(type(value).__name__))


@attr.s(frozen=True, auto_attribs=True, eq=False)
class NormalizedInputs:
    """Inputs in canonical form, sharing one ``ChromosomeOrder``"""

    segments: pd.DataFrame
    markers: pd.DataFrame
    samples: list
    genes: pd.DataFrame | None
    chromosome_order: ChromosomeOrder


def _guess_delimiter(path):
    """Return ``"\\t"`` or ``","`` depending on the first non-empty line of ``path``"""
    with open(path, "rt") as f:
        for line in f:
            if line.strip():
                return "\t" if "\t" in line else ","
    return "\t"


def _read_table(path, what, header, positions, names):
    """Read columns at 0-based ``positions`` from ``path`` and name them ``names``"""
    try:
        frame = pd.read_csv(
            path, sep=_guess_delimiter(path), header=0 if header else None, dtype=str
        )
    except pd.errors.EmptyDataError:
        raise EmptyInputError("Empty {}: file {} does not contain any record".format(what, path))
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise MalformedInputError(
            "The {} file {} cannot be found, read, or parsed: {}".format(what, path, e)
        ) from e
    if frame.shape[1] <= max(positions):
        raise MalformedInputError(
            "The {} file {} has {} column(s) but column {} is required".format(
                what, path, frame.shape[1], max(positions) + 1
            )
        )
    frame = frame.iloc[:, list(positions)]
    frame.columns = list(names)
    return frame


def _project(frame, what, columns):
    """Project in-memory ``frame`` on ``columns``, dropping any extra columns"""
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise SchemaError(
            "Invalid {}. It must contain at least the following columns: {}".format(
                what, ", ".join(columns)
            ),
            *("Missing column: {}".format(c) for c in missing),
        )
    return frame.loc[:, list(columns)].copy()


def _cast_columns(frame, what, error_class):
    errors = []
    for column in frame.columns:
        if column not in COLUMN_TYPES:
            continue
        if COLUMN_TYPES[column] is str:
            frame[column] = frame[column].astype(str).str.strip()
            continue
        values = pd.to_numeric(frame[column], errors="coerce")
        bad = values.isna()
        if COLUMN_TYPES[column] is np.int64:
            bad |= values.notna() & (values != values.round())
        if bad.any():
            errors.append(
                "Column {} of {} has {} non-numeric or missing value(s)".format(
                    column, what, int(bad.sum())
                )
            )
        else:
            frame[column] = values.astype(COLUMN_TYPES[column])
    if errors:
        raise error_class(*errors)
    return frame


def _load_table(source, what, columns, header, positions):
    """Load ``source`` into a frame with exactly ``columns``, chromosomes not yet ordered"""
    if isinstance(source, FromPath):
        frame = _read_table(source.path, what, header, positions, columns)
        error_class = MalformedInputError
    elif isinstance(source, FromTable):
        frame = _project(source.frame, what, columns)
        error_class = SchemaError
    else:
        raise SchemaError("Invalid {}: expected a path or a table".format(what))
    if len(frame) == 0:
        raise EmptyInputError("Empty {}".format(what))
    frame = _cast_columns(frame, what, error_class)
    if "Start" in frame.columns:
        reversed_ = frame["Start"] > frame["End"]
        if reversed_.any():
            raise SchemaError(
                "Invalid {}: {} record(s) with Start > End".format(what, int(reversed_.sum()))
            )
    return frame.reset_index(drop=True)


def load_segments(source, options: InputOptions):
    positions = (
        options.col_sample - 1,
        options.col_chromosome - 1,
        options.col_start - 1,
        options.col_end - 1,
        options.col_log_ratio - 1,
    )
    return _load_table(
        as_source(source), "seg.cna", SEGMENT_COLUMNS, options.seg_cna_header, positions
    )


def load_markers(source, options: InputOptions):
    return _load_table(
        as_source(source), "markers", MARKER_COLUMNS, options.markers_header, (0, 1, 2)
    )


def load_genes(source, options: InputOptions):
    return _load_table(
        as_source(source), "gene locations", GENE_COLUMNS, options.genes_header, (0, 1, 2, 3, 4)
    )


def read_samples(path, header=False):
    """Read the samples file at ``path``, return list of sample identifiers

    Warns if the file contains more than one column (the first one is used) or no sample
    at all, raises ``InsufficientSamplesError`` for a single sample.
    """
    if not os.access(path, os.R_OK):
        raise MalformedInputError("The samples file {} cannot be found or read".format(path))
    try:
        frame = pd.read_csv(path, sep="\t", header=0 if header else None, dtype=str)
    except pd.errors.EmptyDataError:
        frame = pd.DataFrame()
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise MalformedInputError(
            "The samples file {} cannot be parsed: {}".format(path, e)
        ) from e
    if frame.shape[1] > 1:
        warnings.warn(
            "The samples file contains more than one column. Using first", SampleListWarning
        )
    samples = [] if frame.shape[1] == 0 else list(pd.unique(frame.iloc[:, 0].dropna().str.strip()))
    samples = [s for s in samples if s]
    if len(samples) == 0:
        warnings.warn(
            "The samples file does not contain any sample. Using all available samples",
            SampleListWarning,
        )
    elif len(samples) == 1:
        raise InsufficientSamplesError(
            "The samples file contains only one sample. Minimum is two"
        )
    return samples


def resolve_samples(source, segments, options: InputOptions):
    """Return the samples to analyse, all samples of ``segments`` if none are given"""
    if source is None:
        requested = []
    else:
        source = as_source(source)
        if isinstance(source, FromPath):
            requested = read_samples(source.path, header=options.samples_header)
        elif isinstance(source, FromList):
            requested = list(dict.fromkeys(str(s) for s in source.values))
        else:
            requested = list(dict.fromkeys(source.frame.iloc[:, 0].astype(str)))
    observed = list(pd.unique(segments["Sample"]))
    if not requested:
        logger.info("Using all %d samples from the segments table", len(observed))
        return observed
    unknown = [s for s in requested if s not in set(observed)]
    if unknown:
        logger.warning(
            "Ignoring %d sample(s) without segments: %s", len(unknown), ", ".join(unknown)
        )
    return [s for s in requested if s not in set(unknown)]


def order_genes(genes: pd.DataFrame, chromosome_order: ChromosomeOrder) -> pd.DataFrame:
    """Apply ``chromosome_order`` to a loaded gene table, dropping genes on other chromosomes"""
    result = chromosome_order.apply(genes, drop_unknown=True)
    if len(result) < len(genes):
        logger.debug("Dropped %d genes on chromosomes without data", len(genes) - len(result))
    if len(result) == 0:
        raise EmptyInputError("Empty gene locations: no gene on the analysed chromosomes")
    return result.sort_values(["Chromosome", "Start", "End"], kind="stable").reset_index(
        drop=True
    )


def normalize_genes(source, chromosome_order: ChromosomeOrder, options: InputOptions):
    """Load and validate a gene table against an existing ``chromosome_order``"""
    return order_genes(load_genes(source, options), chromosome_order)


def check_segment_overlaps(segments):
    """Raise ``SchemaError`` if segments of one sample overlap on a chromosome

    ``segments`` must be sorted by sample, chromosome, and start.  Each segment is compared
    with the largest end of all preceding segments of its sample and chromosome.
    """
    keys = [segments["Sample"], segments["Chromosome"]]
    reach = segments.groupby(keys, observed=True, sort=False)["End"].cummax()
    previous = reach.groupby(keys, observed=True, sort=False).shift()
    overlapping = segments[segments["Start"] <= previous]
    if len(overlapping):
        raise SchemaError(
            "Invalid seg.cna: {} segment(s) overlap a preceding segment of the same "
            "sample".format(len(overlapping)),
            *(
                "Overlapping segment: {} {}:{}-{}".format(
                    row.Sample, row.Chromosome, row.Start, row.End
                )
                for row in overlapping.itertuples(index=False)
            ),
        )


def normalize_inputs(seg_cna, markers, samples=None, genes=None, options=None):
    """Load all inputs and bring them into canonical form

    The chromosome order is derived exactly once, from the union of the chromosomes of the
    segments and markers, and applied to all tables.
    """
    options = options or InputOptions()
    segments = load_segments(seg_cna, options)
    marker_table = load_markers(markers, options)
    order = ChromosomeOrder.from_labels(segments["Chromosome"], marker_table["Chromosome"])
    logger.debug("Chromosome order: %s", order)

    segments = order.apply(segments)
    segments = segments.sort_values(["Sample", "Chromosome", "Start"], kind="stable")
    check_segment_overlaps(segments)
    marker_table = order.apply(marker_table)
    marker_table = marker_table.drop_duplicates(["Chromosome", "Position"])
    marker_table = marker_table.sort_values(["Chromosome", "Position"], kind="stable")

    sample_list = resolve_samples(samples, segments, options)
    gene_table = None if genes is None else normalize_genes(genes, order, options)
    logger.info(
        "Loaded %d segments of %d samples and %d markers",
        len(segments),
        len(sample_list),
        len(marker_table),
    )
    return NormalizedInputs(
        segments=segments.reset_index(drop=True),
        markers=marker_table.reset_index(drop=True),
        samples=sample_list,
        genes=gene_table,
        chromosome_order=order,
    )
