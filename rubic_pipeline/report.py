# -*- coding: utf-8 -*-
"""Writing of focal events in TSV format"""

import contextlib
import logging
import sys

from .utils import is_missing

__author__ = "RUBIC developers"

#: Header of the focal events TSV file
HEADER = (
    "Chromosome",
    "Start",
    "End",
    "Percentile_pValue",
    "Left_break_-log10pValue",
    "Right_break_-log10pValue",
    "Left_break_-log10qValue",
    "Right_break_-log10qValue",
    "Gene_symb",
    "Ensembl_id",
)

#: Token written for values that are not available
NOT_AVAILABLE = "NA"

logger = logging.getLogger(__name__)


def format_number(value):
    """Format ``value`` in scientific notation with 5 digits, ``NA`` if it is missing"""
    if is_missing(value):
        return NOT_AVAILABLE
    return "{:.5e}".format(value)


def focal_event_row(event):
    """Return the TSV fields of a focal event"""
    return [
        str(event.chromosome),
        str(event.loc_start),
        str(event.loc_end),
        format_number(event.percentile),
        format_number(event.l.p),
        format_number(event.r.p),
        format_number(event.l.q),
        format_number(event.r.q),
        ",".join(event.gene_symbols),
        ",".join(event.ensembl_ids),
    ]


@contextlib.contextmanager
def open_destination(destination):
    """Open ``destination`` for writing, standard output if it is empty

    The handle is flushed on every exit path; standard output is never closed.
    """
    if not destination:
        out = sys.stdout
        try:
            yield out
        finally:
            out.flush()
    else:
        logger.info("Writing %s", destination)
        with open(destination, "wt") as out:
            try:
                yield out
            finally:
                out.flush()


def write_focal_events(events, destination=None):
    """Write ``events`` to the file ``destination`` or standard output"""
    with open_destination(destination) as out:
        print("\t".join(HEADER), file=out)
        for event in events:
            print("\t".join(focal_event_row(event)), file=out)
