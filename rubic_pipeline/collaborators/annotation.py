# -*- coding: utf-8 -*-
"""Sources of default gene annotations

A gene annotation source is consulted by the pipeline only if no gene table has been given.
There is no implicit network access: a source must be configured explicitly.
"""

import logging
import typing

import pandas as pd

from ..chromosomes import normalize_label
from ..inputs import load_genes
from ..models import InputOptions

__author__ = "RUBIC developers"

logger = logging.getLogger(__name__)


class GeneAnnotationSource(typing.Protocol):
    def fetch(self, chromosomes) -> pd.DataFrame:
        """Return the genes located on ``chromosomes`` with the columns
        ``ID, Name, Chromosome, Start, End``"""


class TsvGeneAnnotationSource:
    """Read gene annotations from a local gene table file"""

    def __init__(self, path, header=True):
        #: Path to the gene table
        self.path = path
        #: Whether the file starts with a header line
        self.header = header

    def fetch(self, chromosomes):
        logger.info("Loading default gene annotation from %s", self.path)
        genes = load_genes(self.path, InputOptions(genes_header=self.header))
        wanted = {normalize_label(c) for c in chromosomes}
        return genes[genes["Chromosome"].map(normalize_label).isin(wanted)].reset_index(drop=True)

    def __repr__(self):
        return "TsvGeneAnnotationSource({!r}, header={!r})".format(self.path, self.header)
