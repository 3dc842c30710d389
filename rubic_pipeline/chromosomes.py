# -*- coding: utf-8 -*-
"""Stable ordinal ordering of chromosome labels

Chromosomes are sorted on their genomic ordinal (``2`` before ``10``, autosomes before ``X``)
rather than lexically.  The order is derived once for a family of tables sharing a genome and
then applied to each of them, so that joins between the tables stay consistent.
"""

import re

import pandas as pd

from .exceptions import SchemaError

__author__ = "RUBIC developers"

#: Sex chromosomes and mitochondrial genome, in this order after the autosomes
SPECIAL_CHROMOSOMES = ("X", "Y", "M", "MT")

#: Prefix dropped for sorting only, the labels themselves are kept
PATTERN_CHR_PREFIX = re.compile(r"^CHR")


def normalize_label(label) -> str:
    """Return the case-normalized chromosome label"""
    return str(label).strip().upper()


def _sort_key(label: str):
    bare = PATTERN_CHR_PREFIX.sub("", label)
    if bare.isdigit():
        return (0, int(bare), label)
    elif bare in SPECIAL_CHROMOSOMES:
        return (1, SPECIAL_CHROMOSOMES.index(bare), label)
    else:
        return (2, 0, label)


class ChromosomeOrder:
    """Ordered set of chromosome labels shared by all tables of one genome"""

    @staticmethod
    def from_labels(*columns) -> "ChromosomeOrder":
        """Derive the order from the union of the distinct labels in ``columns``"""
        labels = set()
        for column in columns:
            labels.update(normalize_label(x) for x in pd.unique(pd.Series(column).dropna()))
        return ChromosomeOrder(sorted(labels, key=_sort_key))

    def __init__(self, labels):
        #: Chromosome labels in genomic order
        self.labels = tuple(labels)
        #: The ordered pandas categorical type used for ``Chromosome`` columns
        self.dtype = pd.CategoricalDtype(categories=list(self.labels), ordered=True)

    def apply(self, frame: pd.DataFrame, column="Chromosome", drop_unknown=False) -> pd.DataFrame:
        """Return copy of ``frame`` with ``column`` converted to the ordered categorical

        Labels outside of the order raise a ``SchemaError`` unless ``drop_unknown`` is set,
        in which case the affected rows are removed.
        """
        result = frame.copy()
        normalized = result[column].map(normalize_label)
        unknown = ~normalized.isin(self.labels)
        if unknown.any():
            if not drop_unknown:
                raise SchemaError(
                    "Chromosome(s) not in the chromosome order: {}".format(
                        ", ".join(sorted(set(normalized[unknown])))
                    )
                )
            result = result.loc[~unknown]
            normalized = normalized.loc[~unknown]
        # only known labels are cast, pandas rejects values outside of the categories
        result[column] = normalized.astype(self.dtype)
        return result

    def ordinal(self, label) -> int:
        """Return the ordinal of ``label`` in this order"""
        return self.labels.index(normalize_label(label))

    def __contains__(self, label):
        return normalize_label(label) in self.labels

    def __len__(self):
        return len(self.labels)

    def __iter__(self):
        return iter(self.labels)

    def __eq__(self, other):
        if self is other:
            return True
        return isinstance(other, ChromosomeOrder) and self.labels == other.labels

    def __str__(self):
        return "ChromosomeOrder({})".format(", ".join(self.labels))

    def __repr__(self):
        return str(self)
