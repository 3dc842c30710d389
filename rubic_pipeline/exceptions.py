# -*- coding: utf-8 -*-
"""Exceptions used in the RUBIC pipeline

Every error carries the complete list of violated constraints in ``errors`` so that callers
see all problems at once and not just the first one found.
"""

__author__ = "RUBIC developers"


class RubicError(Exception):
    """Base class for all errors raised by ``rubic_pipeline``"""

    def __init__(self, *errors):
        #: Human-readable messages, one per violated constraint
        self.errors = [str(e) for e in errors]
        super().__init__("\n".join(self.errors))


class ConfigurationError(RubicError):
    """Raised on invalid construction parameters or a missing collaborator"""


class SchemaError(RubicError):
    """Raised when an in-memory table lacks required columns or holds invalid records"""


class MalformedInputError(RubicError):
    """Raised when an input file cannot be opened or parsed"""


class EmptyInputError(RubicError):
    """Raised when an input table does not contain any record"""


class InsufficientSamplesError(RubicError):
    """Raised when a samples file lists fewer than two samples"""


class InsufficientCoverageError(RubicError):
    """Raised when fewer markers than required survive location mapping"""
