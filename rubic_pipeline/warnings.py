"""Warnings used in the RUBIC pipeline"""


class RecomputeWarning(UserWarning):
    """Raised when a stage is invoked again although its output is already present."""


class SampleListWarning(UserWarning):
    """Raised on a suspicious, but usable, samples file."""
