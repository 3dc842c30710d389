# -*- coding: utf-8 -*-
"""Saving and loading of pipeline snapshots

Snapshots are pickled; reading and writing happens under an inter-process lock on
``<path>.lock`` so that no process observes a partially written snapshot.
"""

import logging
import os
import pickle

from fasteners import InterProcessLock

from .exceptions import MalformedInputError

__author__ = "RUBIC developers"

logger = logging.getLogger(__name__)


def save_snapshot(obj, path):
    """Pickle ``obj`` to ``path``"""
    path = os.fspath(path)
    with InterProcessLock(path + ".lock"):
        logger.info("Saving pipeline state to %s", path)
        with open(path, "wb") as f:
            pickle.dump(obj, f, protocol=pickle.HIGHEST_PROTOCOL)


def load_snapshot(path, klass):
    """Load snapshot from ``path`` and check that it holds a ``klass`` of the current version"""
    path = os.fspath(path)
    with InterProcessLock(path + ".lock"):
        logger.info("Loading pipeline state from %s", path)
        with open(path, "rb") as f:
            try:
                obj = pickle.load(f)
            except (pickle.UnpicklingError, EOFError, AttributeError, ImportError) as e:
                raise MalformedInputError(
                    "File {} is not a valid pipeline state: {}".format(path, e)
                ) from e
    if not isinstance(obj, klass):
        raise MalformedInputError(
            "File {} holds a {}, not a {}".format(path, type(obj).__name__, klass.__name__)
        )
    if getattr(obj, "snapshot_version", None) != klass.state_version:
        raise MalformedInputError(
            "Invalid state version {} in {}".format(getattr(obj, "snapshot_version", None), path)
        )
    return obj
