# -*- coding: utf-8 -*-
"""The staged RUBIC pipeline

``RubicPipeline`` owns all analysis state.  Its stages have to run in a fixed order:

1. ``estimate_parameters()`` fits the background model of both directions
2. ``segment()`` aggregates the per-sample segments into candidate segments
3. ``call_events()`` calls recurrent gain and loss events
4. ``call_focal_events()`` restricts the events to focal ones, maps them to genes and
   computes one q-value distribution over gains and losses

Invoking a stage runs the missing prefix of its predecessors first.  Invoking a stage whose
output is already present recomputes it and emits a ``RecomputeWarning``; the returned
``StageResult`` reports both facts.
"""

from collections.abc import Mapping
import enum
import logging
import warnings

import attr
import numpy as np
import pandas as pd
import pydantic

from .collaborators import Collaborators
from .exceptions import ConfigurationError
from .inputs import normalize_genes, normalize_inputs
from .location import ensure_min_probes, map_locations
from .matrix import aggregate_markers, extract_matrix, max_chrom_length
from .models import InputOptions, RubicConfig
from .models.validators import configuration_error
from .persistence import load_snapshot, save_snapshot
from .regions import GAIN, LOSS, sort_regions_on_genome
from .report import write_focal_events
from .warnings import RecomputeWarning

__author__ = "RUBIC developers"

logger = logging.getLogger(__name__)


class Stage(enum.IntEnum):
    """Stages of the pipeline, in required order"""

    ESTIMATE = 1
    SEGMENT = 2
    CALL_EVENTS = 3
    CALL_FOCAL = 4


#: Fields written by each stage, all of them on success and none on failure
STAGE_OUTPUTS = {
    Stage.ESTIMATE: ("params_p", "params_n"),
    Stage.SEGMENT: ("segments_p", "segments_n", "e_p", "e_n"),
    Stage.CALL_EVENTS: ("called_p_events", "called_n_events"),
    Stage.CALL_FOCAL: ("focal_p_events", "focal_n_events", "q_all"),
}

#: Direct predecessor of each stage
STAGE_REQUIRES = {
    Stage.ESTIMATE: None,
    Stage.SEGMENT: Stage.ESTIMATE,
    Stage.CALL_EVENTS: Stage.SEGMENT,
    Stage.CALL_FOCAL: Stage.CALL_EVENTS,
}

#: Warning messages on recomputation
RECOMPUTE_MESSAGES = {
    Stage.ESTIMATE: "Parameters have been already estimated. Recomputing...",
    Stage.SEGMENT: "Data have been already segmented. Recomputing...",
    Stage.CALL_EVENTS: "Events have been already called. Recomputing...",
    Stage.CALL_FOCAL: "Focal events have been already called. Recomputing...",
}


@attr.s(frozen=True, auto_attribs=True)
class StageResult:
    """Outcome of invoking a stage"""

    #: The stage invoked
    stage: Stage
    #: Whether the stage output was present before and has been overwritten
    recomputed: bool = False
    #: Predecessor stages that had to be run first, in execution order
    triggered: tuple = ()


class RubicPipeline:
    """State of one RUBIC analysis

    Derived fields are ``None`` until computed; an empty list is a computed result without
    any region.  The copy-number matrix (``cna_matrix``) and the aggregated marker table
    (``markers_agr``) are caches rebuilt from ``map_loc`` whenever they are absent.

    Instances are not thread-safe.  Callers sharing one instance between threads must
    synchronize externally.
    """

    #: Version of the snapshot layout written by ``save()``
    state_version = 1

    @classmethod
    def from_inputs(cls, config, seg_cna, markers, samples=None, genes=None, collaborators=None):
        """Normalize the given inputs and construct a new pipeline from them"""
        inputs = normalize_inputs(seg_cna, markers, samples, genes, options=config.input)
        return cls(config, inputs, collaborators=collaborators)

    def __init__(self, config: RubicConfig, inputs, collaborators: Collaborators | None = None):
        #: Validated configuration
        self.config = config
        #: Numeric routines and the gene annotation source
        self.collaborators = collaborators or Collaborators()
        #: Chromosome order shared by all tables
        self.chromosome_order = inputs.chromosome_order
        #: Samples used in the analysis
        self.samples = list(inputs.samples)
        #: Normalized marker table
        self.markers = inputs.markers
        #: Gene table, ``None`` if neither given nor fetched yet
        self.genes = inputs.genes
        #: Layout version, checked on loading
        self.snapshot_version = self.state_version
        #: Markers mapped onto the segments of each sample
        self.map_loc = ensure_min_probes(
            map_locations(
                inputs.segments,
                inputs.markers,
                self.samples,
                min_seg_markers=config.min_seg_markers,
                min_mean=config.min_mean,
                max_mean=config.max_mean,
            ),
            inputs.markers,
            min_probes=config.min_probes,
        )
        #: Cached markers x samples matrix
        self.cna_matrix: np.ndarray | None = None
        #: Cached aggregated marker table
        self.markers_agr: pd.DataFrame | None = None
        for fields in STAGE_OUTPUTS.values():
            for field in fields:
                setattr(self, field, None)

    # Stage bookkeeping -------------------------------------------------------------------------

    def is_done(self, stage: Stage) -> bool:
        """Return whether the output of ``stage`` is present"""
        return all(getattr(self, field) is not None for field in STAGE_OUTPUTS[stage])

    @property
    def completed_stages(self):
        """Return tuple of the stages whose output is present"""
        return tuple(stage for stage in Stage if self.is_done(stage))

    def missing_prerequisites(self, stage: Stage):
        """Return the predecessors of ``stage`` without output, in execution order"""
        missing = []
        current = STAGE_REQUIRES[stage]
        while current is not None and not self.is_done(current):
            missing.append(current)
            current = STAGE_REQUIRES[current]
        return tuple(reversed(missing))

    def run(self, stage: Stage, **kwargs) -> StageResult:
        """Run ``stage``, running its missing predecessors first"""
        triggered = self.missing_prerequisites(stage)
        for prerequisite in triggered:
            logger.info("Stage %s requires %s first", stage.name, prerequisite.name)
            self._execute(prerequisite)
        recomputed = self.is_done(stage)
        if recomputed:
            warnings.warn(RECOMPUTE_MESSAGES[stage], RecomputeWarning, stacklevel=3)
        self._execute(stage, **kwargs)
        return StageResult(stage=stage, recomputed=recomputed, triggered=triggered)

    def _execute(self, stage: Stage, **kwargs):
        handlers = {
            Stage.ESTIMATE: self._estimate_parameters,
            Stage.SEGMENT: self._segment,
            Stage.CALL_EVENTS: self._call_events,
            Stage.CALL_FOCAL: self._call_focal_events,
        }
        logger.info("Running stage %s", stage.name)
        handlers[stage](**kwargs)
        logger.debug("Stage %s done", stage.name)

    def ensure_caches(self):
        """Rebuild the copy-number matrix and the aggregated marker table if absent"""
        if self.cna_matrix is None:
            logger.debug("Building copy number matrix")
            self.cna_matrix = extract_matrix(self.map_loc, self.samples)
        if self.markers_agr is None:
            logger.debug("Building aggregated marker table")
            self.markers_agr = aggregate_markers(self.map_loc)

    def clear_caches(self):
        """Drop the copy-number matrix and the aggregated marker table"""
        self.cna_matrix = None
        self.markers_agr = None

    # Public stages -----------------------------------------------------------------------------

    def estimate_parameters(self) -> StageResult:
        """Estimate the parameters necessary for segmentation and event calling."""
        return self.run(Stage.ESTIMATE)

    def segment(self) -> StageResult:
        """Generate positive and negative segments."""
        return self.run(Stage.SEGMENT)

    def call_events(self) -> StageResult:
        """Call recurrent events."""
        return self.run(Stage.CALL_EVENTS)

    def call_focal_events(self, genes=None) -> StageResult:
        """Call focal events.

        ``genes`` optionally replaces the gene table, given as path or table.  It is
        validated before any stage runs.
        """
        override = None
        if genes is not None:
            override = normalize_genes(genes, self.chromosome_order, self.config.input)
        return self.run(Stage.CALL_FOCAL, genes=override)

    # Stage implementations ---------------------------------------------------------------------

    def _estimate_parameters(self):
        self.ensure_caches()
        params_p, params_n = self.collaborators.estimator.estimate(
            self.cna_matrix,
            self.markers_agr,
            max_chrom_length(self.map_loc),
            self.config.amp_level,
            self.config.del_level,
            self.config.fdr,
        )
        self.params_p, self.params_n = params_p, params_n

    def _segment(self):
        self.ensure_caches()
        segments = self.collaborators.aggregator.aggregate(
            self.cna_matrix,
            self.markers_agr,
            self.config.amp_level,
            self.config.del_level,
            self.params_p,
            self.params_n,
            self.config.fdr,
        )
        self.segments_p, self.e_p = segments.segments_p, segments.e_p
        self.segments_n, self.e_n = segments.segments_n, segments.e_n

    def _call_events(self):
        self.ensure_caches()
        called = {}
        for direction, segments, params, e in (
            (GAIN, self.segments_p, self.params_p, self.e_p),
            (LOSS, self.segments_n, self.params_n, self.e_n),
        ):
            called[direction] = self.collaborators.event_caller.call(
                self.cna_matrix,
                self.config.amp_level,
                self.config.del_level,
                segments,
                params,
                self.config.fdr,
                e,
                direction,
            )
        self.called_p_events, self.called_n_events = called[GAIN], called[LOSS]

    def _call_focal_events(self, genes=None):
        self.ensure_caches()
        if genes is None:
            genes = self.genes if self.genes is not None else self._fetch_default_genes()
        mapper = self.collaborators.focal_mapper
        focal_p = mapper.map(
            self.markers_agr, self.called_p_events, self.config.focal_threshold, genes
        )
        focal_n = mapper.map(
            self.markers_agr, self.called_n_events, self.config.focal_threshold, genes
        )
        combined = self.collaborators.q_combiner.combine(focal_p, focal_n)
        self.genes = genes
        self.focal_p_events = sort_regions_on_genome(
            combined.focal_p_events, self.chromosome_order
        )
        self.focal_n_events = sort_regions_on_genome(
            combined.focal_n_events, self.chromosome_order
        )
        self.q_all = np.asarray(combined.q_all, dtype=np.float64)
        logger.info(
            "Called %d focal gains and %d focal losses",
            len(self.focal_p_events),
            len(self.focal_n_events),
        )

    def _fetch_default_genes(self):
        source = self.collaborators.gene_source
        if source is None:
            raise ConfigurationError(
                "No gene locations given and no gene annotation source configured"
            )
        chromosomes = [str(c) for c in pd.unique(self.markers_agr["Chromosome"].astype(str))]
        logger.info("Fetching gene annotation for chromosomes %s", ", ".join(chromosomes))
        return normalize_genes(source.fetch(chromosomes), self.chromosome_order, self.config.input)

    # Output ------------------------------------------------------------------------------------

    def _ensure_focal_events(self):
        if self.q_all is None:
            self.call_focal_events()

    def save_focal_gains(self, path=None):
        """Save focal gains to a file in TSV format, standard output if ``path`` is empty."""
        self._ensure_focal_events()
        write_focal_events(self.focal_p_events, path)

    def save_focal_losses(self, path=None):
        """Save focal losses to a file in TSV format, standard output if ``path`` is empty."""
        self._ensure_focal_events()
        write_focal_events(self.focal_n_events, path)

    def save(self, path):
        """Save the current state to ``path``, dropping the rebuildable caches first."""
        self.clear_caches()
        save_snapshot(self, path)

    @classmethod
    def load(cls, path, collaborators: Collaborators | None = None):
        """Load a pipeline saved with ``save()``, optionally replacing its collaborators"""
        pipeline = load_snapshot(path, cls)
        if collaborators is not None:
            pipeline.collaborators = collaborators
        return pipeline

    def __repr__(self):
        return "RubicPipeline(samples={}, markers={}, completed={})".format(
            len(self.samples),
            len(self.markers),
            [stage.name for stage in self.completed_stages],
        )


def rubic(
    fdr=None, seg_cna=None, markers=None, samples=None, genes=None, collaborators=None, **kwargs
):
    """Create and initialize a new ``RubicPipeline``

    ``fdr``, ``seg_cna`` and ``markers`` are required.  ``seg_cna``, ``markers`` and ``genes``
    are paths or tables, ``samples`` is a path or a list of sample identifiers; without
    samples, all samples of ``seg_cna`` are used.  Further keyword arguments are the fields of
    ``RubicConfig`` and ``InputOptions`` (e.g., ``amp_level`` or ``col_log_ratio``).

    An explicit ``input`` mapping is merged with the ``InputOptions`` keyword arguments, the
    latter take precedence.  The configuration is validated before any input is read and all
    problems, including missing required arguments, are reported in one
    ``ConfigurationError``.
    """
    missing = [
        name
        for name, value in (("fdr", fdr), ("seg_cna", seg_cna), ("markers", markers))
        if value is None
    ]
    errors = []
    if missing:
        errors.append("The {} parameter must be specified.".format(", ".join(missing)))

    input_options = kwargs.pop("input", None)
    if isinstance(input_options, InputOptions):
        input_options = input_options.model_dump()
    explicit = {k: kwargs.pop(k) for k in list(kwargs) if k in InputOptions.model_fields}
    if input_options is None:
        input_options = explicit
    elif isinstance(input_options, Mapping):
        input_options = {**input_options, **explicit}
    config_args = dict(input=input_options, **kwargs)
    if fdr is not None:
        config_args["fdr"] = fdr

    try:
        config = RubicConfig(**config_args)
    except pydantic.ValidationError as e:
        errors += configuration_error(e, reported=tuple(missing)).errors
    if errors:
        raise ConfigurationError(*errors)
    return RubicPipeline.from_inputs(
        config, seg_cna, markers, samples=samples, genes=genes, collaborators=collaborators
    )
