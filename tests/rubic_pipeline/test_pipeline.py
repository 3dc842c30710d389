# -*- coding: utf-8 -*-
"""Tests for the staged ``RubicPipeline``"""

import warnings

import attr
import numpy as np
import pandas as pd
import pytest

from rubic_pipeline import Collaborators, RubicPipeline, Stage, StageResult, rubic
from rubic_pipeline.collaborators import AggregatedSegments, CombinedFocalEvents
from rubic_pipeline.exceptions import (
    ConfigurationError,
    InsufficientCoverageError,
    InsufficientSamplesError,
    SchemaError,
)
from rubic_pipeline.models import InputOptions, RubicConfig
from rubic_pipeline.regions import GAIN, LOSS
from rubic_pipeline.warnings import RecomputeWarning

#: Stages running before focal calling
PREDECESSORS = (Stage.ESTIMATE, Stage.SEGMENT, Stage.CALL_EVENTS)


@pytest.fixture
def mock_collaborators(mocker):
    """Return ``Collaborators`` made of mocks returning empty results"""
    collaborators = Collaborators(
        estimator=mocker.MagicMock(),
        aggregator=mocker.MagicMock(),
        event_caller=mocker.MagicMock(),
        focal_mapper=mocker.MagicMock(),
        q_combiner=mocker.MagicMock(),
    )
    collaborators.estimator.estimate.return_value = ("params_p", "params_n")
    collaborators.aggregator.aggregate.return_value = AggregatedSegments(
        segments_p=[], e_p=0.0, segments_n=[], e_n=0.0
    )
    collaborators.event_caller.call.return_value = []
    collaborators.focal_mapper.map.return_value = []
    collaborators.q_combiner.combine.return_value = CombinedFocalEvents(
        focal_p_events=[], focal_n_events=[], q_all=np.array([])
    )
    return collaborators


@pytest.fixture
def pipeline(config, normalized_inputs):
    """Return pipeline on the synthetic data set with the baseline collaborators"""
    return RubicPipeline(config, normalized_inputs)


@pytest.fixture
def mock_pipeline(config, normalized_inputs, mock_collaborators):
    """Return pipeline on the synthetic data set with mocked collaborators"""
    return RubicPipeline(config, normalized_inputs, collaborators=mock_collaborators)


# Test construction -------------------------------------------------------------------------------


def test_new_pipeline(pipeline):
    assert pipeline.completed_stages == ()
    assert pipeline.samples == ["S1", "S2", "S3", "S4", "S5", "S6"]
    assert len(pipeline.map_loc) == 480
    assert pipeline.cna_matrix is None
    assert pipeline.markers_agr is None
    assert pipeline.params_p is None
    assert pipeline.q_all is None
    assert repr(pipeline) == "RubicPipeline(samples=6, markers=80, completed=[])"


def test_new_pipeline_insufficient_coverage(normalized_inputs):
    config = RubicConfig(fdr=0.05, min_probes=81)
    with pytest.raises(InsufficientCoverageError):
        RubicPipeline(config, normalized_inputs)


# Test stage ordering -----------------------------------------------------------------------------


def test_missing_prerequisites(mock_pipeline):
    assert mock_pipeline.missing_prerequisites(Stage.ESTIMATE) == ()
    assert mock_pipeline.missing_prerequisites(Stage.CALL_FOCAL) == PREDECESSORS
    mock_pipeline.estimate_parameters()
    assert mock_pipeline.missing_prerequisites(Stage.CALL_FOCAL) == PREDECESSORS[1:]


def test_focal_calling_triggers_predecessors(mock_pipeline, mock_collaborators):
    result = mock_pipeline.call_focal_events()
    assert result == StageResult(stage=Stage.CALL_FOCAL, recomputed=False, triggered=PREDECESSORS)
    assert mock_pipeline.completed_stages == tuple(Stage)
    mock_collaborators.estimator.estimate.assert_called_once()
    mock_collaborators.aggregator.aggregate.assert_called_once()
    assert mock_collaborators.event_caller.call.call_count == 2
    assert [c.args[-1] for c in mock_collaborators.event_caller.call.call_args_list] == [
        GAIN,
        LOSS,
    ]
    assert mock_collaborators.focal_mapper.map.call_count == 2
    mock_collaborators.q_combiner.combine.assert_called_once_with([], [])


def test_stage_arguments(mock_pipeline, mock_collaborators, config):
    mock_pipeline.segment()
    args = mock_collaborators.estimator.estimate.call_args.args
    assert args[0].shape == (80, 6)
    assert len(args[1]) == 80
    assert args[2:] == (19001, config.amp_level, config.del_level, config.fdr)
    args = mock_collaborators.aggregator.aggregate.call_args.args
    assert args[2:] == (
        config.amp_level,
        config.del_level,
        "params_p",
        "params_n",
        config.fdr,
    )


def test_empty_results_count_as_done(mock_pipeline):
    mock_pipeline.call_events()
    assert mock_pipeline.segments_p == []
    assert mock_pipeline.called_p_events == []
    assert mock_pipeline.is_done(Stage.CALL_EVENTS)
    assert mock_pipeline.call_focal_events().triggered == ()


def test_recompute_warns_once(mock_pipeline, mock_collaborators):
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        first = mock_pipeline.call_events()
    assert first == StageResult(
        stage=Stage.CALL_EVENTS, recomputed=False, triggered=PREDECESSORS[:2]
    )
    with pytest.warns(RecomputeWarning, match="Events have been already called") as record:
        second = mock_pipeline.call_events()
    assert len(record) == 1
    assert second == StageResult(stage=Stage.CALL_EVENTS, recomputed=True, triggered=())
    mock_collaborators.estimator.estimate.assert_called_once()
    assert mock_collaborators.event_caller.call.call_count == 4


def test_recompute_estimate(mock_pipeline):
    mock_pipeline.estimate_parameters()
    with pytest.warns(RecomputeWarning, match="Parameters have been already estimated"):
        assert mock_pipeline.estimate_parameters().recomputed


def test_failed_stage_leaves_output_absent(mock_pipeline, mock_collaborators):
    mock_collaborators.aggregator.aggregate.side_effect = RuntimeError("boom")
    with pytest.raises(RuntimeError):
        mock_pipeline.call_events()
    assert mock_pipeline.completed_stages == (Stage.ESTIMATE,)
    assert mock_pipeline.segments_p is None
    assert mock_pipeline.e_p is None


def test_caches_rebuilt_on_demand(mock_pipeline):
    mock_pipeline.estimate_parameters()
    matrix = mock_pipeline.cna_matrix
    mock_pipeline.clear_caches()
    assert mock_pipeline.cna_matrix is None
    mock_pipeline.segment()
    np.testing.assert_array_equal(mock_pipeline.cna_matrix, matrix)


# Test gene tables --------------------------------------------------------------------------------


def test_no_gene_source(config, normalized_inputs, mock_collaborators):
    inputs = attr.evolve(normalized_inputs, genes=None)
    pipeline = RubicPipeline(config, inputs, collaborators=mock_collaborators)
    with pytest.raises(ConfigurationError, match="no gene annotation source"):
        pipeline.call_focal_events()
    assert pipeline.completed_stages == PREDECESSORS
    assert pipeline.q_all is None


def test_gene_source_used(config, normalized_inputs, genes_table, mock_collaborators, mocker):
    mock_collaborators.gene_source = mocker.MagicMock()
    mock_collaborators.gene_source.fetch.return_value = genes_table
    inputs = attr.evolve(normalized_inputs, genes=None)
    pipeline = RubicPipeline(config, inputs, collaborators=mock_collaborators)
    pipeline.call_focal_events()
    mock_collaborators.gene_source.fetch.assert_called_once_with(["1", "2", "10", "X"])
    assert list(pipeline.genes["Name"]) == ["GENE_D", "GENE_A", "GENE_B", "GENE_C"]


def test_gene_override_validated_first(mock_pipeline, mock_collaborators, genes_table):
    with pytest.raises(SchemaError, match="Missing column: End"):
        mock_pipeline.call_focal_events(genes=genes_table.drop(columns=["End"]))
    mock_collaborators.estimator.estimate.assert_not_called()
    assert mock_pipeline.completed_stages == ()


def test_gene_override(mock_pipeline, mock_collaborators, genes_table):
    mock_pipeline.call_focal_events(genes=genes_table.iloc[:1])
    genes = mock_collaborators.focal_mapper.map.call_args.args[3]
    assert list(genes["Name"]) == ["GENE_A"]
    assert list(mock_pipeline.genes["Name"]) == ["GENE_A"]


# Test full runs with the baseline collaborators --------------------------------------------------


def test_focal_events(pipeline):
    pipeline.call_focal_events()
    assert [(e.chromosome, e.loc_start, e.loc_end) for e in pipeline.focal_p_events] == [
        ("2", 5000, 7000)
    ]
    assert pipeline.focal_p_events[0].gene_symbols == ["GENE_A"]
    assert pipeline.focal_p_events[0].ensembl_ids == ["ENSG00000000001"]
    assert [(e.chromosome, e.loc_start, e.loc_end) for e in pipeline.focal_n_events] == [
        ("10", 12000, 14000)
    ]
    assert pipeline.focal_n_events[0].gene_symbols == ["GENE_C"]
    assert pipeline.q_all.shape == (4,)
    assert (pipeline.q_all > 5).all()
    assert pipeline.focal_p_events[0].l.q == pipeline.q_all[0]
    assert pipeline.focal_n_events[0].r.q == pipeline.q_all[3]


def test_auto_triggering_equals_explicit_stages(config, normalized_inputs):
    auto = RubicPipeline(config, normalized_inputs)
    auto.call_focal_events()
    explicit = RubicPipeline(config, normalized_inputs)
    explicit.estimate_parameters()
    explicit.segment()
    explicit.call_events()
    explicit.call_focal_events()
    assert auto.params_p == explicit.params_p
    assert auto.segments_n == explicit.segments_n
    assert auto.focal_p_events == explicit.focal_p_events
    assert auto.focal_n_events == explicit.focal_n_events
    np.testing.assert_array_equal(auto.q_all, explicit.q_all)


def test_broad_event_not_called_at_strict_fdr(pipeline):
    pipeline.call_events()
    assert [e.chromosome for e in pipeline.called_p_events] == ["2"]
    assert [s.chromosome for s in pipeline.segments_p] == ["1", "2"]


def test_save_focal_gains_to_stdout(pipeline, capsys):
    pipeline.save_focal_gains()
    out, _ = capsys.readouterr()
    lines = out.splitlines()
    assert len(lines) == 2
    assert lines[1].startswith("2\t5000\t7000\tNA\t")
    assert lines[1].endswith("\tGENE_A\tENSG00000000001")
    assert pipeline.completed_stages == tuple(Stage)


def test_save_focal_losses_to_file(pipeline, tmp_path):
    path = tmp_path / "losses.tsv"
    pipeline.save_focal_losses(path)
    frame = pd.read_csv(path, sep="\t", dtype={"Chromosome": str})
    assert list(frame["Chromosome"]) == ["10"]
    assert list(frame["Gene_symb"]) == ["GENE_C"]


def test_save_focal_output_does_not_recompute(pipeline, tmp_path):
    pipeline.call_focal_events()
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        pipeline.save_focal_gains(tmp_path / "gains.tsv")
        pipeline.save_focal_losses(tmp_path / "losses.tsv")


# Test save and load ------------------------------------------------------------------------------


def test_save_and_load(pipeline, tmp_path):
    pipeline.call_focal_events()
    matrix = pipeline.cna_matrix.copy()
    markers_agr = pipeline.markers_agr.copy()
    path = tmp_path / "state.pickle"
    pipeline.save(path)
    assert pipeline.cna_matrix is None

    loaded = RubicPipeline.load(path)
    assert loaded.cna_matrix is None
    assert loaded.markers_agr is None
    assert loaded.completed_stages == tuple(Stage)
    assert loaded.focal_p_events == pipeline.focal_p_events
    np.testing.assert_array_equal(loaded.q_all, pipeline.q_all)
    pd.testing.assert_frame_equal(loaded.map_loc, pipeline.map_loc)
    loaded.ensure_caches()
    np.testing.assert_array_equal(loaded.cna_matrix, matrix)
    pd.testing.assert_frame_equal(loaded.markers_agr, markers_agr)


def test_load_and_continue(pipeline, tmp_path, mock_collaborators):
    pipeline.estimate_parameters()
    path = tmp_path / "state.pickle"
    pipeline.save(path)
    loaded = RubicPipeline.load(path, collaborators=mock_collaborators)
    assert loaded.collaborators is mock_collaborators
    result = loaded.call_events()
    assert result.triggered == (Stage.SEGMENT,)
    mock_collaborators.estimator.estimate.assert_not_called()
    mock_collaborators.aggregator.aggregate.assert_called_once()


# Test rubic() ------------------------------------------------------------------------------------


def test_rubic_missing_parameters():
    with pytest.raises(ConfigurationError) as excinfo:
        rubic(markers="markers.tsv")
    assert str(excinfo.value) == "The fdr, seg_cna parameter must be specified."


def test_rubic_invalid_config_before_reading(tmp_path):
    with pytest.raises(ConfigurationError) as excinfo:
        rubic(1.5, tmp_path / "missing.tsv", tmp_path / "missing.tsv", amp_level=-1)
    assert excinfo.value.errors == [
        "fdr: The FDR must be a real value between 0 and 1",
        "amp_level: The threshold for calling amplifications must be > 0",
    ]


def test_rubic_missing_parameters_with_invalid_config():
    with pytest.raises(ConfigurationError) as excinfo:
        rubic(markers="markers.tsv", amp_level=-1, col_sample=0)
    assert excinfo.value.errors[0] == "The fdr, seg_cna parameter must be specified."
    assert "amp_level: The threshold for calling amplifications must be > 0" in (
        excinfo.value.errors
    )
    assert any(msg.startswith("input.col_sample") for msg in excinfo.value.errors)
    assert not any(msg.startswith("fdr") for msg in excinfo.value.errors)


def test_rubic_input_mapping(segments_table, markers_table):
    pipeline = rubic(
        0.05,
        segments_table,
        markers_table,
        input={"col_log_ratio": 6, "genes_header": False},
        col_log_ratio=7,
        min_probes=10,
    )
    assert pipeline.config.input.col_log_ratio == 7
    assert pipeline.config.input.genes_header is False


def test_rubic_input_options_instance(segments_table, markers_table):
    pipeline = rubic(
        0.05,
        segments_table,
        markers_table,
        input=InputOptions(markers_header=False),
        min_probes=10,
    )
    assert pipeline.config.input.markers_header is False


def test_rubic_invalid_input_mapping(tmp_path):
    with pytest.raises(ConfigurationError) as excinfo:
        rubic(0.05, tmp_path / "missing.tsv", tmp_path / "missing.tsv", input={"col_sample": 0})
    assert all(msg.startswith("input.") for msg in excinfo.value.errors)


def test_rubic_from_files(input_files):
    pipeline = rubic(
        0.05,
        input_files.seg_cna,
        input_files.markers,
        samples=input_files.samples,
        genes=input_files.genes,
        min_probes=10,
        col_log_ratio=6,
    )
    assert pipeline.config.min_probes == 10
    assert pipeline.config.input.col_log_ratio == 6
    pipeline.call_focal_events()
    assert [e.gene_symbols for e in pipeline.focal_p_events] == [["GENE_A"]]


def test_rubic_sample_subset(segments_table, markers_table, genes_table):
    pipeline = rubic(
        0.05, segments_table, markers_table, samples=["S1", "S2"], genes=genes_table, min_probes=10
    )
    assert pipeline.samples == ["S1", "S2"]
    assert len(pipeline.map_loc) == 160


def test_rubic_single_sample_file(input_files):
    input_files.samples.write_text("S1\n")
    with pytest.raises(InsufficientSamplesError):
        rubic(0.05, input_files.seg_cna, input_files.markers, samples=input_files.samples)


def test_rubic_default_min_probes(segments_table, markers_table):
    with pytest.raises(InsufficientCoverageError, match="at least 260000 are required"):
        rubic(0.25, segments_table, markers_table)
