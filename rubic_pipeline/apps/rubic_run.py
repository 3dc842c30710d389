# -*- coding: utf-8 -*-
"""Run a RUBIC analysis from the command line

Usage::

    $ rubic-run --fdr 0.25 --seg-cna segments.tsv --markers markers.tsv --genes genes.tsv \\
        --focal-gains gains.tsv --focal-losses losses.tsv

Parameters may also be given in a YAML configuration file (``--config``); values given on the
command line take precedence.
"""

import argparse
import logging
import sys

from .. import __version__
from ..collaborators import Collaborators, TsvGeneAnnotationSource
from ..exceptions import RubicError
from ..models import InputOptions, RubicConfig, load_yaml
from ..models.validators import validate_config
from ..pipeline import RubicPipeline

__author__ = "RUBIC developers"

#: Options mapped one to one onto ``RubicConfig`` fields
CONFIG_OPTIONS = (
    "fdr",
    "amp_level",
    "del_level",
    "min_seg_markers",
    "min_mean",
    "max_mean",
    "min_probes",
    "focal_threshold",
)

#: Options mapped one to one onto ``InputOptions`` fields
INPUT_OPTIONS = ("col_sample", "col_chromosome", "col_start", "col_end", "col_log_ratio")


def setup_logging(args):
    """Setup logger."""
    logging.basicConfig(
        format="%(asctime)s %(name)-12s %(levelname)-8s %(message)s", datefmt="%m-%d %H:%M"
    )
    logger = logging.getLogger("")
    if args.verbose:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)


def build_config(args):
    """Merge the YAML configuration with the command line arguments, validate the result"""
    config = load_yaml(args.config) if args.config else {}
    config.setdefault("input", {})
    for key in CONFIG_OPTIONS:
        if getattr(args, key) is not None:
            config[key] = getattr(args, key)
    for key in INPUT_OPTIONS:
        if getattr(args, key) is not None:
            config["input"][key] = getattr(args, key)
    if args.no_seg_cna_header:
        config["input"]["seg_cna_header"] = False
    if args.no_markers_header:
        config["input"]["markers_header"] = False
    if args.samples_header:
        config["input"]["samples_header"] = True
    return validate_config(config, RubicConfig)


def run(args):
    """Main entry point after parsing command line arguments"""
    config = build_config(args)
    if args.print_config:
        print(config.model_dump_yaml(), file=sys.stderr)
    collaborators = Collaborators()
    if args.gene_annotation:
        collaborators.gene_source = TsvGeneAnnotationSource(args.gene_annotation)
    pipeline = RubicPipeline.from_inputs(
        config,
        args.seg_cna,
        args.markers,
        samples=args.samples,
        genes=args.genes,
        collaborators=collaborators,
    )
    pipeline.call_focal_events()
    pipeline.save_focal_gains(args.focal_gains)
    pipeline.save_focal_losses(args.focal_losses)
    if args.save_state:
        pipeline.save(args.save_state)
    return 0


def create_parser():
    """Construct and return the command line parser"""
    parser = argparse.ArgumentParser(
        description="Detect recurrent focal copy number aberrations with RUBIC"
    )
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)
    parser.add_argument("--verbose", default=False, action="store_true", help="Debug output")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument(
        "--print-config",
        default=False,
        action="store_true",
        help="Print the effective configuration to stderr",
    )

    group = parser.add_argument_group("Input")
    group.add_argument("--seg-cna", required=True, help="Segmented copy number file")
    group.add_argument("--markers", required=True, help="Markers file")
    group.add_argument("--samples", help="File with the IDs of the samples to use")
    group.add_argument("--genes", help="Gene locations file")
    group.add_argument(
        "--gene-annotation",
        help="Gene annotation file used if --genes is not given (restricted to the chromosomes "
        "with data)",
    )
    group.add_argument(
        "--no-seg-cna-header",
        default=False,
        action="store_true",
        help="Segments file has no header",
    )
    group.add_argument(
        "--no-markers-header", default=False, action="store_true", help="Markers file has no header"
    )
    group.add_argument(
        "--samples-header", default=False, action="store_true", help="Samples file has a header"
    )
    for key in INPUT_OPTIONS:
        group.add_argument(
            "--" + key.replace("_", "-"),
            type=int,
            help="1-based column of the segments file (default: {})".format(
                InputOptions.model_fields[key].default
            ),
        )

    group = parser.add_argument_group("Parameters")
    for key, type_ in (
        ("fdr", float),
        ("amp_level", float),
        ("del_level", float),
        ("min_seg_markers", int),
        ("min_mean", float),
        ("max_mean", float),
        ("min_probes", int),
        ("focal_threshold", float),
    ):
        field = RubicConfig.model_fields[key]
        group.add_argument("--" + key.replace("_", "-"), type=type_, help=field.description)

    group = parser.add_argument_group("Output")
    group.add_argument("--focal-gains", help="Output file for focal gains (default: stdout)")
    group.add_argument("--focal-losses", help="Output file for focal losses (default: stdout)")
    group.add_argument("--save-state", help="Save the pipeline state to this file")
    return parser


def main(argv=None):
    """Main entry point, includes parsing of command line arguments"""
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(args)
    try:
        return run(args)
    except RubicError as e:
        logging.getLogger(__name__).error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
