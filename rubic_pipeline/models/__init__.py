import json
from io import StringIO
import typing
from typing import Annotated

from pydantic import BaseModel, ConfigDict, model_validator
from ruamel.yaml import YAML

from rubic_pipeline.models.validators import check

INDENTATION = 2  # Indentation used for YAML


def _yaml_instance():
    yaml = YAML(typ="rt")
    yaml.indent(mapping=INDENTATION, sequence=INDENTATION * 2, offset=INDENTATION)
    return yaml


def load_yaml(path) -> dict:
    """Load the YAML configuration file at ``path`` into a plain ``dict``"""
    with open(path, "rt") as f:
        data = _yaml_instance().load(f)
    return json.loads(json.dumps(data or {}))


class RubicModel(BaseModel):
    """
    Base class for all rubic models.
    Extra fields are forbidden, attribute docstrings are used for field descriptions,
    and default values are validated.
    """

    model_config = ConfigDict(
        extra="forbid",
        use_attribute_docstrings=True,
        use_enum_values=True,
        validate_default=True,
    )

    def get(self, key: str, default: typing.Any = None) -> typing.Any:
        """
        Return the value of the field with the given key, or the default value if it doesn't exist.
        Simply delegates to getattr.
        """
        return getattr(self, key, default)

    def model_dump_yaml(self, **kwargs) -> str:
        yaml = _yaml_instance()
        with StringIO() as out:
            yaml.dump(json.loads(self.model_dump_json(**kwargs)), stream=out)
            return out.getvalue()


ColumnPosition = Annotated[
    int, check(lambda v: v >= 1, "Column positions are 1-based and must be >= 1")
]


class InputOptions(RubicModel):
    """Options for reading input tables from files"""

    seg_cna_header: bool = True
    """Whether the segments file contains the names of the variables as its first line"""

    markers_header: bool = True
    """Whether the markers file contains the names of the variables as its first line"""

    samples_header: bool = False
    """Whether the samples file starts with a header line"""

    genes_header: bool = True
    """Whether the genes file starts with a header line"""

    col_sample: ColumnPosition = 1
    """Column of the segments file holding the sample name"""

    col_chromosome: ColumnPosition = 2
    """Column of the segments file holding the chromosome name"""

    col_start: ColumnPosition = 3
    """Column of the segments file holding the segment start position"""

    col_end: ColumnPosition = 4
    """Column of the segments file holding the segment end position"""

    col_log_ratio: ColumnPosition = 6
    """Column of the segments file holding the log ratio"""

    @model_validator(mode="after")
    def ensure_distinct_columns(self):
        columns = (
            self.col_sample,
            self.col_chromosome,
            self.col_start,
            self.col_end,
            self.col_log_ratio,
        )
        if len(set(columns)) != len(columns):
            raise ValueError("Segment file column positions must be distinct")
        return self


class RubicConfig(RubicModel):
    """Parameters of a RUBIC analysis, validated once on construction"""

    fdr: Annotated[
        float, check(lambda v: 0 <= v <= 1, "The FDR must be a real value between 0 and 1")
    ]
    """Event based false discovery rate, e.g. 0.25"""

    amp_level: Annotated[
        float, check(lambda v: v > 0, "The threshold for calling amplifications must be > 0")
    ] = 0.1
    """Threshold used for calling amplifications"""

    del_level: Annotated[
        float, check(lambda v: v < 0, "The threshold for calling deletions must be < 0")
    ] = -0.1
    """Threshold used for calling deletions"""

    min_seg_markers: Annotated[
        int,
        check(
            lambda v: v > 0, "The minimum number of probes allowed in each segment must be > 0"
        ),
    ] = 1
    """
    Number of markers required in each segment; smaller segments are joined with adjacent
    segments.  The default of 1 means that no segments are merged.
    """

    min_mean: float | None = None
    """Minimum mean log ratio allowed for a segment, unbounded if unset"""

    max_mean: float | None = None
    """Maximum mean log ratio allowed for a segment, unbounded if unset"""

    min_probes: Annotated[
        int,
        check(
            lambda v: v > 0,
            "The minimum number of probes considered for the analysis must be > 0",
        ),
    ] = 260000
    """Minimum number of markers to be considered in the analysis"""

    focal_threshold: Annotated[
        float, check(lambda v: v >= 1, "The focal threshold must be > 0")
    ] = 10e6
    """Only regions smaller than this number of bases are called focal"""

    input: InputOptions = InputOptions()
    """Options for reading the input files"""

    @model_validator(mode="after")
    def ensure_mean_bounds_ordered(self):
        if self.min_mean is not None and self.max_mean is not None:
            if self.min_mean > self.max_mean:
                raise ValueError("The minimum mean must not be larger than the maximum mean")
        return self
