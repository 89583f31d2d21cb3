"""
dsfusion: Dempster-Shafer evidence combination

Fuses independent, uncertain mass distributions over a frame of discernment
into one joint distribution.

Key Features:
- Power-set elements with content-derived canonical ordering
- Mass distributions with a tolerance-based validity invariant
- Dempster, Yager, Average and Chen-Shi distance-weighted combination rules
- Typed errors, also available as result values through try_combine
- Evidence sources and a line-oriented fixture format
"""

from .hypothesis import Hypothesis
from .frame import FrameOfDiscernment
from .element import (
    Element,
    EMPTY_ELEMENT,
    intersection,
    union,
    union_of_supports,
)
from .mass import (
    FocalElement,
    MassDistribution,
    JointMassDistribution,
    JointOperator,
    is_valid,
    normalize,
    round_bpa,
    mass_to_string,
    VALIDITY_TOLERANCE,
)
from .combination import (
    dempster,
    yager,
    average,
    distance_weighted,
    combine,
    try_combine,
    combine_all,
    conflict,
    CombinationOutcome,
)
from .errors import (
    ErrorKind,
    EvidenceError,
    CombinationNotPossible,
    TotalConflict,
    InvalidResult,
    MalformedFrame,
    DegenerateDistance,
    InvalidDistribution,
)
from .sources import (
    EvidenceSource,
    StaticEvidenceSource,
    AttributeEvidenceSource,
    ClassificationAttribute,
    MeasuredAttribute,
    Range,
)
from .fixtures import FusionFixture, parse_fixture, load_fixture, format_distribution
from .config import DEFAULT_CONFIG, FusionConfig

__version__ = "1.0.0"
__all__ = [
    # Frame and elements
    "Hypothesis",
    "FrameOfDiscernment",
    "Element",
    "EMPTY_ELEMENT",
    "intersection",
    "union",
    "union_of_supports",
    # Mass distributions
    "FocalElement",
    "MassDistribution",
    "JointMassDistribution",
    "JointOperator",
    "is_valid",
    "normalize",
    "round_bpa",
    "mass_to_string",
    "VALIDITY_TOLERANCE",
    # Combination
    "dempster",
    "yager",
    "average",
    "distance_weighted",
    "combine",
    "try_combine",
    "combine_all",
    "conflict",
    "CombinationOutcome",
    # Errors
    "ErrorKind",
    "EvidenceError",
    "CombinationNotPossible",
    "TotalConflict",
    "InvalidResult",
    "MalformedFrame",
    "DegenerateDistance",
    "InvalidDistribution",
    # Sources
    "EvidenceSource",
    "StaticEvidenceSource",
    "AttributeEvidenceSource",
    "ClassificationAttribute",
    "MeasuredAttribute",
    "Range",
    # Fixtures
    "FusionFixture",
    "parse_fixture",
    "load_fixture",
    "format_distribution",
    # Config
    "DEFAULT_CONFIG",
    "FusionConfig",
]
