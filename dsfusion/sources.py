"""
Evidence Sources for dsfusion

A source of evidence turns whatever it observes into one mass distribution
over a frame of discernment. The engine only depends on the narrow
EvidenceSource capability; how a source produces its masses is its own
business.

Two sources are provided:
- StaticEvidenceSource: a fixed assignment of mass to elements
- AttributeEvidenceSource: classifies measured attribute values into the
  hypotheses whose value ranges contain them
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from .frame import FrameOfDiscernment
from .hypothesis import Hypothesis, HypothesisLike, as_hypothesis
from .mass import ElementLike, FocalElement, MassDistribution, as_element


logger = logging.getLogger(__name__)


@runtime_checkable
class EvidenceSource(Protocol):
    """Anything that can produce a valid mass distribution for a frame."""

    def mass_distribution(self, frame: FrameOfDiscernment) -> MassDistribution:
        ...


class StaticEvidenceSource:
    """A source that always reports the same evidence."""

    def __init__(self, name: str, masses: Mapping[ElementLike, float]):
        self.name = name
        self.masses = dict(masses)

    def mass_distribution(self, frame: FrameOfDiscernment) -> MassDistribution:
        return MassDistribution.from_dict(self.masses, frame, normalize=True)

    def __repr__(self) -> str:
        return f"StaticEvidenceSource({self.name!r})"


@dataclass(frozen=True)
class Range:
    """Numeric interval; bounds are inclusive unless marked open."""
    low: float = float('-inf')
    high: float = float('inf')
    low_open: bool = False
    high_open: bool = False

    def __post_init__(self):
        if self.low > self.high:
            raise ValueError(f"Range low bound {self.low} is above high bound {self.high}")

    def contains(self, value: float) -> bool:
        above = value > self.low if self.low_open else value >= self.low
        below = value < self.high if self.high_open else value <= self.high
        return above and below


@dataclass
class ClassificationAttribute:
    """
    How a measured attribute maps onto hypotheses.

    Each hypothesis owns a list of value ranges; a measurement supports every
    hypothesis with a range containing it. `weight` is the mass the attribute
    contributes to that set of hypotheses.
    """
    identifier: str
    weight: float
    ranges: Dict[Hypothesis, List[Range]] = field(default_factory=dict)

    def __post_init__(self):
        if not 0.0 <= self.weight <= 1.0:
            raise ValueError(f"Attribute {self.identifier!r} weight must be in [0, 1]")
        self.ranges = {as_hypothesis(h): list(r) for h, r in self.ranges.items()}

    def add_range(self, hypothesis: HypothesisLike, value_range: Range) -> None:
        self.ranges.setdefault(as_hypothesis(hypothesis), []).append(value_range)

    def matching_hypotheses(self, value: float) -> List[Hypothesis]:
        return [h for h, ranges in self.ranges.items()
                if any(r.contains(value) for r in ranges)]


@dataclass(frozen=True)
class MeasuredAttribute:
    """A value observed by a source; None when nothing was measured."""
    identifier: str
    value: Optional[float] = None

    @property
    def has_value(self) -> bool:
        return self.value is not None


class AttributeEvidenceSource:
    """
    A source that measures attributes and classifies them against ranges.

    Every measured attribute yields one focal element: the hypotheses whose
    ranges contain the measurement, weighted by the attribute's weight.
    Repeated elements are summed and the remaining mass goes to the universal
    element of the frame.
    """

    def __init__(
        self,
        name: str,
        classification: Sequence[ClassificationAttribute],
        measurements: Sequence[MeasuredAttribute] = ()
    ):
        self.name = name
        self.classification = {a.identifier: a for a in classification}
        self.measurements = list(measurements)

    def read_measurements(self) -> List[MeasuredAttribute]:
        """Attributes measured by this source. Override to read live data."""
        return list(self.measurements)

    def mass_distribution(self, frame: FrameOfDiscernment) -> MassDistribution:
        """
        Build the source's mass distribution for frame.

        Raises:
            KeyError: If a measurement has no classification attribute
            MalformedFrame: If a range names a hypothesis outside frame
        """
        evidence = []
        for measured in self.read_measurements():
            if not measured.has_value:
                continue
            attribute = self.classification.get(measured.identifier)
            if attribute is None:
                raise KeyError(
                    f"Source {self.name!r} has no classification for {measured.identifier!r}"
                )

            hypotheses = attribute.matching_hypotheses(measured.value)
            if not hypotheses:
                logger.warning(
                    f"Source {self.name}: value {measured.value} of "
                    f"{measured.identifier} matches no hypothesis, skipped"
                )
                continue

            element = as_element([h.name for h in hypotheses], frame)
            evidence.append(FocalElement(element, attribute.weight))

        mass = MassDistribution.from_evidence(evidence, frame)
        logger.debug(f"Source {self.name}: {mass!r}")
        return mass

    def __repr__(self) -> str:
        return f"AttributeEvidenceSource({self.name!r})"


def collect_evidence(
    sources: Sequence[EvidenceSource],
    frame: FrameOfDiscernment
) -> List[MassDistribution]:
    """Ask every source for its distribution over frame."""
    return [source.mass_distribution(frame) for source in sources]
