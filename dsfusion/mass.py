"""
Mass Distributions for dsfusion

A mass distribution (body of evidence) assigns basic probability (bpa) to
elements of the power set of a frame of discernment.

Key concepts:
- Focal element: an (Element, bpa) pair with bpa rounded to 5 significant digits
- Validity: sum of bpa equals 1 within VALIDITY_TOLERANCE
- Normalization: missing mass from raw evidence goes to the universal element
- Belief function: Bel(A) = sum of m(B) for all B ⊆ A
- Plausibility: Pl(A) = sum of m(B) for all B ∩ A ≠ ∅
"""

import math
import numbers
from dataclasses import dataclass
from decimal import Context, ROUND_HALF_UP
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Mapping, Tuple, Union

from .element import Element, canonical_elements
from .errors import InvalidDistribution
from .frame import FrameOfDiscernment
from .hypothesis import Hypothesis


# Significant digits kept for every stored bpa
BPA_SIGNIFICANT_DIGITS = 5

# Allowed deviation of the bpa sum from 1.0; absorbs repeated rounding
VALIDITY_TOLERANCE = 1e-4

# Residual mass below this is float noise, not ignorance
RESIDUAL_EPSILON = 1e-12

ElementLike = Union[Element, str, Iterable[str]]


def round_bpa(value: float, digits: int = BPA_SIGNIFICANT_DIGITS) -> float:
    """
    Round a mass value to a fixed number of significant digits.

    Rounding is half-up on the exact decimal expansion of the float, so
    repeated combination does not accumulate binary drift.

    Args:
        value: Mass value
        digits: Significant digits to keep

    Returns:
        Rounded float
    """
    if not isinstance(value, numbers.Real) or isinstance(value, bool):
        raise TypeError(f"bpa must be a real number, got {type(value)}")
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"bpa must be finite, got {value}")
    if value == 0.0:
        return 0.0
    context = Context(prec=digits, rounding=ROUND_HALF_UP)
    return float(context.create_decimal(value))


@dataclass(frozen=True)
class FocalElement:
    """An element together with the mass a source assigns to it."""
    element: Element
    bpa: float

    def __post_init__(self):
        if not isinstance(self.element, Element):
            raise TypeError(f"FocalElement needs an Element, got {type(self.element)}")
        if self.element.is_empty:
            raise InvalidDistribution("Empty set (∅) cannot have mass in D-S theory")
        bpa = round_bpa(self.bpa)
        if bpa < 0:
            raise InvalidDistribution(f"Negative mass {bpa} for element {self.element}")
        if bpa > 1.0 + VALIDITY_TOLERANCE:
            raise InvalidDistribution(f"Mass {bpa} above 1 for element {self.element}")
        object.__setattr__(self, 'bpa', bpa)

    def __str__(self) -> str:
        return f"{self.element}-{self.bpa}"


class JointOperator(Enum):
    """Combination rule that produced a JointMassDistribution."""
    DEMPSTER = "DEMPSTER"
    YAGER = "YAGER"
    AVERAGE = "AVERAGE"
    DISTANCE = "DISTANCE"

    @classmethod
    def from_name(cls, name: Union[str, 'JointOperator']) -> 'JointOperator':
        """Look up an operator by case-insensitive name."""
        if isinstance(name, cls):
            return name
        try:
            return cls[str(name).strip().upper()]
        except KeyError:
            valid = ", ".join(op.value.lower() for op in cls)
            raise ValueError(f"Unknown combination rule: {name!r} (expected one of {valid})")


def as_element(key: ElementLike, frame: FrameOfDiscernment) -> Element:
    """
    Coerce an element-like key into an Element of frame.

    A string is a single hypothesis name; any other iterable is a collection
    of names.
    """
    if isinstance(key, Element):
        return frame.validate(key)
    if isinstance(key, (str, Hypothesis)):
        return frame.element(key)
    return frame.element(*key)


class MassDistribution:
    """
    An ordered, duplicate-free collection of focal elements over one frame.

    Instances are immutable. Construction checks frame membership and
    duplicates but not the sum, because intermediate combination steps may
    legitimately hold unnormalized mass; use `is_valid` for the invariant and
    `from_evidence` to build a valid distribution from raw evidence.
    """

    __slots__ = ('_frame', '_focal_elements', '_masses')

    def __init__(
        self,
        focal_elements: Iterable[FocalElement],
        frame: FrameOfDiscernment
    ):
        if not isinstance(frame, FrameOfDiscernment):
            raise TypeError(f"Expected a FrameOfDiscernment, got {type(frame)}")

        focal = tuple(focal_elements)
        masses: Dict[Element, float] = {}
        for focal_element in focal:
            if not isinstance(focal_element, FocalElement):
                raise TypeError(f"Expected FocalElement, got {type(focal_element)}")
            frame.validate(focal_element.element)
            if focal_element.element in masses:
                raise InvalidDistribution(
                    f"Element {focal_element.element} appears more than once"
                )
            masses[focal_element.element] = focal_element.bpa

        self._frame = frame
        self._focal_elements = focal
        self._masses = masses

    @classmethod
    def from_evidence(
        cls,
        focal_elements: Iterable[FocalElement],
        frame: FrameOfDiscernment,
        tolerance: float = VALIDITY_TOLERANCE
    ) -> 'MassDistribution':
        """Build a valid distribution from raw evidence (see `normalize`)."""
        return cls(_normalized_focal_elements(focal_elements, frame, tolerance), frame)

    @classmethod
    def from_dict(
        cls,
        masses: Mapping[ElementLike, float],
        frame: FrameOfDiscernment,
        normalize: bool = True
    ) -> 'MassDistribution':
        """
        Build a distribution from a mapping of element-like keys to bpa.

        Args:
            masses: e.g. {"A": 0.6, ("A", "B"): 0.3}
            frame: Frame the elements belong to
            normalize: Assign the missing mass to the universal element

        Returns:
            MassDistribution
        """
        focal = [FocalElement(as_element(k, frame), v) for k, v in masses.items()]
        if normalize:
            return cls.from_evidence(focal, frame)
        return cls(focal, frame)

    @property
    def frame(self) -> FrameOfDiscernment:
        return self._frame

    @property
    def focal_elements(self) -> Tuple[FocalElement, ...]:
        return self._focal_elements

    @property
    def elements(self) -> Tuple[Element, ...]:
        return tuple(fe.element for fe in self._focal_elements)

    @property
    def total_bpa(self) -> float:
        return math.fsum(self._masses.values())

    def bpa(self, element: ElementLike) -> float:
        """Mass assigned to element, 0.0 if it is not a focal element."""
        if not isinstance(element, Element):
            element = as_element(element, self._frame)
        return self._masses.get(element, 0.0)

    def is_valid(self, tolerance: float = VALIDITY_TOLERANCE) -> bool:
        return is_valid(self, tolerance)

    def to_dict(self) -> Dict[Element, float]:
        return dict(self._masses)

    def belief(self, element: ElementLike) -> float:
        """Bel(A) = sum of m(B) for all B ⊆ A."""
        if not isinstance(element, Element):
            element = as_element(element, self._frame)
        return math.fsum(m for b, m in self._masses.items() if b.issubset(element))

    def plausibility(self, element: ElementLike) -> float:
        """Pl(A) = sum of m(B) for all B ∩ A ≠ ∅."""
        if not isinstance(element, Element):
            element = as_element(element, self._frame)
        return math.fsum(m for b, m in self._masses.items() if not b.isdisjoint(element))

    def belief_intervals(self) -> Dict[Element, Tuple[float, float]]:
        """[Bel, Pl] for every focal element, rounded like bpa values."""
        return {
            fe.element: (round_bpa(self.belief(fe.element)),
                         round_bpa(self.plausibility(fe.element)))
            for fe in self._focal_elements
        }

    def pignistic_distribution(self) -> Dict[Hypothesis, float]:
        """
        Pignistic (betting) probability of every hypothesis of the frame.

        BetP(h) = sum over B containing h of m(B) / |B|
        """
        betp = {h: 0.0 for h in self._frame}
        for element, mass in self._masses.items():
            share = mass / len(element)
            for hypothesis in element:
                betp[hypothesis] += share
        return betp

    def almost_equal(
        self,
        other: 'MassDistribution',
        tolerance: float = VALIDITY_TOLERANCE
    ) -> bool:
        """bpa-for-bpa equality within tolerance; missing elements count as 0."""
        if self._frame != other.frame:
            return False
        domain = set(self._masses) | set(other.to_dict())
        return all(abs(self.bpa(e) - other.bpa(e)) <= tolerance for e in domain)

    def __iter__(self) -> Iterator[FocalElement]:
        return iter(self._focal_elements)

    def __len__(self) -> int:
        return len(self._focal_elements)

    def __eq__(self, other) -> bool:
        if not isinstance(other, MassDistribution):
            return NotImplemented
        return self._frame == other.frame and self._masses == other.to_dict()

    __hash__ = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({mass_to_string(self)})"


class JointMassDistribution(MassDistribution):
    """A mass distribution produced by a combination rule."""

    __slots__ = ('_operator',)

    def __init__(
        self,
        focal_elements: Iterable[FocalElement],
        frame: FrameOfDiscernment,
        operator: JointOperator
    ):
        super().__init__(focal_elements, frame)
        self._operator = JointOperator.from_name(operator)

    @property
    def operator(self) -> JointOperator:
        return self._operator

    def __repr__(self) -> str:
        return f"JointMassDistribution[{self._operator.value}]({mass_to_string(self)})"


def is_valid(distribution: MassDistribution, tolerance: float = VALIDITY_TOLERANCE) -> bool:
    """
    Check the validity invariant |sum(bpa) - 1| <= tolerance.

    Args:
        distribution: Distribution to check
        tolerance: Acceptable deviation from 1.0

    Returns:
        True if the distribution is a proper body of evidence
    """
    if len(distribution) == 0:
        return False
    return abs(distribution.total_bpa - 1.0) <= tolerance


def _normalized_focal_elements(
    focal_elements: Iterable[FocalElement],
    frame: FrameOfDiscernment,
    tolerance: float
) -> List[FocalElement]:
    merged: Dict[Element, float] = {}
    for focal_element in focal_elements:
        element = frame.validate(focal_element.element)
        merged[element] = merged.get(element, 0.0) + focal_element.bpa

    residual = 1.0 - math.fsum(merged.values())
    if residual < -tolerance:
        raise InvalidDistribution(
            f"Evidence assigns {1.0 - residual:.5f} total mass, more than 1"
        )
    if residual > RESIDUAL_EPSILON:
        universal = frame.universal
        merged[universal] = merged.get(universal, 0.0) + residual

    return [FocalElement(e, m) for e, m in merged.items()]


def normalize(
    focal_elements: Iterable[FocalElement],
    frame: FrameOfDiscernment,
    tolerance: float = VALIDITY_TOLERANCE
) -> MassDistribution:
    """
    Turn raw evidence into a valid mass distribution.

    Repeated elements are merged by summing their bpa, and the residual
    1 - sum(bpa) is assigned to the universal element of the frame (total
    ignorance).

    Args:
        focal_elements: Raw, possibly incomplete evidence
        frame: Frame of discernment of the evidence
        tolerance: Excess mass tolerated before the evidence is rejected

    Returns:
        MassDistribution summing to 1

    Raises:
        InvalidDistribution: If the evidence already assigns more than unit mass
        MalformedFrame: If an element is not part of the frame
    """
    return MassDistribution.from_evidence(focal_elements, frame, tolerance)


def mass_to_string(distribution: MassDistribution) -> str:
    """
    Convert a distribution to a readable string.

    Args:
        distribution: The distribution

    Returns:
        e.g. "m({A})=0.6000, m(Θ)=0.4000"
    """
    universal = distribution.frame.universal
    parts = []
    for focal_element in distribution:
        if focal_element.element == universal:
            set_str = "Θ"
        else:
            set_str = str(focal_element.element)
        parts.append(f"m({set_str})={focal_element.bpa:.4f}")
    return ", ".join(parts)


def sorted_focal_elements(masses: Mapping[Element, float]) -> List[FocalElement]:
    """Focal elements for a mass mapping, in canonical element order."""
    return [FocalElement(e, masses[e]) for e in canonical_elements(masses)]
