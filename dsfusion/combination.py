"""
Combination Engine for dsfusion

Stateless combination rules that fuse two or more mass distributions over the
same frame of discernment into one JointMassDistribution.

Rules:
- Dempster: conjunctive combination normalized by 1 - K, folded left to right
- Yager: conjunctive combination that keeps conflict unnormalized and hands
  the accumulated conflict to the universal element at the final step
- Average: arithmetic mean of the bpa of every element
- Distance: Chen-Shi credibility-weighted average, then N - 1 Dempster steps

Every rule is a pure function: inputs are never mutated and nothing is kept
between calls. Failures raise an EvidenceError subclass; `try_combine` turns
them into CombinationOutcome values.
"""

import logging
import math
from dataclasses import dataclass
from functools import partial, reduce
from itertools import combinations
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DEFAULT_CONFIG, FusionConfig
from .element import Element, union_of_supports
from .errors import (
    CombinationNotPossible,
    DegenerateDistance,
    ErrorKind,
    EvidenceError,
    InvalidResult,
    MalformedFrame,
    TotalConflict,
)
from .frame import FrameOfDiscernment
from .mass import (
    FocalElement,
    JointMassDistribution,
    JointOperator,
    MassDistribution,
    sorted_focal_elements,
)


logger = logging.getLogger(__name__)

RuleLike = Union[str, JointOperator]


def _check_inputs(
    masses: Iterable[MassDistribution]
) -> Tuple[List[MassDistribution], FrameOfDiscernment]:
    """Validate the common preconditions of every rule."""
    masses = list(masses)
    if len(masses) < 2:
        raise CombinationNotPossible(
            f"It's not possible to combine {len(masses)} mass distribution(s); "
            f"at least two are required"
        )

    for mass in masses:
        if not isinstance(mass, MassDistribution):
            raise TypeError(f"Expected MassDistribution, got {type(mass)}")

    frame = masses[0].frame
    for index, mass in enumerate(masses[1:], start=1):
        if mass.frame != frame:
            raise MalformedFrame(
                f"Distribution {index} uses frame {mass.frame}, expected {frame}"
            )

    if not union_of_supports(masses):
        raise MalformedFrame("Union of supports of the input distributions is empty")

    return masses, frame


def _validated(
    joint: JointMassDistribution,
    config: FusionConfig
) -> JointMassDistribution:
    if not joint.is_valid(config.validation.tolerance):
        raise InvalidResult(
            f"{joint!r} is not valid: bpa sums to {joint.total_bpa:.6f}"
        )
    return joint


def _retagged(joint: MassDistribution, operator: JointOperator) -> JointMassDistribution:
    return JointMassDistribution(joint.focal_elements, joint.frame, operator)


def conflict(m1: MassDistribution, m2: MassDistribution) -> float:
    """
    Compute the conflict K between two distributions without combining.

    K = sum of m1(A) * m2(B) over all pairs with A ∩ B = ∅

    Args:
        m1, m2: Mass distributions

    Returns:
        Conflict level K in [0, 1]
    """
    k = 0.0
    for fe1 in m1:
        for fe2 in m2:
            if fe1.element.intersection(fe2.element).is_empty:
                k += fe1.bpa * fe2.bpa
    return k


def intersection_masses(
    m1: MassDistribution,
    m2: MassDistribution
) -> Tuple[Dict[Element, float], float]:
    """
    Accumulate the products of every pair of focal elements onto their
    intersection.

    The result covers every element of the union of the two supports (with 0.0
    where nothing intersects onto it) plus any non-empty intersection that
    appears in neither support.

    Returns:
        (unnormalized masses per element, conflict K)
    """
    masses: Dict[Element, float] = {e: 0.0 for e in union_of_supports((m1, m2))}
    k = 0.0

    for fe1 in m1:
        for fe2 in m2:
            product = fe1.bpa * fe2.bpa
            common = fe1.element.intersection(fe2.element)
            if common.is_empty:
                k += product
            else:
                masses[common] = masses.get(common, 0.0) + product

    return masses, k


def dempster_combine(
    m1: MassDistribution,
    m2: MassDistribution,
    config: Optional[FusionConfig] = None
) -> JointMassDistribution:
    """
    Combine two distributions using Dempster's rule of combination.

    Algorithm:
        1. For each pair (A, B) from m1, m2:
           - If A ∩ B ≠ ∅: accumulate m1(A) * m2(B) to A ∩ B
           - If A ∩ B = ∅: accumulate to conflict K
        2. Normalize: m12(C) = m12(C) / (1 - K)

    1 - K is taken as the non-conflicting mass actually accumulated, so the
    rounding drift of a previous fold step is not amplified by 1 / (1 - K).

    Raises:
        TotalConflict: If K = 1
        InvalidResult: If the inputs do not carry unit mass
    """
    config = config or DEFAULT_CONFIG
    masses, k = intersection_masses(m1, m2)

    normalization_factor = math.fsum(masses.values())
    if normalization_factor <= config.combination.total_conflict_epsilon:
        raise TotalConflict(
            f"Total conflict between {m1!r} and {m2!r}: K = {k:.5f}"
        )

    total = m1.total_bpa * m2.total_bpa
    if abs(total - 1.0) > config.validation.tolerance:
        raise InvalidResult(
            f"Combination of {m1!r} and {m2!r} is not valid: inputs carry "
            f"{total:.6f} total mass"
        )

    combined = {e: v / normalization_factor for e, v in masses.items()}
    logger.debug(f"Dempster step: K={k:.5f}, {len(combined)} elements")

    joint = JointMassDistribution(
        sorted_focal_elements(combined), m1.frame, JointOperator.DEMPSTER
    )
    return _validated(joint, config)


def dempster(
    masses: Sequence[MassDistribution],
    config: Optional[FusionConfig] = None
) -> JointMassDistribution:
    """
    Combine distributions with Dempster's rule, folding left to right.

    ((m1 ⊕ m2) ⊕ m3) ⊕ ... ⊕ mN

    Args:
        masses: Two or more distributions over the same frame
        config: Engine configuration

    Returns:
        JointMassDistribution tagged DEMPSTER
    """
    config = config or DEFAULT_CONFIG
    masses, _ = _check_inputs(masses)
    return reduce(partial(dempster_combine, config=config), masses)


def yager(
    masses: Sequence[MassDistribution],
    config: Optional[FusionConfig] = None
) -> JointMassDistribution:
    """
    Combine distributions with Yager's rule.

    Each pairwise step accumulates intersection mass without dividing by
    1 - K; the conflict measured between the running result and the next
    input is summed across steps. Only the final step adds the accumulated
    conflict to the universal element, so intermediate results are not valid
    distributions.

    The fold is order-sensitive: permuting the inputs can change the result.

    Args:
        masses: Two or more distributions over the same frame
        config: Engine configuration

    Returns:
        JointMassDistribution tagged YAGER
    """
    config = config or DEFAULT_CONFIG
    masses, frame = _check_inputs(masses)

    joint: MassDistribution = masses[0]
    total_conflict = 0.0
    last = len(masses) - 1

    for index, mass in enumerate(masses[1:], start=1):
        combined, k = intersection_masses(joint, mass)
        total_conflict += k

        if index == last:
            universal = frame.universal
            combined[universal] = combined.get(universal, 0.0) + total_conflict

        joint = JointMassDistribution(
            sorted_focal_elements(combined), frame, JointOperator.YAGER
        )
        logger.debug(f"Yager step {index}: K={k:.5f}, accumulated={total_conflict:.5f}")

    return _validated(joint, config)


def average(
    masses: Sequence[MassDistribution],
    config: Optional[FusionConfig] = None
) -> JointMassDistribution:
    """
    Combine distributions by averaging the bpa of every element.

    m(A) = (sum_i m_i(A)) / N, with m_i(A) = 0 where source i has no mass on A.
    The sum is exactly rounded, so the result does not depend on input order.

    Args:
        masses: Two or more distributions over the same frame
        config: Engine configuration

    Returns:
        JointMassDistribution tagged AVERAGE
    """
    config = config or DEFAULT_CONFIG
    masses, frame = _check_inputs(masses)
    n = len(masses)

    averaged = {
        e: math.fsum(m.bpa(e) for m in masses) / n
        for e in union_of_supports(masses)
    }

    joint = JointMassDistribution(
        sorted_focal_elements(averaged), frame, JointOperator.AVERAGE
    )
    return _validated(joint, config)


def scalar_product(m1: MassDistribution, m2: MassDistribution) -> float:
    """
    Scalar product of two distributions seen as vectors over the power set.

    <m1, m2> = sum of m1(A) * m2(B) * |A ∩ B| / |A ∪ B|

    Raises:
        DegenerateDistance: If either distribution has no focal elements
    """
    if len(m1) == 0 or len(m2) == 0:
        raise DegenerateDistance(
            "Cannot compute the scalar product of a distribution without focal elements"
        )

    product = 0.0
    for fe1 in m1:
        for fe2 in m2:
            union_size = len(fe1.element.union(fe2.element))
            if union_size == 0:
                continue
            intersection_size = len(fe1.element.intersection(fe2.element))
            product += fe1.bpa * fe2.bpa * intersection_size / union_size
    return product


def distance(m1: MassDistribution, m2: MassDistribution) -> float:
    """
    Distance between two distributions.

    d(m1, m2) = sqrt((||m1||² + ||m2||² - 2<m1, m2>) / 2)
    """
    squared = (scalar_product(m1, m1) + scalar_product(m2, m2)
               - 2 * scalar_product(m1, m2)) / 2
    # Rounding can push identical distributions slightly below zero
    return math.sqrt(max(squared, 0.0))


def similarity(m1: MassDistribution, m2: MassDistribution) -> float:
    """Similarity (cos(d·π) + 1) / 2, in [0, 1]."""
    return (math.cos(distance(m1, m2) * math.pi) + 1) / 2


def similarity_matrix(masses: Sequence[MassDistribution]) -> np.ndarray:
    """N×N symmetric similarity matrix with ones on the diagonal."""
    n = len(masses)
    matrix = np.eye(n)
    for i, j in combinations(range(n), 2):
        matrix[i, j] = matrix[j, i] = similarity(masses[i], masses[j])
    return matrix


def support_degrees(matrix: np.ndarray) -> np.ndarray:
    """Support of each source: sum of the off-diagonal similarities of its row."""
    return matrix.sum(axis=1) - np.diag(matrix)


def credibility_degrees(support: np.ndarray) -> np.ndarray:
    """
    Credibility of each source: its share of the total support.

    When no source supports any other (all similarities 0) every source gets
    the same credibility 1/N.
    """
    support = np.asarray(support, dtype=float)
    total = support.sum()
    if total <= 0:
        logger.warning("Total support is 0; falling back to equal credibility")
        return np.full(len(support), 1.0 / len(support))
    return support / total


def mass_matrix(
    masses: Sequence[MassDistribution],
    domain: Sequence[Element]
) -> np.ndarray:
    """Matrix of shape (N, len(domain)) holding m_i(domain[j])."""
    return np.array([[m.bpa(e) for e in domain] for m in masses], dtype=float)


def weighted_average(
    masses: Sequence[MassDistribution],
    weights: Sequence[float]
) -> JointMassDistribution:
    """
    Weighted average distribution m(A) = sum_i w_i * m_i(A) over the union of
    supports. Not validated.
    """
    domain = union_of_supports(masses)
    values = np.asarray(weights, dtype=float) @ mass_matrix(masses, domain)
    focal = [FocalElement(e, float(v)) for e, v in zip(domain, values)]
    return JointMassDistribution(focal, masses[0].frame, JointOperator.DISTANCE)


def distance_weighted(
    masses: Sequence[MassDistribution],
    config: Optional[FusionConfig] = None
) -> JointMassDistribution:
    """
    Combine distributions with the Chen-Shi distance evidence rule.

    Algorithm:
        1. Similarity matrix from the distance between every pair of sources
        2. Support degree of each source (off-diagonal row sum)
        3. Credibility of each source (support / total support)
        4. Credibility-weighted average distribution W
        5. W ⊕ W, then (N - 2) more ⊕ W: N - 1 Dempster combinations, as if
           the consensus had been observed N times

    Args:
        masses: Two or more distributions over the same frame
        config: Engine configuration

    Returns:
        JointMassDistribution tagged DISTANCE
    """
    config = config or DEFAULT_CONFIG
    masses, _ = _check_inputs(masses)

    matrix = similarity_matrix(masses)
    support = support_degrees(matrix)
    credibility = credibility_degrees(support)
    logger.debug(f"Credibility degrees: {np.round(credibility, 5).tolist()}")

    weighted = _validated(weighted_average(masses, credibility), config)

    joint = dempster_combine(weighted, weighted, config)
    for _ in range(len(masses) - 2):
        joint = dempster_combine(joint, weighted, config)

    return _validated(_retagged(joint, JointOperator.DISTANCE), config)


RULES: Dict[JointOperator, Callable[..., JointMassDistribution]] = {
    JointOperator.DEMPSTER: dempster,
    JointOperator.YAGER: yager,
    JointOperator.AVERAGE: average,
    JointOperator.DISTANCE: distance_weighted,
}


def combine(
    masses: Sequence[MassDistribution],
    rule: RuleLike = JointOperator.DEMPSTER,
    config: Optional[FusionConfig] = None
) -> JointMassDistribution:
    """Combine distributions with the named rule."""
    return RULES[JointOperator.from_name(rule)](masses, config)


@dataclass(frozen=True)
class CombinationOutcome:
    """Result of a combination: either a distribution or the error it hit."""
    rule: JointOperator
    distribution: Optional[JointMassDistribution] = None
    error: Optional[EvidenceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> JointMassDistribution:
        """Return the distribution, raising the recorded error if there is one."""
        if self.error is not None:
            raise self.error
        return self.distribution


def try_combine(
    masses: Sequence[MassDistribution],
    rule: RuleLike = JointOperator.DEMPSTER,
    config: Optional[FusionConfig] = None
) -> CombinationOutcome:
    """
    Combine distributions, reporting evidence errors as a value.

    Returns:
        CombinationOutcome with either `distribution` or `error` set
    """
    operator = JointOperator.from_name(rule)
    try:
        return CombinationOutcome(operator, distribution=RULES[operator](masses, config))
    except EvidenceError as e:
        logger.info(f"{operator.value} combination failed ({e.kind.value}): {e}")
        return CombinationOutcome(operator, error=e)


def combine_all(
    masses: Sequence[MassDistribution],
    rules: Optional[Iterable[RuleLike]] = None,
    config: Optional[FusionConfig] = None
) -> Dict[JointOperator, CombinationOutcome]:
    """Run several rules over the same inputs; all rules by default."""
    operators = [JointOperator.from_name(r) for r in rules] if rules else list(JointOperator)
    return {op: try_combine(masses, op, config) for op in operators}
