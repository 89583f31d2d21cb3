"""
Elements of the power set and their set algebra.

An Element is a duplicate-free set of hypotheses. Equality, hashing and
ordering are derived from the hypothesis set itself: the canonical sort key is
(size, sorted tuple of names), so {A} < {B} < {A,B} < {A,B,C} and names that
share a prefix ("H1", "H10") never collide the way a joined-string compare
would.

Disjoint intersections yield EMPTY_ELEMENT, an explicit empty-set value that
conflict bookkeeping can test for with `is_empty`.
"""

from functools import total_ordering
from typing import Iterable, Iterator, List, Tuple

from .hypothesis import Hypothesis, HypothesisLike, as_hypothesis


@total_ordering
class Element:
    """A subset of the hypotheses of a frame of discernment."""

    __slots__ = ('_hypotheses', '_key')

    def __init__(self, hypotheses: Iterable[HypothesisLike] = ()):
        hyps = [as_hypothesis(h) for h in hypotheses]
        unique = frozenset(hyps)
        if len(unique) != len(hyps):
            names = [h.name for h in hyps]
            raise ValueError(f"Element has duplicate hypotheses: {names}")
        ordered = tuple(sorted(unique))
        object.__setattr__(self, '_hypotheses', unique)
        object.__setattr__(self, '_key', (len(ordered), tuple(h.name for h in ordered)))

    def __setattr__(self, name, value):
        raise AttributeError("Element is immutable")

    @property
    def hypotheses(self) -> Tuple[Hypothesis, ...]:
        """Hypotheses in canonical (name) order."""
        return tuple(sorted(self._hypotheses))

    @property
    def names(self) -> Tuple[str, ...]:
        return self._key[1]

    @property
    def sort_key(self) -> Tuple[int, Tuple[str, ...]]:
        return self._key

    @property
    def is_empty(self) -> bool:
        return not self._hypotheses

    def intersection(self, other: 'Element') -> 'Element':
        """Common hypotheses, or EMPTY_ELEMENT when disjoint."""
        common = self._hypotheses & other._hypotheses
        if not common:
            return EMPTY_ELEMENT
        return Element(common)

    def union(self, other: 'Element') -> 'Element':
        """All hypotheses of both elements."""
        return Element(self._hypotheses | other._hypotheses)

    def issubset(self, other: 'Element') -> bool:
        return self._hypotheses <= other._hypotheses

    def isdisjoint(self, other: 'Element') -> bool:
        return self._hypotheses.isdisjoint(other._hypotheses)

    def __contains__(self, item) -> bool:
        if isinstance(item, str):
            return item in self._key[1]
        return item in self._hypotheses

    def __iter__(self) -> Iterator[Hypothesis]:
        return iter(self.hypotheses)

    def __len__(self) -> int:
        return len(self._hypotheses)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Element):
            return NotImplemented
        return self._hypotheses == other._hypotheses

    def __lt__(self, other: 'Element') -> bool:
        if not isinstance(other, Element):
            return NotImplemented
        return self._key < other._key

    def __hash__(self) -> int:
        return hash(self._hypotheses)

    def __repr__(self) -> str:
        return f"Element({list(self.names)})"

    def __str__(self) -> str:
        if self.is_empty:
            return "∅"
        return "{" + ",".join(self.names) + "}"


# The empty set: result of intersecting disjoint elements. Never a focal element.
EMPTY_ELEMENT = Element()


def intersection(e1: Element, e2: Element) -> Element:
    """Hypotheses common to both elements, or EMPTY_ELEMENT if none."""
    return e1.intersection(e2)


def union(e1: Element, e2: Element) -> Element:
    """Hypotheses present in either element, deduplicated."""
    return e1.union(e2)


def canonical_elements(elements: Iterable[Element]) -> List[Element]:
    """Deduplicate elements and return them in canonical order."""
    return sorted(set(elements), key=lambda e: e.sort_key)


def union_of_supports(distributions: Iterable) -> Tuple[Element, ...]:
    """
    Deduplicated union of every focal element across the distributions.

    This is the common iteration domain of every combination rule. The result
    is in canonical order so that combination output is deterministic.

    Args:
        distributions: Iterable of MassDistribution

    Returns:
        Tuple of distinct Elements in canonical order
    """
    elements = []
    for distribution in distributions:
        elements.extend(distribution.elements)
    return tuple(canonical_elements(elements))
