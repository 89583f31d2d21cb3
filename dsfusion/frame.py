"""
Frame of Discernment.

The frame is the fixed, ordered universe of mutually exclusive hypotheses a
problem reasons about. Its universal element (every hypothesis at once)
stands for total ignorance.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

from .errors import MalformedFrame
from .element import Element
from .hypothesis import Hypothesis, HypothesisLike, as_hypothesis


@dataclass(frozen=True)
class FrameOfDiscernment:
    """
    The ordered, duplicate-free set of all hypotheses under consideration.

    Created once per problem configuration and read-only afterwards. Two
    frames are equal when they list the same hypotheses in the same order.
    """
    hypotheses: Tuple[Hypothesis, ...]

    def __post_init__(self):
        hyps = tuple(as_hypothesis(h) for h in self.hypotheses)
        if not hyps:
            raise MalformedFrame("Frame of discernment cannot be empty")
        if len(set(hyps)) != len(hyps):
            raise MalformedFrame(
                f"Frame of discernment has duplicate hypotheses: {[h.name for h in hyps]}"
            )
        object.__setattr__(self, 'hypotheses', hyps)

    @classmethod
    def from_names(cls, names: Iterable[HypothesisLike]) -> 'FrameOfDiscernment':
        return cls(tuple(names))

    @property
    def universal(self) -> Element:
        """The element containing every hypothesis (total ignorance)."""
        return Element(self.hypotheses)

    def element(self, *names: HypothesisLike) -> Element:
        """
        Build an element of this frame from hypothesis names.

        Raises:
            MalformedFrame: If a name is not part of the frame
        """
        return self.validate(Element(names))

    def validate(self, element: Element) -> Element:
        """Check that every hypothesis of element belongs to this frame."""
        missing = [h.name for h in element if h not in self.hypotheses]
        if missing:
            raise MalformedFrame(
                f"Hypotheses {missing} are not part of the frame {self}"
            )
        return element

    def __contains__(self, item) -> bool:
        if isinstance(item, Element):
            return all(h in self.hypotheses for h in item)
        if isinstance(item, str):
            return any(h.name == item for h in self.hypotheses)
        return item in self.hypotheses

    def __iter__(self) -> Iterator[Hypothesis]:
        return iter(self.hypotheses)

    def __len__(self) -> int:
        return len(self.hypotheses)

    def __str__(self) -> str:
        return "{" + ";".join(h.name for h in self.hypotheses) + "}"
