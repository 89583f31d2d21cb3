"""Atomic hypotheses, the leaf value type of a frame of discernment."""

from dataclasses import dataclass
from typing import Union


# Characters reserved by the fixture format
RESERVED_CHARACTERS = frozenset(",;-{}$")


@dataclass(frozen=True, order=True)
class Hypothesis:
    """An atomic, named proposition. Equal, hashed and ordered by name."""
    name: str

    def __post_init__(self):
        if not isinstance(self.name, str):
            raise TypeError(f"Hypothesis name must be a string, got {type(self.name)}")
        if not self.name or self.name != self.name.strip():
            raise ValueError(f"Invalid hypothesis name: {self.name!r}")
        if RESERVED_CHARACTERS & set(self.name):
            raise ValueError(
                f"Hypothesis name {self.name!r} contains a reserved character"
            )

    def __str__(self) -> str:
        return self.name


HypothesisLike = Union[Hypothesis, str]


def as_hypothesis(value: HypothesisLike) -> Hypothesis:
    """Coerce a name or Hypothesis into a Hypothesis."""
    if isinstance(value, Hypothesis):
        return value
    return Hypothesis(value)
