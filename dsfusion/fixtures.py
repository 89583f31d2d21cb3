"""
Reader and writer for the line-oriented fusion fixture format.

A fixture lists a frame, the input distributions and, optionally, the
expected output of each combination rule:

    $Frame of Discernment
    {A;B;C}
    $Input-2
    {A-0.6;A,B-0.4}
    {B-0.3;A,B,C-0.7}
    $Output DEMPSTER
    {A-0.5122;B-0.14634;A,B-0.34146;A,B,C-0}

Hypothesis names are comma-separated within an element, elements are
semicolon-separated and an element is separated from its bpa by a hyphen.
Input lines are raw evidence and are normalized (missing mass goes to the
universal element); output lines are read as they are.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .frame import FrameOfDiscernment
from .mass import (
    FocalElement,
    JointMassDistribution,
    JointOperator,
    MassDistribution,
)


FRAME_HEADER = "$Frame of Discernment"
INPUT_HEADER = "$Input"
OUTPUT_HEADER = "$Output"

_FOCAL_ELEMENT_RE = re.compile(r'^(?P<names>[^-]+)-(?P<bpa>.+)$')
_INPUT_HEADER_RE = re.compile(r'^\$Input\s*-\s*(?P<count>\d+)$')


class FixtureFormatError(ValueError):
    """A fixture file does not follow the expected format."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


@dataclass
class FusionFixture:
    """A frame, its input distributions and the expected rule outputs."""
    frame: FrameOfDiscernment
    inputs: List[MassDistribution]
    expected: Dict[JointOperator, JointMassDistribution] = field(default_factory=dict)
    name: str = ""


def _strip_braces(text: str) -> str:
    return text.strip().replace("{", "").replace("}", "").strip()


def _split_names(text: str) -> List[str]:
    return [n.strip() for n in re.split(r'[;,]', _strip_braces(text)) if n.strip()]


def parse_frame(text: str) -> FrameOfDiscernment:
    """Parse a frame line such as "{A;B;C}"."""
    return FrameOfDiscernment.from_names(_split_names(text))


def parse_focal_elements(
    text: str,
    frame: FrameOfDiscernment,
    line_number: Optional[int] = None
) -> List[FocalElement]:
    """Parse "{A,B-0.5;C-0.4}" into focal elements of frame."""
    focal = []
    for part in _strip_braces(text).split(";"):
        part = part.strip()
        if not part:
            continue
        match = _FOCAL_ELEMENT_RE.match(part)
        if match is None:
            raise FixtureFormatError(f"Expected <names>-<bpa>, got {part!r}", line_number)
        try:
            bpa = float(match.group('bpa'))
        except ValueError:
            raise FixtureFormatError(f"Invalid bpa {match.group('bpa')!r}", line_number)
        names = [n.strip() for n in match.group('names').split(",") if n.strip()]
        if not names:
            raise FixtureFormatError(f"Element without hypotheses in {part!r}", line_number)
        focal.append(FocalElement(frame.element(*names), bpa))
    return focal


def parse_distribution(
    text: str,
    frame: FrameOfDiscernment,
    normalize: bool = True,
    line_number: Optional[int] = None
) -> MassDistribution:
    """
    Parse one distribution line.

    Args:
        text: e.g. "{H1,H2-0.5;H3-0.4}"
        frame: Frame the hypotheses belong to
        normalize: Treat the line as raw evidence and normalize it
        line_number: Line number used in error messages

    Returns:
        MassDistribution
    """
    focal = parse_focal_elements(text, frame, line_number)
    if not focal:
        raise FixtureFormatError("Empty mass distribution", line_number)
    if normalize:
        return MassDistribution.from_evidence(focal, frame)
    return MassDistribution(focal, frame)


def parse_fixture(text: str, name: str = "") -> FusionFixture:
    """
    Parse a whole fixture.

    Raises:
        FixtureFormatError: On structural errors
        MalformedFrame: If a distribution names a hypothesis outside the frame
    """
    lines: List[Tuple[int, str]] = [
        (n, line.strip()) for n, line in enumerate(text.splitlines(), start=1)
        if line.strip()
    ]

    frame: Optional[FrameOfDiscernment] = None
    inputs: List[MassDistribution] = []
    expected: Dict[JointOperator, JointMassDistribution] = {}

    def body(index: int, what: str) -> Tuple[int, str]:
        if index >= len(lines):
            raise FixtureFormatError(f"Missing {what} line at end of fixture")
        return lines[index]

    def require_frame(line_number: int) -> FrameOfDiscernment:
        if frame is None:
            raise FixtureFormatError("Distribution before the frame of discernment", line_number)
        return frame

    i = 0
    while i < len(lines):
        line_number, line = lines[i]

        if line.startswith(FRAME_HEADER):
            _, frame_line = body(i + 1, "frame")
            frame = parse_frame(frame_line)
            i += 2

        elif line.startswith(INPUT_HEADER):
            match = _INPUT_HEADER_RE.match(line)
            if match is None:
                raise FixtureFormatError(f"Expected $Input-<n>, got {line!r}", line_number)
            current_frame = require_frame(line_number)
            count = int(match.group('count'))
            for k in range(count):
                n, input_line = body(i + 1 + k, "input")
                if input_line.startswith("$"):
                    raise FixtureFormatError(
                        f"Expected {count} inputs, found {k}", n
                    )
                inputs.append(parse_distribution(input_line, current_frame, True, n))
            i += 1 + count

        elif line.startswith(OUTPUT_HEADER):
            rule = line[len(OUTPUT_HEADER):].strip()
            try:
                operator = JointOperator.from_name(rule)
            except ValueError as e:
                raise FixtureFormatError(str(e), line_number)
            current_frame = require_frame(line_number)
            n, output_line = body(i + 1, f"{rule} output")
            distribution = parse_distribution(output_line, current_frame, False, n)
            expected[operator] = JointMassDistribution(
                distribution.focal_elements, current_frame, operator
            )
            i += 2

        else:
            raise FixtureFormatError(f"Unexpected line {line!r}", line_number)

    if frame is None:
        raise FixtureFormatError("Fixture has no frame of discernment")

    return FusionFixture(frame=frame, inputs=inputs, expected=expected, name=name)


def load_fixture(path: Union[str, Path]) -> FusionFixture:
    """Load a fixture from a file."""
    path = Path(path)
    return parse_fixture(path.read_text(encoding="utf-8"), name=path.stem)


def format_distribution(distribution: MassDistribution) -> str:
    """Write a distribution as a fixture line, e.g. "{A-0.6;A,B-0.4}"."""
    parts = [
        f"{','.join(fe.element.names)}-{fe.bpa:.5g}"
        for fe in distribution
    ]
    return "{" + ";".join(parts) + "}"


def format_fixture(fixture: FusionFixture) -> str:
    """Write a whole fixture, expected outputs in rule order."""
    lines = [FRAME_HEADER, str(fixture.frame), f"{INPUT_HEADER}-{len(fixture.inputs)}"]
    lines.extend(format_distribution(m) for m in fixture.inputs)
    for operator in JointOperator:
        if operator in fixture.expected:
            lines.append(f"{OUTPUT_HEADER} {operator.value}")
            lines.append(format_distribution(fixture.expected[operator]))
    return "\n".join(lines) + "\n"
