"""
Unit Tests for the Fixture Format

Tests cover:
- Parsing frames, inputs and expected outputs
- Normalization of input lines
- Structural errors with line numbers
- Writing distributions and fixtures back out
"""

from pathlib import Path

import pytest

from dsfusion.errors import MalformedFrame
from dsfusion.frame import FrameOfDiscernment
from dsfusion.mass import FocalElement, JointOperator, MassDistribution
from dsfusion.fixtures import (
    FixtureFormatError,
    format_distribution,
    format_fixture,
    load_fixture,
    parse_distribution,
    parse_fixture,
    parse_frame,
)


DATA_DIR = Path(__file__).parent / "data"

SIMPLE_FIXTURE = """\
$Frame of Discernment
{A;B;C}

$Input-2
{A-0.6;A,B-0.4}
{B-0.3}
$Output AVERAGE
{A-0.3;B-0.15;A,B-0.2;A,B,C-0.35}
"""


@pytest.fixture
def frame():
    return FrameOfDiscernment.from_names(["A", "B", "C"])


class TestParseLines:
    """Tests for single-line parsing."""

    def test_parse_frame(self):
        """Frame lines list hypotheses separated by semicolons."""
        frame = parse_frame("{H1;H2;H3}")
        assert [h.name for h in frame] == ["H1", "H2", "H3"]

    def test_parse_distribution(self, frame):
        """Elements are comma-joined names with a hyphenated bpa."""
        m = parse_distribution("{A-0.6;A,B-0.4}", frame)
        assert m.bpa("A") == 0.6
        assert m.bpa(("A", "B")) == 0.4
        assert len(m) == 2

    def test_input_line_normalized(self, frame):
        """Incomplete evidence gets the universal element."""
        m = parse_distribution("{B-0.3}", frame)
        assert m.bpa(frame.universal) == 0.7

    def test_raw_line_kept(self, frame):
        """Without normalization the line is taken as written."""
        m = parse_distribution("{B-0.3}", frame, normalize=False)
        assert len(m) == 1
        assert not m.is_valid()

    def test_zero_and_scientific_bpa(self, frame):
        """Zero masses and exponent notation are accepted."""
        m = parse_distribution("{A-0.99999;B-1e-05;C-0}", frame, normalize=False)
        assert m.bpa("B") == 1e-05
        assert m.bpa("C") == 0.0
        assert len(m) == 3

    def test_whitespace_tolerated(self, frame):
        """Spaces around names and separators are ignored."""
        m = parse_distribution("{ A , B - 0.5 ; C - 0.5 }", frame)
        assert m.bpa(("A", "B")) == 0.5
        assert m.bpa("C") == 0.5

    def test_missing_bpa_raises(self, frame):
        """Every element needs a bpa."""
        with pytest.raises(FixtureFormatError, match="<names>-<bpa>"):
            parse_distribution("{A;B-0.5}", frame)

    def test_bad_bpa_raises(self, frame):
        """bpa must be a number."""
        with pytest.raises(FixtureFormatError, match="Invalid bpa"):
            parse_distribution("{A-half}", frame)

    def test_empty_line_raises(self, frame):
        """A distribution needs at least one element."""
        with pytest.raises(FixtureFormatError, match="Empty"):
            parse_distribution("{}", frame)

    def test_unknown_hypothesis_raises(self, frame):
        """Elements must use the frame's hypotheses."""
        with pytest.raises(MalformedFrame):
            parse_distribution("{D-0.5}", frame)


class TestParseFixture:
    """Tests for whole-fixture parsing."""

    def test_sections(self):
        """Frame, inputs and outputs are read; blank lines are skipped."""
        fixture = parse_fixture(SIMPLE_FIXTURE, name="simple")

        assert fixture.name == "simple"
        assert str(fixture.frame) == "{A;B;C}"
        assert len(fixture.inputs) == 2
        assert fixture.inputs[1].bpa(fixture.frame.universal) == 0.7
        assert list(fixture.expected) == [JointOperator.AVERAGE]

    def test_expected_output_tagged(self):
        """Expected outputs remember their rule and keep zero entries."""
        fixture = load_fixture(DATA_DIR / "two_sources.txt")
        dempster = fixture.expected[JointOperator.DEMPSTER]

        assert dempster.operator is JointOperator.DEMPSTER
        assert fixture.frame.universal in dempster.elements
        assert dempster.bpa(fixture.frame.universal) == 0.0

    def test_load_fixture_name(self):
        """The file stem names the fixture."""
        fixture = load_fixture(DATA_DIR / "three_sources.txt")
        assert fixture.name == "three_sources"
        assert len(fixture.inputs) == 3
        assert set(fixture.expected) == {
            JointOperator.DEMPSTER, JointOperator.YAGER, JointOperator.AVERAGE
        }

    def test_missing_frame_raises(self):
        """Inputs need a frame first."""
        with pytest.raises(FixtureFormatError, match="line 1"):
            parse_fixture("$Input-1\n{A-1}\n")

    def test_no_frame_at_all_raises(self):
        """An empty fixture has no frame."""
        with pytest.raises(FixtureFormatError, match="no frame"):
            parse_fixture("\n\n")

    def test_input_count_mismatch_raises(self):
        """Declared and listed input counts must agree."""
        text = "$Frame of Discernment\n{A;B}\n$Input-3\n{A-1}\n$Output DEMPSTER\n{A-1}\n"
        with pytest.raises(FixtureFormatError, match="Expected 3 inputs, found 1") as exc_info:
            parse_fixture(text)
        assert exc_info.value.line_number == 5

    def test_truncated_fixture_raises(self):
        """Inputs cannot run past the end of the file."""
        text = "$Frame of Discernment\n{A;B}\n$Input-2\n{A-1}\n"
        with pytest.raises(FixtureFormatError, match="Missing input"):
            parse_fixture(text)

    def test_bad_input_header_raises(self):
        """The input count is required."""
        text = "$Frame of Discernment\n{A;B}\n$Input\n{A-1}\n"
        with pytest.raises(FixtureFormatError, match=r"\$Input-<n>"):
            parse_fixture(text)

    def test_unknown_rule_raises(self):
        """Outputs name one of the four rules."""
        text = "$Frame of Discernment\n{A;B}\n$Output MURPHY\n{A-1}\n"
        with pytest.raises(FixtureFormatError, match="Unknown combination rule"):
            parse_fixture(text)

    def test_unexpected_line_raises(self):
        """Stray lines are rejected with their line number."""
        text = "$Frame of Discernment\n{A;B}\n{A-1}\n"
        with pytest.raises(FixtureFormatError, match="line 3: Unexpected line"):
            parse_fixture(text)


class TestFormat:
    """Tests for writing fixtures."""

    def test_format_distribution(self, frame):
        """Elements are written in distribution order with short bpa."""
        m = MassDistribution([
            FocalElement(frame.element("A"), 0.6),
            FocalElement(frame.element("B", "A"), 0.4),
        ], frame)
        assert format_distribution(m) == "{A-0.6;A,B-0.4}"

    def test_format_small_bpa(self, frame):
        """Tiny masses use exponent notation that parses back."""
        m = MassDistribution([FocalElement(frame.element("C"), 0.0000123)], frame)
        line = format_distribution(m)
        assert line == "{C-1.23e-05}"
        assert parse_distribution(line, frame, normalize=False) == m

    def test_format_fixture_reparses(self):
        """A written fixture reads back to the same content."""
        fixture = load_fixture(DATA_DIR / "two_sources.txt")
        again = parse_fixture(format_fixture(fixture))

        assert again.frame == fixture.frame
        assert again.inputs == fixture.inputs
        assert again.expected == fixture.expected
