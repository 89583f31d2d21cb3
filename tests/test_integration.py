"""
Integration Tests for dsfusion

End-to-end tests covering:
- Fixture files: parse → combine with every rule → compare with expected
- The command-line entry point
- Configuration loading
"""

import json
from pathlib import Path

import pytest

from dsfusion.combination import combine_all
from dsfusion.config import FusionConfig
from dsfusion.errors import ErrorKind
from dsfusion.fixtures import load_fixture, parse_fixture
from dsfusion.main import DEMO_FIXTURE, main, run_fixture, verify_fixture
from dsfusion.mass import JointOperator


DATA_DIR = Path(__file__).parent / "data"
FIXTURE_FILES = sorted(DATA_DIR.glob("*.txt"))


class TestFixtureFiles:
    """Every rule reproduces the expected outputs of the bundled fixtures."""

    @pytest.mark.parametrize("path", FIXTURE_FILES, ids=lambda p: p.stem)
    def test_expected_outputs_match(self, path):
        """Each expected output is matched within tolerance."""
        fixture = load_fixture(path)
        assert fixture.expected

        outcomes = run_fixture(fixture)
        checks = verify_fixture(fixture, outcomes)

        assert set(checks) == set(fixture.expected)
        assert all(checks.values()), checks

    @pytest.mark.parametrize("path", FIXTURE_FILES, ids=lambda p: p.stem)
    def test_every_rule_gives_valid_output(self, path):
        """All four rules succeed on the bundled inputs."""
        fixture = load_fixture(path)
        outcomes = combine_all(fixture.inputs)

        for operator, outcome in outcomes.items():
            assert outcome.ok, outcome.error
            assert outcome.distribution.operator is operator
            assert outcome.distribution.is_valid()

    def test_demo_fixture(self):
        """The built-in demo is consistent with itself."""
        fixture = parse_fixture(DEMO_FIXTURE, name="demo")
        checks = verify_fixture(fixture, run_fixture(fixture))
        assert checks == {
            JointOperator.DEMPSTER: True,
            JointOperator.YAGER: True,
            JointOperator.AVERAGE: True,
        }

    def test_mismatch_detected(self):
        """A wrong expected output is reported, not hidden."""
        text = DEMO_FIXTURE.replace("{A-0.3;B-0.15", "{A-0.35;B-0.1")
        fixture = parse_fixture(text)
        checks = verify_fixture(fixture, run_fixture(fixture, ["average"]))
        assert checks == {JointOperator.AVERAGE: False}

    def test_failed_combination_never_matches(self):
        """An error outcome does not match its expected output."""
        text = (
            "$Frame of Discernment\n{A;B}\n$Input-2\n{A-1}\n{B-1}\n"
            "$Output DEMPSTER\n{A-1}\n"
        )
        fixture = parse_fixture(text)
        outcomes = run_fixture(fixture, ["dempster"])

        assert outcomes[JointOperator.DEMPSTER].error_kind == ErrorKind.TOTAL_CONFLICT
        assert verify_fixture(fixture, outcomes) == {JointOperator.DEMPSTER: False}


class TestCommandLine:
    """Tests for the dsfusion entry point."""

    def test_all_rules(self, capsys):
        """A consistent fixture exits 0 and prints every rule."""
        code = main([str(DATA_DIR / "two_sources.txt"), "--rule", "all"])
        out = capsys.readouterr().out

        assert code == 0
        assert "RESULTS two_sources" in out
        for operator in JointOperator:
            assert operator.value in out
        assert "Matches expected: False" not in out

    def test_default_rule(self, capsys):
        """Without --rule only the configured default runs."""
        code = main([str(DATA_DIR / "three_sources.txt")])
        out = capsys.readouterr().out

        assert code == 0
        assert "DEMPSTER" in out
        assert "YAGER" not in out

    def test_demo(self, capsys):
        """The demo runs without a fixture file."""
        assert main(["--demo", "--rule", "all"]) == 0
        assert "RESULTS demo" in capsys.readouterr().out

    def test_no_arguments(self, capsys):
        """Help is printed and the exit code signals failure."""
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_missing_file(self, capsys, tmp_path):
        """A missing fixture is reported."""
        assert main([str(tmp_path / "absent.txt")]) == 1
        assert "not found" in capsys.readouterr().out

    def test_invalid_fixture(self, capsys, tmp_path):
        """Malformed fixtures are reported."""
        path = tmp_path / "broken.txt"
        path.write_text("$Frame of Discernment\n{A;B}\n{A-1}\n")
        assert main([str(path)]) == 1
        assert "Invalid fixture" in capsys.readouterr().out

    def test_wrong_expected_output(self, tmp_path):
        """A mismatching expected output fails the run."""
        text = (DATA_DIR / "two_sources.txt").read_text()
        path = tmp_path / "wrong.txt"
        path.write_text(text.replace("{A-0.42;B-0.12", "{A-0.12;B-0.42"))
        assert main([str(path), "--rule", "yager"]) == 1

    def test_single_input_reports_error(self, capsys, tmp_path):
        """Combination failures are printed with their kind."""
        path = tmp_path / "single.txt"
        path.write_text("$Frame of Discernment\n{A;B}\n$Input-1\n{A-0.5}\n")

        assert main([str(path), "--rule", "all"]) == 1
        out = capsys.readouterr().out
        assert out.count("ERROR combination_not_possible") == len(JointOperator)

    def test_missing_config(self, capsys, tmp_path):
        """A missing config file is reported."""
        assert main(["--demo", "--config", str(tmp_path / "none.json")]) == 1
        assert "Config file not found" in capsys.readouterr().out

    def test_malformed_config(self, capsys, tmp_path):
        """A config file that is not JSON is reported."""
        path = tmp_path / "config.json"
        path.write_text("{not json")

        assert main(["--demo", "--config", str(path)]) == 1
        assert "Invalid JSON in config file" in capsys.readouterr().out

    def test_unknown_default_rule(self, capsys, tmp_path):
        """A configured rule that does not exist is reported."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"combination": {"default_rule": "murphy"}}))

        assert main(["--demo", "--config", str(path)]) == 1
        assert "Unknown combination rule" in capsys.readouterr().out

    def test_output_mass_above_one(self, capsys, tmp_path):
        """Expected outputs with bpa above 1 are rejected."""
        path = tmp_path / "excess.txt"
        path.write_text(
            "$Frame of Discernment\n{A;B}\n$Input-2\n{A-1}\n{A-1}\n"
            "$Output DEMPSTER\n{A-1.5}\n"
        )
        assert main([str(path)]) == 1
        assert "Invalid fixture" in capsys.readouterr().out

    def test_config_default_rule(self, capsys, tmp_path):
        """The configured default rule is used when --rule is absent."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"combination": {"default_rule": "yager"}}))

        assert main([str(DATA_DIR / "two_sources.txt"), "--config", str(path)]) == 0
        out = capsys.readouterr().out
        assert "YAGER" in out
        assert "DEMPSTER" not in out


class TestConfig:
    """Tests for FusionConfig."""

    def test_defaults(self):
        """Defaults match the engine constants."""
        config = FusionConfig()
        assert config.validation.tolerance == 1e-4
        assert config.combination.total_conflict_epsilon == 1e-12
        assert config.combination.default_rule == "dempster"
        assert config.logging.level == "INFO"

    def test_dict_round_trip(self):
        """to_dict output rebuilds the same config."""
        config = FusionConfig()
        config.validation.tolerance = 1e-3
        config.combination.default_rule = "average"
        assert FusionConfig.from_dict(config.to_dict()) == config

    def test_unknown_keys_ignored(self):
        """Unrecognized sections and keys are skipped."""
        config = FusionConfig.from_dict({
            "validation": {"tolerance": 0.01, "strict": True},
            "plugins": {"murphy": True},
        })
        assert config.validation.tolerance == 0.01
        assert not hasattr(config.validation, "strict")

    def test_from_file(self, tmp_path):
        """JSON files are loaded section by section."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"logging": {"level": "DEBUG"}}))

        config = FusionConfig.from_file(str(path))

        assert config.logging.level == "DEBUG"
        assert config.validation.tolerance == 1e-4

    def test_tolerance_flows_to_verification(self):
        """A looser tolerance accepts a slightly different expected output."""
        text = DEMO_FIXTURE.replace("{A-0.3;B-0.15", "{A-0.301;B-0.149")
        fixture = parse_fixture(text)
        outcomes = run_fixture(fixture, ["average"])

        assert verify_fixture(fixture, outcomes) == {JointOperator.AVERAGE: False}

        config = FusionConfig.from_dict({"validation": {"tolerance": 0.01}})
        assert verify_fixture(fixture, outcomes, config) == {JointOperator.AVERAGE: True}
