"""
Main Entry Point for dsfusion

Provides a command-line interface that runs the combination rules over a
fixture file and checks the results against the fixture's expected outputs.
"""

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

from .combination import CombinationOutcome, combine_all
from .config import FusionConfig
from .errors import EvidenceError
from .fixtures import FixtureFormatError, FusionFixture, format_distribution, load_fixture, parse_fixture
from .mass import JointOperator


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


DEMO_FIXTURE = """\
$Frame of Discernment
{A;B;C}
$Input-2
{A-0.6;A,B-0.4}
{B-0.3;A,B,C-0.7}
$Output DEMPSTER
{A-0.5122;B-0.14634;A,B-0.34146;A,B,C-0}
$Output YAGER
{A-0.42;B-0.12;A,B-0.28;A,B,C-0.18}
$Output AVERAGE
{A-0.3;B-0.15;A,B-0.2;A,B,C-0.35}
"""


def run_fixture(
    fixture: FusionFixture,
    rules: Optional[List[str]] = None,
    config: Optional[FusionConfig] = None
) -> Dict[JointOperator, CombinationOutcome]:
    """
    Run combination rules over the inputs of a fixture.

    Args:
        fixture: Parsed fixture
        rules: Rule names to run (all rules if None)
        config: Configuration

    Returns:
        Outcome of every rule, keyed by operator
    """
    logger.info(f"Combining {len(fixture.inputs)} distributions over frame {fixture.frame}")
    return combine_all(fixture.inputs, rules, config)


def verify_fixture(
    fixture: FusionFixture,
    outcomes: Dict[JointOperator, CombinationOutcome],
    config: Optional[FusionConfig] = None
) -> Dict[JointOperator, bool]:
    """
    Compare outcomes with the fixture's expected outputs.

    Only rules with an expected output are checked. A failed combination
    never matches.

    Returns:
        Whether each checked rule matched, keyed by operator
    """
    config = config or FusionConfig()
    tolerance = config.validation.tolerance

    results = {}
    for operator, outcome in outcomes.items():
        expected = fixture.expected.get(operator)
        if expected is None:
            continue
        results[operator] = outcome.ok and outcome.distribution.almost_equal(expected, tolerance)
        if not results[operator]:
            logger.warning(f"{operator.value} does not match the expected output")
    return results


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description='dsfusion: Dempster-Shafer evidence combination'
    )

    parser.add_argument(
        'fixture_file',
        type=str,
        nargs='?',
        help='Path to a fusion fixture file'
    )

    parser.add_argument(
        '--rule',
        type=str,
        default=None,
        choices=['dempster', 'yager', 'average', 'distance', 'all'],
        help='Combination rule to apply (default from config)'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to a JSON configuration file'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--demo',
        action='store_true',
        help='Run demo with a built-in fixture'
    )

    args = parser.parse_args(argv)

    try:
        config = FusionConfig.from_file(args.config) if args.config else FusionConfig()
    except FileNotFoundError:
        print(f"Error: Config file not found: {args.config}")
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in config file: {e}")
        return 1

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if args.verbose else config.logging.level)
    for handler in root_logger.handlers:
        handler.setFormatter(logging.Formatter(config.logging.format))

    if args.demo:
        fixture = parse_fixture(DEMO_FIXTURE, name='demo')
    elif args.fixture_file is None:
        parser.print_help()
        return 1
    else:
        try:
            fixture = load_fixture(args.fixture_file)
        except FileNotFoundError:
            print(f"Error: Fixture file not found: {args.fixture_file}")
            return 1
        except (FixtureFormatError, EvidenceError) as e:
            print(f"Error: Invalid fixture: {e}")
            return 1

    rule = args.rule or config.combination.default_rule
    if rule != 'all':
        try:
            JointOperator.from_name(rule)
        except ValueError as e:
            print(f"Error: Invalid config: {e}")
            return 1
    rules = None if rule == 'all' else [rule]

    outcomes = run_fixture(fixture, rules, config)
    checks = verify_fixture(fixture, outcomes, config)

    print("\n" + "=" * 50)
    print(f"RESULTS {fixture.name}".rstrip())
    print("=" * 50)
    print(f"Frame: {fixture.frame}")
    print(f"Inputs: {len(fixture.inputs)}")

    for operator, outcome in outcomes.items():
        if outcome.ok:
            line = format_distribution(outcome.distribution)
        else:
            line = f"ERROR {outcome.error_kind.value}: {outcome.error}"
        print(f"\n{operator.value}")
        print(line)
        if operator in checks:
            print(f"Matches expected: {checks[operator]}")

    failed = [op for op, outcome in outcomes.items() if not outcome.ok]
    return 0 if not failed and all(checks.values()) else 1


if __name__ == '__main__':
    sys.exit(main())
